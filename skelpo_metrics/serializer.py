"""Per-handle update serializer.

Operations submitted to one serializer run one at a time, in submission order,
on a shared worker pool. The serializer is either idle (nothing queued) or
draining (one worker walks the queue until it is empty). A failed operation is
logged and the next one runs anyway.
"""
from collections import deque
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from typing import Any, Callable, Deque, Optional, Tuple
import logging
import threading
import time

from skelpo_metrics.errors import MetricsError

logger = logging.getLogger(__name__)


@dataclass
class Operation:
    """A remote mutation waiting for its turn."""
    action: str
    run: Callable[[], Any]


class UpdateSerializer:
    """FIFO, single-flight executor for one metric handle."""

    def __init__(self, executor: Executor, label: str, kind: str = "metric", self_metrics=None):
        self.executor = executor
        self.label = label
        self.kind = kind
        self.self_metrics = self_metrics

        self._pending: Deque[Tuple[Operation, Future]] = deque()
        self._draining = False
        self._state = threading.Condition(threading.Lock())

    @property
    def pending(self) -> int:
        """Operations queued or running."""
        with self._state:
            return len(self._pending)

    @property
    def is_idle(self) -> bool:
        with self._state:
            return not self._draining

    def submit(self, operation: Operation) -> Future:
        """
        Queue ``operation`` behind everything already submitted.

        Returns immediately. The returned future is already marked running, so
        it cannot be cancelled; it resolves to the operation's result or to the
        error it raised.
        """
        future = Future()
        future.set_running_or_notify_cancel()

        with self._state:
            self._pending.append((operation, future))
            self._report_depth()
            if self._draining:
                return future
            self._draining = True

        try:
            self.executor.submit(self._drain)
        except RuntimeError as e:
            # Executor already shut down; nothing will ever drain this queue.
            self._abandon(e)

        return future

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until the queue is empty. Returns False on timeout."""
        with self._state:
            return self._state.wait_for(lambda: not self._draining, timeout)

    def _drain(self):
        while True:
            with self._state:
                if not self._pending:
                    self._draining = False
                    self._state.notify_all()
                    return
                operation, future = self._pending[0]

            try:
                succeeded, outcome = self._execute(operation)
            except BaseException as e:
                logger.error(f"Metric '{self.label}' {operation.action} interrupted: {e!r}")
                self._finish(future, False, e)
                self._hand_off()
                raise

            self._finish(future, succeeded, outcome)

    def _finish(self, future: Future, succeeded: bool, outcome: Any):
        with self._state:
            self._pending.popleft()
            self._report_depth()

        if succeeded:
            future.set_result(outcome)
        else:
            future.set_exception(outcome)

    def _hand_off(self):
        """Pass the rest of the queue to a new worker after an interrupted drain."""
        with self._state:
            if not self._pending:
                self._draining = False
                self._state.notify_all()
                return

        try:
            self.executor.submit(self._drain)
        except RuntimeError as e:
            self._abandon(e)

    def _execute(self, operation: Operation) -> Tuple[bool, Any]:
        """Run one operation; returns (True, result) or (False, error)."""
        start = time.perf_counter()
        try:
            result = operation.run()
        except MetricsError as e:
            logger.warning(f"Metric '{self.label}' {operation.action} failed: {e.identifier}: {e}")
            self._record(operation, False, start)
            return False, e
        except Exception as e:
            logger.error(f"Metric '{self.label}' {operation.action} raised: {e}", exc_info=True)
            self._record(operation, False, start)
            return False, e

        self._record(operation, True, start)
        return True, result

    def _abandon(self, error: BaseException):
        logger.error(f"Metric '{self.label}' cannot schedule operations: {error}")
        with self._state:
            abandoned = list(self._pending)
            self._pending.clear()
            self._draining = False
            self._report_depth()
            self._state.notify_all()

        for _, future in abandoned:
            future.set_exception(error)

    def _record(self, operation: Operation, succeeded: bool, start: float):
        if self.self_metrics:
            self.self_metrics.record_operation(
                self.kind, operation.action, succeeded, time.perf_counter() - start
            )

    def _report_depth(self):
        if self.self_metrics:
            self.self_metrics.set_queue_depth(self.label, len(self._pending))
