"""Instrumentation front-end: hands out metric handles and owns shared resources."""
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple
import logging
import threading
import time

from skelpo_metrics.config import ClientConfig
from skelpo_metrics.event import Event
from skelpo_metrics.handlers import HANDLE_KINDS, Counter, Gauge, MetricHandle, Recorder, Timer
from skelpo_metrics.protocol import create_request
from skelpo_metrics.transport import HTTPXTransport, Transport

logger = logging.getLogger(__name__)

HandleKey = Tuple[str, str, Tuple[Tuple[str, str], ...]]


class MetricsFactory:
    """Creates, reuses and destroys metric handles.

    One handle exists per (kind, label, dimensions); asking again returns the
    same instance. All handles share one transport and one worker pool.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[Transport] = None,
        self_metrics=None,
        executor: Optional[ThreadPoolExecutor] = None
    ):
        self.config = config
        self.transport = transport or HTTPXTransport(timeout_s=config.timeout_s)
        self.self_metrics = self_metrics
        self.executor = executor or ThreadPoolExecutor(
            max_workers=config.max_workers,
            thread_name_prefix="skelpo-metrics"
        )
        self.handles: Dict[HandleKey, MetricHandle] = {}
        self._retired: List[MetricHandle] = []
        self._handles_lock = threading.Lock()

        logger.info(f"Metrics factory initialized, reporting to {config.url}")

    def counter(self, label: str, dimensions: Optional[Dict[str, str]] = None) -> Counter:
        return self._handle("counter", label, dimensions)

    def gauge(self, label: str, dimensions: Optional[Dict[str, str]] = None) -> Gauge:
        return self._handle("gauge", label, dimensions)

    def timer(self, label: str, dimensions: Optional[Dict[str, str]] = None) -> Timer:
        return self._handle("timer", label, dimensions)

    def recorder(self, label: str, dimensions: Optional[Dict[str, str]] = None) -> Recorder:
        return self._handle("recorder", label, dimensions)

    def _handle(self, kind: str, label: str, dimensions: Optional[Dict[str, str]]):
        dimensions = dict(dimensions or {})
        key = (kind, label, tuple(sorted(dimensions.items())))

        with self._handles_lock:
            handle = self.handles.get(key)
            if handle is None:
                handle = HANDLE_KINDS[kind](
                    label,
                    self.config,
                    self.transport,
                    self.executor,
                    dimensions=dimensions,
                    self_metrics=self.self_metrics
                )
                self.handles[key] = handle
                logger.debug(f"Created {kind} handle '{label}'")

        return handle

    def destroy(self, handle: MetricHandle) -> Future:
        """Lock the handle's remote event and forget the handle."""
        with self._handles_lock:
            for key, existing in list(self.handles.items()):
                if existing is handle:
                    del self.handles[key]
            self._retired.append(handle)

        return handle.lock()

    def send_event(self, event: Event) -> Future:
        """
        POST an arbitrary event outside any handle.

        The body is encoded now; the request runs on the worker pool and the
        returned future resolves to the raw response body.
        """
        request = create_request(self.config, event)

        def run():
            start = time.perf_counter()
            try:
                body = self.transport.send_request(request.method, request.url, request.headers, request.body)
            except Exception as e:
                logger.warning(f"Event '{event.type}' failed to save with error: {e}")
                if self.self_metrics:
                    self.self_metrics.record_event(False)
                raise
            logger.debug(f"Event '{event.type}' saved in {time.perf_counter() - start:.3f}s")
            if self.self_metrics:
                self.self_metrics.record_event(True)
            return body

        return self.executor.submit(run)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for every handle's queue to drain. Returns False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._handles_lock:
            handles = list(self.handles.values()) + self._retired

        for handle in handles:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not handle.serializer.join(remaining):
                logger.warning(f"Timed out flushing metric '{handle.label}'")
                return False

        with self._handles_lock:
            self._retired = [h for h in self._retired if not h.serializer.is_idle]

        return True

    def shutdown(self, timeout: Optional[float] = None):
        """Flush, stop the worker pool and close the transport."""
        logger.info("Shutting down metrics factory")
        self.flush(timeout)
        self.executor.shutdown(wait=True)
        self.transport.close()
