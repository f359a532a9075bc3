"""Metric handles: counter, gauge, timer and recorder.

Each handle owns one update serializer. A handle starts unbound; the first
operation that runs while unbound creates the remote event and binds the
handle to the identifier the API returns. Every later operation mutates that
event in place. The create-or-mutate decision is taken when an operation
runs, not when it is submitted, so a burst of calls on a fresh handle creates
exactly one remote event.
"""
from concurrent.futures import Executor, Future
from contextlib import contextmanager
from dataclasses import dataclass
from time import perf_counter_ns
from typing import Callable, Dict, Optional, Union
import logging

from skelpo_metrics.config import ClientConfig
from skelpo_metrics.errors import NoBoundEvent
from skelpo_metrics.event import Event
from skelpo_metrics.metric import CounterMetric, GaugeMetric, Metric, RecorderMetric, TimerMetric
from skelpo_metrics.protocol import (
    HTTPRequest,
    create_request,
    increment_request,
    lock_request,
    parse_event_id,
    record_request,
    reset_request,
)
from skelpo_metrics.serializer import Operation, UpdateSerializer
from skelpo_metrics.transport import Transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unbound:
    """No remote event exists yet."""


@dataclass(frozen=True)
class Bound:
    """The remote event this handle mutates."""
    event_id: str


Binding = Union[Unbound, Bound]


class MetricHandle:
    """Base class for the four handle kinds."""

    kind = "metric"

    def __init__(
        self,
        label: str,
        config: ClientConfig,
        transport: Transport,
        executor: Executor,
        dimensions: Optional[Dict[str, str]] = None,
        self_metrics=None
    ):
        self._label = label
        self.dimensions = dict(dimensions or {})
        self.config = config
        self.transport = transport
        self.locked = False
        self._binding: Binding = Unbound()
        self.serializer = UpdateSerializer(executor, label, self.kind, self_metrics)

    @property
    def label(self) -> str:
        return self._label

    @property
    def event_id(self) -> Optional[str]:
        binding = self._binding
        return binding.event_id if isinstance(binding, Bound) else None

    def lock(self) -> Future:
        """
        Freeze the remote event.

        Lock never creates an event: if nothing is bound when the operation
        runs it fails with NoBoundEvent and sends no request. Operations
        submitted after a lock are still sent; the remote API decides whether
        to accept them.
        """
        def run():
            binding = self._binding
            if not isinstance(binding, Bound):
                raise NoBoundEvent(f"Metric '{self.label}' has no remote event to lock")
            self._send(lock_request(self.config, binding.event_id))
            self.locked = True
            return binding.event_id

        return self.serializer.submit(Operation("lock", run))

    def _submit(self, action: str, metric: Metric, mutate: Callable[[str], HTTPRequest]) -> Future:
        """Queue an operation that creates the event with ``metric`` or applies ``mutate``."""
        def run():
            binding = self._binding
            if isinstance(binding, Bound):
                self._send(mutate(binding.event_id))
                return binding.event_id
            return self._create(metric)

        return self.serializer.submit(Operation(action, run))

    def _create(self, metric: Metric) -> str:
        event = Event.for_metric(metric, self.dimensions)
        body = self._send(create_request(self.config, event))
        event_id = parse_event_id(body)
        self._binding = Bound(event_id)
        logger.info(f"Metric '{self.label}' bound to remote event {event_id}")
        return event_id

    def _send(self, request: HTTPRequest) -> bytes:
        logger.debug(f"Metric '{self.label}': {request.method} {request.url}")
        return self.transport.send_request(request.method, request.url, request.headers, request.body)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(label={self.label!r}, event_id={self.event_id!r}, locked={self.locked})"


class Counter(MetricHandle):
    """Integer counter."""

    kind = "counter"

    def increment(self, by: int = 1) -> Future:
        metric = CounterMetric(value=by)
        return self._submit(
            "increment", metric,
            lambda event_id: increment_request(self.config, event_id, metric.value)
        )

    def reset(self) -> Future:
        return self._submit(
            "reset", CounterMetric(value=0),
            lambda event_id: reset_request(self.config, event_id)
        )


class Gauge(MetricHandle):
    """Single value; each record replaces the previous one remotely."""

    kind = "gauge"

    def record(self, value: Union[int, float]) -> Future:
        metric = GaugeMetric(value=value)
        return self._submit(
            "record", metric,
            lambda event_id: record_request(self.config, event_id, metric.value)
        )


class Timer(MetricHandle):
    """Durations in nanoseconds; each record appends one duration remotely."""

    kind = "timer"

    def record_nanoseconds(self, duration: int) -> Future:
        metric = TimerMetric(durations=[duration])
        return self._submit(
            "record", metric,
            lambda event_id: record_request(self.config, event_id, metric.durations[0])
        )

    def record_seconds(self, duration: float) -> Future:
        return self.record_nanoseconds(round(duration * 1_000_000_000))

    @contextmanager
    def time(self):
        """Time the enclosed block."""
        start = perf_counter_ns()
        try:
            yield
        finally:
            self.record_nanoseconds(perf_counter_ns() - start)


class Recorder(MetricHandle):
    """Series of values; each record appends one value remotely."""

    kind = "recorder"

    def record(self, value: Union[int, float]) -> Future:
        metric = RecorderMetric(values=[value])
        return self._submit(
            "record", metric,
            lambda event_id: record_request(self.config, event_id, metric.values[0])
        )


HANDLE_KINDS = {
    "counter": Counter,
    "gauge": Gauge,
    "timer": Timer,
    "recorder": Recorder,
}
