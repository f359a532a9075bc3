"""Shared fixtures: an in-memory transport and a factory wired to it."""
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional
import json
import threading
import time

import pytest

from skelpo_metrics.config import ClientConfig
from skelpo_metrics.factory import MetricsFactory
from skelpo_metrics.protocol import HTTPRequest
from skelpo_metrics.transport import Transport


class RecordingTransport(Transport):
    """Records every request and answers creates with ids evt-1, evt-2, ..."""

    def __init__(self, delay: float = 0.0):
        self.requests: List[HTTPRequest] = []
        self.failures = deque()
        self.create_responses = deque()
        self.gate: Optional[threading.Event] = None
        self.delay = delay
        self.closed = False
        self.in_flight = 0
        self.max_in_flight = 0
        self._next_id = 1
        self._lock = threading.Lock()

    def fail_next(self, error: Exception):
        """Make the next request raise ``error`` (after being recorded)."""
        self.failures.append(error)

    def send_request(self, method: str, url: str, headers: Dict[str, str], body: Optional[bytes] = None) -> bytes:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)

        try:
            if self.gate is not None:
                self.gate.wait(5)
            if self.delay:
                time.sleep(self.delay)

            with self._lock:
                self.requests.append(HTTPRequest(method, url, dict(headers), body))
                failure = self.failures.popleft() if self.failures else None
                if failure is None and method == "POST":
                    if self.create_responses:
                        return self.create_responses.popleft()
                    response = json.dumps({"id": f"evt-{self._next_id}"}).encode()
                    self._next_id += 1
                    return response

            if failure is not None:
                raise failure
            return b""
        finally:
            with self._lock:
                self.in_flight -= 1

    def close(self):
        self.closed = True

    @property
    def posts(self) -> List[HTTPRequest]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def patches(self) -> List[HTTPRequest]:
        return [r for r in self.requests if r.method == "PATCH"]


@pytest.fixture
def client_config():
    return ClientConfig(url="https://metrics.example.com/events", key="secret-key")


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=4)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def factory(client_config, transport, executor):
    metrics_factory = MetricsFactory(client_config, transport=transport, executor=executor)
    yield metrics_factory
    metrics_factory.flush(timeout=5)
