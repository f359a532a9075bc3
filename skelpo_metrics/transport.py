"""HTTP transport used to reach the remote metrics API."""
from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging

import httpx

from skelpo_metrics.errors import BadURL, FailedOperation, TransportError

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Sends one request and reports success or failure.

    Implementations are called from worker threads, never from the caller of a
    handle operation, so blocking I/O is fine here.
    """

    @abstractmethod
    def send_request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[bytes] = None
    ) -> bytes:
        """Send the request and return the response body.

        Raises:
            BadURL: ``url`` cannot be used
            TransportError: the request never got an HTTP answer
            FailedOperation: the answer's status is outside 2xx
        """

    def close(self):
        """Release any pooled connections."""


class HTTPXTransport(Transport):
    """Transport backed by a shared ``httpx.Client``."""

    def __init__(self, timeout_s: float = 10.0, client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(timeout=timeout_s)

    def send_request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[bytes] = None
    ) -> bytes:
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise BadURL(f"Unable to create URL from string `{url}`: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise BadURL(f"Unable to create URL from string `{url}`")

        try:
            response = self.client.request(method, parsed, headers=headers, content=body)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        logger.debug(f"{method} {url} -> {response.status_code}")

        if not 200 <= response.status_code <= 299:
            raise FailedOperation(response.status_code)

        return response.content

    def close(self):
        self.client.close()
