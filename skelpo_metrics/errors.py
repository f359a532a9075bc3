"""Error types raised by the metrics client."""
from typing import Optional


class MetricsError(Exception):
    """Base error carrying a stable identifier and a human readable reason."""

    identifier = "metricsError"

    def __init__(self, reason: str, identifier: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        if identifier is not None:
            self.identifier = identifier

    def __repr__(self) -> str:
        return f"{type(self).__name__}(identifier={self.identifier!r}, reason={self.reason!r})"


class BadURL(MetricsError):
    """The configured endpoint cannot be turned into a request URL."""
    identifier = "badURL"


class UnknownResponse(MetricsError):
    """The remote API answered with something we cannot interpret."""
    identifier = "unknownResponse"


class FailedOperation(MetricsError):
    """The remote API answered with a status outside 2xx."""
    identifier = "failedOperation"

    def __init__(self, status_code: int, reason: Optional[str] = None):
        super().__init__(reason or f"Received status code `{status_code}`")
        self.status_code = status_code


class TransportError(MetricsError):
    """Network level failure: connection refused, timeout, reset."""
    identifier = "transportError"


class UnknownMetricKind(MetricsError):
    """A metric discriminant outside the four known kinds."""
    identifier = "unknownMetricKind"


class MalformedPayload(MetricsError):
    """A metric or event whose fields do not match the expected shape."""
    identifier = "malformedPayload"


class NoBoundEvent(MetricsError):
    """Lock was attempted before the handle created its remote event."""
    identifier = "noBoundEvent"


class ConfigError(MetricsError):
    """Configuration is missing or invalid."""
    identifier = "invalidConfig"
