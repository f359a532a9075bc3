"""Request builder for the remote metrics API."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional, Union
from urllib.parse import quote
import json
import math

from skelpo_metrics.config import ClientConfig
from skelpo_metrics.errors import UnknownResponse
from skelpo_metrics.event import Event

# Field of the create response holding the new event's identifier.
EVENT_ID_FIELD = "id"


@dataclass
class HTTPRequest:
    """A fully-formed request, ready for a transport."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


def _headers(config: ClientConfig) -> Dict[str, str]:
    return {
        "Authorization": config.key,
        "Content-Type": "application/json",
    }


def _event_url(config: ClientConfig, event_id: str, action: str) -> str:
    return f"{config.url}/{quote(event_id, safe='')}/{action}"


def create_request(config: ClientConfig, event: Event) -> HTTPRequest:
    """POST a new event; the body is encoded now, later edits to ``event`` are not sent."""
    return HTTPRequest("POST", config.url, _headers(config), event.to_json())


def increment_request(config: ClientConfig, event_id: str, by: int) -> HTTPRequest:
    return HTTPRequest("PATCH", f"{_event_url(config, event_id, 'increment')}?by={by}", _headers(config))


def reset_request(config: ClientConfig, event_id: str) -> HTTPRequest:
    return HTTPRequest("PATCH", _event_url(config, event_id, "reset"), _headers(config))


def format_number(value: Union[int, float]) -> str:
    """
    Path form of a recorded value.

    Integers are written as is. Floats use the shortest digits that round-trip,
    in positional notation: ``1e-05`` becomes ``0.00001`` and ``1e+20`` becomes
    ``100000000000000000000.0``.
    """
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        raise ValueError(f"Cannot record non-finite value {value}")
    text = format(Decimal(repr(value)), "f")
    return text if "." in text else f"{text}.0"


def record_request(config: ClientConfig, event_id: str, value: Union[int, float]) -> HTTPRequest:
    """Record one value; gauges replace, timers and recorders append."""
    url = f"{_event_url(config, event_id, 'record')}/{format_number(value)}"
    return HTTPRequest("PATCH", url, _headers(config))


def lock_request(config: ClientConfig, event_id: str) -> HTTPRequest:
    return HTTPRequest("PATCH", _event_url(config, event_id, "lock"), _headers(config))


def parse_event_id(body: bytes) -> str:
    """
    Read the identifier assigned by the remote API from a create response.

    Raises:
        UnknownResponse: body is not JSON or carries no usable identifier
    """
    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as e:
        raise UnknownResponse(f"Create response is not JSON: {e}") from e

    event_id = payload.get(EVENT_ID_FIELD) if isinstance(payload, dict) else None
    if isinstance(event_id, bool) or not isinstance(event_id, (str, int)) or event_id == "":
        raise UnknownResponse(f"Create response has no `{EVENT_ID_FIELD}` field")

    return str(event_id)
