"""Event envelope: the record the remote API stores."""
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_serializer

from skelpo_metrics.errors import MalformedPayload
from skelpo_metrics.metric import Metric, decode_metric, encode_metric

# Dates travel as seconds since this instant.
REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)

METRIC_EVENT_TYPE = "metric"


def encode_date(value: datetime) -> float:
    """Seconds between the reference date and ``value``; naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - REFERENCE_DATE).total_seconds()


def decode_date(value: Any) -> datetime:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedPayload(f"Event date must be a number, got {type(value).__name__}")
    return REFERENCE_DATE + timedelta(seconds=value)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Event(BaseModel):
    """An occurrence at a point in time, optionally carrying a metric."""
    type: str
    metric: Optional[Annotated[Metric, Field(discriminator="name")]] = None
    attributes: Dict[str, str] = Field(default_factory=dict)
    quantity: int = 1
    date: datetime = Field(default_factory=_now)

    @classmethod
    def for_metric(cls, metric: Metric, attributes: Optional[Dict[str, str]] = None) -> "Event":
        """Event reporting a metric; its type is always ``"metric"``."""
        return cls(type=METRIC_EVENT_TYPE, metric=metric, attributes=dict(attributes or {}))

    @classmethod
    def of_type(cls, event_type: str, attributes: Optional[Dict[str, str]] = None) -> "Event":
        """Event reporting an arbitrary named occurrence, without a metric."""
        return cls(type=event_type, attributes=dict(attributes or {}))

    @field_serializer("date")
    def _serialize_date(self, value: datetime) -> float:
        return encode_date(value)

    @field_serializer("metric")
    def _serialize_metric(self, value: Optional[Metric]) -> Optional[Dict[str, Any]]:
        return encode_metric(value) if value is not None else None

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict; ``metric`` is omitted when absent."""
        return self.model_dump(exclude_none=True)

    def to_json(self) -> bytes:
        """Encoded request body."""
        return self.model_dump_json(exclude_none=True).encode("utf-8")

    @classmethod
    def from_wire(cls, data: Any) -> "Event":
        """Decode a wire dict produced by :meth:`to_wire`."""
        if not isinstance(data, dict):
            raise MalformedPayload(f"Event must be an object, got {type(data).__name__}")

        fields = {k: v for k, v in data.items() if k not in ("metric", "date")}
        if data.get("metric") is not None:
            fields["metric"] = decode_metric(data["metric"])
        if "date" in data:
            fields["date"] = decode_date(data["date"])

        try:
            return cls.model_validate(fields)
        except ValidationError as e:
            raise MalformedPayload(f"Invalid event: {e.errors()[0]['msg']}") from e
