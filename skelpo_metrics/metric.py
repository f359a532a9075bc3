"""Metric values and their tagged wire encoding.

A metric travels as ``{"name": <kind>, "value": <payload>}``. The gauge kind is
spelled ``"guage"`` on the wire because that is what the remote API expects.
"""
from typing import Annotated, Any, Dict, List, Literal, Type, Union
import math

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from skelpo_metrics.errors import MalformedPayload, UnknownMetricKind

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def _as_int64(value: Any) -> int:
    """Accept real integers inside the signed 64-bit range."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected an integer, got {type(value).__name__}")
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"integer {value} outside the 64-bit range")
    return value


def _as_float64(value: Any) -> float:
    """Accept finite ints and floats, widening ints."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {type(value).__name__}")
    try:
        number = float(value)
    except OverflowError:
        raise ValueError(f"number {value} outside the 64-bit float range") from None
    if not math.isfinite(number):
        raise ValueError(f"expected a finite number, got {number}")
    return number


Int64 = Annotated[int, BeforeValidator(_as_int64)]
Float64 = Annotated[float, BeforeValidator(_as_float64)]


class _MetricBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class CounterMetric(_MetricBase):
    """Current value of a counter."""
    name: Literal["counter"] = "counter"
    value: Int64


class GaugeMetric(_MetricBase):
    """Last recorded gauge value."""
    name: Literal["guage"] = "guage"
    value: Float64


class TimerMetric(_MetricBase):
    """Recorded durations, in nanoseconds."""
    name: Literal["timer"] = "timer"
    durations: List[Int64] = Field(alias="value")


class RecorderMetric(_MetricBase):
    """Recorded values of a recorder."""
    name: Literal["recorder"] = "recorder"
    values: List[Float64] = Field(alias="value")


Metric = Union[CounterMetric, GaugeMetric, TimerMetric, RecorderMetric]

METRIC_KINDS: Dict[str, Type[_MetricBase]] = {
    "counter": CounterMetric,
    "guage": GaugeMetric,
    "timer": TimerMetric,
    "recorder": RecorderMetric,
}


def encode_metric(metric: Metric) -> Dict[str, Any]:
    """Encode a metric as its tagged wire object."""
    return metric.model_dump(by_alias=True)


def decode_metric(data: Any) -> Metric:
    """
    Decode a tagged wire object back into a metric.

    Args:
        data: Mapping holding ``name`` and ``value``

    Returns:
        One of the four metric models

    Raises:
        UnknownMetricKind: ``name`` is missing or not one of the four kinds
        MalformedPayload: input is not a mapping or ``value`` has the wrong shape
    """
    if not isinstance(data, dict):
        raise MalformedPayload(f"Metric must be an object, got {type(data).__name__}")

    kind = data.get("name")
    model = METRIC_KINDS.get(kind) if isinstance(kind, str) else None
    if model is None:
        raise UnknownMetricKind(f"Unknown metric kind `{kind}`")

    if "value" not in data:
        raise MalformedPayload(f"Metric `{kind}` has no value")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedPayload(f"Invalid `{kind}` payload: {e.error_count()} error(s): {e.errors()[0]['msg']}") from e
