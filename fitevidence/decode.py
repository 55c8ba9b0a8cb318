"""
Point decoding: map one untyped JSON value to (value, timestamp, device).

Each resolution is an ordered table of small rule functions evaluated first-match-wins,
so the precedence is explicit and every rule can be exercised on its own.
Missing keys and JSON null are treated the same way (absent).
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Iterator, Optional

from .models import UNKNOWN_DEVICE, NormalizedRecord
from .normalize import format_instant, parse_epoch_nanos, parse_instant

# Typed-value keys inside {"intVal": ..} / {"fpVal": ..} / {"stringVal": ..}; integer before
# float before string.
TYPED_VALUE_KEYS = ("intVal", "fpVal", "stringVal")

# Domain scalar fields probed when there is no generic "value".
VALUE_FIELDS = (
    "activity",
    "steps",
    "distance",
    "calories",
    "heart_rate",
    "bpm",
    "speed",
    "power",
    "weight",
    "height",
    "sleepSegmentType",
)

VALUE_WRAPPER_FIELD = "fitValue"

TIMESTAMP_FIELDS = (
    "startTime",
    "endTime",
    "timestamp",
    "modifiedTime",
    "createTime",
    "lastModifiedTime",
    "originDataSourceId",
    "date",
)
NANOS_TIMESTAMP_FIELDS = ("startTimeNanos", "endTimeNanos")

DEVICE_NAME_FIELDS = ("name", "manufacturer", "model", "type")

# raw:<namespace>.<vendor>[.:]... e.g. raw:com.xiaomi.heart_rate:... -> "xiaomi"
_RAW_SOURCE_ID = re.compile(r"^raw:[a-z0-9_]+\.(?P<vendor>[a-z0-9_]+)[.:]", re.IGNORECASE)

# Keys under which an export document nests its list of points.
POINT_CONTAINER_KEYS = ("Data Points", "dataPoints", "data", "point")

Rule = Callable[[dict], Optional[Any]]


def _get(obj: Any, key: str) -> Any:
    """Safe field lookup: None for non-objects, missing keys and JSON null alike."""
    if not isinstance(obj, dict):
        return None
    return obj.get(key)


def stringify(value: Any) -> str:
    """Type-agnostic string form used for every decoded value."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def typed_value(obj: Any) -> Any:
    """{"intVal": 3} -> 3; {"fpVal": 72.5} -> 72.5; scalars pass through; None if nothing usable."""
    if isinstance(obj, dict):
        for key in TYPED_VALUE_KEYS:
            v = obj.get(key)
            if v is not None:
                return v
        return None
    if isinstance(obj, list):
        return None
    return obj


# --- Value rules ---

def _value_from_sequence(point: dict) -> Any:
    v = point.get("value")
    if not isinstance(v, list) or not v:
        return None
    return typed_value(v[0])


def _value_direct(point: dict) -> Any:
    v = point.get("value")
    if v is None or isinstance(v, list):
        return None
    return v


def _value_from_domain_fields(point: dict) -> Any:
    for field in VALUE_FIELDS:
        v = point.get(field)
        if v is not None:
            return v
    return None


def _value_from_wrapper(point: dict) -> Any:
    wrapper = point.get(VALUE_WRAPPER_FIELD)
    if wrapper is None:
        return None
    if isinstance(wrapper, list):
        if not wrapper:
            return None
        wrapper = wrapper[0]
    inner = _get(wrapper, "value")
    if inner is not None:
        resolved = typed_value(inner)
        return resolved if resolved is not None else inner
    resolved = typed_value(wrapper)
    return resolved if resolved is not None else wrapper


VALUE_RULES: list[tuple[str, Rule]] = [
    ("value_sequence", _value_from_sequence),
    ("value_direct", _value_direct),
    ("domain_field", _value_from_domain_fields),
    ("value_wrapper", _value_from_wrapper),
]


def decode_value(point: Any) -> str | None:
    if not isinstance(point, dict):
        return None
    for _name, rule in VALUE_RULES:
        v = rule(point)
        if v is not None:
            return stringify(v)
    return None


# --- Timestamp ---

def decode_timestamp(point: Any) -> str | None:
    """First candidate field that parses as an instant, as canonical UTC; unparseable fields are skipped."""
    if not isinstance(point, dict):
        return None
    for field in TIMESTAMP_FIELDS:
        dt = parse_instant(point.get(field))
        if dt is not None:
            return format_instant(dt)
    for field in NANOS_TIMESTAMP_FIELDS:
        dt = parse_epoch_nanos(point.get(field))
        if dt is not None:
            return format_instant(dt)
    return None


# --- Device ---

def device_from_source_id(source_id: str) -> str:
    m = _RAW_SOURCE_ID.match(source_id)
    if not m:
        return source_id
    return m.group("vendor").lower().replace("_", " ")


def decode_device(point: Any) -> str:
    """Device label with fallbacks; never fails."""
    device = _get(point, "device")
    if isinstance(device, str) and not device.strip():
        device = None
    if device is not None:
        if isinstance(device, str):
            return device
        if isinstance(device, dict):
            for field in DEVICE_NAME_FIELDS:
                v = device.get(field)
                if v:
                    return stringify(v)
        return UNKNOWN_DEVICE
    source_id = _get(point, "originDataSourceId")
    if source_id:
        return device_from_source_id(stringify(source_id))
    return UNKNOWN_DEVICE


# --- Points ---

def iter_points(document: Any) -> Iterator[Any]:
    """Points of a parsed file: list elements, a container key's list, or the bare object itself."""
    if isinstance(document, list):
        yield from document
        return
    if isinstance(document, dict):
        for key in POINT_CONTAINER_KEYS:
            inner = document.get(key)
            if isinstance(inner, list):
                yield from inner
                return
        yield document


def decode_point(point: Any, metric: str) -> NormalizedRecord | None:
    """A record only when both value and timestamp resolve; otherwise None (point skipped)."""
    if not isinstance(point, dict):
        return None
    value = decode_value(point)
    if value is None or value == "":
        return None
    timestamp = decode_timestamp(point)
    if timestamp is None:
        return None
    return NormalizedRecord(
        timestamp=timestamp,
        metric=metric,
        value=value,
        device=decode_device(point),
    )
