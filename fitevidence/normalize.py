"""Normalization: canonical metric labels from filenames, instant parsing and formatting."""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

# --- Metric name resolution ---

# " (2)" before the extension, added by repeated exports of the same file.
_DUPLICATE_SUFFIX = re.compile(r"\s*\(\d+\)(?=\.[^.]+$)")

# Ordered most specific first; first match wins. Reordering makes distinct vendor
# files collide under generic labels.
METRIC_NAME_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("derived", re.compile(r"derived_com\.google\.(.+?)_com\.")),
    ("vendor", re.compile(r"com\.google\.(.+?)\.")),
    ("category", re.compile(r"fitness\.(.+?)\.")),
    ("catch_all", re.compile(r"^(.+?)\.json$", re.IGNORECASE)),
]

_CAMEL_BOUNDARY = re.compile(r"(?<=[^A-Z\s])(?=[A-Z])")


def strip_duplicate_suffix(filename: str) -> str:
    """'steps (2).json' -> 'steps.json'."""
    return _DUPLICATE_SUFFIX.sub("", filename, count=1)


def humanize_label(raw: str) -> str:
    """heart_rate.summary / heartRate -> 'heart rate summary' / 'heart rate'."""
    s = raw.replace("_", " ").replace(".", " ")
    s = _CAMEL_BOUNDARY.sub(" ", s)
    s = re.sub(r"\s+", " ", s.lower())
    return s.strip()


def resolve_metric(filename: str) -> tuple[str, str]:
    """
    Resolve a filename to (canonical label, rule name).
    Rule name is "none" when no pattern matched and the filename is returned unchanged.
    """
    name = Path(filename).name if filename else ""
    stripped = strip_duplicate_suffix(name)
    for rule, pattern in METRIC_NAME_PATTERNS:
        m = pattern.search(stripped)
        if not m:
            continue
        label = humanize_label(m.group(1))
        if label:
            return (label, rule)
    return (stripped or filename or "", "none")


def resolve_metric_name(filename: str) -> str:
    """Canonical, lower-cased metric label for a data file. Deterministic and total."""
    return resolve_metric(filename)[0]


# --- Instants ---

_FRACTION = re.compile(r"(\.\d{6})\d+")
_FALLBACK_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
    "%Y-%m-%d",
)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _to_utc(dt: datetime) -> datetime | None:
    try:
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        return None


def _from_epoch(amount: float, unit: str) -> datetime | None:
    if math.isnan(amount) or math.isinf(amount):
        return None
    try:
        return _EPOCH + timedelta(**{unit: amount})
    except (OverflowError, ValueError):
        return None


def parse_instant(raw: Any) -> datetime | None:
    """
    Parse a JSON value as an absolute instant (UTC). Returns None when it is not one.
    Strings: ISO-8601 (Z/offset, any fraction length) and a few common date layouts;
    naive values are taken as UTC. Numbers: epoch milliseconds.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return _from_epoch(float(raw), "milliseconds")
    if not isinstance(raw, str):
        return None
    s = raw.strip()
    if not s or not s[0].isdigit():
        return None
    if s[-1] in "Zz":
        s = s[:-1] + "+00:00"
    s = _FRACTION.sub(r"\1", s)
    try:
        return _to_utc(datetime.fromisoformat(s))
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return _to_utc(datetime.strptime(s, fmt))
        except ValueError:
            continue
    return None


def parse_epoch_nanos(raw: Any) -> datetime | None:
    """Nanoseconds since the epoch, as a JSON number or digit string ("All Data" exports)."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, str) and raw.strip().isdigit():
        raw = int(raw.strip())
    if isinstance(raw, int):
        return _from_epoch(raw // 1000, "microseconds")
    if isinstance(raw, float):
        return _from_epoch(raw / 1000.0, "microseconds")
    return None


def format_instant(dt: datetime) -> str:
    """UTC, millisecond precision: 2024-01-01T00:00:00.000Z."""
    u = dt.astimezone(timezone.utc)
    return (
        f"{u.year:04d}-{u.month:02d}-{u.day:02d}T"
        f"{u.hour:02d}:{u.minute:02d}:{u.second:02d}.{u.microsecond // 1000:03d}Z"
    )


def normalize_instant(raw: Any) -> str | None:
    dt = parse_instant(raw)
    return format_instant(dt) if dt is not None else None
