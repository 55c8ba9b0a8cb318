"""Read-side queries over stored records: time-range/device/metric filters and per-metric summaries."""

from __future__ import annotations

import calendar
import math
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Iterable

from .models import MetricSummary, NormalizedRecord
from .normalize import parse_instant

# Range -> (days, months)
TIME_RANGES: dict[str, tuple[int, int]] = {
    "1d": (1, 0),
    "7d": (7, 0),
    "15d": (15, 0),
    "1m": (0, 1),
    "3m": (0, 3),
    "6m": (0, 6),
    "12m": (0, 12),
    "1y": (0, 12),
}


def _months_before(dt: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the month's last day."""
    index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def range_start(time_range: str, now: datetime) -> datetime:
    """Cutoff instant for a named range. Unknown names raise ValueError."""
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range: {time_range!r}")
    days, months = TIME_RANGES[time_range]
    if months:
        return _months_before(now, months)
    return now - timedelta(days=days)


def filter_records(
    records: Iterable[NormalizedRecord],
    time_range: str | None = None,
    device: str | None = None,
    metric: str | None = None,
    now: datetime | None = None,
) -> list[NormalizedRecord]:
    """Records within [range start, now], optionally for one device and/or metric. Order is preserved."""
    out: list[NormalizedRecord] = []
    start = end = None
    if time_range:
        end = now or datetime.now(timezone.utc)
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        start = range_start(time_range, end)
    metric_key = metric.strip().lower() if metric else None
    for r in records:
        if device and device != "all" and r.device != device:
            continue
        if metric_key and r.metric != metric_key:
            continue
        if start is not None:
            ts = parse_instant(r.timestamp)
            if ts is None or ts < start or ts > end:
                continue
        out.append(r)
    return out


def _as_number(value: str) -> float | None:
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(n) or math.isinf(n):
        return None
    return n


def summarize(records: Iterable[NormalizedRecord]) -> list[MetricSummary]:
    """One summary per metric, sorted by metric label. Non-numeric values count but are not aggregated."""
    by_metric: dict[str, list[NormalizedRecord]] = defaultdict(list)
    for r in records:
        by_metric[r.metric].append(r)
    out: list[MetricSummary] = []
    for metric in sorted(by_metric):
        rows = by_metric[metric]
        numbers = [n for n in (_as_number(r.value) for r in rows) if n is not None]
        timestamps = sorted(r.timestamp for r in rows)
        summary = MetricSummary(
            metric=metric,
            count=len(rows),
            devices=sorted({r.device for r in rows}),
            first_timestamp=timestamps[0],
            last_timestamp=timestamps[-1],
            numeric_count=len(numbers),
        )
        if numbers:
            total = sum(numbers)
            summary.min = min(numbers)
            summary.max = max(numbers)
            summary.total = round(total, 4)
            summary.mean = round(total / len(numbers), 4)
        out.append(summary)
    return out
