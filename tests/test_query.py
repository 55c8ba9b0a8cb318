"""Tests for record queries: time ranges, device/metric filters, per-metric summaries."""

from datetime import datetime, timezone

import pytest

from fitevidence.models import NormalizedRecord
from fitevidence.query import filter_records, range_start, summarize

NOW = datetime(2024, 3, 31, 12, 0, 0, tzinfo=timezone.utc)


def _rec(ts: str, metric: str, value: str, device: str = "Unknown Device") -> NormalizedRecord:
    return NormalizedRecord(timestamp=ts, metric=metric, value=value, device=device)


RECORDS = [
    _rec("2023-03-31T12:00:00.000Z", "steps", "100"),
    _rec("2024-02-29T12:00:00.000Z", "steps", "200", "Pixel Watch"),
    _rec("2024-03-30T13:00:00.000Z", "heart rate", "70", "Pixel Watch"),
    _rec("2024-03-31T11:00:00.000Z", "activity", "walking"),
    _rec("2024-04-01T00:00:00.000Z", "steps", "300"),
]


def test_range_start_months_clamp_to_month_end() -> None:
    """1m from March 31 lands on Feb 29 in a leap year."""
    assert range_start("1m", NOW) == datetime(2024, 2, 29, 12, 0, 0, tzinfo=timezone.utc)
    assert range_start("1y", NOW) == datetime(2023, 3, 31, 12, 0, 0, tzinfo=timezone.utc)
    assert range_start("7d", NOW) == datetime(2024, 3, 24, 12, 0, 0, tzinfo=timezone.utc)


def test_range_start_unknown() -> None:
    with pytest.raises(ValueError):
        range_start("2w", NOW)


def test_filter_records_time_range_inclusive_and_excludes_future() -> None:
    """Range is [start, now]; records after now are excluded."""
    assert [r.value for r in filter_records(RECORDS, time_range="1d", now=NOW)] == ["70", "walking"]
    assert [r.value for r in filter_records(RECORDS, time_range="1m", now=NOW)] == ["200", "70", "walking"]
    assert [r.value for r in filter_records(RECORDS, time_range="12m", now=NOW)] == ["100", "200", "70", "walking"]


def test_filter_records_device_and_metric() -> None:
    assert len(filter_records(RECORDS)) == 5
    assert [r.value for r in filter_records(RECORDS, device="Pixel Watch")] == ["200", "70"]
    assert len(filter_records(RECORDS, device="all")) == 5
    assert [r.value for r in filter_records(RECORDS, metric=" Steps ")] == ["100", "200", "300"]


def test_summarize_numeric_and_text_values() -> None:
    """Numeric values are aggregated; text values are only counted."""
    summaries = {s.metric: s for s in summarize(RECORDS)}
    assert list(summaries) == ["activity", "heart rate", "steps"]
    steps = summaries["steps"]
    assert steps.count == 3
    assert steps.numeric_count == 3
    assert steps.min == 100.0 and steps.max == 300.0
    assert steps.total == 600.0 and steps.mean == 200.0
    assert steps.first_timestamp == "2023-03-31T12:00:00.000Z"
    assert steps.last_timestamp == "2024-04-01T00:00:00.000Z"
    assert steps.devices == ["Pixel Watch", "Unknown Device"]
    activity = summaries["activity"]
    assert activity.count == 1 and activity.numeric_count == 0 and activity.mean is None
