"""Tests for point decoding: value, timestamp and device rule precedence."""

import pytest

from fitevidence.decode import (
    decode_device,
    decode_point,
    decode_timestamp,
    decode_value,
    iter_points,
)
from fitevidence.models import UNKNOWN_DEVICE


def test_decode_point_pixel_watch() -> None:
    """Typed fpVal, ISO startTime and device name resolve into one record."""
    point = {
        "startTime": "2024-01-01T00:00:00Z",
        "value": [{"fpVal": 72.5}],
        "device": {"name": "Pixel Watch"},
    }
    assert decode_value(point) == "72.5"
    assert decode_timestamp(point) == "2024-01-01T00:00:00.000Z"
    assert decode_device(point) == "Pixel Watch"
    record = decode_point(point, "heart rate")
    assert record is not None
    assert record.model_dump() == {
        "timestamp": "2024-01-01T00:00:00.000Z",
        "metric": "heart rate",
        "value": "72.5",
        "device": "Pixel Watch",
    }


@pytest.mark.parametrize(
    ("point", "expected"),
    [
        ({"value": [{"intVal": 3, "fpVal": 1.5, "stringVal": "x"}]}, "3"),
        ({"value": [{"fpVal": 1.5, "stringVal": "x"}]}, "1.5"),
        ({"value": [{"stringVal": "walking"}]}, "walking"),
        ({"value": [{"intVal": 0}]}, "0"),
        ({"value": [42, 43]}, "42"),
        ({"value": 7}, "7"),
        ({"value": "abc"}, "abc"),
        ({"value": True}, "true"),
        ({"value": None, "steps": 4}, "4"),
        ({"value": [], "bpm": 60}, "60"),
        ({"value": [{"mapVal": []}], "calories": 12.5}, "12.5"),
        ({"activity": "running", "steps": 5}, "running"),
        ({"steps": 1200, "calories": 5}, "1200"),
        ({"sleepSegmentType": 4}, "4"),
        ({"fitValue": [{"value": {"intVal": 9}}]}, "9"),
        ({"fitValue": {"value": 3.5}}, "3.5"),
        ({"fitValue": 11}, "11"),
    ],
)
def test_decode_value_precedence(point: dict, expected: str) -> None:
    assert decode_value(point) == expected


@pytest.mark.parametrize("point", [{}, {"foo": 1}, {"value": []}, {"value": None}, [1, 2], "x", None])
def test_decode_value_none(point) -> None:
    assert decode_value(point) is None


def test_decode_timestamp_skips_unparseable_fields() -> None:
    """A present but invalid field is skipped and the next candidate used."""
    point = {"startTime": "bogus", "endTime": "2024-01-01T00:00:05Z"}
    assert decode_timestamp(point) == "2024-01-01T00:00:05.000Z"


@pytest.mark.parametrize(
    ("point", "expected"),
    [
        ({"date": "2024-02-01"}, "2024-02-01T00:00:00.000Z"),
        ({"timestamp": 1704067200000}, "2024-01-01T00:00:00.000Z"),
        ({"modifiedTime": "2024-01-01T08:00:00+08:00"}, "2024-01-01T00:00:00.000Z"),
        ({"startTimeNanos": "1704067200000000000"}, "2024-01-01T00:00:00.000Z"),
        ({"endTime": "2024-01-01T00:00:01Z", "startTime": "2024-01-01T00:00:00Z"}, "2024-01-01T00:00:00.000Z"),
    ],
)
def test_decode_timestamp_fields(point: dict, expected: str) -> None:
    assert decode_timestamp(point) == expected


def test_decode_timestamp_none() -> None:
    assert decode_timestamp({"value": 1}) is None
    assert decode_timestamp({"startTime": "later"}) is None


@pytest.mark.parametrize(
    ("point", "expected"),
    [
        ({"device": "Fitbit Charge 6"}, "Fitbit Charge 6"),
        ({"device": {"manufacturer": "Google", "model": "Pixel 8"}}, "Google"),
        ({"device": {"model": "", "type": "watch"}}, "watch"),
        ({"device": {}}, UNKNOWN_DEVICE),
        ({"device": {}, "originDataSourceId": "raw:com.fitbit:x"}, UNKNOWN_DEVICE),
        ({"device": "", "originDataSourceId": "raw:com.fitbit.hr:x"}, "fitbit"),
        ({"device": "   "}, UNKNOWN_DEVICE),
        ({"originDataSourceId": "raw:com.xiaomi_wear.heart_rate:com.xiaomi.hm.health"}, "xiaomi wear"),
        ({"originDataSourceId": "raw:com.Fitbit:tracker"}, "fitbit"),
        (
            {"originDataSourceId": "derived:com.google.step_count.delta:com.google.android.gms:merged"},
            "derived:com.google.step_count.delta:com.google.android.gms:merged",
        ),
        ({}, UNKNOWN_DEVICE),
    ],
)
def test_decode_device(point: dict, expected: str) -> None:
    assert decode_device(point) == expected


def test_decode_point_drops_without_timestamp() -> None:
    """No recognizable timestamp: no record, no error."""
    assert decode_point({"value": [{"intVal": 5}]}, "steps") is None
    assert decode_point({"startTime": "2024-01-01T00:00:00Z"}, "steps") is None
    assert decode_point({"startTime": "2024-01-01T00:00:00Z", "value": ""}, "steps") is None
    assert decode_point("2024-01-01", "steps") is None


def test_iter_points_shapes() -> None:
    """Lists yield elements, container keys are unwrapped, bare objects are singletons."""
    assert list(iter_points([{"a": 1}, {"b": 2}])) == [{"a": 1}, {"b": 2}]
    doc = {"Data Source": "derived:x", "Data Points": [{"a": 1}, {"a": 2}]}
    assert list(iter_points(doc)) == [{"a": 1}, {"a": 2}]
    assert list(iter_points({"steps": 3})) == [{"steps": 3}]
    assert list(iter_points({"data": "not a list"})) == [{"data": "not a list"}]
    assert list(iter_points(42)) == []
