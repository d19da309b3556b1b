from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from topokit.shape import Period

pytestmark = [pytest.mark.unit]


def test_parse_by_iso_and_id():
    assert Period.parse("PT1H") is Period.PT1H
    assert Period.parse("minutely") is Period.PT1M
    with pytest.raises(ValueError):
        Period.parse("P1D")


def test_partition_values_are_utc():
    ts = datetime(2024, 5, 17, 15, 45, 10, tzinfo=timezone(timedelta(hours=2)))
    assert Period.PT1H.partition_values(ts) == {"year": 2024, "month": 5, "day": 17, "hour": 13}
    assert Period.PT1M.partition_values(ts)["minute"] == 45


def test_naive_timestamps_are_taken_as_utc():
    ts = datetime(2024, 1, 1, 23, 59, 30)
    assert Period.PT1H.truncate(ts) == datetime(2024, 1, 1, 23, 0, tzinfo=timezone.utc)
    assert Period.PT1M.truncate(ts).second == 0
    assert Period.PT1M.milliseconds == 60_000
