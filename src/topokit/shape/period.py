from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import ClassVar

__all__ = ["Period"]


@dataclass(frozen=True)
class Period:
    """
    Time bucket used to partition tables by an event timestamp.

    ``columns`` are the integer partition columns, coarse to fine.
    """

    id: str
    iso: str
    columns: tuple[str, ...]
    milliseconds: int

    PT1H: ClassVar[Period]
    PT1M: ClassVar[Period]

    @staticmethod
    def parse(value: str) -> Period:
        """Look a period up by its ISO-8601 duration (``PT1H``) or id (``hourly``)."""
        for p in (Period.PT1H, Period.PT1M):
            if value in (p.iso, p.id):
                return p
        raise ValueError(f"unknown period '{value}'")

    def truncate(self, ts: dt.datetime) -> dt.datetime:
        ts = _as_utc(ts)
        if self.iso == "PT1H":
            return ts.replace(minute=0, second=0, microsecond=0)
        return ts.replace(second=0, microsecond=0)

    def partition_values(self, ts: dt.datetime) -> dict[str, int]:
        """Partition column values for ``ts`` (naive timestamps are taken as UTC)."""
        ts = _as_utc(ts)
        return {col: getattr(ts, col) for col in self.columns}


def _as_utc(ts: dt.datetime) -> dt.datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=dt.UTC)
    return ts.astimezone(dt.UTC)


Period.PT1H = Period(id="hourly", iso="PT1H", columns=("year", "month", "day", "hour"), milliseconds=60 * 60 * 1000)
Period.PT1M = Period(
    id="minutely", iso="PT1M", columns=("year", "month", "day", "hour", "minute"), milliseconds=60 * 1000
)
