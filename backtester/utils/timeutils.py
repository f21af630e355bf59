"""
Timestamp and calendar utilities.

This module centralises all timezone handling and calendar arithmetic.
Price loaders use these helpers to normalise candle close times to UTC,
and `Resolution` uses them to step a timestamp forward by one candle
period when that period is measured in calendar months.
"""

from __future__ import annotations

from datetime import datetime
import pandas as pd


def to_utc(ts, tz_name: str = "UTC") -> datetime:
    """Convert a timestamp-like value to a timezone-aware UTC `datetime`.

    If the timestamp is naive, it is assumed to be in `tz_name` before
    conversion.  If it already has a timezone, it will be converted.
    """
    if not isinstance(ts, pd.Timestamp):
        ts = pd.Timestamp(ts)
    if ts.tzinfo is None:
        ts = ts.tz_localize(tz_name)
    return ts.tz_convert("UTC").to_pydatetime()


def add_months(ts: datetime, months: int) -> datetime:
    """Return `ts` moved forward by a number of calendar months.

    The year rolls over when the month overflows.  When the target month
    is shorter than the source day (31 January + 1 month), the day is
    clamped to the last day of the target month.
    """
    return (pd.Timestamp(ts) + pd.DateOffset(months=months)).to_pydatetime()
