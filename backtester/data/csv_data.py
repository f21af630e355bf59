"""
CSV price loader.

This module loads historical candles from CSV and turns them into
`Frame` objects.  The expected schema is:

```
Date,Open,High,Low,Close[,Volume]
```

Header names are matched case-insensitively and extra columns are
ignored.  Prices are mid prices; a fixed spread is applied around each
of them to obtain bid and ask.  The `Date` column is the close time of
the candle.  Naive timestamps are interpreted in the configured
timezone and stored in UTC.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
import sys
from typing import IO, List, Union
import pandas as pd

from ..utils.timeutils import to_utc
from .models import Frame, Price

REQUIRED_COLUMNS = ["date", "open", "high", "low", "close"]


def frame_from_row(row, spread: Decimal, timezone: str = "UTC") -> Frame:
    """Build a frame from a row holding ``date`` and mid-price OHLC values."""
    def price(value) -> Price:
        return Price.new_mid(Decimal(str(value)), spread)

    return Frame(
        open=price(row["open"]),
        high=price(row["high"]),
        low=price(row["low"]),
        close=price(row["close"]),
        close_time=to_utc(row["date"], timezone),
    )


class CSVDataLoader:
    """Load mid-price candles from a CSV file for backtesting.

    Parameters
    ----------
    spread : Decimal
        Spread in points applied around every mid price.
    timezone : str
        IANA timezone name used to localise naive timestamps.
    """

    def __init__(self, spread: Decimal, timezone: str = "UTC") -> None:
        self.spread = spread
        self.timezone = timezone

    def load(self, source: Union[str, Path, IO[str]]) -> List[Frame]:
        """Read frames from a path (``-`` for stdin) or an open text stream.

        Returns
        -------
        list of Frame
            Frames ordered oldest first.
        """
        if isinstance(source, (str, Path)) and str(source) == "-":
            source = sys.stdin
        elif isinstance(source, (str, Path)):
            file_path = Path(source)
            if not file_path.exists():
                raise FileNotFoundError(f"Price file not found: {file_path}")
            source = file_path

        # Read prices as text so that Decimal conversion is exact
        df = pd.read_csv(source, dtype=str)
        return self.frames_from_dataframe(df)

    def frames_from_dataframe(self, df: pd.DataFrame) -> List[Frame]:
        df = df.rename(columns=lambda c: str(c).strip().lower())
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(
                f"Unrecognized price CSV. Missing columns: {missing}. "
                f"Found columns: {list(df.columns)}"
            )

        df = df.dropna(subset=REQUIRED_COLUMNS).copy()
        df["date"] = pd.to_datetime(df["date"], errors="raise")
        df = df.sort_values("date", kind="stable")

        return [frame_from_row(row, self.spread, self.timezone) for _, row in df.iterrows()]
