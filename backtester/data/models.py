"""
Price, money and time models.

These value types are shared by every other module: strategies read
`PriceHistory`, the account keeps its balance as a `CurrencyAmount`
and the loaders produce `Frame` objects.  Prices are fixed-point
`Decimal` values expressed in the instrument's own points.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_EVEN
import re
from typing import Deque, Iterator

from ..utils.timeutils import add_months

# Point value with a fixed decimal position, native to each instrument
Points = Decimal

AMOUNT_PLACES = Decimal("0.000001")


class CurrencyMismatch(ValueError):
    """Raised when two amounts in different currencies are combined."""


def _round_amount(value: Decimal) -> Decimal:
    return value.quantize(AMOUNT_PLACES, rounding=ROUND_HALF_EVEN)


@dataclass(frozen=True)
class CurrencyAmount:
    """A fixed-point amount of money tagged with its currency code.

    Scaling or dividing by a plain `Decimal` rounds the result to six
    decimal places.  Adding, subtracting, comparing or dividing two
    amounts requires their currencies to match.
    """

    amount: Decimal
    currency: str

    def _check(self, other: "CurrencyAmount") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatch(f"Cannot combine {self.currency} with {other.currency}")

    def __add__(self, other: "CurrencyAmount") -> "CurrencyAmount":
        self._check(other)
        return CurrencyAmount(self.amount + other.amount, self.currency)

    def __sub__(self, other: "CurrencyAmount") -> "CurrencyAmount":
        self._check(other)
        return CurrencyAmount(self.amount - other.amount, self.currency)

    def __neg__(self) -> "CurrencyAmount":
        return CurrencyAmount(-self.amount, self.currency)

    def __mul__(self, factor: Decimal) -> "CurrencyAmount":
        return CurrencyAmount(_round_amount(self.amount * factor), self.currency)

    __rmul__ = __mul__

    def __truediv__(self, other):
        if isinstance(other, CurrencyAmount):
            self._check(other)
            return self.amount / other.amount
        return CurrencyAmount(_round_amount(self.amount / other), self.currency)

    def __lt__(self, other: "CurrencyAmount") -> bool:
        self._check(other)
        return self.amount < other.amount

    def __le__(self, other: "CurrencyAmount") -> bool:
        self._check(other)
        return self.amount <= other.amount

    def __gt__(self, other: "CurrencyAmount") -> bool:
        self._check(other)
        return self.amount > other.amount

    def __ge__(self, other: "CurrencyAmount") -> bool:
        self._check(other)
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


@dataclass(frozen=True)
class Price:
    """A two-sided quote.

    Attributes
    ----------
    bid : Points
        Price we sell at (the market bids to buy at this level).
    ask : Points
        Price we buy at (the market asks for this level).
    """

    bid: Points
    ask: Points

    def __post_init__(self) -> None:
        if self.ask < self.bid:
            raise ValueError(f"Ask {self.ask} is below bid {self.bid}")

    @classmethod
    def new_mid(cls, mid: Points, spread: Points) -> "Price":
        """Build a quote centred on `mid` with the given total spread."""
        half = spread / 2
        return cls(bid=mid - half, ask=mid + half)

    @property
    def mid_price(self) -> Points:
        return (self.bid + self.ask) / 2

    @property
    def spread(self) -> Points:
        return self.ask - self.bid

    def __sub__(self, other: "Price") -> Points:
        return self.mid_price - other.mid_price


@dataclass(frozen=True)
class Frame:
    """One OHLC candle; `close_time` is the instant the candle completed."""
    open: Price
    high: Price
    low: Price
    close: Price
    close_time: datetime


_TIMEFRAME_RE = re.compile(r"^(S|M|H|D|W|MN)(\d*)$")


@dataclass(frozen=True)
class Resolution:
    """Candle period.

    `unit` is one of ``second``, ``minute``, ``hour``, ``day``,
    ``week`` or ``month`` and `count` the number of units per candle.
    Adding a resolution to a `datetime` returns the next close time.
    """

    unit: str
    count: int = 1

    UNITS = ("second", "minute", "hour", "day", "week", "month")

    def __post_init__(self) -> None:
        if self.unit not in self.UNITS:
            raise ValueError(f"Unknown resolution unit: {self.unit}")
        if self.count < 1:
            raise ValueError(f"Resolution count must be positive, got {self.count}")

    @classmethod
    def second(cls, count: int = 1) -> "Resolution":
        return cls("second", count)

    @classmethod
    def minute(cls, count: int = 1) -> "Resolution":
        return cls("minute", count)

    @classmethod
    def hour(cls, count: int = 1) -> "Resolution":
        return cls("hour", count)

    @classmethod
    def day(cls) -> "Resolution":
        return cls("day")

    @classmethod
    def week(cls) -> "Resolution":
        return cls("week")

    @classmethod
    def month(cls) -> "Resolution":
        return cls("month")

    @classmethod
    def parse(cls, timeframe: str) -> "Resolution":
        """Parse a timeframe string such as ``M10``, ``H1``, ``D1`` or ``MN1``."""
        match = _TIMEFRAME_RE.match(timeframe.strip().upper())
        if match is None:
            raise ValueError(f"Unsupported timeframe: {timeframe}")
        code, count = match.group(1), int(match.group(2) or 1)
        unit = {
            'S': 'second',
            'M': 'minute',
            'H': 'hour',
            'D': 'day',
            'W': 'week',
            'MN': 'month',
        }[code]
        if unit in ('day', 'week', 'month') and count != 1:
            raise ValueError(f"Only single {unit} candles are supported: {timeframe}")
        return cls(unit, count)

    def __radd__(self, ts: datetime) -> datetime:
        if not isinstance(ts, datetime):
            return NotImplemented
        if self.unit == 'month':
            return add_months(ts, self.count)
        if self.unit == 'week':
            return ts + timedelta(weeks=self.count)
        return ts + timedelta(**{self.unit + 's': self.count})


@dataclass
class PriceHistory:
    """Frames at one resolution, stored newest-first.

    Index 0 is always the most recent close.  New frames are only ever
    added at the front, so windowed computations can read the latest N
    frames by iterating from the start.
    """

    resolution: Resolution
    frames: Deque[Frame] = field(default_factory=deque)

    def push(self, frame: Frame) -> None:
        self.frames.appendleft(frame)

    @property
    def latest(self) -> Frame:
        return self.frames[0]

    def __len__(self) -> int:
        return len(self.frames)

    def __getitem__(self, index: int) -> Frame:
        return self.frames[index]

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)
