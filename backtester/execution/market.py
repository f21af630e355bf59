"""
Market trading rules.

A `Market` holds the static dealing rules of one instrument and checks
proposed entries against them before they are placed.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..data.models import CurrencyAmount, Points
from .models import Entry


class MarketError(Exception):
    """Base class for entries the market would refuse."""


class DealTooSmall(MarketError):
    """Size is below the minimum deal size."""


class InsufficientBalance(MarketError):
    """The margin requirement exceeds the account balance."""


class StopTooClose(MarketError):
    """The stop-loss is closer to the entry than the market allows."""


@dataclass(frozen=True)
class Market:
    """Dealing rules for one instrument.

    Attributes
    ----------
    code : str
        Instrument code, treated as an opaque tag.
    margin_factor : Decimal
        Fraction of the notional exposure held as margin.
    min_deal_size : CurrencyAmount
        Smallest size per point the market accepts.
    min_stop_distance : Points
        Closest a stop-loss may sit to the entry price.
    """

    code: str
    margin_factor: Decimal
    min_deal_size: CurrencyAmount
    min_stop_distance: Points

    def validate_entry(self, entry: Entry, balance: CurrencyAmount) -> None:
        """Raise the first `MarketError` that `entry` breaks, if any."""
        if entry.size < self.min_deal_size:
            raise DealTooSmall(f"Size {entry.size} is below the minimum {self.min_deal_size}")

        margin = self.margin_requirement(entry)
        if margin > balance:
            raise InsufficientBalance(f"Margin {margin} exceeds balance {balance}")

        distance = abs(entry.price - entry.stop)
        if distance < self.min_stop_distance:
            raise StopTooClose(f"Stop distance {distance} is below the minimum {self.min_stop_distance}")

    def margin_requirement(self, entry: Entry) -> CurrencyAmount:
        return entry.size * entry.price * self.margin_factor
