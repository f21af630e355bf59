"""
Strategy capabilities.

An account is given two collaborators at construction time:

- a `TradingStrategy`, which reads the price history and reports the
  current market trend;
- a `RiskStrategy`, which decides where the stop-loss goes and, from
  that, how large a new position should be.

Concrete strategies live beside this module (`macd`, `donchian`).
"""

from __future__ import annotations

from enum import Enum

from ..data.models import CurrencyAmount, Points, PriceHistory
from ..execution.models import Direction, Entry


class Trend(Enum):
    NEUTRAL = "Neutral"
    BULLISH = "Bullish"
    BEARISH = "Bearish"

    def direction(self) -> Direction:
        """Trade direction that follows this trend."""
        if self is Trend.BULLISH:
            return Direction.BUY
        if self is Trend.BEARISH:
            return Direction.SELL
        raise ValueError("Cannot convert Neutral to a trade direction.")

    def __str__(self) -> str:
        return self.value


class RiskStrategyError(Exception):
    """Base class for failures to place a stop or size an entry."""


class NotEnoughHistory(RiskStrategyError):
    """Not enough history to place a stop-loss safely."""

    def __init__(self, needed: int = 0, available: int = 0) -> None:
        super().__init__(f"Not enough history to set stop-loss ({available} of {needed} frames)")
        self.needed = needed
        self.available = available


class StopAtEntryPrice(RiskStrategyError):
    """The stop-loss sits on the entry price, so no size can be computed."""


class TradingStrategy:
    """Estimates the trend of the market from its price history."""

    def trend(self, history: PriceHistory) -> Trend:
        """Return the current trend.

        Implementations must not modify `history` and must answer
        `Trend.NEUTRAL` rather than fail when it is too short.
        """
        raise NotImplementedError


class RiskStrategy:
    """Decides stop-loss placement and trade size."""

    def stop(self, direction: Direction, history: PriceHistory) -> Points:
        """Stop-loss level for a new position in `direction`.

        Raises
        ------
        NotEnoughHistory
            If the history is shorter than the strategy needs.
        """
        raise NotImplementedError

    def entry(self, direction: Direction, history: PriceHistory, risk: CurrencyAmount) -> Entry:
        """Build an entry at the latest close that risks `risk` at its stop.

        The position identifier is left empty for the caller to assign.
        """
        stop = self.stop(direction, history)

        # Assumes immediate execution at the latest close
        latest = history.latest
        price = latest.close.ask if direction == Direction.BUY else latest.close.bid

        stop_distance = abs(price - stop)
        if stop_distance == 0:
            raise StopAtEntryPrice(f"Stop {stop} equals entry price {price}")
        size = risk / stop_distance

        return Entry(
            position_id="",
            direction=direction,
            price=price,
            stop=stop,
            size=size,
            time=latest.close_time,
        )
