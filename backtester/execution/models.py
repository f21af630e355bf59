"""
Order, entry, exit and trade models.

These dataclasses represent the objects passed between the account,
its strategies and the backtest orchestrator.  Orders are immutable
instructions; a `Trade` is a computed ledger row that is rebuilt from
its entry (and exit, once closed) whenever it is requested.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from ..data.models import CurrencyAmount, Points, Price


class Direction(Enum):
    BUY = "Buy"
    SELL = "Sell"

    def __str__(self) -> str:
        return self.value


class TradeStatus(Enum):
    OPEN = "Open"
    CLOSED = "Closed"

    def __str__(self) -> str:
        return self.value


class TradeOutcome(Enum):
    PROFIT = "Profit"
    LOSS = "Loss"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Exit:
    """Closes the position `position_id` at `price`."""
    position_id: str
    price: Points
    time: datetime


@dataclass(frozen=True)
class Entry:
    """Opens a position.

    `size` is the amount won or lost per point of movement.  The
    position identifier is assigned by whoever places the order, never
    by the account.
    """

    position_id: str
    direction: Direction
    price: Points
    stop: Points
    size: CurrencyAmount
    time: datetime

    def exit(self, price: Price, time: datetime) -> Exit:
        """Exit this position at the side of `price` we would trade on."""
        level = price.bid if self.direction == Direction.BUY else price.ask
        return Exit(position_id=self.position_id, price=level, time=time)


@dataclass(frozen=True)
class Open:
    entry: Entry

    @property
    def position_id(self) -> str:
        return self.entry.position_id

    def with_position_id(self, position_id: str) -> "Open":
        return Open(replace(self.entry, position_id=position_id))


@dataclass(frozen=True)
class Close:
    """Strategy-driven exit."""
    exit: Exit

    @property
    def position_id(self) -> str:
        return self.exit.position_id

    def with_position_id(self, position_id: str) -> "Close":
        return Close(replace(self.exit, position_id=position_id))


@dataclass(frozen=True)
class Stop:
    """Stop-loss exit; handled exactly like `Close` by the account."""
    exit: Exit

    @property
    def position_id(self) -> str:
        return self.exit.position_id

    def with_position_id(self, position_id: str) -> "Stop":
        return Stop(replace(self.exit, position_id=position_id))


Order = Union[Open, Close, Stop]


@dataclass(frozen=True)
class Trade:
    """A row of the trade log.

    Attributes
    ----------
    price_diff : Points
        Points moved in the trade's favour (negative when against it).
    profit : CurrencyAmount
        Realised profit for closed trades, unrealised for open ones.
    risk : CurrencyAmount
        Amount lost if the position is stopped out at its stop level.
    risk_reward : Decimal
        ``profit / risk``; zero when the trade carries no risk.
    """

    id: str
    status: TradeStatus
    direction: Direction
    entry_time: datetime
    entry_price: Points
    exit_time: Optional[datetime]
    exit_price: Optional[Points]
    stop: Points
    size: CurrencyAmount
    risk: CurrencyAmount
    outcome: TradeOutcome
    price_diff: Points
    profit: CurrencyAmount
    risk_reward: Decimal

    @classmethod
    def open(cls, entry: Entry, latest_price: Price) -> "Trade":
        """Value a live position as if it were closed at `latest_price`."""
        mark = entry.exit(latest_price, entry.time).price
        return cls._build(entry, TradeStatus.OPEN, mark, None, None)

    @classmethod
    def closed(cls, entry: Entry, exit: Exit) -> "Trade":
        return cls._build(entry, TradeStatus.CLOSED, exit.price, exit.time, exit.price)

    @classmethod
    def _build(
        cls,
        entry: Entry,
        status: TradeStatus,
        mark: Points,
        exit_time: Optional[datetime],
        exit_price: Optional[Points],
    ) -> "Trade":
        if entry.direction == Direction.BUY:
            price_diff = mark - entry.price
        else:
            price_diff = entry.price - mark
        profit = entry.size * price_diff
        risk = entry.size * abs(entry.price - entry.stop)
        risk_reward = profit / risk if risk.amount != 0 else Decimal(0)
        outcome = TradeOutcome.PROFIT if profit.amount > 0 else TradeOutcome.LOSS
        return cls(
            id=entry.position_id,
            status=status,
            direction=entry.direction,
            entry_time=entry.time,
            entry_price=entry.price,
            exit_time=exit_time,
            exit_price=exit_price,
            stop=entry.stop,
            size=entry.size,
            risk=risk,
            outcome=outcome,
            price_diff=price_diff,
            profit=profit,
            risk_reward=risk_reward,
        )
