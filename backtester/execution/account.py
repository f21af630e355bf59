"""
Trading account state machine.

The account holds the balance, the price history and at most one live
position.  Price updates go in through `update_price`, which proposes
orders without changing any position; only `log_order` moves the
account from one state to the next once an order has been placed.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from ..data.models import CurrencyAmount, Frame, Price, PriceHistory, Resolution
from ..strategy.base import RiskStrategy, RiskStrategyError, TradingStrategy, Trend
from .market import Market
from .models import Close, Direction, Entry, Open, Order, Stop, Trade


logger = logging.getLogger(__name__)


class AccountError(Exception):
    """Base class for orders the account cannot log."""

    def __init__(self, position_id: str, message: str) -> None:
        super().__init__(message)
        self.position_id = position_id


class DuplicateEntry(AccountError):
    def __init__(self, position_id: str) -> None:
        super().__init__(position_id, f"Duplicate position {position_id}")


class NoMatchingEntry(AccountError):
    def __init__(self, position_id: str) -> None:
        super().__init__(position_id, f"No matching entry {position_id}")


class PositionAlreadyClosed(AccountError):
    def __init__(self, position_id: str) -> None:
        super().__init__(position_id, f"Position {position_id} already closed")


class Account:
    """Account holding one instrument's balance, history and positions.

    Parameters
    ----------
    market : Market
        Dealing rules of the traded instrument.
    trading_strategy : TradingStrategy
        Reports the trend after each price update.
    risk_strategy : RiskStrategy
        Places stops and sizes new entries.
    risk_per_trade : Decimal
        Fraction of the balance lost if a new position hits its stop.
    opening_balance : CurrencyAmount
        Starting balance.
    resolution : Resolution
        Candle period of the price history.
    """

    def __init__(
        self,
        market: Market,
        trading_strategy: TradingStrategy,
        risk_strategy: RiskStrategy,
        risk_per_trade: Decimal,
        opening_balance: CurrencyAmount,
        resolution: Resolution,
    ) -> None:
        self.balance = opening_balance
        self.market = market
        self.trading_strategy = trading_strategy
        self.risk_strategy = risk_strategy
        self.risk_per_trade = risk_per_trade
        self.price_history = PriceHistory(resolution)
        self._closed_trades: List[Trade] = []
        self._live_entry: Optional[Entry] = None

    @property
    def live_entry(self) -> Optional[Entry]:
        return self._live_entry

    @property
    def closed_trades(self) -> List[Trade]:
        return list(self._closed_trades)

    def trade_log(self, latest_price: Price) -> List[Trade]:
        """All closed trades plus the live one valued at `latest_price`, by entry time."""
        trades = list(self._closed_trades)
        if self._live_entry is not None:
            trades.append(Trade.open(self._live_entry, latest_price))
        trades.sort(key=lambda t: t.entry_time)
        return trades

    def update_price(self, frame: Frame) -> List[Order]:
        """Add a new frame to the history and return the orders it calls for.

        Exits come first: a stop-loss hit takes precedence over a trend
        exit, and a reversal yields a close followed by a new open.
        """
        self.price_history.push(frame)

        time = frame.close_time
        trend = self.trading_strategy.trend(self.price_history)

        orders: List[Order] = []

        live = self._live_entry
        if live is not None:
            if live.direction == Direction.BUY and frame.low.bid <= live.stop:
                orders.append(Stop(live.exit(frame.close, time)))
            elif live.direction == Direction.SELL and frame.high.ask >= live.stop:
                orders.append(Stop(live.exit(frame.close, time)))
            elif trend is Trend.NEUTRAL:
                orders.append(Close(live.exit(frame.close, time)))
            elif trend is Trend.BULLISH and live.direction == Direction.SELL:
                orders.append(Close(live.exit(frame.close, time)))
            elif trend is Trend.BEARISH and live.direction == Direction.BUY:
                orders.append(Close(live.exit(frame.close, time)))

        if (live is None or orders) and trend is not Trend.NEUTRAL:
            risk = self.balance * self.risk_per_trade
            try:
                entry = self.risk_strategy.entry(trend.direction(), self.price_history, risk)
            except RiskStrategyError as exc:
                logger.debug("No entry at %s: %s", time, exc)
            else:
                orders.append(Open(entry))

        return orders

    def log_order(self, order: Order) -> None:
        """Record an order that has been placed.

        Raises
        ------
        DuplicateEntry
            On an open while a position is already live.
        PositionAlreadyClosed
            On an exit for a position that has been closed before.
        NoMatchingEntry
            On an exit for a position that was never opened.
        """
        live = self._live_entry

        if isinstance(order, Open):
            if live is not None:
                raise DuplicateEntry(live.position_id)
            self._live_entry = order.entry
            return

        exit = order.exit
        if live is None:
            if any(t.id == exit.position_id for t in self._closed_trades):
                raise PositionAlreadyClosed(exit.position_id)
            raise NoMatchingEntry(exit.position_id)

        # Only one position can be live, so any exit closes it.
        if exit.position_id != live.position_id:
            logger.warning(
                "Exit for position %r closes live position %r",
                exit.position_id,
                live.position_id,
            )
        trade = Trade.closed(live, exit)
        self.balance += trade.profit
        self._live_entry = None
        self._closed_trades.append(trade)
