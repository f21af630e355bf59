"""
Backtest execution engine.

`Backtest` replays an ordered series of frames through an `Account`.
For every order the account proposes it assigns the position
identifier, checks new entries against the market rules and logs the
order back into the account, keeping a trace of every attempt.

`BacktestEngine` wires a `Config` into a market, strategies and an
account, loads the prices and runs the backtest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from ..config.schema import Config
from ..data.csv_data import CSVDataLoader
from ..data.models import CurrencyAmount, Frame, Price, Resolution
from ..strategy.donchian import Donchian
from ..strategy.macd import MACD
from .account import Account, AccountError
from .market import Market, MarketError
from .models import Open, Order, Trade


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceEvent:
    """One attempted order.

    `error` is ``None`` when the order was placed and logged, otherwise
    the reason it was dropped.
    """
    order: Order
    error: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.error is None


@dataclass
class EquityPoint:
    """Represents the account balance at a given timestamp."""
    timestamp: datetime
    equity: CurrencyAmount


class Backtest:
    """Replay frames through an account, assigning position identifiers.

    An open takes the current identifier and the exit that closes it
    takes the same one before the counter advances, so an entry and
    its exit always share an identifier.
    """

    def __init__(self, account: Account) -> None:
        self.account = account
        self.position_id = 0
        self.trace: List[TraceEvent] = []

    def run(self, frames: Iterable[Frame]) -> None:
        """Feed `frames`, oldest first, into the account."""
        for frame in frames:
            for order in self.account.update_price(frame):
                self.trace.append(self._place_order(order))

    def _place_order(self, order: Order) -> TraceEvent:
        if isinstance(order, Open):
            try:
                self.account.market.validate_entry(order.entry, self.account.balance)
            except MarketError as exc:
                logger.info("Market rejected entry at %s: %s", order.entry.time, exc)
                return TraceEvent(order, f"Market rejected entry: {exc}")

        stamped = order.with_position_id(str(self.position_id))
        try:
            self.account.log_order(stamped)
        except AccountError as exc:
            logger.warning("Account rejected %s: %s", type(order).__name__, exc)
            return TraceEvent(stamped, str(exc))

        if not isinstance(order, Open):
            self.position_id += 1
        return TraceEvent(stamped)


@dataclass
class BacktestResult:
    """Outcome of a backtest run."""
    trades: List[Trade]
    trace: List[TraceEvent]
    equity_curve: List[EquityPoint]
    opening_balance: CurrencyAmount
    closing_balance: CurrencyAmount
    latest_price: Optional[Price] = None
    frames: List[Frame] = field(default_factory=list)


def equity_curve(trades: List[Trade], opening_balance: CurrencyAmount,
                 start: Optional[datetime] = None) -> List[EquityPoint]:
    """Balance after each closed trade, in exit order."""
    curve: List[EquityPoint] = []
    if start is not None:
        curve.append(EquityPoint(timestamp=start, equity=opening_balance))
    balance = opening_balance
    closed = [t for t in trades if t.exit_time is not None]
    for trade in sorted(closed, key=lambda t: t.exit_time):
        balance += trade.profit
        curve.append(EquityPoint(timestamp=trade.exit_time, equity=balance))
    return curve


class BacktestEngine:
    """Run a backtest configured by a `Config`."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.data_loader = CSVDataLoader(config.data.spread, config.data.timezone)
        self.market = Market(
            code=config.market.code,
            margin_factor=config.market.margin_factor,
            min_deal_size=CurrencyAmount(config.market.min_deal_size, config.market.currency),
            min_stop_distance=config.market.min_stop_distance,
        )
        self.trading_strategy = MACD(
            short=config.macd.short,
            long=config.macd.long,
            signal=config.macd.signal,
            entry_threshold=config.macd.entry_threshold,
            exit_threshold=config.macd.exit_threshold,
        )
        self.risk_strategy = Donchian(channel_length=config.donchian.channel_length)
        self.opening_balance = CurrencyAmount(config.account.opening_balance, config.market.currency)
        self.resolution = Resolution.parse(config.timeframe)

    def new_account(self) -> Account:
        return Account(
            market=self.market,
            trading_strategy=self.trading_strategy,
            risk_strategy=self.risk_strategy,
            risk_per_trade=self.config.account.risk_per_trade,
            opening_balance=self.opening_balance,
            resolution=self.resolution,
        )

    def run(self, frames: Optional[List[Frame]] = None) -> BacktestResult:
        """Execute the backtest.

        Parameters
        ----------
        frames : list of Frame, optional
            Frames ordered oldest first.  Loaded from the configured CSV
            file when omitted.
        """
        if frames is None:
            frames = self.data_loader.load(self.config.data.csv_path)
        logger.info("Running %s backtest on %d frames", self.market.code, len(frames))

        backtest = Backtest(self.new_account())
        backtest.run(frames)

        account = backtest.account
        latest_price = frames[-1].close if frames else None
        trades = account.trade_log(latest_price) if latest_price is not None else account.closed_trades
        start = frames[0].close_time if frames else None

        rejected = sum(1 for event in backtest.trace if not event.accepted)
        logger.info(
            "Backtest finished: %d trades, %d orders, %d rejected, balance %s",
            len(trades),
            len(backtest.trace),
            rejected,
            account.balance,
        )
        return BacktestResult(
            trades=trades,
            trace=backtest.trace,
            equity_curve=equity_curve(trades, self.opening_balance, start),
            opening_balance=self.opening_balance,
            closing_balance=account.balance,
            latest_price=latest_price,
            frames=list(frames),
        )
