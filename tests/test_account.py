import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from backtester.data.models import CurrencyAmount, Frame, Price, PriceHistory, Resolution
from backtester.execution.account import (
    Account,
    DuplicateEntry,
    NoMatchingEntry,
    PositionAlreadyClosed,
)
from backtester.execution.market import Market
from backtester.execution.models import (
    Close,
    Direction,
    Entry,
    Exit,
    Open,
    Stop,
    Trade,
    TradeOutcome,
    TradeStatus,
)
from backtester.strategy.base import NotEnoughHistory, RiskStrategy, TradingStrategy, Trend

import unittest


DATE = datetime(2021, 1, 1, 10, 1, tzinfo=timezone.utc)


class ConstTrend(TradingStrategy):
    def __init__(self, trend: Trend) -> None:
        self.value = trend

    def trend(self, history):
        return self.value


class NoRisk(RiskStrategy):
    """Stop at the latest mid price."""

    def stop(self, direction, history):
        return history.latest.close.mid_price


def gbp(amount: str) -> CurrencyAmount:
    return CurrencyAmount(Decimal(amount), "GBP")


def mid(value: str) -> Price:
    return Price.new_mid(Decimal(value), Decimal("1"))


def market() -> Market:
    return Market(
        code="UKX",
        margin_factor=Decimal("0.5"),
        min_deal_size=gbp("0.50"),
        min_stop_distance=Decimal("8"),
    )


def account(trend: Trend = Trend.NEUTRAL) -> Account:
    return Account(
        market(),
        ConstTrend(trend),
        NoRisk(),
        Decimal("0.01"),
        gbp("1000"),
        Resolution.minute(10),
    )


def frame(close_time: datetime = DATE) -> Frame:
    return Frame(
        open=mid("100"),
        close=mid("200"),
        low=mid("50"),
        high=mid("150"),
        close_time=close_time,
    )


def history() -> PriceHistory:
    h = PriceHistory(Resolution.minute(10))
    h.push(frame())
    return h


def buy(position_id: str, price: str = "100", stop: str = "90", size: str = "1", time: datetime = DATE) -> Entry:
    return Entry(position_id, Direction.BUY, Decimal(price), Decimal(stop), gbp(size), time)


def sell(position_id: str, price: str, stop: str, size: str = "1", time: datetime = DATE) -> Entry:
    return Entry(position_id, Direction.SELL, Decimal(price), Decimal(stop), gbp(size), time)


class TestAccountTrading(unittest.TestCase):
    def test_logs_a_price_update(self) -> None:
        acc = account()
        expected = frame()
        acc.update_price(expected)
        self.assertEqual(acc.price_history[0], expected)

    def test_triggers_a_stop(self) -> None:
        acc = account()
        acc.log_order(Open(buy("1", size="2")))
        acc.log_order(Close(Exit("1", Decimal("89"), DATE)))
        acc.log_order(Open(buy("2")))

        later = DATE + timedelta(minutes=10)
        actual = acc.update_price(frame(later))

        # filled at the frame's close bid, not at the stop level
        self.assertEqual(actual, [Stop(Exit("2", Decimal("199.5"), later))])

    def test_stop_takes_precedence_over_reversal(self) -> None:
        acc = account(Trend.BEARISH)
        acc.log_order(Open(buy("1", price="100", stop="90")))

        orders = acc.update_price(frame())

        self.assertIsInstance(orders[0], Stop)
        self.assertEqual(len([o for o in orders if isinstance(o, (Stop, Close))]), 1)
        self.assertIsInstance(orders[1], Open)
        self.assertEqual(orders[1].entry.direction, Direction.SELL)

    def test_stop_triggers_when_low_touches_stop(self) -> None:
        acc = account(Trend.BULLISH)
        acc.log_order(Open(buy("1", price="60", stop="49.5")))
        orders = acc.update_price(frame())
        self.assertIsInstance(orders[0], Stop)

    def test_short_stop_uses_the_high_ask(self) -> None:
        acc = account(Trend.BEARISH)
        acc.log_order(Open(sell("1", price="140", stop="150")))

        orders = acc.update_price(frame())

        self.assertEqual(orders[0], Stop(Exit("1", Decimal("200.5"), DATE)))

    def test_opens_a_position_based_on_a_trend(self) -> None:
        risk = gbp("10")

        long_account = account(Trend.BULLISH)
        expected_long = [Open(NoRisk().entry(Direction.BUY, history(), risk))]
        self.assertEqual(long_account.update_price(frame()), expected_long)

        short_account = account(Trend.BEARISH)
        expected_short = [Open(NoRisk().entry(Direction.SELL, history(), risk))]
        self.assertEqual(short_account.update_price(frame()), expected_short)

    def test_update_price_does_not_change_positions(self) -> None:
        acc = account(Trend.BULLISH)
        acc.update_price(frame())
        self.assertIsNone(acc.live_entry)
        self.assertEqual(acc.closed_trades, [])

    def test_holds_a_position_with_the_trend(self) -> None:
        acc = account(Trend.BULLISH)
        acc.log_order(Open(buy("1", price="40", stop="30")))
        self.assertEqual(acc.update_price(frame()), [])

    def test_closes_a_position_based_on_a_trend_ending(self) -> None:
        long_account = account(Trend.NEUTRAL)
        long_account.log_order(Open(buy("1", price="40", stop="30")))
        self.assertEqual(
            long_account.update_price(frame()),
            [Close(Exit("1", Decimal("199.5"), DATE))],
        )

        short_account = account(Trend.NEUTRAL)
        short_account.log_order(Open(sell("1", price="250", stop="260")))
        self.assertEqual(
            short_account.update_price(frame()),
            [Close(Exit("1", Decimal("200.5"), DATE))],
        )

    def test_reverses_a_position_based_on_trend_reversal(self) -> None:
        risk = gbp("10")

        long_account = account(Trend.BEARISH)
        long_account.log_order(Open(buy("1", price="40", stop="30")))
        self.assertEqual(
            long_account.update_price(frame()),
            [
                Close(Exit("1", Decimal("199.5"), DATE)),
                Open(NoRisk().entry(Direction.SELL, history(), risk)),
            ],
        )

        short_account = account(Trend.BULLISH)
        short_account.log_order(Open(sell("1", price="250", stop="260")))
        self.assertEqual(
            short_account.update_price(frame()),
            [
                Close(Exit("1", Decimal("200.5"), DATE)),
                Open(NoRisk().entry(Direction.BUY, history(), risk)),
            ],
        )

    def test_missing_history_suppresses_entry(self) -> None:
        class NeedsHistory(RiskStrategy):
            def stop(self, direction, history):
                raise NotEnoughHistory(5, len(history))

        acc = Account(market(), ConstTrend(Trend.BULLISH), NeedsHistory(),
                      Decimal("0.01"), gbp("1000"), Resolution.minute(10))
        self.assertEqual(acc.update_price(frame()), [])


class TestAccountTradeLog(unittest.TestCase):
    def test_gives_an_empty_trade_log_for_no_orders(self) -> None:
        acc = account()
        self.assertEqual(acc.trade_log(Price(bid=Decimal("110"), ask=Decimal("110"))), [])

    def test_logs_an_open_trade_for_a_single_order(self) -> None:
        acc = account()
        open_ = buy("1")
        acc.log_order(Open(open_))

        expected = [Trade(
            id="1",
            status=TradeStatus.OPEN,
            direction=Direction.BUY,
            entry_time=open_.time,
            entry_price=open_.price,
            exit_time=None,
            exit_price=None,
            stop=Decimal("90"),
            size=open_.size,
            risk=gbp("10"),
            outcome=TradeOutcome.PROFIT,
            price_diff=Decimal("10"),
            profit=gbp("10"),
            risk_reward=Decimal("1.0"),
        )]
        self.assertEqual(acc.trade_log(Price(bid=Decimal("110"), ask=Decimal("112"))), expected)

    def test_logs_a_closed_trade_for_a_pair_of_orders(self) -> None:
        acc = account()
        open_ = buy("1")
        close = Exit("1", Decimal("150"), DATE.replace(hour=14))
        acc.log_order(Open(open_))
        acc.log_order(Close(close))

        expected = [Trade(
            id="1",
            status=TradeStatus.CLOSED,
            direction=Direction.BUY,
            entry_time=open_.time,
            entry_price=Decimal("100"),
            exit_time=close.time,
            exit_price=close.price,
            stop=open_.stop,
            size=open_.size,
            risk=gbp("10"),
            outcome=TradeOutcome.PROFIT,
            price_diff=Decimal("50"),
            profit=gbp("50"),
            risk_reward=Decimal("5.0"),
        )]
        self.assertEqual(acc.trade_log(Price(bid=Decimal("110"), ask=Decimal("112"))), expected)
        self.assertEqual(acc.balance, gbp("1050"))

    def test_logs_three_trades_for_five_orders(self) -> None:
        acc = account()
        latest_price = Price(bid=Decimal("64"), ask=Decimal("66"))

        # Closed long stop, closed short win, open long loss
        open_1 = buy("1", size="2")
        close_1 = Exit("1", Decimal("89"), DATE + timedelta(minutes=10))
        open_2 = sell("2", price="80", stop="85", time=DATE + timedelta(minutes=20))
        close_2 = Exit("2", Decimal("60"), DATE + timedelta(minutes=30))
        open_3 = buy("3", price="70", stop="60", time=DATE + timedelta(minutes=40))

        expected = [
            Trade.closed(open_1, close_1),
            Trade.closed(open_2, close_2),
            Trade.open(open_3, latest_price),
        ]

        acc.log_order(Open(open_1))
        acc.log_order(Stop(close_1))
        acc.log_order(Open(open_2))
        acc.log_order(Stop(close_2))
        acc.log_order(Open(open_3))

        self.assertEqual(acc.trade_log(latest_price), expected)
        # -22 + 20 realised
        self.assertEqual(acc.balance, gbp("998"))

    def test_trade_log_is_sorted_by_entry_time(self) -> None:
        acc = account()
        acc.log_order(Open(buy("1", time=DATE + timedelta(minutes=30))))
        acc.log_order(Close(Exit("1", Decimal("95"), DATE + timedelta(minutes=40))))
        acc.log_order(Open(buy("2", time=DATE)))

        log = acc.trade_log(Price(bid=Decimal("100"), ask=Decimal("100")))
        self.assertEqual([t.id for t in log], ["2", "1"])


class TestAccountOrderValidation(unittest.TestCase):
    def test_does_not_allow_to_log_a_close_order_without_matching_open(self) -> None:
        acc = account()
        acc.log_order(Open(buy("1", size="2")))
        acc.log_order(Stop(Exit("1", Decimal("89"), DATE + timedelta(minutes=10))))

        close = Exit("3", Decimal("89"), DATE + timedelta(minutes=10))
        with self.assertRaises(NoMatchingEntry) as ctx:
            acc.log_order(Close(close))
        self.assertEqual(ctx.exception.position_id, "3")
        with self.assertRaises(NoMatchingEntry):
            acc.log_order(Stop(close))

    def test_rejects_an_order_with_duplicate_position_id(self) -> None:
        acc = account()
        acc.log_order(Open(buy("1", size="2")))
        with self.assertRaises(DuplicateEntry) as ctx:
            acc.log_order(Open(buy("1", size="2")))
        self.assertEqual(ctx.exception.position_id, "1")

    def test_rejects_a_second_open_while_one_is_live(self) -> None:
        acc = account()
        acc.log_order(Open(buy("1")))
        with self.assertRaises(DuplicateEntry):
            acc.log_order(Open(buy("2")))
        self.assertEqual(acc.live_entry.position_id, "1")

    def test_rejects_orders_for_closed_positions(self) -> None:
        acc = account()
        close_1 = Exit("1", Decimal("89"), DATE + timedelta(minutes=10))
        close_2 = Exit("2", Decimal("89"), DATE + timedelta(minutes=10))
        acc.log_order(Open(buy("1", size="2")))
        acc.log_order(Close(close_1))
        acc.log_order(Open(buy("2", size="2")))
        acc.log_order(Stop(close_2))

        for order in (Close(close_1), Stop(close_1)):
            with self.assertRaises(PositionAlreadyClosed) as ctx:
                acc.log_order(order)
            self.assertEqual(ctx.exception.position_id, "1")
        for order in (Close(close_2), Stop(close_2)):
            with self.assertRaises(PositionAlreadyClosed) as ctx:
                acc.log_order(order)
            self.assertEqual(ctx.exception.position_id, "2")

    def test_exit_closes_the_live_position_whatever_its_id(self) -> None:
        acc = account()
        acc.log_order(Open(buy("1")))
        with self.assertLogs("backtester.execution.account", level="WARNING"):
            acc.log_order(Close(Exit("9", Decimal("120"), DATE)))
        self.assertIsNone(acc.live_entry)
        self.assertEqual([t.id for t in acc.closed_trades], ["1"])


if __name__ == '__main__':
    unittest.main()
