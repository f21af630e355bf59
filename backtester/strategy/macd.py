"""
Moving average convergence/divergence trend strategy.

The MACD line is the difference between a short and a long exponential
moving average of the mid close price.  The strategy turns that line
into a trend with hysteresis: it needs to cross `entry_threshold` to
become bullish or bearish, and has to fall back inside
`exit_threshold` before it goes neutral again.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN
from itertools import islice
from typing import List, Sequence

from ..data.models import Frame, PriceHistory
from ..utils.maths import ema
from .base import TradingStrategy, Trend

EMA_ERROR = Decimal("0.1")


@dataclass(frozen=True)
class MACDValue:
    """Indicator values and resulting trend for one frame."""
    short_ema: Decimal
    long_ema: Decimal
    macd: Decimal
    macd_signal: Decimal
    macd_histogram: Decimal
    trend: Trend


@dataclass
class MACD(TradingStrategy):
    """MACD trend detector.

    Attributes
    ----------
    short, long, signal : int
        EMA lengths of the fast average, the slow average and the
        signal line (an EMA of the MACD line).
    entry_threshold : Decimal
        MACD magnitude above which a trend starts.
    exit_threshold : Decimal
        MACD magnitude at or below which a trend ends.
    """

    short: int
    long: int
    signal: int
    entry_threshold: Decimal
    exit_threshold: Decimal

    def macd(self, frames: Sequence[Frame]) -> List[MACDValue]:
        """Compute the indicator for every frame, oldest first.

        The first value is always neutral; it only seeds the averages.
        """
        points = [frame.close.mid_price for frame in frames]

        short_ema = list(ema(points, self.short))
        long_ema = list(ema(points, self.long))
        macd_line = [s - l for s, l in zip(short_ema, long_ema)]
        macd_signal = list(ema(macd_line, self.signal))

        output: List[MACDValue] = []
        for s, l, m, sig in zip(short_ema, long_ema, macd_line, macd_signal):
            trend = self.next_trend(output[-1].trend, m) if output else Trend.NEUTRAL
            output.append(MACDValue(
                short_ema=s,
                long_ema=l,
                macd=m,
                macd_signal=sig,
                macd_histogram=m - sig,
                trend=trend,
            ))
        return output

    def next_trend(self, trend: Trend, macd: Decimal) -> Trend:
        """Apply the hysteresis rules to move from `trend` given a MACD value."""
        if trend in (Trend.BEARISH, Trend.NEUTRAL) and macd > self.entry_threshold:
            return Trend.BULLISH
        if trend in (Trend.BULLISH, Trend.NEUTRAL) and macd < -self.entry_threshold:
            return Trend.BEARISH
        if trend is Trend.BULLISH and macd <= self.exit_threshold:
            return Trend.NEUTRAL
        if trend is Trend.BEARISH and macd >= -self.exit_threshold:
            return Trend.NEUTRAL
        return trend

    @staticmethod
    def samples_needed(length: int, error: Decimal) -> int:
        """Samples an EMA of `length` needs to get within `error` of convergence."""
        alpha = Decimal(2) / Decimal(length + 1)
        samples = Decimal(error).ln() / -alpha
        return int(samples.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))

    def history_needed(self) -> int:
        length = max(self.short, self.long, self.signal)
        # at least two valid samples past the seed
        return self.samples_needed(length, EMA_ERROR) + 1

    def trend(self, history: PriceHistory) -> Trend:
        take = self.history_needed()
        if take > len(history):
            # not enough history to make a safe judgement
            return Trend.NEUTRAL

        frames = list(islice(history, take + 1))
        frames.reverse()
        return self.macd(frames)[-1].trend
