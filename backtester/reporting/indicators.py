"""
Indicator export.

Tabulates what the strategies saw at every frame: the MACD averages,
line, signal, histogram and trend, and the Donchian channel bounds.
Useful for charting a run or tuning strategy parameters.
"""

from __future__ import annotations

from typing import List
import pandas as pd

from ..data.models import Frame
from ..strategy.donchian import Donchian
from ..strategy.macd import MACD


def compute_indicators(frames: List[Frame], macd: MACD, donchian: Donchian) -> pd.DataFrame:
    """One row per frame (oldest first) with indicator values.

    Unlike `MACD.trend`, the MACD here runs over the whole series, so
    early rows are computed on averages that have not yet converged.
    """
    macd_values = macd.macd(frames)
    channel = donchian.channel(frames)

    rows = [
        {
            'close_time': frame.close_time,
            'close': frame.close.mid_price,
            'short_ema': value.short_ema,
            'long_ema': value.long_ema,
            'macd': value.macd,
            'macd_signal': value.macd_signal,
            'macd_histogram': value.macd_histogram,
            'trend': str(value.trend),
            'channel_low': low,
            'channel_high': high,
        }
        for frame, value, (low, high) in zip(frames, macd_values, channel)
    ]
    columns = [
        'close_time', 'close', 'short_ema', 'long_ema', 'macd', 'macd_signal',
        'macd_histogram', 'trend', 'channel_low', 'channel_high',
    ]
    return pd.DataFrame(rows, columns=columns)
