"""
Streaming numeric helpers shared by the indicators.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Iterator


def ema(values: Iterable[Decimal], length: int) -> Iterator[Decimal]:
    """Exponential moving average of `values` over a window of `length`.

    The first output is the first input, unsmoothed.  Each following
    output moves the previous one towards the new sample by
    ``alpha = 2 / (length + 1)``.  The generator never consumes more
    than it yields, so callers holding a materialised list can derive
    several independent averages from the same source.
    """
    alpha = Decimal(2) / Decimal(length + 1)
    prev = None
    for value in values:
        if prev is None:
            prev = Decimal(value)
        else:
            # same as alpha * value + (1 - alpha) * prev, exact for flat input
            prev = prev + alpha * (value - prev)
        yield prev
