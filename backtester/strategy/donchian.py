"""
Donchian channel stop-loss strategy.

The channel is the lowest low and highest high over the last
`channel_length` frames.  A long position is stopped below the channel
floor and a short position above its ceiling.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from itertools import islice
from typing import Iterable, List, Tuple

from ..data.models import Frame, Points, PriceHistory
from ..execution.models import Direction
from .base import NotEnoughHistory, RiskStrategy


@dataclass
class Donchian(RiskStrategy):
    channel_length: int

    def __post_init__(self) -> None:
        if self.channel_length < 1:
            raise ValueError("channel_length must be at least 1")

    def channel(self, frames: Iterable[Frame]) -> List[Tuple[Points, Points]]:
        """Rolling `(floor, ceiling)` of the channel at each frame.

        The window trails the supplied order, so pass frames oldest
        first to get the channel as it stood at each close.
        """
        window: deque = deque(maxlen=self.channel_length)
        limits = []
        for frame in frames:
            window.append(self._bounds(frame))
            limits.append((min(lo for lo, _ in window), max(hi for _, hi in window)))
        return limits

    @staticmethod
    def _bounds(frame: Frame) -> Tuple[Points, Points]:
        # The floor is a bid: we sell to exit a long that went against us.
        # The ceiling is an ask: we buy to exit a short that went against us.
        return frame.low.bid, frame.high.ask

    def stop(self, direction: Direction, history: PriceHistory) -> Points:
        if len(history) < self.channel_length:
            raise NotEnoughHistory(self.channel_length, len(history))

        bounds = [self._bounds(frame) for frame in islice(history, self.channel_length)]
        if direction == Direction.BUY:
            return min(lo for lo, _ in bounds)
        return max(hi for _, hi in bounds)
