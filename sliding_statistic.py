"""
Sound Sensing - Sliding Statistic
Fixed-length circular buffer keeping an O(1)-per-step rolling mean or
variance over the last N samples of a fixed-width vector.
"""

from enum import IntEnum
from typing import Optional, Sequence

import numpy as np


class StatisticMode(IntEnum):
    MEAN = 1
    VARIANCE = 2


class SlidingStatistic:
    """
    Rolling sum of weighted samples over a circular history.

    Each step turns the incoming vector into a weighted sample, adds it to
    ``result`` and subtracts the sample it overwrites, so ``result`` always
    equals the column sum of the buffer without rescanning it:

    - MEAN:     weighted = current / length
    - VARIANCE: weighted = (reference - current)**2 / (length - 1)

    The variance mode is a plug-in estimator: ``reference`` is the mean
    computed by a companion MEAN statistic on the same step.

    Until ``length`` steps have been taken the unwritten slots count as
    zero, so early results are under-weighted. That warm-up is accepted
    rather than corrected for sample count.
    """
    __slots__ = ('length', 'width', 'mode', 'buffer', 'result', 'cursor', '_filled')

    def __init__(self, length: int, width: int, mode: StatisticMode = StatisticMode.MEAN):
        mode = StatisticMode(mode)
        if width < 1:
            raise ValueError(f"width must be >= 1, got {width}")
        min_length = 2 if mode == StatisticMode.VARIANCE else 1
        if length < min_length:
            raise ValueError(f"{mode.name.lower()} statistic needs length >= {min_length}, got {length}")
        self.length = int(length)
        self.width = int(width)
        self.mode = mode
        self.buffer = np.zeros((self.length, self.width), dtype=np.float64)
        self.result = np.zeros(self.width, dtype=np.float64)
        self.cursor: int = 0
        self._filled: int = 0

    def _weigh(self, current: np.ndarray, reference: Optional[np.ndarray]) -> np.ndarray:
        if self.mode == StatisticMode.MEAN:
            return current / self.length
        if reference is None:
            raise ValueError("variance statistic needs a reference mean")
        reference = np.asarray(reference, dtype=np.float64).reshape(self.width)
        return (reference - current) ** 2 / (self.length - 1)

    def step(self, current: Sequence[float], reference: Optional[Sequence[float]] = None) -> np.ndarray:
        """Push one vector and return the updated result (a view, copy before keeping)."""
        current = np.asarray(current, dtype=np.float64).reshape(self.width)
        weighted = self._weigh(current, reference)
        self.result += weighted - self.buffer[self.cursor]
        self.buffer[self.cursor] = weighted
        self.cursor = (self.cursor + 1) % self.length
        if self._filled < self.length:
            self._filled += 1
        return self.result

    def clear(self) -> None:
        """Forget all history. The cursor stays put; the buffer is uniformly zero."""
        self.buffer.fill(0.0)
        self.result.fill(0.0)
        self._filled = 0

    @property
    def filled(self) -> int:
        """Steps taken since the last clear, capped at ``length``."""
        return self._filled

    @property
    def is_full(self) -> bool:
        return self._filled >= self.length
