"""
Sound Sensing - Spectral Flux
L1 frame-to-frame magnitude change, tracked separately per audio source.
"""

from enum import IntEnum
from typing import Dict, Optional

import numpy as np


class FrameSource(IntEnum):
    """Where a magnitude frame was captured"""
    PROJECT = 1
    MICROPHONE = 2


def spectral_flux(previous: Optional[np.ndarray], current: np.ndarray) -> float:
    """Sum of |current - previous| over all bins; no previous frame means an all-zero baseline."""
    current = np.asarray(current, dtype=np.float64)
    if previous is None:
        return float(np.sum(np.abs(current)))
    return float(np.sum(np.abs(current - previous)))


class FluxComputer:
    """Remembers the previous frame of each source and reports its flux."""

    def __init__(self):
        self._previous: Dict[FrameSource, np.ndarray] = {}
        self._flux: Dict[FrameSource, float] = {}

    def update(self, source: FrameSource, frame: np.ndarray) -> float:
        frame = np.array(frame, dtype=np.float64)
        previous = self._previous.get(source)
        if previous is not None and previous.shape != frame.shape:
            # Frame geometry changed under us; restart from a zero baseline
            previous = None
        flux = spectral_flux(previous, frame)
        self._previous[source] = frame
        self._flux[source] = flux
        return flux

    def flux(self, source: FrameSource) -> float:
        """Latest flux of ``source``; 0 before its first frame."""
        return self._flux.get(source, 0.0)

    def mark_inactive(self, source: FrameSource) -> None:
        # An inactive source contributes no change this tick
        self._flux[source] = 0.0

    def forget(self, source: Optional[FrameSource] = None) -> None:
        if source is None:
            self._previous.clear()
            self._flux.clear()
            return
        self._previous.pop(source, None)
        self._flux.pop(source, None)
