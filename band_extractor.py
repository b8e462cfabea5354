"""
Sound Sensing - Band Extractor
Three-band energy extraction and single-frequency bin lookup on byte-scale
magnitude frames.
"""

import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from config import Band


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def hz_to_bin(hz: float, sample_rate: float, fft_size: int) -> int:
    """Bin index whose centre frequency is nearest to ``hz``."""
    return round_half_up(hz * fft_size / sample_rate)


@dataclass(frozen=True)
class BandRanges:
    """Half-open bin ranges per band, computed once per session."""
    ranges: Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]
    bin_count: int

    def __getitem__(self, band: Band) -> Tuple[int, int]:
        return self.ranges[int(band)]

    def as_dict(self) -> Dict[str, Tuple[int, int]]:
        return {band.name.lower(): self.ranges[int(band)] for band in Band}


def band_ranges(
    sample_rate: float,
    fft_size: int,
    cutoffs_hz: Mapping[Band, float],
    clip_high_band: bool = False,
) -> BandRanges:
    """
    Derive contiguous band bin ranges from the Hz cutoffs.

    Band b spans from the previous band's cutoff bin (0 for LOW) to its own
    cutoff bin. Every edge is clamped to ``[0, bin_count]`` and kept
    monotonic, so ranges never overlap. Unless ``clip_high_band`` is set the
    HIGH band runs to the last bin and the three ranges cover the frame.
    """
    bin_count = fft_size // 2
    edges = [0]
    for band in Band:
        edge = hz_to_bin(cutoffs_hz[band], sample_rate, fft_size)
        edge = min(max(edge, edges[-1]), bin_count)
        edges.append(edge)
    if not clip_high_band:
        edges[-1] = bin_count
    ranges = tuple((edges[i], edges[i + 1]) for i in range(len(Band)))
    return BandRanges(ranges=ranges, bin_count=bin_count)


def band_energies(frame: np.ndarray, ranges: BandRanges) -> np.ndarray:
    """Mean magnitude per band; an empty band range reads as 0."""
    energies = np.zeros(len(Band), dtype=np.float64)
    for band in Band:
        start, end = ranges[band]
        segment = frame[start:end]
        if len(segment) > 0:
            energies[int(band)] = float(np.mean(segment))
    return energies


def bin_energy(
    frame: Optional[np.ndarray],
    hz: float,
    sample_rate: float,
    fft_size: int,
    magnitude_max: float = 255.0,
) -> Optional[float]:
    """Magnitude at ``hz`` as a 0-100 percentage of full scale, or None without a frame."""
    if frame is None or len(frame) == 0:
        return None
    index = hz_to_bin(float(hz), sample_rate, fft_size)
    index = min(max(index, 1), len(frame))
    return float(frame[index - 1]) / magnitude_max * 100.0


def loudness(frame: Optional[np.ndarray]) -> Optional[float]:
    """Sum of all bin magnitudes, or None without a frame."""
    if frame is None:
        return None
    return float(np.sum(frame))
