"""
Sound Sensing - Peak Detector
Self-calibrating z-score peak decisions for band energies and spectral flux.
"""

import math
from typing import Optional

from config import AudioSourcePolicy, Band, PeakConfig


def z_score(current: float, mean: float, variance: float, variance_floor: float = 0.0) -> Optional[float]:
    """
    (current - mean) / sqrt(variance); None when the statistic is degenerate.

    Degenerate means ``current == mean`` or ``variance <= variance_floor``.
    With a non-zero floor, a real but tiny spread (e.g. 1e-10 on a near
    constant signal) is treated the same as zero variance.
    """
    if not variance > variance_floor:
        # Zero (or rolling-sum residue) variance: no spread to compare against
        return None
    numerator = current - mean
    if numerator == 0.0:
        return None
    return numerator / math.sqrt(variance)


class PeakDetector:
    """
    Compares the current value against its own rolling mean/variance.

    A value is a peak when it sits more than ``threshold`` standard
    deviations above the calibrated mean. While the microphone is part of
    the input, band peaks additionally need a minimum absolute energy so the
    microphone noise floor does not fire on its own. Project-only input is
    never gated.
    """

    def __init__(self, config: Optional[PeakConfig] = None):
        self.config = config if config is not None else PeakConfig()

    def is_band_peak(
        self,
        band: Band,
        energy: float,
        mean: float,
        variance: float,
        policy: AudioSourcePolicy,
    ) -> bool:
        if not self.exceeds_band_threshold(energy, mean, variance):
            return False
        if policy.uses_microphone:
            return energy > self.config.energy_gate(band)
        return True

    def exceeds_band_threshold(self, energy: float, mean: float, variance: float) -> bool:
        """Z-score test alone, before any microphone gate."""
        norm = z_score(energy, mean, variance, self.config.variance_floor)
        return norm is not None and norm > self.config.band_threshold

    def is_flux_peak(
        self,
        flux: float,
        mean: float,
        variance: float,
        policy: AudioSourcePolicy,
    ) -> bool:
        norm = z_score(flux, mean, variance, self.config.variance_floor)
        if norm is None or norm <= self.config.flux_threshold:
            return False
        if policy.uses_microphone:
            return flux > self.config.mic_flux_gate
        return True

    def normalized(self, current: float, mean: float, variance: float) -> float:
        """Z-score for display; degenerate statistics read as 0."""
        norm = z_score(current, mean, variance, self.config.variance_floor)
        return 0.0 if norm is None else norm
