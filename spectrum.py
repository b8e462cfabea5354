"""
Sound Sensing - Byte Spectrum
Analyser-style magnitude frames from raw samples: Blackman window, rfft,
exponential smoothing across frames, then decibels mapped onto 0-255.
"""

from typing import Optional

import numpy as np


class ByteSpectrumAnalyser:
    """
    Turns blocks of mono samples into byte-scale magnitude frames of
    ``fft_size // 2`` bins, the frame format the engine expects from its
    host.
    """

    def __init__(
        self,
        fft_size: int = 2048,
        smoothing_time_constant: float = 0.2,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
    ):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if max_decibels <= min_decibels:
            raise ValueError("max_decibels must be greater than min_decibels")
        self.fft_size = int(fft_size)
        self.smoothing_time_constant = float(np.clip(smoothing_time_constant, 0.0, 1.0))
        self.min_decibels = float(min_decibels)
        self.max_decibels = float(max_decibels)
        self._window = np.blackman(self.fft_size)
        self._smoothed = np.zeros(self.bin_count, dtype=np.float64)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def _fit(self, samples: np.ndarray) -> np.ndarray:
        # Latest fft_size samples, zero-padded in front when short
        samples = np.asarray(samples, dtype=np.float64).reshape(-1)
        if len(samples) >= self.fft_size:
            return samples[-self.fft_size:]
        padded = np.zeros(self.fft_size, dtype=np.float64)
        if len(samples):
            padded[-len(samples):] = samples
        return padded

    def smoothed_magnitudes(self, samples: np.ndarray) -> np.ndarray:
        """Per-bin linear magnitude after smoothing with the previous frame."""
        windowed = self._fit(samples) * self._window
        spectrum = np.abs(np.fft.rfft(windowed))[: self.bin_count] / self.fft_size
        tau = self.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1.0 - tau) * spectrum
        return self._smoothed.copy()

    def byte_frequency_data(self, samples: np.ndarray) -> np.ndarray:
        """Smoothed magnitudes in dB, mapped so min_decibels -> 0 and max_decibels -> 255."""
        magnitudes = self.smoothed_magnitudes(samples)
        with np.errstate(divide='ignore'):
            decibels = 20.0 * np.log10(magnitudes)
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (decibels - self.min_decibels))
        # -inf (silent bins) lands on 0 through the clip
        return np.clip(np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=255.0), 0.0, 255.0)

    def reset(self, smoothed: Optional[np.ndarray] = None) -> None:
        self._smoothed = np.zeros(self.bin_count) if smoothed is None else np.array(smoothed, dtype=np.float64)
