"""
Sound Sensing - Analysis Session
All mutable state of one analysis session, held behind the engine handle.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from band_extractor import BandRanges, band_ranges
from config import AudioSourcePolicy, Band, BandConfig
from sliding_statistic import SlidingStatistic, StatisticMode
from spectral_flux import FluxComputer


@dataclass
class SessionSummary:
    """Running min/max/sum of the analysed levels for the close report"""
    started_at: float = field(default_factory=time.time)
    frames: int = 0
    energy_min: Optional[np.ndarray] = None
    energy_max: Optional[np.ndarray] = None
    energy_sum: np.ndarray = field(default_factory=lambda: np.zeros(len(Band)))
    energy_frames: int = 0
    flux_min: Optional[float] = None
    flux_max: Optional[float] = None
    flux_sum: float = 0.0
    flux_frames: int = 0
    replay_captures: int = 0
    calibration_clears: int = 0

    def update(self, energy: Optional[np.ndarray], flux: Optional[float]) -> None:
        self.frames += 1
        if energy is not None:
            self.energy_frames += 1
            self.energy_sum += energy
            self.energy_min = energy.copy() if self.energy_min is None else np.minimum(self.energy_min, energy)
            self.energy_max = energy.copy() if self.energy_max is None else np.maximum(self.energy_max, energy)
        if flux is not None:
            self.flux_frames += 1
            self.flux_sum += flux
            if self.flux_min is None or flux < self.flux_min:
                self.flux_min = flux
            if self.flux_max is None or flux > self.flux_max:
                self.flux_max = flux

    def as_dict(self, ended_at: Optional[float] = None) -> dict:
        ended_at = time.time() if ended_at is None else ended_at
        row = {
            "session_started_at": self.started_at,
            "session_ended_at": ended_at,
            "seconds": max(0.0, ended_at - self.started_at),
            "frames": self.frames,
            "replay_captures": self.replay_captures,
            "calibration_clears": self.calibration_clears,
        }
        for band in Band:
            name = band.name.lower()
            i = int(band)
            if self.energy_frames > 0:
                row[f"{name}_energy_min"] = float(self.energy_min[i])
                row[f"{name}_energy_max"] = float(self.energy_max[i])
                row[f"{name}_energy_mean"] = float(self.energy_sum[i] / self.energy_frames)
            else:
                row[f"{name}_energy_min"] = row[f"{name}_energy_max"] = row[f"{name}_energy_mean"] = 0.0
        row["flux_min"] = float(self.flux_min or 0.0)
        row["flux_max"] = float(self.flux_max or 0.0)
        row["flux_mean"] = self.flux_sum / self.flux_frames if self.flux_frames > 0 else 0.0
        return row


@dataclass
class AnalysisSession:
    """
    Engine state for one session. Nothing here is allocated until the first
    successful analysis pass calls ``start``.
    """
    energy_history: int = 7
    flux_history: int = 12

    started: bool = False
    sample_rate: int = 0
    fft_size: int = 0
    ranges: Optional[BandRanges] = None

    # Policy captured by the last analysis pass
    policy: AudioSourcePolicy = AudioSourcePolicy.PROJECT
    microphone_active: bool = False
    project_frame: Optional[np.ndarray] = None
    microphone_frame: Optional[np.ndarray] = None
    effective_frame: Optional[np.ndarray] = None

    energy: np.ndarray = field(default_factory=lambda: np.zeros(len(Band)))
    energy_available: bool = False
    flux: Optional[float] = None

    energy_mean: Optional[SlidingStatistic] = None
    energy_variance: Optional[SlidingStatistic] = None
    flux_mean: Optional[SlidingStatistic] = None
    flux_variance: Optional[SlidingStatistic] = None
    flux_computer: FluxComputer = field(default_factory=FluxComputer)

    live_buffer: Any = None
    replay_buffer: Any = None

    last_analysis_at: Optional[float] = None
    passes: int = 0
    summary: SessionSummary = field(default_factory=SessionSummary)

    def start(self, sample_rate: int, fft_size: int, bands: BandConfig) -> None:
        """Uninitialized -> Started: allocate statistics and the band table."""
        self.sample_rate = int(sample_rate)
        self.fft_size = int(fft_size)
        self.ranges = band_ranges(self.sample_rate, self.fft_size, bands.cutoffs(), bands.clip_high_band)
        width = len(Band)
        self.energy_mean = SlidingStatistic(self.energy_history, width, StatisticMode.MEAN)
        self.energy_variance = SlidingStatistic(self.energy_history, width, StatisticMode.VARIANCE)
        self.flux_mean = SlidingStatistic(self.flux_history, 1, StatisticMode.MEAN)
        self.flux_variance = SlidingStatistic(self.flux_history, 1, StatisticMode.VARIANCE)
        self.energy = np.zeros(width)
        self.summary = SessionSummary()
        self.started = True

    def energy_threshold(self, band: Band) -> float:
        return float(self.energy_mean.result[int(band)])

    def energy_spread(self, band: Band) -> float:
        return float(self.energy_variance.result[int(band)])

    def flux_threshold(self) -> float:
        return float(self.flux_mean.result[0])

    def flux_spread(self) -> float:
        return float(self.flux_variance.result[0])
