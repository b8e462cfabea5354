# Sound Sensing Configuration
# All default values and constants

from dataclasses import dataclass, field, is_dataclass
from typing import Dict
from enum import IntEnum

from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1

class Band(IntEnum):
    """Three-band split; the value doubles as the energy vector channel"""
    LOW = 0                # bass, below 250 Hz
    MID = 1                # 250 Hz - 2 kHz
    HIGH = 2               # treble, above 2 kHz

    @classmethod
    def parse(cls, value) -> 'Band':
        """Accept a Band, its int value, or a host menu name ('low'/'mid'/'high')."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls[value.strip().upper()]
        return cls(int(value))

class AudioSourcePolicy(IntEnum):
    """Which magnitude frames the engine listens to"""
    MICROPHONE = 1         # Microphone only, unavailable while the mic is inactive
    PROJECT = 2            # Project audio only, microphone never engaged
    ALL = 3                # Per-bin max of both, project-only while the mic is inactive

    @classmethod
    def parse(cls, value) -> 'AudioSourcePolicy':
        """Accept a policy, its int value, or a host menu name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls[value.strip().upper()]
        return cls(int(value))

    @property
    def uses_microphone(self) -> bool:
        return self in (AudioSourcePolicy.MICROPHONE, AudioSourcePolicy.ALL)

@dataclass
class AnalysisConfig:
    """Frame geometry used when the host does not report its own"""
    sample_rate: int = 48000
    fft_size: int = 2048              # bin_count = fft_size // 2
    magnitude_max: float = 255.0      # Full-scale byte magnitude (bin energy percent base)

@dataclass
class BandConfig:
    """Three-band cutoffs (Hz)"""
    low_cutoff_hz: float = 250.0
    mid_cutoff_hz: float = 2000.0
    high_cutoff_hz: float = 6000.0
    # False: high band runs to the last bin (bands cover the whole frame)
    # True:  high band stops at high_cutoff_hz
    clip_high_band: bool = False

    def cutoffs(self) -> Dict[Band, float]:
        return {
            Band.LOW: self.low_cutoff_hz,
            Band.MID: self.mid_cutoff_hz,
            Band.HIGH: self.high_cutoff_hz,
        }

@dataclass
class CalibrationConfig:
    """Sliding statistic history depths (analysis passes)"""
    energy_history: int = 7           # ~230 ms at a 30 Hz host tick
    flux_history: int = 12            # ~400 ms at a 30 Hz host tick

@dataclass
class PeakConfig:
    """Z-score peak thresholds and microphone noise-floor gates"""
    band_threshold: float = 1.0       # Band peak when z-score exceeds this
    flux_threshold: float = 0.5       # Flux peak when z-score exceeds this
    # Minimum band energy (0-255 scale) while the microphone is listened to
    mic_energy_gate: Dict[str, float] = field(default_factory=lambda: {
        'low': 100.0,
        'mid': 50.0,
        'high': 5.0,
    })
    mic_flux_gate: float = 0.0        # Flux gate while the microphone is listened to (0 = ungated)
    variance_floor: float = 1e-9      # Variance at or below this counts as zero (rolling-sum residue)

    def energy_gate(self, band: Band) -> float:
        return float(self.mic_energy_gate.get(band.name.lower(), 0.0))

@dataclass
class CaptureConfig:
    """Reference sounddevice capture settings"""
    device_index: int | None = None   # None means use system default input
    project_device_index: int | None = None  # Optional second input used as "project" audio
    channels: int = 1
    smoothing_time_constant: float = 0.2  # Analyser-style spectrum smoothing (0.0-1.0)
    min_decibels: float = -100.0      # Maps to byte 0
    max_decibels: float = -30.0       # Maps to byte 255
    tick_ms: float = 33.0             # Host poll interval (~30 Hz)

@dataclass
class Config:
    """Master configuration"""
    version: int = 1                  # Schema version for persisted configs
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    bands: BandConfig = field(default_factory=BandConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    peaks: PeakConfig = field(default_factory=PeakConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)

    # Global
    audio_source: AudioSourcePolicy = AudioSourcePolicy.PROJECT
    log_level: str = "INFO"           # Logging level (DEBUG/INFO/WARNING/ERROR)
    report_generation_enabled: bool = True    # Write per-session reports on close


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored; IntEnum fields are coerced when possible."""
    if not isinstance(data, dict):
        return

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current) and isinstance(value, dict):
            apply_dict_to_dataclass(current, value)
            continue

        if isinstance(current, IntEnum):
            try:
                setattr(target, key, current.__class__.parse(value))
                continue
            except (KeyError, ValueError, TypeError):
                log_event("WARNING", "Config", f"Could not convert {key} to {current.__class__.__name__}, keeping default")
                continue

        setattr(target, key, value)


def _clamped(value, default: float, low: float, high: float | None = None) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        value = default
    value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def migrate_config(config: Config, loaded_version) -> None:
    """Upgrade older config structures to the current schema.
    Adds defaults for newly introduced fields and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    if version < 1:
        # Pre-versioned files stored the microphone gates as a partial dict
        gates = config.peaks.mic_energy_gate if isinstance(config.peaks.mic_energy_gate, dict) else {}
        defaults = PeakConfig().mic_energy_gate
        config.peaks.mic_energy_gate = {
            name: gates.get(name) if gates.get(name) is not None else default
            for name, default in defaults.items()
        }
        if getattr(config, 'report_generation_enabled', True) is None:
            config.report_generation_enabled = True

    if getattr(config.peaks, 'mic_flux_gate', 0.0) is None:
        config.peaks.mic_flux_gate = 0.0

    # Statistic depths: variance needs at least two samples
    config.calibration.energy_history = int(_clamped(config.calibration.energy_history, 7, 2, 512))
    config.calibration.flux_history = int(_clamped(config.calibration.flux_history, 12, 2, 512))

    config.peaks.band_threshold = _clamped(config.peaks.band_threshold, 1.0, 0.0)
    config.peaks.flux_threshold = _clamped(config.peaks.flux_threshold, 0.5, 0.0)
    config.capture.smoothing_time_constant = _clamped(config.capture.smoothing_time_constant, 0.2, 0.0, 1.0)
    config.capture.tick_ms = _clamped(config.capture.tick_ms, 33.0, 1.0)

    config.version = CURRENT_CONFIG_VERSION


# Default config instance
DEFAULT_CONFIG = Config()
