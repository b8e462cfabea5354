"""
Sound Sensing - Engine
Polled once per host tick: merges the project/microphone magnitude frames,
extracts band energies and spectral flux, keeps them calibrated with rolling
mean/variance statistics and answers peak queries by z-score.
"""

import copy
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Union

import numpy as np

from audio_session_reporter import AudioSessionReporter
from band_extractor import band_energies, bin_energy, loudness
from calibration import CalibrationLifecycle, CalibrationPhase
from config import AudioSourcePolicy, Band, Config
from logging_utils import log_event
from peak_detector import PeakDetector
from session import AnalysisSession
from source_merger import merge_flux, merge_frames
from spectral_flux import FrameSource

BandLike = Union[Band, str, int]


class AudioHost(Protocol):
    """What the engine needs from the host's audio pipeline"""
    sample_rate: int
    fft_size: int

    def magnitude_frame(self, source: FrameSource) -> Optional[np.ndarray]: ...

    def microphone_active(self) -> bool: ...

    def request_microphone(self) -> None: ...

    def raw_audio_buffer(self) -> Any: ...

    def tick_interval(self) -> Optional[float]: ...

    def on_stop_all(self, callback: Callable[[], None]) -> None: ...


class SoundSensingEngine:
    """
    Single handle over one analysis session.

    Every accessor first runs the conservative gate: a fresh analysis pass
    happens at most once per host tick interval, and polls inside the same
    interval read the cached results. Values that cannot be computed yet
    (host tick unknown, session not started, microphone not ready) come
    back as None; peak predicates answer False.
    """

    def __init__(
        self,
        host: AudioHost,
        config: Optional[Config] = None,
        clock: Callable[[], float] = time.monotonic,
        report_dir: Optional[Path] = None,
    ):
        self.config = config if config is not None else Config()
        self.host = host
        self._clock = clock
        self._policy = AudioSourcePolicy.parse(self.config.audio_source)
        self._analysis_lock = threading.Lock()

        self.session = AnalysisSession(
            energy_history=self.config.calibration.energy_history,
            flux_history=self.config.calibration.flux_history,
        )
        self.calibration = CalibrationLifecycle(self.session)
        self.detector = PeakDetector(self.config.peaks)

        self._reporter: Optional[AudioSessionReporter] = None
        if report_dir is not None and self.config.report_generation_enabled:
            self._reporter = AudioSessionReporter(report_dir)

        subscribe = getattr(host, "on_stop_all", None)
        if callable(subscribe):
            subscribe(self.reset)

    # ===== Tick gating =====

    def _conservative_analyze(self) -> bool:
        """Run a pass if the tick interval has elapsed. False when the host tick is unknown."""
        interval = self.host.tick_interval()
        if interval is None:
            return False
        with self._analysis_lock:
            now = self._clock()
            last = self.session.last_analysis_at
            if last is None or now - last >= interval:
                self.session.last_analysis_at = now
                self._analyze()
        return True

    def analyze_now(self) -> None:
        """Force an analysis pass regardless of the tick interval."""
        with self._analysis_lock:
            self.session.last_analysis_at = self._clock()
            self._analyze()

    # ===== Analysis pass =====

    def _read_frame(self, source: FrameSource) -> Optional[np.ndarray]:
        frame = self.host.magnitude_frame(source)
        if frame is None:
            return None
        return np.asarray(frame, dtype=np.float64)

    def _start_session(self) -> None:
        sample_rate = getattr(self.host, "sample_rate", None) or self.config.analysis.sample_rate
        fft_size = getattr(self.host, "fft_size", None) or self.config.analysis.fft_size
        self.session.start(sample_rate, fft_size, self.config.bands)
        log_event(
            "INFO",
            "Engine",
            "Session started",
            sample_rate=self.session.sample_rate,
            fft_size=self.session.fft_size,
            bands=self.session.ranges.as_dict(),
            source=self._policy.name.lower(),
        )

    def _analyze(self) -> None:
        session = self.session
        policy = self._policy
        if policy.uses_microphone:
            self.host.request_microphone()

        project = self._read_frame(FrameSource.PROJECT)
        mic_active = policy.uses_microphone and bool(self.host.microphone_active())
        microphone = self._read_frame(FrameSource.MICROPHONE) if mic_active else None
        mic_active = mic_active and microphone is not None

        effective = merge_frames(policy, project, microphone, mic_active)
        if not session.started:
            if effective is None:
                # Nothing this policy listens to is up yet
                return
            self._start_session()

        session.policy = policy
        session.microphone_active = mic_active
        session.project_frame = project
        session.microphone_frame = microphone
        session.passes += 1

        # Flux is tracked per source so each keeps its own previous frame
        flux_computer = session.flux_computer
        project_flux = flux_computer.update(FrameSource.PROJECT, project) if project is not None else None
        if mic_active:
            microphone_flux = flux_computer.update(FrameSource.MICROPHONE, microphone)
        else:
            flux_computer.forget(FrameSource.MICROPHONE)
            microphone_flux = None
        flux = merge_flux(policy, project_flux, microphone_flux, mic_active)

        session.effective_frame = effective

        energy = None
        if effective is not None:
            energy = band_energies(effective, session.ranges)
            session.energy[:] = energy
            mean = session.energy_mean.step(energy)
            session.energy_variance.step(energy, mean)
            session.energy_available = True
        else:
            session.energy_available = False

        if flux is not None:
            flux_mean = session.flux_mean.step([flux])
            session.flux_variance.step([flux], flux_mean)
        session.flux = flux

        session.live_buffer = self.host.raw_audio_buffer()
        if energy is not None and self.detector.exceeds_band_threshold(
            float(energy[Band.LOW]),
            session.energy_threshold(Band.LOW),
            session.energy_spread(Band.LOW),
        ):
            # Replay follows the raw z-score; the microphone gate does not apply
            session.replay_buffer = copy.deepcopy(session.live_buffer)
            session.summary.replay_captures += 1
            log_event("DEBUG", "Replay", "Low-band peak captured for replay",
                      energy=float(energy[Band.LOW]))

        session.summary.update(energy, flux)

    # ===== Peak decisions on the current pass =====

    def _band_peak(self, band: Band) -> bool:
        session = self.session
        if not session.started or not session.energy_available:
            return False
        return self.detector.is_band_peak(
            band,
            float(session.energy[int(band)]),
            session.energy_threshold(band),
            session.energy_spread(band),
            session.policy,
        )

    def _flux_peak(self) -> bool:
        session = self.session
        if not session.started or session.flux is None:
            return False
        return self.detector.is_flux_peak(
            session.flux,
            session.flux_threshold(),
            session.flux_spread(),
            session.policy,
        )

    # ===== Exposed operations =====

    @property
    def audio_source_policy(self) -> AudioSourcePolicy:
        return self._policy

    def set_audio_source_policy(self, policy: Union[AudioSourcePolicy, str, int]) -> None:
        """Takes effect on the next analysis pass."""
        policy = AudioSourcePolicy.parse(policy)
        if policy != self._policy:
            log_event("INFO", "Engine", "Audio source changed",
                      previous=self._policy.name.lower(), source=policy.name.lower())
        self._policy = policy

    def current_energy(self, band: BandLike) -> Optional[float]:
        band = Band.parse(band)
        if not self._conservative_analyze():
            return None
        session = self.session
        if not session.started or not session.energy_available:
            return None
        return float(session.energy[int(band)])

    def current_energy_threshold(self, band: BandLike) -> Optional[float]:
        """Calibrated mean energy of ``band``."""
        band = Band.parse(band)
        if not self._conservative_analyze() or not self.session.started:
            return None
        return self.session.energy_threshold(band)

    def current_flux(self) -> Optional[float]:
        if not self._conservative_analyze() or not self.session.started:
            return None
        return self.session.flux

    def current_flux_threshold(self) -> Optional[float]:
        """Calibrated mean spectral flux."""
        if not self._conservative_analyze() or not self.session.started:
            return None
        return self.session.flux_threshold()

    def is_band_peak(self, band: BandLike) -> bool:
        band = Band.parse(band)
        if not self._conservative_analyze():
            return False
        return self._band_peak(band)

    def is_flux_peak(self) -> bool:
        if not self._conservative_analyze():
            return False
        return self._flux_peak()

    def normalized_energy(self, band: BandLike) -> Optional[float]:
        """Z-score of the current band energy; 0 while the statistic is degenerate."""
        band = Band.parse(band)
        if not self._conservative_analyze():
            return None
        session = self.session
        if not session.started or not session.energy_available:
            return None
        return self.detector.normalized(
            float(session.energy[int(band)]),
            session.energy_threshold(band),
            session.energy_spread(band),
        )

    def bin_energy(self, hz: float) -> Optional[float]:
        """Magnitude at ``hz`` as a 0-100 percentage of full scale."""
        if not self._conservative_analyze() or not self.session.started:
            return None
        session = self.session
        return bin_energy(
            session.effective_frame,
            hz,
            session.sample_rate,
            session.fft_size,
            self.config.analysis.magnitude_max,
        )

    def loudness(self) -> Optional[float]:
        """Sum of all bins of the effective frame."""
        if not self._conservative_analyze() or not self.session.started:
            return None
        return loudness(self.session.effective_frame)

    def replay_snapshot(self) -> Any:
        """Raw audio captured at the last low-band peak (None before the first one)."""
        return self.session.replay_buffer

    @property
    def calibration_phase(self) -> CalibrationPhase:
        return self.calibration.phase

    def reset(self) -> None:
        """Clear the energy calibration (the host's stop-all signal lands here)."""
        with self._analysis_lock:
            self.calibration.clear()

    def close(self) -> None:
        """Log the session summary and persist it when reporting is enabled."""
        summary = self.session.summary
        if not self.session.started or summary.frames <= 0:
            return
        row = summary.as_dict()
        log_event(
            "INFO",
            "Engine",
            "Session summary",
            frames=summary.frames,
            seconds=f"{row['seconds']:.1f}",
            low_mean=f"{row['low_energy_mean']:.2f}",
            mid_mean=f"{row['mid_energy_mean']:.2f}",
            high_mean=f"{row['high_energy_mean']:.2f}",
            flux_min=f"{row['flux_min']:.1f}",
            flux_max=f"{row['flux_max']:.1f}",
            flux_mean=f"{row['flux_mean']:.1f}",
            replay_captures=summary.replay_captures,
            calibration_clears=summary.calibration_clears,
        )
        if self._reporter is not None:
            try:
                self._reporter.save_session(row)
            except OSError as e:
                log_event("ERROR", "Engine", "Failed to write session report", error=e)
