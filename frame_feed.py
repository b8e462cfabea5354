"""
Sound Sensing - Frame Feed
In-memory host: the embedding program pushes magnitude frames in, the
engine pulls them out once per analysis pass.
"""

import threading
from typing import Any, Callable, Optional

import numpy as np

from logging_utils import log_event
from spectral_flux import FrameSource


class FrameFeed:
    """
    Minimal ``AudioHost`` implementation.

    Frames are stored as the latest value per source; the engine sees
    whatever was pushed most recently when it runs a pass. The microphone
    counts as active once ``set_microphone_active(True)`` is called, or
    immediately when ``auto_activate_microphone`` is set and the engine
    requests it.
    """

    def __init__(
        self,
        sample_rate: int = 48000,
        fft_size: int = 2048,
        tick_interval: Optional[float] = 1.0 / 30.0,
        auto_activate_microphone: bool = False,
    ):
        self.sample_rate = int(sample_rate)
        self.fft_size = int(fft_size)
        self._tick_interval = tick_interval
        self._auto_activate = auto_activate_microphone
        self._frames: dict[FrameSource, np.ndarray] = {}
        self._raw_audio: Any = None
        self._mic_active = False
        self.microphone_requests = 0
        self._stop_all_callbacks: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    # ----- producer side

    def push(
        self,
        project: Optional[np.ndarray] = None,
        microphone: Optional[np.ndarray] = None,
        raw_audio: Any = None,
    ) -> None:
        with self._lock:
            if project is not None:
                self._frames[FrameSource.PROJECT] = np.asarray(project, dtype=np.float64)
            if microphone is not None:
                self._frames[FrameSource.MICROPHONE] = np.asarray(microphone, dtype=np.float64)
            if raw_audio is not None:
                self._raw_audio = raw_audio

    def set_microphone_active(self, active: bool) -> None:
        self._mic_active = bool(active)

    def set_tick_interval(self, seconds: Optional[float]) -> None:
        self._tick_interval = seconds

    def stop_all(self) -> None:
        """Broadcast the host's stop-all signal to subscribers."""
        log_event("DEBUG", "Host", "Stop-all signal", subscribers=len(self._stop_all_callbacks))
        for callback in list(self._stop_all_callbacks):
            callback()

    # ----- AudioHost protocol

    def magnitude_frame(self, source: FrameSource) -> Optional[np.ndarray]:
        with self._lock:
            return self._frames.get(source)

    def microphone_active(self) -> bool:
        return self._mic_active

    def request_microphone(self) -> None:
        self.microphone_requests += 1
        if self._auto_activate and not self._mic_active:
            self._mic_active = True

    def raw_audio_buffer(self) -> Any:
        with self._lock:
            return self._raw_audio

    def tick_interval(self) -> Optional[float]:
        return self._tick_interval

    def on_stop_all(self, callback: Callable[[], None]) -> None:
        self._stop_all_callbacks.append(callback)
