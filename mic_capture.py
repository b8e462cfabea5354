"""
Sound Sensing - Device Capture
sounddevice input streams that act as the engine's acquisition
collaborator: microphone (and optionally a second "project" input such as a
loopback/monitor device) turned into byte magnitude frames.
"""

import threading
from typing import Any, Optional

import numpy as np
import sounddevice as sd

from config import Config
from frame_feed import FrameFeed
from logging_utils import log_event
from spectral_flux import FrameSource
from spectrum import ByteSpectrumAnalyser


class DeviceCapture:
    """One input stream feeding one analyser."""

    def __init__(self, config: Config, device_index: Optional[int] = None, name: str = "Microphone"):
        self.config = config
        self.device_index = device_index
        self.name = name
        self.sample_rate = int(config.analysis.sample_rate)
        self.fft_size = int(config.analysis.fft_size)
        self.analyser = ByteSpectrumAnalyser(
            fft_size=self.fft_size,
            smoothing_time_constant=config.capture.smoothing_time_constant,
            min_decibels=config.capture.min_decibels,
            max_decibels=config.capture.max_decibels,
        )
        self.stream: Optional[sd.InputStream] = None
        self.failed = False
        self._samples = np.zeros(self.fft_size, dtype=np.float32)
        self._raw_block: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self.stream is not None and bool(self.stream.active)

    def start(self) -> bool:
        """Open and start the stream. Failures are logged and leave the capture inactive."""
        if self.stream is not None:
            return self.active
        try:
            self.stream = sd.InputStream(
                device=self.device_index,
                channels=self.config.capture.channels,
                samplerate=self.sample_rate,
                blocksize=self.fft_size,
                dtype='float32',
                callback=self._callback,
            )
            self.stream.start()
        except (sd.PortAudioError, OSError, ValueError) as e:
            log_event("ERROR", "Capture", f"{self.name} unavailable", device=self.device_index, error=e)
            self.failed = True
            self.stream = None
            return False
        log_event("INFO", "Capture", f"{self.name} capture started",
                  device=self.device_index, sample_rate=self.sample_rate, block=self.fft_size)
        return True

    def stop(self) -> None:
        if self.stream is None:
            return
        try:
            self.stream.stop()
            self.stream.close()
        except sd.PortAudioError as e:
            log_event("WARNING", "Capture", f"{self.name} did not close cleanly", error=e)
        self.stream = None
        log_event("INFO", "Capture", f"{self.name} capture stopped")

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            log_event("DEBUG", "Capture", f"{self.name} stream status", status=status)
        mono = indata.mean(axis=1) if indata.shape[1] > 1 else indata[:, 0]
        with self._lock:
            self._samples = np.concatenate((self._samples, mono))[-self.fft_size:]
            self._raw_block = indata.copy()

    def magnitude_frame(self) -> Optional[np.ndarray]:
        if not self.active:
            return None
        with self._lock:
            samples = self._samples.copy()
        return self.analyser.byte_frequency_data(samples)

    def raw_block(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._raw_block is None else self._raw_block.copy()


class CaptureHost(FrameFeed):
    """
    ``AudioHost`` backed by live devices. The microphone is opened lazily
    the first time the engine asks for it and never retried after a
    failure. Without a project device the project source is silence.
    """

    def __init__(self, config: Config, microphone: DeviceCapture, project: Optional[DeviceCapture] = None):
        super().__init__(
            sample_rate=config.analysis.sample_rate,
            fft_size=config.analysis.fft_size,
            tick_interval=config.capture.tick_ms / 1000.0,
        )
        self.microphone = microphone
        self.project = project
        self._silence = np.zeros(self.bin_count, dtype=np.float64)

    def magnitude_frame(self, source: FrameSource) -> Optional[np.ndarray]:
        if source == FrameSource.MICROPHONE:
            return self.microphone.magnitude_frame()
        if self.project is None:
            return self._silence
        return self.project.magnitude_frame()

    def microphone_active(self) -> bool:
        return self.microphone.active

    def request_microphone(self) -> None:
        self.microphone_requests += 1
        if self.microphone.stream is None and not self.microphone.failed:
            self.microphone.start()

    def raw_audio_buffer(self) -> Any:
        if self.project is not None and self.project.active:
            return self.project.raw_block()
        return self.microphone.raw_block()

    def close(self) -> None:
        self.microphone.stop()
        if self.project is not None:
            self.project.stop()


def list_input_devices() -> list[dict]:
    """Input-capable devices as reported by PortAudio."""
    devices = []
    for i, d in enumerate(sd.query_devices()):
        if d['max_input_channels'] > 0:
            devices.append({
                'index': i,
                'name': d['name'],
                'channels': d['max_input_channels'],
                'sample_rate': d['default_samplerate'],
            })
    return devices
