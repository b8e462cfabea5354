import unittest
from unittest import mock

import numpy as np

from config import Config
from spectral_flux import FrameSource

try:
    import mic_capture
except (ImportError, OSError):  # PortAudio missing on the test machine
    mic_capture = None


@unittest.skipIf(mic_capture is None, "sounddevice/PortAudio unavailable")
class TestCaptureHost(unittest.TestCase):
    def setUp(self):
        self.config = Config()
        self.config.analysis.fft_size = 256

    def test_failed_microphone_is_inactive_and_not_retried(self):
        microphone = mic_capture.DeviceCapture(self.config, device_index=99)
        host = mic_capture.CaptureHost(self.config, microphone)
        error = mic_capture.sd.PortAudioError("no device")
        with mock.patch.object(mic_capture.sd, "InputStream", side_effect=error) as stream_cls:
            host.request_microphone()
            host.request_microphone()
        self.assertEqual(stream_cls.call_count, 1)
        self.assertTrue(microphone.failed)
        self.assertFalse(host.microphone_active())
        self.assertIsNone(host.magnitude_frame(FrameSource.MICROPHONE))
        self.assertEqual(host.microphone_requests, 2)

    def test_project_is_silence_without_device(self):
        host = mic_capture.CaptureHost(self.config, mic_capture.DeviceCapture(self.config))
        frame = host.magnitude_frame(FrameSource.PROJECT)
        self.assertEqual(frame.shape, (128,))
        self.assertFalse(np.any(frame))
        self.assertAlmostEqual(host.tick_interval(), 0.033)

    def test_callback_keeps_latest_samples(self):
        capture = mic_capture.DeviceCapture(self.config)
        block = np.ones((64, 2), dtype=np.float32)
        capture._callback(block, 64, None, None)
        np.testing.assert_array_equal(capture._samples[-64:], np.ones(64))
        self.assertEqual(len(capture._samples), 256)
        np.testing.assert_array_equal(capture.raw_block(), block)

    def test_stream_started_with_capture_settings(self):
        capture = mic_capture.DeviceCapture(self.config, device_index=3)
        with mock.patch.object(mic_capture.sd, "InputStream") as stream_cls:
            self.assertTrue(capture.start())
        kwargs = stream_cls.call_args.kwargs
        self.assertEqual(kwargs["device"], 3)
        self.assertEqual(kwargs["samplerate"], 48000)
        self.assertEqual(kwargs["blocksize"], 256)
        stream_cls.return_value.start.assert_called_once()


if __name__ == "__main__":
    unittest.main()
