import unittest

import numpy as np

from spectral_flux import FluxComputer, FrameSource, spectral_flux


class TestSpectralFlux(unittest.TestCase):
    def test_identical_frames_have_no_flux(self):
        frame = np.linspace(0, 200, 64)
        self.assertEqual(spectral_flux(frame, frame.copy()), 0.0)

    def test_silence_to_full_scale(self):
        n = 1024
        self.assertEqual(spectral_flux(np.zeros(n), np.full(n, 255.0)), 255.0 * n)

    def test_flux_is_l1(self):
        previous = np.array([10.0, 20.0, 30.0])
        current = np.array([15.0, 5.0, 30.0])
        self.assertEqual(spectral_flux(previous, current), 20.0)

    def test_first_frame_compares_against_zero(self):
        computer = FluxComputer()
        flux = computer.update(FrameSource.PROJECT, np.array([3.0, 4.0, 5.0]))
        self.assertEqual(flux, 12.0)

    def test_sources_keep_separate_history(self):
        computer = FluxComputer()
        computer.update(FrameSource.PROJECT, np.full(4, 10.0))
        computer.update(FrameSource.MICROPHONE, np.full(4, 100.0))

        self.assertEqual(computer.update(FrameSource.PROJECT, np.full(4, 12.0)), 8.0)
        self.assertEqual(computer.update(FrameSource.MICROPHONE, np.full(4, 100.0)), 0.0)
        self.assertEqual(computer.flux(FrameSource.PROJECT), 8.0)

    def test_update_copies_frame(self):
        computer = FluxComputer()
        frame = np.full(4, 10.0)
        computer.update(FrameSource.PROJECT, frame)
        # Host reuses its buffer in place
        frame[:] = 20.0
        self.assertEqual(computer.update(FrameSource.PROJECT, frame), 40.0)

    def test_forget_restarts_from_zero_baseline(self):
        computer = FluxComputer()
        computer.update(FrameSource.MICROPHONE, np.full(4, 50.0))
        computer.forget(FrameSource.MICROPHONE)
        self.assertEqual(computer.flux(FrameSource.MICROPHONE), 0.0)
        self.assertEqual(computer.update(FrameSource.MICROPHONE, np.full(4, 50.0)), 200.0)


if __name__ == "__main__":
    unittest.main()
