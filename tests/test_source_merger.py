import unittest

import numpy as np

from config import AudioSourcePolicy
from source_merger import merge_flux, merge_frames


class TestMergeFrames(unittest.TestCase):
    def setUp(self):
        rng = np.random.default_rng(7)
        self.project = rng.integers(0, 256, size=512).astype(float)
        self.mic = rng.integers(0, 256, size=512).astype(float)

    def test_all_is_per_bin_max(self):
        merged = merge_frames(AudioSourcePolicy.ALL, self.project, self.mic, True)
        for i in range(len(merged)):
            self.assertEqual(merged[i], max(self.project[i], self.mic[i]))

    def test_all_does_not_mutate_inputs(self):
        project = self.project.copy()
        merge_frames(AudioSourcePolicy.ALL, project, self.mic, True)
        np.testing.assert_array_equal(project, self.project)

    def test_all_falls_back_to_project_when_mic_inactive(self):
        merged = merge_frames(AudioSourcePolicy.ALL, self.project, self.mic, False)
        np.testing.assert_array_equal(merged, self.project)
        merged = merge_frames(AudioSourcePolicy.ALL, self.project, None, True)
        np.testing.assert_array_equal(merged, self.project)

    def test_project_ignores_microphone(self):
        merged = merge_frames(AudioSourcePolicy.PROJECT, self.project, self.mic, True)
        np.testing.assert_array_equal(merged, self.project)

    def test_microphone_only(self):
        merged = merge_frames(AudioSourcePolicy.MICROPHONE, self.project, self.mic, True)
        np.testing.assert_array_equal(merged, self.mic)

    def test_microphone_unavailable_when_inactive(self):
        self.assertIsNone(merge_frames(AudioSourcePolicy.MICROPHONE, self.project, self.mic, False))
        self.assertIsNone(merge_frames(AudioSourcePolicy.MICROPHONE, self.project, None, True))

    def test_all_with_mismatched_lengths(self):
        merged = merge_frames(AudioSourcePolicy.ALL, np.array([1.0, 9.0, 3.0]), np.array([5.0, 2.0]), True)
        np.testing.assert_array_equal(merged, [5.0, 9.0, 3.0])


class TestMergeFlux(unittest.TestCase):
    def test_policies(self):
        self.assertEqual(merge_flux(AudioSourcePolicy.PROJECT, 10.0, 50.0, True), 10.0)
        self.assertEqual(merge_flux(AudioSourcePolicy.MICROPHONE, 10.0, 50.0, True), 50.0)
        self.assertEqual(merge_flux(AudioSourcePolicy.ALL, 10.0, 50.0, True), 50.0)
        self.assertEqual(merge_flux(AudioSourcePolicy.ALL, 80.0, 50.0, True), 80.0)

    def test_inactive_microphone(self):
        self.assertIsNone(merge_flux(AudioSourcePolicy.MICROPHONE, 10.0, 50.0, False))
        self.assertEqual(merge_flux(AudioSourcePolicy.ALL, 10.0, 50.0, False), 10.0)


if __name__ == "__main__":
    unittest.main()
