import csv
import json
import tempfile
import unittest
from pathlib import Path

import numpy as np

from audio_session_reporter import AudioSessionReporter
from session import SessionSummary


class TestAudioSessionReporter(unittest.TestCase):
    def make_row(self, frames=3):
        summary = SessionSummary(started_at=1000.0)
        for i in range(frames):
            summary.update(np.array([10.0 + i, 5.0, 1.0]), float(100 * i))
        return summary.as_dict(ended_at=1002.5)

    def test_summary_row_matches_csv_columns(self):
        row = self.make_row()
        self.assertEqual(set(row), set(AudioSessionReporter.fieldnames()))
        self.assertEqual(row["seconds"], 2.5)
        self.assertEqual(row["low_energy_min"], 10.0)
        self.assertEqual(row["low_energy_max"], 12.0)
        self.assertEqual(row["low_energy_mean"], 11.0)
        self.assertEqual(row["flux_max"], 200.0)
        self.assertEqual(row["flux_mean"], 100.0)

    def test_save_writes_json_and_csv(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            reporter = AudioSessionReporter(Path(tmpdir) / "reports")
            reporter.save_session(self.make_row())
            reporter.save_session(self.make_row(frames=5))

            with open(reporter.json_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            self.assertEqual(payload["session_count"], 2)
            self.assertEqual(payload["latest"]["frames"], 5)

            with open(reporter.csv_path, "r", newline="", encoding="utf-8") as f:
                rows = list(csv.DictReader(f))
            self.assertEqual(len(rows), 2)
            self.assertEqual(rows[0]["frames"], "3")

    def test_history_is_capped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            reporter = AudioSessionReporter(Path(tmpdir), max_sessions=2)
            for frames in (1, 2, 3):
                reporter.save_session(self.make_row(frames=frames))
            sessions = reporter.load_sessions()
            self.assertEqual([s["frames"] for s in sessions], [2, 3])

    def test_numpy_values_are_serialised(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            reporter = AudioSessionReporter(Path(tmpdir))
            row = self.make_row()
            row["frames"] = np.int64(7)
            reporter.save_session(row)
            self.assertEqual(reporter.load_sessions()[-1]["frames"], 7)

    def test_corrupt_report_starts_fresh(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            reporter = AudioSessionReporter(Path(tmpdir))
            reporter.json_path.write_text("not json", encoding="utf-8")
            self.assertEqual(reporter.load_sessions(), [])


if __name__ == "__main__":
    unittest.main()
