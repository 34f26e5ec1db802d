import json
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from spotguide.gps import GPS, FixedPosition, GPSPlayback, GPSRecorder
from spotguide.models import Location


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestGPS(unittest.TestCase):
    @mock.patch("spotguide.gps.subprocess.run")
    def test_reading_is_cached(self, run) -> None:
        run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0,
            stdout=json.dumps({"latitude": 34.29, "longitude": 132.31, "accuracy": 8.0}), stderr="")
        gps = GPS()
        self.assertIsNone(gps.latest_position())
        location = gps.get_location()
        self.assertEqual((location.lat, location.lon), (34.29, 132.31))
        self.assertIs(gps.latest_position(), location)
        self.assertEqual(gps.get_status(), "GPS OK, accuracy 8m")

    @mock.patch("spotguide.gps.subprocess.run", side_effect=FileNotFoundError)
    def test_missing_termux(self, run) -> None:
        gps = GPS()
        self.assertIsNone(gps.get_location())
        self.assertEqual(gps.consecutive_failures, 1)
        self.assertIn("1 consecutive failures", gps.get_status())

    @mock.patch("spotguide.gps.subprocess.run")
    def test_bad_output(self, run) -> None:
        run.return_value = subprocess.CompletedProcess(args=[], returncode=0, stdout="{}", stderr="")
        gps = GPS()
        self.assertIsNone(gps.get_location())
        self.assertIsNone(gps.latest_position())

    @mock.patch("spotguide.gps.subprocess.run")
    def test_background_updates(self, run) -> None:
        run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout=json.dumps({"latitude": 1.0, "longitude": 2.0}), stderr="")
        gps = GPS(poll_interval=0.01)
        gps.start_updates()
        thread = gps._thread
        try:
            thread.join(0.05)
            self.assertIsNotNone(gps.latest_position())
        finally:
            gps.stop_updates()
        thread.join(1)
        self.assertFalse(thread.is_alive())


class TestFixedPosition(unittest.TestCase):
    def test_set_and_clear(self) -> None:
        source = FixedPosition()
        self.assertIsNone(source.latest_position())
        source.set_position(34.0, 132.0)
        self.assertEqual(source.latest_position().lat, 34.0)
        source.clear()
        self.assertIsNone(source.latest_position())


class TestRecordAndPlayback(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.path = str(Path(self.tmp.name) / "trace.json")

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def write_trace(self, trace):
        with open(self.path, "w") as f:
            json.dump({"recorded_at": "2025-03-19T10:00:00", "trace": trace}, f)

    def test_recorder_saves_reads(self) -> None:
        source = FixedPosition()
        recorder = GPSRecorder(source, self.path)
        self.assertIsNone(recorder.latest_position())
        source.set_position(34.0, 132.0)
        self.assertEqual(recorder.latest_position().lon, 132.0)
        recorder.save()

        with open(self.path) as f:
            data = json.load(f)
        self.assertEqual(len(data["trace"]), 2)
        self.assertIsNone(data["trace"][0]["location"])
        self.assertEqual(data["trace"][1]["location"]["lat"], 34.0)

    def test_playback_follows_clock(self) -> None:
        self.write_trace([
            {"elapsed": 0.0, "location": Location(34.0, 132.0).to_dict()},
            {"elapsed": 5.0, "location": None},
            {"elapsed": 10.0, "location": Location(34.1, 132.1).to_dict()},
        ])
        clock = FakeClock()
        playback = GPSPlayback(self.path, speed=2.0, clock=clock)
        self.assertIsNone(playback.latest_position())

        playback.start_updates()
        self.assertEqual(playback.latest_position().lat, 34.0)
        clock.now += 1.0  # 2s of trace time
        self.assertEqual(playback.latest_position().lat, 34.0)
        clock.now += 2.0  # 6s
        self.assertIsNone(playback.latest_position())
        self.assertFalse(playback.is_finished())
        clock.now += 2.0  # 10s
        self.assertEqual(playback.latest_position().lat, 34.1)
        clock.now += 1.0
        self.assertTrue(playback.is_finished())


if __name__ == "__main__":
    unittest.main()
