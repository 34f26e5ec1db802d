import io
import unittest
from unittest import mock

from spotguide.__main__ import main


class TestArguments(unittest.TestCase):
    def run_main(self, *argv):
        stderr = io.StringIO()
        with mock.patch("sys.argv", ["spotguide", *argv]), mock.patch("sys.stderr", stderr):
            with self.assertRaises(SystemExit) as cm:
                main()
        return cm.exception.code, stderr.getvalue()

    def test_rejects_unusable_fixed_position(self) -> None:
        for lat, lon in (("nan", "nan"), ("34.3", "inf"), ("95", "132.3")):
            with self.subTest(lat=lat, lon=lon):
                code, err = self.run_main("--lat", lat, "--lon", lon)
                self.assertEqual(code, 2)
                self.assertIn("finite coordinates", err)

    def test_lat_needs_lon(self) -> None:
        code, err = self.run_main("--lat", "34.3")
        self.assertEqual(code, 2)
        self.assertIn("used together", err)


if __name__ == "__main__":
    unittest.main()
