import tempfile
import unittest
from pathlib import Path

from spotguide.media import MediaLocator


class TestMediaLocator(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.media_dir = Path(self.tmp.name) / "MoviesStory"
        self.media_dir.mkdir()
        (self.media_dir / "大鳥居.mp4").write_bytes(b"\x00")
        (Path(self.tmp.name) / "secret.mp4").write_bytes(b"\x00")
        self.locator = MediaLocator(str(self.media_dir))

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_resolves_existing_file(self) -> None:
        self.assertEqual(self.locator.resolve("大鳥居.mp4"), self.media_dir / "大鳥居.mp4")

    def test_missing_file(self) -> None:
        self.assertIsNone(self.locator.resolve("pagoda.mp4"))
        self.assertIsNone(self.locator.resolve(""))

    def test_stays_inside_media_folder(self) -> None:
        self.assertIsNone(self.locator.resolve("../secret.mp4"))


if __name__ == "__main__":
    unittest.main()
