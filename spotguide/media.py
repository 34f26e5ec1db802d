"""Media file lookup for unlocked spots."""

from pathlib import Path
from typing import Optional

from .config import CONFIG


class MediaLocator:
    """Resolves a spot's media reference to a file in the media folder"""

    def __init__(self, media_dir: Optional[str] = None):
        self.media_dir = Path(media_dir or CONFIG["media_dir"])

    def resolve(self, reference: str) -> Optional[Path]:
        """Return the media path, or None if the file doesn't exist"""
        if not reference:
            return None
        path = self.media_dir / reference
        # References are plain file names; don't follow them out of the folder
        if path.resolve().parent != self.media_dir.resolve():
            return None
        if path.is_file():
            return path
        return None
