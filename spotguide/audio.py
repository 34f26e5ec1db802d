"""Spoken announcements for Spotguide."""

import subprocess
from typing import Callable, Optional

from .logger import Logger

# espeak voice per display language
VOICES = {"ja": "ja", "en": "en"}


class Audio:
    """Text-to-speech for unlock and media announcements.

    Speaks through espeak (available in Termux) and falls back to pyttsx3.
    When neither can speak, the announcement is written to the log.
    """

    def __init__(self, logger: Optional[Logger] = None, rate: int = 150):
        self.logger = logger or Logger()
        self.rate = rate
        self.callback: Optional[Callable[[str], None]] = None  # debug GUI
        self._engine = None

    def speak(self, text: str, language: str = "ja") -> bool:
        """Announce text. Returns False if it only reached the log"""
        if self.callback:
            self.callback(text)

        voice = VOICES.get(language, "en")
        try:
            result = subprocess.run(
                ["espeak", "-v", voice, "-s", str(self.rate), text],
                capture_output=True,
                timeout=10
            )
        except FileNotFoundError:
            return self._speak_fallback(text)
        except subprocess.TimeoutExpired:
            self.logger.warning("espeak timed out", {"text": text})
            return False
        if result.returncode != 0:
            self.logger.warning("espeak failed", {"returncode": result.returncode, "text": text})
            return False
        return True

    def _speak_fallback(self, text: str) -> bool:
        try:
            import pyttsx3
        except ImportError:
            self.logger.log("AUDIO", {"text": text})
            return False
        try:
            if self._engine is None:
                self._engine = pyttsx3.init()
            self._engine.say(text)
            self._engine.runAndWait()
        except Exception as e:
            self._engine = None
            self.logger.warning("Speech engine failed", {"error": str(e), "text": text})
            self.logger.log("AUDIO", {"text": text})
            return False
        return True
