"""Logging module for Spotguide."""

import json
from datetime import datetime
from typing import Optional, Callable

LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


class Logger:
    """Logs state to stdout and optionally to file"""

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 min_level: str = "INFO", echo: bool = True):
        self.log_path = log_path
        self.callback = callback
        self.min_level = min_level
        self.echo = echo
        self.file = None
        if log_path:
            self.file = open(log_path, "a")
            self._write_header()

    def _write_header(self):
        if self.file:
            self.file.write(f"\n{'='*60}\n")
            self.file.write(f"Spotguide Log - {datetime.now().isoformat()}\n")
            self.file.write(f"{'='*60}\n\n")
            self.file.flush()

    def enabled_for(self, level: str) -> bool:
        return LEVELS.get(level, 20) >= LEVELS.get(self.min_level, 20)

    def log(self, message: str, data: Optional[dict] = None, level: str = "INFO"):
        """Log a message with optional structured data"""
        if not self.enabled_for(level):
            return
        timestamp = datetime.now().isoformat()
        line = f"[{timestamp}] [{level}] {message}"
        if data:
            line += f" | {json.dumps(data, ensure_ascii=False, default=str)}"
        if self.echo:
            print(line)
        if self.file:
            self.file.write(line + "\n")
            self.file.flush()
        if self.callback:
            self.callback(message, data)

    def debug(self, message: str, data: Optional[dict] = None):
        self.log(message, data, level="DEBUG")

    def warning(self, message: str, data: Optional[dict] = None):
        self.log(message, data, level="WARNING")

    def error(self, message: str, data: Optional[dict] = None):
        self.log(message, data, level="ERROR")

    def close(self):
        if self.file:
            self.file.close()
            self.file = None
