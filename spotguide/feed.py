"""Spot feed loading from a JSON file or URL."""

import json
from typing import Optional

import requests

from .config import CONFIG
from .geo import retry_with_backoff
from .logger import Logger
from .models import Spot


def parse_feed(data, logger: Optional[Logger] = None) -> list[Spot]:
    """Turn feed JSON (a list of records or {"spots": [...]}) into Spots.

    Records without a usable id are skipped.
    """
    logger = logger or Logger()
    if isinstance(data, dict):
        data = data.get("spots", [])
    if not isinstance(data, list):
        logger.error("Spot feed is not a list of records", {"type": type(data).__name__})
        return []

    spots = []
    for record in data:
        try:
            spots.append(Spot.from_record(record, strict=False))
        except ValueError as e:
            logger.warning("Skipped spot feed record", {"error": str(e)})
    return spots


def fetch_feed(url: str, logger: Optional[Logger] = None) -> Optional[object]:
    """Fetch feed JSON over HTTP, retrying with backoff. None on failure."""
    logger = logger or Logger()

    def try_fetch():
        try:
            response = requests.get(url, timeout=CONFIG["feed_fetch_timeout"])
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.log("Spot feed fetch failed", {"url": url, "error": str(e)}, level="WARNING")
            return None

    return retry_with_backoff(
        try_fetch,
        max_time=CONFIG["feed_retry_max_time"],
        initial_delay=2.0,
        max_delay=8.0,
        description="Spot feed fetch"
    )


def load_feed(source: str, logger: Optional[Logger] = None) -> list[Spot]:
    """Load spots from a file path or an http(s) URL"""
    logger = logger or Logger()
    if source.startswith(("http://", "https://")):
        data = fetch_feed(source, logger)
        if data is None:
            logger.error("Could not fetch spot feed", {"url": source})
            return []
    else:
        try:
            with open(source, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not read spot feed", {"path": source, "error": str(e)})
            return []

    spots = parse_feed(data, logger)
    logger.log("Spot feed loaded", {"source": source, "spots": len(spots)})
    return spots
