#!/usr/bin/env python3
"""
Spotguide - location-gated video tour guide

Usage:
    python -m spotguide [FEED] [options]

FEED is a spot feed JSON file or URL. Without it the catalog saved in the
state database is used.

Options:
    --db FILE           State database (default: spotguide_state.db)
    --media DIR         Folder holding the spot videos (default: MoviesStory)
    --interval SECONDS  Seconds between unlock evaluations (default: 10)
    --gps-interval SEC  Seconds between GPS refreshes (default: 5)
    --record FILE       Record position trace to JSON file for debugging
    --playback FILE     Playback position trace from JSON file
    --speed FACTOR      Playback speed multiplier (default: 1.0)
    --lat LAT           Fixed latitude (for testing without GPS)
    --lon LON           Fixed longitude (for testing without GPS)
    --lang LANG         Announcement language, ja or en
    --paused            Start with position updates disabled
    --debug-gui         Run with web-based visual debugger
    --manual            Set the position by clicking the debug map (saved)
    --no-manual         Leave manual position mode (saved)
    --html FILE         Write the spot map to an HTML file and exit
    --status            Print the saved unlock progress and exit
    --reset             Lock every saved spot again and exit
    --quiet             Disable spoken announcements
    --verbose           Log every evaluation
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

from .app import SpotGuide
from .catalog import DuplicateSpotError
from .config import CONFIG
from .feed import load_feed
from .gps import GPSRecorder
from .logger import Logger
from .models import Location, valid_coordinates


def _print_status(guide: SpotGuide):
    print(f"Spots: {len(guide.catalog)} ({guide.catalog.unlocked_count()} unlocked)")
    if guide.session.fake_mode:
        print("Manual position mode: on")
    for spot in guide.catalog:
        mark = "x" if spot.unlocked else " "
        where = f"{spot.lat:.5f}, {spot.lon:.5f}" if spot.has_coordinates else "no coordinates"
        print(f"  [{mark}] #{spot.id} {spot.display_name(guide.session.language)} "
              f"({where}, {spot.radius_m:.0f}m)")


def main():
    parser = argparse.ArgumentParser(
        description="Spotguide - location-gated video tour guide"
    )
    parser.add_argument("feed", nargs="?",
                        help="Spot feed JSON file or URL (default: saved catalog)")
    parser.add_argument("--db", metavar="FILE", default=CONFIG["db_path"],
                        help=f"State database (default: {CONFIG['db_path']})")
    parser.add_argument("--media", metavar="DIR", default=CONFIG["media_dir"],
                        help=f"Media folder (default: {CONFIG['media_dir']})")
    parser.add_argument("--interval", type=float, default=CONFIG["evaluate_interval"],
                        help=f"Seconds between evaluations (default: {CONFIG['evaluate_interval']})")
    parser.add_argument("--gps-interval", type=float, default=CONFIG["position_poll_interval"],
                        help=f"Seconds between GPS refreshes (default: {CONFIG['position_poll_interval']})")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: spotguide_TIMESTAMP.log)")
    parser.add_argument("--record", metavar="FILE",
                        help="Record position trace to JSON file")
    parser.add_argument("--playback", metavar="FILE",
                        help="Playback position trace from JSON file")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--lat", type=float, metavar="LAT",
                        help="Fixed latitude (for testing without GPS)")
    parser.add_argument("--lon", type=float, metavar="LON",
                        help="Fixed longitude (for testing without GPS)")
    parser.add_argument("--lang", choices=["ja", "en"],
                        help="Announcement language (default: saved setting)")
    parser.add_argument("--paused", action="store_true",
                        help="Start with position updates disabled")
    parser.add_argument("--debug-gui", action="store_true",
                        help="Run with web-based visual debugger")
    parser.add_argument("--manual", dest="manual", action="store_const", const=True,
                        help="Manual position mode: set the position by clicking the debug map (saved)")
    parser.add_argument("--no-manual", dest="manual", action="store_const", const=False,
                        help="Leave manual position mode and use GPS again (saved)")
    parser.add_argument("--html", metavar="FILE",
                        help="Write the spot map to an HTML file and exit")
    parser.add_argument("--status", action="store_true",
                        help="Print saved unlock progress and exit")
    parser.add_argument("--reset", action="store_true",
                        help="Lock every saved spot again and exit")
    parser.add_argument("--quiet", action="store_true",
                        help="Disable spoken announcements")
    parser.add_argument("--verbose", action="store_true",
                        help="Log every evaluation")

    args = parser.parse_args()

    # Validate lat/lon - must provide both or neither
    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be used together")
    if args.lat is not None and not valid_coordinates(args.lat, args.lon):
        parser.error("--lat and --lon must be finite coordinates on the globe")
    if args.interval <= 0 or args.gps_interval <= 0:
        parser.error("--interval and --gps-interval must be positive")
    if args.playback and not Path(args.playback).exists():
        print(f"Playback file not found: {args.playback}")
        sys.exit(1)

    CONFIG["position_poll_interval"] = args.gps_interval

    one_shot = args.status or args.reset or args.html
    log_path = args.log
    if not log_path and not one_shot:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = f"spotguide_{timestamp}.log"
    logger = Logger(log_path, min_level="DEBUG" if args.verbose else "INFO")

    feed_spots = load_feed(args.feed, logger) if args.feed else None
    if args.feed and not feed_spots:
        logger.warning("Spot feed empty, falling back to saved catalog")

    try:
        guide = SpotGuide(
            feed_spots=feed_spots,
            db_path=args.db,
            media_dir=args.media,
            debug_gui=args.debug_gui and not one_shot,
            logger=logger,
            announce=not args.quiet,
        )
    except DuplicateSpotError as e:
        print(f"Invalid spot catalog: {e}")
        sys.exit(1)

    if args.lang:
        guide.session.language = args.lang

    if args.reset:
        count = guide.catalog.unlocked_count()
        guide.reset_progress()
        print(f"Locked {count} spots again.")
        guide.close()
        return

    if args.status:
        _print_status(guide)
        guide.close()
        return

    if args.html:
        from .spot_map import create_spot_map
        position = Location(lat=args.lat, lon=args.lon) if args.lat is not None else None
        create_spot_map(guide.catalog.spots, args.html, position=position,
                        language=guide.session.language)
        guide.close()
        return

    # Set up position source
    if args.manual is not None:
        guide.set_manual_mode(args.manual)
    location = Location(lat=args.lat, lon=args.lon, accuracy=0) if args.lat is not None else None
    source = guide.build_position_source(location, playback=args.playback, speed=args.speed)
    if args.record:
        source = GPSRecorder(source, args.record)
    guide.set_position_source(source)

    if args.paused:
        guide.set_updates_enabled(False)
    elif not guide.session.updates_enabled:
        guide.logger.log("Position updates disabled in saved settings")

    guide.run(interval=args.interval)


if __name__ == "__main__":
    main()
