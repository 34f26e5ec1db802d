"""Configuration settings for Spotguide."""

CONFIG = {
    "evaluate_interval": 10,  # seconds between unlock evaluations
    "position_poll_interval": 5,  # seconds between GPS refreshes
    "position_timeout": 10,  # seconds - termux-location timeout per fix
    "default_radius": 100,  # meters - used when a spot's radius can't be parsed
    "log_interval": 10,  # seconds between STATE log entries
    "db_path": "spotguide_state.db",
    "media_dir": "MoviesStory",  # folder holding the spot media files
    "default_language": "ja",  # "ja" -> primary names, anything else -> secondary
    # Spot feed fetching
    "feed_fetch_timeout": 30,  # seconds per HTTP request
    "feed_retry_max_time": 30.0,  # seconds of retrying before giving up
    # Debug GUI
    "debug_http_port": 8080,
    "debug_ws_port": 8765,
}
