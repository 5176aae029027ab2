"""Application settings constants."""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Album counts requested for the initial home wall and each infinite-scroll page.
WALL_INITIAL_TOTAL = 100
WALL_FETCH_MORE_TOTAL = 50

# Album count requested per genre feed page.
GENRE_FEED_TOTAL = 50

# Below this many recently played albums the listening-history signal is too sparse to use.
MIN_RECENTLY_PLAYED = 15
RECENTLY_PLAYED_LIMIT = 25

# Albums queued after the tapped album in each playback batch.
QUEUE_BATCH_SIZE = 4

APPLE_MUSIC_BASE_URL = os.environ.get("APPLE_MUSIC_BASE_URL", "https://api.music.apple.com")
APPLE_MUSIC_DEVELOPER_TOKEN = os.environ.get("APPLE_MUSIC_DEVELOPER_TOKEN")
APPLE_MUSIC_USER_TOKEN = os.environ.get("APPLE_MUSIC_USER_TOKEN")
STOREFRONT = os.environ.get("CRATE_STOREFRONT", "us")
HTTP_TIMEOUT_SECONDS = float(os.environ.get("CRATE_HTTP_TIMEOUT_SECONDS", "20"))

DB_PATH = Path(os.environ.get("CRATE_DB_PATH", PROJECT_ROOT / "data" / "crate.sqlite3")).resolve()
LOG_DIR = Path(os.environ.get("CRATE_LOG_DIR", PROJECT_ROOT / "data" / "logs")).resolve()
