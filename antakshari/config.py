"""
Antakshari Round Shuffler - Configuration
All settings loaded from environment variables with sensible defaults.

The service keeps its state in a single SQLite file (songs, users and the
small key/value table that drives the round rotation).  Audio for songs is
hosted on Nextcloud via WebDAV; local disk is only used to stage uploads.
"""

import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
_ = load_dotenv()

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))
APP_ENV = os.getenv("APP_ENV", "development")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
DEBUG = os.getenv("DEBUG", "true").lower() == "true"
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")

# Front-end origins allowed to call the API (comma separated, "*" for any)
CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
]

if APP_ENV == "production" and SECRET_KEY == "change-me-in-production":
    raise RuntimeError(
        "SECRET_KEY must be changed from the default value in production. "
        "Set the SECRET_KEY environment variable to a random secret."
    )

# ---------------------------------------------------------------------------
# Authentication
#
# Exactly one account is privileged (the quiz host).  It is identified by
# email; every other registered user is an ordinary player.
# ---------------------------------------------------------------------------
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com").strip().lower()
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "AdminUser")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")  # seeding skips the admin if empty

# Token / cookie lifetime (seconds), default 30 days
SESSION_COOKIE_NAME = "antakshari_session"
TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", str(60 * 60 * 24 * 30)))
PASSWORD_HASH_ITERATIONS = int(os.getenv("PASSWORD_HASH_ITERATIONS", "120000"))

# ---------------------------------------------------------------------------
# Paths: local disk is used for the database and upload staging
# ---------------------------------------------------------------------------
TEMP_DIR = Path(
    os.getenv("TEMP_DIR", os.path.join(tempfile.gettempdir(), "antakshari"))
)
DB_PATH = Path(os.getenv("DB_PATH", os.path.join(TEMP_DIR, "antakshari.db")))

# ---------------------------------------------------------------------------
# Logging: stdout only
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# ---------------------------------------------------------------------------
# Catalog / rounds
# ---------------------------------------------------------------------------
SONG_LANGUAGES = tuple(
    lang.strip()
    for lang in os.getenv("SONG_LANGUAGES", "Hindi,Bengali,English").split(",")
    if lang.strip()
)


def check_song_languages(languages: tuple) -> None:
    """Short codes are ``<initial><n>``, so every language needs its own initial."""
    if not languages:
        raise RuntimeError("SONG_LANGUAGES must name at least one language.")

    seen: dict = {}
    for language in languages:
        initial = language[0].upper()
        if initial in seen:
            raise RuntimeError(
                f"SONG_LANGUAGES entries '{seen[initial]}' and '{language}' share "
                f"the short-code initial '{initial}'. Each language needs a "
                "distinct first letter."
            )
        seen[initial] = language


check_song_languages(SONG_LANGUAGES)

# Songs drawn per language for an ordinary (free mode) shuffle
SAMPLE_SIZE_PER_LANGUAGE = int(os.getenv("SAMPLE_SIZE_PER_LANGUAGE", "5"))

# Keys of the persisted key/value state table
STATE_SHUFFLE_INDEX = "current_shuffle_index"
STATE_SHUFFLE_LOCKED = "is_shuffle_locked"

# ---------------------------------------------------------------------------
# Nextcloud WebDAV (audio hosting)
# ---------------------------------------------------------------------------
NEXTCLOUD_URL = os.getenv("NEXTCLOUD_URL", "")  # e.g. https://cloud.example.com
NEXTCLOUD_USERNAME = os.getenv("NEXTCLOUD_USERNAME", "")
NEXTCLOUD_PASSWORD = os.getenv("NEXTCLOUD_PASSWORD", "")
NEXTCLOUD_REMOTE_PATH = os.getenv(
    "NEXTCLOUD_REMOTE_PATH", "/remote.php/dav/files/{username}"
)

# Folder on Nextcloud where uploaded song intros are stored
NEXTCLOUD_MEDIA_PATH = os.getenv("NEXTCLOUD_MEDIA_PATH", "/Antakshari/Audio")

# Public URL prefix that serves the media folder (e.g. a public share link).
# Falls back to the WebDAV URL when not set.
MEDIA_PUBLIC_BASE_URL = os.getenv("MEDIA_PUBLIC_BASE_URL", "")

# Build the full WebDAV base URL
WEBDAV_BASE_URL: str = (
    NEXTCLOUD_URL.rstrip("/")
    + NEXTCLOUD_REMOTE_PATH.format(username=NEXTCLOUD_USERNAME)
    if NEXTCLOUD_URL and NEXTCLOUD_USERNAME
    else ""
)

# ---------------------------------------------------------------------------
# Upload limits
# ---------------------------------------------------------------------------
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "500"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024

ALLOWED_AUDIO_EXTENSIONS = {".mp3", ".ogg", ".wav", ".flac", ".opus", ".m4a", ".aac"}


def ensure_directories() -> None:
    """Create the local directories needed for the database and staging."""
    TEMP_DIR.mkdir(parents=True, exist_ok=True)
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
