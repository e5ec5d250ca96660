"""
Antakshari Round Shuffler - SQLite Database

Embedded SQLite database holding three tables:

- ``songs``: the catalog, with the per-song ``is_selected`` flag that
  marks the songs of the current (host) round.
- ``system_state``: tiny key/value table of integers (rotation cursor and
  lock flag).
- ``users``: registered accounts.

Uses aiosqlite for async operations within FastAPI and plain sqlite3 for
schema setup.  Functions that take a ``db`` argument run on a connection the
caller already owns, so several of them can share one transaction (see
:func:`transaction`).
"""

import sqlite3
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Dict, Iterable, List, Optional

import aiosqlite
from loguru import logger

from antakshari.config import DB_PATH

# Seconds a writer waits for another writer's transaction before giving up
SQLITE_BUSY_TIMEOUT = 15.0

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS songs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    song_name TEXT NOT NULL,
    artist TEXT NOT NULL,
    album TEXT,
    language TEXT NOT NULL,
    short_code TEXT UNIQUE NOT NULL,
    intro_audio_url TEXT NOT NULL,
    lyrics_link TEXT DEFAULT '',
    media_path TEXT DEFAULT '',
    is_selected INTEGER NOT NULL DEFAULT 0,
    added_by TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_songs_language ON songs(language);
CREATE INDEX IF NOT EXISTS idx_songs_selected ON songs(is_selected);
CREATE INDEX IF NOT EXISTS idx_songs_name ON songs(song_name COLLATE NOCASE);

CREATE TRIGGER IF NOT EXISTS update_songs_timestamp
    AFTER UPDATE OF song_name, artist, album, language, intro_audio_url, lyrics_link
    ON songs
    FOR EACH ROW
BEGIN
    UPDATE songs SET updated_at = CURRENT_TIMESTAMP WHERE id = OLD.id;
END;

CREATE TABLE IF NOT EXISTS system_state (
    key TEXT PRIMARY KEY,
    value INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# ---------------------------------------------------------------------------
# Migration helpers
# ---------------------------------------------------------------------------
_MIGRATIONS = [
    # Migration 1: songs added before uploads went to Nextcloud have no
    #              remote media path to clean up on delete.
    {
        "check": "SELECT COUNT(*) FROM pragma_table_info('songs') WHERE name='media_path'",
        "apply": [
            "ALTER TABLE songs ADD COLUMN media_path TEXT DEFAULT ''",
        ],
        "description": "Add media_path column",
    },
    # Migration 2: attribution of who added a song
    {
        "check": "SELECT COUNT(*) FROM pragma_table_info('songs') WHERE name='added_by'",
        "apply": [
            "ALTER TABLE songs ADD COLUMN added_by TEXT",
        ],
        "description": "Add added_by column",
    },
]


def _run_migrations(conn: sqlite3.Connection) -> None:
    """Run any pending schema migrations."""
    for migration in _MIGRATIONS:
        cursor = conn.execute(str(migration["check"]))
        (count,) = cursor.fetchone()
        if count == 0:
            logger.info("🔄 Running migration: {}", migration["description"])
            for stmt in migration["apply"]:
                conn.execute(stmt)
            conn.commit()
            logger.success("✅ Migration applied: {}", migration["description"])


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------
def init_db() -> None:
    """Initialize the SQLite database, create tables, and run migrations."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    try:
        with sqlite3.connect(str(DB_PATH)) as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
            _run_migrations(conn)
        logger.success(f"✅ Database initialized at {DB_PATH}")
    except Exception as e:
        logger.critical(f"❌ Failed to initialize database: {e}")
        raise


# ---------------------------------------------------------------------------
# Async context managers (for use in FastAPI routes and services)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def get_async_connection():
    """Async context manager for an aiosqlite connection with row factory."""
    db = await aiosqlite.connect(str(DB_PATH), timeout=SQLITE_BUSY_TIMEOUT)
    db.row_factory = aiosqlite.Row
    try:
        yield db
    finally:
        await db.close()


@asynccontextmanager
async def transaction():
    """
    Async context manager yielding a connection inside ``BEGIN IMMEDIATE``.

    The write lock is taken up front, so a read-modify-write sequence run on
    this connection cannot interleave with another writer, and none of its
    intermediate states are visible to readers.  Commits on normal exit,
    rolls back if the block raises.
    """
    db = await aiosqlite.connect(
        str(DB_PATH), timeout=SQLITE_BUSY_TIMEOUT, isolation_level=None
    )
    db.row_factory = aiosqlite.Row
    try:
        await db.execute("BEGIN IMMEDIATE")
        try:
            yield db
        except BaseException:
            await db.execute("ROLLBACK")
            raise
        await db.execute("COMMIT")
    finally:
        await db.close()


@asynccontextmanager
async def read_snapshot():
    """
    Async context manager yielding a connection inside a deferred ``BEGIN``.

    Every read on it sees the same committed state, so values read by
    separate queries belong together.  Nothing is written; the transaction
    is always closed with ``ROLLBACK``.
    """
    db = await aiosqlite.connect(
        str(DB_PATH), timeout=SQLITE_BUSY_TIMEOUT, isolation_level=None
    )
    db.row_factory = aiosqlite.Row
    try:
        await db.execute("BEGIN")
        try:
            yield db
        finally:
            await db.execute("ROLLBACK")
    finally:
        await db.close()


@contextmanager
def get_connection():
    """Synchronous context manager for a sqlite3 connection with row factory."""
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Helper: convert rows to plain dicts
# ---------------------------------------------------------------------------
def row_to_dict(row) -> Dict[str, Any]:
    """Convert a database row to a plain dictionary."""
    if row is None:
        return {}
    return dict(row)


def song_from_row(row) -> Dict[str, Any]:
    """Convert a songs row to a dict with ``is_selected`` as a real bool."""
    song = row_to_dict(row)
    if song:
        song["is_selected"] = bool(song.get("is_selected"))
    return song


# ---------------------------------------------------------------------------
# System state (key/value integers)
# ---------------------------------------------------------------------------
async def read_state(db: aiosqlite.Connection, key: str, default: int = 0) -> int:
    """Return the value stored under *key*, or *default* without storing it."""
    cursor = await db.execute("SELECT value FROM system_state WHERE key = ?", (key,))
    row = await cursor.fetchone()
    return int(row["value"]) if row else default


async def ensure_state(db: aiosqlite.Connection, key: str, default: int = 0) -> int:
    """Create *key* with *default* if it is absent, then return its value."""
    await db.execute(
        "INSERT OR IGNORE INTO system_state (key, value) VALUES (?, ?)",
        (key, default),
    )
    return await read_state(db, key, default)


async def write_state(db: aiosqlite.Connection, key: str, value: int) -> None:
    """Upsert *key* = *value*."""
    await db.execute(
        """
        INSERT INTO system_state (key, value) VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """,
        (key, int(value)),
    )


async def get_state_value(key: str, default: int = 0) -> int:
    """Read a state value on a fresh connection (read-only)."""
    async with get_async_connection() as db:
        return await read_state(db, key, default)


async def get_all_state() -> Dict[str, int]:
    """Return every stored state row as a dict."""
    async with get_async_connection() as db:
        cursor = await db.execute("SELECT key, value FROM system_state ORDER BY key")
        rows = await cursor.fetchall()
        return {r["key"]: int(r["value"]) for r in rows}


# ---------------------------------------------------------------------------
# Selection (the ``is_selected`` flag)
# ---------------------------------------------------------------------------
async def fetch_selected(db: aiosqlite.Connection) -> List[Dict[str, Any]]:
    """Songs currently flagged selected, on the given connection."""
    cursor = await db.execute(
        "SELECT * FROM songs WHERE is_selected = 1 ORDER BY language, id"
    )
    rows = await cursor.fetchall()
    return [song_from_row(r) for r in rows]


async def replace_selection(db: aiosqlite.Connection, codes: Iterable[str]) -> int:
    """
    Make exactly the songs whose short code is in *codes* selected.

    One statement rewrites every row, so there is no moment where the
    selection is empty.  Codes with no catalog entry are ignored.  Returns
    the number of songs now selected.
    """
    code_list = sorted(set(codes))
    if code_list:
        placeholders = ", ".join("?" for _ in code_list)
        await db.execute(
            f"""
            UPDATE songs
            SET is_selected = CASE WHEN short_code IN ({placeholders}) THEN 1 ELSE 0 END
            """,
            code_list,
        )
    else:
        await db.execute("UPDATE songs SET is_selected = 0")

    cursor = await db.execute("SELECT COUNT(*) AS cnt FROM songs WHERE is_selected = 1")
    row = await cursor.fetchone()
    return row["cnt"] if row else 0


async def get_selected_songs() -> List[Dict[str, Any]]:
    """Fetch the songs of the current host round."""
    async with get_async_connection() as db:
        return await fetch_selected(db)


# ---------------------------------------------------------------------------
# Catalog CRUD (async)
# ---------------------------------------------------------------------------
async def insert_song(
    song_name: str,
    artist: str,
    language: str,
    short_code: str,
    intro_audio_url: str,
    album: Optional[str] = None,
    lyrics_link: str = "",
    media_path: str = "",
    added_by: Optional[str] = None,
) -> int:
    """
    Insert a song and return its id.

    Raises ``sqlite3.IntegrityError`` if the short code is already taken.
    """
    async with get_async_connection() as db:
        cursor = await db.execute(
            """
            INSERT INTO songs (song_name, artist, album, language, short_code,
                               intro_audio_url, lyrics_link, media_path, added_by)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                song_name,
                artist,
                album,
                language,
                short_code,
                intro_audio_url,
                lyrics_link,
                media_path,
                added_by,
            ),
        )
        await db.commit()
        song_id = cursor.lastrowid or 0
        logger.success(f"✅ Song added (id={song_id}, {short_code}): {song_name} - {artist}")
        return song_id


async def get_all_songs() -> List[Dict[str, Any]]:
    """Fetch the whole catalog, newest first."""
    async with get_async_connection() as db:
        cursor = await db.execute("SELECT * FROM songs ORDER BY id DESC")
        rows = await cursor.fetchall()
        return [song_from_row(r) for r in rows]


async def get_song_by_id(song_id: int) -> Optional[Dict[str, Any]]:
    """Fetch a single song by its id."""
    async with get_async_connection() as db:
        cursor = await db.execute("SELECT * FROM songs WHERE id = ?", (song_id,))
        row = await cursor.fetchone()
        return song_from_row(row) if row else None


async def find_song_by_name(song_name: str) -> Optional[Dict[str, Any]]:
    """Case-insensitive exact match on the song name."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            "SELECT * FROM songs WHERE song_name = ? COLLATE NOCASE LIMIT 1",
            (song_name.strip(),),
        )
        row = await cursor.fetchone()
        return song_from_row(row) if row else None


async def get_all_short_codes() -> List[str]:
    """Return every short code currently in the catalog."""
    async with get_async_connection() as db:
        cursor = await db.execute("SELECT short_code FROM songs ORDER BY id")
        rows = await cursor.fetchall()
        return [r["short_code"] for r in rows]


async def get_songs_grouped_by_language() -> Dict[str, List[Dict[str, Any]]]:
    """Return ``{language: [songs…]}`` for every language in the catalog."""
    async with get_async_connection() as db:
        cursor = await db.execute("SELECT * FROM songs ORDER BY language, id")
        rows = await cursor.fetchall()

    groups: Dict[str, List[Dict[str, Any]]] = {}
    for row in rows:
        song = song_from_row(row)
        groups.setdefault(song["language"], []).append(song)
    return groups


async def count_songs_by_language(language: str) -> int:
    """Number of catalog songs in *language*."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            "SELECT COUNT(*) AS cnt FROM songs WHERE language = ?", (language,)
        )
        row = await cursor.fetchone()
        return row["cnt"] if row else 0


async def count_songs() -> int:
    """Return total number of songs."""
    async with get_async_connection() as db:
        cursor = await db.execute("SELECT COUNT(*) AS cnt FROM songs")
        row = await cursor.fetchone()
        return row["cnt"] if row else 0


async def delete_song(song_id: int) -> bool:
    """Delete a song by id. Returns True if a row was deleted."""
    async with get_async_connection() as db:
        cursor = await db.execute("DELETE FROM songs WHERE id = ?", (song_id,))
        await db.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"🗑️ Song id={song_id} deleted from database")
        else:
            logger.warning(f"⚠️ Song id={song_id} not found for deletion")
        return deleted


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
async def insert_user(username: str, email: str, password_hash: str) -> int:
    """
    Insert a user and return its id.

    Raises ``sqlite3.IntegrityError`` if the email is already registered.
    """
    async with get_async_connection() as db:
        cursor = await db.execute(
            "INSERT INTO users (username, email, password_hash) VALUES (?, ?, ?)",
            (username, email.strip().lower(), password_hash),
        )
        await db.commit()
        user_id = cursor.lastrowid or 0
        logger.success(f"✅ User registered (id={user_id}): {username}")
        return user_id


async def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    """Fetch a user by (lower-cased) email."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
        )
        row = await cursor.fetchone()
        return row_to_dict(row) if row else None


async def get_user_by_id(user_id: int) -> Optional[Dict[str, Any]]:
    """Fetch a user by id."""
    async with get_async_connection() as db:
        cursor = await db.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        row = await cursor.fetchone()
        return row_to_dict(row) if row else None


async def delete_all_songs() -> int:
    """Empty the catalog.  Returns the number of rows removed."""
    async with get_async_connection() as db:
        cursor = await db.execute("DELETE FROM songs")
        await db.commit()
        removed = cursor.rowcount
        logger.warning("🗑️ Catalog cleared ({} song(s) removed)", removed)
        return removed
