"""
Antakshari Round Shuffler - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- An isolated SQLite database per test (``antakshari.database.DB_PATH``
  pointed at a temp file and initialised)
- Host / player requesters
- Catalog builders (songs by short code)
- Direct, synchronous peeks at the songs and state tables
- A FastAPI TestClient plus auth headers for host and player
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pytest

from antakshari import database
from antakshari.auth import Requester, Role, create_token, hash_password
from antakshari.config import ADMIN_EMAIL

HOST = Requester(user_id=1, username="host", role=Role.PRIVILEGED)
PLAYER = Requester(user_id=2, username="player", role=Role.ORDINARY)

LANGUAGE_BY_INITIAL = {"H": "Hindi", "B": "Bengali", "E": "English"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def run(coro):
    """Drive a coroutine to completion from a sync test."""
    return asyncio.run(coro)


def add_songs(codes: Iterable[str]) -> List[int]:
    """Insert one song per short code, language inferred from the initial."""
    ids = []
    for code in codes:
        ids.append(
            run(
                database.insert_song(
                    song_name=f"Song {code}",
                    artist=f"Artist {code}",
                    language=LANGUAGE_BY_INITIAL[code[0]],
                    short_code=code,
                    intro_audio_url=f"https://media.example.com/{code}.mp3",
                )
            )
        )
    return ids


def codes_for(prefixes: str, count: int) -> List[str]:
    """``codes_for("HB", 3)`` → ``["H1", "H2", "H3", "B1", "B2", "B3"]``."""
    return [f"{p}{n}" for p in prefixes for n in range(1, count + 1)]


def selected_codes() -> set:
    """Short codes currently flagged selected."""
    with database.get_connection() as conn:
        rows = conn.execute(
            "SELECT short_code FROM songs WHERE is_selected = 1"
        ).fetchall()
    return {r["short_code"] for r in rows}


def selection_snapshot() -> Dict[str, bool]:
    """``{short_code: is_selected}`` for the whole catalog."""
    with database.get_connection() as conn:
        rows = conn.execute("SELECT short_code, is_selected FROM songs").fetchall()
    return {r["short_code"]: bool(r["is_selected"]) for r in rows}


def state_rows() -> Dict[str, int]:
    """Every row of the key/value state table."""
    with database.get_connection() as conn:
        rows = conn.execute("SELECT key, value FROM system_state").fetchall()
    return {r["key"]: r["value"] for r in rows}


def set_state(key: str, value: int) -> None:
    with database.get_connection() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO system_state (key, value) VALUES (?, ?)",
            (key, value),
        )
        conn.commit()


def codes_of(songs: Iterable[Dict[str, Any]]) -> set:
    return {s["short_code"] for s in songs}


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def isolated_db(tmp_path: Path, monkeypatch) -> Path:
    """Point the app at a fresh SQLite file for every test."""
    db_file = tmp_path / "antakshari-test.db"
    monkeypatch.setattr(database, "DB_PATH", db_file)
    database.init_db()
    return db_file


@pytest.fixture
def host() -> Requester:
    return HOST


@pytest.fixture
def player() -> Requester:
    return PLAYER


@pytest.fixture
def full_catalog() -> List[str]:
    """Six songs per language: every code the fixed rotation references."""
    codes = codes_for("HBE", 6)
    add_songs(codes)
    return codes


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from antakshari.main import app

    return TestClient(app)


def _register(username: str, email: str) -> Dict[str, str]:
    user_id = run(database.insert_user(username, email, hash_password("secret123")))
    return {"Authorization": f"Bearer {create_token(user_id, email)}"}


@pytest.fixture
def host_headers() -> Dict[str, str]:
    return _register("host", ADMIN_EMAIL)


@pytest.fixture
def player_headers() -> Dict[str, str]:
    return _register("player", "player@example.com")
