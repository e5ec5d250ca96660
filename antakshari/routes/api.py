"""
Antakshari Round Shuffler - JSON API Routes

Provides the REST API endpoints for:
- Health check
- The current round (selected songs, lock state)
- Advancing the round (host rotation or a private random draw)
- Locking / unlocking the shuffle (host only)
- Catalog listing, song upload and deletion
"""

import os
import time
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from loguru import logger

from antakshari.auth import Requester, require_requester
from antakshari.config import (
    ALLOWED_AUDIO_EXTENSIONS,
    APP_VERSION,
    MAX_UPLOAD_SIZE_BYTES,
    MAX_UPLOAD_SIZE_MB,
    TEMP_DIR,
)
from antakshari import database
from antakshari.database import count_songs, get_all_state, get_selected_songs
from antakshari.errors import ShufflerError
from antakshari.media import MediaRef, is_configured
from antakshari.rotation import FIXED_ROTATION
from antakshari.services import catalog
from antakshari.services.lock_controller import (
    get_active_selection_if_locked,
    toggle_lock,
)
from antakshari.services.round_selector import advance_round
from antakshari.utils import api_response, http_error, sanitize_filename

router = APIRouter(prefix="/api", tags=["API"])

# Track startup time for health check
_START_TIME = time.time()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@router.get("/health")
async def health_check():
    """Health check endpoint for the service."""
    uptime = round(time.time() - _START_TIME, 2)
    db_ok = database.DB_PATH.exists()

    return {
        "status": "ok" if db_ok else "degraded",
        "database": "ok" if db_ok else "missing",
        "media_host_configured": is_configured(),
        "rotation_slots": len(FIXED_ROTATION),
        "total_songs": await count_songs() if db_ok else 0,
        "state": await get_all_state() if db_ok else {},
        "uptime_seconds": uptime,
        "version": APP_VERSION,
    }


# ---------------------------------------------------------------------------
# Round state
# ---------------------------------------------------------------------------
@router.get("/songs/selected")
async def api_selected_songs():
    """Songs of the current host round."""
    songs = await get_selected_songs()
    return api_response(songs, "Selected songs fetched successfully")


@router.get("/songs/state")
async def api_game_state():
    """Lock flag plus the frozen round while locked."""
    locked, songs = await get_active_selection_if_locked()
    return api_response(
        {"isLocked": locked, "lockedSongs": songs},
        "Game state fetched successfully",
    )


@router.post("/songs/lock")
async def api_toggle_lock(requester: Requester = Depends(require_requester)):
    """Flip the shuffle lock (host only)."""
    try:
        locked = await toggle_lock(requester)
    except ShufflerError as e:
        raise http_error(e) from e

    return api_response(
        {"isLocked": locked},
        f"Shuffle {'locked' if locked else 'unlocked'}",
    )


@router.post("/songs/shuffle")
async def api_shuffle(requester: Requester = Depends(require_requester)):
    """
    Advance the round.

    The host moves the shared rotation forward; players get a private random
    draw, refused while the shuffle is locked.
    """
    try:
        result = await advance_round(requester)
    except ShufflerError as e:
        raise http_error(e) from e

    message = (
        "Songs shuffled successfully"
        if result.persisted
        else "Random songs drawn successfully"
    )
    return api_response(
        result.songs,
        message,
        mode=result.mode,
        persisted=result.persisted,
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
@router.get("/songs")
async def api_list_songs():
    """All songs, newest first."""
    songs = await catalog.list_songs()
    return api_response(songs, "All songs fetched")


def _get_temp_path(filename: str) -> str:
    """Generate a unique staging path for an upload."""
    TEMP_DIR.mkdir(parents=True, exist_ok=True)
    return os.path.join(
        str(TEMP_DIR), f"upload_{uuid.uuid4().hex}_{sanitize_filename(filename)}"
    )


def _validate_extension(filename: str, allowed: set) -> str:
    """Validate and return the file extension, raising HTTPException if invalid."""
    ext = Path(filename).suffix.lower()
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file extension: {ext}. Allowed: {', '.join(sorted(allowed))}",
        )
    return ext


async def _stage_upload(upload: UploadFile, temp_path: str) -> int:
    """Write the upload to *temp_path* in chunks, enforcing the size limit."""
    total_size = 0
    async with aiofiles.open(temp_path, "wb") as f:
        while chunk := await upload.read(65536):
            total_size += len(chunk)
            if total_size > MAX_UPLOAD_SIZE_BYTES:
                raise HTTPException(
                    status_code=413,
                    detail=f"File too large. Maximum size is {MAX_UPLOAD_SIZE_MB}MB.",
                )
            await f.write(chunk)
    return total_size


@router.post("/songs", status_code=201)
async def api_add_song(
    name: str = Form(""),
    artist: str = Form(""),
    language: str = Form(""),
    album: Optional[str] = Form(None),
    lyrics: Optional[str] = Form(None),
    url: Optional[str] = Form(None),
    song_file: Optional[UploadFile] = File(None),
    requester: Requester = Depends(require_requester),
):
    """
    Add a song.

    Audio comes either as an uploaded ``song_file`` (pushed to the media
    host) or as an existing ``url``.
    """
    new_song = catalog.NewSong(
        name=name, artist=artist, language=language, album=album, lyrics=lyrics or ""
    )

    if song_file is not None and song_file.filename:
        if not is_configured():
            raise HTTPException(
                status_code=503,
                detail="Media host is not configured. Set NEXTCLOUD_URL, "
                "NEXTCLOUD_USERNAME, and NEXTCLOUD_PASSWORD in your .env file.",
            )

        filename = song_file.filename
        _validate_extension(filename, ALLOWED_AUDIO_EXTENSIONS)
        temp_path = _get_temp_path(filename)

        try:
            size = await _stage_upload(song_file, temp_path)
            logger.info(f"📤 Upload received: {filename} ({size} bytes)")
            song = await catalog.add_uploaded_song(
                new_song,
                temp_path,
                filename,
                content_type=song_file.content_type or "application/octet-stream",
                added_by=requester.username,
            )
        except ShufflerError as e:
            raise http_error(e) from e
        finally:
            try:
                os.remove(temp_path)
            except FileNotFoundError:
                pass

    elif url and url.strip():
        try:
            song = await catalog.add_song(
                new_song,
                MediaRef(remote_path="", url=url.strip()),
                added_by=requester.username,
            )
        except ShufflerError as e:
            raise http_error(e) from e

    else:
        raise HTTPException(
            status_code=400,
            detail="Please provide name, artist, language, and an audio file or url",
        )

    return api_response(song, "Song added successfully", status_code=201)


@router.delete("/songs/{song_id}")
async def api_delete_song(
    song_id: int,
    requester: Requester = Depends(require_requester),
):
    """Remove a song from the catalog and release its hosted audio."""
    try:
        song = await catalog.delete_song(song_id)
    except ShufflerError as e:
        raise http_error(e) from e

    logger.info(
        "🗑️ Song {} ({}) deleted by '{}'",
        song_id,
        song.get("short_code"),
        requester.username,
    )
    return api_response({"id": song_id}, f"Song {song_id} deleted successfully")
