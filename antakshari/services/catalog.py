"""
Antakshari Round Shuffler - Catalog Maintenance

Adding and removing songs.  Every song gets a short code made of its
language initial and the next ordinal for that language (``H1``, ``B7`` …);
those codes are what the fixed rotation refers to.
"""

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from loguru import logger

from antakshari.config import SONG_LANGUAGES
from antakshari.database import (
    count_songs_by_language,
    delete_song as db_delete_song,
    find_song_by_name,
    get_all_songs,
    get_song_by_id,
    insert_song,
)
from antakshari.errors import ConflictError, NotFoundError, ValidationError
from antakshari.media import MediaRef, release_audio, upload_audio


@dataclass
class NewSong:
    """Metadata supplied when adding a song."""

    name: str
    artist: str
    language: str
    album: Optional[str] = None
    lyrics: str = ""

    def cleaned(self) -> "NewSong":
        """Trimmed copy with the language in its canonical spelling."""
        name = (self.name or "").strip()
        artist = (self.artist or "").strip()
        if not name or not artist:
            raise ValidationError("Please provide name, artist, and language")

        language = normalize_language(self.language)
        album = (self.album or "").strip() or None
        return NewSong(
            name=name,
            artist=artist,
            language=language,
            album=album,
            lyrics=(self.lyrics or "").strip(),
        )


def normalize_language(language: str) -> str:
    """Map *language* onto the configured set, case-insensitively."""
    wanted = (language or "").strip().lower()
    for known in SONG_LANGUAGES:
        if known.lower() == wanted:
            return known
    raise ValidationError(
        f"Unsupported language '{language}'. Must be one of: {', '.join(SONG_LANGUAGES)}"
    )


async def next_short_code(language: str) -> str:
    """Language initial + (songs already in that language + 1)."""
    count = await count_songs_by_language(language)
    return f"{language[0].upper()}{count + 1}"


async def ensure_name_available(name: str) -> None:
    """Raise :class:`ConflictError` if a song with this name exists."""
    existing = await find_song_by_name(name)
    if existing:
        raise ConflictError(
            f'A song with the name "{existing["song_name"]}" already exists. '
            "Please choose a different name."
        )


async def add_song(
    song: NewSong,
    media: MediaRef,
    added_by: Optional[str] = None,
) -> Dict[str, Any]:
    """Validate, assign a short code and insert.  Returns the stored song."""
    song = song.cleaned()
    if not media.url:
        raise ValidationError("Please provide an audio file or url")

    await ensure_name_available(song.name)
    short_code = await next_short_code(song.language)

    try:
        song_id = await insert_song(
            song_name=song.name,
            artist=song.artist,
            language=song.language,
            short_code=short_code,
            intro_audio_url=media.url,
            album=song.album,
            lyrics_link=song.lyrics,
            media_path=media.remote_path,
            added_by=added_by,
        )
    except sqlite3.IntegrityError as e:
        logger.warning("⚠️ Short code {} already taken: {}", short_code, e)
        raise ConflictError(
            "Duplicate song or short code error. Please try again."
        ) from e

    stored = await get_song_by_id(song_id)
    return stored or {}


async def add_uploaded_song(
    song: NewSong,
    local_path: str,
    filename: str,
    content_type: str = "application/octet-stream",
    added_by: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Upload a staged audio file to the media host, then add the song.

    The uploaded file is released again if the song cannot be stored.
    """
    song = song.cleaned()
    await ensure_name_available(song.name)

    media = await upload_audio(local_path, filename, content_type=content_type)
    try:
        return await add_song(song, media, added_by=added_by)
    except Exception:
        await release_audio(media.remote_path)
        raise


async def delete_song(song_id: int) -> Dict[str, Any]:
    """Remove a song and release its hosted audio.  Returns the removed song."""
    song = await get_song_by_id(song_id)
    if not song:
        raise NotFoundError("Song not found")

    remote_path = song.get("media_path") or ""
    if remote_path:
        released = await release_audio(remote_path)
        if not released:
            logger.warning(
                "⚠️ Could not delete hosted audio (media_path={}). "
                "Removing from catalog anyway.",
                remote_path,
            )

    if not await db_delete_song(song_id):
        raise NotFoundError("Song not found")
    return song


async def list_songs() -> List[Dict[str, Any]]:
    """The whole catalog, newest first."""
    return await get_all_songs()
