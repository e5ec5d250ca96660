"""
Antakshari Round Shuffler - Seeding

Helpers to get a fresh database into a playable state:

- a demo catalog of ten songs per language,
- placeholder songs for any rotation code the catalog is missing (so every
  host round is full),
- the host account.

Used by ``scripts/seed_library.py``.
"""

import sqlite3
from typing import Dict, Optional

from loguru import logger

from antakshari.auth import hash_password
from antakshari.config import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    ADMIN_USERNAME,
    SONG_LANGUAGES,
)
from antakshari.database import (
    delete_all_songs,
    get_all_short_codes,
    get_user_by_email,
    insert_song,
    insert_user,
)
from antakshari.rotation import FIXED_ROTATION, RotationTable, all_codes

DEMO_AUDIO_URL = "https://www.soundhelix.com/examples/mp3/SoundHelix-Song-{}.mp3"
DEMO_LYRICS_URL = "https://example.com/lyrics{}"

# (name, artist, language, short code, demo track number)
DEMO_CATALOG = (
    ("Tum Hi Ho", "Arijit Singh", "Hindi", "H1", 1),
    ("Chaiyya Chaiyya", "Sukhwinder Singh", "Hindi", "H2", 2),
    ("Kal Ho Naa Ho", "Sonu Nigam", "Hindi", "H3", 3),
    ("Jai Ho", "A.R. Rahman", "Hindi", "H4", 4),
    ("Kabira", "Tochi Raina", "Hindi", "H5", 5),
    ("Senorita", "Farhan Akhtar", "Hindi", "H6", 6),
    ("Gerua", "Arijit Singh", "Hindi", "H7", 7),
    ("Zinda", "Farhan Akhtar", "Hindi", "H8", 8),
    ("Galliyan", "Ankit Tiwari", "Hindi", "H9", 9),
    ("Raabta", "Arijit Singh", "Hindi", "H10", 10),
    ("Ami Je Tomar", "Shreya Ghoshal", "Bengali", "B1", 11),
    ("Bhebe Dekhecho Ki", "Moheener Ghoraguli", "Bengali", "B2", 12),
    ("Tomake", "Shreya Ghoshal", "Bengali", "B3", 13),
    ("Amake Amar Moto", "Anupam Roy", "Bengali", "B4", 14),
    ("Bojhena Shey Bojhena", "Arijit Singh", "Bengali", "B5", 15),
    ("Tumi Ashbe Bole", "Nachiketa", "Bengali", "B6", 16),
    ("Ei Obelay", "Shreya", "Bengali", "B7", 1),
    ("Pherari Mon", "Anupam Roy", "Bengali", "B8", 2),
    ("Hariye Jawar Gaan", "Fossils", "Bengali", "B9", 3),
    ("Hasnuhana", "Fossils", "Bengali", "B10", 4),
    ("Shape of You", "Ed Sheeran", "English", "E1", 5),
    ("Blinding Lights", "The Weeknd", "English", "E2", 6),
    ("Someone Like You", "Adele", "English", "E3", 7),
    ("Bohemian Rhapsody", "Queen", "English", "E4", 8),
    ("Hotel California", "Eagles", "English", "E5", 9),
    ("Imagine", "John Lennon", "English", "E6", 10),
    ("Smells Like Teen Spirit", "Nirvana", "English", "E7", 11),
    ("Billie Jean", "Michael Jackson", "English", "E8", 12),
    ("Rolling in the Deep", "Adele", "English", "E9", 13),
    ("Uptown Funk", "Mark Ronson", "English", "E10", 14),
)


def language_for_code(short_code: str) -> Optional[str]:
    """Infer the configured language whose initial starts *short_code*."""
    initial = short_code[:1].upper()
    for language in SONG_LANGUAGES:
        if language[:1].upper() == initial:
            return language
    return None


async def seed_catalog(replace: bool = False) -> int:
    """Insert the demo catalog, skipping codes already present."""
    if replace:
        await delete_all_songs()

    existing = set(await get_all_short_codes())
    created = 0
    for index, (name, artist, language, code, track) in enumerate(DEMO_CATALOG, 1):
        if code in existing or language not in SONG_LANGUAGES:
            continue
        await insert_song(
            song_name=name,
            artist=artist,
            language=language,
            short_code=code,
            intro_audio_url=DEMO_AUDIO_URL.format(track),
            lyrics_link=DEMO_LYRICS_URL.format(index),
            added_by="Admin",
        )
        created += 1

    logger.info("🌱 Demo catalog seeded: {} new song(s)", created)
    return created


async def seed_rotation_placeholders(rotation: RotationTable = FIXED_ROTATION) -> int:
    """Create a placeholder song for every rotation code missing from the catalog."""
    existing = set(await get_all_short_codes())
    created = 0
    for code in all_codes(rotation):
        if code in existing:
            continue
        language = language_for_code(code)
        if language is None:
            logger.warning("⚠️ No configured language for rotation code {}", code)
            continue
        await insert_song(
            song_name=f"Placeholder Song {code}",
            artist="Rotation Placeholder",
            album="Rotation",
            language=language,
            short_code=code,
            intro_audio_url=DEMO_AUDIO_URL.format(1),
            lyrics_link="",
        )
        created += 1

    logger.info(
        "🌱 Rotation placeholders: {} created, {} code(s) referenced",
        created,
        len(all_codes(rotation)),
    )
    return created


async def ensure_admin_user(
    email: str = ADMIN_EMAIL,
    username: str = ADMIN_USERNAME,
    password: str = ADMIN_PASSWORD,
) -> Dict[str, object]:
    """Create the host account if it does not exist yet."""
    existing = await get_user_by_email(email)
    if existing:
        logger.info("👤 Host account {} already exists", email)
        return {"created": False, "email": existing["email"]}

    if not password:
        logger.warning("⚠️ ADMIN_PASSWORD is not set, host account not created")
        return {"created": False, "email": email}

    try:
        await insert_user(username, email, hash_password(password))
    except sqlite3.IntegrityError:
        return {"created": False, "email": email}

    logger.success("👤 Host account created: {}", email)
    return {"created": True, "email": email.strip().lower()}
