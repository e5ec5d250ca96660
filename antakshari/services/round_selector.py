"""
Antakshari Round Shuffler - Round Selector

Decides which songs are on the board for the next round.

Two modes, chosen by the requester's role:

- **Host (privileged)**: walks the fixed rotation.  The slot under the
  persisted cursor becomes the catalog's selection and the cursor moves on
  (wrapping at the end of the table).  This is the shared round everybody
  sees via ``GET /api/songs/selected``.  The host may advance even while the
  shuffle is locked.
- **Player (ordinary)**: gets a private random draw of up to
  ``SAMPLE_SIZE_PER_LANGUAGE`` songs per language.  Nothing is written: the
  shared selection and the cursor stay untouched.  While the shuffle is
  locked players are refused with :class:`LockedError`.

The host path runs in one ``BEGIN IMMEDIATE`` transaction, so two hosts
advancing at once are serialized (no repeated or skipped slot) and readers
never observe a half-applied selection.
"""

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from antakshari.auth import Requester
from antakshari.config import (
    SAMPLE_SIZE_PER_LANGUAGE,
    STATE_SHUFFLE_INDEX,
    STATE_SHUFFLE_LOCKED,
)
from antakshari.database import (
    ensure_state,
    fetch_selected,
    get_songs_grouped_by_language,
    get_state_value,
    replace_selection,
    transaction,
    write_state,
)
from antakshari.errors import LockedError
from antakshari.rotation import FIXED_ROTATION, RotationTable

MODE_RIGGED = "rigged"
MODE_RANDOM = "random"


@dataclass
class RoundResult:
    """Outcome of one :func:`advance_round` call."""

    mode: str
    songs: List[Dict[str, Any]] = field(default_factory=list)
    slot: Optional[int] = None
    next_index: Optional[int] = None

    @property
    def persisted(self) -> bool:
        return self.mode == MODE_RIGGED


async def advance_round(
    requester: Requester,
    *,
    rotation: RotationTable = FIXED_ROTATION,
    rng: Optional[random.Random] = None,
    sample_size: int = SAMPLE_SIZE_PER_LANGUAGE,
) -> RoundResult:
    """
    Compute the next round for *requester*.

    Raises :class:`LockedError` for an ordinary requester while the shuffle
    is locked; nothing is read from or written to the catalog in that case.
    """
    if requester.is_privileged:
        return await _advance_rotation(rotation)

    locked = bool(await get_state_value(STATE_SHUFFLE_LOCKED, 0))
    if locked:
        logger.info(
            "🔒 Shuffle refused for '{}' — round is locked", requester.username
        )
        raise LockedError("Shuffle is locked by the host")

    return await draw_random_round(rng=rng, sample_size=sample_size)


async def _advance_rotation(rotation: RotationTable) -> RoundResult:
    """Apply the slot under the cursor and move the cursor forward."""
    length = len(rotation)

    async with transaction() as db:
        cursor = await ensure_state(db, STATE_SHUFFLE_INDEX, 0)
        slot = cursor % length
        codes = rotation[slot]

        selected_count = await replace_selection(db, codes)
        next_index = (cursor + 1) % length
        await write_state(db, STATE_SHUFFLE_INDEX, next_index)

        songs = await fetch_selected(db)

    missing = len(codes) - selected_count
    logger.info(
        "🎯 Rotation advanced: slot {} of {} → {} song(s) selected{}, next index {}",
        slot,
        length,
        selected_count,
        f" ({missing} code(s) not in catalog)" if missing else "",
        next_index,
    )
    return RoundResult(mode=MODE_RIGGED, songs=songs, slot=slot, next_index=next_index)


async def draw_random_round(
    *,
    rng: Optional[random.Random] = None,
    sample_size: int = SAMPLE_SIZE_PER_LANGUAGE,
) -> RoundResult:
    """Sample up to *sample_size* songs per catalog language, read-only."""
    rng = rng or random.Random()
    groups = await get_songs_grouped_by_language()

    songs: List[Dict[str, Any]] = []
    counts: Dict[str, int] = {}
    for language in sorted(groups):
        pool = groups[language]
        picked = rng.sample(pool, min(sample_size, len(pool)))
        counts[language] = len(picked)
        songs.extend(picked)

    logger.debug("🎲 Random round drawn: {}", counts)
    return RoundResult(mode=MODE_RANDOM, songs=songs)

