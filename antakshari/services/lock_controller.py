"""
Antakshari Round Shuffler - Shuffle Lock

A single global flag (``is_shuffle_locked`` state row) that freezes the
host's current round for players.  Only the host can flip it, and the host
is not bound by it.
"""

from typing import Any, Dict, List, Tuple

from loguru import logger

from antakshari.auth import Requester
from antakshari.config import STATE_SHUFFLE_LOCKED
from antakshari.database import (
    ensure_state,
    fetch_selected,
    get_state_value,
    read_snapshot,
    read_state,
    transaction,
    write_state,
)
from antakshari.errors import ForbiddenError


async def get_lock_state() -> bool:
    """Whether the shuffle is locked.  Never creates the state row."""
    return bool(await get_state_value(STATE_SHUFFLE_LOCKED, 0))


async def toggle_lock(requester: Requester) -> bool:
    """Flip the lock and return the new state.  Host only."""
    if not requester.is_privileged:
        logger.warning("🚫 Lock toggle refused for '{}'", requester.username)
        raise ForbiddenError("Only the host can lock or unlock the shuffle")

    async with transaction() as db:
        current = await ensure_state(db, STATE_SHUFFLE_LOCKED, 0)
        new_value = 0 if current else 1
        await write_state(db, STATE_SHUFFLE_LOCKED, new_value)

    locked = bool(new_value)
    logger.info(
        "{} Shuffle {} by '{}'",
        "🔒" if locked else "🔓",
        "locked" if locked else "unlocked",
        requester.username,
    )
    return locked


async def get_active_selection_if_locked() -> Tuple[bool, List[Dict[str, Any]]]:
    """
    Return ``(locked, songs)``.

    *songs* is the frozen host round while locked, and empty otherwise.  The
    flag and the songs come from one read transaction, so a concurrent
    toggle or host advance cannot pair a lock state with another round.
    """
    async with read_snapshot() as db:
        locked = bool(await read_state(db, STATE_SHUFFLE_LOCKED, 0))
        songs = await fetch_selected(db) if locked else []
    return locked, songs
