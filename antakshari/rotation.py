"""
Antakshari Round Shuffler - Fixed Rotation

The host's rounds follow a fixed, pre-scripted rotation.  Each slot is the
set of short codes that are active during that round; the cursor stored in
the ``current_shuffle_index`` state row walks through the slots in order and
wraps around.

Codes referenced here do not have to exist in the catalog.  A missing code
is simply not selected.
"""

import re
from collections import Counter
from typing import FrozenSet, Iterable, Sequence, Tuple

from loguru import logger

RotationSlot = FrozenSet[str]
RotationTable = Tuple[RotationSlot, ...]

SHORT_CODE_RE = re.compile(r"^[A-Z][1-9][0-9]*$")

_RAW_ROTATION: Tuple[Tuple[str, ...], ...] = (
    # Round 1
    (
        "H1", "H2", "H3", "H4", "H5",
        "B1", "B2", "B3", "B4", "B5",
        "E1", "E2", "E3", "E4", "E5",
    ),
    # Round 2
    (
        "H2", "H3", "H4", "H5", "H6",
        "B2", "B3", "B4", "B5", "B6",
        "E2", "E3", "E4", "E5", "E6",
    ),
    # Round 3
    (
        "H3", "H4", "H5", "H6", "H1",
        "B1", "B3", "B4", "B5", "B6",
        "E1", "E3", "E4", "E5", "E6",
    ),
    # Round 4
    (
        "H1", "H2", "H4", "H6", "H5",
        "B1", "B2", "B4", "B5", "B6",
        "E1", "E2", "E4", "E5", "E6",
    ),
)


class RotationConfigError(ValueError):
    """Raised when a rotation table is malformed."""


def build_rotation(slots: Iterable[Sequence[str]]) -> RotationTable:
    """
    Validate raw slot definitions and freeze them into a rotation table.

    Every slot must be non-empty, every code must look like a short code
    (``H1``, ``E10`` …) and no code may appear twice within the same slot.
    """
    table = []
    for index, slot in enumerate(slots):
        codes = list(slot)
        if not codes:
            raise RotationConfigError(f"Rotation slot {index} is empty")

        bad = [c for c in codes if not SHORT_CODE_RE.match(c)]
        if bad:
            raise RotationConfigError(
                f"Rotation slot {index} has malformed short codes: {bad}"
            )

        dupes = sorted(code for code, n in Counter(codes).items() if n > 1)
        if dupes:
            raise RotationConfigError(
                f"Rotation slot {index} repeats short codes: {dupes}"
            )

        table.append(frozenset(codes))

    if not table:
        raise RotationConfigError("Rotation table has no slots")
    return tuple(table)


def validate_rotation(table: RotationTable) -> None:
    """Re-check a frozen table (used at startup) and log its shape."""
    build_rotation(sorted(slot) for slot in table)
    logger.info(
        "🔁 Rotation table loaded: {} slots, {} distinct codes",
        len(table),
        len(all_codes(table)),
    )


def all_codes(table: RotationTable) -> list[str]:
    """Every distinct short code referenced by the table, in natural order."""
    codes = set().union(*table)
    return sorted(codes, key=lambda c: (c[0], int(c[1:])))


FIXED_ROTATION: RotationTable = build_rotation(_RAW_ROTATION)
