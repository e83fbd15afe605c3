"""Duplicate detection for parsed movements.

Two movements are the same logical transaction when their date, amount and
normalized description are equal. Matching is exact on the hash: amounts that
differ by rounding are never merged.
"""

from collections import Counter
from dataclasses import replace
from decimal import Decimal
import hashlib

from finca.domain.entities import DuplicateStats, ParsedMovement
from finca.utils.text import normalize_text

HASH_LENGTH = 16


def generate_movement_hash(movement: ParsedMovement) -> str:
    """Return the content hash of a movement.

    The hash is a pure function of (ISO date, amount to two decimals,
    normalized description).
    """
    amount = Decimal(movement.amount).quantize(Decimal("0.01"))
    key = "|".join(
        [
            movement.date.isoformat(),
            f"{amount:.2f}",
            normalize_text(movement.description),
        ]
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def detect_duplicates(movements: list[ParsedMovement]) -> list[ParsedMovement]:
    """Annotate movements with their hash and duplicate flag.

    A movement is flagged when an earlier movement in the list has the same
    hash; first occurrences stay unflagged.
    """
    seen: set[str] = set()
    annotated = []
    for movement in movements:
        movement_hash = generate_movement_hash(movement)
        annotated.append(
            replace(movement, duplicate_hash=movement_hash, is_duplicate=movement_hash in seen)
        )
        seen.add(movement_hash)
    return annotated


def remove_duplicates(movements: list[ParsedMovement]) -> list[ParsedMovement]:
    """Keep the first occurrence of each hash, preserving order."""
    seen: set[str] = set()
    survivors = []
    for movement in movements:
        movement_hash = generate_movement_hash(movement)
        if movement_hash in seen:
            continue
        seen.add(movement_hash)
        survivors.append(movement)
    return survivors


def get_duplicate_stats(movements: list[ParsedMovement]) -> DuplicateStats:
    """Count flagged duplicates, unique movements and duplicate groups.

    unique counts hashes that appear exactly once; duplicate_groups counts
    hashes that appear two or more times.
    """
    counts = Counter(generate_movement_hash(m) for m in movements)
    return DuplicateStats(
        total=len(movements),
        duplicates=sum(count - 1 for count in counts.values()),
        unique=sum(1 for count in counts.values() if count == 1),
        duplicate_groups=sum(1 for count in counts.values() if count >= 2),
    )
