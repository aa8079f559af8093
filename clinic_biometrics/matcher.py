# clinic_biometrics/matcher.py
"""
Gallery matching.

Linear nearest-neighbour scan over enrolled faces. Galleries are small
(one face per clinic user), so no index structure is kept.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from .distance import MAX_DISTANCE, distance, to_confidence
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Match:
    record: Any
    distance: float
    confidence: float


def _plain_descriptor(record) -> str:
    return record.descriptor


def find_best_match(
    query: str,
    gallery: Iterable[Any],
    threshold: float,
    descriptor_of: Callable[[Any], str] = _plain_descriptor,
) -> Optional[Match]:
    """
    Find the closest active record whose distance is strictly below threshold.

    Args:
        query: Serialized query descriptor
        gallery: Face records, scanned in the given order
        threshold: Exclusive upper bound on accepted distance
        descriptor_of: Reads a record's serialized descriptor

    Returns:
        Match for the smallest distance (first record wins ties), or None
    """
    best: Optional[Match] = None

    for record in gallery:
        if not getattr(record, "is_active", True):
            continue

        try:
            d = distance(query, descriptor_of(record))
        except Exception as e:
            logger.warning(f"Unreadable descriptor on face record {getattr(record, 'id', '?')}: {e}")
            d = MAX_DISTANCE

        if d < threshold and (best is None or d < best.distance):
            best = Match(record=record, distance=d, confidence=to_confidence(d))

    return best
