"""Merge normalized records from every page into one deduplicated result."""

import logging
from typing import Dict, Iterable, Tuple

from toilet_registry.models import CanonicalRecord

logger = logging.getLogger(__name__)

AggregateResult = Tuple[CanonicalRecord, ...]


def aggregate(records: Iterable[CanonicalRecord]) -> AggregateResult:
    """Deduplicate by ``id`` (first sighting wins) and drop incomplete records.

    Order of the result is the order in which each surviving id was first seen.
    """
    unique: Dict[str, CanonicalRecord] = {}
    seen = 0
    missing_id = 0
    duplicates = 0

    for record in records:
        seen += 1
        if not record.id:
            missing_id += 1
            continue
        if record.id in unique:
            duplicates += 1
            continue
        unique[record.id] = record

    result = tuple(record for record in unique.values() if record.is_acceptable())
    incomplete = len(unique) - len(result)

    if missing_id or duplicates or incomplete:
        logger.debug(
            "Discarded records: missing_id=%d, duplicates=%d, incomplete=%d",
            missing_id,
            duplicates,
            incomplete,
        )
    logger.info("Aggregated %d records into %d unique rows", seen, len(result))
    return result
