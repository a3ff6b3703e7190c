"""Change Detection Service.

This service compares two extractions of the same source record through
their content hashes: an unchanged whole-record hash means nothing needs to
be re-processed; otherwise the per-field hashes tell which fields changed.

Architecture:
    - Pure domain service with no infrastructure dependencies
    - Accepts ExtractedRecord instances or their flattened row dicts
    - Returns domain models (FieldChange) for use by the caller
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from migrate_transforms.domain.models import HASH_FIELD, HASH_SUFFIX, ExtractedRecord, FieldChange

logger = logging.getLogger(__name__)

RecordLike = Union[ExtractedRecord, Mapping[str, Any]]


def _split(record: Optional[RecordLike]) -> Tuple[Optional[str], Dict[str, Any]]:
    """Return (record hash, field -> field hash) for a record or row."""
    if record is None:
        return None, {}
    if isinstance(record, ExtractedRecord):
        return record.hash, dict(record.hashes)

    field_hashes = {}
    for key, value in record.items():
        if key != HASH_FIELD and key.endswith(HASH_SUFFIX) and key[:-len(HASH_SUFFIX)] in record:
            field_hashes[key[:-len(HASH_SUFFIX)]] = value
    return record.get(HASH_FIELD), field_hashes


class ChangeDetector:
    """Service for detecting field-level changes between two extractions."""

    def is_unchanged(self, previous: Optional[RecordLike], current: RecordLike) -> bool:
        """Check whether the whole-record hash is identical.

        Parameters:
            previous: Earlier extraction (None if the record is new)
            current: Latest extraction

        Returns:
            bool: True if the record needs no re-processing
        """
        previous_hash, _ = _split(previous)
        current_hash, _ = _split(current)
        return previous_hash is not None and previous_hash == current_hash

    def detect_changes(self, previous: Optional[RecordLike], current: RecordLike) -> List[FieldChange]:
        """Detect field-level changes.

        Parameters:
            previous: Earlier extraction (None if the record is new)
            current: Latest extraction

        Returns:
            List[FieldChange]: Changed fields in current field order, followed
                               by fields that disappeared
        """
        if self.is_unchanged(previous, current):
            return []

        _, old_hashes = _split(previous)
        _, new_hashes = _split(current)

        changes: List[FieldChange] = []
        for field_name, new_hash in new_hashes.items():
            if field_name not in old_hashes:
                changes.append(FieldChange(field_name=field_name, change_type="INSERT", new_hash=new_hash))
            elif old_hashes[field_name] != new_hash:
                changes.append(FieldChange(
                    field_name=field_name,
                    change_type="UPDATE",
                    old_hash=old_hashes[field_name],
                    new_hash=new_hash
                ))
        for field_name, old_hash in old_hashes.items():
            if field_name not in new_hashes:
                changes.append(FieldChange(field_name=field_name, change_type="DELETE", old_hash=old_hash))

        logger.debug(f"Detected {len(changes)} field changes")
        return changes


def detect_changes(previous: Optional[RecordLike], current: RecordLike) -> List[FieldChange]:
    """Detect field-level changes between two extractions (see ChangeDetector)."""
    return ChangeDetector().detect_changes(previous, current)
