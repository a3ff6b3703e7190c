"""Domain Services.

This package contains the transforms: type normalization, record zipping,
XML record extraction and hash-based change detection. None of them has
infrastructure dependencies beyond lxml trees.
"""

from migrate_transforms.domain.services.change_detector import ChangeDetector, detect_changes
from migrate_transforms.domain.services.record_zipper import RecordZipper, zip_sequences
from migrate_transforms.domain.services.type_normalizer import TypeNormalizer, normalize
from migrate_transforms.domain.services.xml_record_extractor import (
    XmlRecordExtractor,
    extract_record,
    select_values,
)

__all__ = [
    "ChangeDetector",
    "RecordZipper",
    "TypeNormalizer",
    "XmlRecordExtractor",
    "detect_changes",
    "extract_record",
    "normalize",
    "select_values",
    "zip_sequences",
]
