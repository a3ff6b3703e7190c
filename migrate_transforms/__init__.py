"""migrate-transforms: value normalization and XML record extraction.

Transforms used by record-migration pipelines to coerce legacy values into
typed, array-wrapped form, zip parallel sequences into keyed records, and
extract hashed records from XML subtrees.
"""

from migrate_transforms.domain.hashing import content_hash
from migrate_transforms.domain.models import ExtractedRecord, ExtractorConfig, FieldChange, ZipSpec
from migrate_transforms.domain.ports import (
    CoercionError,
    ExtractionError,
    MigrateTransformError,
    Result,
    SecurityError,
    SourceNotFoundError,
    UnsupportedSourceError,
    ZipError,
)
from migrate_transforms.domain.services import (
    ChangeDetector,
    RecordZipper,
    TypeNormalizer,
    XmlRecordExtractor,
    detect_changes,
    extract_record,
    normalize,
    select_values,
    zip_sequences,
)
from migrate_transforms.domain.values import CoalesceMode, ObjectValue, TargetType
from migrate_transforms.infrastructure.xml_parser import resolve_document

__all__ = [
    "ChangeDetector",
    "CoalesceMode",
    "CoercionError",
    "ExtractedRecord",
    "ExtractionError",
    "ExtractorConfig",
    "FieldChange",
    "MigrateTransformError",
    "ObjectValue",
    "RecordZipper",
    "Result",
    "SecurityError",
    "SourceNotFoundError",
    "TargetType",
    "TypeNormalizer",
    "UnsupportedSourceError",
    "XmlRecordExtractor",
    "ZipError",
    "ZipSpec",
    "content_hash",
    "detect_changes",
    "extract_record",
    "normalize",
    "resolve_document",
    "select_values",
    "zip_sequences",
]
