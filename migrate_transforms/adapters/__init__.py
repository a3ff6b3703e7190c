"""Adapters layer for migrate-transforms.

Record-source adapters implement RecordSourcePort and turn documents into
streams of Result[ExtractedRecord].
"""

from migrate_transforms.adapters.xml_record_source import XMLRecordSource

__all__ = ["XMLRecordSource"]
