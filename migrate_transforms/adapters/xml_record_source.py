"""XML Record Source Adapter.

This adapter implements the RecordSourcePort contract for XML documents.
It splits a document into item subtrees, extracts one record per item with
the configured field selectors, and yields a Result per item.

Security Impact:
    - Documents are resolved by the secure parser (defusedxml screening,
      lxml with entity resolution and network access disabled)
    - Each item is wrapped in try/except so one bad item cannot stop a run
    - Rejected items are logged with identifiers only, never content

Architecture:
    - Implements RecordSourcePort (Hexagonal Architecture)
    - Configurable via JSON files or dicts validated by ExtractorConfig
    - Streaming mode for large files: items are located by tag with
      iterparse and released right after extraction
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from pydantic import ValidationError as PydanticValidationError

from migrate_transforms.domain.models import ExtractedRecord, ExtractorConfig
from migrate_transforms.domain.ports import (
    ExtractionError,
    MigrateTransformError,
    RecordSourcePort,
    Result,
)
from migrate_transforms.domain.services.xml_record_extractor import XmlRecordExtractor
from migrate_transforms.infrastructure.settings import settings
from migrate_transforms.infrastructure.xml_parser import SecureXMLParser

logger = logging.getLogger(__name__)


class XMLRecordSource(RecordSourcePort):
    """XML record source with configurable XPath field selectors.

    Configuration Format:
        {
            "item_selector": "//foxml:digitalObject",
            "namespaces": {"foxml": "info:fedora/fedora-system:def/foxml#"},
            "record_tag": "{info:fedora/fedora-system:def/foxml#}digitalObject",
            "fields": {
                "pid": "@PID",
                "state": "foxml:objectProperties/foxml:property[@NAME='info:fedora/fedora-system:def/model#state']/@VALUE",
                "dc": ".//oai_dc:dc"
            }
        }
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        config_dict: Optional[Dict[str, Any]] = None,
        streaming_enabled: Optional[bool] = None,
        streaming_threshold: Optional[int] = None,
        max_record_size: Optional[int] = None
    ):
        """Initialize XML record source.

        Parameters:
            config_path: Path to JSON configuration file
            config_dict: Configuration dictionary (alternative to config_path)
            streaming_enabled: Force streaming on/off (None = auto-detect by file size)
            streaming_threshold: File size threshold for auto-enabling streaming (bytes)
            max_record_size: Maximum serialized size of one record in bytes

        Raises:
            ValueError: If neither or both configurations are given, or the
                        configuration is invalid
            FileNotFoundError: If config_path doesn't exist
            json.JSONDecodeError: If config file is invalid JSON
        """
        if config_path and config_dict:
            raise ValueError("Cannot specify both config_path and config_dict")

        if not config_path and not config_dict:
            raise ValueError("Must specify either config_path or config_dict")

        try:
            if config_path:
                self.config = ExtractorConfig.from_file(config_path)
            else:
                self.config = ExtractorConfig(**config_dict)
        except PydanticValidationError as e:
            raise ValueError(f"Invalid extractor configuration: {str(e)}")

        if streaming_enabled and not self.config.record_tag:
            raise ValueError("Streaming requires 'record_tag' in the configuration")

        self.adapter_name = "xml_record_source"
        self.streaming_enabled = streaming_enabled
        self.streaming_threshold = streaming_threshold or settings.xml_streaming_threshold
        self.max_record_size = max_record_size or settings.max_record_size

        self.extractor = XmlRecordExtractor(self.config.fields, namespaces=self.config.namespaces)
        self.parser = SecureXMLParser(
            max_events=settings.xml_max_events,
            max_depth=settings.xml_max_depth
        )

    def can_read(self, source: str) -> bool:
        """Check if this adapter can handle the given source.

        Parameters:
            source: Source identifier (file path)

        Returns:
            bool: True if source is an XML file, False otherwise
        """
        if not source:
            return False
        return Path(str(source)).suffix.lower() == '.xml'

    def get_source_info(self, source: str) -> Optional[dict]:
        """Get metadata about the XML source.

        Returns:
            Optional[dict]: Metadata dictionary or None if unavailable
        """
        try:
            source_path = Path(source)
            if source_path.exists():
                stat = source_path.stat()
                return {
                    'format': 'xml',
                    'size': stat.st_size,
                    'exists': True,
                    'item_selector': self.config.item_selector,
                    'streaming': self._should_use_streaming(source),
                }
        except (OSError, ValueError, TypeError):
            pass

        return None

    def _should_use_streaming(self, source: Any) -> bool:
        """Determine if streaming should be used for this source.

        Logic:
            - Only file paths can be streamed, and only with a record_tag
            - streaming_enabled True/False forces the mode
            - None (auto-detect): compare file size against the threshold
        """
        if self.streaming_enabled is False or not self.config.record_tag:
            return False
        if not isinstance(source, (str, Path)) or str(source).lstrip().startswith('<'):
            return False
        if self.streaming_enabled is True:
            return True
        if not settings.xml_streaming_enabled:
            return False

        try:
            source_path = Path(source)
            if source_path.exists():
                return source_path.stat().st_size >= self.streaming_threshold
        except (OSError, ValueError):
            pass

        return False

    def read(self, source: Any) -> Iterator[Result[ExtractedRecord]]:
        """Read a document and yield one Result per item.

        Parameters:
            source: File path, raw XML bytes/str, or an lxml element

        Yields:
            Result[ExtractedRecord]: Success with the record, or failure details

        Raises:
            SourceNotFoundError: If source file doesn't exist
            UnsupportedSourceError: If source is not well-formed XML
            SecurityError: If the document violates parser limits
            ExtractionError: If the item selector itself fails
        """
        label = self._label(source)
        if self._should_use_streaming(source):
            logger.info(f"Using streaming mode for XML source: {label}")
            with self.parser.iter_elements(source, self.config.record_tag) as items:
                yield from self._process_items(items, label)
        else:
            document = self.parser.parse_document(source)
            items = self.extractor.select_items(document, self.config.item_selector)
            if not items:
                logger.warning(f"No items found in {label} using XPath '{self.config.item_selector}'")
                return
            yield from self._process_items(iter(items), label)

    def _process_items(self, items: Iterator[Any], label: str) -> Iterator[Result[ExtractedRecord]]:
        record_count = 0
        rejected_count = 0

        for item in items:
            record_count += 1

            # Triage: each item is handled on its own.
            try:
                record = self.extractor.extract(item)

                record_size = len(json.dumps(record.to_row()).encode('utf-8'))
                if record_size > self.max_record_size:
                    raise ExtractionError(
                        f"Record {record_count} exceeds maximum size ({self.max_record_size} bytes)"
                    )

                yield Result.success_result(record)

            except MigrateTransformError as e:
                rejected_count += 1
                self._log_rejection(label, record_count, e)
                yield Result.failure_result(
                    e,
                    error_type=type(e).__name__,
                    error_details={
                        "source": label,
                        "record_index": record_count,
                        **({"field_name": e.field_name} if getattr(e, 'field_name', None) else {}),
                        **({"xpath": e.xpath} if getattr(e, 'xpath', None) else {}),
                    }
                )

        if record_count > 0:
            logger.info(
                f"XML extraction complete: {label} - "
                f"{record_count - rejected_count} accepted, {rejected_count} rejected"
            )

    def _label(self, source: Any) -> str:
        if isinstance(source, (str, Path)) and not str(source).lstrip().startswith('<'):
            return str(source)
        return f"<{type(source).__name__}>"

    def _log_rejection(self, label: str, record_index: int, error: Exception) -> None:
        """Log a rejected item for audit trail."""
        logger.warning(
            f"REJECTED: Record {record_index} from {label}: {str(error)}",
            extra={
                'source': label,
                'record_index': record_index,
                'error_type': type(error).__name__,
            }
        )
