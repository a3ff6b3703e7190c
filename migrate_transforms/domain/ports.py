"""Domain Ports - Error Taxonomy, Result Type and Record Source Contract.

This module defines the exceptions raised by the transforms, the Result type
used by record sources to report per-record failures without aborting a run,
and the abstract contract record-source adapters implement.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Transforms raise synchronously; they never return partial output
    - Adapters convert per-record failures into Result.failure_result() so
      the enclosing pipeline decides whether to abort or skip
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, Iterator, Optional, TypeVar, Union

if TYPE_CHECKING:
    from migrate_transforms.domain.models import ExtractedRecord

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Record sources yield one Result per item so that a single bad subtree
    does not stop the remaining items from being extracted.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error message (only present if success=False)
        error_type: Type of error (ExtractionError, SecurityError, etc.)
        error_details: Additional error context (source, record_index, etc.)

    Example:
        ```python
        for result in source.read("objects.xml"):
            if result.success:
                process(result.value)
            else:
                log_error(result.error, result.error_details)
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result.

        Parameters:
            value: The successful result value

        Returns:
            Result: Success result with the value
        """
        return cls(
            success=True,
            value=value,
            error=None,
            error_type=None,
            error_details=None
        )

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (e.g., "ExtractionError")
            error_details: Additional context (source, record_index, etc.)

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class MigrateTransformError(Exception):
    """Base exception for all transform and extraction errors."""
    pass


class CoercionError(MigrateTransformError):
    """Raised when a value cannot be cast to the requested type.

    Attributes:
        value_kind: Runtime kind of the offending value ("string", "array", ...)
        target: Requested target type name
    """

    def __init__(self, message: str, value_kind: Optional[str] = None, target: Optional[str] = None):
        super().__init__(message)
        self.value_kind = value_kind
        self.target = target


class ZipError(MigrateTransformError):
    """Raised when a zip configuration or its input is malformed.

    Attributes:
        details: Offending configuration values
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class ExtractionError(MigrateTransformError):
    """Raised when a path expression cannot be evaluated into a node list.

    Attributes:
        field_name: Field whose selector failed (if any)
        xpath: The failing path expression
    """

    def __init__(self, message: str, field_name: Optional[str] = None, xpath: Optional[str] = None):
        super().__init__(message)
        self.field_name = field_name
        self.xpath = xpath


class SourceNotFoundError(MigrateTransformError):
    """Raised when a document source cannot be found or read.

    Attributes:
        source: The source identifier that was not found
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class UnsupportedSourceError(MigrateTransformError):
    """Raised when a document is not well-formed XML or not handled by an adapter.

    Attributes:
        source: The source identifier that is unsupported
        adapter: The adapter that cannot handle the source
    """

    def __init__(self, message: str, source: Optional[str] = None, adapter: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.adapter = adapter


class SecurityError(MigrateTransformError):
    """Security violation while parsing a document (entities, limits)."""
    pass


# ============================================================================
# Record Source Port
# ============================================================================

class RecordSourcePort(ABC):
    """Abstract contract for adapters that turn documents into extracted records.

    Key Principles:
        - Streaming: Yields records one-by-one
        - Fail-safe: A bad item becomes a failure Result, not an exception
        - Document-level failures (missing file, malformed XML) still raise

    Example Usage:
        ```python
        source = XMLRecordSource(config_dict={"item_selector": "//obj", "fields": {...}})
        for result in source.read("export.xml"):
            ...
        ```
    """

    @abstractmethod
    def read(self, source: Any) -> Iterator[Result['ExtractedRecord']]:
        """Read a document and yield one Result per extracted record.

        Parameters:
            source: File path, raw XML bytes/str, or an already-parsed element

        Yields:
            Result[ExtractedRecord]: Success with the record, or failure details

        Raises:
            SourceNotFoundError: If the source file doesn't exist
            UnsupportedSourceError: If the source is not well-formed XML
            SecurityError: If the document violates parser security limits
        """
        pass

    @abstractmethod
    def can_read(self, source: str) -> bool:
        """Check if this adapter can handle the given source.

        Parameters:
            source: Source identifier to check

        Returns:
            bool: True if this adapter can handle the source, False otherwise
        """
        pass

    def get_source_info(self, source: str) -> Optional[dict]:
        """Get metadata about the source (optional, adapter-specific).

        Returns:
            Optional[dict]: Metadata dictionary, or None if unavailable
        """
        return None
