"""Domain layer for migrate-transforms.

This module contains the value model, the transform configuration and record
models, the error taxonomy and the transform services. Domain models are
pure Python plus Pydantic; XML trees are lxml elements.
"""

from .models import ExtractedRecord, ExtractorConfig, FieldChange, ZipSpec
from .values import CoalesceMode, ObjectValue, TargetType

__all__ = [
    "CoalesceMode",
    "ExtractedRecord",
    "ExtractorConfig",
    "FieldChange",
    "ObjectValue",
    "TargetType",
    "ZipSpec",
]
