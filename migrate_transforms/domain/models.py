"""Transform Configuration and Record Models.

This module defines the pydantic models exchanged with the enclosing
pipeline: zip configuration, extractor configuration, extracted records and
field-level change events.

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Configuration models are validated on construction; validation failures
      are converted into the domain error taxonomy by their factories
    - ExtractedRecord holds copied strings only, never live tree handles
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, ValidationError as PydanticValidationError

from migrate_transforms.domain.ports import ZipError
from migrate_transforms.domain.values import CoalesceMode

HASH_FIELD = "hash"
HASH_SUFFIX = "_hash"


class ZipSpec(BaseModel):
    """Configuration for the record zipper.

    Parameters:
        keys: Output keys in slot order (None = positional 0..n-1)
        coalesce: Optional rule collapsing each zipped row to a single value
    """

    keys: Optional[List[Any]] = Field(None, description="Output keys, one per input sequence")
    coalesce: CoalesceMode = Field(CoalesceMode.NONE, description="Row coalescing rule")

    @field_validator("keys", mode="before")
    @classmethod
    def validate_keys(cls, v: Any) -> Any:
        """Keys must be a real list; mappings and strings are rejected."""
        if v is None:
            return v
        if isinstance(v, tuple):
            return list(v)
        if not isinstance(v, list):
            raise ValueError(f"Keys for array_zip should be an array, but is '{type(v).__name__}'.")
        return v

    @field_validator("coalesce", mode="before")
    @classmethod
    def validate_coalesce(cls, v: Any) -> Any:
        if v is None:
            return CoalesceMode.NONE
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> 'ZipSpec':
        """Build a ZipSpec from a plugin-style configuration mapping.

        Parameters:
            config: Mapping with optional 'keys' and 'coalesce'

        Returns:
            ZipSpec: Validated configuration

        Raises:
            ZipError: If keys are not a list or the coalesce mode is unknown
        """
        config = config or {}
        if not isinstance(config, dict):
            raise ZipError(
                f"Configuration for array_zip should be a mapping, but is '{type(config).__name__}'.",
                details={"config": repr(config)}
            )
        try:
            return cls(**config)
        except PydanticValidationError as e:
            raise ZipError(
                f"Invalid array_zip configuration: {e.errors()[0]['msg']}",
                details={"validation_errors": str(e), **{k: repr(v) for k, v in config.items()}}
            )

    model_config = {
        'frozen': True,
    }


class ExtractorConfig(BaseModel):
    """Configuration for XML record extraction.

    Parameters:
        item_selector: XPath selecting one subtree per record (default: the document root)
        fields: Ordered mapping field name -> XPath, evaluated relative to each item
        namespaces: Extra prefix -> URI bindings for the selectors
        record_tag: Element tag of an item for streaming mode ("{uri}local" or "local")
    """

    item_selector: str = Field(".", description="XPath selecting record subtrees")
    fields: Dict[str, str] = Field(..., description="Field name -> XPath selector")
    namespaces: Dict[str, str] = Field(default_factory=dict, description="Prefix -> namespace URI")
    record_tag: Optional[str] = Field(None, description="Item element tag for streaming")

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Field selectors must be non-empty and must not shadow the record hash."""
        if not v:
            raise ValueError("Configuration 'fields' must not be empty")
        for field_name, xpath in v.items():
            if field_name == HASH_FIELD:
                raise ValueError(f"Field name '{HASH_FIELD}' is reserved for the record hash")
            if not xpath or not xpath.strip():
                raise ValueError(f"Field '{field_name}' has an empty selector")
        return v

    @field_validator("item_selector")
    @classmethod
    def validate_item_selector(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Configuration 'item_selector' must not be empty")
        return v.strip()

    @classmethod
    def from_file(cls, config_path: str) -> 'ExtractorConfig':
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If config_path doesn't exist
            json.JSONDecodeError: If config file is invalid JSON
            pydantic.ValidationError: If the configuration is invalid
        """
        config_path_obj = Path(config_path)
        if not config_path_obj.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path_obj, 'r', encoding='utf-8') as f:
            return cls(**json.load(f))

    model_config = {
        'frozen': True,
    }


class ExtractedRecord(BaseModel):
    """One record extracted from an XML subtree.

    Values and hashes are scalars for single matches and lists for multiple
    matches. Fields without any match are absent.

    Parameters:
        hash: Content hash of the whole matched subtree
        values: Field name -> trimmed text or self-contained XML fragment
        hashes: Field name -> content hash of each matched value
    """

    hash: str = Field(..., description="Content hash of the whole subtree")
    values: Dict[str, Any] = Field(default_factory=dict, description="Extracted field values")
    hashes: Dict[str, Any] = Field(default_factory=dict, description="Per-field content hashes")

    def to_row(self) -> Dict[str, Any]:
        """Flatten to the pipeline row layout.

        Returns:
            dict: {"hash": ..., field: value, field + "_hash": hash, ...}
                  in selector declaration order
        """
        row: Dict[str, Any] = {HASH_FIELD: self.hash}
        for field_name, value in self.values.items():
            row[field_name] = value
            row[field_name + HASH_SUFFIX] = self.hashes.get(field_name)
        return row

    def __getitem__(self, key: str) -> Any:
        return self.to_row()[key]

    def __contains__(self, key: str) -> bool:
        return key in self.to_row()

    model_config = {
        'frozen': True,
    }


class FieldChange(BaseModel):
    """A single field-level change between two extractions of the same record.

    Parameters:
        field_name: Name of the field that changed
        change_type: 'INSERT', 'UPDATE', or 'DELETE'
        old_hash: Field hash in the previous extraction (None for INSERT)
        new_hash: Field hash in the current extraction (None for DELETE)
    """

    field_name: str = Field(..., description="Name of the field that changed")
    change_type: str = Field(..., description="Type of change: INSERT, UPDATE, or DELETE")
    old_hash: Optional[Any] = Field(None, description="Previous field hash")
    new_hash: Optional[Any] = Field(None, description="Current field hash")

    @field_validator("change_type")
    @classmethod
    def validate_change_type(cls, v: str) -> str:
        if v not in ("INSERT", "UPDATE", "DELETE"):
            raise ValueError(f"Unsupported change type: {v}")
        return v

    def to_audit_dict(self) -> dict:
        """Convert to a flat dictionary for logging or persistence by the caller."""
        return {
            'field_name': self.field_name,
            'change_type': self.change_type,
            'old_hash': self._serialize_hash(self.old_hash),
            'new_hash': self._serialize_hash(self.new_hash),
        }

    def _serialize_hash(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, list):
            return json.dumps(value)
        return str(value)

    model_config = {
        'frozen': True,
    }
