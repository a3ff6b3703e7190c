"""Dynamic Value Model.

This module defines the value model that flows through every transform:
plain Python scalars, lists and dicts, plus ObjectValue for map-like values
whose declared kind is "object" rather than "array".

Architecture:
    - Pure domain helpers with zero infrastructure dependencies
    - ObjectValue is storage-identical to a dict; the subclass only carries
      the object intent used when picking a cast target
    - Shape predicates are shared by the normalizer and the zipper so that
      "list" and "dict with keys 0..n-1" are treated interchangeably
"""

from enum import Enum
from typing import Any, Iterable, List, Union

from migrate_transforms.domain.ports import CoercionError, ZipError


class ObjectValue(dict):
    """A map-like value declared as an object.

    Behaves exactly like a dict for storage and lookup. Only cast-target
    selection looks at the distinction.
    """

    def __repr__(self) -> str:
        return f"ObjectValue({dict.__repr__(self)})"


class TargetType(str, Enum):
    """Target types accepted by the type normalizer."""
    ANYTHING = "anything"
    ARRAY = "array"
    OBJECT = "object"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"

    @classmethod
    def parse(cls, value: Union["TargetType", str]) -> "TargetType":
        """Resolve a configured target type, accepting the long aliases.

        Parameters:
            value: TargetType member or configuration string
                   (e.g. "string", "integer", "double", "boolean")

        Returns:
            TargetType: Resolved member

        Raises:
            CoercionError: If the name is not a known target type
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        name = _TARGET_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            raise CoercionError(
                f"Cannot cast to value_type '{value}'.",
                target=str(value)
            )


_TARGET_ALIASES = {
    "integer": "int",
    "double": "float",
    "boolean": "bool",
}


class CoalesceMode(str, Enum):
    """How the record zipper collapses each zipped row."""
    NONE = "none"
    FIRST_NON_NULL = "first_non_null"
    FIRST_NON_EMPTY = "first_non_empty"

    @classmethod
    def parse(cls, value: Union["CoalesceMode", str, None]) -> "CoalesceMode":
        """Resolve a configured coalesce mode; None means no coalescing.

        Raises:
            ZipError: If the mode is not recognized
        """
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ZipError(
                f"Unknown coalesce mode '{value}' for array_zip. "
                f"Supported: {[m.value for m in cls]}",
                details={"coalesce": value}
            )


def is_empty(value: Any) -> bool:
    """Universal falsy rule used for every short-circuit.

    None, empty strings, numeric zero, False and empty containers are empty.
    An ObjectValue is never empty.
    """
    if isinstance(value, ObjectValue):
        return False
    return not value


def is_object(value: Any) -> bool:
    return isinstance(value, ObjectValue)


def is_container(value: Any) -> bool:
    """True for list/map-shaped values (lists, tuples, plain dicts).

    ObjectValue is not a container here: it takes the scalar path of the
    normalizer, mirroring an object being distinct from an array.
    """
    if isinstance(value, ObjectValue):
        return False
    return isinstance(value, (list, tuple, dict))


def is_list_shaped(value: Any) -> bool:
    """True if the value's keys form the contiguous range 0..n-1 in order."""
    if isinstance(value, (list, tuple)):
        return True
    if isinstance(value, dict) and not isinstance(value, ObjectValue):
        return list(value.keys()) == list(range(len(value)))
    return False


def has_key(container: Any, key: Any) -> bool:
    """Key lookup that treats lists as maps keyed 0..n-1."""
    if isinstance(container, (list, tuple)):
        return isinstance(key, int) and not isinstance(key, bool) and 0 <= key < len(container)
    if isinstance(container, dict):
        return key in container
    return False


def element_values(container: Any) -> Iterable[Any]:
    if isinstance(container, dict):
        return container.values()
    return container


def as_list(value: Any) -> List[Any]:
    """Return a list-shaped value's elements as a new list."""
    if isinstance(value, dict):
        return list(value.values())
    return list(value)


def kind_of(value: Any) -> str:
    """Runtime kind name used in error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "double"
    if isinstance(value, str):
        return "string"
    if isinstance(value, ObjectValue):
        return "object"
    if isinstance(value, (list, tuple, dict)):
        return "array"
    return type(value).__name__
