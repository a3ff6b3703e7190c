"""Type Normalizer Service.

Coerces one pipeline value into an array-wrapped, typed form for the
destination store. A bare value is wrapped in a one-element list; a value
that is already list/map-shaped keeps its shape and has its elements cast.

For example, with target "string":
    'test1'            -> ['test1']
    ['test1']          -> ['test1']        (untouched)
and with target "array":
    ['test1']          -> [['test1']]
    {'a': 1}           -> [{'a': 1}]

Empty values (see values.is_empty) always yield None, whatever the target.

Architecture:
    - Pure function of (value, target); inputs are never mutated and
      containers in the result are fresh copies
    - Dispatch on TargetType with explicit branches for every value shape
"""

import copy
import logging
import math
from typing import Any, Callable, Dict, Union

from migrate_transforms.domain.ports import CoercionError
from migrate_transforms.domain.values import (
    ObjectValue,
    TargetType,
    element_values,
    has_key,
    is_container,
    is_empty,
    is_object,
    kind_of,
)

logger = logging.getLogger(__name__)

SCALAR_TARGETS = (TargetType.STRING, TargetType.INT, TargetType.FLOAT, TargetType.BOOL)


def _cast_failure(value: Any, target: TargetType) -> CoercionError:
    kind = kind_of(value)
    return CoercionError(
        f"Value '{_preview(value)}' of type '{kind}' cannot be cast to type '{target.value}'.",
        value_kind=kind,
        target=target.value
    )


def _preview(value: Any, max_length: int = 80) -> str:
    text = repr(value) if is_container(value) or is_object(value) else str(value)
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def _parse_number(text: str) -> Union[int, float, None]:
    stripped = text.strip()
    if not stripped:
        return None
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        return float(stripped)
    except ValueError:
        return None


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (int, str)):
        return str(value)
    raise _cast_failure(value, TargetType.STRING)


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise _cast_failure(value, TargetType.INT)
        return int(value)
    if isinstance(value, str):
        number = _parse_number(value)
        if number is None or (isinstance(number, float) and not math.isfinite(number)):
            raise _cast_failure(value, TargetType.INT)
        return int(number)
    raise _cast_failure(value, TargetType.INT)


def _to_float(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, (bool, int, float)):
        return float(value)
    if isinstance(value, str):
        number = _parse_number(value)
        if number is None:
            raise _cast_failure(value, TargetType.FLOAT)
        return float(number)
    raise _cast_failure(value, TargetType.FLOAT)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str) and value == "0":
        return False
    return not is_empty(value)


def _to_array(value: Any) -> Any:
    """Cast an object to a plain map; containers are copied unchanged."""
    if is_object(value):
        return copy.deepcopy(dict(value))
    if is_container(value):
        return copy.deepcopy(value)
    raise _cast_failure(value, TargetType.ARRAY)


def _to_object(value: Any) -> ObjectValue:
    """Cast a container to an object; list positions become integer keys."""
    if isinstance(value, dict) and not is_object(value):
        return ObjectValue(copy.deepcopy(value))
    if isinstance(value, (list, tuple)):
        return ObjectValue(enumerate(copy.deepcopy(list(value))))
    raise _cast_failure(value, TargetType.OBJECT)


_CASTS: Dict[TargetType, Callable[[Any], Any]] = {
    TargetType.STRING: _to_string,
    TargetType.INT: _to_int,
    TargetType.FLOAT: _to_float,
    TargetType.BOOL: _to_bool,
    TargetType.ARRAY: _to_array,
    TargetType.OBJECT: _to_object,
}


def cast_value(value: Any, target: Union[TargetType, str]) -> Any:
    """Cast a single element to the target type.

    Parameters:
        value: Element to cast
        target: Any target except "anything"

    Returns:
        Any: The cast value

    Raises:
        CoercionError: If the element cannot be cast
    """
    target = TargetType.parse(target)
    if target == TargetType.ANYTHING:
        return copy.deepcopy(value)
    return _CASTS[target](value)


def _map_elements(container: Any, cast: Callable[[Any], Any]) -> Any:
    """Apply cast to every element, preserving container type and keys."""
    if isinstance(container, dict):
        return {k: cast(v) for k, v in container.items()}
    return [cast(v) for v in container]


def _normalize_container(value: Any, target: TargetType) -> Any:
    if target == TargetType.ANYTHING:
        return copy.deepcopy(value)

    if target == TargetType.ARRAY:
        if not has_key(value, 0):
            # Associative map: wrap it.
            return [copy.deepcopy(value)]
        elements = list(element_values(value))
        if all(is_object(v) for v in elements):
            return _map_elements(value, _to_array)
        if all(is_container(v) for v in elements):
            return copy.deepcopy(value)
        return [copy.deepcopy(value)]

    if target == TargetType.OBJECT:
        for v in element_values(value):
            if not is_container(v):
                kind = kind_of(v)
                raise CoercionError(
                    f"Value '{_preview(value)}' contains an element of type '{kind}' "
                    f"and is not cast to object.",
                    value_kind=kind,
                    target=target.value
                )
        return _map_elements(value, _to_object)

    return _map_elements(value, _CASTS[target])


def _normalize_scalar(value: Any, target: TargetType) -> Any:
    kind = kind_of(value)

    if target == TargetType.ANYTHING:
        return copy.deepcopy(value)

    if target == TargetType.ARRAY:
        if not is_object(value):
            raise CoercionError(
                f"Value '{_preview(value)}' of type '{kind}' is not cast to array.",
                value_kind=kind,
                target=target.value
            )
        return _to_array(value)

    if target == TargetType.OBJECT:
        # Only list/map-shaped values cast to object, and those never reach
        # this branch: an object target on a bare value always fails.
        raise CoercionError(
            f"Value '{_preview(value)}' of type '{kind}' is not cast to object.",
            value_kind=kind,
            target=target.value
        )

    return _CASTS[target](value)


def normalize(value: Any, target: Union[TargetType, str] = TargetType.ANYTHING) -> Any:
    """Coerce a value into its array-wrapped, typed form.

    Parameters:
        value: Any pipeline value (scalar, list, dict, ObjectValue)
        target: Target type or its configuration name
                ("anything", "array", "object", "string", "int"/"integer",
                "float"/"double", "bool"/"boolean")

    Returns:
        Any: None for empty input; for list/map-shaped input the cast
             container; for a bare value a one-element list

    Raises:
        CoercionError: If the target is unknown or a value cannot be cast

    Example:
        ```python
        normalize("5", "int")             # [5]
        normalize(["1", "2"], "int")      # [1, 2]
        normalize({"a": 1}, "array")      # [{"a": 1}]
        normalize("", "array")            # None
        ```
    """
    # Only process non-empty values.
    if is_empty(value):
        return None

    target = TargetType.parse(target)

    if is_container(value):
        result = _normalize_container(value, target)
    else:
        result = [_normalize_scalar(value, target)]

    logger.debug(f"Normalized {kind_of(value)} value to target '{target.value}'")
    return result


class TypeNormalizer:
    """Configured normalization step ("array_with_value").

    Parameters:
        value_type: Target type name; defaults to "anything"

    Example:
        ```python
        step = TypeNormalizer(value_type="string")
        step.transform(42)  # ['42']
        ```
    """

    def __init__(self, value_type: Union[TargetType, str] = TargetType.ANYTHING):
        self.value_type = value_type

    def transform(self, value: Any) -> Any:
        return normalize(value, self.value_type)

    __call__ = transform
