"""Record Zipper Service.

Zips two or more parallel value sequences into a list of keyed records.

For example, with keys ['number', 'letter']:
    [[1, 2, 3], ['a', 'b', 'c']]
becomes
    [{'number': 1, 'letter': 'a'},
     {'number': 2, 'letter': 'b'},
     {'number': 3, 'letter': 'c'}]

Bare values only contribute to the first record, so ['first', 'second']
becomes [{'number': 'first', 'letter': 'second'}]. Associative sources can be
joined by field name: [{'number': 1}, {'letter': 'a'}] becomes
[{'number': 1, 'letter': 'a'}]. Sources beyond the number of keys are not used.

With a coalesce mode, each record is reduced to a single value: the first
non-null (or first non-empty) value in key order.

Architecture:
    - Pure function of (sequences, spec); output values are copies
    - Row building is a counted loop that stops at the first row to which no
      source contributes, so every configuration terminates
"""

import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from migrate_transforms.domain.models import ZipSpec
from migrate_transforms.domain.ports import ZipError
from migrate_transforms.domain.values import (
    CoalesceMode,
    as_list,
    has_key,
    is_container,
    is_empty,
    is_list_shaped,
    kind_of,
)

logger = logging.getLogger(__name__)


def _first_non_null(row: Dict[Any, Any]) -> Any:
    for value in row.values():
        if value is not None:
            return value
    return None


def _first_non_empty(row: Dict[Any, Any]) -> Any:
    for value in row.values():
        if not is_empty(value):
            return value
    return None


_COALESCERS: Dict[CoalesceMode, Callable[[Dict[Any, Any]], Any]] = {
    CoalesceMode.FIRST_NON_NULL: _first_non_null,
    CoalesceMode.FIRST_NON_EMPTY: _first_non_empty,
}


def _lookup(source: Any, index: int, key: Any, by_name: bool) -> tuple:
    """Find the value a source contributes to row `index`.

    Returns:
        tuple: (found, value)
    """
    if not is_container(source) and not isinstance(source, dict):
        # Bare values are used up by the first row.
        if index == 0:
            return True, source
        return False, None

    if has_key(source, index):
        return True, source[index]
    # Associative sources are matched by output key, once.
    if by_name and index == 0 and isinstance(source, dict) and key in source:
        return True, source[key]
    return False, None


def zip_sequences(
    sequences: Any,
    spec: Union[ZipSpec, Dict[str, Any], None] = None
) -> Optional[List[Any]]:
    """Zip parallel sequences into keyed records.

    Parameters:
        sequences: List-shaped value whose elements are the sources
                   (each a bare value, a list, or a keyed map)
        spec: ZipSpec or configuration mapping {'keys': [...], 'coalesce': ...}

    Returns:
        Optional[List]: None for empty input; otherwise one dict per row
                        (or one value per row when coalescing)

    Raises:
        ZipError: If sequences is not list-shaped, keys is not a list, or the
                  coalesce mode is unknown

    Example:
        ```python
        zip_sequences([[1, 2], ["a", "b"]], {"keys": ["number", "letter"]})
        # [{'number': 1, 'letter': 'a'}, {'number': 2, 'letter': 'b'}]
        ```
    """
    # Only process non-empty values.
    if is_empty(sequences):
        return None
    if not isinstance(spec, ZipSpec):
        spec = ZipSpec.from_config(spec)
    if not is_list_shaped(sequences):
        raise ZipError(
            f"Source for array_zip should be an array, but is '{kind_of(sequences)}'.",
            details={"type": type(sequences).__name__}
        )

    sources = as_list(sequences)
    by_name = spec.keys is not None
    keys = spec.keys if by_name else list(range(len(sources)))

    output: List[Any] = []
    index = 0
    while True:
        row: Dict[Any, Any] = {}
        for slot, key in enumerate(keys):
            if slot >= len(sources) or sources[slot] is None:
                continue
            found, value = _lookup(sources[slot], index, key, by_name)
            if found:
                row[key] = copy.deepcopy(value)
        if not row:
            break
        output.append(row)
        index += 1

    logger.debug(f"Zipped {len(sources)} sources into {len(output)} rows")

    if spec.coalesce != CoalesceMode.NONE:
        coalescer = _COALESCERS[spec.coalesce]
        return [coalescer(row) for row in output]
    return output


class RecordZipper:
    """Configured zip step ("array_zip").

    Parameters:
        keys: Output keys, one per source (optional)
        coalesce: "none", "first_non_null" or "first_non_empty" (optional)

    Raises:
        ZipError: If the configuration is invalid
    """

    def __init__(self, keys: Optional[List[Any]] = None, coalesce: Union[CoalesceMode, str, None] = None):
        config: Dict[str, Any] = {}
        if keys is not None:
            config['keys'] = keys
        if coalesce is not None:
            config['coalesce'] = coalesce
        self.spec = ZipSpec.from_config(config)

    def transform(self, sequences: Any) -> Optional[List[Any]]:
        return zip_sequences(sequences, self.spec)

    __call__ = transform
