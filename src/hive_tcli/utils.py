from __future__ import annotations

import logging
import uuid
from typing import Any, List, Optional, Sequence

from hive_tcli.exc import OperationalError

BIT_MASKS = [1, 2, 4, 8, 16, 32, 64, 128]

# TColumnValue / TColumn union members, in declaration order
COLUMN_VALUE_FIELDS = (
    "boolVal",
    "byteVal",
    "i16Val",
    "i32Val",
    "i64Val",
    "doubleVal",
    "stringVal",
    "binaryVal",
)

logger = logging.getLogger(__name__)


def guid_to_hex_id(guid: bytes) -> str:
    """Return a hexadecimal string instead of bytes

    Example:
        IN   b'\x01\xee\x1d)\xa4\x19\x1d\xb6\xa9\xc0\x8d\xf1\xfe\xbaB\xdd'
        OUT  '01ee1d29-a419-1db6-a9c0-8df1feba42dd'

    If conversion to hexadecimal fails, a string representation of the original
    bytes is returned
    """

    try:
        this_uuid = uuid.UUID(bytes=guid)
    except Exception as e:
        logger.debug("Unable to convert bytes to UUID: %r -- %s", guid, str(e))
        return str(guid)
    return str(this_uuid)


def _get_column_value(t_column_value) -> Any:
    """Unwrap the single populated member of a TColumnValue union."""
    for field in COLUMN_VALUE_FIELDS:
        wrapper = getattr(t_column_value, field, None)
        if wrapper is not None:
            return wrapper.value
    return None


def convert_row_based_set_to_rows(t_rows) -> List[List[Any]]:
    return [[_get_column_value(v) for v in t_row.colVals] for t_row in t_rows]


def _convert_column_to_list(t_col) -> List[Any]:
    for field in COLUMN_VALUE_FIELDS:
        wrapper = getattr(t_col, field, None)
        if wrapper:
            return _create_python_list(wrapper)

    raise OperationalError("Empty TColumn instance {}".format(t_col))


def _create_python_list(t_col_value_wrapper) -> List[Any]:
    result = list(t_col_value_wrapper.values)
    nulls = t_col_value_wrapper.nulls  # bitfield describing which values are null
    assert isinstance(nulls, bytes)

    # The number of bits in nulls can be both larger or smaller than the number of
    # elements in result, so take the minimum of both to iterate over.
    length = min(len(result), len(nulls) * 8)

    for i in range(length):
        if nulls[i >> 3] & BIT_MASKS[i & 0x7]:
            result[i] = None

    return result


def convert_column_based_set_to_rows(t_columns) -> List[List[Any]]:
    column_table = [_convert_column_to_list(c) for c in t_columns]
    return [list(row) for row in zip(*column_table)]


def convert_row_set_to_rows(t_row_set) -> List[List[Any]]:
    """Flatten a TRowSet into a list of raw value lists, one per row.

    Servers speaking protocol V6 or later answer with column-based sets; older
    ones with row-based sets. A missing row set is treated as an empty page.
    """
    if t_row_set is None:
        return []
    if t_row_set.columns:
        return convert_column_based_set_to_rows(t_row_set.columns)
    return convert_row_based_set_to_rows(t_row_set.rows or [])


def first_or_none(items: Optional[Sequence[Any]]) -> Optional[Any]:
    return items[0] if items else None
