"""
Removal of empty rows and empty columns.

A row holding nothing but an incidental index value (e.g. {'A': 3} or
{'#': 12}) is treated as empty, since spreadsheets often carry a numbering
column that outlives the data it numbered.

Functions:
    is_meaningful: Check whether a value counts as data
    looks_like_index: Check whether a key/value pair is an incidental index
    is_empty_row: Row emptiness test
    clean: Drop empty rows and columns
"""

import re

from .config import INDEX_COLUMN_NAMES

_NUMERIC_KEY_RE = re.compile(r'^[0-9]+$')
_LETTER_KEY_RE = re.compile(r'^[A-Z]$')


def is_meaningful(value):
    """
    True for any value other than None or a blank string.

    Examples:
        >>> is_meaningful(0)
        True
        >>> is_meaningful('   ')
        False
    """
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _is_positive_integer(value):
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    if isinstance(value, float):
        return value.is_integer() and value > 0
    return False


def looks_like_index(key, value):
    """
    Decide whether a single populated field is just a row index.

    Examples:
        >>> looks_like_index('A', 3)
        True
        >>> looks_like_index('RowNum', 12)
        True
        >>> looks_like_index('name', 3)
        False
        >>> looks_like_index('A', 'x')
        False
    """
    key = str(key)
    key_is_index = (
        bool(_NUMERIC_KEY_RE.match(key))
        or bool(_LETTER_KEY_RE.match(key))
        or key.lower() in INDEX_COLUMN_NAMES
    )
    return key_is_index and _is_positive_integer(value)


def is_empty_row(row, ignore_index_only_rows=True):
    meaningful = [(k, v) for k, v in row.items() if is_meaningful(v)]
    if not meaningful:
        return True
    if len(meaningful) == 1 and ignore_index_only_rows:
        key, value = meaningful[0]
        return looks_like_index(key, value)
    return False


def clean(rows, skip_empty_rows=True, skip_empty_columns=True, ignore_index_only_rows=True):
    """
    Drop empty rows, then drop columns that are empty in every remaining row.

    The input is not modified; new dicts are returned. Running ``clean`` on
    its own output returns an equal result.

    Args:
        rows: List of row records
        skip_empty_rows: Drop rows without meaningful data
        skip_empty_columns: Drop keys that never hold meaningful data
        ignore_index_only_rows: Treat rows holding only an index as empty

    Returns:
        list[dict]: Cleaned rows

    Examples:
        >>> clean([{'A': 1, 'name': 'x', 'note': None}, {'A': 2, 'name': None, 'note': None}])
        [{'A': 1, 'name': 'x'}]
    """
    if not rows:
        return []

    if skip_empty_rows:
        rows = [row for row in rows if not is_empty_row(row, ignore_index_only_rows)]

    if not skip_empty_columns:
        return [dict(row) for row in rows]

    # Union of keys in first-seen order
    all_keys = list(dict.fromkeys(key for row in rows for key in row))
    populated = {
        key for key in all_keys
        if any(is_meaningful(row.get(key)) for row in rows)
    }

    return [
        {key: value for key, value in row.items() if key in populated}
        for row in rows
    ]
