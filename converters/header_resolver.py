"""
Header resolution for sheet and CSV columns.

Turns raw header cell text into clean, unique keys, and detects the
"column letters as headers" artifact some spreadsheet exports produce:

    Row 0:  A      B      C        <- exported column letters
    Row 1:  Name   Age    City     <- the real headers
    Row 2:  John   30     Paris    <- first data row

Functions:
    resolve_header: Clean one header cell (placeholder if absent/blank)
    normalize_header: Canonical form used to compare headers
    ensure_unique_headers: Suffix repeated headers with _1, _2, ...
    resolve_sheet_headers: Build the column → header map for a sheet
"""

import itertools
import logging
import re
from dataclasses import dataclass
from functools import reduce

from models.grid import column_letter

from .config import COLUMN_LETTER_PATTERN, COLUMN_LETTER_RATIO, EMPTY_HEADER_PREFIX

logger = logging.getLogger(__name__)

_COLUMN_LETTER_RE = re.compile(COLUMN_LETTER_PATTERN)
_placeholder_ids = itertools.count(1)


@dataclass(frozen=True)
class HeaderResolution:
    """
    Result of resolving one sheet's headers.

    Attributes:
        headers: Mapping of 0-based column index → header key
        header_row: Row the headers were read from (None if no header row)
        data_start_row: First row holding data
    """
    headers: dict
    header_row: int
    data_start_row: int


def resolve_header(raw, position=None):
    """
    Clean a raw header value.

    Line breaks become single spaces and surrounding whitespace is stripped.
    Absent or blank headers get an ``Empty_Header_<id>`` placeholder; when a
    position (e.g. column letter) is given it is used as the id.

    Args:
        raw: Header cell value (any type) or None
        position: Optional stable identifier for placeholders

    Returns:
        str: Resolved header

    Examples:
        >>> resolve_header('  Order\\nDate ')
        'Order Date'
        >>> resolve_header(None, position='C')
        'Empty_Header_C'
        >>> resolve_header(2024)
        '2024'
    """
    text = '' if raw is None else str(raw)
    text = re.sub(r'\s*(\r\n|\n|\r)\s*', ' ', text).strip()
    if text:
        return text

    ident = position if position is not None else next(_placeholder_ids)
    return f"{EMPTY_HEADER_PREFIX}{ident}"


def normalize_header(header):
    """
    Canonical form of a header for duplicate detection.

    Examples:
        >>> normalize_header('Unit Price ($)')
        'unit_price'
        >>> normalize_header('Name')
        'name'
    """
    text = str(header).lower()
    text = re.sub(r'[^\w\s]', '_', text)
    text = re.sub(r'\s+', '_', text)
    text = re.sub(r'_+', '_', text)
    return text.strip('_')


def _unique_step(state, header):
    seen_counts, used, ordered = state
    key = normalize_header(header)
    count = seen_counts.get(key, 0)

    candidate = header if count == 0 else f"{header}_{count}"
    # A suffixed name may collide with a literal header such as 'name_1'
    while candidate in used:
        count += 1
        candidate = f"{header}_{count}"

    return (
        {**seen_counts, key: count + 1},
        used | {candidate},
        ordered + (candidate,),
    )


def ensure_unique_headers(headers):
    """
    Make headers unique by suffixing repeats with their occurrence index.

    Headers that normalize to the same key count as repeats. The first
    occurrence is left untouched.

    Args:
        headers: Sequence of header strings

    Returns:
        list[str]: Unique headers, same length and order

    Examples:
        >>> ensure_unique_headers(['name', 'name'])
        ['name', 'name_1']
        >>> ensure_unique_headers(['Name', 'name', 'age'])
        ['Name', 'name_1', 'age']
    """
    _, _, ordered = reduce(_unique_step, headers, ({}, frozenset(), ()))
    return list(ordered)


def _read_header_row(grid, row):
    """Resolve one row's headers; also return the ones read from non-blank cells."""
    columns = list(grid.column_range())
    resolved = []
    given = []
    for col in columns:
        cell = grid.get(row, col)
        raw = cell.value if cell is not None else None
        header = resolve_header(raw, position=column_letter(col))
        resolved.append(header)
        if raw is not None and str(raw).strip():
            given.append(header)
    return columns, resolved, given


def _looks_like_column_letters(headers):
    # Placeholders for blank cells do not count either way
    if not headers:
        return False
    letters = sum(1 for h in headers if _COLUMN_LETTER_RE.match(h))
    return letters / len(headers) > COLUMN_LETTER_RATIO


def resolve_sheet_headers(grid, header_row_index):
    """
    Resolve the header map of a sheet.

    When more than 70% of the headers read from non-blank cells are bare
    column letters ("A", "AB"), the row is treated as an export artifact:
    the headers are re-read from the next row and data starts two rows
    after ``header_row_index``.

    Args:
        grid: SheetGrid
        header_row_index: 0-based header row, or None to key columns by letter

    Returns:
        HeaderResolution

    Examples:
        >>> from models.grid import SheetGrid
        >>> grid = SheetGrid.from_rows('S', [['name', 'name'], ['a', 'b']])
        >>> list(resolve_sheet_headers(grid, 0).headers.values())
        ['name', 'name_1']
    """
    if header_row_index is None:
        headers = {col: column_letter(col) for col in grid.column_range()}
        return HeaderResolution(headers=headers, header_row=None, data_start_row=grid.min_row)

    header_row = header_row_index
    data_start_row = header_row_index + 1
    columns, resolved, given = _read_header_row(grid, header_row)

    if _looks_like_column_letters(given):
        logger.debug(
            "Sheet '%s': row %d holds column letters, reading headers from row %d",
            grid.name, header_row, header_row + 1,
        )
        header_row = header_row_index + 1
        data_start_row = header_row_index + 2
        columns, resolved, _ = _read_header_row(grid, header_row)

    headers = dict(zip(columns, ensure_unique_headers(resolved)))
    return HeaderResolution(headers=headers, header_row=header_row, data_start_row=data_start_row)
