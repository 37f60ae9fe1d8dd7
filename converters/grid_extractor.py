"""
Sheet grid → row records.

Walks the used range of a decoded sheet, resolves headers, and emits one dict
per data row:
    1. Resolve headers (with the column-letter second pass)
    2. For each data row, read every column in range
    3. Coerce dates and booleans, apply the value transformer
    4. Keep rows with data (or every row when skip_empty_rows is off)

Functions:
    extract_sheet: Main entry point for one sheet
    coerce_cell_value: Value a single cell contributes to its row
"""

import datetime
import logging

from models.grid import CellType

from .config import SHEET_NAME_FIELD
from .dates import excel_serial_to_datetime, format_date, is_date_number_format
from .header_resolver import resolve_sheet_headers
from .options import normalize_config

logger = logging.getLogger(__name__)


def _is_date_cell(cell):
    if cell.cell_type == CellType.DATE:
        return True
    return cell.cell_type == CellType.NUMBER and is_date_number_format(cell.number_format)


def coerce_cell_value(cell, date_format):
    """
    Compute the value a present cell contributes to its row record.

    Formula cells contribute their decoder-computed value. Date cells (or
    numbers with a date display format) are rendered with ``date_format``;
    boolean cells become real bools.

    Args:
        cell: Cell from the grid
        date_format: Pattern for date rendering, e.g. 'DD/MM/YYYY'

    Returns:
        Coerced value

    Examples:
        >>> from models.grid import Cell, CellType
        >>> coerce_cell_value(Cell.from_value(datetime.date(2024, 1, 5)), 'DD/MM/YYYY')
        '05/01/2024'
        >>> coerce_cell_value(Cell(45306, CellType.NUMBER, 'yyyy-mm-dd'), 'YYYY-MM-DD')
        '2024-01-15'
    """
    value = cell.value

    if _is_date_cell(cell) and value is not None:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = excel_serial_to_datetime(value)
        if isinstance(value, (datetime.datetime, datetime.date)):
            return format_date(value, date_format)
        if isinstance(value, datetime.time):
            return value.isoformat()
        return value

    if cell.cell_type == CellType.BOOLEAN:
        return bool(value)

    return value


def _has_value(value):
    return value is not None and value != ''


def extract_sheet(grid, sheet_name=None, config=None):
    """
    Extract row records from a sheet grid.

    Args:
        grid: SheetGrid to read
        sheet_name: Name used for the ``_sheet`` field (defaults to grid.name)
        config: ConversionConfig, dict, or None

    Returns:
        list[dict]: Row records. Every record has the same keys; missing
        cells are None.

    Examples:
        >>> from models.grid import SheetGrid
        >>> grid = SheetGrid.from_rows('People', [['Name', 'Age'], ['John', 30], ['Jane', 25]])
        >>> extract_sheet(grid)
        [{'Name': 'John', 'Age': 30}, {'Name': 'Jane', 'Age': 25}]
    """
    config = normalize_config(config)
    sheet_name = sheet_name if sheet_name is not None else grid.name

    if grid.is_empty:
        logger.debug("Sheet '%s' is empty", sheet_name)
        return []

    resolution = resolve_sheet_headers(grid, config.header_row_index)
    headers = resolution.headers
    transform = config.value_transformer

    records = []
    for row in grid.row_range(resolution.data_start_row):
        record = {}
        has_data = False

        for col, header in headers.items():
            cell = grid.get(row, col)
            if cell is None:
                record[header] = None
                continue

            value = coerce_cell_value(cell, config.date_format)
            if transform is not None:
                value = transform(value, header)

            record[header] = value
            if _has_value(value):
                has_data = True

        if has_data or not config.skip_empty_rows:
            if config.include_sheet_name:
                record[SHEET_NAME_FIELD] = sheet_name
            records.append(record)

    logger.debug(
        "Sheet '%s': %d rows extracted (headers on row %s, data from row %d)",
        sheet_name, len(records), resolution.header_row, resolution.data_start_row,
    )
    return records
