"""
Workbook decoding (bytes → Workbook of sparse grids).

.xlsx/.xlsm files are read with openpyxl; legacy .xls (OLE2) files with xlrd.
Formula cells always carry the cached computed value; the formula text is
only kept when ``keep_formulas`` is requested.

Functions:
    decode_workbook: Main entry point
"""

import datetime
import io
import logging
import warnings
import zipfile

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException

from converters.config import XLS_SIGNATURE
from converters.errors import ParseFailureError
from models.grid import Cell, CellType, SheetGrid, Workbook

logger = logging.getLogger(__name__)

# Suppress openpyxl warnings about styles/formatting (we only read data values)
warnings.filterwarnings('ignore', category=UserWarning, module='openpyxl')


def _openpyxl_cell(cell, formula=None):
    value = cell.value
    if cell.data_type == 'e':
        cell_type = CellType.ERROR
    elif isinstance(value, bool) or cell.data_type == 'b':
        cell_type = CellType.BOOLEAN
    elif isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        cell_type = CellType.DATE
    elif isinstance(value, (int, float)):
        cell_type = CellType.NUMBER
    elif formula is not None:
        cell_type = CellType.STRING_FORMULA
    else:
        cell_type = CellType.STRING
        value = str(value)
    return Cell(value=value, cell_type=cell_type, number_format=cell.number_format, raw_formula=formula)


def _read_formulas(data):
    """Map sheet name → {(row, col): formula text} from a non-data_only load."""
    wb = openpyxl.load_workbook(io.BytesIO(data), data_only=False)
    formulas = {}
    for ws in wb.worksheets:
        sheet_formulas = {}
        for row in ws.iter_rows():
            for cell in row:
                if cell.data_type == 'f':
                    text = cell.value if isinstance(cell.value, str) else getattr(cell.value, 'text', None)
                    if text:
                        sheet_formulas[(cell.row - 1, cell.column - 1)] = text
        formulas[ws.title] = sheet_formulas
    wb.close()
    return formulas


def _decode_xlsx(data, keep_formulas):
    wb = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
    formulas = _read_formulas(data) if keep_formulas else {}

    workbook = Workbook()
    for ws in wb.worksheets:
        sheet_formulas = formulas.get(ws.title, {})
        cells = {}
        for row in ws.iter_rows():
            for cell in row:
                if cell.value is None:
                    continue
                address = (cell.row - 1, cell.column - 1)
                cells[address] = _openpyxl_cell(cell, sheet_formulas.get(address))

        if cells:
            grid = SheetGrid(
                name=ws.title,
                cells=cells,
                min_row=ws.min_row - 1,
                max_row=ws.max_row - 1,
                min_col=ws.min_column - 1,
                max_col=ws.max_column - 1,
            )
        else:
            grid = SheetGrid(name=ws.title)

        workbook.sheet_names.append(ws.title)
        workbook.sheets[ws.title] = grid
    wb.close()
    return workbook


def _xlrd_cell(book, cell):
    ctype = cell.ctype
    if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if ctype == xlrd.XL_CELL_NUMBER:
        value = cell.value
        if float(value).is_integer():
            value = int(value)
        return Cell(value=value, cell_type=CellType.NUMBER)
    if ctype == xlrd.XL_CELL_DATE:
        value = xlrd.xldate_as_datetime(cell.value, book.datemode)
        return Cell(value=value, cell_type=CellType.DATE)
    if ctype == xlrd.XL_CELL_BOOLEAN:
        return Cell(value=bool(cell.value), cell_type=CellType.BOOLEAN)
    if ctype == xlrd.XL_CELL_ERROR:
        return Cell(value=xlrd.error_text_from_code.get(cell.value, '#ERR'), cell_type=CellType.ERROR)
    return Cell(value=str(cell.value), cell_type=CellType.STRING)


def _decode_xls(data):
    book = xlrd.open_workbook(file_contents=data)
    workbook = Workbook()
    for sheet in book.sheets():
        cells = {}
        for r in range(sheet.nrows):
            for c in range(sheet.ncols):
                decoded = _xlrd_cell(book, sheet.cell(r, c))
                if decoded is not None:
                    cells[(r, c)] = decoded

        if cells:
            grid = SheetGrid(name=sheet.name, cells=cells, max_row=sheet.nrows - 1, max_col=sheet.ncols - 1)
        else:
            grid = SheetGrid(name=sheet.name)
        workbook.sheet_names.append(sheet.name)
        workbook.sheets[sheet.name] = grid
    return workbook


def decode_workbook(data, keep_formulas=False):
    """
    Decode workbook bytes into a Workbook of sparse grids.

    Args:
        data: Raw .xlsx or .xls file content
        keep_formulas: Record formula text on formula cells

    Returns:
        Workbook: Sheet names in workbook order plus one grid per sheet

    Raises:
        ParseFailureError: The bytes are not a readable workbook

    Example:
        with open('report.xlsx', 'rb') as f:
            workbook = decode_workbook(f.read())
        workbook.sheet_names  # ['Summary', 'Details']
    """
    data = bytes(data)
    try:
        if data.startswith(XLS_SIGNATURE):
            logger.debug("Decoding legacy .xls workbook (%d bytes)", len(data))
            return _decode_xls(data)
        logger.debug("Decoding .xlsx workbook (%d bytes)", len(data))
        return _decode_xlsx(data, keep_formulas)
    except (zipfile.BadZipFile, InvalidFileException, xlrd.XLRDError, KeyError, OSError) as exc:
        raise ParseFailureError(
            f"Unable to read workbook: {exc}",
            details={'size_bytes': len(data)},
        ) from exc
