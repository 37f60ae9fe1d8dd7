"""
In-memory representation of a decoded workbook.

A workbook is a list of sheet names plus one sparse ``SheetGrid`` per sheet.
Grids are addressed with 0-based (row, column) tuples; an absent address means
the cell is empty.

Classes:
    CellType: Declared type of a decoded cell
    Cell: Immutable decoded cell (value, declared type, optional formula)
    SheetGrid: Sparse rectangular range of cells for one sheet
    Workbook: Ordered collection of sheet grids
"""

import datetime
from dataclasses import dataclass, field
from enum import Enum

from openpyxl.utils import get_column_letter


class CellType(str, Enum):
    NUMBER = 'number'
    DATE = 'date'
    BOOLEAN = 'boolean'
    STRING = 'string'
    STRING_FORMULA = 'string-formula'
    ERROR = 'error'


@dataclass(frozen=True)
class Cell:
    value: object
    cell_type: CellType = CellType.STRING
    number_format: str = 'General'
    raw_formula: str = None

    @classmethod
    def from_value(cls, value, number_format='General'):
        """
        Build a cell, deriving the declared type from the Python value.

        Examples:
            >>> Cell.from_value(30).cell_type
            <CellType.NUMBER: 'number'>
            >>> Cell.from_value(True).cell_type
            <CellType.BOOLEAN: 'boolean'>
        """
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            cell_type = CellType.BOOLEAN
        elif isinstance(value, (int, float)):
            cell_type = CellType.NUMBER
        elif isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
            cell_type = CellType.DATE
        else:
            cell_type = CellType.STRING
        return cls(value=value, cell_type=cell_type, number_format=number_format)


def column_letter(col_idx):
    """
    Convert a 0-based column index to its spreadsheet letter.

    Examples:
        >>> column_letter(0)
        'A'
        >>> column_letter(27)
        'AB'
    """
    return get_column_letter(col_idx + 1)


@dataclass
class SheetGrid:
    """
    Sparse grid of cells with a declared used range.

    Attributes:
        name: Sheet name
        cells: Mapping of (row, col) → Cell, both 0-based
        min_row, max_row, min_col, max_col: Inclusive used range
    """
    name: str
    cells: dict = field(default_factory=dict)
    min_row: int = 0
    max_row: int = -1
    min_col: int = 0
    max_col: int = -1

    @property
    def is_empty(self):
        return self.max_row < self.min_row or self.max_col < self.min_col

    def get(self, row, col):
        return self.cells.get((row, col))

    def column_range(self):
        return range(self.min_col, self.max_col + 1)

    def row_range(self, start=None):
        if start is None:
            start = self.min_row
        return range(start, self.max_row + 1)

    @classmethod
    def from_rows(cls, name, rows, start_row=0, start_col=0):
        """
        Build a grid from a list of row lists.

        ``None`` entries leave the address empty. The used range spans every
        row and column given, even when trailing cells are ``None``.

        Examples:
            >>> grid = SheetGrid.from_rows('Sheet1', [['Name', 'Age'], ['John', 30]])
            >>> grid.get(1, 1).value
            30
        """
        cells = {}
        width = 0
        for r, row in enumerate(rows):
            width = max(width, len(row))
            for c, value in enumerate(row):
                if value is None:
                    continue
                cell = value if isinstance(value, Cell) else Cell.from_value(value)
                cells[(start_row + r, start_col + c)] = cell

        if not rows or width == 0:
            return cls(name=name)

        return cls(
            name=name,
            cells=cells,
            min_row=start_row,
            max_row=start_row + len(rows) - 1,
            min_col=start_col,
            max_col=start_col + width - 1,
        )


@dataclass
class Workbook:
    sheet_names: list = field(default_factory=list)
    sheets: dict = field(default_factory=dict)

    def __getitem__(self, name):
        return self.sheets[name]
