"""Tests for extract_sheet and cell coercion."""

import datetime
import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from converters.grid_extractor import coerce_cell_value, extract_sheet
from models.grid import Cell, CellType, SheetGrid


@pytest.fixture
def people_grid():
    return SheetGrid.from_rows('People', [
        ['Name', 'Age'],
        ['John', 30],
        ['Jane', 25],
    ])


class TestCoerceCellValue:
    """Test per-cell value coercion."""

    def test_date_cell_formatted(self):
        """Test date cells use the configured pattern."""
        cell = Cell.from_value(datetime.datetime(2024, 1, 5, 10, 30))
        assert coerce_cell_value(cell, 'DD/MM/YYYY') == '05/01/2024'
        assert coerce_cell_value(cell, 'YYYY-MM-DD HH:mm') == '2024-01-05 10:30'

    def test_numeric_date_format(self):
        """Test numbers with a date display format are converted from serials."""
        cell = Cell(value=45306, cell_type=CellType.NUMBER, number_format='yyyy-mm-dd')
        assert coerce_cell_value(cell, 'YYYY-MM-DD') == '2024-01-15'

    def test_plain_number_untouched(self):
        """Test general-format numbers stay numbers."""
        cell = Cell(value=45306, cell_type=CellType.NUMBER)
        assert coerce_cell_value(cell, 'DD/MM/YYYY') == 45306

    def test_boolean(self):
        """Test boolean cells become bools."""
        cell = Cell(value=1, cell_type=CellType.BOOLEAN)
        assert coerce_cell_value(cell, 'DD/MM/YYYY') is True

    def test_formula_uses_computed_value(self):
        """Test formula cells contribute the decoder's computed value."""
        cell = Cell(value=42, cell_type=CellType.NUMBER, raw_formula='=6*7')
        assert coerce_cell_value(cell, 'DD/MM/YYYY') == 42


class TestExtractSheet:
    """Test extract_sheet."""

    def test_name_age_example(self, people_grid):
        """Test the basic end-to-end example with defaults."""
        assert extract_sheet(people_grid) == [
            {'Name': 'John', 'Age': 30},
            {'Name': 'Jane', 'Age': 25},
        ]

    def test_missing_cells_are_none(self):
        """Test every row has the same keys."""
        grid = SheetGrid.from_rows('S', [['a', 'b', 'c'], [1, None, 3], [None, 2, None]])
        rows = extract_sheet(grid)
        assert rows == [{'a': 1, 'b': None, 'c': 3}, {'a': None, 'b': 2, 'c': None}]

    def test_empty_rows_skipped(self):
        """Test rows without values are dropped by default."""
        grid = SheetGrid.from_rows('S', [['a'], [1], [None], [''], [2]])
        assert extract_sheet(grid) == [{'a': 1}, {'a': 2}]

    def test_empty_rows_kept(self):
        """Test skip_empty_rows=False keeps every row."""
        grid = SheetGrid.from_rows('S', [['a'], [1], [None], [2]])
        rows = extract_sheet(grid, config={'skip_empty_rows': False})
        assert rows == [{'a': 1}, {'a': None}, {'a': 2}]

    def test_include_sheet_name(self, people_grid):
        """Test the _sheet field is injected."""
        rows = extract_sheet(people_grid, config={'include_sheet_name': True})
        assert all(row['_sheet'] == 'People' for row in rows)

    def test_sheet_name_override(self, people_grid):
        """Test an explicit sheet name wins over the grid name."""
        rows = extract_sheet(people_grid, 'Staff', {'include_sheet_name': True})
        assert rows[0]['_sheet'] == 'Staff'

    def test_value_transformer(self, people_grid):
        """Test the value hook receives the resolved header."""
        seen = []

        def transform(value, header):
            seen.append(header)
            return value.upper() if isinstance(value, str) else value

        rows = extract_sheet(people_grid, config={'value_transformer': transform})
        assert rows[0] == {'Name': 'JOHN', 'Age': 30}
        assert set(seen) == {'Name', 'Age'}

    def test_column_letter_misexport(self):
        """Test data starts two rows below a letter-header row."""
        grid = SheetGrid.from_rows('S', [
            ['A', 'B'],
            ['Name', 'Age'],
            ['John', 30],
        ])
        assert extract_sheet(grid) == [{'Name': 'John', 'Age': 30}]

    def test_no_header_row(self):
        """Test header_row_index=None keys by column letter."""
        grid = SheetGrid.from_rows('S', [['John', 30], ['Jane', 25]])
        rows = extract_sheet(grid, config={'header_row_index': None})
        assert rows == [{'A': 'John', 'B': 30}, {'A': 'Jane', 'B': 25}]

    def test_offset_grid(self):
        """Test a used range that does not start at A1."""
        grid = SheetGrid.from_rows('S', [['Name'], ['John']], start_row=2, start_col=1)
        assert extract_sheet(grid, config={'header_row_index': 2}) == [{'Name': 'John'}]

    def test_empty_grid(self):
        """Test an empty sheet yields no rows."""
        assert extract_sheet(SheetGrid(name='Empty')) == []

    def test_header_only(self):
        """Test a sheet with headers but no data."""
        grid = SheetGrid.from_rows('S', [['a', 'b']])
        assert extract_sheet(grid) == []

    def test_dates_in_rows(self):
        """Test date cells are formatted inside rows."""
        grid = SheetGrid.from_rows('S', [['when'], [datetime.date(2024, 3, 7)]])
        assert extract_sheet(grid, config={'date_format': 'YYYY/MM/DD'}) == [{'when': '2024/03/07'}]

    def test_column_letter_misexport_with_blank_columns(self):
        """Test the letter-row check ignores blank header cells."""
        grid = SheetGrid.from_rows('S', [
            ['A', 'B', None, None],
            ['Name', 'Age', None, None],
            ['John', 30, None, 'note'],
        ])
        assert extract_sheet(grid) == [
            {'Name': 'John', 'Age': 30, 'Empty_Header_C': None, 'Empty_Header_D': 'note'},
        ]
