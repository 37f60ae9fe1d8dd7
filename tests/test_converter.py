"""Tests for the SpreadsheetConverter pipeline."""

import datetime
import io
import pytest
import sys
import os
from unittest.mock import MagicMock

import openpyxl

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from converters import (
    ConversionFailureError,
    ConversionState,
    InvalidInputError,
    NoSheetsFoundError,
    ParseFailureError,
    SpreadsheetConverter,
    ValidationFailureError,
    convert_to_json,
)
from converters.orchestrator import select_sheets
from converters.validator import create_schema_validator
from models.grid import SheetGrid, Workbook
from services.monitor import StaticPerformanceMonitor

FAKE_XLSX = b"PK\x03\x04fake workbook"


def make_workbook(sheets):
    """Build a Workbook from {name: rows} (insertion order kept)."""
    workbook = Workbook()
    for name, rows in sheets.items():
        workbook.sheet_names.append(name)
        workbook.sheets[name] = SheetGrid.from_rows(name, rows)
    return workbook


@pytest.fixture
def three_sheets():
    return make_workbook({
        'People': [['Name', 'Age'], ['John', 30], ['Jane', 25]],
        'Cities': [['City', 'Country'], ['Oslo', 'NO']],
        'Empty': [],
    })


def converter_for(workbook, config=None, **kwargs):
    decoder = MagicMock(return_value=workbook)
    return SpreadsheetConverter(config, decoder=decoder, **kwargs), decoder


class TestSelectSheets:
    """Test sheet selection resolution."""

    def test_first_and_all(self):
        """Test the two keywords."""
        assert select_sheets('first', ['a', 'b']) == ['a']
        assert select_sheets('all', ['a', 'b']) == ['a', 'b']

    def test_names_keep_caller_order(self):
        """Test names are intersected in caller order."""
        assert select_sheets(('b', 'zzz', 'a'), ['a', 'b', 'c']) == ['b', 'a']

    def test_indices(self):
        """Test out-of-range indices are dropped."""
        assert select_sheets((2, 7, 0), ['a', 'b', 'c']) == ['c', 'a']

    def test_repeats_removed(self):
        """Test a sheet is never selected twice."""
        assert select_sheets(('a', 0), ['a', 'b']) == ['a']

    def test_nothing_matches(self):
        """Test an empty resolution is fatal."""
        with pytest.raises(NoSheetsFoundError):
            select_sheets(('missing',), ['a'])
        with pytest.raises(NoSheetsFoundError):
            select_sheets('first', [])


class TestConvertCsv:
    """Test the CSV path."""

    @pytest.mark.asyncio
    async def test_csv_text(self):
        """Test CSV text converts to a single array."""
        converter = SpreadsheetConverter()
        result = await converter.convert('a,b\n1,yes\n2,no')
        assert result.data == [{'a': 1, 'b': True}, {'a': 2, 'b': False}]
        assert result.metadata.sheets_processed[0].name == 'CSV'
        assert result.metadata.total_rows == 2
        assert result.metadata.source_info.file_type == 'csv'
        assert converter.state == ConversionState.FINALIZED

    @pytest.mark.asyncio
    async def test_csv_bytes(self):
        """Test encoded CSV bytes take the CSV path."""
        result = await SpreadsheetConverter().convert(b'name;qty\nbolt;4\nnut;9')
        assert result.data == [{'name': 'bolt', 'qty': 4}, {'name': 'nut', 'qty': 9}]

    @pytest.mark.asyncio
    async def test_csv_value_transformer_applied_once(self):
        """Test the value hook runs exactly once per CSV value."""
        calls = []

        def transform(value, header):
            calls.append((header, value))
            return value

        converter = SpreadsheetConverter({'value_transformer': transform})
        await converter.convert('a,b\n1,2\n3,4')
        assert len(calls) == 4

    @pytest.mark.asyncio
    async def test_nested_objects(self):
        """Test dot-notation headers become nested objects."""
        converter = SpreadsheetConverter({'create_nested_objects': True})
        result = await converter.convert('id,user.name,user.age\n1,Ann,30\n2,Bob,41')
        assert result.data[0] == {'id': 1, 'user': {'name': 'Ann', 'age': 30}}

    @pytest.mark.asyncio
    async def test_header_warnings_in_metadata(self):
        """Test header warnings are reported, not raised."""
        result = await SpreadsheetConverter().convert('first name,age\nAnn,30\nBob,41')
        assert any('first name' in w for w in result.metadata.validation_warnings)

    def test_convert_sync(self):
        """Test the synchronous wrapper."""
        result = SpreadsheetConverter().convert_sync('x,y\n1,2\n3,4')
        assert result.data == [{'x': 1, 'y': 2}, {'x': 3, 'y': 4}]

    @pytest.mark.asyncio
    async def test_convert_to_json(self):
        """Test the convenience function returns only data."""
        data = await convert_to_json('a,b\n1,2\n3,4', skip_empty_columns=False)
        assert data == [{'a': 1, 'b': 2}, {'a': 3, 'b': 4}]


class TestConvertWorkbook:
    """Test the workbook path with a stubbed decoder."""

    @pytest.mark.asyncio
    async def test_first_sheet_is_array(self, three_sheets):
        """Test the default selection returns a plain array."""
        converter, decoder = converter_for(three_sheets)
        result = await converter.convert(FAKE_XLSX)
        decoder.assert_called_once_with(FAKE_XLSX, keep_formulas=False)
        assert result.data == [{'Name': 'John', 'Age': 30}, {'Name': 'Jane', 'Age': 25}]
        assert result.metadata.total_sheets == 1

    @pytest.mark.asyncio
    async def test_all_sheets_keyed_by_name(self, three_sheets):
        """Test 'all' returns a name-keyed mapping."""
        converter, _ = converter_for(three_sheets, {'sheet_selection': 'all'})
        result = await converter.convert(FAKE_XLSX)
        assert list(result.data) == ['People', 'Cities', 'Empty']
        assert result.data['Cities'] == [{'City': 'Oslo', 'Country': 'NO'}]
        assert result.data['Empty'] == []
        assert result.metadata.total_rows == 3
        assert result.metadata.total_sheets == 3

    @pytest.mark.asyncio
    async def test_metadata_index_follows_selection(self, three_sheets):
        """Test sheet metadata index matches the requested order."""
        converter, _ = converter_for(three_sheets, {'sheet_selection': ['Cities', 'People']})
        result = await converter.convert(FAKE_XLSX)
        meta = result.metadata.sheets_processed
        assert [(m.name, m.index) for m in meta] == [('Cities', 0), ('People', 1)]
        assert meta[1].row_count == 2
        assert meta[1].column_count == 2
        assert result.metadata.total_sheets == 2

    @pytest.mark.asyncio
    async def test_single_named_sheet_is_array(self, three_sheets):
        """Test a one-sheet list selection returns an array."""
        converter, _ = converter_for(three_sheets, {'sheet_selection': ['Cities', 'Nope']})
        result = await converter.convert(FAKE_XLSX)
        assert result.data == [{'City': 'Oslo', 'Country': 'NO'}]

    @pytest.mark.asyncio
    async def test_no_sheets_found(self, three_sheets):
        """Test an unmatched selection fails the run."""
        converter, _ = converter_for(three_sheets, {'sheet_selection': [9]})
        with pytest.raises(NoSheetsFoundError):
            await converter.convert(FAKE_XLSX)
        assert converter.state == ConversionState.FAILED

    @pytest.mark.asyncio
    async def test_batches_and_progress(self):
        """Test every sheet is processed across batches with progress reports."""
        workbook = make_workbook({f'S{i}': [['val'], [i + 1], [f'x{i}']] for i in range(5)})
        progress = []
        converter, _ = converter_for(workbook, {
            'sheet_selection': 'all',
            'performance': {
                'concurrency_limit': 2,
                'progress_callback': lambda done, total, name: progress.append((done, total, name)),
            },
        })
        result = await converter.convert(FAKE_XLSX)
        assert sorted(result.data) == [f'S{i}' for i in range(5)]
        assert [p[0] for p in progress] == [1, 2, 3, 4, 5]
        assert all(p[1] == 5 for p in progress)

    @pytest.mark.asyncio
    async def test_failing_sheet_aborts_later_batches(self):
        """Test a failure in one sheet stops the run before later batches start."""
        workbook = make_workbook({
            'First': [['first_col'], ['a']],
            'Broken': [['broken_col'], ['b']],
            'Last': [['last_col'], ['c']],
        })
        seen_headers = []
        progress = []

        def transform(value, header):
            seen_headers.append(header)
            if header == 'broken_col':
                raise RuntimeError('bad cell')
            return value

        converter, _ = converter_for(workbook, {
            'sheet_selection': 'all',
            'value_transformer': transform,
            'performance': {
                'concurrency_limit': 1,
                'progress_callback': lambda done, total, name: progress.append(name),
            },
        })
        result = None
        with pytest.raises(ConversionFailureError, match='bad cell'):
            result = await converter.convert(FAKE_XLSX)

        assert result is None
        assert 'last_col' not in seen_headers
        assert progress == ['First']
        assert converter.state == ConversionState.FAILED

    @pytest.mark.asyncio
    async def test_monitor_batch_size_used(self, three_sheets):
        """Test the monitor decides the batch width and receives metrics."""
        monitor = StaticPerformanceMonitor(batch_size=1)
        converter, _ = converter_for(three_sheets, {'sheet_selection': 'all'}, monitor=monitor)
        result = await converter.convert(FAKE_XLSX)
        assert len(result.data) == 3
        assert list(monitor.history) == [result.metadata.performance_metrics]

    @pytest.mark.asyncio
    async def test_index_only_rows_dropped(self):
        """Test rows holding only an incidental index disappear."""
        workbook = make_workbook({'S': [['#', 'name'], [1, 'Ann'], [2, None], [3, 'Bob']]})
        converter, _ = converter_for(workbook)
        result = await converter.convert(FAKE_XLSX)
        assert result.data == [{'#': 1, 'name': 'Ann'}, {'#': 3, 'name': 'Bob'}]

    @pytest.mark.asyncio
    async def test_header_transformer(self, three_sheets):
        """Test the header hook renames keys after cleaning."""
        converter, _ = converter_for(three_sheets, {'header_transformer': str.lower})
        result = await converter.convert(FAKE_XLSX)
        assert result.data[0] == {'name': 'John', 'age': 30}

    @pytest.mark.asyncio
    async def test_workbook_value_transformer_applied_once(self, three_sheets):
        """Test the value hook is not re-applied after extraction."""
        converter, _ = converter_for(three_sheets, {
            'value_transformer': lambda v, h: v * 2 if isinstance(v, int) else v,
        })
        result = await converter.convert(FAKE_XLSX)
        assert [row['Age'] for row in result.data] == [60, 50]

    @pytest.mark.asyncio
    async def test_include_sheet_name(self, three_sheets):
        """Test the _sheet field survives the pipeline."""
        converter, _ = converter_for(three_sheets, {'include_sheet_name': True})
        result = await converter.convert(FAKE_XLSX)
        assert result.data[0]['_sheet'] == 'People'


class TestValidationStage:
    """Test row validation inside the pipeline."""

    CSV = 'name,age\nAnn,30\nBob,old\nCid,41'

    @pytest.mark.asyncio
    async def test_invalid_rows_kept_by_default(self):
        """Test continue_on_validation_error keeps failing rows."""
        converter = SpreadsheetConverter({'validation': {
            'enable_type_validation': True,
            'row_validator': create_schema_validator({'age': 'number'}),
        }})
        result = await converter.convert(self.CSV)
        assert len(result.data) == 3
        errors = result.metadata.validation_errors
        assert len(errors) == 1
        assert errors[0].row_index == 1
        assert errors[0].column_name == 'age'
        assert errors[0].sheet_name == 'CSV'

    @pytest.mark.asyncio
    async def test_invalid_rows_excluded(self):
        """Test failing rows are dropped when not continuing."""
        converter = SpreadsheetConverter({'validation': {
            'enable_type_validation': True,
            'continue_on_validation_error': False,
            'row_validator': create_schema_validator({'age': 'number'}),
        }})
        result = await converter.convert(self.CSV)
        assert [row['name'] for row in result.data] == ['Ann', 'Cid']

    @pytest.mark.asyncio
    async def test_raising_validator_does_not_abort(self):
        """Test validator exceptions become validation errors."""
        def explode(row, index):
            raise KeyError('missing')

        converter = SpreadsheetConverter({'validation': {
            'enable_type_validation': True, 'row_validator': explode,
        }})
        result = await converter.convert(self.CSV)
        assert len(result.data) == 3
        assert len(result.metadata.validation_errors) == 3

    @pytest.mark.asyncio
    async def test_error_limit_stops_run(self):
        """Test reaching the limit with continue disabled fails the run."""
        converter = SpreadsheetConverter({'validation': {
            'enable_type_validation': True,
            'continue_on_validation_error': False,
            'max_validation_errors': 1,
            'row_validator': lambda row, index: False,
        }})
        with pytest.raises(ValidationFailureError):
            await converter.convert(self.CSV)

    @pytest.mark.asyncio
    async def test_errors_reset_between_runs(self):
        """Test each run starts with an empty error log."""
        converter = SpreadsheetConverter({'validation': {
            'enable_type_validation': True,
            'row_validator': create_schema_validator({'age': 'number'}),
        }})
        await converter.convert(self.CSV)
        result = await converter.convert(self.CSV)
        assert len(result.metadata.validation_errors) == 1


class TestErrors:
    """Test error classification and wrapping."""

    @pytest.mark.asyncio
    async def test_none_input(self):
        """Test None fails input validation."""
        converter = SpreadsheetConverter()
        with pytest.raises(InvalidInputError, match='Input validation failed: Input cannot be null'):
            await converter.convert(None)
        assert converter.state == ConversionState.FAILED

    @pytest.mark.asyncio
    async def test_empty_bytes(self):
        """Test empty buffers are rejected."""
        with pytest.raises(InvalidInputError):
            await SpreadsheetConverter().convert(b'')

    @pytest.mark.asyncio
    async def test_path_without_resolver(self):
        """Test file paths need a resolver."""
        with pytest.raises(InvalidInputError, match='No source resolver'):
            await SpreadsheetConverter().convert('reports/q1.xlsx')

    @pytest.mark.asyncio
    async def test_path_with_resolver(self):
        """Test resolved path content is converted."""
        resolver = MagicMock()
        resolver.resolve.return_value = 'a,b\n1,2\n3,4'
        result = await SpreadsheetConverter(resolver=resolver).convert('reports/q1.csv')
        assert result.data == [{'a': 1, 'b': 2}, {'a': 3, 'b': 4}]
        assert result.metadata.source_file == 'reports/q1.csv'

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        """Test unexpected exceptions are wrapped once."""
        converter = SpreadsheetConverter(decoder=MagicMock(side_effect=RuntimeError('boom')))
        with pytest.raises(ConversionFailureError, match='Spreadsheet conversion failed: boom') as excinfo:
            await converter.convert(FAKE_XLSX)
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert converter.state == ConversionState.FAILED

    @pytest.mark.asyncio
    async def test_parse_failure_not_wrapped(self):
        """Test typed errors propagate unchanged."""
        converter = SpreadsheetConverter(decoder=MagicMock(side_effect=ParseFailureError('bad file')))
        with pytest.raises(ParseFailureError):
            await converter.convert(FAKE_XLSX)

    def test_bad_config(self):
        """Test invalid configuration is rejected up front."""
        with pytest.raises(ValueError):
            SpreadsheetConverter({'performance': {'concurrency_limit': 0}})
        with pytest.raises(ValueError):
            SpreadsheetConverter({'no_such_option': True})


@pytest.mark.slow
class TestRealWorkbook:
    """End-to-end conversion of a real .xlsx file."""

    @pytest.fixture
    def xlsx_bytes(self):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = 'Orders'
        ws.append(['A', 'B', 'C'])
        ws.append(['Order', 'Shipped', 'Paid'])
        ws.append([1001, datetime.datetime(2024, 1, 15), True])
        ws.append([None, None, None])
        ws.append([1002, datetime.datetime(2024, 2, 1), False])
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    @pytest.mark.asyncio
    async def test_full_pipeline(self, xlsx_bytes):
        """Test letter headers, date formatting and booleans together."""
        result = await SpreadsheetConverter().convert(xlsx_bytes)
        assert result.data == [
            {'Order': 1001, 'Shipped': '15/01/2024', 'Paid': True},
            {'Order': 1002, 'Shipped': '01/02/2024', 'Paid': False},
        ]
        assert result.metadata.source_info.file_type == 'xlsx'
