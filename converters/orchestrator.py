"""
Conversion orchestration.

This module coordinates the entire conversion pipeline:
    1. Validate the input and resolve it to CSV text or workbook bytes
    2. CSV: parse the text; workbook: decode it and select sheets
    3. For each sheet (in bounded batches): extract → validate → clean →
       transform → nest
    4. Assemble the result and its metadata

Every run walks the states Idle → Validating → SourceResolved → Extracting →
Cleaning → Transforming → Nesting → Finalized, or ends in Failed.

Classes:
    ConversionState: Pipeline states
    SpreadsheetConverter: Main converter

Functions:
    select_sheets: Resolve a sheet selection against available names
    convert_to_json: Convenience wrapper returning only the data
"""

import asyncio
import logging
import time
from enum import Enum

from models.results import (
    ConversionMetadata,
    ConversionResult,
    PerformanceMetrics,
    SheetMetadata,
)
from services import decoder as workbook_decoder
from services import monitor as performance_monitor
from services import sources

from .config import CSV_SHEET_NAME, SHEET_SELECTION_ALL, SHEET_SELECTION_FIRST
from .csv_parser import parse_csv
from .data_cleaner import clean
from .errors import (
    ConversionFailureError,
    InvalidInputError,
    NoSheetsFoundError,
    SpreadsheetConversionError,
    ValidationFailureError,
)
from .grid_extractor import extract_sheet
from .nested_builder import build_nested
from .options import normalize_config
from .validator import DataValidator

logger = logging.getLogger(__name__)


class ConversionState(str, Enum):
    IDLE = 'idle'
    VALIDATING = 'validating'
    SOURCE_RESOLVED = 'source_resolved'
    EXTRACTING = 'extracting'
    CLEANING = 'cleaning'
    TRANSFORMING = 'transforming'
    NESTING = 'nesting'
    FINALIZED = 'finalized'
    FAILED = 'failed'


def select_sheets(selection, available):
    """
    Resolve a sheet selection to concrete sheet names.

    Unknown names and out-of-range indices are dropped silently; the caller's
    order is kept and repeats are removed.

    Args:
        selection: 'first', 'all', or a sequence of names and/or 0-based indices
        available: Sheet names in workbook order

    Returns:
        list[str]: Sheet names to process

    Raises:
        NoSheetsFoundError: Nothing in the selection matches

    Examples:
        >>> select_sheets('first', ['A', 'B'])
        ['A']
        >>> select_sheets(['B', 'missing', 0], ['A', 'B'])
        ['B', 'A']
    """
    if selection == SHEET_SELECTION_ALL:
        names = list(available)
    elif selection == SHEET_SELECTION_FIRST:
        names = list(available[:1])
    else:
        names = []
        for item in selection:
            if isinstance(item, str):
                if item in available:
                    names.append(item)
            elif 0 <= item < len(available):
                names.append(available[item])
        names = list(dict.fromkeys(names))

    if not names:
        raise NoSheetsFoundError(
            "No sheets found to process",
            details={'selection': selection if isinstance(selection, str) else list(selection),
                     'available': list(available)},
        )

    dropped = len(selection) - len(names) if not isinstance(selection, str) else 0
    if dropped > 0:
        logger.debug("Dropped %d unmatched sheet selection entries", dropped)
    return names


class SpreadsheetConverter:
    """
    Converts spreadsheet input (CSV text, workbook bytes, or a resolvable
    path/URL) to JSON-ready row records.

    Args:
        config: ConversionConfig, dict, or None for defaults
        decoder: Callable ``(bytes, keep_formulas=bool) -> Workbook``
        resolver: SourceResolver used for path and URL inputs
        monitor: PerformanceMonitor (defaults to StaticPerformanceMonitor)

    Examples:
        >>> converter = SpreadsheetConverter({'sheet_selection': 'all'})
        >>> converter.convert_sync('name,qty\\nbolt,4\\nnut,9').data
        [{'name': 'bolt', 'qty': 4}, {'name': 'nut', 'qty': 9}]
    """

    def __init__(self, config=None, decoder=None, resolver=None, monitor=None):
        self.config = normalize_config(config)
        self.decoder = decoder or workbook_decoder.decode_workbook
        self.resolver = resolver
        self.monitor = monitor or performance_monitor.StaticPerformanceMonitor(
            enable_streaming=self.config.performance.enable_streaming,
            streaming_threshold_mb=self.config.performance.streaming_threshold_mb,
        )
        self.validator = DataValidator(self.config.validation)
        self.state = ConversionState.IDLE
        self._warnings = []

    def _transition(self, state):
        logger.debug("Converter state: %s → %s", self.state.value, state.value)
        self.state = state

    def _reset(self):
        self.state = ConversionState.IDLE
        self.validator.clear_validation_errors()
        self._warnings = []

    # -- public API -----------------------------------------------------

    async def convert(self, data):
        """
        Convert an input to a ConversionResult.

        Raises:
            InvalidInputError, NoSheetsFoundError, ParseFailureError,
            ValidationFailureError: raised as-is
            ConversionFailureError: wraps any other exception
        """
        started = time.perf_counter()
        self._reset()

        try:
            self._transition(ConversionState.VALIDATING)
            self._validate_input(data)

            source = sources.resolve_source(data, self.config.csv.encoding, self.resolver)
            self._transition(ConversionState.SOURCE_RESOLVED)

            streaming = self.monitor.should_use_streaming(source.info.size_bytes)
            if streaming:
                logger.warning(
                    "Input of %d bytes exceeds the streaming threshold; processing in memory",
                    source.info.size_bytes,
                )

            if source.kind == 'csv':
                data_out, sheets, total_sheets = await self._convert_csv(source.content)
            else:
                data_out, sheets, total_sheets = await self._convert_workbook(source.content)

            result = self._finalize(data_out, sheets, total_sheets, source, streaming, started)
            self._transition(ConversionState.FINALIZED)
            return result

        except SpreadsheetConversionError:
            self._transition(ConversionState.FAILED)
            raise
        except Exception as exc:
            self._transition(ConversionState.FAILED)
            raise ConversionFailureError(
                f"Spreadsheet conversion failed: {exc}",
                details={'cause': type(exc).__name__},
            ) from exc

    def convert_sync(self, data):
        return asyncio.run(self.convert(data))

    def parse_csv(self, text):
        return parse_csv(text, self.config)

    def extract_sheet(self, grid, sheet_name=None):
        return extract_sheet(grid, sheet_name, self.config)

    # -- stages ---------------------------------------------------------

    def _validate_input(self, data):
        result = self.validator.validate_input(data)
        if not result.is_valid:
            messages = ', '.join(e.message for e in result.errors)
            raise InvalidInputError(f"Input validation failed: {messages}")

    async def _convert_csv(self, text):
        started = time.perf_counter()
        self._transition(ConversionState.EXTRACTING)
        rows = parse_csv(text, self.config)
        rows = self._run_pipeline(rows, CSV_SHEET_NAME, from_csv=True)

        sheet = self._sheet_metadata(CSV_SHEET_NAME, 0, rows, started)
        self._report_progress(1, 1, CSV_SHEET_NAME)
        return rows, [sheet], 1

    async def _convert_workbook(self, content):
        workbook = self.decoder(content, keep_formulas=self.config.parse_formulas)
        names = select_sheets(self.config.sheet_selection, workbook.sheet_names)

        self._transition(ConversionState.EXTRACTING)
        batch_size = max(1, self.monitor.get_optimal_batch_size(self.config.performance.concurrency_limit))

        results = []
        for start in range(0, len(names), batch_size):
            batch = names[start:start + batch_size]
            results.extend(await asyncio.gather(*(
                self._process_sheet(workbook[name], name, start + offset)
                for offset, name in enumerate(batch)
            )))
            for done, (name, _, _) in enumerate(results[start:], start=start + 1):
                self._report_progress(done, len(names), name)

        sheets = [meta for _, _, meta in results]
        if self.config.sheet_selection == SHEET_SELECTION_FIRST or len(results) == 1:
            data_out = results[0][1]
        else:
            data_out = {name: rows for name, rows, _ in results}
        return data_out, sheets, len(results)

    async def _process_sheet(self, grid, sheet_name, index):
        # Let the other sheets of the batch start
        await asyncio.sleep(0)
        started = time.perf_counter()
        rows = extract_sheet(grid, sheet_name, self.config)
        rows = self._run_pipeline(rows, sheet_name)
        return sheet_name, rows, self._sheet_metadata(sheet_name, index, rows, started)

    def _run_pipeline(self, rows, sheet_name, from_csv=False):
        config = self.config

        if rows:
            header_check = self.validator.validate_headers(list(rows[0].keys()))
            self._warnings.extend(f"{sheet_name}: {w}" for w in header_check.warnings)

        if config.validation.enable_type_validation:
            rows = self._filter_invalid_rows(rows, sheet_name)

        self._transition(ConversionState.CLEANING)
        rows = clean(rows, config.skip_empty_rows, config.skip_empty_columns, config.ignore_index_only_rows)

        self._transition(ConversionState.TRANSFORMING)
        if config.has_custom_transformers:
            rows = self._apply_transformers(rows, apply_values=from_csv)

        self._transition(ConversionState.NESTING)
        if config.create_nested_objects:
            rows = build_nested(rows)

        return rows

    def _filter_invalid_rows(self, rows, sheet_name):
        options = self.config.validation
        kept = []
        for index, row in enumerate(rows):
            result = self.validator.validate_row(row, index, sheet_name)
            for column, value in row.items():
                cell_check = self.validator.validate_cell_value(value, column, index)
                self._warnings.extend(f"{sheet_name}: {w}" for w in cell_check.warnings)

            if result.is_valid or options.continue_on_validation_error:
                kept.append(row)
                continue

            if self.validator.has_exceeded_error_limit():
                raise ValidationFailureError(
                    f"Maximum number of validation errors ({options.max_validation_errors}) exceeded",
                    details={'sheet': sheet_name, 'row_index': index},
                )
        return kept

    def _apply_transformers(self, rows, apply_values):
        header_transformer = self.config.header_transformer
        # Workbook values were already transformed during extraction
        value_transformer = self.config.value_transformer if apply_values else None

        transformed = []
        for row in rows:
            new_row = {}
            for key, value in row.items():
                new_key = header_transformer(key) if header_transformer is not None else key
                new_row[new_key] = value_transformer(value, new_key) if value_transformer is not None else value
            transformed.append(new_row)
        return transformed

    # -- results --------------------------------------------------------

    @staticmethod
    def _sheet_metadata(name, index, rows, started):
        return SheetMetadata(
            name=name,
            index=index,
            row_count=len(rows),
            column_count=len(rows[0]) if rows else 0,
            processing_time_ms=(time.perf_counter() - started) * 1000,
        )

    def _report_progress(self, processed, total, sheet_name):
        callback = self.config.performance.progress_callback
        if callback is not None:
            callback(processed, total, sheet_name)

    def _finalize(self, data_out, sheets, total_sheets, source, streaming, started):
        elapsed_ms = (time.perf_counter() - started) * 1000
        total_rows = sum(sheet.row_count for sheet in sheets)
        metrics = PerformanceMetrics(
            total_processing_time_ms=elapsed_ms,
            rows_per_second=total_rows / (elapsed_ms / 1000) if elapsed_ms > 0 else 0.0,
            streaming_recommended=streaming,
        )
        self.monitor.record_metrics(metrics)

        metadata = ConversionMetadata(
            source_file=source.info.source,
            sheets_processed=sheets,
            total_rows=total_rows,
            total_sheets=total_sheets,
            processing_time_ms=elapsed_ms,
            validation_errors=self.validator.get_validation_errors(),
            validation_warnings=list(self._warnings),
            performance_metrics=metrics,
            source_info=source.info,
        )

        logger.info(
            "Converted %s source '%s': %d sheet(s), %d rows in %.1f ms",
            source.info.file_type, source.info.source, len(sheets), total_rows, elapsed_ms,
        )
        return ConversionResult(data=data_out, metadata=metadata)


async def convert_to_json(data, config=None, **options):
    """
    Convert an input and return only the row data.

    Examples:
        >>> asyncio.run(convert_to_json('a,b\\n1,yes\\n2,no'))
        [{'a': 1, 'b': True}, {'a': 2, 'b': False}]
    """
    converter = SpreadsheetConverter(normalize_config(config, **options))
    result = await converter.convert(data)
    return result.data
