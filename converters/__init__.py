"""
Spreadsheet (Excel/CSV) to JSON conversion pipeline.

This package turns workbook bytes or CSV text into lists of JSON-ready row
records, with header cleanup, type inference, empty row/column removal and
optional nested-object reconstruction from dot-notation headers.

Architecture:
    input → sources → (csv_parser | decoder → grid_extractor)
          → data_cleaner → transformers → nested_builder → result

Modules:
    config: Configuration constants
    options: ConversionConfig and normalize_config
    errors: Exception hierarchy
    type_inference: Raw CSV field → typed value
    csv_dialect: Delimiter detection and CSV sniffing
    csv_parser: CSV text → row records
    header_resolver: Header cleanup and uniqueness
    grid_extractor: Sheet grid → row records
    data_cleaner: Empty row/column removal
    nested_builder: Dot-notation keys → nested objects
    validator: Input/row/header validation
    orchestrator: SpreadsheetConverter
"""

from .csv_dialect import detect_delimiter, looks_like_csv
from .csv_parser import parse_csv
from .data_cleaner import clean
from .errors import (
    ConversionFailureError,
    InvalidInputError,
    NoSheetsFoundError,
    ParseFailureError,
    SpreadsheetConversionError,
    ValidationFailureError,
)
from .grid_extractor import extract_sheet
from .nested_builder import build_nested
from .options import ConversionConfig, normalize_config
from .orchestrator import ConversionState, SpreadsheetConverter, convert_to_json

__all__ = [
    'SpreadsheetConverter', 'ConversionState', 'convert_to_json',
    'ConversionConfig', 'normalize_config',
    'parse_csv', 'extract_sheet', 'clean', 'build_nested',
    'detect_delimiter', 'looks_like_csv',
    'SpreadsheetConversionError', 'InvalidInputError', 'NoSheetsFoundError',
    'ParseFailureError', 'ValidationFailureError', 'ConversionFailureError',
]
