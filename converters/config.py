"""
Configuration constants for spreadsheet-to-JSON conversion.

This module centralizes the defaults and heuristic thresholds used while parsing
workbooks and CSV text, so they can be tuned without touching core logic.
"""

# Sheet selection
SHEET_SELECTION_FIRST = 'first'
SHEET_SELECTION_ALL = 'all'
DEFAULT_SHEET_SELECTION = SHEET_SELECTION_FIRST

# Extraction defaults
DEFAULT_HEADER_ROW_INDEX = 0       # 0-based row holding the headers
DEFAULT_DATE_FORMAT = 'DD/MM/YYYY'
SHEET_NAME_FIELD = '_sheet'        # Injected when include_sheet_name is on
CSV_SHEET_NAME = 'CSV'             # Pseudo sheet name for CSV sources

# Header detection parameters
COLUMN_LETTER_PATTERN = r'^[A-Z]{1,2}$'
COLUMN_LETTER_RATIO = 0.7          # Share of letter-only headers that triggers a re-read
EMPTY_HEADER_PREFIX = 'Empty_Header_'

# Index-only row detection
INDEX_COLUMN_NAMES = {'index', 'row', 'rownum', 'rownumber', '#'}

# CSV dialect
CANDIDATE_DELIMITERS = [',', ';', '\t', '|']
DEFAULT_DELIMITER = ','
DEFAULT_QUOTE_CHAR = '"'
DEFAULT_ESCAPE_CHAR = '"'
DEFAULT_ENCODING = 'utf-8'
DIALECT_SAMPLE_LINES = 10          # How many lines to sample for delimiter scoring
CONSISTENCY_WEIGHT = 0.7
RICHNESS_WEIGHT = 0.3
RICHNESS_TARGET_FIELDS = 5
CSV_CONSISTENCY_THRESHOLD = 0.8

# Type inference tokens
BOOLEAN_TRUE_TOKENS = {'true', 'yes', 'y'}
BOOLEAN_FALSE_TOKENS = {'false', 'no', 'n'}

# Processing
DEFAULT_CONCURRENCY_LIMIT = 4
DEFAULT_STREAMING_THRESHOLD_MB = 50
DEFAULT_METRICS_HISTORY_SIZE = 100

# Validation
DEFAULT_MAX_VALIDATION_ERRORS = 100
INVALID_PATH_CHARACTERS = '<>"|?*'
RESERVED_HEADER_NAMES = [
    '__proto__', 'constructor', 'prototype', 'eval', 'function',
    'tostring', 'valueof', 'hasownproperty',
]
SUSPICIOUS_CONTENT_PATTERNS = ['<script', 'javascript:', 'data:', 'vbscript:']

# File signatures (magic bytes)
XLSX_SIGNATURE = b'PK\x03\x04'
XLS_SIGNATURE = bytes.fromhex('D0CF11E0A1B11AE1')

MIME_TYPES = {
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'xls': 'application/vnd.ms-excel',
    'csv': 'text/csv',
}
