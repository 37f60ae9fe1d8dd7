"""
Structural validation of inputs, rows and headers.

Validators never raise for bad data: they return a ``ValidationResult`` and,
for rows, append ``ValidationError`` records to an ordered log that lives
until ``clear_validation_errors`` is called.

Classes:
    DataValidator: Input/row/header/cell checks with error accumulation

Functions:
    type_validators: Built-in predicate per type name
    create_schema_validator: Row validator checking column types
"""

import datetime
import logging
import re
from dataclasses import replace
from urllib.parse import urlparse

from models.results import Severity, ValidationError, ValidationResult

from .config import (
    INVALID_PATH_CHARACTERS,
    RESERVED_HEADER_NAMES,
    SUSPICIOUS_CONTENT_PATTERNS,
)
from .csv_dialect import looks_like_csv
from .options import ValidationOptions

logger = logging.getLogger(__name__)

_URL_PREFIX_RE = re.compile(r'^https?://', re.IGNORECASE)
_WINDOWS_PATH_RE = re.compile(r'^[a-zA-Z]:[\\/]')
_PATH_SHAPE_RE = re.compile(r'^([a-zA-Z]:[\\/]|\.{1,2}[\\/]|/)')
_EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
_HTTP_URL_RE = re.compile(r'^https?://\S+$')
_LEADING_DIGIT_RE = re.compile(r'^[0-9]')


def _input_error(message, value=None):
    return ValidationError(sheet_name='Input', row_index=-1, message=message, invalid_value=value)


def is_url(text):
    """True for http(s) URLs; Windows drive paths never count as URLs."""
    text = text.strip()
    if _WINDOWS_PATH_RE.match(text):
        return False
    return bool(_URL_PREFIX_RE.match(text))


def is_valid_url(text):
    parsed = urlparse(text.strip())
    return parsed.scheme.lower() in ('http', 'https') and bool(parsed.netloc) and ' ' not in text.strip()


def has_invalid_path_characters(text):
    """
    True if a path contains a denylisted character and is not path-shaped.

    Examples:
        >>> has_invalid_path_characters('report<1>.xlsx')
        True
        >>> has_invalid_path_characters('./data/report.xlsx')
        False
    """
    if _PATH_SHAPE_RE.match(text.strip()):
        return False
    return any(char in text for char in INVALID_PATH_CHARACTERS)


class DataValidator:
    """
    Validates conversion inputs, rows and headers.

    Row errors are appended to ``self.validation_errors`` (when collection is
    enabled) up to ``max_validation_errors``.
    """

    def __init__(self, options=None):
        self.options = options or ValidationOptions()
        self.validation_errors = []
        self.error_count = 0

    # -- inputs ---------------------------------------------------------

    def validate_input(self, data):
        """
        Check that a conversion input is usable.

        Strings are checked as URLs, paths or CSV content; bytes-like
        inputs must not be empty. Anything else is unsupported.
        """
        if data is None:
            return ValidationResult.from_messages([_input_error('Input cannot be null or undefined')])

        errors = []
        if isinstance(data, str):
            errors.extend(self._validate_string_input(data))
        elif isinstance(data, (bytes, bytearray, memoryview)):
            if len(data) == 0:
                errors.append(_input_error('Input buffer is empty'))
        else:
            errors.append(_input_error('Unsupported input type', type(data).__name__))

        return ValidationResult.from_messages(errors)

    def _validate_string_input(self, text):
        if not text.strip():
            return [_input_error('File path or URL cannot be empty', text)]
        if is_url(text):
            if not is_valid_url(text):
                return [_input_error('Invalid URL format', text)]
            return []
        # CSV content routinely contains quotes and pipes
        if looks_like_csv(text):
            return []
        if has_invalid_path_characters(text):
            return [_input_error('File path contains invalid characters', text)]
        return []

    # -- rows -----------------------------------------------------------

    def validate_row(self, row, row_index, sheet_name='Unknown'):
        """
        Run the configured row and cell validators on one row.

        Exceptions raised by user validators are converted into validation
        errors carrying the sheet, row and column.

        Args:
            row: Row record
            row_index: 0-based position of the row in its sheet
            sheet_name: Sheet the row came from

        Returns:
            ValidationResult
        """
        errors = []

        if not isinstance(row, dict):
            errors.append(ValidationError(sheet_name, row_index, 'Row must be an object', invalid_value=row))
            self._record(errors)
            return ValidationResult.from_messages(errors)

        row_validator = self.options.row_validator
        if row_validator is not None:
            try:
                errors.extend(self._outcome_errors(
                    row_validator(row, row_index), sheet_name, row_index, None, row,
                    'Row failed custom validation',
                ))
            except Exception as exc:
                errors.append(ValidationError(
                    sheet_name, row_index, f"Row validation error: {exc}", invalid_value=row,
                ))

        cell_validator = self.options.cell_validator
        if cell_validator is not None:
            for column, value in row.items():
                try:
                    errors.extend(self._outcome_errors(
                        cell_validator(value, column, row_index), sheet_name, row_index, column, value,
                        'Cell failed custom validation',
                    ))
                except Exception as exc:
                    errors.append(ValidationError(
                        sheet_name, row_index, f"Cell validation error: {exc}",
                        column_name=column, invalid_value=value,
                    ))

        self._record(errors)
        return ValidationResult.from_messages(errors)

    @staticmethod
    def _outcome_errors(outcome, sheet_name, row_index, column, value, fallback_message):
        """Normalize a validator's return value (bool or ValidationResult) into errors."""
        if outcome is None or outcome is True:
            return []
        if outcome is False:
            return [ValidationError(sheet_name, row_index, fallback_message, column_name=column, invalid_value=value)]
        if outcome.is_valid:
            return []
        if outcome.errors:
            # Validators do not know which sheet they run on
            return [
                replace(e, sheet_name=sheet_name) if isinstance(e, ValidationError)
                else ValidationError(sheet_name, row_index, str(e), column_name=column, invalid_value=value)
                for e in outcome.errors
            ]
        return [ValidationError(sheet_name, row_index, fallback_message, column_name=column, invalid_value=value)]

    def _record(self, errors):
        self.error_count += len(errors)
        if not self.options.collect_validation_errors:
            return
        room = self.options.max_validation_errors - len(self.validation_errors)
        if room <= 0:
            return
        self.validation_errors.extend(errors[:room])
        if len(errors) > room:
            logger.warning(
                "Validation error limit (%d) reached; further errors are not recorded",
                self.options.max_validation_errors,
            )

    # -- headers and cells ----------------------------------------------

    def validate_headers(self, headers):
        """
        Flag duplicate and unsafe header names.

        Duplicates and problematic names are warnings; only a non-list
        input is an error.
        """
        if not isinstance(headers, (list, tuple)):
            return ValidationResult.from_messages(
                [ValidationError('Headers', -1, 'Headers must be an array', invalid_value=headers)]
            )

        warnings = []
        seen = set()
        duplicates = []
        for header in headers:
            if header in seen and header not in duplicates:
                duplicates.append(header)
            seen.add(header)
        if duplicates:
            warnings.append(f"Duplicate headers found: {', '.join(str(d) for d in duplicates)}")

        for header in headers:
            name = str(header)
            if name.lower() in RESERVED_HEADER_NAMES:
                warnings.append(f"Header '{name}' is a reserved name")
            if '.' in name or ' ' in name:
                warnings.append(f"Header '{name}' contains dots or spaces")
            if _LEADING_DIGIT_RE.match(name):
                warnings.append(f"Header '{name}' starts with a digit")

        return ValidationResult.from_messages(warnings=warnings)

    def validate_cell_value(self, value, column_name, row_index):
        """Warn about script-like string content; never an error."""
        warnings = []
        if isinstance(value, str):
            lowered = value.lower()
            for pattern in SUSPICIOUS_CONTENT_PATTERNS:
                if pattern in lowered:
                    warnings.append(
                        f"Suspicious content in column '{column_name}' at row {row_index}: {pattern}"
                    )
        return ValidationResult.from_messages(warnings=warnings)

    # -- error log ------------------------------------------------------

    def get_validation_errors(self):
        return list(self.validation_errors)

    def clear_validation_errors(self):
        self.validation_errors = []
        self.error_count = 0

    def has_exceeded_error_limit(self):
        return self.error_count >= self.options.max_validation_errors


def type_validators():
    """Built-in type predicates keyed by type name."""
    return {
        'string': lambda v: isinstance(v, str),
        'number': lambda v: isinstance(v, (int, float)) and not isinstance(v, bool) and v == v,
        'boolean': lambda v: isinstance(v, bool),
        'date': lambda v: isinstance(v, (datetime.date, datetime.datetime)),
        'email': lambda v: isinstance(v, str) and bool(_EMAIL_RE.match(v)),
        'url': lambda v: isinstance(v, str) and bool(_HTTP_URL_RE.match(v)),
    }


def create_schema_validator(schema):
    """
    Build a row validator that checks column types.

    Args:
        schema: Mapping of column name → type name ('string', 'number',
            'boolean', 'date', 'email', 'url'). Unknown type names accept
            any value; None values are skipped.

    Returns:
        callable: ``(row, row_index) -> ValidationResult``

    Examples:
        >>> check = create_schema_validator({'age': 'number'})
        >>> check({'age': 'x'}, 0).is_valid
        False
    """
    predicates = type_validators()

    def validate(row, row_index):
        errors = []
        for column, expected in schema.items():
            value = row.get(column)
            if value is None:
                continue
            predicate = predicates.get(expected)
            if predicate is not None and not predicate(value):
                errors.append(ValidationError(
                    sheet_name='Validation',
                    row_index=row_index,
                    column_name=column,
                    message=f"Expected {expected} but got {type(value).__name__}",
                    severity=Severity.ERROR,
                    invalid_value=value,
                ))
        return ValidationResult.from_messages(errors)

    return validate
