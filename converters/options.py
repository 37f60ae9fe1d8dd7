"""
Conversion configuration.

All settings live in frozen dataclasses. ``normalize_config`` is the single
place where user input (None, a dict, or an existing config) is turned into a
fully populated ``ConversionConfig``.

Classes:
    CsvOptions: CSV dialect overrides
    ValidationOptions: Row validation toggles and hooks
    PerformanceOptions: Batching, streaming hint and progress callback
    ConversionConfig: Top-level settings

Functions:
    normalize_config: Build a ConversionConfig with defaults filled in
"""

from dataclasses import dataclass, field, fields, replace
from typing import Callable, Optional

from .config import (
    DEFAULT_CONCURRENCY_LIMIT,
    DEFAULT_DATE_FORMAT,
    DEFAULT_ENCODING,
    DEFAULT_ESCAPE_CHAR,
    DEFAULT_HEADER_ROW_INDEX,
    DEFAULT_MAX_VALIDATION_ERRORS,
    DEFAULT_QUOTE_CHAR,
    DEFAULT_SHEET_SELECTION,
    DEFAULT_STREAMING_THRESHOLD_MB,
    SHEET_SELECTION_ALL,
    SHEET_SELECTION_FIRST,
)


@dataclass(frozen=True)
class CsvOptions:
    delimiter: Optional[str] = None          # None → auto-detect
    quote_char: str = DEFAULT_QUOTE_CHAR
    escape_char: str = DEFAULT_ESCAPE_CHAR
    comment_char: Optional[str] = None
    trim_fields: bool = True
    infer_types: bool = True
    encoding: str = DEFAULT_ENCODING


@dataclass(frozen=True)
class ValidationOptions:
    enable_type_validation: bool = False
    continue_on_validation_error: bool = True
    max_validation_errors: int = DEFAULT_MAX_VALIDATION_ERRORS
    collect_validation_errors: bool = True
    row_validator: Optional[Callable] = None
    cell_validator: Optional[Callable] = None


@dataclass(frozen=True)
class PerformanceOptions:
    concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT
    enable_streaming: bool = False
    streaming_threshold_mb: float = DEFAULT_STREAMING_THRESHOLD_MB
    progress_callback: Optional[Callable] = None


@dataclass(frozen=True)
class ConversionConfig:
    """
    Fully populated conversion settings.

    ``sheet_selection`` is 'first', 'all', or a tuple of sheet names and/or
    0-based sheet indices. ``header_row_index`` is 0-based; None means the
    sheet has no header row and columns are keyed by letter.
    """
    sheet_selection: object = DEFAULT_SHEET_SELECTION
    header_row_index: Optional[int] = DEFAULT_HEADER_ROW_INDEX
    date_format: str = DEFAULT_DATE_FORMAT
    skip_empty_rows: bool = True
    skip_empty_columns: bool = True
    ignore_index_only_rows: bool = True
    include_sheet_name: bool = False
    parse_formulas: bool = False
    create_nested_objects: bool = False
    header_transformer: Optional[Callable] = None
    value_transformer: Optional[Callable] = None
    csv: CsvOptions = field(default_factory=CsvOptions)
    validation: ValidationOptions = field(default_factory=ValidationOptions)
    performance: PerformanceOptions = field(default_factory=PerformanceOptions)

    @property
    def has_custom_transformers(self):
        return self.header_transformer is not None or self.value_transformer is not None


_SECTIONS = {
    'csv': CsvOptions,
    'validation': ValidationOptions,
    'performance': PerformanceOptions,
}


def _build_section(cls, value):
    if value is None:
        return cls()
    if isinstance(value, cls):
        return value
    if isinstance(value, dict):
        known = {f.name for f in fields(cls)}
        unknown = set(value) - known
        if unknown:
            raise ValueError(f"Unknown {cls.__name__} option(s): {', '.join(sorted(unknown))}")
        return cls(**value)
    raise ValueError(f"{cls.__name__} must be a dict or {cls.__name__}, got {type(value).__name__}")


def _normalize_sheet_selection(selection):
    if selection is None:
        return DEFAULT_SHEET_SELECTION
    if isinstance(selection, str):
        if selection in (SHEET_SELECTION_FIRST, SHEET_SELECTION_ALL):
            return selection
        # A bare name is shorthand for a one-element list
        return (selection,)
    if isinstance(selection, (list, tuple)):
        for item in selection:
            if isinstance(item, bool) or not isinstance(item, (str, int)):
                raise ValueError(f"Sheet selection entries must be names or indices, got {item!r}")
        return tuple(selection)
    raise ValueError(f"Unsupported sheet selection: {selection!r}")


def _check_single_char(name, value, optional=False):
    if optional and value in (None, ''):
        return
    if not isinstance(value, str) or len(value) != 1:
        raise ValueError(f"CSV {name} must be a single character, got {value!r}")


def normalize_config(config=None, **overrides):
    """
    Build a fully populated, immutable ConversionConfig.

    Args:
        config: None, a ConversionConfig, or a dict of option names. The
            'csv', 'validation' and 'performance' entries may be dicts.
        **overrides: Top-level options applied on top of ``config``

    Returns:
        ConversionConfig

    Raises:
        ValueError: Unknown option names or invalid option values

    Examples:
        >>> cfg = normalize_config({'sheet_selection': 'all', 'csv': {'delimiter': ';'}})
        >>> cfg.csv.delimiter
        ';'
        >>> cfg.performance.concurrency_limit
        4
    """
    if config is None:
        values = {}
    elif isinstance(config, ConversionConfig):
        values = {f.name: getattr(config, f.name) for f in fields(ConversionConfig)}
    elif isinstance(config, dict):
        values = dict(config)
    else:
        raise ValueError(f"Config must be a dict or ConversionConfig, got {type(config).__name__}")
    values.update(overrides)

    known = {f.name for f in fields(ConversionConfig)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown conversion option(s): {', '.join(sorted(unknown))}")

    for name, cls in _SECTIONS.items():
        values[name] = _build_section(cls, values.get(name))
    values['sheet_selection'] = _normalize_sheet_selection(values.get('sheet_selection'))

    result = replace(ConversionConfig(), **values)

    header_row = result.header_row_index
    if header_row is not None and (isinstance(header_row, bool) or not isinstance(header_row, int) or header_row < 0):
        raise ValueError(f"header_row_index must be a non-negative integer or None, got {header_row!r}")
    if result.performance.concurrency_limit < 1:
        raise ValueError("concurrency_limit must be at least 1")
    if result.validation.max_validation_errors < 1:
        raise ValueError("max_validation_errors must be at least 1")
    _check_single_char('delimiter', result.csv.delimiter, optional=True)
    _check_single_char('quote character', result.csv.quote_char)
    _check_single_char('escape character', result.csv.escape_char)
    _check_single_char('comment character', result.csv.comment_char, optional=True)

    return result
