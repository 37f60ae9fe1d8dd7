"""
CSV text → row records.

The first retained line is the header line; every following line becomes a
row record keyed by header. Blank lines and comment lines are skipped.
Quoted fields may contain the delimiter but not line breaks.

Functions:
    parse_csv: Parse CSV text into a list of dicts
"""

import logging

from .csv_dialect import detect_delimiter, split_fields, split_lines
from .errors import InvalidInputError
from .header_resolver import ensure_unique_headers, resolve_header
from .options import normalize_config
from .type_inference import infer_value

logger = logging.getLogger(__name__)


def _retained_lines(content, comment_char):
    for line in split_lines(content):
        stripped = line.strip()
        if not stripped:
            continue
        if comment_char and stripped.startswith(comment_char):
            continue
        yield line


def parse_csv(content, config=None):
    """
    Parse CSV text into row records.

    Args:
        content: CSV text
        config: ConversionConfig, dict, or None. Uses ``config.csv`` for the
            dialect (delimiter auto-detected when not set).

    Returns:
        list[dict]: One dict per data line. Extra fields beyond the header
        count are ignored; missing fields become None.

    Raises:
        InvalidInputError: content is not a string or is empty

    Examples:
        >>> parse_csv('a,b\\n1,yes\\n2,no')
        [{'a': 1, 'b': True}, {'a': 2, 'b': False}]
        >>> parse_csv('a,b')
        []
    """
    if not isinstance(content, str):
        raise InvalidInputError(
            f"CSV content must be text, got {type(content).__name__}",
            details={'input_type': type(content).__name__},
        )
    if not content.strip():
        raise InvalidInputError("CSV content is empty")

    options = normalize_config(config).csv
    delimiter = options.delimiter or detect_delimiter(content, options.quote_char)

    def tokenize(line):
        return split_fields(
            line, delimiter,
            quote_char=options.quote_char,
            escape_char=options.escape_char,
            trim=options.trim_fields,
        )

    def convert(raw):
        if options.infer_types:
            return infer_value(raw)
        return raw if raw != '' else None

    lines = _retained_lines(content, options.comment_char)
    header_line = next(lines, None)
    if header_line is None:
        # Every line was a comment
        return []

    headers = ensure_unique_headers(
        [resolve_header(h, position=i + 1) for i, h in enumerate(tokenize(header_line))]
    )

    rows = []
    for line in lines:
        fields = tokenize(line)
        rows.append({
            header: convert(fields[i] if i < len(fields) else None)
            for i, header in enumerate(headers)
        })

    logger.debug("Parsed %d CSV rows with delimiter %r", len(rows), delimiter)
    return rows
