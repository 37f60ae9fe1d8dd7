"""
CSV dialect detection.

Scores each candidate delimiter on a small sample of lines and picks the one
that splits the lines into the most consistent, richest set of fields.

Functions:
    split_fields: Quote-aware field splitter shared with the CSV parser
    count_fields: Quote-aware field count for a single line
    field_count_consistency: 1 - variance/mean of field counts
    score_delimiter: Weighted consistency/richness score
    detect_delimiter: Pick the best delimiter for a sample
    looks_like_csv: Decide whether arbitrary text is CSV content
"""

import logging
import re

from .config import (
    CANDIDATE_DELIMITERS,
    CONSISTENCY_WEIGHT,
    CSV_CONSISTENCY_THRESHOLD,
    DEFAULT_DELIMITER,
    DEFAULT_ESCAPE_CHAR,
    DEFAULT_QUOTE_CHAR,
    DIALECT_SAMPLE_LINES,
    RICHNESS_TARGET_FIELDS,
    RICHNESS_WEIGHT,
)

logger = logging.getLogger(__name__)

_LINE_BREAK_RE = re.compile(r'\r\n|\n|\r')
_FILE_EXTENSION_RE = re.compile(r'\.(xlsx?|csv)$', re.IGNORECASE)
_PATH_SHAPE_RE = re.compile(r'^([a-zA-Z]:\\|/|\.{1,2}[/\\])')
_URL_SHAPE_RE = re.compile(r'^https?://', re.IGNORECASE)


def split_lines(text):
    return _LINE_BREAK_RE.split(text)


def split_fields(line, delimiter, quote_char=DEFAULT_QUOTE_CHAR,
                 escape_char=DEFAULT_ESCAPE_CHAR, trim=True):
    """
    Split one line into fields, honouring quotes.

    Inside a quoted span, the escape character followed by a quote yields a
    literal quote; a bare quote toggles the quoted state; the delimiter only
    separates fields outside quotes.

    Args:
        line: One line of CSV text
        delimiter: Field separator
        quote_char: Quote character
        escape_char: Escape character (usually the quote itself)
        trim: Strip surrounding whitespace from each field

    Returns:
        list[str]: Field values with quotes removed

    Examples:
        >>> split_fields('a,"b,c",d', ',')
        ['a', 'b,c', 'd']
        >>> split_fields('x,"a ""b"" c"', ',')
        ['x', 'a "b" c']
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        next_char = line[i + 1] if i + 1 < length else ''

        if in_quotes and char == escape_char and next_char == quote_char:
            current.append(quote_char)
            i += 2
            continue

        if char == quote_char:
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append(''.join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append(''.join(current))

    if trim:
        return [field.strip() for field in fields]
    return fields


def count_fields(line, delimiter, quote_char=DEFAULT_QUOTE_CHAR):
    """Count fields in a line, ignoring delimiters inside quoted spans."""
    count = 1
    in_quotes = False
    for char in line:
        if char == quote_char:
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            count += 1
    return count


def field_count_consistency(counts):
    """
    Consistency of field counts: max(0, 1 - variance/mean), 0 if mean <= 1.

    Examples:
        >>> field_count_consistency([3, 3, 3])
        1.0
        >>> field_count_consistency([1, 1])
        0.0
    """
    if not counts:
        return 0.0
    mean = sum(counts) / len(counts)
    if mean <= 1:
        return 0.0
    variance = sum((c - mean) ** 2 for c in counts) / len(counts)
    return max(0.0, 1 - variance / mean)


def score_delimiter(lines, delimiter, quote_char=DEFAULT_QUOTE_CHAR):
    counts = [count_fields(line, delimiter, quote_char) for line in lines]
    mean = sum(counts) / len(counts)
    consistency = field_count_consistency(counts)
    richness = min(1.0, mean / RICHNESS_TARGET_FIELDS)
    return CONSISTENCY_WEIGHT * consistency + RICHNESS_WEIGHT * richness


def _sample_lines(text):
    lines = [line for line in split_lines(text) if line.strip()]
    return lines[:DIALECT_SAMPLE_LINES]


def detect_delimiter(sample, quote_char=DEFAULT_QUOTE_CHAR):
    """
    Pick the delimiter that best splits the sample.

    Samples the first non-blank lines (up to 10). With fewer than two lines
    there is nothing to compare, so the comma is returned. Ties keep the
    earlier candidate in the order comma, semicolon, tab, pipe.

    Args:
        sample: CSV text (or its beginning)
        quote_char: Quote character used to protect delimiters

    Returns:
        str: The chosen delimiter

    Examples:
        >>> detect_delimiter('a,b,c\\n1,2,3\\n4,5,6')
        ','
        >>> detect_delimiter('a;b\\n1;2')
        ';'
        >>> detect_delimiter('single line')
        ','
    """
    lines = _sample_lines(sample)
    if len(lines) < 2:
        return DEFAULT_DELIMITER

    best_delimiter = CANDIDATE_DELIMITERS[0]
    best_score = score_delimiter(lines, best_delimiter, quote_char)
    for delimiter in CANDIDATE_DELIMITERS[1:]:
        score = score_delimiter(lines, delimiter, quote_char)
        if score > best_score:
            best_delimiter, best_score = delimiter, score

    logger.debug("Detected delimiter %r (score %.3f)", best_delimiter, best_score)
    return best_delimiter


def looks_like_path_or_url(text):
    """True if the text is shaped like a spreadsheet path or an http(s) URL."""
    candidate = text.strip()
    return bool(
        _FILE_EXTENSION_RE.search(candidate)
        or _PATH_SHAPE_RE.match(candidate)
        or _URL_SHAPE_RE.match(candidate)
    )


def looks_like_csv(text, quote_char=DEFAULT_QUOTE_CHAR):
    """
    Decide whether a string is CSV content rather than a path or prose.

    Args:
        text: Arbitrary string

    Returns:
        bool: True if some candidate delimiter splits at least two sampled
        lines with consistency above 0.8 and at least one line has more
        than one field

    Examples:
        >>> looks_like_csv('name,age\\nJohn,30')
        True
        >>> looks_like_csv('./data/report.csv')
        False
        >>> looks_like_csv('just some words\\nand more words')
        False
    """
    if not isinstance(text, str) or looks_like_path_or_url(text):
        return False

    lines = _sample_lines(text)
    if len(lines) < 2:
        return False

    for delimiter in CANDIDATE_DELIMITERS:
        counts = [count_fields(line, delimiter, quote_char) for line in lines]
        if field_count_consistency(counts) > CSV_CONSISTENCY_THRESHOLD and max(counts) > 1:
            return True
    return False
