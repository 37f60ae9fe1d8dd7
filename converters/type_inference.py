"""
Type inference for raw CSV fields.

A field is classified in a fixed order, first match wins:
    1. empty after trim      → None
    2. boolean token         → bool   (true, yes, y / false, no, n)
    3. numeric literal       → int or float
    4. date in a known shape → datetime.date
    5. anything else         → the trimmed string

The order matters: "2024" becomes a number, never a date.

Functions:
    infer_value: Classify and convert one raw field
    parse_number: Parse a numeric literal or return None
    parse_date: Parse one of the supported date shapes or return None
"""

import datetime
import math
import re

from .config import BOOLEAN_FALSE_TOKENS, BOOLEAN_TRUE_TOKENS

_DECIMAL_RE = re.compile(r'^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$')
_HEX_RE = re.compile(r'^0[xX][0-9a-fA-F]+$')
_OCTAL_RE = re.compile(r'^0[oO][0-7]+$')
_BINARY_RE = re.compile(r'^0[bB][01]+$')

# (pattern, group order) - groups are mapped to (year, month, day)
_DATE_SHAPES = [
    (re.compile(r'^([0-9]{4})-([0-9]{2})-([0-9]{2})$'), ('year', 'month', 'day')),
    (re.compile(r'^([0-9]{2})/([0-9]{2})/([0-9]{4})$'), ('month', 'day', 'year')),
    (re.compile(r'^([0-9]{2})-([0-9]{2})-([0-9]{4})$'), ('month', 'day', 'year')),
    (re.compile(r'^([0-9]{1,2})/([0-9]{1,2})/([0-9]{4})$'), ('month', 'day', 'year')),
]


def parse_number(text):
    """
    Parse a numeric literal.

    Accepts decimal literals with optional sign, fraction and exponent, plus
    0x/0o/0b prefixed integers. Integral values come back as ``int``.

    Args:
        text: Trimmed string

    Returns:
        int | float | None: Parsed number, or None if text is not numeric

    Examples:
        >>> parse_number('42')
        42
        >>> parse_number('1e3')
        1000
        >>> parse_number('3.5')
        3.5
        >>> parse_number('0x1F')
        31
        >>> parse_number('1,000') is None
        True
    """
    if _HEX_RE.match(text):
        return int(text, 16)
    if _OCTAL_RE.match(text):
        return int(text[2:], 8)
    if _BINARY_RE.match(text):
        return int(text[2:], 2)
    if not _DECIMAL_RE.match(text):
        return None

    # Plain digit strings keep full integer precision
    if text.lstrip('+-').isdigit():
        return int(text)

    number = float(text)
    if math.isfinite(number) and number.is_integer():
        return int(number)
    return number


def parse_date(text):
    """
    Parse YYYY-MM-DD, MM/DD/YYYY, MM-DD-YYYY or M/D/YYYY into a date.

    Returns None when no shape matches or the calendar date does not exist.

    Examples:
        >>> parse_date('2024-01-15')
        datetime.date(2024, 1, 15)
        >>> parse_date('1/2/2024')
        datetime.date(2024, 1, 2)
        >>> parse_date('02/30/2024') is None
        True
    """
    for pattern, order in _DATE_SHAPES:
        match = pattern.match(text)
        if not match:
            continue
        parts = dict(zip(order, (int(g) for g in match.groups())))
        try:
            return datetime.date(parts['year'], parts['month'], parts['day'])
        except ValueError:
            return None
    return None


def infer_value(raw):
    """
    Convert a raw CSV field to its inferred Python value.

    Args:
        raw: Raw field text (None is treated as empty)

    Returns:
        None, bool, int, float, datetime.date or str

    Examples:
        >>> infer_value('  ')
        >>> infer_value('Yes')
        True
        >>> infer_value('2024')
        2024
        >>> infer_value('2024-03-01')
        datetime.date(2024, 3, 1)
        >>> infer_value(' hello ')
        'hello'
    """
    if raw is None:
        return None

    text = str(raw).strip()
    if text == '':
        return None

    lowered = text.lower()
    if lowered in BOOLEAN_TRUE_TOKENS:
        return True
    if lowered in BOOLEAN_FALSE_TOKENS:
        return False

    number = parse_number(text)
    if number is not None:
        return number

    date_value = parse_date(text)
    if date_value is not None:
        return date_value

    return text
