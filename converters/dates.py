"""
Date helpers for cell coercion.

Functions:
    format_date: Render a date/datetime using a token pattern (YYYY, MM, DD, ...)
    excel_serial_to_datetime: Convert an Excel serial number to a datetime
    is_date_number_format: Check whether a cell number format displays a date
"""

import datetime
import re

from openpyxl.styles.numbers import is_date_format
from openpyxl.utils.datetime import from_excel

_TOKEN_RE = re.compile(r'YYYY|YY|MM|DD|HH|mm|ss')


def format_date(value, pattern):
    """
    Format a date or datetime with a simple token pattern.

    Supported tokens: YYYY, YY, MM, DD, HH, mm, ss. Anything else is copied
    verbatim.

    Args:
        value: date or datetime
        pattern: Format pattern, e.g. 'DD/MM/YYYY'

    Returns:
        str: Formatted date

    Examples:
        >>> format_date(datetime.date(2024, 3, 7), 'DD/MM/YYYY')
        '07/03/2024'
        >>> format_date(datetime.datetime(2024, 3, 7, 9, 5), 'YYYY-MM-DD HH:mm')
        '2024-03-07 09:05'
    """
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime(value.year, value.month, value.day)

    tokens = {
        'YYYY': f"{value.year:04d}",
        'YY': f"{value.year % 100:02d}",
        'MM': f"{value.month:02d}",
        'DD': f"{value.day:02d}",
        'HH': f"{value.hour:02d}",
        'mm': f"{value.minute:02d}",
        'ss': f"{value.second:02d}",
    }
    return _TOKEN_RE.sub(lambda m: tokens[m.group(0)], pattern)


def excel_serial_to_datetime(serial):
    """Convert an Excel serial day number (1900 date system) to a datetime."""
    result = from_excel(serial)
    if isinstance(result, datetime.time):
        # Serials below 1 are pure time-of-day values
        return datetime.datetime.combine(datetime.date(1899, 12, 30), result)
    return result


def is_date_number_format(number_format):
    if not number_format:
        return False
    return is_date_format(number_format)
