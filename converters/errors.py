"""
Exception hierarchy for the conversion pipeline.

Every error raised by the converters carries a human-readable message and an
optional ``details`` dict with context (sheet name, source type, ...).
"""


class SpreadsheetConversionError(Exception):
    """Base class for all conversion errors."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self):
        return {
            'error': self.message,
            'type': type(self).__name__,
            'details': self.details,
        }


class InvalidInputError(SpreadsheetConversionError):
    """Input is missing, empty, of an unsupported type, or a malformed path/URL."""


class NoSheetsFoundError(SpreadsheetConversionError):
    """The sheet selection resolved to zero sheets."""


class ParseFailureError(SpreadsheetConversionError):
    """The decoder or CSV tokenizer could not produce a grid or rows."""


class ValidationFailureError(SpreadsheetConversionError):
    """Row validation stopped the run (error limit reached with continue disabled)."""


class ConversionFailureError(SpreadsheetConversionError):
    """Catch-all wrapper for unexpected exceptions during conversion."""
