"""
Data models for decoded workbooks and conversion results.

Modules:
    grid: Cell, CellType, SheetGrid, Workbook
    results: ValidationError, ValidationResult, SheetMetadata, ConversionResult, ...
"""

from .grid import Cell, CellType, SheetGrid, Workbook, column_letter
from .results import (
    ConversionMetadata,
    ConversionResult,
    PerformanceMetrics,
    Severity,
    SheetMetadata,
    SourceInfo,
    ValidationError,
    ValidationResult,
)

__all__ = [
    'Cell', 'CellType', 'SheetGrid', 'Workbook', 'column_letter',
    'ConversionMetadata', 'ConversionResult', 'PerformanceMetrics', 'Severity',
    'SheetMetadata', 'SourceInfo', 'ValidationError', 'ValidationResult',
]
