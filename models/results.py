"""
Result records produced by a conversion run.

Classes:
    Severity: Validation error severity
    ValidationError: One recorded validation problem (not an exception)
    ValidationResult: Outcome of a validator call
    SourceInfo: Classified input source (type, size, mime type)
    SheetMetadata: Per-sheet extraction summary
    PerformanceMetrics: Timing summary for a run
    ConversionMetadata: Aggregate metadata attached to a result
    ConversionResult: Data plus metadata
"""

from dataclasses import asdict, dataclass, field
from enum import Enum


class Severity(str, Enum):
    ERROR = 'error'
    WARNING = 'warning'


@dataclass(frozen=True)
class ValidationError:
    sheet_name: str
    row_index: int
    message: str
    severity: Severity = Severity.ERROR
    column_name: str = None
    invalid_value: object = None


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    @classmethod
    def from_messages(cls, errors=None, warnings=None):
        errors = list(errors or [])
        return cls(is_valid=not errors, errors=errors, warnings=list(warnings or []))


@dataclass(frozen=True)
class SourceInfo:
    file_type: str
    source: str
    size_bytes: int = 0
    mime_type: str = None


@dataclass(frozen=True)
class SheetMetadata:
    name: str
    index: int
    row_count: int
    column_count: int
    processing_time_ms: float


@dataclass(frozen=True)
class PerformanceMetrics:
    total_processing_time_ms: float
    rows_per_second: float
    streaming_recommended: bool = False


@dataclass
class ConversionMetadata:
    source_file: str
    sheets_processed: list = field(default_factory=list)
    total_rows: int = 0
    total_sheets: int = 0
    processing_time_ms: float = 0.0
    validation_errors: list = field(default_factory=list)
    validation_warnings: list = field(default_factory=list)
    performance_metrics: PerformanceMetrics = None
    source_info: SourceInfo = None


@dataclass
class ConversionResult:
    """
    Output of ``SpreadsheetConverter.convert``.

    ``data`` is a list of row records for single-sheet selections, or a dict of
    sheet name → list of row records when several sheets were processed.
    """
    data: object
    metadata: ConversionMetadata

    def to_dict(self):
        return {'data': self.data, 'metadata': asdict(self.metadata)}
