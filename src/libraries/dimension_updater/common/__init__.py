"""
Common utilities and configurations for dimension updater library.
"""

from .config import (
    SCDPolicy,
    DimensionConfig,
    DeduplicationConfig,
    ProcessingMetrics,
    ValidationResult
)
from .exceptions import (
    DimensionalProcessingError,
    ConfigurationError,
    OutOfOrderUpdateError,
    StaleSnapshotError,
    SCDValidationError,
    SCDProcessingError,
    DeduplicationError
)
from .utils import (
    to_effective_date,
    date_sort_key,
    same_date_kind,
    values_equal,
    changed_attributes,
    validate_row_columns
)

__all__ = [
    "SCDPolicy",
    "DimensionConfig",
    "DeduplicationConfig",
    "ProcessingMetrics",
    "ValidationResult",
    "DimensionalProcessingError",
    "ConfigurationError",
    "OutOfOrderUpdateError",
    "StaleSnapshotError",
    "SCDValidationError",
    "SCDProcessingError",
    "DeduplicationError",
    "to_effective_date",
    "date_sort_key",
    "same_date_kind",
    "values_equal",
    "changed_attributes",
    "validate_row_columns"
]
