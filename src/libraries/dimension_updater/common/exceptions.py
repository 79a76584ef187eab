"""
Custom exceptions for the dimension updater library.
"""


class DimensionalProcessingError(Exception):
    """Base exception for dimension updater library."""

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ConfigurationError(DimensionalProcessingError):
    """Exception raised when incoming attributes have no policy assignment."""

    def __init__(self, message: str, attributes: list = None, business_key=None):
        super().__init__(message, "CONFIGURATION_ERROR")
        self.attributes = attributes or []
        self.business_key = business_key


class OutOfOrderUpdateError(DimensionalProcessingError):
    """Exception raised when a versioned change is not dated after the current row."""

    def __init__(self, message: str, business_key=None, as_of_date=None,
                 effective_date=None):
        super().__init__(message, "OUT_OF_ORDER_UPDATE")
        self.business_key = business_key
        self.as_of_date = as_of_date
        self.effective_date = effective_date


class StaleSnapshotError(DimensionalProcessingError):
    """Exception raised by a writer when the stored row moved past the snapshot."""

    def __init__(self, message: str, business_key=None,
                 expected_surrogate_key=None, actual_surrogate_key=None):
        super().__init__(message, "STALE_SNAPSHOT")
        self.business_key = business_key
        self.expected_surrogate_key = expected_surrogate_key
        self.actual_surrogate_key = actual_surrogate_key


class SCDValidationError(DimensionalProcessingError):
    """Exception raised when SCD data validation fails."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, "SCD_VALIDATION_ERROR")
        self.validation_errors = validation_errors or []


class SCDProcessingError(DimensionalProcessingError):
    """Exception raised when SCD processing fails."""

    def __init__(self, message: str, processing_step: str = None):
        super().__init__(message, "SCD_PROCESSING_ERROR")
        self.processing_step = processing_step


class DeduplicationError(DimensionalProcessingError):
    """Exception raised when change event deduplication fails."""

    def __init__(self, message: str, deduplication_strategy: str = None):
        super().__init__(message, "DEDUPLICATION_ERROR")
        self.deduplication_strategy = deduplication_strategy
