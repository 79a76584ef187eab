"""
Data validation utilities for SCD processing.
"""

from typing import Any, Mapping, Optional, Sequence
import logging

from ..common.config import DimensionConfig, ValidationResult
from ..common.exceptions import ConfigurationError, SCDValidationError
from .date_manager import DateManager
from .records import DimensionRecord

logger = logging.getLogger(__name__)


class SCDValidator:
    """Validates incoming changes, snapshots and stored history."""

    def __init__(self, config: DimensionConfig):
        """
        Initialize SCDValidator with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config
        self.date_manager = DateManager(config)

    def validate_incoming_attributes(self, business_key: Any,
                                     incoming: Mapping[str, Any]) -> ValidationResult:
        """
        Validate an incoming attribute record before change detection.

        Args:
            business_key: Business key the change applies to
            incoming: Incoming attribute values

        Returns:
            ValidationResult with validation status and errors
        """
        result = ValidationResult(is_valid=True)

        if business_key is None:
            result.add_error("Business key cannot be null")

        key_column = self.config.business_key_column
        if key_column in incoming and incoming[key_column] != business_key:
            result.add_error(
                f"Incoming {key_column}={incoming[key_column]} does not match "
                f"business key {business_key}"
            )

        untracked = self._untracked(incoming)
        if untracked:
            result.add_error(f"Attributes without an SCD policy: {untracked}")

        if not any(name != key_column for name in incoming):
            result.add_warning("Incoming record carries no attributes")

        return result

    def _untracked(self, incoming: Mapping[str, Any]) -> list:
        key_column = self.config.business_key_column
        return [
            name for name in incoming
            if name != key_column and not self.config.is_tracked(name)
        ]

    def ensure_tracked(self, business_key: Any, incoming: Mapping[str, Any]) -> None:
        """Raise ConfigurationError if any incoming attribute has no policy."""
        untracked = self._untracked(incoming)
        if untracked:
            logger.error(
                f"Rejected change for {self.config.dimension_name} key {business_key}: "
                f"untracked attributes {untracked}"
            )
            raise ConfigurationError(
                f"Attributes {untracked} have no SCD policy in dimension "
                f"{self.config.dimension_name}",
                attributes=untracked,
                business_key=business_key
            )

    def validate_current_record(self, business_key: Any,
                                current: Optional[DimensionRecord]) -> None:
        """Raise SCDValidationError if a snapshot cannot serve as the current row."""
        if current is None:
            return
        if current.business_key != business_key:
            raise SCDValidationError(
                f"Snapshot belongs to key {current.business_key}, not {business_key}"
            )
        if not current.is_current or current.end_date is not None:
            raise SCDValidationError(
                f"Snapshot {current.surrogate_key} for key {business_key} is not the current row"
            )

    def validate_history(self, records: Sequence[DimensionRecord]) -> ValidationResult:
        """
        Validate all stored versions of one business key.

        Args:
            records: Versions of one business key

        Returns:
            ValidationResult with validation status
        """
        result = ValidationResult(is_valid=True)
        if not records:
            return result

        keys = {record.business_key for record in records}
        if len(keys) > 1:
            result.add_error(f"History mixes business keys: {sorted(map(str, keys))}")

        surrogate_keys = [record.surrogate_key for record in records]
        if len(set(surrogate_keys)) != len(surrogate_keys):
            result.add_error("Duplicate surrogate keys in history")

        current_count = sum(1 for record in records if record.is_current)
        if current_count > 1:
            result.add_error(f"Found {current_count} current records")
        elif current_count == 0:
            result.add_warning("History has no current record")

        for error in self.date_manager.validate_date_consistency(records):
            result.add_error(error)

        logger.debug(f"History validation completed. Valid: {result.is_valid}, Errors: {len(result.errors)}")
        return result
