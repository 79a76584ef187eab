"""
Date management utilities for SCD processing.
"""

from datetime import date
from typing import Any, List, Optional, Sequence
import logging

from ..common.config import DimensionConfig
from ..common.exceptions import OutOfOrderUpdateError, SCDValidationError
from ..common.utils import date_sort_key, same_date_kind, to_effective_date
from .records import DimensionRecord

logger = logging.getLogger(__name__)


class DateManager:
    """Manages effective-date bookkeeping for versioned records."""

    def __init__(self, config: DimensionConfig):
        """
        Initialize DateManager with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config

    def determine_effective_start(self, as_of_date: Any) -> date:
        """
        Determine effective start date for a change.

        Args:
            as_of_date: date, datetime or ISO string

        Returns:
            Coerced date or datetime
        """
        return to_effective_date(as_of_date)

    def validate_version_order(self, current: DimensionRecord, as_of_date: date) -> None:
        """
        Reject a new version that does not start strictly after the current one.

        Args:
            current: Current record
            as_of_date: Effective start of the new version
        """
        if not same_date_kind(as_of_date, current.effective_date):
            raise SCDValidationError(
                f"As-of {type(as_of_date).__name__} {as_of_date} cannot be compared with the "
                f"{type(current.effective_date).__name__} effective date {current.effective_date} "
                f"of key {current.business_key}"
            )
        if as_of_date <= current.effective_date:
            logger.warning(
                f"Rejected out-of-order change for {self.config.dimension_name} "
                f"key {current.business_key}: {as_of_date} <= {current.effective_date}"
            )
            raise OutOfOrderUpdateError(
                f"As-of date {as_of_date} must be after the current version's "
                f"effective date {current.effective_date} for key {current.business_key}",
                business_key=current.business_key,
                as_of_date=as_of_date,
                effective_date=current.effective_date
            )

    def open_version(self, record: DimensionRecord, start: date) -> DimensionRecord:
        """Return a copy of the record as an open, current version starting at ``start``."""
        opened = record.copy()
        opened.effective_date = start
        opened.end_date = None
        opened.is_current = True
        return opened

    def close_version(self, record: DimensionRecord, end: date) -> DimensionRecord:
        """Return a copy of the record closed at ``end``."""
        closed = record.copy()
        closed.end_date = end
        closed.is_current = False
        return closed

    def validate_date_consistency(self, history: Sequence[DimensionRecord]) -> List[str]:
        """
        Validate the effective-date intervals of one business key.

        Args:
            history: All versions of one business key

        Returns:
            List of validation errors
        """
        errors = []
        ordered = sorted(history, key=lambda r: date_sort_key(r.effective_date))

        for record in ordered:
            if record.end_date is not None and date_sort_key(record.end_date) <= date_sort_key(record.effective_date):
                errors.append(
                    f"Version {record.surrogate_key} ends at {record.end_date}, "
                    f"not after its effective date {record.effective_date}"
                )
            if record.is_current != (record.end_date is None):
                errors.append(
                    f"Version {record.surrogate_key} has is_current={record.is_current} "
                    f"with end date {record.end_date}"
                )

        for earlier, later in zip(ordered, ordered[1:]):
            if earlier.end_date is None:
                errors.append(
                    f"Version {earlier.surrogate_key} is open but is followed by "
                    f"{later.surrogate_key}"
                )
            elif date_sort_key(earlier.end_date) < date_sort_key(later.effective_date):
                errors.append(
                    f"Gap between {earlier.end_date} and {later.effective_date}"
                )
            elif date_sort_key(earlier.end_date) > date_sort_key(later.effective_date):
                errors.append(
                    f"Overlap between {later.effective_date} and {earlier.end_date}"
                )

        return errors

    def find_version_as_of(self, history: Sequence[DimensionRecord],
                           as_of: Any) -> Optional[DimensionRecord]:
        """
        Find the version of a business key in effect at a point in time.

        Args:
            history: All versions of one business key
            as_of: Point in time

        Returns:
            Covering record, or None if the key did not exist yet
        """
        point = to_effective_date(as_of)
        for record in history:
            if record.covers(point):
                return record
        return None
