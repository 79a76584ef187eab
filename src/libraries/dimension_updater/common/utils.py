"""
Utility functions for dimension updater library.
"""

from datetime import date, datetime, time
from typing import List, Dict, Any, Mapping, Tuple
import logging
import math

from .exceptions import SCDValidationError

logger = logging.getLogger(__name__)


def to_effective_date(value: Any) -> date:
    """
    Coerce an as-of value into a date or datetime.

    Args:
        value: date, datetime or ISO-8601 string

    Returns:
        date (for date-only strings) or datetime
    """
    if isinstance(value, (date, datetime)):
        return value

    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text)
        except ValueError as e:
            raise SCDValidationError(f"Invalid as-of date '{value}': {str(e)}")

    raise SCDValidationError(
        f"As-of date must be a date, datetime or ISO string, got {type(value).__name__}"
    )


def date_sort_key(value: date) -> datetime:
    """Map a date or datetime onto a datetime so both kinds order together."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def same_date_kind(first: date, second: date) -> bool:
    """Check whether two values are both dates or both datetimes."""
    return isinstance(first, datetime) == isinstance(second, datetime)


def values_equal(first: Any, second: Any) -> bool:
    """
    Compare two attribute values, treating two NaN floats as equal.

    Args:
        first: First value
        second: Second value

    Returns:
        True if the values are equal
    """
    if isinstance(first, float) and isinstance(second, float):
        if math.isnan(first) and math.isnan(second):
            return True
    return first == second


def changed_attributes(current: Mapping[str, Any],
                       incoming: Mapping[str, Any]) -> Dict[str, Tuple[Any, Any]]:
    """
    Compare incoming attribute values with the current ones.

    Args:
        current: Current attribute values
        incoming: Incoming attribute values

    Returns:
        Ordered mapping of attribute -> (current value, incoming value) for
        attributes whose value differs
    """
    changes = {}
    for name, new_value in incoming.items():
        old_value = current.get(name)
        if not values_equal(old_value, new_value):
            changes[name] = (old_value, new_value)
    return changes


def validate_row_columns(row: Mapping[str, Any], required_columns: List[str]) -> bool:
    """
    Validate that a storage row contains all required columns.

    Args:
        row: Storage row
        required_columns: List of required column names

    Returns:
        True if all required columns exist, False otherwise
    """
    missing_columns = set(required_columns) - set(row)

    if missing_columns:
        logger.error(f"Missing required columns: {missing_columns}")
        return False

    return True
