"""
Dimension record model shared by the updater and the storage layer.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple

from ..common.config import DimensionConfig
from ..common.exceptions import SCDValidationError
from ..common.utils import date_sort_key, validate_row_columns


@dataclass
class DimensionRecord:
    """
    One version of a dimension member.

    ``attributes`` holds the current value of every tracked attribute
    regardless of policy; ``previous_values`` holds the superseded value of
    each SHADOW_COLUMN attribute. ``end_date`` is exclusive and ``None``
    while the version is open.
    """

    business_key: Any
    attributes: Dict[str, Any]
    effective_date: date
    surrogate_key: Optional[Any] = None
    previous_values: Dict[str, Any] = field(default_factory=dict)
    end_date: Optional[date] = None
    is_current: bool = True
    scd_hash: Optional[str] = None

    def copy(self) -> "DimensionRecord":
        """Return a copy whose attribute dictionaries are independent of this one."""
        return replace(
            self,
            attributes=dict(self.attributes),
            previous_values=dict(self.previous_values)
        )

    @property
    def interval(self) -> Tuple[date, Optional[date]]:
        return self.effective_date, self.end_date

    def covers(self, as_of: date) -> bool:
        """Check whether this version is in effect at ``as_of``."""
        point = date_sort_key(as_of)
        if point < date_sort_key(self.effective_date):
            return False
        return self.end_date is None or point < date_sort_key(self.end_date)

    def to_row(self, config: DimensionConfig) -> Dict[str, Any]:
        """
        Flatten the record into a storage row.

        Args:
            config: Dimension configuration supplying column names

        Returns:
            Dictionary keyed by storage column name
        """
        row = {config.business_key_column: self.business_key}
        for attribute in config.policies:
            row[config.current_column(attribute)] = self.attributes.get(attribute)
        for attribute in config.shadow_attributes:
            row[config.previous_column(attribute)] = self.previous_values.get(attribute)

        row[config.surrogate_key_column] = self.surrogate_key
        row[config.scd_hash_column] = self.scd_hash
        row[config.effective_start_column] = self.effective_date
        row[config.effective_end_column] = self.end_date
        row[config.is_current_column] = self.is_current
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any], config: DimensionConfig) -> "DimensionRecord":
        """
        Build a record from a storage row produced by ``to_row``.

        Args:
            row: Storage row
            config: Dimension configuration supplying column names

        Returns:
            DimensionRecord
        """
        required = [
            config.business_key_column,
            config.surrogate_key_column,
            config.effective_start_column,
            config.effective_end_column,
            config.is_current_column,
        ]
        if not validate_row_columns(row, required):
            missing = sorted(set(required) - set(row))
            raise SCDValidationError(
                f"Row for {config.dimension_name} is missing columns: {missing}",
                validation_errors=missing
            )

        attributes = {
            attribute: row.get(config.current_column(attribute))
            for attribute in config.policies
        }
        previous_values = {
            attribute: row.get(config.previous_column(attribute))
            for attribute in config.shadow_attributes
        }

        return cls(
            business_key=row[config.business_key_column],
            attributes=attributes,
            previous_values=previous_values,
            surrogate_key=row[config.surrogate_key_column],
            scd_hash=row.get(config.scd_hash_column),
            effective_date=row[config.effective_start_column],
            end_date=row[config.effective_end_column],
            is_current=bool(row[config.is_current_column])
        )
