"""
Configuration classes for dimension updater library.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Callable
from enum import Enum


class SCDPolicy(Enum):
    """Enumeration of change-tracking policies for a dimension attribute."""
    OVERWRITE = "overwrite"
    VERSION = "version"
    SHADOW_COLUMN = "shadow_column"

    @classmethod
    def from_value(cls, value: Any) -> "SCDPolicy":
        """
        Resolve a policy from an enum member, name, value or Kimball type alias.

        Args:
            value: Policy value (e.g. SCDPolicy.VERSION, "VERSION", "type2")

        Returns:
            Matching SCDPolicy
        """
        if isinstance(value, cls):
            return value

        key = str(value).strip().lower()
        aliases = {
            "type1": cls.OVERWRITE,
            "type2": cls.VERSION,
            "type3": cls.SHADOW_COLUMN,
        }
        if key in aliases:
            return aliases[key]

        for policy in cls:
            if key in (policy.value, policy.name.lower()):
                return policy

        valid = [policy.name for policy in cls] + list(aliases)
        raise ValueError(f"Unknown SCD policy '{value}', expected one of {valid}")


class DeduplicationStrategy(Enum):
    """Enumeration of available deduplication strategies."""
    LATEST = "latest"
    EARLIEST = "earliest"
    CUSTOM = "custom"


@dataclass
class DimensionConfig:
    """Configuration for a dimension table maintained by the updater."""

    # Required parameters
    dimension_name: str
    business_key_column: str
    policies: Dict[str, Any]

    # Standard column names
    surrogate_key_column: str = "surrogate_key"
    effective_start_column: str = "EffectiveDate"
    effective_end_column: str = "EndDate"
    is_current_column: str = "IsCurrent"
    scd_hash_column: str = "scd_hash"

    # Shadow column naming: City -> CurrentCity / PreviousCity
    current_value_prefix: str = "Current"
    previous_value_prefix: str = "Previous"

    hash_algorithm: str = "sha256"
    surrogate_key_generator: Optional[Callable] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.dimension_name:
            raise ValueError("dimension_name is required")
        if not self.business_key_column:
            raise ValueError("business_key_column is required")
        if not self.policies:
            raise ValueError("policies cannot be empty")
        if self.business_key_column in self.policies:
            raise ValueError("business_key_column cannot carry an SCD policy")
        if self.current_value_prefix == self.previous_value_prefix:
            raise ValueError("current_value_prefix and previous_value_prefix must differ")

        self.policies = {
            attribute: SCDPolicy.from_value(policy)
            for attribute, policy in self.policies.items()
        }
        self.hash_algorithm = self.hash_algorithm.lower()

        columns = self.storage_columns()
        duplicates = {name for name in columns if columns.count(name) > 1}
        if duplicates:
            raise ValueError(f"Column names collide: {sorted(duplicates)}")

    def policy_for(self, attribute: str) -> Optional[SCDPolicy]:
        """Return the policy assigned to an attribute, or None if untracked."""
        return self.policies.get(attribute)

    def is_tracked(self, attribute: str) -> bool:
        return attribute in self.policies

    def _attributes_with(self, policy: SCDPolicy) -> List[str]:
        return [name for name, assigned in self.policies.items() if assigned is policy]

    @property
    def overwrite_attributes(self) -> List[str]:
        return self._attributes_with(SCDPolicy.OVERWRITE)

    @property
    def version_attributes(self) -> List[str]:
        return self._attributes_with(SCDPolicy.VERSION)

    @property
    def shadow_attributes(self) -> List[str]:
        return self._attributes_with(SCDPolicy.SHADOW_COLUMN)

    def current_column(self, attribute: str) -> str:
        """Storage column holding the value of an attribute."""
        if self.policies.get(attribute) is SCDPolicy.SHADOW_COLUMN:
            return f"{self.current_value_prefix}{attribute}"
        return attribute

    def previous_column(self, attribute: str) -> str:
        """Storage column holding the superseded value of a shadow attribute."""
        if self.policies.get(attribute) is not SCDPolicy.SHADOW_COLUMN:
            raise ValueError(f"Attribute {attribute} is not tracked with SHADOW_COLUMN")
        return f"{self.previous_value_prefix}{attribute}"

    def storage_columns(self) -> List[str]:
        """
        Get the ordered list of storage columns for the dimension table.

        Returns:
            Business key, attribute columns and SCD metadata columns
        """
        columns = [self.business_key_column]
        for attribute in self.policies:
            columns.append(self.current_column(attribute))
            if self.policies[attribute] is SCDPolicy.SHADOW_COLUMN:
                columns.append(self.previous_column(attribute))
        columns.extend([
            self.surrogate_key_column,
            self.scd_hash_column,
            self.effective_start_column,
            self.effective_end_column,
            self.is_current_column,
        ])
        return columns


@dataclass
class DeduplicationConfig:
    """Configuration for change event deduplication."""

    deduplication_strategy: str = "latest"

    # Custom deduplication logic: receives the events of one (key, date) group
    custom_deduplication_logic: Optional[Callable] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_strategies = [strategy.value for strategy in DeduplicationStrategy]
        if self.deduplication_strategy not in valid_strategies:
            raise ValueError(f"deduplication_strategy must be one of {valid_strategies}")

        if (self.deduplication_strategy == "custom" and
                not self.custom_deduplication_logic):
            raise ValueError("custom_deduplication_logic is required for 'custom' strategy")


@dataclass
class ProcessingMetrics:
    """Metrics for processing operations."""

    records_processed: int = 0
    new_records_created: int = 0
    new_versions_created: int = 0
    existing_records_updated: int = 0
    records_unchanged: int = 0
    records_with_errors: int = 0
    stale_snapshot_retries: int = 0
    processing_time_seconds: float = 0.0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "records_processed": self.records_processed,
            "new_records_created": self.new_records_created,
            "new_versions_created": self.new_versions_created,
            "existing_records_updated": self.existing_records_updated,
            "records_unchanged": self.records_unchanged,
            "records_with_errors": self.records_with_errors,
            "stale_snapshot_retries": self.stale_snapshot_retries,
            "processing_time_seconds": self.processing_time_seconds,
            "errors": list(self.errors)
        }


@dataclass
class ValidationResult:
    """Result of data validation."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)

    def to_dict(self) -> Dict[str, Any]:
        """Convert validation result to dictionary."""
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings
        }
