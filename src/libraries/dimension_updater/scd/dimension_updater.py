"""
Dimension updater: computes the row mutations that apply one incoming
change to a dimension member under its per-attribute SCD policies.

The updater is a pure computation over the incoming record and a snapshot
of the member's current row. Committing the resulting ChangeSet is the
responsibility of a DimensionWriter.
"""

from datetime import date
from typing import Any, Dict, Mapping, Optional, Union
import logging

from ..common.config import DimensionConfig, SCDPolicy
from ..common.exceptions import SCDValidationError
from ..common.utils import changed_attributes
from .change_set import ChangeSet, CloseVersion, InsertRow, OverwriteColumn, ShiftShadowColumn
from .date_manager import DateManager
from .hash_manager import HashManager
from .records import DimensionRecord
from .validators import SCDValidator

logger = logging.getLogger(__name__)


class DimensionUpdater:
    """Applies OVERWRITE, VERSION and SHADOW_COLUMN policies to incoming changes."""

    def __init__(self, config: DimensionConfig):
        """
        Initialize DimensionUpdater with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config

        # Initialize components
        self.hash_manager = HashManager(config)
        self.date_manager = DateManager(config)
        self.validator = SCDValidator(config)

        logger.info(f"Initialized DimensionUpdater for dimension: {config.dimension_name}")

    def apply_change(self, business_key: Any, incoming_attributes: Mapping[str, Any],
                     as_of_date: Any,
                     current: Optional[DimensionRecord] = None) -> ChangeSet:
        """
        Compute the change set for one incoming attribute record.

        Args:
            business_key: Business key of the dimension member
            incoming_attributes: Attribute values observed at ``as_of_date``;
                attributes left out keep their current value
            as_of_date: Point in time the change takes effect
            current: Snapshot of the member's current row, or None if the
                key has not been seen before

        Returns:
            ChangeSet with the ordered row mutations (empty if nothing changed)
        """
        # Reject untracked attributes before any mutation is computed
        self.validator.ensure_tracked(business_key, incoming_attributes)

        validation_result = self.validator.validate_incoming_attributes(business_key, incoming_attributes)
        if not validation_result.is_valid:
            raise SCDValidationError(
                f"Validation failed: {validation_result.errors}",
                validation_errors=validation_result.errors
            )
        self.validator.validate_current_record(business_key, current)

        as_of = self.date_manager.determine_effective_start(as_of_date)
        incoming = {
            name: value for name, value in incoming_attributes.items()
            if name != self.config.business_key_column
        }

        if current is None:
            return self._first_version(business_key, incoming, as_of)

        changes = changed_attributes(current.attributes, incoming)
        change_set = ChangeSet(
            business_key=business_key,
            as_of_date=as_of,
            snapshot_surrogate_key=current.surrogate_key,
            snapshot=current.copy()
        )

        if not changes:
            logger.debug(f"No tracked attribute changed for key {business_key}")
            return change_set

        version_changes = [
            name for name in changes
            if self.config.policy_for(name) is SCDPolicy.VERSION
        ]
        if version_changes:
            self.date_manager.validate_version_order(current, as_of)
            new_record = self._build_new_version(current, changes, as_of)
            change_set.mutations.extend([
                CloseVersion(
                    business_key=business_key,
                    surrogate_key=current.surrogate_key,
                    end_date=as_of
                ),
                InsertRow(record=new_record)
            ])
            logger.info(
                f"Key {business_key}: new version {new_record.surrogate_key} from {as_of} "
                f"for changed attributes {version_changes}"
            )
            return change_set

        for name, (old_value, new_value) in changes.items():
            if self.config.policy_for(name) is SCDPolicy.SHADOW_COLUMN:
                change_set.mutations.append(ShiftShadowColumn(
                    business_key=business_key,
                    surrogate_key=current.surrogate_key,
                    attribute=name,
                    previous_value=old_value,
                    new_value=new_value
                ))
            else:
                change_set.mutations.append(OverwriteColumn(
                    business_key=business_key,
                    surrogate_key=current.surrogate_key,
                    attribute=name,
                    old_value=old_value,
                    new_value=new_value
                ))
            logger.debug(f"Key {business_key}: {self.config.policy_for(name).name} {name}")

        return change_set

    def _first_version(self, business_key: Any, incoming: Dict[str, Any],
                       as_of: date) -> ChangeSet:
        attributes = {name: incoming.get(name) for name in self.config.policies}
        record = DimensionRecord(
            business_key=business_key,
            attributes=attributes,
            previous_values={name: None for name in self.config.shadow_attributes},
            effective_date=as_of,
            surrogate_key=self.hash_manager.compute_surrogate_key(business_key, as_of),
            scd_hash=self.hash_manager.compute_scd_hash(attributes)
        )
        logger.info(f"Key {business_key}: first version {record.surrogate_key} from {as_of}")
        return ChangeSet(
            business_key=business_key,
            as_of_date=as_of,
            mutations=[InsertRow(record=record)]
        )

    def _build_new_version(self, current: DimensionRecord, changes: Dict[str, tuple],
                           as_of: date) -> DimensionRecord:
        # OVERWRITE and SHADOW_COLUMN changes are folded into the new row
        overlaid = current.copy()
        for name, (old_value, new_value) in changes.items():
            if self.config.policy_for(name) is SCDPolicy.SHADOW_COLUMN:
                overlaid.previous_values[name] = old_value
            overlaid.attributes[name] = new_value

        new_record = self.date_manager.open_version(overlaid, as_of)
        new_record.surrogate_key = self.hash_manager.compute_surrogate_key(current.business_key, as_of)
        new_record.scd_hash = self.hash_manager.compute_scd_hash(new_record.attributes)
        return new_record


def apply_change(business_key: Any, incoming_attributes: Mapping[str, Any],
                 policy_map: Union[DimensionConfig, Mapping[str, Any]], as_of_date: Any,
                 current: Optional[DimensionRecord] = None,
                 **config_options) -> ChangeSet:
    """
    Compute the change set for one incoming change.

    Args:
        business_key: Business key of the dimension member
        incoming_attributes: Attribute values observed at ``as_of_date``
        policy_map: Attribute -> policy mapping, or a full DimensionConfig
        as_of_date: Point in time the change takes effect
        current: Snapshot of the member's current row, if any
        **config_options: Extra DimensionConfig fields when ``policy_map``
            is a plain mapping

    Returns:
        ChangeSet with the ordered row mutations
    """
    if isinstance(policy_map, DimensionConfig):
        config = policy_map
    else:
        options = dict(config_options)
        config = DimensionConfig(
            dimension_name=options.pop("dimension_name", "dimension"),
            business_key_column=options.pop("business_key_column", "business_key"),
            policies=dict(policy_map),
            **options
        )
    return DimensionUpdater(config).apply_change(business_key, incoming_attributes, as_of_date, current)
