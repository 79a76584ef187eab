"""
Dimension Updater Library

A library for maintaining dimension tables under per-attribute slowly
changing dimension policies: OVERWRITE (Type 1), VERSION (Type 2) and
SHADOW_COLUMN (Type 3).

Main Components:
- DimensionUpdater: Computes the change set for one incoming change
- ChangeEventDeduplicator: Deduplicates and replays change events
- DimensionProcessor: Reads snapshots, applies changes and commits them
- InMemoryDimensionStore / DeltaDimensionStore: Storage collaborators

Author: Data Engineering Team
Version: 1.0.0
"""

from .scd.dimension_updater import DimensionUpdater, apply_change
from .scd.records import DimensionRecord
from .scd.change_set import ChangeSet
from .scd.change_event_deduplicator import ChangeEvent, ChangeEventDeduplicator
from .scd.dimension_processor import DimensionProcessor
from .storage import InMemoryDimensionStore, DeltaDimensionStore
from .common.config import SCDPolicy, DimensionConfig, DeduplicationConfig
from .common.exceptions import (
    ConfigurationError,
    OutOfOrderUpdateError,
    StaleSnapshotError,
    SCDValidationError,
    SCDProcessingError,
    DeduplicationError
)

__version__ = "1.0.0"
__author__ = "Data Engineering Team"

__all__ = [
    "DimensionUpdater",
    "apply_change",
    "DimensionRecord",
    "ChangeSet",
    "ChangeEvent",
    "ChangeEventDeduplicator",
    "DimensionProcessor",
    "InMemoryDimensionStore",
    "DeltaDimensionStore",
    "SCDPolicy",
    "DimensionConfig",
    "DeduplicationConfig",
    "ConfigurationError",
    "OutOfOrderUpdateError",
    "StaleSnapshotError",
    "SCDValidationError",
    "SCDProcessingError",
    "DeduplicationError"
]
