"""
SCD policy processing modules.
"""

from .records import DimensionRecord
from .change_set import (
    ChangeSet,
    MutationKind,
    RowMutation,
    InsertRow,
    OverwriteColumn,
    ShiftShadowColumn,
    CloseVersion
)
from .hash_manager import HashManager
from .date_manager import DateManager
from .validators import SCDValidator
from .dimension_updater import DimensionUpdater, apply_change
from .change_event_deduplicator import ChangeEvent, ChangeEventDeduplicator
from .dimension_processor import DimensionProcessor

__all__ = [
    "DimensionRecord",
    "ChangeSet",
    "MutationKind",
    "RowMutation",
    "InsertRow",
    "OverwriteColumn",
    "ShiftShadowColumn",
    "CloseVersion",
    "HashManager",
    "DateManager",
    "SCDValidator",
    "DimensionUpdater",
    "apply_change",
    "ChangeEvent",
    "ChangeEventDeduplicator",
    "DimensionProcessor"
]
