"""
Reader and writer interfaces for dimension storage.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..scd.change_set import ChangeSet
from ..scd.records import DimensionRecord


class DimensionReader(ABC):
    """Supplies current rows and history for business keys."""

    @abstractmethod
    def get_current_record(self, business_key: Any) -> Optional[DimensionRecord]:
        """Return the current row of a business key, or None if it was never seen."""

    @abstractmethod
    def get_history(self, business_key: Any) -> List[DimensionRecord]:
        """Return all versions of a business key ordered by effective date."""


class DimensionWriter(ABC):
    """Commits change sets atomically."""

    @abstractmethod
    def commit(self, change_set: ChangeSet) -> None:
        """
        Commit every mutation of the change set, or none of them.

        Raises StaleSnapshotError when the stored current row no longer
        matches ``change_set.snapshot_surrogate_key``.
        """


class DimensionStore(DimensionReader, DimensionWriter):
    """A storage backend that is both reader and writer."""
