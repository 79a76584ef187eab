"""
In-memory dimension storage.
"""

from collections import defaultdict
from typing import Any, Dict, Iterator, List, Optional
import logging
import threading

from ..common.config import DimensionConfig
from ..common.exceptions import StaleSnapshotError
from ..common.utils import date_sort_key
from ..scd.change_set import ChangeSet
from ..scd.records import DimensionRecord
from .base import DimensionStore

logger = logging.getLogger(__name__)


class InMemoryDimensionStore(DimensionStore):
    """Dictionary-backed dimension table with per-key optimistic commits."""

    def __init__(self, config: DimensionConfig):
        """
        Initialize InMemoryDimensionStore with configuration.

        Args:
            config: Dimension configuration
        """
        self.config = config
        self._rows: Dict[Any, List[DimensionRecord]] = {}
        self._locks: Dict[Any, threading.Lock] = defaultdict(threading.Lock)
        self._registry_lock = threading.Lock()

        logger.info(f"Initialized InMemoryDimensionStore for dimension: {config.dimension_name}")

    def _lock_for(self, business_key: Any) -> threading.Lock:
        with self._registry_lock:
            return self._locks[business_key]

    def get_current_record(self, business_key: Any) -> Optional[DimensionRecord]:
        for record in self._rows.get(business_key, []):
            if record.is_current:
                return record.copy()
        return None

    def get_history(self, business_key: Any) -> List[DimensionRecord]:
        history = [record.copy() for record in self._rows.get(business_key, [])]
        return sorted(history, key=lambda r: date_sort_key(r.effective_date))

    def commit(self, change_set: ChangeSet) -> None:
        """
        Commit a change set for one business key.

        Args:
            change_set: Change set computed from a snapshot of this store
        """
        if change_set.is_empty:
            return

        business_key = change_set.business_key
        with self._lock_for(business_key):
            rows = self._rows.get(business_key, [])
            current = next((record for record in rows if record.is_current), None)
            stored_key = current.surrogate_key if current is not None else None

            reason = change_set.stale_reason(current)
            if reason is not None:
                logger.warning(f"Stale snapshot for key {business_key}: {reason}")
                raise StaleSnapshotError(
                    f"Stale snapshot for key {business_key}: {reason}",
                    business_key=business_key,
                    expected_surrogate_key=change_set.snapshot_surrogate_key,
                    actual_surrogate_key=stored_key
                )

            # Copy-on-write: the stored list is replaced only after every mutation applied
            resulting = change_set.apply(current)
            replaced = {record.surrogate_key: record for record in resulting}
            existing_keys = {record.surrogate_key for record in rows}
            new_rows = [replaced.get(record.surrogate_key, record) for record in rows]
            new_rows.extend(record for record in resulting if record.surrogate_key not in existing_keys)
            self._rows[business_key] = new_rows

        logger.info(f"Committed {len(change_set)} mutations for key {business_key}")

    def rows(self) -> Iterator[Dict[str, Any]]:
        """Yield every stored version as a flattened storage row."""
        for records in self._rows.values():
            for record in records:
                yield record.to_row(self.config)

    def get_table_info(self) -> Dict[str, Any]:
        """
        Get information about the stored dimension.

        Returns:
            Dictionary with table information
        """
        total = sum(len(records) for records in self._rows.values())
        current = sum(1 for records in self._rows.values() for record in records if record.is_current)
        return {
            "table_name": self.config.dimension_name,
            "total_records": total,
            "current_records": current,
            "historical_records": total - current
        }
