"""
Row mutations produced by the dimension updater.

A ChangeSet is the ordered list of mutations a writer must commit
atomically for one business key.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional

from ..common.utils import values_equal
from .records import DimensionRecord


class MutationKind(Enum):
    """Tag of each row mutation variant."""
    INSERT = "insert"
    OVERWRITE = "overwrite"
    SHADOW = "shadow"
    CLOSE = "close"


class RowMutation(ABC):
    """A single insert or in-place update of one dimension row."""

    kind: ClassVar[MutationKind]
    business_key: Any
    surrogate_key: Any

    @property
    def is_insert(self) -> bool:
        return self.kind is MutationKind.INSERT

    @abstractmethod
    def apply(self, record: Optional[DimensionRecord]) -> DimensionRecord:
        """Return the row as it stands after this mutation; the input is left untouched."""

    def expected_values(self) -> Dict[str, Any]:
        """Attribute values the target row must still hold for this mutation to apply."""
        return {}

    def _check_target(self, record: Optional[DimensionRecord]) -> None:
        if record is None or record.surrogate_key != self.surrogate_key:
            found = None if record is None else record.surrogate_key
            raise ValueError(
                f"{self.kind.value} mutation targets row {self.surrogate_key}, got {found}"
            )


@dataclass(frozen=True)
class InsertRow(RowMutation):
    record: DimensionRecord
    kind: ClassVar[MutationKind] = MutationKind.INSERT

    @property
    def business_key(self) -> Any:
        return self.record.business_key

    @property
    def surrogate_key(self) -> Any:
        return self.record.surrogate_key

    def apply(self, record: Optional[DimensionRecord] = None) -> DimensionRecord:
        return self.record.copy()


@dataclass(frozen=True)
class OverwriteColumn(RowMutation):
    business_key: Any
    surrogate_key: Any
    attribute: str
    old_value: Any
    new_value: Any
    kind: ClassVar[MutationKind] = MutationKind.OVERWRITE

    def expected_values(self) -> Dict[str, Any]:
        return {self.attribute: self.old_value}

    def apply(self, record: Optional[DimensionRecord]) -> DimensionRecord:
        self._check_target(record)
        updated = record.copy()
        updated.attributes[self.attribute] = self.new_value
        return updated


@dataclass(frozen=True)
class ShiftShadowColumn(RowMutation):
    business_key: Any
    surrogate_key: Any
    attribute: str
    previous_value: Any
    new_value: Any
    kind: ClassVar[MutationKind] = MutationKind.SHADOW

    def expected_values(self) -> Dict[str, Any]:
        return {self.attribute: self.previous_value}

    def apply(self, record: Optional[DimensionRecord]) -> DimensionRecord:
        self._check_target(record)
        updated = record.copy()
        updated.previous_values[self.attribute] = self.previous_value
        updated.attributes[self.attribute] = self.new_value
        return updated


@dataclass(frozen=True)
class CloseVersion(RowMutation):
    business_key: Any
    surrogate_key: Any
    end_date: date
    kind: ClassVar[MutationKind] = MutationKind.CLOSE

    def apply(self, record: Optional[DimensionRecord]) -> DimensionRecord:
        self._check_target(record)
        updated = record.copy()
        updated.end_date = self.end_date
        updated.is_current = False
        return updated


@dataclass
class ChangeSet:
    """Ordered row mutations for one business key."""

    business_key: Any
    as_of_date: date
    snapshot_surrogate_key: Optional[Any] = None
    mutations: List[RowMutation] = field(default_factory=list)
    snapshot: Optional[DimensionRecord] = field(default=None, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.mutations)

    def __iter__(self) -> Iterator[RowMutation]:
        return iter(self.mutations)

    @property
    def is_empty(self) -> bool:
        return not self.mutations

    @property
    def inserts(self) -> List[InsertRow]:
        return [m for m in self.mutations if m.kind is MutationKind.INSERT]

    @property
    def updates(self) -> List[RowMutation]:
        return [m for m in self.mutations if m.kind is not MutationKind.INSERT]

    @property
    def new_version(self) -> Optional[DimensionRecord]:
        inserts = self.inserts
        return inserts[0].record if inserts else None

    @property
    def creates_version(self) -> bool:
        """True when the set closes the current row and inserts its successor."""
        return any(m.kind is MutationKind.CLOSE for m in self.mutations)

    def apply(self, current: Optional[DimensionRecord]) -> List[DimensionRecord]:
        """
        Fold the mutations over the snapshot they were computed from.

        Args:
            current: Current record snapshot, or None for a first observation

        Returns:
            Resulting rows: the updated or closed snapshot row (if any) first,
            then the inserted row (if any)
        """
        existing = current
        inserted = []
        for mutation in self.mutations:
            if mutation.is_insert:
                inserted.append(mutation.apply(None))
            else:
                existing = mutation.apply(existing)

        touched = [existing] if existing is not None and self.updates else []
        return touched + inserted

    def stale_reason(self, stored: Optional[DimensionRecord]) -> Optional[str]:
        """
        Explain why the stored current row no longer matches the snapshot.

        Identity alone is not enough: in-place updates keep the surrogate key,
        so the stored values are compared with the snapshot and with the
        values each update mutation expects to replace.

        Args:
            stored: Current row as the writer sees it, or None

        Returns:
            Description of the mismatch, or None if the change set still applies
        """
        stored_key = stored.surrogate_key if stored is not None else None
        if stored_key != self.snapshot_surrogate_key:
            return (
                f"current row is {stored_key}, change set was computed from "
                f"{self.snapshot_surrogate_key}"
            )
        if stored is None:
            return None

        if self.snapshot is not None:
            for values, snapshot_values in ((stored.attributes, self.snapshot.attributes),
                                            (stored.previous_values, self.snapshot.previous_values)):
                for name in {**snapshot_values, **values}:
                    if not values_equal(values.get(name), snapshot_values.get(name)):
                        return f"{name} of row {stored_key} changed since the snapshot was read"
            if stored.scd_hash != self.snapshot.scd_hash:
                return f"scd_hash of row {stored_key} changed since the snapshot was read"

        for mutation in self.updates:
            for name, expected in mutation.expected_values().items():
                if not values_equal(stored.attributes.get(name), expected):
                    return (
                        f"{name} of row {stored_key} is {stored.attributes.get(name)!r}, "
                        f"change set expected {expected!r}"
                    )
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert change set to dictionary."""
        return {
            "business_key": self.business_key,
            "as_of_date": str(self.as_of_date),
            "snapshot_surrogate_key": self.snapshot_surrogate_key,
            "mutations": [
                {"kind": m.kind.value, "surrogate_key": m.surrogate_key}
                for m in self.mutations
            ]
        }
