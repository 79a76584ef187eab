"""
Unit tests for InMemoryDimensionStore.
"""

import pytest
from datetime import date

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from libraries.dimension_updater.storage.memory_store import InMemoryDimensionStore
from libraries.dimension_updater.scd.dimension_updater import DimensionUpdater
from libraries.dimension_updater.scd.change_set import ChangeSet, OverwriteColumn
from libraries.dimension_updater.common.config import DimensionConfig
from libraries.dimension_updater.common.exceptions import StaleSnapshotError


class TestInMemoryDimensionStore:
    """Test cases for InMemoryDimensionStore."""

    @pytest.fixture
    def config(self):
        """Create dimension configuration for testing."""
        return DimensionConfig(
            dimension_name="dim_customer",
            business_key_column="CustomerID",
            policies={"City": "VERSION", "Phone": "OVERWRITE"}
        )

    @pytest.fixture
    def store(self, config):
        """Create an empty store."""
        return InMemoryDimensionStore(config)

    @pytest.fixture
    def updater(self, config):
        """Create DimensionUpdater instance for testing."""
        return DimensionUpdater(config)

    @pytest.fixture
    def seeded_store(self, store, updater):
        """Store holding customer 101 in Austin since 2020."""
        store.commit(updater.apply_change(101, {"City": "Austin", "Phone": "555-1234"}, date(2020, 1, 1)))
        return store

    def test_empty_store(self, store):
        """Unknown keys have no rows."""
        assert store.get_current_record(101) is None
        assert store.get_history(101) == []
        assert list(store.rows()) == []

    def test_commit_first_version(self, seeded_store):
        """A first observation becomes the current row."""
        current = seeded_store.get_current_record(101)

        assert current.attributes == {"City": "Austin", "Phone": "555-1234"}
        assert current.is_current is True

    def test_commit_new_version(self, seeded_store, updater):
        """A version change closes the old row and inserts the new one."""
        current = seeded_store.get_current_record(101)
        seeded_store.commit(updater.apply_change(101, {"City": "Dallas"}, date(2023, 7, 1), current))

        history = seeded_store.get_history(101)

        assert len(history) == 2
        assert history[0].end_date == date(2023, 7, 1)
        assert history[0].is_current is False
        assert history[1].attributes["City"] == "Dallas"
        assert history[1].is_current is True

    def test_commit_overwrite_in_place(self, seeded_store, updater):
        """An overwrite does not add rows."""
        current = seeded_store.get_current_record(101)
        seeded_store.commit(updater.apply_change(101, {"Phone": "555-5678"}, date(2023, 7, 1), current))

        history = seeded_store.get_history(101)

        assert len(history) == 1
        assert history[0].attributes["Phone"] == "555-5678"
        assert history[0].surrogate_key == current.surrogate_key

    def test_stale_snapshot_rejected(self, seeded_store, updater):
        """A change set built from an outdated snapshot is refused and leaves the store untouched."""
        stale = seeded_store.get_current_record(101)
        seeded_store.commit(updater.apply_change(101, {"City": "Dallas"}, date(2023, 7, 1), stale))
        before = seeded_store.get_history(101)

        with pytest.raises(StaleSnapshotError) as exc_info:
            seeded_store.commit(updater.apply_change(101, {"City": "Houston"}, date(2024, 1, 1), stale))

        assert exc_info.value.expected_surrogate_key == stale.surrogate_key
        assert exc_info.value.actual_surrogate_key == before[1].surrogate_key
        assert seeded_store.get_history(101) == before

    def test_stale_overwrite_rejected(self, seeded_store, updater):
        """Two overwrites from one snapshot cannot both land."""
        snapshot = seeded_store.get_current_record(101)
        first = updater.apply_change(101, {"Phone": "555-1111"}, date(2023, 7, 1), snapshot)
        second = updater.apply_change(101, {"Phone": "555-2222"}, date(2023, 7, 1), snapshot)
        seeded_store.commit(first)

        with pytest.raises(StaleSnapshotError) as exc_info:
            seeded_store.commit(second)

        assert exc_info.value.actual_surrogate_key == snapshot.surrogate_key
        assert seeded_store.get_current_record(101).attributes["Phone"] == "555-1111"

    def test_version_on_stale_overwrite_rejected(self, seeded_store, updater):
        """A new version built before an in-place update would drop that update."""
        snapshot = seeded_store.get_current_record(101)
        seeded_store.commit(updater.apply_change(101, {"Phone": "555-1111"}, date(2023, 7, 1), snapshot))

        with pytest.raises(StaleSnapshotError):
            seeded_store.commit(updater.apply_change(101, {"City": "Dallas"}, date(2023, 8, 1), snapshot))

        assert len(seeded_store.get_history(101)) == 1

    def test_stale_shadow_shift_rejected(self):
        """The previous value always holds the value immediately superseded."""
        config = DimensionConfig(
            dimension_name="dim_customer",
            business_key_column="CustomerID",
            policies={"City": "SHADOW_COLUMN"}
        )
        store = InMemoryDimensionStore(config)
        updater = DimensionUpdater(config)
        store.commit(updater.apply_change(101, {"City": "Austin"}, date(2020, 1, 1)))
        snapshot = store.get_current_record(101)
        to_dallas = updater.apply_change(101, {"City": "Dallas"}, date(2023, 7, 1), snapshot)
        to_houston = updater.apply_change(101, {"City": "Houston"}, date(2023, 8, 1), snapshot)
        store.commit(to_dallas)

        with pytest.raises(StaleSnapshotError):
            store.commit(to_houston)

        current = store.get_current_record(101)
        assert current.attributes == {"City": "Dallas"}
        assert current.previous_values == {"City": "Austin"}

    def test_hand_built_update_checks_old_value(self, seeded_store):
        """Change sets without a snapshot are checked against their expected old values."""
        current = seeded_store.get_current_record(101)
        change_set = ChangeSet(
            business_key=101,
            as_of_date=date(2023, 7, 1),
            snapshot_surrogate_key=current.surrogate_key,
            mutations=[OverwriteColumn(101, current.surrogate_key, "Phone", "555-9999", "555-0000")]
        )

        with pytest.raises(StaleSnapshotError):
            seeded_store.commit(change_set)

    def test_first_observation_race(self, seeded_store, updater):
        """A first-observation change set fails once the key exists."""
        with pytest.raises(StaleSnapshotError):
            seeded_store.commit(updater.apply_change(101, {"City": "Boston"}, date(2021, 1, 1)))

    def test_failed_mutation_leaves_store_untouched(self, seeded_store):
        """Commits are all-or-nothing."""
        current = seeded_store.get_current_record(101)
        change_set = ChangeSet(
            business_key=101,
            as_of_date=date(2023, 7, 1),
            snapshot_surrogate_key=current.surrogate_key,
            mutations=[
                OverwriteColumn(101, current.surrogate_key, "Phone", "555-1234", "555-0000"),
                OverwriteColumn(101, "SK_missing", "City", "Austin", "Dallas")
            ]
        )

        with pytest.raises(ValueError):
            seeded_store.commit(change_set)

        assert seeded_store.get_current_record(101) == current

    def test_reads_return_copies(self, seeded_store):
        """Callers cannot mutate stored rows."""
        current = seeded_store.get_current_record(101)
        current.attributes["City"] = "Elsewhere"

        assert seeded_store.get_current_record(101).attributes["City"] == "Austin"

    def test_empty_commit_is_noop(self, seeded_store):
        """Empty change sets skip the snapshot check."""
        seeded_store.commit(ChangeSet(business_key=101, as_of_date=date(2023, 7, 1)))

        assert len(seeded_store.get_history(101)) == 1

    def test_rows_and_table_info(self, seeded_store, updater):
        """Rows are flattened and counted."""
        current = seeded_store.get_current_record(101)
        seeded_store.commit(updater.apply_change(101, {"City": "Dallas"}, date(2023, 7, 1), current))
        seeded_store.commit(updater.apply_change(202, {"City": "Boston"}, date(2022, 1, 1)))

        rows = list(seeded_store.rows())
        info = seeded_store.get_table_info()

        assert len(rows) == 3
        assert all("CustomerID" in row and "IsCurrent" in row for row in rows)
        assert info == {
            "table_name": "dim_customer",
            "total_records": 3,
            "current_records": 2,
            "historical_records": 1
        }
