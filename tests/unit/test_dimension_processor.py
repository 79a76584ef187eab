"""
Unit tests for DimensionProcessor.
"""

import pytest
from datetime import date
from unittest.mock import Mock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from libraries.dimension_updater.scd.dimension_processor import DimensionProcessor
from libraries.dimension_updater.scd.change_event_deduplicator import ChangeEvent
from libraries.dimension_updater.storage.memory_store import InMemoryDimensionStore
from libraries.dimension_updater.common.config import DimensionConfig, ProcessingMetrics
from libraries.dimension_updater.common.exceptions import (
    ConfigurationError,
    SCDProcessingError,
    StaleSnapshotError
)


class RacingStore(InMemoryDimensionStore):
    """Store that lets a competing writer slip in before the first commit."""

    def __init__(self, config, competing_change):
        super().__init__(config)
        self.competing_change = competing_change

    def commit(self, change_set):
        if self.competing_change is not None:
            competing, self.competing_change = self.competing_change, None
            super().commit(competing)
        super().commit(change_set)


class TestDimensionProcessor:
    """Test cases for DimensionProcessor."""

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
    def processor(self, config, store):
        """Create DimensionProcessor instance for testing."""
        return DimensionProcessor(config, store)

    def test_init_invalid_retries(self, config, store):
        """Test initialization with non-positive retries."""
        with pytest.raises(ValueError):
            DimensionProcessor(config, store, max_retries=0)

    def test_process_change(self, processor, store):
        """A single event lands in the store."""
        processor.process_change(ChangeEvent(101, {"City": "Austin"}, "2020-01-01"))

        current = store.get_current_record(101)
        assert current.attributes == {"City": "Austin", "Phone": None}

    def test_process_change_retries_stale_snapshot(self, config):
        """A stale snapshot is re-read and the change recomputed."""
        racing_store = RacingStore(config, None)
        racing_processor = DimensionProcessor(config, racing_store)
        racing_processor.process_change(ChangeEvent(101, {"City": "Austin", "Phone": "1"}, "2020-01-01"))
        current = racing_store.get_current_record(101)
        competing = racing_processor.updater.apply_change(101, {"City": "Dallas"}, date(2021, 1, 1), current)
        racing_store.competing_change = competing

        metrics = ProcessingMetrics()
        change_set = racing_processor.process_change(ChangeEvent(101, {"Phone": "2"}, "2022-01-01"), metrics)

        current = racing_store.get_current_record(101)
        assert metrics.stale_snapshot_retries == 1
        assert change_set.snapshot_surrogate_key == competing.new_version.surrogate_key
        assert current.attributes == {"City": "Dallas", "Phone": "2"}
        assert len(racing_store.get_history(101)) == 2

    def test_process_change_gives_up(self, config):
        """Retries are bounded."""
        store = Mock()
        store.get_current_record.return_value = None
        store.commit.side_effect = StaleSnapshotError("stale", business_key=101)
        processor = DimensionProcessor(config, store, max_retries=2)

        with pytest.raises(SCDProcessingError) as exc_info:
            processor.process_change(ChangeEvent(101, {"City": "Austin"}, "2020-01-01"))

        assert exc_info.value.processing_step == "commit"
        assert store.commit.call_count == 2

    def test_process_change_no_change_skips_commit(self, config):
        """Empty change sets are not committed."""
        store = Mock()
        processor = DimensionProcessor(config, store)
        store.get_current_record.return_value = processor.updater.apply_change(
            101, {"City": "Austin"}, date(2020, 1, 1)
        ).new_version

        change_set = processor.process_change(ChangeEvent(101, {"City": "Austin"}, "2021-01-01"))

        assert change_set.is_empty
        store.commit.assert_not_called()

    def test_process_batch_metrics(self, processor, store):
        """Batch outcomes are counted per event."""
        metrics = processor.process_batch([
            ChangeEvent(101, {"City": "Austin", "Phone": "1"}, "2020-01-01"),
            ChangeEvent(101, {"City": "Dallas"}, "2023-07-01"),
            ChangeEvent(101, {"Phone": "2"}, "2023-08-01"),
            ChangeEvent(101, {"Phone": "2"}, "2023-09-01"),
            ChangeEvent(202, {"City": "Boston"}, "2022-01-01")
        ])

        assert metrics.records_processed == 5
        assert metrics.new_records_created == 2
        assert metrics.new_versions_created == 1
        assert metrics.existing_records_updated == 1
        assert metrics.records_unchanged == 1
        assert metrics.records_with_errors == 0
        assert len(store.get_history(101)) == 2

    def test_process_batch_counts_out_of_order(self, processor, store):
        """Out-of-order version changes are recorded and skipped."""
        processor.process_change(ChangeEvent(101, {"City": "Austin"}, "2023-07-01"))

        metrics = processor.process_batch([ChangeEvent(101, {"City": "Dallas"}, "2020-01-01")])

        assert metrics.records_with_errors == 1
        assert len(metrics.errors) == 1
        assert store.get_current_record(101).attributes["City"] == "Austin"

    def test_process_batch_aborts_on_configuration_error(self, processor, store):
        """Untracked attributes abort the batch."""
        with pytest.raises(ConfigurationError):
            processor.process_batch([
                ChangeEvent(101, {"City": "Austin"}, "2020-01-01"),
                ChangeEvent(202, {"Email": "x@y.z"}, "2020-01-01")
            ])

        assert store.get_current_record(101) is not None
        assert store.get_current_record(202) is None

    def test_process_batch_deduplicates(self, processor, store):
        """Duplicate events for one key and date are collapsed."""
        metrics = processor.process_batch([
            ChangeEvent(101, {"City": "Austin"}, "2020-01-01"),
            ChangeEvent(101, {"City": "Dallas"}, "2020-01-01")
        ])

        assert metrics.records_processed == 1
        assert store.get_current_record(101).attributes["City"] == "Dallas"

    def test_process_batch_counts_mixed_date_kinds(self, processor, store):
        """A datetime move on a date-typed row is recorded and skipped."""
        metrics = processor.process_batch([
            ChangeEvent(101, {"City": "Austin"}, "2020-01-01"),
            ChangeEvent(101, {"City": "Dallas"}, "2023-07-01T09:00:00")
        ])

        assert metrics.records_with_errors == 1
        assert metrics.new_records_created == 1
        assert store.get_current_record(101).attributes["City"] == "Austin"
