"""
Processor that reads snapshots, computes change sets and commits them.
"""

from typing import Iterable
import logging
import time

from ..common.config import DeduplicationConfig, DimensionConfig, ProcessingMetrics
from ..common.exceptions import (
    ConfigurationError,
    OutOfOrderUpdateError,
    SCDProcessingError,
    SCDValidationError,
    StaleSnapshotError
)
from ..storage.base import DimensionStore
from .change_event_deduplicator import ChangeEvent, ChangeEventDeduplicator
from .change_set import ChangeSet
from .dimension_updater import DimensionUpdater

logger = logging.getLogger(__name__)


class DimensionProcessor:
    """Applies change events to a dimension store one business key at a time."""

    def __init__(self, config: DimensionConfig, store: DimensionStore,
                 deduplication_config: DeduplicationConfig = None,
                 max_retries: int = 3):
        """
        Initialize DimensionProcessor with configuration and a store.

        Args:
            config: Dimension configuration
            store: Reader and writer for the dimension table
            deduplication_config: Strategy for duplicate change events
            max_retries: Attempts per event when the snapshot goes stale
        """
        if max_retries <= 0:
            raise ValueError("max_retries must be positive")

        self.config = config
        self.store = store
        self.max_retries = max_retries

        # Initialize components
        self.updater = DimensionUpdater(config)
        self.deduplicator = ChangeEventDeduplicator(deduplication_config or DeduplicationConfig())

        logger.info(f"Initialized DimensionProcessor for dimension: {config.dimension_name}")

    def process_change(self, event: ChangeEvent, metrics: ProcessingMetrics = None) -> ChangeSet:
        """
        Read the current row, compute the change set and commit it.

        A stale snapshot is re-read and the change set recomputed; the stale
        change set itself is never retried.

        Args:
            event: Change event
            metrics: Optional metrics to record retries in

        Returns:
            The committed change set
        """
        for attempt in range(1, self.max_retries + 1):
            current = self.store.get_current_record(event.business_key)
            change_set = self.updater.apply_change(
                event.business_key, event.attributes, event.as_of_date, current
            )
            if change_set.is_empty:
                return change_set

            try:
                self.store.commit(change_set)
                return change_set
            except StaleSnapshotError as e:
                if metrics is not None:
                    metrics.stale_snapshot_retries += 1
                logger.warning(
                    f"Attempt {attempt}/{self.max_retries} for key {event.business_key} "
                    f"hit a stale snapshot: {e.message}"
                )

        logger.error(f"Giving up on key {event.business_key} after {self.max_retries} stale snapshots")
        raise SCDProcessingError(
            f"Snapshot for key {event.business_key} stayed stale after {self.max_retries} attempts",
            processing_step="commit"
        )

    def process_batch(self, events: Iterable[ChangeEvent]) -> ProcessingMetrics:
        """
        Main entry point for applying a batch of change events.

        Args:
            events: Change events, possibly with duplicates

        Returns:
            ProcessingMetrics: Processing metrics and status
        """
        logger.info("🚀 ENTER: process_batch")
        start_time = time.time()
        metrics = ProcessingMetrics()

        for event in self.deduplicator.deduplicate(events):
            metrics.records_processed += 1
            try:
                change_set = self.process_change(event, metrics)
            except ConfigurationError:
                logger.error(f"Configuration error on key {event.business_key}, aborting batch")
                logger.info("🏁 EXIT: process_batch (with error)")
                raise
            except (OutOfOrderUpdateError, SCDValidationError) as e:
                metrics.records_with_errors += 1
                metrics.errors.append(e.message)
                continue

            if change_set.is_empty:
                metrics.records_unchanged += 1
            elif change_set.creates_version:
                metrics.new_versions_created += 1
            elif change_set.inserts:
                metrics.new_records_created += 1
            else:
                metrics.existing_records_updated += 1

        metrics.processing_time_seconds = time.time() - start_time
        logger.info(f"Batch processing completed. Metrics: {metrics.to_dict()}")
        logger.info("🏁 EXIT: process_batch")
        return metrics
