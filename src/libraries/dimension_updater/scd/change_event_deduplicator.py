"""
Change event deduplication and replay for SCD processing.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging
import time

from ..common.config import DeduplicationConfig
from ..common.exceptions import DeduplicationError
from ..common.utils import date_sort_key, to_effective_date
from .change_set import ChangeSet
from .dimension_updater import DimensionUpdater
from .records import DimensionRecord

logger = logging.getLogger(__name__)


@dataclass
class ChangeEvent:
    """An incoming attribute record for one business key at one point in time."""

    business_key: Any
    attributes: Mapping[str, Any]
    as_of_date: Any

    def __post_init__(self):
        self.as_of_date = to_effective_date(self.as_of_date)


class ChangeEventDeduplicator:
    """Deduplicates change events before they reach the updater."""

    def __init__(self, config: DeduplicationConfig):
        """
        Initialize ChangeEventDeduplicator with configuration.

        Args:
            config: Deduplication configuration
        """
        self.config = config
        logger.info(f"Initialized ChangeEventDeduplicator with strategy: {config.deduplication_strategy}")

    def deduplicate(self, events: Iterable[ChangeEvent]) -> List[ChangeEvent]:
        """
        Keep one event per business key and as-of date.

        Args:
            events: Change events, possibly with duplicates

        Returns:
            Deduplicated events, grouped by business key in first-seen order
            and sorted by as-of date within each key
        """
        start_time = time.time()
        groups: Dict[Any, Dict[Any, List[ChangeEvent]]] = {}
        original_count = 0

        for event in events:
            original_count += 1
            groups.setdefault(event.business_key, {}).setdefault(event.as_of_date, []).append(event)

        deduplicated = []
        for business_key, by_date in groups.items():
            for as_of_date in sorted(by_date, key=date_sort_key):
                deduplicated.append(self._apply_deduplication_strategy(by_date[as_of_date]))

        duplicates_removed = original_count - len(deduplicated)
        if duplicates_removed > 0:
            logger.warning(
                f"Removed {duplicates_removed} duplicate change events using "
                f"'{self.config.deduplication_strategy}' strategy"
            )
        logger.info(
            f"Deduplication completed in {time.time() - start_time:.2f} seconds. "
            f"Original events: {original_count}, Deduplicated: {len(deduplicated)}"
        )
        return deduplicated

    def _apply_deduplication_strategy(self, group: List[ChangeEvent]) -> ChangeEvent:
        strategy = self.config.deduplication_strategy
        if strategy == "latest":
            return group[-1]
        if strategy == "earliest":
            return group[0]

        chosen = self.config.custom_deduplication_logic(list(group))
        if not isinstance(chosen, ChangeEvent):
            raise DeduplicationError(
                f"Custom deduplication logic returned {type(chosen).__name__}, expected ChangeEvent",
                deduplication_strategy=strategy
            )
        if chosen.business_key != group[0].business_key or chosen.as_of_date != group[0].as_of_date:
            raise DeduplicationError(
                "Custom deduplication logic returned an event outside its group",
                deduplication_strategy=strategy
            )
        return chosen

    def replay(self, business_key: Any, events: Iterable[ChangeEvent],
               updater: DimensionUpdater,
               current: Optional[DimensionRecord] = None) -> List[ChangeSet]:
        """
        Fold the events of one business key through the updater in date order.

        Args:
            business_key: Business key to replay
            events: Change events; events for other keys are ignored
            updater: Dimension updater
            current: Current row snapshot before the first event

        Returns:
            One change set per event, in date order (empty sets included)
        """
        own_events = [event for event in events if event.business_key == business_key]
        change_sets = []
        snapshot = current

        for event in self.deduplicate(own_events):
            change_set = updater.apply_change(business_key, event.attributes, event.as_of_date, snapshot)
            change_sets.append(change_set)
            if not change_set.is_empty:
                snapshot = change_set.apply(snapshot)[-1]

        logger.info(f"Replayed {len(change_sets)} change events for key {business_key}")
        return change_sets
