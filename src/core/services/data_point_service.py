"""
Write path for data points.

Every mutation goes through DataPointService. A broadcast is only ever sent
after the store call has returned successfully; a failing store call raises
before any publish, and a failing publish never undoes a committed write.
"""
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, List, Optional

from core import topics
from core.errors import DataPointNotFoundError
from core.event_hub import EventHub, event_hub
from core.models.data_point import DataPoint
from core.services.data_point_store import DataPointStore

logger = logging.getLogger(__name__)


class DataPointService:
    def __init__(self, store: DataPointStore, hub: Optional[EventHub] = None):
        self.store = store
        self.hub = hub if hub is not None else event_hub

    def _broadcast(self, topic: str, message: Any):
        try:
            self.hub.publish(topic, message)
        except Exception as e:
            # The write is already committed; losing its broadcast is acceptable
            logger.error(f"Broadcast on {topic} failed: {e}")

    # ---------------------------------------------------------------- writes

    async def save(self, point: DataPoint) -> DataPoint:
        """
        Persist `point` as a new row, then publish it on the global and
        per-category feeds. Any id on the input is ignored.
        """
        saved = await self.store.save(replace(point, id=None))
        self._broadcast(topics.DATAPOINTS, saved)
        self._broadcast(topics.category_topic(saved.category), saved)
        return saved

    async def save_batch(self, points: List[DataPoint]) -> List[DataPoint]:
        saved = await self.store.save_all(points)
        self._broadcast(topics.DATAPOINTS_BATCH, saved)
        return saved

    async def update(self, point_id: int, new_values: DataPoint) -> DataPoint:
        """
        Replace every mutable field of an existing point.
        The id and the original timestamp are kept.
        """
        existing = await self.store.find_by_id(point_id)
        if existing is None:
            raise DataPointNotFoundError(point_id)

        updated = replace(
            existing,
            category=new_values.category,
            label=new_values.label,
            value=new_values.value,
            source=new_values.source,
            description=new_values.description,
            unit=new_values.unit,
            metadata=new_values.metadata,
        )
        saved = await self.store.save(updated)
        self._broadcast(topics.DATAPOINTS_UPDATED, saved)
        return saved

    async def delete(self, point_id: int):
        if not await self.store.delete_by_id(point_id):
            raise DataPointNotFoundError(point_id)
        self._broadcast(topics.DATAPOINTS_DELETED, point_id)

    async def cleanup(self, days_to_keep: int) -> int:
        """Delete points older than `days_to_keep` days. Bulk deletion is not broadcast."""
        cutoff = datetime.now() - timedelta(days=days_to_keep)
        deleted = await self.store.delete_by_timestamp_before(cutoff)
        logger.info(f"Cleaned up {deleted} data points older than {days_to_keep} days")
        return deleted

    # ----------------------------------------------------------------- reads

    async def get_by_id(self, point_id: int) -> Optional[DataPoint]:
        return await self.store.find_by_id(point_id)

    async def get_all(self) -> List[DataPoint]:
        return await self.store.find_all()

    async def get_by_category(self, category: str) -> List[DataPoint]:
        return await self.store.find_by_category(category)

    async def get_by_source(self, source: str) -> List[DataPoint]:
        return await self.store.find_by_source(source)

    async def get_recent(self) -> List[DataPoint]:
        return await self.store.find_recent(100)

    async def get_recent_by_category(self, category: str) -> List[DataPoint]:
        return await self.store.find_recent_by_category(category, 50)

    async def get_in_time_range(self, start: datetime, end: datetime) -> List[DataPoint]:
        return await self.store.find_in_time_range(start, end)

    async def get_by_category_in_time_range(self, category: str, start: datetime, end: datetime) -> List[DataPoint]:
        return await self.store.find_by_category_in_time_range(category, start, end)

    async def get_categories(self) -> List[str]:
        return await self.store.distinct_categories()

    async def get_sources(self) -> List[str]:
        return await self.store.distinct_sources()

    async def get_aggregated_by_category(self, start: datetime) -> List[dict]:
        return await self.store.aggregate_by_category(start)

    async def get_hourly_aggregated(self, category: str, start: datetime) -> List[dict]:
        return await self.store.hourly_aggregate(category, start)

    async def get_latest_by_category(self) -> List[DataPoint]:
        return await self.store.latest_by_category()

    async def get_count_by_category(self) -> List[dict]:
        return await self.store.count_by_category()

    async def search(self, term: str) -> List[DataPoint]:
        return await self.store.search(term)

    async def get_total_count(self) -> int:
        return await self.store.count()
