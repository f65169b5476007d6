"""SQLite persistence for data points (async, parameterized queries only)."""
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, List, Optional

import aiosqlite

from core.errors import DataPointNotFoundError, StoreError
from core.models.data_point import DataPoint

logger = logging.getLogger(__name__)

COLUMNS = "id, category, label, value, source, description, unit, metadata, timestamp"


def _ts(value: datetime) -> str:
    # Fixed width so lexicographic order matches chronological order
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.isoformat(timespec="microseconds")


def _row_to_point(row: aiosqlite.Row) -> DataPoint:
    return DataPoint(
        id=row["id"],
        category=row["category"],
        label=row["label"],
        value=row["value"],
        source=row["source"],
        description=row["description"],
        unit=row["unit"],
        metadata=row["metadata"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
    )


def _point_params(point: DataPoint) -> tuple:
    return (
        point.category,
        point.label,
        point.value,
        point.source,
        point.description,
        point.unit,
        point.metadata,
        _ts(point.timestamp),
    )


class DataPointStore:
    """
    Persistence and query facade over the `data_points` table.
    A connection is opened per operation; SQLite provides the atomicity.
    Every database error is re-raised as StoreError.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except aiosqlite.Error as e:
            logger.error(f"SQLite error on {self.db_path}: {e}")
            raise StoreError(str(e)) from e

    async def init(self):
        """Create the table and indexes if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS data_points (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    category TEXT NOT NULL,
                    label TEXT NOT NULL,
                    value REAL NOT NULL CHECK (value > 0),
                    source TEXT,
                    description TEXT,
                    unit TEXT,
                    metadata TEXT,
                    timestamp TEXT NOT NULL
                )
            """)
            await db.execute("CREATE INDEX IF NOT EXISTS idx_category ON data_points(category)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_timestamp ON data_points(timestamp)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_source ON data_points(source)")
            await db.commit()
        logger.info(f"Data point store ready at {self.db_path}")

    async def _fetch_points(self, query: str, params: Iterable[Any] = ()) -> List[DataPoint]:
        async with self._connect() as db:
            cursor = await db.execute(query, tuple(params))
            rows = await cursor.fetchall()
        return [_row_to_point(row) for row in rows]

    async def _fetch_rows(self, query: str, params: Iterable[Any] = ()) -> List[aiosqlite.Row]:
        async with self._connect() as db:
            cursor = await db.execute(query, tuple(params))
            return list(await cursor.fetchall())

    # ---------------------------------------------------------------- writes

    async def save(self, point: DataPoint) -> DataPoint:
        """
        Insert a new point, or replace the row of a point that already has an id.
        Raises DataPointNotFoundError when that row does not exist.
        """
        async with self._connect() as db:
            if point.id is None:
                cursor = await db.execute(
                    "INSERT INTO data_points (category, label, value, source, description, unit, metadata, timestamp) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    _point_params(point),
                )
                point_id = cursor.lastrowid
            else:
                cursor = await db.execute(
                    "UPDATE data_points SET category = ?, label = ?, value = ?, source = ?, description = ?, "
                    "unit = ?, metadata = ?, timestamp = ? WHERE id = ?",
                    (*_point_params(point), point.id),
                )
                if cursor.rowcount == 0:
                    raise DataPointNotFoundError(point.id)
                point_id = point.id
            await db.commit()
        return replace(point, id=point_id)

    async def save_all(self, points: List[DataPoint]) -> List[DataPoint]:
        """Insert all points in one transaction."""
        saved: List[DataPoint] = []
        async with self._connect() as db:
            for point in points:
                cursor = await db.execute(
                    "INSERT INTO data_points (category, label, value, source, description, unit, metadata, timestamp) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    _point_params(point),
                )
                saved.append(replace(point, id=cursor.lastrowid))
            await db.commit()
        return saved

    async def delete_by_id(self, point_id: int) -> bool:
        async with self._connect() as db:
            cursor = await db.execute("DELETE FROM data_points WHERE id = ?", (point_id,))
            deleted = cursor.rowcount
            await db.commit()
        return deleted > 0

    async def delete_by_timestamp_before(self, cutoff: datetime) -> int:
        async with self._connect() as db:
            cursor = await db.execute("DELETE FROM data_points WHERE timestamp < ?", (_ts(cutoff),))
            deleted = cursor.rowcount
            await db.commit()
        return deleted

    # ----------------------------------------------------------------- reads

    async def find_by_id(self, point_id: int) -> Optional[DataPoint]:
        points = await self._fetch_points(f"SELECT {COLUMNS} FROM data_points WHERE id = ?", (point_id,))
        return points[0] if points else None

    async def find_all(self) -> List[DataPoint]:
        return await self._fetch_points(f"SELECT {COLUMNS} FROM data_points ORDER BY id")

    async def find_by_category(self, category: str) -> List[DataPoint]:
        return await self._fetch_points(
            f"SELECT {COLUMNS} FROM data_points WHERE category = ? ORDER BY timestamp DESC",
            (category,),
        )

    async def find_by_source(self, source: str) -> List[DataPoint]:
        return await self._fetch_points(
            f"SELECT {COLUMNS} FROM data_points WHERE source = ? ORDER BY timestamp DESC",
            (source,),
        )

    async def find_recent(self, limit: int = 100) -> List[DataPoint]:
        return await self._fetch_points(
            f"SELECT {COLUMNS} FROM data_points ORDER BY timestamp DESC LIMIT ?",
            (limit,),
        )

    async def find_recent_by_category(self, category: str, limit: int = 50) -> List[DataPoint]:
        return await self._fetch_points(
            f"SELECT {COLUMNS} FROM data_points WHERE category = ? ORDER BY timestamp DESC LIMIT ?",
            (category, limit),
        )

    async def find_in_time_range(self, start: datetime, end: datetime) -> List[DataPoint]:
        return await self._fetch_points(
            f"SELECT {COLUMNS} FROM data_points WHERE timestamp BETWEEN ? AND ? ORDER BY timestamp DESC",
            (_ts(start), _ts(end)),
        )

    async def find_by_category_in_time_range(self, category: str, start: datetime, end: datetime) -> List[DataPoint]:
        return await self._fetch_points(
            f"SELECT {COLUMNS} FROM data_points "
            "WHERE category = ? AND timestamp BETWEEN ? AND ? ORDER BY timestamp DESC",
            (category, _ts(start), _ts(end)),
        )

    async def distinct_categories(self) -> List[str]:
        rows = await self._fetch_rows("SELECT DISTINCT category FROM data_points ORDER BY category")
        return [row["category"] for row in rows]

    async def distinct_sources(self) -> List[str]:
        rows = await self._fetch_rows(
            "SELECT DISTINCT source FROM data_points WHERE source IS NOT NULL ORDER BY source"
        )
        return [row["source"] for row in rows]

    async def aggregate_by_category(self, start: datetime) -> List[dict]:
        rows = await self._fetch_rows(
            "SELECT category, SUM(value) AS total_value, COUNT(*) AS count "
            "FROM data_points WHERE timestamp >= ? "
            "GROUP BY category ORDER BY total_value DESC",
            (_ts(start),),
        )
        return [dict(row) for row in rows]

    async def hourly_aggregate(self, category: str, start: datetime) -> List[dict]:
        # ISO text: the first 13 chars are "YYYY-MM-DDTHH"
        rows = await self._fetch_rows(
            "SELECT substr(timestamp, 1, 13) || ':00:00' AS hour, "
            "AVG(value) AS avg_value, MIN(value) AS min_value, MAX(value) AS max_value, COUNT(*) AS count "
            "FROM data_points WHERE category = ? AND timestamp >= ? "
            "GROUP BY hour ORDER BY hour",
            (category, _ts(start)),
        )
        return [dict(row) for row in rows]

    async def count_by_category(self) -> List[dict]:
        rows = await self._fetch_rows(
            "SELECT category, COUNT(*) AS count FROM data_points GROUP BY category ORDER BY category"
        )
        return [dict(row) for row in rows]

    async def latest_by_category(self) -> List[DataPoint]:
        return await self._fetch_points(
            f"SELECT {COLUMNS} FROM data_points d1 "
            "WHERE d1.timestamp = (SELECT MAX(d2.timestamp) FROM data_points d2 WHERE d2.category = d1.category) "
            "ORDER BY d1.category"
        )

    async def search(self, term: str) -> List[DataPoint]:
        pattern = f"%{term.lower()}%"
        return await self._fetch_points(
            f"SELECT {COLUMNS} FROM data_points "
            "WHERE LOWER(label) LIKE ? OR LOWER(COALESCE(description, '')) LIKE ? "
            "ORDER BY timestamp DESC",
            (pattern, pattern),
        )

    async def count(self) -> int:
        rows = await self._fetch_rows("SELECT COUNT(*) AS total FROM data_points")
        return rows[0]["total"] if rows else 0

