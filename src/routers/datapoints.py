from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Response

from core.errors import DataPointNotFoundError
from core.models.data_point import DataPoint
from core.service_manager import service_manager
from schemas import (
    BurstResponse,
    CategoryAggregate,
    CategoryCount,
    DataPointIn,
    HourlyAggregate,
    MessageResponse,
)

NOT_FOUND_RESPONSE = {
    404: {
        "description": "No data point with this id.",
        "content": {
            "application/json": {
                "example": {"detail": "DataPoint not found with id: 42"}
            }
        }
    }
}

STORE_ERROR_RESPONSE = {
    500: {
        "description": "The database could not complete the operation.",
        "content": {
            "application/json": {
                "example": {"detail": "Store error: database is locked"}
            }
        }
    }
}

router = APIRouter(prefix="/datapoints", tags=["datapoints"], responses=STORE_ERROR_RESPONSE)


@router.get("", response_model=List[DataPoint])
async def get_all_data_points() -> List[DataPoint]:
    return await service_manager.data_point_service.get_all()


@router.post("", status_code=201, response_model=DataPoint)
async def create_data_point(body: DataPointIn) -> DataPoint:
    """
    Create a data point. The saved point is broadcast on `datapoints`
    and `datapoints/{category}`.
    """
    return await service_manager.data_point_service.save(body.to_data_point())


@router.post("/batch", status_code=201, response_model=List[DataPoint])
async def create_data_points(body: List[DataPointIn]) -> List[DataPoint]:
    """Create several data points at once, broadcast together on `datapoints/batch`."""
    return await service_manager.data_point_service.save_batch([p.to_data_point() for p in body])


@router.get("/category/{category}", response_model=List[DataPoint])
async def get_data_points_by_category(category: str) -> List[DataPoint]:
    return await service_manager.data_point_service.get_by_category(category)


@router.get("/source/{source}", response_model=List[DataPoint])
async def get_data_points_by_source(source: str) -> List[DataPoint]:
    return await service_manager.data_point_service.get_by_source(source)


@router.get("/recent", response_model=List[DataPoint])
async def get_recent_data_points() -> List[DataPoint]:
    """The 100 most recent data points."""
    return await service_manager.data_point_service.get_recent()


@router.get("/recent/{category}", response_model=List[DataPoint])
async def get_recent_data_points_by_category(category: str) -> List[DataPoint]:
    """The 50 most recent data points of a category."""
    return await service_manager.data_point_service.get_recent_by_category(category)


@router.get("/timerange", response_model=List[DataPoint])
async def get_data_points_in_time_range(
    start_time: datetime = Query(alias="startTime"),
    end_time: datetime = Query(alias="endTime"),
) -> List[DataPoint]:
    return await service_manager.data_point_service.get_in_time_range(start_time, end_time)


@router.get("/timerange/{category}", response_model=List[DataPoint])
async def get_data_points_by_category_in_time_range(
    category: str,
    start_time: datetime = Query(alias="startTime"),
    end_time: datetime = Query(alias="endTime"),
) -> List[DataPoint]:
    return await service_manager.data_point_service.get_by_category_in_time_range(category, start_time, end_time)


@router.get("/categories", response_model=List[str])
async def get_distinct_categories() -> List[str]:
    return await service_manager.data_point_service.get_categories()


@router.get("/sources", response_model=List[str])
async def get_distinct_sources() -> List[str]:
    return await service_manager.data_point_service.get_sources()


@router.get("/aggregated", response_model=List[CategoryAggregate])
async def get_aggregated_data_by_category(
    start_time: Optional[datetime] = Query(default=None, alias="startTime"),
) -> List[CategoryAggregate]:
    """Sum and count of values per category since `startTime` (default: last 24 hours)."""
    if start_time is None:
        start_time = datetime.now() - timedelta(days=1)
    rows = await service_manager.data_point_service.get_aggregated_by_category(start_time)
    return [CategoryAggregate(**row) for row in rows]


@router.get("/hourly/{category}", response_model=List[HourlyAggregate])
async def get_hourly_aggregated_data(
    category: str,
    start_time: Optional[datetime] = Query(default=None, alias="startTime"),
) -> List[HourlyAggregate]:
    """Hourly avg/min/max/count for a category since `startTime` (default: last 24 hours)."""
    if start_time is None:
        start_time = datetime.now() - timedelta(hours=24)
    rows = await service_manager.data_point_service.get_hourly_aggregated(category, start_time)
    return [HourlyAggregate(**row) for row in rows]


@router.get("/search", response_model=List[DataPoint])
async def search_data_points(q: str = Query(min_length=1)) -> List[DataPoint]:
    """Case-insensitive search over label and description."""
    return await service_manager.data_point_service.search(q)


@router.get("/latest", response_model=List[DataPoint])
async def get_latest_by_category() -> List[DataPoint]:
    return await service_manager.data_point_service.get_latest_by_category()


@router.get("/count", response_model=List[CategoryCount])
async def get_count_by_category() -> List[CategoryCount]:
    rows = await service_manager.data_point_service.get_count_by_category()
    return [CategoryCount(**row) for row in rows]


@router.post("/generate/{count}", response_model=BurstResponse, responses={
    400: {
        "description": "Count outside the accepted range.",
        "content": {
            "application/json": {
                "example": {"detail": "Count must be between 1 and 1000"}
            }
        }
    },
})
async def generate_data_burst(count: int) -> BurstResponse:
    """Generate `count` random sample data points right away (load testing)."""
    try:
        saved = await service_manager.data_generator.generate_burst(count)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return BurstResponse(message=f"Generated {count} data points", count=len(saved), ids=[p.id for p in saved])


@router.delete("/cleanup/{days}", response_model=MessageResponse, responses={
    400: {
        "description": "Days must be at least 1.",
        "content": {
            "application/json": {
                "example": {"detail": "Days must be greater than 0"}
            }
        }
    },
})
async def cleanup_old_data(days: int) -> MessageResponse:
    """Delete every data point older than `days` days. Not broadcast."""
    if days < 1:
        raise HTTPException(status_code=400, detail="Days must be greater than 0")
    deleted = await service_manager.data_point_service.cleanup(days)
    return MessageResponse(message=f"Cleaned up {deleted} data points older than {days} days")


# Routes with an id parameter come last so the fixed paths above take precedence

@router.get("/{point_id}", response_model=DataPoint, responses=NOT_FOUND_RESPONSE)
async def get_data_point(point_id: int) -> DataPoint:
    point = await service_manager.data_point_service.get_by_id(point_id)
    if point is None:
        raise HTTPException(status_code=404, detail=f"DataPoint not found with id: {point_id}")
    return point


@router.put("/{point_id}", response_model=DataPoint, responses=NOT_FOUND_RESPONSE)
async def update_data_point(point_id: int, body: DataPointIn) -> DataPoint:
    """Replace all mutable fields of a data point; broadcast on `datapoints/updated`."""
    try:
        return await service_manager.data_point_service.update(point_id, body.to_data_point())
    except DataPointNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.delete("/{point_id}", status_code=204, responses=NOT_FOUND_RESPONSE)
async def delete_data_point(point_id: int) -> Response:
    """Delete a data point; its id is broadcast on `datapoints/deleted`."""
    try:
        await service_manager.data_point_service.delete(point_id)
    except DataPointNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return Response(status_code=204)
