from datetime import datetime
from typing import Annotated, Dict, List, Optional
from pydantic import BaseModel, Field

from core.models.data_point import DataPoint, NonBlank100, NonBlank200


class AppHealthOK(BaseModel):
    status: str
    app: str


class MessageResponse(BaseModel):
    message: str


class DataPointIn(BaseModel):
    """Request body for create/update. The id is always assigned by the server."""
    category: NonBlank100
    label: NonBlank200
    value: Annotated[float, Field(gt=0, allow_inf_nan=False)]
    source: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    unit: Optional[str] = Field(default=None, max_length=50)
    metadata: Optional[str] = None
    timestamp: Optional[datetime] = None

    def to_data_point(self) -> DataPoint:
        fields = self.model_dump(exclude_none=True)
        return DataPoint(**fields)


class CategoryAggregate(BaseModel):
    category: str
    total_value: float
    count: int


class HourlyAggregate(BaseModel):
    hour: str
    avg_value: float
    min_value: float
    max_value: float
    count: int


class CategoryCount(BaseModel):
    category: str
    count: int


class NotificationIn(BaseModel):
    message: str = Field(min_length=1)


class GeneratorTaskStatus(BaseModel):
    period: float
    running: bool
    firings: int
    failures: int
    skippedTicks: int
    lastRun: Optional[str] = None


class SystemStatusResponse(BaseModel):
    timestamp: str
    status: str
    dataGeneration: bool
    dataPoints: int
    tasks: Dict[str, GeneratorTaskStatus]


class BurstResponse(BaseModel):
    message: str
    count: int
    ids: List[int]
