"""
Data point model.
"""

from dataclasses import field
from datetime import datetime
from typing import Annotated, Optional

from pydantic import Field, StringConstraints, field_validator
from pydantic.dataclasses import dataclass

NonBlank100 = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
NonBlank200 = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


@dataclass
class DataPoint:
    """
    A single timestamped measurement.
    Validated on construction, so an invalid point can never reach the store.
    """
    category: NonBlank100
    label: NonBlank200
    value: Annotated[float, Field(gt=0, allow_inf_nan=False)]
    source: Annotated[Optional[str], Field(max_length=100)] = None
    description: Annotated[Optional[str], Field(max_length=500)] = None
    unit: Annotated[Optional[str], Field(max_length=50)] = None
    metadata: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    id: Optional[int] = None

    @field_validator("timestamp")
    @classmethod
    def _to_local_naive(cls, value: datetime) -> datetime:
        # Stored as ISO text, so every timestamp must share one representation
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
