"""Templates describing how a synthetic metric is generated."""
from dataclasses import dataclass
from random import Random
from typing import Optional


@dataclass(frozen=True)
class MetricTemplate:
    """
    One synthetic metric: value drawn uniformly from the closed interval [low, high].
    Integral metrics draw whole numbers (counts such as page views or orders).
    """
    label: str
    unit: str
    low: float
    high: float
    category: Optional[str] = None
    source: Optional[str] = None
    description: Optional[str] = None
    integral: bool = False

    def __post_init__(self):
        if not 0 < self.low <= self.high:
            raise ValueError(f"Invalid range for {self.label}: [{self.low}, {self.high}]")

    def draw(self, rng: Random) -> float:
        if self.integral:
            return float(rng.randint(int(self.low), int(self.high)))
        return rng.uniform(self.low, self.high)
