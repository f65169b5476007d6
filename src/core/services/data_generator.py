"""
Synthetic data generation.

Four independent fixed-rate tasks push plausible random measurements through
DataPointService, simulating live upstream systems. Each task owns its own
random source and runs as a single sequential loop, so a task never overlaps
itself: when a firing overruns its period, the missed ticks are skipped.
"""
import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from core import topics
from core.event_hub import EventHub, event_hub
from core.models.data_point import DataPoint
from core.models.metric_template import MetricTemplate
from core.services.data_point_service import DataPointService

logger = logging.getLogger(__name__)

DEFAULT_BURST_MAX = 1000

GENERIC_CATEGORIES = (
    "Sales", "Website Traffic", "Server Performance", "User Engagement",
    "Revenue", "Orders", "CPU Usage", "Memory Usage", "Network Traffic",
)

GENERIC_SOURCES = (
    "Web Analytics", "Sales System", "Monitoring", "CRM", "E-commerce Platform",
)

# Category -> representative metric for the generic task
GENERIC_TEMPLATES: Dict[str, MetricTemplate] = {
    "Sales": MetricTemplate("Sales Amount", "$", 100.0, 10000.0),
    "Website Traffic": MetricTemplate("Visitors", "users", 10, 499, integral=True),
    "Server Performance": MetricTemplate("Resource Usage", "%", 0.1, 100.0),
    "User Engagement": MetricTemplate("Engagement Score", "%", 0.1, 100.0),
}
DEFAULT_GENERIC_TEMPLATE = MetricTemplate("Generic Metric", "units", 1.0, 1000.0)

TRAFFIC_TEMPLATES = (
    MetricTemplate("Page Views", "views/min", 100, 999, category="Website Traffic", source="Web Analytics",
                   description="Number of page views in the last minute", integral=True),
    MetricTemplate("Unique Visitors", "visitors/min", 50, 299, category="Website Traffic", source="Web Analytics",
                   description="Number of unique visitors in the last minute", integral=True),
    MetricTemplate("Bounce Rate", "%", 20.0, 80.0, category="Website Traffic", source="Web Analytics",
                   description="Percentage of single-page sessions"),
)

SERVER_PERFORMANCE_TEMPLATES = (
    MetricTemplate("CPU Usage", "%", 10.0, 95.0, category="Server Performance", source="Monitoring",
                   description="Current CPU utilization percentage"),
    MetricTemplate("Memory Usage", "%", 30.0, 85.0, category="Server Performance", source="Monitoring",
                   description="Current memory utilization percentage"),
    MetricTemplate("Response Time", "ms", 50.0, 500.0, category="Server Performance", source="Monitoring",
                   description="Average response time for API calls"),
)

SALES_TEMPLATES = (
    MetricTemplate("Total Sales", "$", 1000.0, 50000.0, category="Sales", source="Sales System",
                   description="Total sales amount in the last hour"),
    MetricTemplate("New Orders", "orders", 5, 99, category="Orders", source="E-commerce Platform",
                   description="Number of new orders in the last hour", integral=True),
    MetricTemplate("Conversion Rate", "%", 1.0, 15.0, category="User Engagement", source="CRM",
                   description="Percentage of visitors who made a purchase"),
)


def point_from_template(template: MetricTemplate, rng: random.Random) -> DataPoint:
    return DataPoint(
        category=template.category,
        label=template.label,
        value=template.draw(rng),
        source=template.source,
        description=template.description,
        unit=template.unit,
    )


def generate_random_point(rng: random.Random) -> DataPoint:
    """One generic point for a uniformly chosen category and source."""
    category = rng.choice(GENERIC_CATEGORIES)
    source = rng.choice(GENERIC_SOURCES)
    template = GENERIC_TEMPLATES.get(category, DEFAULT_GENERIC_TEMPLATE)
    return DataPoint(
        category=category,
        label=template.label,
        value=template.draw(rng),
        source=source,
        description=f"Auto-generated sample data for {category}",
        unit=template.unit,
    )


@dataclass
class PeriodicTask:
    name: str
    period: float
    produce: Callable[[random.Random], List[DataPoint]]
    rng: random.Random = field(default_factory=random.Random)
    after_firing: Optional[Callable[[], None]] = None
    firings: int = 0
    failures: int = 0
    skipped_ticks: int = 0
    last_run: Optional[datetime] = None


class DataGenerator:
    def __init__(self, service: DataPointService, hub: Optional[EventHub] = None,
                 burst_max: int = DEFAULT_BURST_MAX):
        self.service = service
        self.hub = hub if hub is not None else event_hub
        self.burst_max = burst_max
        self.running = False
        self._burst_rng = random.Random()
        self._tasks: Dict[str, asyncio.Task] = {}
        self._stopping: List[asyncio.Task] = []
        self.periodic_tasks: Dict[str, PeriodicTask] = {
            task.name: task for task in (
                PeriodicTask("general", 5.0, self._produce_general, after_firing=self._send_system_status),
                PeriodicTask("traffic", 10.0, self._produce_from(TRAFFIC_TEMPLATES)),
                PeriodicTask("server_performance", 15.0, self._produce_from(SERVER_PERFORMANCE_TEMPLATES)),
                PeriodicTask("sales", 30.0, self._produce_from(SALES_TEMPLATES)),
            )
        }

    @staticmethod
    def _produce_general(rng: random.Random) -> List[DataPoint]:
        return [generate_random_point(rng) for _ in range(rng.randint(1, 3))]

    @staticmethod
    def _produce_from(templates) -> Callable[[random.Random], List[DataPoint]]:
        def produce(rng: random.Random) -> List[DataPoint]:
            return [point_from_template(t, rng) for t in templates]
        return produce

    def start(self, task_names: Optional[List[str]] = None):
        """Start the periodic tasks (all of them unless `task_names` is given)."""
        if self.running:
            return
        self.running = True
        loop = asyncio.get_running_loop()
        names = task_names if task_names is not None else list(self.periodic_tasks)
        for name in names:
            task = self.periodic_tasks[name]
            self._tasks[name] = loop.create_task(self._run_periodic(task), name=f"generator:{name}")
        logger.info(f"DataGenerator started ({', '.join(names) or 'no tasks'})")

    def stop(self):
        """Cancel the periodic tasks. Await `join()` to wait for them to finish."""
        self.running = False
        for task in self._tasks.values():
            task.cancel()
        self._stopping.extend(self._tasks.values())
        self._tasks.clear()
        logger.info("DataGenerator stopped")

    async def join(self):
        """Wait for tasks cancelled by `stop()`, including a firing interrupted midway."""
        stopping, self._stopping = self._stopping, []
        if stopping:
            await asyncio.gather(*stopping, return_exceptions=True)

    def active_tasks(self) -> List[str]:
        return [name for name, task in self._tasks.items() if not task.done()]

    async def _run_periodic(self, task: PeriodicTask):
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while self.running:
            await self.fire(task)

            next_tick += task.period
            now = loop.time()
            if now > next_tick:
                # Firing overran: drop the ticks that fell inside it
                missed = int((now - next_tick) // task.period) + 1
                task.skipped_ticks += missed
                next_tick += missed * task.period
                logger.warning(f"Generator task '{task.name}' overran its period, skipped {missed} tick(s)")
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    async def fire(self, task: PeriodicTask) -> int:
        """
        Run one firing of `task`. Errors are logged and reported on
        `system/errors`, never raised, so the next firing proceeds normally.
        Returns the number of points saved.
        """
        saved = 0
        task.last_run = datetime.now()
        task.firings += 1
        try:
            for point in task.produce(task.rng):
                await self.service.save(point)
                saved += 1
            if task.after_firing is not None:
                task.after_firing()
        except Exception as e:
            task.failures += 1
            logger.exception(f"Error in generator task '{task.name}': {e}")
            self._send_error(task.name, e)
        return saved

    async def generate_burst(self, count: int) -> List[DataPoint]:
        """Synchronously generate and save `count` generic points (1..burst_max)."""
        if count < 1 or count > self.burst_max:
            raise ValueError(f"Count must be between 1 and {self.burst_max}")
        saved = []
        for _ in range(count):
            saved.append(await self.service.save(generate_random_point(self._burst_rng)))
        logger.info(f"Generated burst of {count} data points")
        return saved

    def status(self) -> dict:
        return {
            "timestamp": datetime.now().isoformat(),
            "status": "active" if self.running else "stopped",
            "dataGeneration": self.running,
            "tasks": {
                name: {
                    "period": task.period,
                    "running": name in self.active_tasks(),
                    "firings": task.firings,
                    "failures": task.failures,
                    "skippedTicks": task.skipped_ticks,
                    "lastRun": task.last_run.isoformat() if task.last_run else None,
                }
                for name, task in self.periodic_tasks.items()
            },
        }

    def _send_system_status(self):
        self.hub.publish(topics.SYSTEM_STATUS, {
            "timestamp": datetime.now().isoformat(),
            "status": "active",
            "dataGeneration": self.running,
            "activeTasks": self.active_tasks(),
        })

    def _send_error(self, task_name: str, error: Exception):
        try:
            self.hub.publish(topics.SYSTEM_ERRORS, {
                "timestamp": datetime.now().isoformat(),
                "task": task_name,
                "error": str(error),
            })
        except Exception as e:
            logger.error(f"Failed to publish error notification: {e}")
