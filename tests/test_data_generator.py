"""Tests for the sample data generator."""
import asyncio
import random

import pytest

from core import topics
from core.models.data_point import DataPoint
from core.models.metric_template import MetricTemplate
from core.services.data_generator import (
    DEFAULT_GENERIC_TEMPLATE,
    GENERIC_CATEGORIES,
    GENERIC_SOURCES,
    GENERIC_TEMPLATES,
    SALES_TEMPLATES,
    SERVER_PERFORMANCE_TEMPLATES,
    TRAFFIC_TEMPLATES,
    DataGenerator,
    PeriodicTask,
    generate_random_point,
    point_from_template,
)


class RecordingService:
    """Stands in for DataPointService and hands out ids without touching a database."""

    def __init__(self):
        self.saved = []

    async def save(self, point):
        point = DataPoint(category=point.category, label=point.label, value=point.value,
                          source=point.source, description=point.description, unit=point.unit,
                          timestamp=point.timestamp, id=len(self.saved) + 1)
        self.saved.append(point)
        return point


class BrokenService:
    async def save(self, point):
        raise RuntimeError("database unavailable")


class SlowService(RecordingService):
    """Each save takes longer than the task period under test."""

    def __init__(self, delay):
        super().__init__()
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def save(self, point):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return await super().save(point)
        finally:
            self.in_flight -= 1


def single_point(rng):
    return [DataPoint(category="Sales", label="Tick", value=1.0)]


class TestTemplates:

    def test_cpu_usage_stays_in_range(self):
        cpu = SERVER_PERFORMANCE_TEMPLATES[0]
        rng = random.Random(7)
        values = [point_from_template(cpu, rng).value for _ in range(1000)]
        assert all(10.0 <= v <= 95.0 for v in values)

    @pytest.mark.parametrize("template", TRAFFIC_TEMPLATES + SERVER_PERFORMANCE_TEMPLATES + SALES_TEMPLATES,
                             ids=lambda t: t.label)
    def test_every_template_draws_in_range(self, template):
        rng = random.Random(1)
        for _ in range(200):
            point = point_from_template(template, rng)
            assert template.low <= point.value <= template.high
            assert point.category == template.category
            assert point.unit == template.unit
            if template.integral:
                assert point.value == int(point.value)

    def test_task_rosters(self):
        assert [t.label for t in TRAFFIC_TEMPLATES] == ["Page Views", "Unique Visitors", "Bounce Rate"]
        assert [t.label for t in SERVER_PERFORMANCE_TEMPLATES] == ["CPU Usage", "Memory Usage", "Response Time"]
        assert [(t.category, t.label) for t in SALES_TEMPLATES] == [
            ("Sales", "Total Sales"),
            ("Orders", "New Orders"),
            ("User Engagement", "Conversion Rate"),
        ]

    def test_template_bounds_must_be_positive(self):
        with pytest.raises(ValueError):
            MetricTemplate("Broken", "%", 0.0, 10.0)
        with pytest.raises(ValueError):
            MetricTemplate("Broken", "%", 5.0, 1.0)

    def test_generic_points(self):
        rng = random.Random(3)
        for _ in range(500):
            point = generate_random_point(rng)
            template = GENERIC_TEMPLATES.get(point.category, DEFAULT_GENERIC_TEMPLATE)
            assert point.category in GENERIC_CATEGORIES
            assert point.source in GENERIC_SOURCES
            assert point.label == template.label
            assert template.low <= point.value <= template.high
            assert point.description == f"Auto-generated sample data for {point.category}"

    def test_category_without_template_uses_default(self):
        rng = random.Random(0)
        points = [generate_random_point(rng) for _ in range(500)]
        revenue = [p for p in points if p.category == "Revenue"]
        assert revenue
        assert all(p.label == "Generic Metric" and p.unit == "units" for p in revenue)
        assert all(1.0 <= p.value <= 1000.0 for p in revenue)


class TestFiring:

    def test_fixed_periods(self, hub):
        generator = DataGenerator(RecordingService(), hub)
        periods = {name: task.period for name, task in generator.periodic_tasks.items()}
        assert periods == {"general": 5.0, "traffic": 10.0, "server_performance": 15.0, "sales": 30.0}

    @pytest.mark.asyncio
    async def test_traffic_firing_saves_three_points(self, hub):
        service = RecordingService()
        generator = DataGenerator(service, hub)

        saved = await generator.fire(generator.periodic_tasks["traffic"])

        assert saved == 3
        assert [p.label for p in service.saved] == ["Page Views", "Unique Visitors", "Bounce Rate"]

    @pytest.mark.asyncio
    async def test_general_firing_publishes_system_status(self, hub, recorder):
        service = RecordingService()
        generator = DataGenerator(service, hub)
        hub.subscribe(topics.SYSTEM_STATUS, recorder)

        saved = await generator.fire(generator.periodic_tasks["general"])

        assert 1 <= saved <= 3
        [status] = recorder.on(topics.SYSTEM_STATUS)
        assert status["status"] == "active"
        assert "timestamp" in status

    @pytest.mark.asyncio
    async def test_failed_firing_is_reported_not_raised(self, hub, recorder):
        generator = DataGenerator(BrokenService(), hub)
        hub.subscribe(topics.SYSTEM_ERRORS, recorder)
        hub.subscribe(topics.SYSTEM_STATUS, recorder)
        task = generator.periodic_tasks["sales"]

        assert await generator.fire(task) == 0
        assert await generator.fire(task) == 0

        errors = recorder.on(topics.SYSTEM_ERRORS)
        assert len(errors) == 2
        assert errors[0]["task"] == "sales"
        assert errors[0]["error"] == "database unavailable"
        assert task.firings == 2
        assert task.failures == 2

    @pytest.mark.asyncio
    async def test_periodic_task_does_not_overlap_itself(self, hub):
        service = SlowService(delay=0.12)
        generator = DataGenerator(service, hub)
        generator.periodic_tasks = {"slow": PeriodicTask("slow", 0.05, single_point)}

        generator.start(["slow"])
        await asyncio.sleep(0.5)
        generator.stop()
        await generator.join()

        task = generator.periodic_tasks["slow"]
        assert service.max_in_flight == 1
        assert task.skipped_ticks > 0
        assert 2 <= task.firings <= 5

    @pytest.mark.asyncio
    async def test_start_and_stop(self, hub):
        generator = DataGenerator(RecordingService(), hub)
        generator.periodic_tasks = {
            "a": PeriodicTask("a", 10.0, single_point),
            "b": PeriodicTask("b", 10.0, single_point),
        }

        generator.start(["a"])
        await asyncio.sleep(0.01)
        assert generator.running
        assert generator.active_tasks() == ["a"]
        assert generator.periodic_tasks["a"].firings == 1

        generator.stop()
        assert not generator.running
        assert generator.active_tasks() == []
        assert generator.status()["status"] == "stopped"

    @pytest.mark.asyncio
    async def test_join_waits_for_interrupted_firing(self, hub):
        service = SlowService(delay=0.2)
        generator = DataGenerator(service, hub)
        generator.periodic_tasks = {"slow": PeriodicTask("slow", 10.0, single_point)}

        generator.start(["slow"])
        await asyncio.sleep(0.05)
        assert service.in_flight == 1
        [running] = list(generator._tasks.values())

        generator.stop()
        await generator.join()

        assert running.cancelled()
        assert service.in_flight == 0
        assert service.saved == []
        await generator.join()


class TestBurst:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, -5, 1001])
    async def test_rejects_out_of_range(self, hub, count):
        service = RecordingService()
        generator = DataGenerator(service, hub)
        with pytest.raises(ValueError, match="between 1 and 1000"):
            await generator.generate_burst(count)
        assert service.saved == []

    @pytest.mark.asyncio
    async def test_accepts_upper_bound(self, hub):
        service = RecordingService()
        generator = DataGenerator(service, hub)
        saved = await generator.generate_burst(1000)
        assert len(saved) == 1000
        assert len({p.id for p in saved}) == 1000

    @pytest.mark.asyncio
    async def test_burst_goes_through_service(self, service, hub, recorder, store):
        hub.subscribe(topics.DATAPOINTS, recorder)
        generator = DataGenerator(service, hub)

        saved = await generator.generate_burst(5)

        assert len(saved) == 5
        assert await store.count() == 5
        assert recorder.on(topics.DATAPOINTS) == saved


def test_status_lists_every_task(hub):
    status = DataGenerator(RecordingService(), hub).status()
    assert status["dataGeneration"] is False
    assert set(status["tasks"]) == {"general", "traffic", "server_performance", "sales"}
    assert status["tasks"]["sales"] == {
        "period": 30.0, "running": False, "firings": 0, "failures": 0, "skippedTicks": 0, "lastRun": None,
    }
