# External libs
import asyncio
import logging
from pathlib import Path
from typing import Optional

# Internal libs
from core.config_loader import config_loader
from core.event_hub import init_event_hub, event_hub
from core.services.data_point_store import DataPointStore
from core.services.data_point_service import DataPointService
from core.services.data_generator import DataGenerator

logger = logging.getLogger(__name__)


class ServiceManager:
    """Owns the store, the write-path service and the generator, and ties them to the app lifespan."""

    def __init__(self):
        self.running = False
        self.configure(config_loader.get_database_path(), burst_max=config_loader.get_burst_max())

    def configure(self, database_path: Path | str, burst_max: Optional[int] = None):
        """(Re)build the service graph on top of a database file."""
        self.store = DataPointStore(database_path)
        self.data_point_service = DataPointService(self.store, event_hub)
        self.data_generator = DataGenerator(
            self.data_point_service,
            event_hub,
            burst_max=burst_max if burst_max is not None else config_loader.get_burst_max(),
        )

    async def start_services(self, generator: bool = True):
        """Start global background services if not already started.
        Args:
            generator: When True, start the periodic sample-data tasks enabled in config.
        """
        logger.info("Starting background services...")
        loop = asyncio.get_running_loop()

        # Init Event Hub
        init_event_hub(loop)

        # Store
        await self.store.init()

        # Sample data generator
        if generator:
            self.data_generator.start(config_loader.get_enabled_tasks())
        else:
            logger.info("Sample data generation disabled")

        self.running = True
        logger.info("Background services started.")

    def stop_services(self):
        """Stop background services."""
        self.running = False
        self.data_generator.stop()
        logger.info("Background services stopped.")


service_manager = ServiceManager()
