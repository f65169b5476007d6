import json
import logging
from pathlib import Path

from core.models.config_data import configData, generatorConfigData, generatorTaskConfigData

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent.parent
GENERATOR_TASKS = ("general", "traffic", "server_performance", "sales")


class ConfigLoader:
    """Loads and manages dashboard configuration from JSON file."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigLoader, cls).__new__(cls)
            cls._instance._config = configData()
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._config = self._get_default_config()
            self.load_config()
            self._initialized = True

    @staticmethod
    def get_config_path() -> Path:
        """Get the path to the dashboard_config.json file."""
        return PROJECT_ROOT / "config" / "dashboard_config.json"

    def load_config(self, config_path: Path | None = None):
        """Load configuration from JSON file."""
        config_path = config_path or self.get_config_path()

        # Start from defaults so a partial file still yields a full config
        self._config = self._get_default_config()

        if not config_path.exists():
            logger.error(f"Configuration file not found: {config_path}")
            return

        try:
            with open(config_path, 'r') as f:
                json_data = json.load(f)

            self._config.databasePath = json_data.get("database_path", self._config.databasePath)

            generator_cfg = json_data.get("generator", {})
            generator = self._config.generator
            generator.enabled = generator_cfg.get("enabled", True)
            generator.burstMax = int(generator_cfg.get("burst_max", generator.burstMax))
            for task_name, task_cfg in generator_cfg.get("tasks", {}).items():
                if task_name not in GENERATOR_TASKS:
                    logger.warning(f"Unknown generator task '{task_name}' in config, ignoring.")
                    continue
                generator.tasks[task_name] = generatorTaskConfigData(
                    task_name,
                    enabled=task_cfg.get("enabled", True),
                )
            logger.info(f"Configuration loaded from {config_path}")

        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse configuration file: {e}")
            self._config = self._get_default_config()

        except (TypeError, ValueError, AttributeError) as e:
            logger.error(f"Invalid configuration values: {e}")
            self._config = self._get_default_config()

    @staticmethod
    def _get_default_config() -> configData:
        """Return default configuration."""
        return configData(
            databasePath="storage/dashboard.db",
            generator=generatorConfigData(
                enabled=True,
                burstMax=1000,
                tasks={name: generatorTaskConfigData(name, enabled=True) for name in GENERATOR_TASKS},
            ),
        )

    def get_database_path(self) -> Path:
        """Database file path; relative paths are resolved against the project root."""
        path = Path(self._config.databasePath)
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        return path

    def get_generator_enabled(self) -> bool:
        return self._config.generator.enabled

    def get_burst_max(self) -> int:
        return self._config.generator.burstMax

    def is_task_enabled(self, task_name: str) -> bool:
        task = self._config.generator.tasks.get(task_name)
        return task is not None and task.enabled is True

    def get_enabled_tasks(self) -> list[str]:
        return [name for name in GENERATOR_TASKS if self.is_task_enabled(name)]

    def reload_config(self):
        """Reload configuration from file."""
        self.load_config()
        logger.info("Configuration reloaded")


# Global singleton instance
config_loader = ConfigLoader()
