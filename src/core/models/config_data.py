from dataclasses import dataclass, field
from typing import Dict


@dataclass
class generatorTaskConfigData:
    name: str
    enabled: bool = True


@dataclass
class generatorConfigData:
    enabled: bool = True
    burstMax: int = 1000
    tasks: Dict[str, generatorTaskConfigData] = field(default_factory=dict)


@dataclass
class configData:
    databasePath: str = "storage/dashboard.db"
    generator: generatorConfigData = field(default_factory=generatorConfigData)
