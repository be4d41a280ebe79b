from abc import ABC, abstractmethod
from typing import Any, List
from dataclasses import dataclass, field
from enum import Enum
import logging


class ModuleStatus(Enum):
    """Where a runner module is in its lifecycle"""
    NOT_INITIALIZED = "not_initialized"
    READY = "ready"
    RUNNING = "running"
    ERROR = "error"


@dataclass
class ModuleInfo:
    """Name, version and capabilities advertised by a runner module"""
    name: str
    version: str
    description: str
    capabilities: List[str] = field(default_factory=list)


class RunnerModule(ABC):
    """Common lifecycle for the executable parts of bdd_runner.

    Subclasses set up their state in ``_initialize`` (called from the
    constructor), report problems from ``validate`` and do their work in
    ``execute``. Status transitions are logged at debug level.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._status = ModuleStatus.NOT_INITIALIZED
        self._initialize()

    @abstractmethod
    def _initialize(self) -> None:
        ...

    @abstractmethod
    def execute(self, input_data: Any) -> Any:
        """Run the module against ``input_data`` and return its result"""

    @abstractmethod
    def validate(self) -> bool:
        """Return True when the module is configured well enough to run"""

    @staticmethod
    @abstractmethod
    def get_info() -> ModuleInfo:
        ...

    @property
    def status(self) -> ModuleStatus:
        return self._status

    @status.setter
    def status(self, value: ModuleStatus) -> None:
        if value is not self._status:
            self.logger.debug(f"{self._status.value} -> {value.value}")
        self._status = value
