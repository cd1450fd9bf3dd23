from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from sentinel.models import CollectedData
from sentinel.shell import CommandRunner


class Collector(ABC):
    module: str = ""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    @abstractmethod
    def collect(self) -> CollectedData:
        raise NotImplementedError
