from __future__ import annotations

from abc import ABC, abstractmethod

from sentinel.models import CollectedData, Finding
from sentinel.threats import ThreatIntelligence


class Analyzer(ABC):
    module: str = ""
    id_prefix: str = ""

    @abstractmethod
    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        raise NotImplementedError
