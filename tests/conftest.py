from __future__ import annotations

from typing import Dict, List, Tuple, Union

import pytest

from sentinel.models import CollectedData
from sentinel.shell import CommandOutcome, CommandResult, CommandRunner
from sentinel.threats import ThreatIntelligence


class FakeRunner(CommandRunner):
    """CommandRunner double keyed by command substrings.

    The longest key contained in a command wins. Commands with no matching
    key fail with empty output, like a missing tool would.
    """

    def __init__(self, responses: Dict[str, Union[str, CommandResult]] | None = None):
        self.responses = dict(responses or {})
        self.calls: List[Tuple[str, float]] = []

    def run(self, command: str, timeout: float = 30.0) -> CommandResult:
        self.calls.append((command, timeout))
        for key in sorted(self.responses, key=len, reverse=True):
            if key in command:
                value = self.responses[key]
                if isinstance(value, CommandResult):
                    return value
                return CommandResult(stdout=value.strip(), exit_code=0, outcome=CommandOutcome.OK)
        return CommandResult(stdout="", exit_code=1, outcome=CommandOutcome.FAILED)

    def commands(self) -> List[str]:
        return [command for command, _ in self.calls]


@pytest.fixture
def fake_runner():
    return FakeRunner


@pytest.fixture(scope="session")
def intel() -> ThreatIntelligence:
    return ThreatIntelligence()


@pytest.fixture
def collected():
    def _make(module: str, **records) -> CollectedData:
        return CollectedData(module=module, records=records)

    return _make
