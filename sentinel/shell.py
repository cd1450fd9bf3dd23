from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# /bin/sh reports an unknown command with exit status 127.
_COMMAND_NOT_FOUND = 127


class CommandOutcome(str, Enum):
    OK = "ok"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    exit_code: int
    outcome: CommandOutcome

    @property
    def success(self) -> bool:
        return self.outcome == CommandOutcome.OK

    def lines(self) -> List[str]:
        return [line for line in self.stdout.split("\n") if line]


def _as_text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value if isinstance(value, str) else ""


class CommandRunner:
    """Runs shell commands with a per-call timeout.

    Never raises for a failing, missing or slow command; the outcome is
    reported on the returned CommandResult together with whatever output
    was captured.
    """

    def run(self, command: str, timeout: float = DEFAULT_TIMEOUT) -> CommandResult:
        try:
            proc = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            logger.debug("Command timed out after %ss: %s", timeout, command)
            return CommandResult(
                stdout=_as_text(exc.stdout).strip(),
                exit_code=-1,
                outcome=CommandOutcome.TIMED_OUT,
            )
        except OSError as exc:
            logger.debug("Command could not be started (%s): %s", exc, command)
            return CommandResult(stdout="", exit_code=-1, outcome=CommandOutcome.FAILED)

        stdout = (proc.stdout or "").strip()
        if proc.returncode == 0:
            return CommandResult(stdout=stdout, exit_code=0, outcome=CommandOutcome.OK)
        if proc.returncode == _COMMAND_NOT_FOUND:
            logger.debug("Command not found: %s", command)
            outcome = CommandOutcome.NOT_FOUND
        else:
            outcome = CommandOutcome.FAILED
        return CommandResult(stdout=stdout, exit_code=proc.returncode, outcome=outcome)
