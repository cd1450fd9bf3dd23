from __future__ import annotations

import re
from dataclasses import asdict

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import (
    HIDDEN_DIR_RE,
    FindingLog,
    get_float,
    get_int,
    get_str,
    iter_dicts,
    temp_prefix,
    truncate,
)
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import ThreatIntelligence

HIGH_CPU_PERCENT = 80.0

SAFE_HIDDEN_DIRS = frozenset(
    {
        ".vscode-server", ".vscode", ".cursor-server",
        ".ssh", ".config", ".local", ".cache",
        ".npm", ".nvm", ".yarn", ".bun", ".pnpm",
        ".docker", ".gnupg", ".pm2",
        ".cargo", ".rustup", ".pyenv", ".rbenv", ".goenv",
        ".claude",
    }
)

# ``ps f`` prefixes child processes with tree glyphs such as " \_ ".
_TREE_PREFIX = re.compile(r"^[\s\\|`_-]+")


def binary_path(command: str) -> str:
    cleaned = _TREE_PREFIX.sub("", command)
    parts = cleaned.split()
    return parts[0] if parts else ""


@register_analyzer
class ProcessAnalyzer(Analyzer):
    module = "processes"
    id_prefix = "PROC"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)

        for proc in iter_dicts(data.records, "processes"):
            command = get_str(proc, "command")
            pid = get_int(proc, "pid")
            user = get_str(proc, "user")
            cpu = get_float(proc, "cpu")
            binary = binary_path(command)
            shown = truncate(command)

            threat = intel.match_process(binary, command)
            if threat is not None:
                log.add(
                    Severity.from_label(threat.severity),
                    f"Known malicious process: {threat.name}",
                    f'Process "{shown}" (PID {pid}, user {user}) matches threat signature '
                    f'"{threat.name}" (family: {threat.family or "unknown"}).',
                    details={"pid": pid, "user": user, "command": command, "threat": asdict(threat)},
                    remediation=f'Kill the process with "kill -9 {pid}", find out how it was installed '
                    "and remove the underlying binary.",
                )

            temp_dir = temp_prefix(binary)
            if temp_dir is not None:
                log.add(
                    Severity.HIGH,
                    "Process running from temporary directory",
                    f'Process "{shown}" (PID {pid}) is executing from "{temp_dir}". '
                    "Legitimate software does not run from temporary directories.",
                    details={"pid": pid, "user": user, "command": command, "binary_path": binary},
                    remediation=f'Investigate "{binary}". Kill the process and remove the file if it is not expected.',
                )

            hidden = HIDDEN_DIR_RE.search(binary)
            if hidden and temp_dir is None and hidden.group(0).strip("/") not in SAFE_HIDDEN_DIRS:
                log.add(
                    Severity.HIGH,
                    "Process running from hidden directory",
                    f'Process "{shown}" (PID {pid}) is executing from a hidden directory, '
                    "a common way for malware to avoid casual inspection.",
                    details={"pid": pid, "user": user, "command": command, "binary_path": binary},
                    remediation=f'Investigate "{binary}". Kill the process and remove the hidden directory '
                    "if it is not legitimate.",
                )

            if cpu > HIGH_CPU_PERCENT:
                log.add(
                    Severity.MEDIUM,
                    "Process with abnormally high CPU usage",
                    f'Process "{shown}" (PID {pid}, user {user}) is using {cpu}% CPU. '
                    "Sustained high usage is typical of cryptominers.",
                    details={"pid": pid, "user": user, "command": command, "cpu": cpu, "mem": get_float(proc, "mem")},
                    remediation=f"Confirm PID {pid} is an expected workload. If not, kill it and inspect the binary.",
                )

        return log.findings
