from __future__ import annotations

import re
from dataclasses import asdict

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import HIDDEN_DIR_RE, FindingLog, get_str, iter_dicts
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import ThreatIntelligence

SUSPICIOUS_EXEC_PATHS = ("/tmp/", "/var/tmp/", "/etc/data/", "/dev/shm/")
STANDARD_EXEC_PREFIXES = (
    "/usr/bin/",
    "/usr/sbin/",
    "/usr/local/bin/",
    "/usr/local/sbin/",
    "/bin/",
    "/sbin/",
    "/lib/systemd/",
    "/usr/lib/systemd/",
    "/snap/",
)
MIN_RESTART_SEC = 30.0

_EXEC_PREFIX = re.compile(r"^[-+!@:]+")


def exec_binary(exec_start: str) -> str:
    """Binary path of an ExecStart value, without systemd's special prefixes or arguments."""
    parts = _EXEC_PREFIX.sub("", exec_start.strip()).split()
    return parts[0] if parts else ""


def parse_seconds(value: str) -> float:
    match = re.match(r"^\s*(\d+(?:\.\d+)?)", value)
    return float(match.group(1)) if match else 0.0


@register_analyzer
class SystemdAnalyzer(Analyzer):
    module = "systemd"
    id_prefix = "SVC"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)

        for svc in iter_dicts(data.records, "enabled_services"):
            name = get_str(svc, "name")
            if not name:
                continue
            base = name[: -len(".service")] if name.endswith(".service") else name
            threat = intel.match_service(base) or intel.match_service(name)
            if threat is not None:
                log.add(
                    Severity.from_label(threat.severity),
                    f"Known malicious service: {threat.name}",
                    f'Enabled service "{name}" matches threat entry "{threat.name}": {threat.description}.',
                    details={"service": name, "threat": asdict(threat)},
                    remediation=f'Run "systemctl disable --now {name}", remove the unit file and find out '
                    "how it was installed.",
                )

        for unit in iter_dicts(data.records, "service_files"):
            name = get_str(unit, "name")
            path = get_str(unit, "path")
            exec_start = get_str(unit, "exec_start")
            restart = get_str(unit, "restart")
            restart_sec = get_str(unit, "restart_sec")
            standard_output = get_str(unit, "standard_output")
            binary = exec_binary(exec_start)

            suspicious = next((p for p in SUSPICIOUS_EXEC_PATHS if binary.startswith(p)), None)
            if suspicious is not None:
                log.add(
                    Severity.HIGH,
                    "Service ExecStart points to suspicious path",
                    f'Service "{name}" has ExecStart="{exec_start}" under "{suspicious}". Malware commonly '
                    "persists as services running from temporary or data directories.",
                    details={"service": name, "exec_start": exec_start, "path": path},
                    remediation=f'Inspect "{binary}", run "systemctl disable --now {name}" and remove "{path}".',
                )

            if HIDDEN_DIR_RE.search(binary):
                log.add(
                    Severity.HIGH,
                    "Service ExecStart points to hidden directory",
                    f'Service "{name}" has ExecStart="{exec_start}" inside a hidden directory, '
                    "a common malware persistence technique.",
                    details={"service": name, "exec_start": exec_start, "path": path},
                    remediation=f'Investigate "{binary}". Disable the service and remove both the unit file '
                    "and the hidden binary.",
                )

            seconds = parse_seconds(restart_sec)
            non_standard = bool(binary) and not binary.startswith(STANDARD_EXEC_PREFIXES)
            if restart.lower() == "always" and seconds < MIN_RESTART_SEC and non_standard:
                log.add(
                    Severity.MEDIUM,
                    "Service with aggressive restart from non-standard path",
                    f'Service "{name}" uses Restart=always with RestartSec={restart_sec or "0"} and runs '
                    f'"{binary}" from outside the standard system paths.',
                    details={
                        "service": name,
                        "exec_start": exec_start,
                        "restart": restart,
                        "restart_sec": restart_sec,
                        "path": path,
                    },
                    remediation=f'Confirm "{name}" is legitimate. If not, disable it with '
                    f'"systemctl disable --now {name}" and remove the unit file.',
                )

            if standard_output.lower() == "null":
                log.add(
                    Severity.MEDIUM,
                    "Service suppresses all output",
                    f'Service "{name}" sets StandardOutput=null, so nothing it prints reaches the journal.',
                    details={"service": name, "standard_output": standard_output, "path": path},
                    remediation=f'Review "{path}". Restore logging if the service is legitimate, '
                    "otherwise disable and remove it.",
                )

        return log.findings
