from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional


MODULE_NAMES: tuple[str, ...] = (
    "processes",
    "network",
    "systemd",
    "crontabs",
    "rootkit",
    "ssh",
    "shell",
    "filesystem",
    "firewall",
    "credentials",
)


class Severity(IntEnum):
    INFO = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def from_label(cls, value: Any) -> "Severity":
        """Map a free-text severity (as stored in threat data) to a Severity.

        Unknown values fall back to MEDIUM.
        """
        if isinstance(value, Severity):
            return value
        if not isinstance(value, str):
            return cls.MEDIUM
        return _SEVERITY_LABELS.get(value.strip().lower(), cls.MEDIUM)


_SEVERITY_LABELS: Dict[str, Severity] = {
    "critical": Severity.CRITICAL,
    "high": Severity.HIGH,
    "medium": Severity.MEDIUM,
    "low": Severity.LOW,
    "info": Severity.INFO,
}


class ScanStatus:
    CLEAN = "CLEAN"
    INFORMATIONAL = "INFORMATIONAL"
    WARNINGS = "WARNINGS"
    THREATS_FOUND = "THREATS_FOUND"
    COMPROMISED = "COMPROMISED"


@dataclass(frozen=True)
class Finding:
    id: str
    module: str
    severity: Severity
    title: str
    description: str
    details: Dict[str, Any] = field(default_factory=dict)
    remediation: str = ""


@dataclass(frozen=True)
class CollectedData:
    module: str
    records: Dict[str, Any] = field(default_factory=dict)
    raw: str = ""


@dataclass(frozen=True)
class ModuleResult:
    module: str
    findings: List[Finding] = field(default_factory=list)
    records: Dict[str, Any] = field(default_factory=dict)
    duration_ms: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class Summary:
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0
    status: str = ScanStatus.CLEAN
    max_severity: Optional[Severity] = None


@dataclass(frozen=True)
class ScanResult:
    version: str
    timestamp: str
    hostname: str
    os: str
    ip: str
    modules: List[ModuleResult]
    findings: List[Finding]
    summary: Summary
    duration_ms: int


def status_for(*, critical: int, high: int, medium: int, low: int, info: int) -> str:
    if critical > 0:
        return ScanStatus.COMPROMISED
    if high > 0:
        return ScanStatus.THREATS_FOUND
    if medium > 0:
        return ScanStatus.WARNINGS
    if low > 0 or info > 0:
        return ScanStatus.INFORMATIONAL
    return ScanStatus.CLEAN


def build_summary(findings: Iterable[Finding]) -> Summary:
    counts = {sev: 0 for sev in Severity}
    max_severity: Optional[Severity] = None

    for finding in findings:
        counts[finding.severity] += 1
        if max_severity is None or finding.severity > max_severity:
            max_severity = finding.severity

    return Summary(
        total=sum(counts.values()),
        critical=counts[Severity.CRITICAL],
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
        info=counts[Severity.INFO],
        status=status_for(
            critical=counts[Severity.CRITICAL],
            high=counts[Severity.HIGH],
            medium=counts[Severity.MEDIUM],
            low=counts[Severity.LOW],
            info=counts[Severity.INFO],
        ),
        max_severity=max_severity,
    )


def severity_to_exit_code(severity: Optional[Severity]) -> int:
    if severity is None:
        return 0
    if severity >= Severity.HIGH:
        return 3
    if severity == Severity.MEDIUM:
        return 2
    return 1
