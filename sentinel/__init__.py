from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from sentinel.errors import KnowledgeBaseLoadError, SentinelError
from sentinel.models import (
    MODULE_NAMES,
    CollectedData,
    Finding,
    ModuleResult,
    ScanResult,
    ScanStatus,
    Severity,
    Summary,
    severity_to_exit_code,
)
from sentinel.shell import CommandRunner

__version__ = "0.1.0"

__all__ = [
    "MODULE_NAMES",
    "CollectedData",
    "Finding",
    "KnowledgeBaseLoadError",
    "ModuleResult",
    "ScanResult",
    "ScanStatus",
    "SentinelError",
    "Severity",
    "Summary",
    "__version__",
    "scan",
    "severity_to_exit_code",
]


def scan(
    modules: Optional[Iterable[str]] = None,
    *,
    data_dir: Optional[Path] = None,
    runner: Optional[CommandRunner] = None,
) -> ScanResult:
    """Audit the local host with the default collectors and analyzers."""
    from sentinel.analyzers import default_analyzers
    from sentinel.collectors import default_collectors
    from sentinel.platform import get_platform_info
    from sentinel.scanner import Scanner
    from sentinel.threats import ThreatIntelligence

    runner = runner or CommandRunner()
    scanner = Scanner(
        ThreatIntelligence(data_dir=data_dir),
        default_collectors(runner),
        default_analyzers(),
        platform=get_platform_info(runner),
    )
    return scanner.run(modules)
