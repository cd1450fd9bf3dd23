from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from sentinel import __version__
from sentinel.analyzers.base import Analyzer
from sentinel.collectors.base import Collector
from sentinel.models import MODULE_NAMES, Finding, ModuleResult, ScanResult, build_summary
from sentinel.platform import PlatformInfo, get_platform_info
from sentinel.shell import CommandRunner
from sentinel.threats import ThreatIntelligence

logger = logging.getLogger(__name__)


@dataclass
class ScanCallbacks:
    on_module_start: Optional[Callable[[str], None]] = None
    on_module_complete: Optional[Callable[[str, int], None]] = None


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class Scanner:
    """Runs collector/analyzer pairs one module at a time and assembles a ScanResult.

    A module that fails (missing from a registry, or raising inside collect
    or analyze) is recorded with an error and no findings. The remaining
    modules still run.
    """

    def __init__(
        self,
        intel: ThreatIntelligence,
        collectors: Dict[str, Collector],
        analyzers: Dict[str, Analyzer],
        platform: Optional[PlatformInfo] = None,
        callbacks: Optional[ScanCallbacks] = None,
    ):
        self.intel = intel
        self.collectors = collectors
        self.analyzers = analyzers
        self.platform = platform
        self.callbacks = callbacks or ScanCallbacks()

    def run(self, modules: Optional[Iterable[str]] = None) -> ScanResult:
        selected = list(modules) if modules is not None else list(MODULE_NAMES)
        started = time.monotonic()
        timestamp = datetime.now(timezone.utc).isoformat()
        platform = self.platform or get_platform_info(CommandRunner())

        logger.info("Scan started on %s (%d modules)", platform.hostname, len(selected))

        results: List[ModuleResult] = []
        findings: List[Finding] = []
        for name in selected:
            result = self._run_module(name)
            results.append(result)
            findings.extend(result.findings)

        summary = build_summary(findings)
        duration_ms = _elapsed_ms(started)
        logger.info("Scan finished in %d ms: %d findings, status %s", duration_ms, summary.total, summary.status)

        return ScanResult(
            version=__version__,
            timestamp=timestamp,
            hostname=platform.hostname,
            os=platform.os,
            ip=platform.ip,
            modules=results,
            findings=findings,
            summary=summary,
            duration_ms=duration_ms,
        )

    def _run_module(self, name: str) -> ModuleResult:
        if self.callbacks.on_module_start is not None:
            self.callbacks.on_module_start(name)

        started = time.monotonic()
        collector = self.collectors.get(name)
        analyzer = self.analyzers.get(name)

        if collector is None or analyzer is None:
            missing = "collector" if collector is None else "analyzer"
            logger.warning("Module %s has no registered %s", name, missing)
            result = ModuleResult(module=name, duration_ms=_elapsed_ms(started), error=f"Unknown module: {name}")
        else:
            logger.info("Running module %s", name)
            try:
                data = collector.collect()
                module_findings = list(analyzer.analyze(data, self.intel))
                records = data.records
            except Exception as e:
                logger.exception("Module %s failed", name)
                result = ModuleResult(
                    module=name,
                    duration_ms=_elapsed_ms(started),
                    error=f"{type(e).__name__}: {e}",
                )
            else:
                result = ModuleResult(
                    module=name,
                    findings=module_findings,
                    records=records,
                    duration_ms=_elapsed_ms(started),
                )
                logger.info("Module %s: %d findings in %d ms", name, len(result.findings), result.duration_ms)

        if self.callbacks.on_module_complete is not None:
            self.callbacks.on_module_complete(name, result.duration_ms)
        return result
