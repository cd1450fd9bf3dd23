from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from sentinel.analyzers import default_analyzers
from sentinel.collectors import default_collectors
from sentinel.errors import KnowledgeBaseLoadError
from sentinel.models import MODULE_NAMES, severity_to_exit_code
from sentinel.platform import get_platform_info
from sentinel.reporting import FORMATS, render_report
from sentinel.scanner import ScanCallbacks, Scanner
from sentinel.shell import CommandRunner
from sentinel.threats import ThreatIntelligence


def _parse_modules(value: str | None) -> list[str]:
    if not value:
        return list(MODULE_NAMES)
    return [m.strip() for m in value.split(",") if m.strip()]


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _progress_callbacks() -> ScanCallbacks:
    def on_start(module: str) -> None:
        print(f"⏳ Scanning {module}...", file=sys.stderr, flush=True)

    def on_complete(module: str, duration_ms: int) -> None:
        print(f"✔️  {module} done in {duration_ms} ms", file=sys.stderr, flush=True)

    return ScanCallbacks(on_module_start=on_start, on_module_complete=on_complete)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sentinel",
        description="Sentinel: Linux host compromise auditor (malware, backdoors, rootkits, misconfigurations)",
    )

    parser.add_argument(
        "-m",
        "--modules",
        default=None,
        help=f"Comma-separated list of modules to run (default: all). Available: {', '.join(MODULE_NAMES)}",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=list(FORMATS),
        default="console",
        help="Report format",
    )
    parser.add_argument(
        "-o",
        "--out",
        dest="out_path",
        type=Path,
        default=None,
        help="Write the report to a file instead of stdout",
    )
    parser.add_argument(
        "--threat-data",
        dest="threat_data",
        type=Path,
        default=None,
        help="Directory with known_*.yaml threat intelligence files (default: packaged data)",
    )
    parser.add_argument(
        "--list-modules",
        action="store_true",
        help="List available modules and exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG)",
    )

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.list_modules:
        for name in MODULE_NAMES:
            print(f" - {name}")
        return 0

    modules = _parse_modules(args.modules)
    unknown = [m for m in modules if m not in MODULE_NAMES]
    if unknown:
        print(f"Unknown modules: {', '.join(unknown)}", file=sys.stderr)
        print(f"Available: {', '.join(MODULE_NAMES)}", file=sys.stderr)
        return 1

    try:
        intel = ThreatIntelligence(data_dir=args.threat_data)
    except KnowledgeBaseLoadError as e:
        print(f"Failed to load threat intelligence: {e.message}", file=sys.stderr)
        return 1

    runner = CommandRunner()
    interactive = args.format == "console" and args.out_path is None and sys.stderr.isatty()
    scanner = Scanner(
        intel,
        default_collectors(runner),
        default_analyzers(),
        platform=get_platform_info(runner),
        callbacks=_progress_callbacks() if interactive else None,
    )
    result = scanner.run(modules)

    report = render_report(result, args.format)
    if args.out_path is not None:
        args.out_path.write_text(report + "\n", encoding="utf-8")
    else:
        print(report)

    return severity_to_exit_code(result.summary.max_severity)
