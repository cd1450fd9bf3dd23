from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.models import CollectedData

# The first ten columns of ``ps aux`` are whitespace-delimited; COMMAND is the
# rest of the line and may contain spaces.
_PS_LINE = re.compile(
    r"^(\S+)\s+(\d+)\s+(\S+)\s+(\S+)\s+(\d+)\s+(\d+)\s+(\S+)\s+(\S+)\s+(\S+)\s+(\S+)\s+(.+)$"
)
_KERNEL_THREAD = re.compile(r"\[.*\]$")


def _to_float(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        return 0.0


def parse_ps_line(line: str) -> Optional[Dict[str, Any]]:
    match = _PS_LINE.match(line)
    if not match:
        return None
    return {
        "user": match.group(1),
        "pid": int(match.group(2)),
        "cpu": _to_float(match.group(3)),
        "mem": _to_float(match.group(4)),
        "vsz": int(match.group(5)),
        "rss": int(match.group(6)),
        "tty": match.group(7),
        "stat": match.group(8),
        "start": match.group(9),
        "time": match.group(10),
        "command": match.group(11).strip(),
    }


@register_collector
class ProcessCollector(Collector):
    module = "processes"

    def collect(self) -> CollectedData:
        raw = self.runner.run("ps auxf").stdout
        processes: List[Dict[str, Any]] = []

        for idx, line in enumerate(raw.split("\n")):
            if idx == 0 and line.startswith("USER"):
                continue
            if not line.strip():
                continue
            if _KERNEL_THREAD.search(line.strip()):
                continue
            parsed = parse_ps_line(line)
            if parsed is not None:
                processes.append(parsed)

        return CollectedData(module=self.module, records={"processes": processes}, raw=raw)
