from __future__ import annotations

import re
from typing import Any, Dict, Iterator, List, Optional

from sentinel.models import Finding, Severity

MAX_EXCERPT = 150

TEMP_DIR_PREFIXES = ("/tmp/", "/var/tmp/", "/dev/shm/")
HIDDEN_DIR_RE = re.compile(r"/\.[^/]+/")


class FindingLog:
    """Accumulates findings for one analyze() call, numbering them PREFIX-001, PREFIX-002, ..."""

    def __init__(self, module: str, prefix: str):
        self.module = module
        self.prefix = prefix
        self.findings: List[Finding] = []

    def add(
        self,
        severity: Severity,
        title: str,
        description: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        remediation: str = "",
    ) -> Finding:
        finding = Finding(
            id=f"{self.prefix}-{len(self.findings) + 1:03d}",
            module=self.module,
            severity=severity,
            title=title,
            description=description,
            details=details or {},
            remediation=remediation,
        )
        self.findings.append(finding)
        return finding


def truncate(text: str, limit: int = MAX_EXCERPT) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def get_list(obj: Any, key: str) -> List[Any]:
    if not isinstance(obj, dict):
        return []
    value = obj.get(key)
    return value if isinstance(value, list) else []


def get_dict(obj: Any, key: str) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        return {}
    value = obj.get(key)
    return value if isinstance(value, dict) else {}


def get_bool(obj: Any, key: str) -> bool:
    return isinstance(obj, dict) and obj.get(key) is True


def get_str(obj: Any, key: str, default: str = "") -> str:
    if not isinstance(obj, dict):
        return default
    value = obj.get(key)
    return value if isinstance(value, str) else default


def get_int(obj: Any, key: str, default: int = 0) -> int:
    if not isinstance(obj, dict):
        return default
    value = obj.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, (float, str)):
        try:
            return int(float(value))
        except (ValueError, OverflowError):
            return default
    return default


def get_float(obj: Any, key: str, default: float = 0.0) -> float:
    if not isinstance(obj, dict):
        return default
    value = obj.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def iter_dicts(records: Any, key: str) -> Iterator[Dict[str, Any]]:
    for item in get_list(records, key):
        if isinstance(item, dict):
            yield item


def iter_strings(records: Any, key: str) -> Iterator[str]:
    for item in get_list(records, key):
        if isinstance(item, str) and item.strip():
            yield item


def temp_prefix(path: str) -> Optional[str]:
    for prefix in TEMP_DIR_PREFIXES:
        if path.startswith(prefix):
            return prefix
    return None


def format_size(size: Any) -> str:
    try:
        n = int(size)
    except (TypeError, ValueError):
        return str(size)
    if n < 1024:
        return f"{n} B"
    if n < 1024 * 1024:
        return f"{n / 1024:.1f} KB"
    return f"{n / (1024 * 1024):.1f} MB"


def plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"
