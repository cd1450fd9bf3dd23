from __future__ import annotations

import re
from typing import List, Tuple

CONFIG_TIMEOUT = 5.0
DIR_SCAN_TIMEOUT = 15.0
FULL_SCAN_TIMEOUT = 60.0

TEMP_DIR_PREFIXES = ("/tmp/", "/var/tmp/", "/dev/shm/")


def quote(path: str) -> str:
    """Double-quote a path for /bin/sh, escaping the characters that stay live inside quotes."""
    return '"' + re.sub(r'(["\\$`])', r"\\\1", path) + '"'


def section(title: str, body: str) -> str:
    return f"=== {title} ===\n{body}"


def split_path_size(lines: List[str]) -> List[Tuple[str, str]]:
    """Parse ``find -printf '%p\\t%s\\n'`` output into (path, size) pairs."""
    out: List[Tuple[str, str]] = []
    for line in lines:
        path, _, size = line.partition("\t")
        if path:
            out.append((path, size or "0"))
    return out


def is_temp_path(path: str) -> bool:
    return path.startswith(TEMP_DIR_PREFIXES)
