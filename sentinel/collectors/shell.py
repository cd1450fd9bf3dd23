from __future__ import annotations

import re
from typing import Any, Dict, List, Tuple

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.collectors.utils import CONFIG_TIMEOUT, quote
from sentinel.models import CollectedData

PROFILE_FILES = ("/etc/profile", "/etc/bash.bashrc", "/etc/environment", "/etc/rc.local")
HOME_PROFILE_NAMES = (".bashrc", ".profile", ".bash_profile")

# (token, regex) in classification order. The token is what gets reported.
SUSPICIOUS_TOKENS: Tuple[Tuple[str, str], ...] = (
    ("wget", r"wget"),
    ("curl", r"curl"),
    ("ncat", r"\bncat\b"),
    ("nc", r"\bnc\s"),
    ("python-http", r"python.*http"),
    ("base64", r"base64"),
    ("eval", r"\beval\b"),
    ("/dev/tcp", r"/dev/tcp"),
    ("/dev/udp", r"/dev/udp"),
    (".onion", r"\.onion"),
)

_COMPILED_TOKENS = tuple((token, re.compile(pattern, re.IGNORECASE)) for token, pattern in SUSPICIOUS_TOKENS)
GREP_PATTERN = "|".join(pattern for _, pattern in SUSPICIOUS_TOKENS)


def classify_line(text: str) -> str:
    for token, regex in _COMPILED_TOKENS:
        if regex.search(text):
            return token
    return "unknown"


def parse_grep_hits(path: str, output: str) -> List[Dict[str, Any]]:
    """Turn ``grep -n`` output into suspicious entries, skipping comments."""
    entries: List[Dict[str, Any]] = []
    for hit in output.split("\n"):
        number, sep, text = hit.partition(":")
        if not sep:
            continue
        try:
            line_number = int(number)
        except ValueError:
            continue
        if text.strip().startswith("#"):
            continue
        entries.append(
            {"file": path, "line_number": line_number, "line": text, "matched_pattern": classify_line(text)}
        )
    return entries


@register_collector
class ShellCollector(Collector):
    module = "shell"

    def collect(self) -> CollectedData:
        raw_parts: List[str] = []
        entries: List[Dict[str, Any]] = []

        for path in self._candidate_files():
            result = self.runner.run(f"grep -n -iE '{GREP_PATTERN}' {quote(path)} 2>/dev/null", timeout=CONFIG_TIMEOUT)
            if not result.stdout:
                continue
            raw_parts.append(f"# {path}\n{result.stdout}")
            entries.extend(parse_grep_hits(path, result.stdout))

        etc_environment = self.runner.run("cat /etc/environment 2>/dev/null", timeout=CONFIG_TIMEOUT).stdout
        raw_parts.append("# /etc/environment\n" + etc_environment)
        rc_local = self.runner.run("cat /etc/rc.local 2>/dev/null", timeout=CONFIG_TIMEOUT).stdout
        raw_parts.append("# /etc/rc.local\n" + rc_local)

        return CollectedData(
            module=self.module,
            records={"suspicious_entries": entries, "etc_environment": etc_environment, "rc_local": rc_local},
            raw="\n\n".join(raw_parts),
        )

    def _candidate_files(self) -> List[str]:
        files: List[str] = list(PROFILE_FILES)

        homes = self.runner.run("awk -F: '{print $6}' /etc/passwd 2>/dev/null | sort -u", timeout=CONFIG_TIMEOUT)
        for home in homes.lines():
            home = home.strip().rstrip("/")
            if not home:
                continue
            files.extend(f"{home}/{name}" for name in HOME_PROFILE_NAMES)

        profile_d = self.runner.run("ls /etc/profile.d/*.sh 2>/dev/null", timeout=CONFIG_TIMEOUT)
        files.extend(line.strip() for line in profile_d.lines() if line.strip())

        seen: set[str] = set()
        unique: List[str] = []
        for path in files:
            if path not in seen:
                seen.add(path)
                unique.append(path)
        return unique
