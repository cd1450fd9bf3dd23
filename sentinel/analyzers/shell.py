from __future__ import annotations

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import FindingLog, get_int, get_str, iter_dicts, truncate
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import ThreatIntelligence

HIGH_SEVERITY_TOKENS = frozenset({"wget", "curl", "nc", "ncat", "eval", "/dev/tcp", "/dev/udp", ".onion"})
MEDIUM_SEVERITY_TOKENS = frozenset({"base64", "exec", "python-http"})


def classify_token(token: str) -> Severity:
    lower = token.lower()
    if lower in HIGH_SEVERITY_TOKENS:
        return Severity.HIGH
    if lower in MEDIUM_SEVERITY_TOKENS:
        return Severity.MEDIUM
    for known in MEDIUM_SEVERITY_TOKENS:
        if lower and (lower in known or known in lower):
            return Severity.MEDIUM
    return Severity.HIGH


def describe_token(token: str) -> str:
    lower = token.lower()
    if lower in ("wget", "curl"):
        return "download tool"
    if lower in ("nc", "ncat"):
        return "network utility (potential reverse shell)"
    if lower in ("eval", "exec"):
        return "dynamic code execution"
    if lower == "base64":
        return "encoding/obfuscation"
    if "/dev/tcp" in lower or "/dev/udp" in lower:
        return "bash network redirection"
    if ".onion" in lower:
        return "Tor hidden service reference"
    if "python" in lower:
        return "Python HTTP server/client"
    return "suspicious command"


@register_analyzer
class ShellAnalyzer(Analyzer):
    module = "shell"
    id_prefix = "SHELL"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)

        for entry in iter_dicts(data.records, "suspicious_entries"):
            path = get_str(entry, "file")
            number = get_int(entry, "line_number")
            line = get_str(entry, "line")
            token = get_str(entry, "matched_pattern", "unknown")
            log.add(
                classify_token(token),
                f"Suspicious pattern in shell profile: {token}",
                f'File "{path}" line {number} contains a {describe_token(token)} pattern ("{token}"): '
                f'"{truncate(line.strip())}". Shell profiles run on every login.',
                details={"file": path, "line_number": number, "line": line, "matched_pattern": token},
                remediation=f'Review line {number} of "{path}". Remove it if it is not expected and check '
                f'when the file changed with "stat {path}".',
            )

        return log.findings
