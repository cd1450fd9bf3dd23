from __future__ import annotations

import re

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import FindingLog, get_str, iter_dicts, truncate
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import ThreatIntelligence

DOWNLOAD_PIPE_RE = re.compile(r"(?:wget|curl)\b.*\|\s*(?:bash|sh|zsh|dash)\b", re.IGNORECASE)
BASE64_RE = re.compile(r"base64\s+(?:-d|--decode)", re.IGNORECASE)
TEMP_EXEC_RE = re.compile(r"(?:/tmp/|/var/tmp/|/dev/shm/)\S+")
HIDDEN_EXEC_RE = re.compile(r"/\.[^/]+/\S+")
ASSIGNMENT_RE = re.compile(r"^\w+=")


@register_analyzer
class CrontabAnalyzer(Analyzer):
    module = "crontabs"
    id_prefix = "CRON"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)

        for source in iter_dicts(data.records, "sources"):
            label = get_str(source, "label", "crontab")
            for idx, raw_line in enumerate(get_str(source, "content").split("\n"), 1):
                line = raw_line.strip()
                if not line or line.startswith("#") or ASSIGNMENT_RE.match(line):
                    continue
                where = f"{label} (line {idx})"
                excerpt = truncate(line)
                details = {"source": label, "line_number": idx, "line": line}

                if DOWNLOAD_PIPE_RE.search(line):
                    log.add(
                        Severity.CRITICAL,
                        "Crontab downloads and executes remote code",
                        f'Entry in {where} pipes a download straight into a shell: "{excerpt}". '
                        "This is the most common cron persistence technique.",
                        details=dict(details),
                        remediation="Remove the entry immediately, inspect the fetched URL and look for "
                        "further signs of compromise.",
                    )

                if BASE64_RE.search(line):
                    log.add(
                        Severity.HIGH,
                        "Crontab contains base64-encoded command",
                        f'Entry in {where} decodes base64: "{excerpt}". Encoded payloads evade simple '
                        "pattern matching.",
                        details=dict(details),
                        remediation="Decode and inspect the payload. Remove the entry if it is malicious.",
                    )

                temp_match = TEMP_EXEC_RE.search(line)
                if temp_match:
                    log.add(
                        Severity.HIGH,
                        "Crontab runs binary from temporary directory",
                        f'Entry in {where} references "{truncate(temp_match.group(0))}". Cron jobs should '
                        "not execute from /tmp, /var/tmp or /dev/shm.",
                        details={**details, "path": temp_match.group(0)},
                        remediation=f'Remove the entry and delete "{temp_match.group(0)}" after inspection.',
                    )

                hidden_match = HIDDEN_EXEC_RE.search(line)
                if hidden_match and not temp_match:
                    log.add(
                        Severity.HIGH,
                        "Crontab runs binary from hidden directory",
                        f'Entry in {where} references the hidden path "{truncate(hidden_match.group(0))}".',
                        details={**details, "path": hidden_match.group(0)},
                        remediation="Remove the entry and inspect the hidden directory for malicious files.",
                    )

        return log.findings
