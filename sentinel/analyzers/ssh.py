from __future__ import annotations

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import FindingLog, get_dict, get_list, get_str, iter_dicts, plural
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import ThreatIntelligence

SSHD_CONFIG = "/etc/ssh/sshd_config"


@register_analyzer
class SSHAnalyzer(Analyzer):
    module = "ssh"
    id_prefix = "SSH"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)
        records = data.records
        config = get_dict(records, "sshd_config")

        def enabled(key: str) -> bool:
            return get_str(config, key).lower() == "yes"

        if enabled("password_auth"):
            log.add(
                Severity.HIGH,
                "SSH password authentication is enabled",
                f'PasswordAuthentication is set to "yes" in {SSHD_CONFIG}, exposing the server '
                "to brute-force attacks.",
                details={"directive": "PasswordAuthentication", "value": get_str(config, "password_auth")},
                remediation=f'Set "PasswordAuthentication no" in {SSHD_CONFIG} and restart sshd once every '
                "user has a key configured.",
            )

        if enabled("permit_root_login"):
            log.add(
                Severity.MEDIUM,
                "SSH root login is permitted",
                f'PermitRootLogin is set to "yes" in {SSHD_CONFIG}. Administrators should log in as a '
                "regular user and escalate with sudo.",
                details={"directive": "PermitRootLogin", "value": get_str(config, "permit_root_login")},
                remediation=f'Set "PermitRootLogin no" (or "prohibit-password") in {SSHD_CONFIG} and restart sshd.',
            )

        if enabled("permit_empty_passwords"):
            log.add(
                Severity.CRITICAL,
                "SSH allows empty passwords",
                f'PermitEmptyPasswords is set to "yes" in {SSHD_CONFIG}. Any account without a password '
                "can log in remotely.",
                details={"directive": "PermitEmptyPasswords", "value": get_str(config, "permit_empty_passwords")},
                remediation=f'Set "PermitEmptyPasswords no" in {SSHD_CONFIG} immediately, restart sshd and '
                "audit /etc/shadow for empty passwords.",
            )

        sessions = [s for s in get_list(records, "active_sessions") if isinstance(s, str)]
        if len(sessions) > 1:
            log.add(
                Severity.INFO,
                "Multiple active SSH sessions detected",
                f"There are {len(sessions)} active login sessions. Unexpected sessions could indicate "
                "unauthorized access.",
                details={"count": len(sessions), "sessions": sessions},
                remediation='Review each session with "who" or "w" and terminate any that are not expected.',
            )

        key_files = [
            (get_str(entry, "path"), [k for k in get_list(entry, "keys") if isinstance(k, str)])
            for entry in iter_dicts(records, "authorized_keys")
        ]
        total = sum(len(keys) for _, keys in key_files)
        if total > 0:
            summary = ", ".join(f"{path} ({plural(len(keys), 'key')})" for path, keys in key_files if keys)
            log.add(
                Severity.INFO,
                "Authorized SSH keys found",
                f"Found {plural(total, 'authorized SSH key')} across {plural(len(key_files), 'file')}: "
                f"{summary}. Confirm none of them were planted.",
                details={
                    "total_keys": total,
                    "files": [{"path": path, "key_count": len(keys)} for path, keys in key_files],
                },
                remediation="Audit each authorized_keys file and remove keys that do not belong to known users.",
            )

        return log.findings
