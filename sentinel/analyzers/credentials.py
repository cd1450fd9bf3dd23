from __future__ import annotations

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import FindingLog, format_size, get_str, iter_dicts, iter_strings, plural
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import ThreatIntelligence

GIT_CREDENTIALS = "/root/.git-credentials"


@register_analyzer
class CredentialAnalyzer(Analyzer):
    module = "credentials"
    id_prefix = "CRED"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)
        records = data.records

        for env_file in iter_dicts(records, "env_files"):
            path = get_str(env_file, "path")
            if not path:
                continue
            size = env_file.get("size", "")
            log.add(
                Severity.MEDIUM,
                "Environment file with potential secrets",
                f'Found .env file at "{path}" ({format_size(size)}). Environment files commonly hold API keys '
                "and database passwords.",
                details={"path": path, "size": size},
                remediation=f'Review "{path}" for secrets, move them to a secrets manager and remove the file '
                "if it is not needed.",
            )

        for key_path in iter_strings(records, "service_account_keys"):
            log.add(
                Severity.HIGH,
                "Service account key file on disk",
                f'Found service account credentials at "{key_path}". These grant programmatic access to '
                "cloud resources.",
                details={"path": key_path},
                remediation="Rotate the key with the cloud provider, switch to workload identity or a secrets "
                "manager and delete the file.",
            )

        git_credentials = get_str(records, "git_credentials")
        if git_credentials:
            count = len([line for line in git_credentials.split("\n") if line.strip()])
            log.add(
                Severity.MEDIUM,
                "Git credentials stored in plaintext",
                f"Found {plural(count, 'credential')} in {GIT_CREDENTIALS}, stored in plaintext.",
                details={"path": GIT_CREDENTIALS, "credential_count": count},
                remediation="Use SSH keys or a keychain-backed credential helper and remove the plaintext file.",
            )

        private_keys = list(iter_strings(records, "ssh_private_keys"))
        if private_keys:
            log.add(
                Severity.INFO,
                "SSH private keys found on disk",
                f"Found {plural(len(private_keys), 'SSH private key')}: {', '.join(private_keys)}.",
                details={"count": len(private_keys), "paths": private_keys},
                remediation='Make sure every key is mode 600 ("chmod 600 <key>") and remove keys that are '
                "no longer needed.",
            )

        return log.findings
