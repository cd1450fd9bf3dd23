from __future__ import annotations

from typing import Dict, List, Optional

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.collectors.utils import CONFIG_TIMEOUT, FULL_SCAN_TIMEOUT, quote, split_path_size
from sentinel.models import CollectedData

ENV_FILE_NAMES = (".env", ".env.local", ".env.production", ".env.backup")
SERVICE_ACCOUNT_NAMES = ("*service-account*.json", "*serviceaccount*.json", "*firebase*adminsdk*.json", "*gcp-key*.json")
PRIVATE_KEY_NAMES = ("id_rsa", "id_ecdsa", "id_ed25519", "id_dsa", "*.pem")
GIT_CREDENTIALS = "/root/.git-credentials"

ENV_EXCLUDES = ("*/node_modules/*", "*/venv/*", "/proc/*")
SERVICE_ACCOUNT_EXCLUDES = ENV_EXCLUDES + ("*/google-cloud-sdk/*", "*/test_data/*", "*/test/*", "*/.cache/*")


def find_names_command(names: tuple, excludes: tuple, printf: str = "") -> str:
    name_args = " -o ".join(f"-name '{name}'" for name in names)
    exclude_args = " ".join(f"-not -path '{pattern}'" for pattern in excludes)
    suffix = f" -printf '{printf}'" if printf else ""
    return f"find / -type f \\( {name_args} \\) {exclude_args}{suffix} 2>/dev/null"


@register_collector
class CredentialsCollector(Collector):
    module = "credentials"

    def collect(self) -> CollectedData:
        env_lines = self.runner.run(
            find_names_command(ENV_FILE_NAMES, ENV_EXCLUDES, "%p\\t%s\\n"), timeout=FULL_SCAN_TIMEOUT
        ).lines()
        env_files: List[Dict[str, str]] = [{"path": p, "size": s} for p, s in split_path_size(env_lines)]

        service_accounts = [
            line.strip()
            for line in self.runner.run(
                find_names_command(SERVICE_ACCOUNT_NAMES, SERVICE_ACCOUNT_EXCLUDES), timeout=FULL_SCAN_TIMEOUT
            ).lines()
            if line.strip()
        ]

        git = self.runner.run(f"cat {GIT_CREDENTIALS} 2>/dev/null", timeout=CONFIG_TIMEOUT)
        git_credentials: Optional[str] = git.stdout if git.success and git.stdout else None

        private_keys = self._private_keys()

        raw = "\n\n".join(
            [
                "# env files\n" + "\n".join(env_lines),
                "# service account keys\n" + "\n".join(service_accounts),
                "# git-credentials\n" + git.stdout,
                "# SSH private keys\n" + "\n".join(private_keys),
            ]
        )
        return CollectedData(
            module=self.module,
            records={
                "env_files": env_files,
                "service_account_keys": service_accounts,
                "git_credentials": git_credentials,
                "ssh_private_keys": private_keys,
            },
            raw=raw,
        )

    def _private_keys(self) -> List[str]:
        candidates = self.runner.run(
            find_names_command(PRIVATE_KEY_NAMES, ("/proc/*",)), timeout=FULL_SCAN_TIMEOUT
        ).lines()

        confirmed: List[str] = []
        for path in candidates:
            if not path.endswith(".pem"):
                confirmed.append(path)
                continue
            head = self.runner.run(f"head -1 {quote(path)} 2>/dev/null", timeout=CONFIG_TIMEOUT)
            if "PRIVATE KEY" in head.stdout:
                confirmed.append(path)
        return confirmed
