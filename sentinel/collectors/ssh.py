from __future__ import annotations

import re
from typing import Any, Dict, List

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.collectors.utils import CONFIG_TIMEOUT, FULL_SCAN_TIMEOUT, quote
from sentinel.models import CollectedData

SSHD_CONFIG = "/etc/ssh/sshd_config"

# record key -> sshd_config keyword
SSHD_DIRECTIVES = {
    "permit_root_login": "PermitRootLogin",
    "password_auth": "PasswordAuthentication",
    "pubkey_auth": "PubkeyAuthentication",
    "permit_empty_passwords": "PermitEmptyPasswords",
}

_KEYWORD_SPLIT = re.compile(r"[\s=]+")


def parse_sshd_value(config: str, keyword: str) -> str:
    """Value of the first non-comment line setting ``keyword``, else "unknown"."""
    for line in config.split("\n"):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        parts = _KEYWORD_SPLIT.split(trimmed, maxsplit=1)
        if parts[0].lower() == keyword.lower():
            return parts[1].split()[0] if len(parts) > 1 and parts[1].strip() else "unknown"
    return "unknown"


def parse_sshd_config(config: str) -> Dict[str, str]:
    return {key: parse_sshd_value(config, keyword) for key, keyword in SSHD_DIRECTIVES.items()}


def parse_authorized_keys(content: str) -> List[str]:
    return [line for line in content.split("\n") if line.strip() and not line.strip().startswith("#")]


@register_collector
class SshCollector(Collector):
    module = "ssh"

    def collect(self) -> CollectedData:
        raw_parts: List[str] = []

        key_paths = self.runner.run(
            "find / -name authorized_keys -not -path '/proc/*' 2>/dev/null",
            timeout=FULL_SCAN_TIMEOUT,
        ).lines()
        raw_parts.append("# authorized_keys paths\n" + "\n".join(key_paths))

        authorized_keys: List[Dict[str, Any]] = []
        for path in key_paths:
            content = self.runner.run(f"cat {quote(path)} 2>/dev/null", timeout=CONFIG_TIMEOUT).stdout
            authorized_keys.append({"path": path, "keys": parse_authorized_keys(content)})
            raw_parts.append(f"# {path}\n{content}")

        sshd = self.runner.run(f"cat {SSHD_CONFIG} 2>/dev/null", timeout=CONFIG_TIMEOUT).stdout
        raw_parts.append("# sshd_config\n" + sshd)

        who = self.runner.run("who 2>/dev/null", timeout=CONFIG_TIMEOUT)
        raw_parts.append("# who\n" + who.stdout)

        ss = self.runner.run("ss -tnp 2>/dev/null | grep ':22 '")
        raw_parts.append("# ss :22\n" + ss.stdout)

        return CollectedData(
            module=self.module,
            records={
                "authorized_keys": authorized_keys,
                "sshd_config": parse_sshd_config(sshd),
                "active_sessions": [line for line in who.lines() if line.strip()],
                "ssh_connections": [line for line in ss.lines() if line.strip()],
            },
            raw="\n\n".join(raw_parts),
        )
