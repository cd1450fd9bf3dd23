from __future__ import annotations

from typing import Dict, List

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.collectors.utils import CONFIG_TIMEOUT, quote, section
from sentinel.models import CollectedData

CRON_DROP_DIR = "/etc/cron.d"
SPOOL_DIR = "/var/spool/cron/crontabs"
NON_INTERACTIVE_SHELLS = ("/nologin", "/false")


def interactive_users(passwd: str) -> List[str]:
    """Accounts from /etc/passwd with a login shell, root excluded."""
    users: List[str] = []
    for line in passwd.split("\n"):
        fields = line.split(":")
        if len(fields) < 7:
            continue
        username, shell = fields[0], fields[6].strip()
        if not username or username == "root":
            continue
        if shell.endswith(NON_INTERACTIVE_SHELLS):
            continue
        users.append(username)
    return users


@register_collector
class CrontabCollector(Collector):
    module = "crontabs"

    def collect(self) -> CollectedData:
        sources: List[Dict[str, str]] = []

        root_crontab = self.runner.run("crontab -l 2>/dev/null", timeout=CONFIG_TIMEOUT).stdout
        sources.append({"label": "root crontab", "content": root_crontab})

        system_crontab = self.runner.run("cat /etc/crontab 2>/dev/null", timeout=CONFIG_TIMEOUT).stdout
        sources.append({"label": "/etc/crontab", "content": system_crontab})

        for filename in self.runner.run(f"ls {CRON_DROP_DIR}/ 2>/dev/null", timeout=CONFIG_TIMEOUT).lines():
            filename = filename.strip()
            if not filename:
                continue
            path = f"{CRON_DROP_DIR}/{filename}"
            content = self.runner.run(f"cat {quote(path)} 2>/dev/null", timeout=CONFIG_TIMEOUT).stdout
            if content:
                sources.append({"label": path, "content": content})

        users = self._crontab_users()
        for user in users:
            result = self.runner.run(f"crontab -u {quote(user)} -l 2>/dev/null", timeout=CONFIG_TIMEOUT)
            if result.success and result.stdout:
                sources.append({"label": f"crontab (user: {user})", "content": result.stdout})

        sources = [src for src in sources if src["content"]]
        raw = "\n".join(section(src["label"], src["content"]) for src in sources)
        return CollectedData(module=self.module, records={"sources": sources, "users": users}, raw=raw)

    def _crontab_users(self) -> List[str]:
        passwd = self.runner.run("cat /etc/passwd 2>/dev/null", timeout=CONFIG_TIMEOUT).stdout
        users = interactive_users(passwd)

        # Spool residue catches crontabs left behind for accounts whose shell was changed.
        for entry in self.runner.run(f"ls {SPOOL_DIR}/ 2>/dev/null", timeout=CONFIG_TIMEOUT).lines():
            username = entry.strip()
            if username and username != "root" and username not in users:
                users.append(username)
        return users
