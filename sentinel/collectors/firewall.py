from __future__ import annotations

import re
from typing import List

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.collectors.utils import CONFIG_TIMEOUT
from sentinel.models import CollectedData

_JAIL_LIST = re.compile(r"Jail list:\s*(.+)", re.IGNORECASE)


def parse_jails(status: str) -> List[str]:
    for line in status.split("\n"):
        match = _JAIL_LIST.search(line)
        if match:
            return [jail.strip() for jail in match.group(1).split(",") if jail.strip()]
    return []


@register_collector
class FirewallCollector(Collector):
    module = "firewall"

    def collect(self) -> CollectedData:
        ufw = self.runner.run("ufw status verbose 2>/dev/null", timeout=CONFIG_TIMEOUT)
        ufw_active = ufw.success and "status: active" in ufw.stdout.lower()

        f2b = self.runner.run("fail2ban-client status 2>/dev/null", timeout=CONFIG_TIMEOUT)
        f2b_running = f2b.success and bool(f2b.stdout)
        jails = parse_jails(f2b.stdout) if f2b_running else []
        f2b_sshd = self.runner.run("fail2ban-client status sshd 2>/dev/null", timeout=CONFIG_TIMEOUT)

        iptables = self.runner.run("iptables -L -n --line-numbers 2>/dev/null")

        raw = "\n\n".join(
            [
                "# ufw status verbose\n" + ufw.stdout,
                "# fail2ban-client status\n" + f2b.stdout,
                "# fail2ban-client status sshd\n" + f2b_sshd.stdout,
                "# iptables -L -n --line-numbers\n" + iptables.stdout,
            ]
        )
        return CollectedData(
            module=self.module,
            records={
                "ufw": {"active": ufw_active, "rules": ufw.stdout},
                "fail2ban": {"running": f2b_running, "jails": jails, "sshd_status": f2b_sshd.stdout},
                "iptables": iptables.stdout,
            },
            raw=raw,
        )
