from __future__ import annotations

import re
from typing import Any, Dict

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import FindingLog, get_dict, get_list, get_str
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import ThreatIntelligence

_SSH_RULE = re.compile(r"\b22\b|\bssh\b", re.IGNORECASE)
_ALLOW_IN = re.compile(r"ALLOW\s+IN", re.IGNORECASE)
_ANYWHERE = re.compile(r"Anywhere", re.IGNORECASE)
_INPUT_POLICY_ACCEPT = re.compile(r"Chain INPUT.*policy ACCEPT", re.IGNORECASE)
_SSH_DPORT = re.compile(r"dpt:22\b")


def is_ssh_open_to_all(ufw: Dict[str, Any], iptables: str) -> bool:
    """Whether port 22 looks reachable from any address.

    With no usable rules at all an inactive UFW counts as open, which can
    overreport on hosts that filter SSH elsewhere.
    """
    active = ufw.get("active") is True
    rules = get_str(ufw, "rules")

    if active and rules:
        for line in rules.split("\n"):
            if _SSH_RULE.search(line) and _ALLOW_IN.search(line) and _ANYWHERE.search(line):
                return True
        return False

    if iptables:
        in_input = False
        for line in iptables.split("\n"):
            if line.startswith("Chain INPUT"):
                in_input = True
                continue
            if line.startswith("Chain"):
                in_input = False
                continue
            if in_input and _SSH_DPORT.search(line) and "0.0.0.0/0" in line and "ACCEPT" in line:
                return True
        if _INPUT_POLICY_ACCEPT.search(iptables):
            return True

    return not active


@register_analyzer
class FirewallAnalyzer(Analyzer):
    module = "firewall"
    id_prefix = "FW"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)
        records = data.records
        ufw = get_dict(records, "ufw")
        fail2ban = get_dict(records, "fail2ban")
        iptables = get_str(records, "iptables")

        if ufw.get("active") is not True:
            log.add(
                Severity.HIGH,
                "UFW firewall is not active",
                "The Uncomplicated Firewall (UFW) is not active, so every listening service is exposed "
                "to the network.",
                details={"ufw_active": False},
                remediation='Enable UFW: "ufw default deny incoming && ufw default allow outgoing && '
                'ufw allow ssh && ufw --force enable", then open only the ports you need.',
            )

        if fail2ban.get("running") is not True:
            log.add(
                Severity.MEDIUM,
                "Fail2ban is not running",
                "Fail2ban is not installed or not running. SSH and other services have no automated "
                "brute-force protection.",
                details={"fail2ban_running": False},
                remediation='Install fail2ban ("apt install fail2ban -y") and enable the sshd jail in '
                "/etc/fail2ban/jail.local.",
            )
        else:
            jails = [j for j in get_list(fail2ban, "jails") if isinstance(j, str)]
            if not any(j.lower() in ("sshd", "ssh") for j in jails):
                log.add(
                    Severity.MEDIUM,
                    "Fail2ban sshd jail is not active",
                    "Fail2ban is running but no sshd jail is enabled, so SSH brute-force attempts are not blocked.",
                    details={"jails": jails},
                    remediation='Add "[sshd]\\nenabled = true" to /etc/fail2ban/jail.local and restart fail2ban.',
                )

        if is_ssh_open_to_all(ufw, iptables):
            log.add(
                Severity.MEDIUM,
                "SSH is not restricted by firewall",
                "SSH (port 22) appears reachable from any source address (0.0.0.0/0).",
                details={"ssh_restricted": False},
                remediation='Restrict SSH to trusted ranges, e.g. "ufw delete allow ssh && '
                'ufw allow from <trusted-ip>/32 to any port 22", or put it behind a VPN or bastion.',
            )

        return log.findings
