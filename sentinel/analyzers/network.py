from __future__ import annotations

from dataclasses import asdict

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import FindingLog, get_int, get_str, iter_dicts
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import LISTENING, OUTBOUND, ThreatIntelligence

# Telnet-style ports scanned by Mirai/Hajime descendants.
BOTNET_SCAN_PORTS = frozenset({23, 2323, 37215})
ANY_INTERFACE = frozenset({"0.0.0.0", "*", "::"})


@register_analyzer
class NetworkAnalyzer(Analyzer):
    module = "network"
    id_prefix = "NET"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)

        for conn in iter_dicts(data.records, "connections"):
            remote_addr = get_str(conn, "remote_addr")
            remote_port = get_int(conn, "remote_port", -1)
            local = f"{get_str(conn, 'local_addr')}:{get_int(conn, 'local_port', -1)}"
            process = get_str(conn, "process")

            ip_threat = intel.lookup_ip(remote_addr)
            if ip_threat is not None:
                log.add(
                    Severity.from_label(ip_threat.severity),
                    f"Connection to known malicious IP: {remote_addr}",
                    f'Connection from {local} to {remote_addr}:{remote_port} (process: "{process}"). '
                    f'Threat: "{ip_threat.name}" (type: {ip_threat.kind or "unknown"}).',
                    details={"connection": dict(conn), "threat": asdict(ip_threat)},
                    remediation=f"Block {remote_addr} at the firewall, kill the responsible process and "
                    "find out how the connection was initiated.",
                )

            port_threat = intel.match_port(remote_port, OUTBOUND)
            if port_threat is not None:
                log.add(
                    Severity.from_label(port_threat.severity),
                    f"Outbound connection to suspicious port {remote_port}",
                    f'Connection to {remote_addr}:{remote_port} (process: "{process}") matches '
                    f'threat port entry "{port_threat.name}".',
                    details={"connection": dict(conn), "threat": asdict(port_threat)},
                    remediation=f'Investigate process "{process}" and the remote endpoint. '
                    f"Block outbound port {remote_port} if it is not required.",
                )

            if remote_port in BOTNET_SCAN_PORTS:
                log.add(
                    Severity.HIGH,
                    f"Outbound connection to botnet-associated port {remote_port}",
                    f'Process "{process}" is connecting to {remote_addr}:{remote_port}. Ports 23, 2323 and '
                    "37215 are used for Telnet-based botnet propagation (Mirai, Hajime).",
                    details={"connection": dict(conn), "port": remote_port},
                    remediation=f'Investigate process "{process}" immediately and block outbound traffic '
                    f"to port {remote_port}.",
                )

        for listener in iter_dicts(data.records, "listening"):
            port = get_int(listener, "local_port", -1)
            addr = get_str(listener, "local_addr")
            process = get_str(listener, "process")

            port_threat = intel.match_port(port, LISTENING)
            if port_threat is not None:
                log.add(
                    Severity.from_label(port_threat.severity),
                    f"Suspicious listening port {port}",
                    f'Port {port} is listening on {addr} (process: "{process}"). '
                    f'Matches threat port entry "{port_threat.name}".',
                    details={"listening": dict(listener), "threat": asdict(port_threat)},
                    remediation=f'Investigate process "{process}" on port {port} and stop it if it is not expected.',
                )

            if port > 1024 and addr in ANY_INTERFACE:
                log.add(
                    Severity.INFO,
                    f"High port {port} listening on all interfaces",
                    f'Port {port} is listening on {addr} (process: "{process}"). '
                    "Non-standard ports exposed on every interface should be reviewed.",
                    details={"listening": dict(listener)},
                    remediation=f"Bind port {port} to 127.0.0.1 or restrict it with a firewall rule "
                    "if it does not need to be reachable.",
                )

        return log.findings
