from __future__ import annotations

import re
from typing import Any, Dict, List, Tuple

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.models import CollectedData

_IPV6_ADDR = re.compile(r"^\[(.+)\]:(\d+)$")
_OWNER = re.compile(r"users:\(\((.+?)\)\)")
_QUOTED = re.compile(r'"([^"]+)"')


def parse_addr_port(value: str) -> Tuple[str, int]:
    """Split ``addr:port`` as printed by ss. Port is -1 when unparsable."""
    match = _IPV6_ADDR.match(value)
    if match:
        return match.group(1), int(match.group(2))

    addr, sep, port = value.rpartition(":")
    if not sep:
        return value, -1
    try:
        return addr, int(port)
    except ValueError:
        return addr, -1


def extract_process(line: str) -> str:
    match = _OWNER.search(line)
    if not match:
        return ""
    name = _QUOTED.search(match.group(1))
    return name.group(1) if name else match.group(1)


def is_loopback(addr: str) -> bool:
    return addr in ("::1", "localhost") or addr.startswith("127.")


def _socket_rows(output: str) -> List[Tuple[str, List[str]]]:
    rows: List[Tuple[str, List[str]]] = []
    for line in output.split("\n"):
        if not line.strip() or line.startswith(("State", "Netid")):
            continue
        parts = line.split()
        # State Recv-Q Send-Q Local-Address:Port Peer-Address:Port Process
        if len(parts) >= 5:
            rows.append((line, parts))
    return rows


def parse_listening(output: str) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for line, parts in _socket_rows(output):
        addr, port = parse_addr_port(parts[3])
        if port < 0:
            continue
        out.append({"proto": "tcp", "local_addr": addr, "local_port": port, "process": extract_process(line)})
    return out


def parse_connections(output: str) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for line, parts in _socket_rows(output):
        local_addr, local_port = parse_addr_port(parts[3])
        remote_addr, remote_port = parse_addr_port(parts[4])
        if local_port < 0 or remote_port < 0:
            continue
        if is_loopback(remote_addr):
            continue
        out.append(
            {
                "local_addr": local_addr,
                "local_port": local_port,
                "remote_addr": remote_addr,
                "remote_port": remote_port,
                "process": extract_process(line),
                "state": parts[0],
            }
        )
    return out


@register_collector
class NetworkCollector(Collector):
    module = "network"

    def collect(self) -> CollectedData:
        listening_out = self.runner.run("ss -tlnp").stdout
        connections_out = self.runner.run("ss -tnp").stdout

        raw = "\n---\n".join(part for part in (listening_out, connections_out) if part)
        return CollectedData(
            module=self.module,
            records={
                "listening": parse_listening(listening_out),
                "connections": parse_connections(connections_out),
            },
            raw=raw,
        )
