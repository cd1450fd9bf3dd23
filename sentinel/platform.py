from __future__ import annotations

import socket
from dataclasses import dataclass

from sentinel.shell import CommandRunner


@dataclass(frozen=True)
class PlatformInfo:
    hostname: str
    os: str
    kernel: str
    ip: str


def _first_line(text: str) -> str:
    for line in text.split("\n"):
        if line.strip():
            return line.strip()
    return ""


def get_platform_info(runner: CommandRunner) -> PlatformInfo:
    os_name = _first_line(
        runner.run(
            "lsb_release -ds 2>/dev/null || "
            "grep PRETTY_NAME /etc/os-release 2>/dev/null | cut -d= -f2 | tr -d '\"' || "
            "uname -s",
            timeout=5,
        ).stdout
    )
    kernel = _first_line(runner.run("uname -r", timeout=5).stdout)
    ip = _first_line(runner.run("hostname -I 2>/dev/null | awk '{print $1}'", timeout=5).stdout)

    return PlatformInfo(
        hostname=socket.gethostname(),
        os=os_name or "Linux",
        kernel=kernel or "unknown",
        ip=ip or "unknown",
    )
