from __future__ import annotations

from typing import Any, Dict, List

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.collectors.utils import (
    CONFIG_TIMEOUT,
    FULL_SCAN_TIMEOUT,
    is_temp_path,
    quote,
    split_path_size,
)
from sentinel.models import CollectedData

TEMP_DIRS = ("/tmp", "/var/tmp", "/dev/shm")
WORLD_WRITABLE_DIRS = ("/usr/bin", "/usr/sbin", "/etc")
RECENT_BINARY_DIRS = ("/usr/bin", "/usr/sbin", "/usr/local/bin", "/usr/local/sbin")
RECENT_DAYS = 30


@register_collector
class FilesystemCollector(Collector):
    module = "filesystem"

    def collect(self) -> CollectedData:
        raw_parts: List[str] = []

        executables: List[Dict[str, Any]] = []
        for directory in TEMP_DIRS:
            lines = self.runner.run(
                f"find {directory} -type f -executable -printf '%p\\t%s\\n' 2>/dev/null"
            ).lines()
            raw_parts.append(f"# executables in {directory}\n" + "\n".join(lines))
            executables.extend(self._executable(path, size) for path, size in split_path_size(lines))

        var_lines = self.runner.run(
            "find /var -maxdepth 2 -type f -executable -printf '%p\\t%s\\n' 2>/dev/null"
        ).lines()
        raw_parts.append("# executables in /var (maxdepth 2)\n" + "\n".join(var_lines))
        executables.extend(self._executable(path, size) for path, size in split_path_size(var_lines))

        hidden: List[str] = []
        for root in ("/", "/root"):
            for path in self.runner.run(
                f"find {root} -maxdepth 2 -type d -name '.*' -not -name '.' -not -name '..' 2>/dev/null"
            ).lines():
                if path not in hidden:
                    hidden.append(path)
        raw_parts.append("# hidden directories\n" + "\n".join(hidden))

        world_writable: List[str] = []
        for directory in WORLD_WRITABLE_DIRS:
            world_writable.extend(
                self.runner.run(f"find {directory} -type f -perm -o+w 2>/dev/null").lines()
            )
        raw_parts.append("# world-writable files\n" + "\n".join(world_writable))

        suid_paths = self.runner.run("find / -type f -perm -4000 2>/dev/null", timeout=FULL_SCAN_TIMEOUT).lines()
        raw_parts.append("# SUID binaries\n" + "\n".join(suid_paths))
        suid = [{"path": path, "packaged": self._is_packaged(path)} for path in suid_paths]

        recent = self.runner.run(
            f"find {' '.join(RECENT_BINARY_DIRS)} -type f -mtime -{RECENT_DAYS} 2>/dev/null"
        ).lines()
        raw_parts.append("# recently modified binaries\n" + "\n".join(recent))

        return CollectedData(
            module=self.module,
            records={
                "suspicious_executables": executables,
                "hidden_dirs": hidden,
                "world_writable": world_writable,
                "suid_binaries": suid,
                "recently_modified": recent,
            },
            raw="\n\n".join(raw_parts),
        )

    def _executable(self, path: str, size: str) -> Dict[str, Any]:
        digest = ""
        if is_temp_path(path):
            result = self.runner.run(f"sha256sum {quote(path)} 2>/dev/null", timeout=CONFIG_TIMEOUT)
            if result.success and result.stdout:
                digest = result.stdout.split()[0]
        return {"path": path, "size": size, "sha256": digest}

    def _is_packaged(self, path: str) -> bool:
        dpkg = self.runner.run(f"dpkg -S {quote(path)} 2>/dev/null", timeout=CONFIG_TIMEOUT)
        if dpkg.success and dpkg.stdout:
            return True

        rpm = self.runner.run(f"rpm -qf {quote(path)} 2>/dev/null", timeout=CONFIG_TIMEOUT)
        if rpm.success and rpm.stdout and "not owned" not in rpm.stdout:
            return True

        pacman = self.runner.run(f"pacman -Qo {quote(path)} 2>/dev/null", timeout=CONFIG_TIMEOUT)
        return pacman.success and "is owned by" in pacman.stdout
