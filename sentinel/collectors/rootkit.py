from __future__ import annotations

from typing import Any, Dict, List

from sentinel.collectors.base import Collector
from sentinel.collectors.registry import register_collector
from sentinel.collectors.utils import CONFIG_TIMEOUT, DIR_SCAN_TIMEOUT, is_temp_path, section
from sentinel.models import CollectedData

LD_PRELOAD_FILE = "/etc/ld.so.preload"
MALWARE_DIR = "/etc/data"
LIBRARY_SEARCH_DIRS = ("/etc", "/tmp", "/var/tmp", "/dev/shm")
LEGITIMATE_ETC_PREFIXES = ("/etc/alternatives/", "/etc/ld.so.cache", "/etc/ld.so.conf")


def is_suspicious_library(path: str) -> bool:
    if is_temp_path(path):
        return True
    if path.startswith("/etc/"):
        return not path.startswith(LEGITIMATE_ETC_PREFIXES)
    return True


def parse_lsmod(output: str) -> List[Dict[str, Any]]:
    modules: List[Dict[str, Any]] = []
    for line in output.split("\n"):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("Module"):
            continue
        parts = trimmed.split()
        if len(parts) < 3:
            continue
        try:
            size = int(parts[1])
        except ValueError:
            size = 0
        modules.append({"name": parts[0], "size": size, "used_by": ",".join(parts[3:])})
    return modules


@register_collector
class RootkitCollector(Collector):
    module = "rootkit"

    def collect(self) -> CollectedData:
        raw_parts: List[str] = []

        ld_preload = self.runner.run(f"cat {LD_PRELOAD_FILE} 2>/dev/null", timeout=CONFIG_TIMEOUT).stdout
        raw_parts.append(section(LD_PRELOAD_FILE, ld_preload))

        libraries = self._find_suspicious_libraries()
        raw_parts.append(section("suspicious .so files", "\n".join(libraries)))

        check = self.runner.run(f"test -d {MALWARE_DIR} && echo exists", timeout=CONFIG_TIMEOUT)
        malware_dir_exists = "exists" in check.stdout
        malware_dir_files: List[str] = []
        if malware_dir_exists:
            malware_dir_files = self.runner.run(f"ls -la {MALWARE_DIR}/ 2>/dev/null", timeout=CONFIG_TIMEOUT).lines()
            raw_parts.append(section(MALWARE_DIR, "\n".join(malware_dir_files)))
        else:
            raw_parts.append(section(MALWARE_DIR, "directory does not exist"))

        lsmod = self.runner.run("lsmod").stdout
        raw_parts.append(section("lsmod", lsmod))

        return CollectedData(
            module=self.module,
            records={
                "ld_preload": ld_preload,
                "suspicious_libraries": libraries,
                "malware_dir_exists": malware_dir_exists,
                "malware_dir_files": malware_dir_files,
                "kernel_modules": parse_lsmod(lsmod),
            },
            raw="\n".join(raw_parts),
        )

    def _find_suspicious_libraries(self) -> List[str]:
        found: List[str] = []
        for directory in LIBRARY_SEARCH_DIRS:
            result = self.runner.run(
                f"find {directory} -name '*.so' -o -name '*.so.*' 2>/dev/null",
                timeout=DIR_SCAN_TIMEOUT,
            )
            for path in result.lines():
                path = path.strip()
                if path and is_suspicious_library(path):
                    found.append(path)
        return found
