from __future__ import annotations

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import FindingLog, get_bool, get_list, get_str, iter_strings
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import ThreatIntelligence

LD_PRELOAD_FILE = "/etc/ld.so.preload"
MALWARE_DIR = "/etc/data"


@register_analyzer
class RootkitAnalyzer(Analyzer):
    module = "rootkit"
    id_prefix = "RK"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)
        records = data.records

        preload = get_str(records, "ld_preload").strip()
        entries = [
            line.strip()
            for line in preload.split("\n")
            if line.strip() and not line.strip().startswith("#")
        ]
        if entries:
            log.add(
                Severity.CRITICAL,
                "LD_PRELOAD rootkit detected",
                f"{LD_PRELOAD_FILE} contains: {', '.join(entries)}. Libraries listed there are loaded into "
                "every process, the main mechanism of userland rootkits (Jynx, Azazel, libprocesshider).",
                details={"file": LD_PRELOAD_FILE, "entries": entries, "raw_content": preload},
                remediation=f"Treat the host as compromised. Record the library paths, empty {LD_PRELOAD_FILE}, "
                "delete the libraries, restart sshd and critical services, then audit for other persistence.",
            )

        for path in iter_strings(records, "suspicious_libraries"):
            log.add(
                Severity.HIGH,
                "Suspicious shared library in non-standard location",
                f'Found shared library "{path}". Libraries outside /lib and /usr/lib are often rootkit '
                "components or injected code.",
                details={"path": path},
                remediation=f'Inspect it with "file {path}" and "strings {path}", check whether it is preloaded, '
                "and remove it if it is not legitimate.",
            )

        if get_bool(records, "malware_dir_exists"):
            files = [f for f in get_list(records, "malware_dir_files") if isinstance(f, str)]
            log.add(
                Severity.CRITICAL,
                f"Known malware directory {MALWARE_DIR} detected (Kinsing)",
                f"{MALWARE_DIR} exists with {len(files)} entries. Kinsing stores its payloads and "
                "configuration there.",
                details={"path": MALWARE_DIR, "files": files},
                remediation=f"Kill Kinsing processes (kdevtmpfsi, kinsing), remove {MALWARE_DIR}, check crontabs "
                "and systemd for persistence, and patch the entry point (Docker API, Redis, Log4j).",
            )

        return log.findings
