from __future__ import annotations

import re
from dataclasses import asdict

from sentinel.analyzers.base import Analyzer
from sentinel.analyzers.registry import register_analyzer
from sentinel.analyzers.utils import FindingLog, format_size, get_str, iter_dicts, iter_strings, temp_prefix
from sentinel.models import CollectedData, Finding, Severity
from sentinel.threats import ThreatIntelligence

STANDARD_HIDDEN_DIRS = frozenset(
    {
        ".ssh", ".gnupg", ".bash_history", ".profile", ".bashrc",
        ".wget-hsts", ".lesshst", ".selected_editor",
        ".config", ".local", ".cache", ".docker", ".pki",
        ".vscode", ".vscode-server", ".cursor-server", ".windsurf-server",
        ".codeium", ".codex", ".gemini", ".arc",
        ".npm", ".nvm", ".yarn", ".bun", ".pnpm",
        ".cargo", ".rustup", ".pyenv", ".rbenv", ".goenv",
        ".pm2", ".claude", ".jupyter", ".ipython", ".dotnet",
        ".git", ".github", ".next", ".venv", ".pytest_cache",
        ".rosetta", ".gsutil",
    }
)

_TOP_LEVEL_HIDDEN = re.compile(r"^(?:/root)?/(\.[^/]+)$")


@register_analyzer
class FilesystemAnalyzer(Analyzer):
    module = "filesystem"
    id_prefix = "FS"

    def analyze(self, data: CollectedData, intel: ThreatIntelligence) -> list[Finding]:
        log = FindingLog(self.module, self.id_prefix)
        records = data.records

        executables = [e for e in iter_dicts(records, "suspicious_executables") if get_str(e, "path")]

        for exe in executables:
            path = get_str(exe, "path")
            if temp_prefix(path) is None:
                continue
            size = exe.get("size", "")
            digest = get_str(exe, "sha256")
            hash_threat = intel.lookup_hash(digest) if digest else None
            if hash_threat is not None:
                log.add(
                    Severity.from_label(hash_threat.severity),
                    f"Known malware hash: {hash_threat.name}",
                    f'Executable at "{path}" ({format_size(size)}) has SHA-256 {digest}, which matches '
                    f'"{hash_threat.name}" (family: {hash_threat.family or "unknown"}).',
                    details={"path": path, "size": size, "sha256": digest, "threat": asdict(hash_threat)},
                    remediation=f'Remove the file with "rm -f {path}" and look for related processes and persistence.',
                )
                continue
            self._path_finding(log, intel, path, size, temp=True)

        for exe in executables:
            path = get_str(exe, "path")
            if temp_prefix(path) is None:
                self._path_finding(log, intel, path, exe.get("size", ""), temp=False)

        for directory in iter_strings(records, "hidden_dirs"):
            cleaned = directory.rstrip("/")
            match = _TOP_LEVEL_HIDDEN.match(cleaned)
            if not match or match.group(1) in STANDARD_HIDDEN_DIRS:
                continue
            log.add(
                Severity.MEDIUM,
                "Non-standard hidden directory",
                f'Hidden directory "{directory}" is not a recognized standard directory. Malware often hides '
                "payloads in directories such as .configrc or .X11-unix.",
                details={"path": directory, "dir_name": match.group(1)},
                remediation=f'Inspect "{directory}" with "ls -la {directory}" and remove it if no legitimate '
                "application owns it.",
            )

        for suid in iter_dicts(records, "suid_binaries"):
            path = get_str(suid, "path")
            if not path or suid.get("packaged") is not False:
                continue
            log.add(
                Severity.HIGH,
                "Unpackaged SUID binary detected",
                f'SUID binary "{path}" is not owned by any installed package. Unpackaged SUID binaries '
                "are a classic privilege-escalation backdoor.",
                details={"path": path, "packaged": False},
                remediation=f'Inspect "{path}" and remove the SUID bit with "chmod u-s {path}" or delete the '
                "file if it is not needed.",
            )

        for path in iter_strings(records, "world_writable"):
            log.add(
                Severity.MEDIUM,
                "World-writable system file",
                f'System file "{path}" is writable by every user, allowing tampering with system '
                "binaries or configuration.",
                details={"path": path},
                remediation=f'Run "chmod o-w {path}" and verify the file against the package '
                'manager ("dpkg -V" or "rpm -V").',
            )

        return log.findings

    @staticmethod
    def _path_finding(log: FindingLog, intel: ThreatIntelligence, path: str, size, *, temp: bool) -> None:
        threat = intel.match_path(path)
        if threat is not None:
            log.add(
                Severity.from_label(threat.severity),
                f"Known malicious file: {threat.name}",
                f'Executable at "{path}" ({format_size(size)}) matches threat entry "{threat.name}".',
                details={"path": path, "size": size, "threat": asdict(threat)},
                remediation=f'Remove the file with "rm -f {path}" and look for related processes and persistence.',
            )
        elif temp:
            log.add(
                Severity.HIGH,
                "Executable found in temporary directory",
                f'Executable file at "{path}" ({format_size(size)}). Legitimate software is not stored '
                "in temporary directories.",
                details={"path": path, "size": size},
                remediation=f'Inspect it with "file {path}" and "sha256sum {path}". Remove it unless it belongs '
                "to a known running application.",
            )
