from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml  # type: ignore[import-untyped]

from sentinel.errors import KnowledgeBaseLoadError

logger = logging.getLogger(__name__)

DATA_FILES = {
    "hashes": "known_hashes.yaml",
    "ips": "known_ips.yaml",
    "processes": "known_processes.yaml",
    "paths": "known_paths.yaml",
    "services": "known_services.yaml",
    "ports": "known_ports.yaml",
}

LISTENING = "listening"
OUTBOUND = "outbound"
DIRECTIONS = (LISTENING, OUTBOUND)


@dataclass(frozen=True)
class HashEntry:
    digest: str
    name: str
    family: str
    severity: str


@dataclass(frozen=True)
class IPEntry:
    address: str
    name: str
    kind: str
    severity: str


@dataclass(frozen=True)
class ProcessSignature:
    pattern: str
    name: str
    severity: str
    family: str = ""
    regex: bool = False


@dataclass(frozen=True)
class PathEntry:
    path: str
    name: str
    severity: str


@dataclass(frozen=True)
class ServiceEntry:
    name: str
    description: str
    severity: str


@dataclass(frozen=True)
class PortEntry:
    port: int
    name: str
    severity: str
    direction: str


class ThreatIntelligence:
    """Read-only knowledge base of known-malicious indicators.

    Loaded once from the YAML data sets in ``data_dir`` (the packaged
    ``sentinel/data`` by default). Any missing or malformed file raises
    KnowledgeBaseLoadError: findings cannot be trusted without it.

    Process signatures are checked in file order and the first match wins,
    so more specific signatures must be listed before broader ones.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = self._resolve_data_dir(data_dir)

        self._hashes: Dict[str, HashEntry] = {
            str(row["sha256"]).lower(): HashEntry(
                digest=str(row["sha256"]).lower(),
                name=str(row["name"]),
                family=str(row.get("family", "")),
                severity=str(row["severity"]),
            )
            for row in self._load_entries("hashes", ("sha256", "name", "severity"))
        }
        self._ips: Dict[str, IPEntry] = {
            str(row["ip"]): IPEntry(
                address=str(row["ip"]),
                name=str(row["name"]),
                kind=str(row.get("type", "")),
                severity=str(row["severity"]),
            )
            for row in self._load_entries("ips", ("ip", "name", "severity"))
        }
        self._processes: Tuple[ProcessSignature, ...] = tuple(
            ProcessSignature(
                pattern=str(row["pattern"]),
                name=str(row["name"]),
                severity=str(row["severity"]),
                family=str(row.get("family", "")),
                regex=bool(row.get("regex", False)),
            )
            for row in self._load_entries("processes", ("pattern", "name", "severity"))
        )
        self._process_regexes: Dict[str, "re.Pattern[str]"] = self._compile_signatures(self._processes)
        self._paths: Tuple[PathEntry, ...] = tuple(
            PathEntry(path=str(row["path"]), name=str(row["name"]), severity=str(row["severity"]))
            for row in self._load_entries("paths", ("path", "name", "severity"))
        )
        self._services: Tuple[ServiceEntry, ...] = tuple(
            ServiceEntry(
                name=str(row["name"]),
                description=str(row.get("description", "")),
                severity=str(row["severity"]),
            )
            for row in self._load_entries("services", ("name", "severity"))
        )
        self._ports: Tuple[PortEntry, ...] = tuple(
            PortEntry(
                port=self._as_port(row),
                name=str(row["name"]),
                severity=str(row["severity"]),
                direction=self._as_direction(row),
            )
            for row in self._load_entries("ports", ("port", "name", "severity", "direction"))
        )

        logger.debug("Threat intelligence loaded from %s: %s", self.data_dir, self.stats())

    def lookup_hash(self, digest: str) -> Optional[HashEntry]:
        return self._hashes.get(digest.lower())

    def lookup_ip(self, address: str) -> Optional[IPEntry]:
        return self._ips.get(address)

    def match_process(self, name: str, command_line: str) -> Optional[ProcessSignature]:
        combined = f"{name} {command_line}".lower()
        for entry in self._processes:
            if entry.regex:
                if self._process_regexes[entry.pattern].search(combined):
                    return entry
            elif entry.pattern.lower() in combined:
                return entry
        return None

    def match_path(self, path: str) -> Optional[PathEntry]:
        for entry in self._paths:
            if path.startswith(entry.path) or path == entry.path.rstrip("/"):
                return entry
        return None

    def match_service(self, name: str) -> Optional[ServiceEntry]:
        for entry in self._services:
            if entry.name == name:
                return entry
        return None

    def match_port(self, port: int, direction: str) -> Optional[PortEntry]:
        for entry in self._ports:
            if entry.port != port:
                continue
            if entry.direction == direction:
                return entry
        return None

    @property
    def paths(self) -> Tuple[PathEntry, ...]:
        return self._paths

    def stats(self) -> Dict[str, int]:
        return {
            "hashes": len(self._hashes),
            "ips": len(self._ips),
            "processes": len(self._processes),
            "paths": len(self._paths),
            "services": len(self._services),
            "ports": len(self._ports),
        }

    @staticmethod
    def _resolve_data_dir(data_dir: Optional[Path]) -> Path:
        if data_dir is not None:
            return Path(data_dir)
        return Path(__file__).resolve().parent / "data"

    def _load_entries(self, table: str, required: Tuple[str, ...]) -> List[Dict[str, Any]]:
        path = self.data_dir / DATA_FILES[table]
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise KnowledgeBaseLoadError(f"Cannot read threat data file {path}: {exc}", path=path) from exc
        except yaml.YAMLError as exc:
            raise KnowledgeBaseLoadError(f"Malformed threat data file {path}: {exc}", path=path) from exc

        if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
            raise KnowledgeBaseLoadError(f"Threat data file {path} must contain an 'entries' list", path=path)

        rows: List[Dict[str, Any]] = []
        for idx, row in enumerate(data["entries"]):
            if not isinstance(row, dict):
                raise KnowledgeBaseLoadError(f"{path}: entry #{idx} is not a mapping", path=path)
            missing = [key for key in required if row.get(key) in (None, "")]
            if missing:
                raise KnowledgeBaseLoadError(
                    f"{path}: entry #{idx} is missing {', '.join(missing)}", path=path
                )
            rows.append(row)
        return rows

    def _compile_signatures(self, signatures: Tuple[ProcessSignature, ...]) -> Dict[str, "re.Pattern[str]"]:
        compiled: Dict[str, "re.Pattern[str]"] = {}
        for entry in signatures:
            if not entry.regex:
                continue
            try:
                compiled[entry.pattern] = re.compile(entry.pattern, re.IGNORECASE)
            except re.error as exc:
                path = self.data_dir / DATA_FILES["processes"]
                raise KnowledgeBaseLoadError(
                    f"{path}: invalid regex for '{entry.name}': {exc}", path=path
                ) from exc
        return compiled

    def _as_port(self, row: Dict[str, Any]) -> int:
        try:
            return int(row["port"])
        except (TypeError, ValueError) as exc:
            path = self.data_dir / DATA_FILES["ports"]
            raise KnowledgeBaseLoadError(f"{path}: invalid port {row['port']!r}", path=path) from exc

    def _as_direction(self, row: Dict[str, Any]) -> str:
        direction = str(row["direction"]).lower()
        if direction not in DIRECTIONS:
            path = self.data_dir / DATA_FILES["ports"]
            raise KnowledgeBaseLoadError(f"{path}: invalid direction {row['direction']!r}", path=path)
        return direction
