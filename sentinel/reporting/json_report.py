from __future__ import annotations

import json
from typing import Any

from sentinel.models import Finding, ModuleResult, ScanResult, Summary


def _finding_dict(finding: Finding) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": finding.id,
        "module": finding.module,
        "severity": finding.severity.label,
        "title": finding.title,
        "description": finding.description,
    }
    if finding.details:
        out["details"] = finding.details
    if finding.remediation:
        out["remediation"] = finding.remediation
    return out


def _module_dict(module: ModuleResult) -> dict[str, Any]:
    out: dict[str, Any] = {
        "module": module.module,
        "findings": [_finding_dict(f) for f in module.findings],
        "records": module.records,
        "durationMs": module.duration_ms,
    }
    if module.error is not None:
        out["error"] = module.error
    return out


def _summary_dict(summary: Summary) -> dict[str, Any]:
    return {
        "total": summary.total,
        "critical": summary.critical,
        "high": summary.high,
        "medium": summary.medium,
        "low": summary.low,
        "info": summary.info,
        "status": summary.status,
        "maxSeverity": summary.max_severity.label if summary.max_severity is not None else None,
    }


def to_json_dict(result: ScanResult) -> dict[str, Any]:
    return {
        "version": result.version,
        "timestamp": result.timestamp,
        "hostname": result.hostname,
        "os": result.os,
        "ip": result.ip,
        "modules": [_module_dict(m) for m in result.modules],
        "findings": [_finding_dict(f) for f in result.findings],
        "summary": _summary_dict(result.summary),
        "durationMs": result.duration_ms,
    }


def render_json(result: ScanResult, *, indent: int = 2) -> str:
    return json.dumps(to_json_dict(result), ensure_ascii=False, indent=indent, default=str)
