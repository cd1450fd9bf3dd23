from __future__ import annotations

from sentinel.models import ScanResult, Severity


_SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO]


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def render_markdown(result: ScanResult) -> str:
    summary = result.summary
    lines: list[str] = [
        "# Sentinel Security Report",
        "",
        f"- **Host:** {result.hostname} ({result.ip})",
        f"- **OS:** {result.os}",
        f"- **Timestamp:** {result.timestamp}",
        f"- **Duration:** {result.duration_ms / 1000:.1f}s",
        f"- **Status:** {summary.status}",
        "",
        "## Summary",
        "",
        "| Severity | Count |",
        "| --- | --- |",
        f"| CRITICAL | {summary.critical} |",
        f"| HIGH | {summary.high} |",
        f"| MEDIUM | {summary.medium} |",
        f"| LOW | {summary.low} |",
        f"| INFO | {summary.info} |",
        f"| **Total** | **{summary.total}** |",
    ]

    if not result.findings:
        lines += ["", "No security issues found."]

    for sev in _SEVERITY_ORDER:
        items = [f for f in result.findings if f.severity == sev]
        if not items:
            continue
        lines += ["", f"## {sev.label}", ""]
        for f in items:
            lines.append(f"### {f.id}: {f.title}")
            lines.append("")
            lines.append(f"*Module:* `{f.module}`")
            lines.append("")
            lines.append(f.description)
            if f.remediation:
                lines += ["", f"**Remediation:** {f.remediation}"]
            lines.append("")

    errors = [m for m in result.modules if m.error]
    if errors:
        lines += ["", "## Module errors", "", "| Module | Error |", "| --- | --- |"]
        lines += [f"| {m.module} | {_cell(m.error or '')} |" for m in errors]

    return "\n".join(lines).rstrip() + "\n"
