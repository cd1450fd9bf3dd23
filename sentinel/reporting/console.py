from __future__ import annotations

from collections import defaultdict

from sentinel.models import Finding, ScanResult, ScanStatus, Severity


_SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO]
_SEVERITY_EMOJI = {
    Severity.CRITICAL: "🔴",
    Severity.HIGH: "🟠",
    Severity.MEDIUM: "🟡",
    Severity.LOW: "🔵",
    Severity.INFO: "⚪",
}
_STATUS_EMOJI = {
    ScanStatus.COMPROMISED: "🚨",
    ScanStatus.THREATS_FOUND: "❗",
    ScanStatus.WARNINGS: "⚠️",
    ScanStatus.INFORMATIONAL: "ℹ️",
    ScanStatus.CLEAN: "✅",
}


def render_console_report(result: ScanResult) -> str:
    by_severity: dict[Severity, list[Finding]] = defaultdict(list)
    for finding in result.findings:
        by_severity[finding.severity].append(finding)

    lines: list[str] = []
    lines.append("\n" + "=" * 80)
    lines.append(f"🔍 Sentinel Security Scan - {result.timestamp}")
    lines.append("=" * 80)
    lines.append(f"🖥️  Host: {result.hostname} ({result.ip}) | OS: {result.os}")
    lines.append(f"⏱️  Scan duration: {result.duration_ms / 1000:.1f}s\n")

    if not result.findings:
        lines.append("✅ No security issues found.")
    else:
        lines.append(f"📊 Total findings: {result.summary.total}")
        for sev in _SEVERITY_ORDER:
            cnt = len(by_severity.get(sev, []))
            if cnt:
                lines.append(f"   {_SEVERITY_EMOJI[sev]} {sev.label}: {cnt}")

    for sev in _SEVERITY_ORDER:
        items = by_severity.get(sev, [])
        if not items:
            continue

        lines.append("\n" + "─" * 80)
        lines.append(f"[{sev.label}] Findings")
        lines.append("─" * 80)

        for f in items:
            lines.append(f"\n{f.id} {f.title}")
            lines.append(f"   📦 Module: {f.module}")
            lines.append(f"   📝 Description: {f.description}")
            if f.remediation:
                lines.append(f"   💡 Remediation: {f.remediation}")

    errors = [m for m in result.modules if m.error]
    if errors:
        lines.append("\n" + "─" * 80)
        lines.append("Module errors")
        lines.append("─" * 80)
        for m in errors:
            lines.append(f"   ❌ {m.module}: {m.error}")

    status = result.summary.status
    lines.append("\n" + "=" * 80)
    lines.append(f"{_STATUS_EMOJI.get(status, '')} Status: {status}")
    lines.append("=" * 80 + "\n")
    return "\n".join(lines)
