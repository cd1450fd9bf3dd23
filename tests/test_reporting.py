from __future__ import annotations

import json

import pytest

from sentinel.models import Finding, ModuleResult, ScanResult, Severity, build_summary
from sentinel.reporting import render_report
from sentinel.reporting.console import render_console_report
from sentinel.reporting.json_report import render_json, to_json_dict
from sentinel.reporting.markdown import render_markdown


@pytest.fixture
def result() -> ScanResult:
    findings = [
        Finding(
            id="RK-001",
            module="rootkit",
            severity=Severity.CRITICAL,
            title="LD_PRELOAD rootkit detected",
            description="/etc/ld.so.preload contains: /etc/data/libsystem.so.",
            details={"entries": ["/etc/data/libsystem.so"]},
            remediation="Empty /etc/ld.so.preload.",
        ),
        Finding(id="SSH-001", module="ssh", severity=Severity.INFO, title="Authorized SSH keys found", description="1 key"),
    ]
    modules = [
        ModuleResult(module="rootkit", findings=findings[:1], records={"ld_preload": "x"}, duration_ms=12),
        ModuleResult(module="ssh", findings=findings[1:], duration_ms=3),
        ModuleResult(module="network", duration_ms=1, error="RuntimeError: ss | exploded"),
    ]
    return ScanResult(
        version="0.1.0",
        timestamp="2024-05-01T10:00:00+00:00",
        hostname="web-1",
        os="Ubuntu 22.04",
        ip="10.0.0.5",
        modules=modules,
        findings=findings,
        summary=build_summary(findings),
        duration_ms=1500,
    )


def test_json_shape(result):
    data = to_json_dict(result)
    assert set(data) == {"version", "timestamp", "hostname", "os", "ip", "modules", "findings", "summary", "durationMs"}
    assert data["summary"] == {
        "total": 2,
        "critical": 1,
        "high": 0,
        "medium": 0,
        "low": 0,
        "info": 1,
        "status": "COMPROMISED",
        "maxSeverity": "CRITICAL",
    }
    assert data["findings"][0]["severity"] == "CRITICAL"
    assert data["findings"][0]["details"] == {"entries": ["/etc/data/libsystem.so"]}
    assert "details" not in data["findings"][1]
    assert "remediation" not in data["findings"][1]
    assert data["modules"][0]["durationMs"] == 12
    assert "error" not in data["modules"][0]
    assert data["modules"][2]["error"] == "RuntimeError: ss | exploded"


def test_render_json_is_valid_json(result):
    parsed = json.loads(render_json(result))
    assert parsed["hostname"] == "web-1"
    assert parsed["durationMs"] == 1500


def test_max_severity_null_when_clean(result):
    clean = ScanResult(
        version="0.1.0",
        timestamp=result.timestamp,
        hostname="h",
        os="o",
        ip="i",
        modules=[],
        findings=[],
        summary=build_summary([]),
        duration_ms=0,
    )
    assert to_json_dict(clean)["summary"]["maxSeverity"] is None
    assert "No security issues found." in render_console_report(clean)
    assert "No security issues found." in render_markdown(clean)


def test_console_report(result):
    text = render_console_report(result)
    assert "Sentinel Security Scan" in text
    assert "RK-001 LD_PRELOAD rootkit detected" in text
    assert "Status: COMPROMISED" in text
    assert "network: RuntimeError: ss | exploded" in text
    assert text.index("[CRITICAL]") < text.index("[INFO]")


def test_markdown_report(result):
    text = render_markdown(result)
    assert text.startswith("# Sentinel Security Report")
    assert "### RK-001: LD_PRELOAD rootkit detected" in text
    assert "| CRITICAL | 1 |" in text
    assert "RuntimeError: ss \\| exploded" in text


def test_render_report_dispatch(result):
    assert render_report(result, "json").startswith("{")
    assert render_report(result, "markdown").startswith("# ")
    assert "Sentinel Security Scan" in render_report(result, "console")
