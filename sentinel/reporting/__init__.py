from __future__ import annotations

from sentinel.models import ScanResult
from sentinel.reporting.console import render_console_report
from sentinel.reporting.json_report import render_json, to_json_dict
from sentinel.reporting.markdown import render_markdown

FORMATS = ("console", "json", "markdown")


def render_report(result: ScanResult, fmt: str = "console") -> str:
    if fmt == "json":
        return render_json(result)
    if fmt == "markdown":
        return render_markdown(result)
    return render_console_report(result)


__all__ = ["FORMATS", "render_console_report", "render_json", "render_markdown", "render_report", "to_json_dict"]
