"""Machine-readable JSON outputs."""

from __future__ import annotations

import json

from .context import ReportContext

FINAL_FILE = "coverage-final.json"
SUMMARY_FILE = "coverage-summary.json"


class JsonReport:
    def render(self, context: ReportContext) -> None:
        context.write_file(FINAL_FILE, json.dumps(context.coverage_map.to_dict(), sort_keys=True))


class JsonSummaryReport:
    def render(self, context: ReportContext) -> None:
        data = {"total": context.total.to_dict()}
        for entry in context.entries:
            data[entry.path] = entry.summary.to_dict()
        context.write_file(SUMMARY_FILE, json.dumps(data, indent=2))
