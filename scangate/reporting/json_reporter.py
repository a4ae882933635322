"""
ScanGate JSON Reporter

Generates machine-readable JSON output format:
{
    "version": "1.0",
    "mode": "enforce",
    "files": N,
    "issues": N,
    "baseline": {"total": n, "baselined": n, "new": n},
    "errors": n,
    "warnings": n,
    "findings": [...],
    "results": [...]
}
"""

from __future__ import annotations

import json
from collections import Counter
from typing import Optional

from scangate import __version__
from scangate.reporting.base import ReportContext, write_report


class JSONReporter:
    """Generates JSON-formatted scan reports."""

    def report(self, context: ReportContext, output_file: Optional[str] = None) -> str:
        """
        Generate JSON report.

        Args:
            context: The finished run.
            output_file: Optional file path to write the report to.

        Returns:
            The JSON string.
        """
        policy = context.policy
        counter = Counter(f.severity.value for f in policy.reported)

        report_data = {
            "version": "1.0",
            "tool": {
                "name": "ScanGate",
                "version": __version__,
            },
            "traceId": context.trace_id,
            "target": context.target,
            "mode": policy.mode.value,
            "files": len(context.results),
            "cachedFiles": context.cached_count,
            "issues": len(policy.reported),
            "baseline": policy.stats.to_dict(),
            "errors": policy.errors,
            "warnings": policy.warnings,
            "bySeverity": {sev: counter.get(sev, 0) for sev in ("error", "warning", "info")},
            "durationMs": round(context.duration_ms, 3),
            "findings": [f.to_dict() for f in policy.reported],
            "results": [r.to_dict() for r in sorted(context.results, key=lambda r: r.path)],
        }

        json_str = json.dumps(report_data, indent=2, default=str)
        write_report(json_str, output_file)
        return json_str
