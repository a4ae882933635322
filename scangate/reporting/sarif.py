"""
ScanGate SARIF Reporter

Generates SARIF 2.1.0 (Static Analysis Results Interchange Format) output
for integration with:
- GitHub Code Scanning / Security tab
- Azure DevOps
- Visual Studio / VSCode
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional

from scangate import __version__
from scangate.reporting.base import ReportContext, display_path, write_report

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"


class SARIFReporter:
    """Generates SARIF 2.1.0-formatted scan reports."""

    def report(self, context: ReportContext, output_file: Optional[str] = None) -> str:
        """
        Generate SARIF report.

        Args:
            context: The finished run.
            output_file: Optional file path to write the report to.

        Returns:
            The SARIF JSON string.
        """
        rules: list[dict] = []
        rule_index: dict[str, int] = {}
        for active in context.rule_set.active_rules(context.overrides):
            rule = active.rule
            rule_index[rule.name] = len(rules)
            rules.append(
                {
                    "id": rule.name,
                    "name": rule.title,
                    "shortDescription": {"text": rule.suggestion},
                    "fullDescription": {"text": f"[{rule.category}] {rule.suggestion}"},
                    "defaultConfiguration": {"level": active.severity.sarif_level},
                    "properties": {"category": rule.category, "scope": rule.scope},
                }
            )

        results: list[dict] = []
        for finding in sorted(context.reported, key=lambda f: (f.file, f.line, f.column)):
            result: dict = {
                "ruleId": finding.rule_name,
                "level": finding.severity.sarif_level,
                "message": {"text": finding.message},
                "locations": [
                    {
                        "physicalLocation": {
                            "artifactLocation": {
                                "uri": display_path(finding.file),
                                "uriBaseId": "%SRCROOT%",
                            },
                            "region": {
                                "startLine": finding.line,
                                "startColumn": finding.column,
                                "endLine": finding.line,
                                "endColumn": finding.end_column,
                            },
                        }
                    }
                ],
            }
            if finding.rule_name in rule_index:
                result["ruleIndex"] = rule_index[finding.rule_name]
            results.append(result)

        sarif = {
            "$schema": SARIF_SCHEMA,
            "version": "2.1.0",
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": "ScanGate",
                            "version": __version__,
                            "informationUri": "https://github.com/scangate/scangate",
                            "rules": rules,
                        }
                    },
                    "results": results,
                    "invocations": [
                        {
                            "executionSuccessful": True,
                            "endTimeUtc": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                        }
                    ],
                    "columnKind": "unicodeCodePoints",
                }
            ],
        }

        sarif_str = json.dumps(sarif, indent=2, default=str)
        write_report(sarif_str, output_file)
        return sarif_str
