from __future__ import annotations

import json

from ..report import Report
from ..settings import SeverityLevel

_SARIF_LEVELS = {
    SeverityLevel.LOW: "note",
    SeverityLevel.MEDIUM: "warning",
    SeverityLevel.HIGH: "error",
    SeverityLevel.CRITICAL: "error",
}


def generate_sarif(report: Report, verbose: bool = False) -> str:
    results = []
    rules = {}

    for finding in report.visible_findings(verbose):
        rule = report.rule_for(finding)
        if finding.rule_id not in rules:
            rules[finding.rule_id] = {
                "id": finding.rule_id,
                "name": rule.title if rule else finding.rule_id,
                "fullDescription": {"text": (rule.description or rule.title) if rule else finding.message},
                "help": {
                    "text": report.remediation_for(finding),
                    "markdown": report.remediation_for(finding),
                },
                "properties": {
                    "category": finding.category.value,
                    "severity": finding.severity.value,
                },
            }
        result = {
            "ruleId": finding.rule_id,
            "level": _SARIF_LEVELS[finding.severity],
            "message": {"text": finding.message},
            "locations": [
                {
                    "physicalLocation": {
                        "artifactLocation": {"uri": finding.file_path},
                        "region": {
                            "startLine": finding.start_line,
                            "endLine": finding.end_line,
                            "snippet": {"text": finding.snippet},
                        },
                    }
                }
            ],
        }
        if finding.suppressed:
            result["suppressions"] = [{"kind": "external"}]
        results.append(result)

    sarif_payload = {
        "version": "2.1.0",
        "$schema": "https://json.schemastore.org/sarif-2.1.0.json",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "websec-scanner",
                        "rules": list(rules.values()),
                    }
                },
                "invocations": [
                    {
                        "executionSuccessful": report.complete,
                        "toolExecutionNotifications": [
                            {
                                "level": "error",
                                "message": {"text": failure.message},
                                "locations": [
                                    {"physicalLocation": {"artifactLocation": {"uri": failure.file_path}}}
                                ],
                            }
                            for failure in report.failures
                        ],
                    }
                ],
                "results": results,
            }
        ],
    }

    return json.dumps(sarif_payload, indent=2)
