from __future__ import annotations

import json

from ..report import Report


def generate_json(report: Report, verbose: bool = False) -> str:
    return json.dumps(report.to_dict(verbose=verbose), indent=2)
