"""
Web application security scanner package.
"""

from .aggregator import aggregate
from .engine import scan
from .report import build
from .rules.loader import load_rules
from .scanner import Scanner
from .settings import SeverityLevel

__all__ = ["Scanner", "SeverityLevel", "aggregate", "build", "load_rules", "scan"]
