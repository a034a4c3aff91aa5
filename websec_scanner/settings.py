from __future__ import annotations

from enum import Enum


class SeverityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [
    SeverityLevel.LOW,
    SeverityLevel.MEDIUM,
    SeverityLevel.HIGH,
    SeverityLevel.CRITICAL,
]


class Category(str, Enum):
    AUTH = "auth"
    AUTHZ = "authz"
    DATA_EXPOSURE = "data-exposure"
    RATE_LIMITING = "rate-limiting"
    MASS_ASSIGNMENT = "mass-assignment"
    MISCONFIG = "misconfig"
    XSS_REFLECTED = "xss-reflected"
    XSS_STORED = "xss-stored"
    XSS_DOM = "xss-dom"
    XSS_FRAMEWORK = "xss-framework"
    XSS_ATTRIBUTE = "xss-attribute"
    XSS_URL = "xss-url"
    CSP = "csp"
    XSS_JSON = "xss-json"
    XSS_TEMPLATE = "xss-template"


class RunStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    CANCELLED = "cancelled"
    FAILED = "failed"


class RunState(str, Enum):
    """Driver lifecycle; ``DONE`` and ``FAILED`` are terminal."""

    IDLE = "idle"
    LOADING = "loading"
    SCANNING = "scanning"
    AGGREGATING = "aggregating"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


DEFAULT_FAIL_ON = SeverityLevel.HIGH

# In-flight scan units per worker.
DISPATCH_FACTOR = 2
