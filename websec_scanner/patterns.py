"""
Named pattern groups shared by the rule catalog.

Catalog entries reference a group with ``"@<name>"`` instead of repeating the
regexes. Every entry is a regular expression; groups are combined into a single
alternation when a matcher is built.
"""

from __future__ import annotations

from typing import Dict, List

# Externally controlled request data (server side).
REQUEST_SOURCES: List[str] = [
    r"\breq(?:uest)?\.(?:query|params|body|headers|cookies|signedCookies)\b",
    r"\breq\.(?:param|get|header)\s*\(",
    r"\bctx\.(?:query|params|request\.body)\b",
    r"\brequest\.(?:args|form|values|GET|POST|json|data|files|view_args)\b",
    r"\brequest\.get_json\s*\(",
    r"\$_(?:GET|POST|REQUEST|COOKIE|SERVER)\b",
]

# Attacker-controllable browser state (client side).
BROWSER_SOURCES: List[str] = [
    r"\blocation\.(?:hash|search|href|pathname)\b",
    r"\bdocument\.(?:URL|documentURI|referrer|baseURI|cookie)\b",
    r"\bwindow\.name\b",
    r"\bnew\s+URLSearchParams\s*\(",
    r"\.searchParams\.get\s*\(",
    r"\b(?:event|evt|e|msg|message)\.data\b",
]

# Reads from persistent storage.
DATASTORE_SOURCES: List[str] = [
    r"\.(?:find|findOne|findAll|findById|findByPk|findMany|findFirst|findUnique)\s*\(",
    r"\b(?:db|pool|client|connection|conn|knex)\.(?:query|get|all|execute|select)\s*\(",
    r"\bcursor\.fetch(?:one|all|many)\s*\(",
    r"\.objects\.(?:get|filter|all)\s*\(",
    r"\blocalStorage\.getItem\s*\(",
    r"\bsessionStorage\.getItem\s*\(",
]

# Server responses rendered as HTML.
RESPONSE_SINKS: List[str] = [
    r"\b(?:res|response|reply|ctx)\.(?:send|write|end)\s*\(",
    r"\bctx\.body\s*=(?!=)",
    r"\bHttpResponse\s*\(",
    r"\b(?:make_response|render_template_string)\s*\(",
    r"(?<![\w$.])Response\s*\(",
    r"\breturn\s+(?=f?[\"'][^\"'\n]{0,200}<[A-Za-z!/])",
    r"\becho\s+",
]

# DOM APIs that parse or execute strings.
DOM_SINKS: List[str] = [
    r"\.(?:innerHTML|outerHTML)\s*\+?=(?!=)",
    r"\bdocument\.write(?:ln)?\s*\(",
    r"\.insertAdjacentHTML\s*\(",
    r"(?<![\w$.])eval\s*\(",
    r"\bnew\s+Function\s*\(",
    r"\bset(?:Timeout|Interval)\s*\(",
    r"\.(?:html|append|prepend|before|after|replaceWith)\s*\(",
    r"\.createContextualFragment\s*\(",
]

# Navigation and redirects.
REDIRECT_SINKS: List[str] = [
    r"\b(?:res|response|reply|ctx)\.redirect\s*\(",
    r"(?<![\w$.])redirect\s*\(",
    r"\bHttpResponseRedirect\s*\(",
    r"\b(?:window\.|document\.)?location(?:\.href)?\s*=(?!=)",
    r"\blocation\.(?:assign|replace)\s*\(",
    r"\bwindow\.open\s*\(",
]

# Escaping and sanitizing calls for HTML contexts.
HTML_SANITIZERS: List[str] = [
    r"\bescape(?:Html|HTML|_html|Xml|Attribute|Attr)?\s*\(",
    r"\b(?:html|he|validator|lodash|_|markupsafe|cgi|xss)\.(?:escape|encode|filterXSS)\s*\(",
    r"\bDOMPurify\.sanitize\s*\(",
    r"\bsanitize(?:Html|HTML|_html)?\s*\(",
    r"\bbleach\.clean\s*\(",
    r"\bfilterXSS\s*\(",
    r"\bencodeURIComponent\s*\(",
    r"\bencodeForHTML\s*\(",
    r"\bhtmlspecialchars\s*\(",
    r"\bhtmlentities\s*\(",
    r"\bconditional_escape\s*\(",
    r"\bstrip_tags\s*\(",
]

# Checks that pin a redirect target to trusted destinations.
URL_VALIDATORS: List[str] = [
    r"\bis(?:Safe|Valid|Allowed|Trusted|Local|Relative)\w*\s*\(",
    r"\bis_(?:safe|valid|allowed|local)\w*\s*\(",
    r"\burl_has_allowed_host_and_scheme\s*\(",
    r"\bALLOWED_\w+",
    r"\ballow(?:ed)?[_-]?(?:list|hosts|urls|domains)\b",
    r"\b(?:allowList|allowedHosts|allowedUrls|allowedDomains|whitelist)\b",
    r"\.startsWith\s*\(\s*['\"]/['\"]",
    r"\.startswith\s*\(\s*['\"]/['\"]",
    r"\bencodeURIComponent\s*\(",
]

# Authentication and authorization guards.
OWNERSHIP_CHECKS: List[str] = [
    r"\breq\.user\b",
    r"\brequest\.user\b",
    r"\bcurrent_user\b",
    r"\bg\.user\b",
    r"\b(?:ownerId|owner_id|userId|user_id|tenantId|tenant_id)\b",
    r"\bauthori[sz]e\w*\s*\(",
    r"\.can\s*\(",
    r"\b(?:checkOwnership|isOwner|is_owner|has_permission|hasPermission|permission_required)\b",
]

RATE_LIMITERS: List[str] = [
    r"rate[-_]?limit",
    r"limiter\b",
    r"slow[-_]?down",
    r"express-brute",
    r"throttl",
    r"flask_limiter",
    r"@limits\b",
    r"rate-limiter-flexible",
]

CSP_PROVIDERS: List[str] = [
    r"helmet",
    r"content-security-policy",
    r"contentsecuritypolicy",
    r"talisman",
    r"\bcsp",
]

SERVER_BOOTSTRAP: List[str] = [
    r"\bexpress\s*\(\s*\)",
    r"\bhttp\.createServer\s*\(",
    r"\bFlask\s*\(\s*__name__",
    r"\bfastify\s*\(",
    r"\bnew\s+Koa\s*\(",
    r"\bFastAPI\s*\(",
]

PATTERN_GROUPS: Dict[str, List[str]] = {
    "request_sources": REQUEST_SOURCES,
    "browser_sources": BROWSER_SOURCES,
    "datastore_sources": DATASTORE_SOURCES,
    "response_sinks": RESPONSE_SINKS,
    "dom_sinks": DOM_SINKS,
    "redirect_sinks": REDIRECT_SINKS,
    "html_sanitizers": HTML_SANITIZERS,
    "url_validators": URL_VALIDATORS,
    "ownership_checks": OWNERSHIP_CHECKS,
    "rate_limiters": RATE_LIMITERS,
    "csp_providers": CSP_PROVIDERS,
    "server_bootstrap": SERVER_BOOTSTRAP,
}


def expand_patterns(value: str | List[str]) -> List[str]:
    """Resolve ``@group`` references; plain entries are kept as regexes."""
    items = [value] if isinstance(value, str) else list(value)
    expanded: List[str] = []
    for item in items:
        if not isinstance(item, str):
            raise ValueError(f"Pattern entries must be strings, got {type(item).__name__}")
        if item.startswith("@"):
            group = PATTERN_GROUPS.get(item[1:])
            if group is None:
                raise ValueError(f"Unknown pattern group: {item}")
            expanded.extend(group)
        else:
            expanded.append(item)
    return expanded
