from __future__ import annotations

from typing import Iterable, List

import pytest

from websec_scanner.core_types import Finding
from websec_scanner.engine import scan
from websec_scanner.errors import ScanError
from websec_scanner.rules.loader import load_rules, parse_rule
from websec_scanner.settings import Category, SeverityLevel
from websec_scanner.source import SourceText
from websec_scanner.taint import Flow, TaintAnalyzer, TaintSpec

RULES = load_rules()


def _scan(text: str, path: str = "app.js") -> List[Finding]:
    return scan(text, RULES, path=path)


def _ids(findings: Iterable[Finding]) -> List[str]:
    return sorted(f.rule_id for f in findings)


def test_reflected_xss_in_one_line_handler() -> None:
    findings = _scan(
        "app.get('/search', (req,res) => res.send('<h1>'+req.query.q+'</h1>'))\n"
    )

    reflected = [f for f in findings if f.rule_id == "xss-reflected"]
    assert len(reflected) == 1
    assert reflected[0].severity is SeverityLevel.HIGH
    assert reflected[0].category is Category.XSS_REFLECTED
    assert reflected[0].start_line == 1
    assert reflected[0].file_path == "app.js"
    assert "req.query.q" in reflected[0].snippet


def test_hardcoded_credentials_in_login_handler() -> None:
    findings = _scan(
        "app.post('/api/login', (req,res)=>{ if (u==='admin'&&p==='password123') "
        "res.send('ok'); })\n"
    )

    auth = [f for f in findings if f.rule_id == "broken-auth"]
    assert len(auth) == 1
    assert auth[0].severity is SeverityLevel.CRITICAL
    assert "rate-limiting" in _ids(findings)


def test_escaped_output_is_not_reported() -> None:
    escaped = (
        "app.get('/search', (req, res) => {\n"
        "  const query = req.query.q;\n"
        "  res.send('<h1>' + escapeHtml(query) + '</h1>');\n"
        "});\n"
    )
    raw = escaped.replace("escapeHtml(query)", "query")

    assert "xss-reflected" not in _ids(_scan(escaped))
    reflected = [f for f in _scan(raw) if f.rule_id == "xss-reflected"]
    assert [f.start_line for f in reflected] == [3]
    assert "`query` from line 2" in reflected[0].message


def test_python_fstring_response() -> None:
    text = (
        "@app.route('/hello')\n"
        "def hello():\n"
        "    name = request.args.get('name')\n"
        "    return f\"<h1>Hello {name}</h1>\"\n"
    )

    reflected = [f for f in _scan(text, path="views.py") if f.rule_id == "xss-reflected"]

    assert [f.start_line for f in reflected] == [4]


def test_dom_and_stored_xss() -> None:
    dom = "document.getElementById('out').innerHTML = location.hash;\n"
    stored = (
        "app.get('/comments', async (req, res) => {\n"
        "  const comments = await Comment.find({});\n"
        "  res.send('<div>' + comments.join('') + '</div>');\n"
        "});\n"
    )

    assert "xss-dom" in _ids(_scan(dom))
    assert "xss-stored" in _ids(_scan(stored))


@pytest.mark.parametrize(
    "text, path, rule_id",
    [
        ("<div dangerouslySetInnerHTML={{ __html: post.body }} />\n", "Post.jsx", "xss-framework"),
        ("app.use(cors());\n", "app.js", "security-misconfig"),
        ("DEBUG = True\n", "settings.py", "security-misconfig"),
        ("const user = await User.create(req.body);\n", "app.js", "mass-assignment"),
        ("<%- user.bio %>\n", "profile.ejs", "xss-template"),
        ("<a href=\"javascript:void(0)\">x</a>\n", "index.html", "xss-url"),
        ("res.redirect(req.query.next);\n", "app.js", "xss-url"),
        ("<img src=x onerror=\"load('${id}')\">\n", "index.html", "xss-attribute"),
        ("<script>var data = JSON.stringify(state);</script>\n", "page.html", "xss-json"),
        ("const token = jwt.sign(payload, 'secret');\n", "auth.js", "broken-auth"),
    ],
)
def test_anti_patterns_are_flagged(text: str, path: str, rule_id: str) -> None:
    assert rule_id in _ids(_scan(text, path=path))


def test_sanitized_framework_html_is_not_flagged() -> None:
    text = "<div dangerouslySetInnerHTML={{ __html: DOMPurify.sanitize(post.body) }} />\n"

    assert "xss-framework" not in _ids(_scan(text, path="Post.jsx"))


def test_missing_safeguards() -> None:
    bare = (
        "const app = express();\n"
        "app.post('/login', (req, res) => res.sendStatus(200));\n"
    )
    guarded = (
        "const helmet = require('helmet');\n"
        "const rateLimit = require('express-rate-limit');\n"
        + bare
        + "app.use(helmet());\n"
    )

    assert {"csp-missing", "rate-limiting"} <= set(_ids(_scan(bare)))
    assert not {"csp-missing", "rate-limiting"} & set(_ids(_scan(guarded)))


def test_object_lookup_without_ownership_check() -> None:
    handler = (
        "app.get('/orders/:id', async (req, res) => {\n"
        "  const order = await Order.findById(req.params.id);\n"
        "{check}"
        "  res.json(order);\n"
        "});\n"
    )
    unchecked = handler.replace("{check}", "")
    checked = handler.replace(
        "{check}", "  if (order.ownerId !== req.user.id) return res.sendStatus(403);\n"
    )

    assert "broken-authz" in _ids(_scan(unchecked))
    assert "broken-authz" not in _ids(_scan(checked))


def test_first_matcher_claims_a_line() -> None:
    rule = parse_rule(
        {
            "id": "two-matchers",
            "title": "Two matchers",
            "category": "misconfig",
            "severity": "low",
            "remediation": "n/a",
            "matchers": [
                {"kind": "regex", "pattern": "debug", "message": "first"},
                {"kind": "regex", "pattern": "DEBUG", "ignore_case": True, "message": "second"},
            ],
        }
    )

    findings = scan("debug = 1\nDEBUG = 2\n", [rule], path="conf.py")

    assert [(f.start_line, f.message) for f in findings] == [(1, "first"), (2, "second")]


def test_clean_file_has_no_findings() -> None:
    assert _scan("export const add = (a, b) => a + b;\n") == []


def test_binary_input_raises_scan_error() -> None:
    with pytest.raises(ScanError):
        _scan("\x00\x01\x02")


class _FixedAnalyzer(TaintAnalyzer):
    def flows(self, source: SourceText, spec: TaintSpec) -> Iterable[Flow]:
        yield Flow(start_line=2, end_line=2, source_line=1, variable=None)


def test_pluggable_taint_analyzer() -> None:
    rules = [RULES.get("xss-reflected")]

    findings = scan("a = 1;\nb = 2;\n", rules, path="app.js", taint_analyzer=_FixedAnalyzer())

    assert [(f.rule_id, f.start_line) for f in findings] == [("xss-reflected", 2)]


def test_repeated_handlers_each_report_their_own_sink() -> None:
    handler = (
        "app.get('/search', (req, res) => {\n"
        "  const query = req.query.q;\n"
        "  res.send('<h1>' + query + '</h1>');\n"
        "});\n"
    )
    findings = _scan(handler * 600)

    reflected = [f for f in findings if f.rule_id == "xss-reflected"]
    assert [f.start_line for f in reflected] == [3 + 4 * i for i in range(600)]
