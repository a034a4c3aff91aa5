from __future__ import annotations

import pytest

from websec_scanner.errors import ScanError
from websec_scanner.source import SourceText, detect_language


@pytest.mark.parametrize(
    "path, language",
    [
        ("server.js", "javascript"),
        ("App.TSX", "typescript"),
        ("views.py", "python"),
        ("index.php", "php"),
        ("page.ejs", "template"),
        ("README.md", "other"),
    ],
)
def test_detect_language_by_suffix(path: str, language: str) -> None:
    assert detect_language(path) == language


def test_binary_content_is_rejected() -> None:
    with pytest.raises(ScanError) as excinfo:
        SourceText("abc\x00def", path="blob.js")

    assert excinfo.value.file_path == "blob.js"


def test_views_share_length_and_line_layout() -> None:
    text = "const a = 'x'; // req.query\n/* block\ncomment */ let b = `y`;\n"
    source = SourceText(text, path="app.js")

    assert len(source.code) == len(source.structure) == len(text)
    assert source.code.count("\n") == text.count("\n")


def test_comments_are_blanked_but_strings_kept_in_code() -> None:
    source = SourceText("const a = 'req.query'; // req.params\n", path="app.js")

    assert "req.params" not in source.code
    assert "'req.query'" in source.code
    assert "req.query" not in source.structure
    assert source.in_string(source.text.index("req.query"))
    assert not source.in_string(source.text.index("const"))


def test_template_interpolation_survives_in_structure() -> None:
    source = SourceText("el.innerHTML = `<b>${name}</b>`;\n", path="app.js")

    assert "name" in source.structure
    assert "<b>" not in source.structure


def test_python_fstring_interpolation_and_comments() -> None:
    source = SourceText('html = f"<p>{name}</p>"  # request.args\n', path="views.py")

    assert "name" in source.structure
    assert "<p>" not in source.structure
    assert "request.args" not in source.code


def test_brace_blocks_and_object_literals() -> None:
    text = "const o = { a: 1 };\nfunction f() {\n  return 1;\n}\n"
    source = SourceText(text, path="app.js")

    assert len(source.root.children) == 1
    inner = source.block_at(text.index("return"))
    assert inner.parent is source.root
    assert source.block_at(text.index("a: 1")) is source.root


def test_indentation_blocks_for_python() -> None:
    text = "def view():\n    x = 1\n    return x\n\ny = 2\n"
    source = SourceText(text, path="views.py")

    block = source.block_at(text.index("x = 1"))
    assert block.parent is source.root
    assert source.block_at(text.index("y = 2")) is source.root


def test_statements_split_on_semicolons_and_newlines() -> None:
    text = "a = 1; b = 2\nc = call(\n  x,\n  y)\n"
    source = SourceText(text, path="app.js")

    starts = [text[s.start : s.end] for s in source.statements]
    assert starts == ["a = 1", "b = 2", "c = call(\n  x,\n  y)"]


def test_snippet_is_truncated_after_five_lines() -> None:
    text = "\n".join(f"  line{i}" for i in range(1, 9))
    source = SourceText(text, path="app.js")

    snippet = source.snippet(1, 8)

    assert snippet.splitlines() == ["line1", "line2", "line3", "line4", "line5", "..."]


def test_matching_close_skips_nested_brackets_and_strings() -> None:
    text = "f(a, g(b), ')', [c])"
    source = SourceText(text, path="app.js")

    assert source.matching_close(1) == len(text) - 1


def test_line_span_of_a_multiline_match() -> None:
    text = "one\ntwo\nthree\n"
    source = SourceText(text, path="app.js")

    assert source.line_span(text.index("two"), text.index("three") + 5) == (2, 3)
    assert source.line_of(0) == 1


def test_block_lookup_across_many_sibling_blocks() -> None:
    text = "".join(f"function f{i}() {{\n  if (x) {{\n    y{i}();\n  }}\n}}\n" for i in range(500))
    source = SourceText(text, path="app.js")

    assert len(source.root.children) == 500
    offset = text.index("y499()")
    inner = source.block_at(offset)
    assert inner.parent is source.root.children[499]
    assert source.block_at(text.index("function f250")) is source.root


def test_regex_literal_with_quote_does_not_open_a_string() -> None:
    text = "const s = x.replace(/'/g, \"\");\nconst y = 1;\n"
    source = SourceText(text, path="app.js")

    assert source.code == text
    assert "'" not in source.structure
    assert [text[s.start : s.end] for s in source.statements] == [
        "const s = x.replace(/'/g, \"\")",
        "const y = 1",
    ]


def test_regex_literal_with_escaped_slashes_is_not_a_comment() -> None:
    text = "const re = /https?:\\/\\//;\nfunction f() {\n  return 1;\n}\n"
    source = SourceText(text, path="app.ts")

    assert source.code == text
    assert "https" not in source.structure
    assert len(source.root.children) == 1


def test_division_is_not_a_regex_literal() -> None:
    text = "const half = total / 2; const q = count / 4;\n"
    source = SourceText(text, path="app.js")

    assert source.structure == text


def test_jsx_closing_tags_are_not_regex_literals() -> None:
    text = "const el = <p>{a ? <b/> : c}</p>;\n"
    source = SourceText(text, path="view.tsx")

    assert source.structure == text


def test_self_closing_jsx_tags_keep_their_braces() -> None:
    text = "const row = <A x={1} /><B y={2} />;\n"
    source = SourceText(text, path="view.jsx")

    assert source.structure == text
