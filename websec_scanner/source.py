"""
Lightweight source tokenizer used by the matchers.

``SourceText`` keeps three aligned views of a file:

- ``text``: the original content,
- ``code``: comments blanked out, string literals intact,
- ``structure``: comments, string bodies and JS regex literal bodies blanked
  out (quotes, slashes and template interpolations are kept), used for
  bracket matching and identifier lookups.

All views have the same length and line layout, so offsets found in one view
are valid in the others. On top of that the tokenizer builds a block tree
(braces for C-like languages, indentation for Python) and a flat list of
statements in file order.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import List, Optional, Tuple

from .errors import ScanError

LANGUAGE_BY_SUFFIX = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".py": "python",
    ".php": "php",
    ".html": "template",
    ".htm": "template",
    ".ejs": "template",
    ".hbs": "template",
    ".handlebars": "template",
    ".mustache": "template",
    ".jinja": "template",
    ".jinja2": "template",
    ".j2": "template",
    ".njk": "template",
    ".pug": "template",
    ".jade": "template",
    ".vue": "template",
    ".svelte": "template",
}

BRACE_LANGUAGES = {"javascript", "typescript", "php"}

_LINE_COMMENTS = {
    "javascript": ("//",),
    "typescript": ("//",),
    "php": ("//", "#"),
    "python": ("#",),
}

_QUOTES = {
    "javascript": "'\"`",
    "typescript": "'\"`",
    "php": "'\"",
    "python": "'\"",
}

# A `{` preceded by one of these opens an object literal or a destructuring
# pattern, not a block.
_OBJECT_PRECEDERS = set("=(,:[?!&|+")
_OBJECT_KEYWORDS = {"return", "const", "let", "var", "yield", "await", "typeof", "in", "of", "case"}

# A `/` after one of these starts a regex literal rather than a division.
_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%~^")
_REGEX_KEYWORDS = {"return", "typeof", "case", "in", "of", "yield", "await", "void", "delete", "instanceof"}

MAX_SNIPPET_LINES = 5


def detect_language(path: str) -> str:
    return LANGUAGE_BY_SUFFIX.get(PurePath(path).suffix.lower(), "other")


@dataclass
class Block:
    start: int
    end: int
    parent: Optional["Block"] = None
    children: List["Block"] = field(default_factory=list)
    _child_starts: List[int] = field(default_factory=list, repr=False, compare=False)

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def add_child(self, child: "Block") -> None:
        # Children are opened in file order and never overlap.
        self.children.append(child)
        self._child_starts.append(child.start)

    def child_at(self, offset: int) -> Optional["Block"]:
        index = bisect.bisect_right(self._child_starts, offset) - 1
        if index >= 0 and self.children[index].contains(offset):
            return self.children[index]
        return None


@dataclass(frozen=True)
class Statement:
    start: int
    end: int


class SourceText:
    def __init__(self, text: str, path: str = "<memory>", language: str | None = None) -> None:
        if "\x00" in text:
            raise ScanError("input looks like binary content (NUL byte found)", file_path=path)
        self.path = path
        self.text = text
        self.language = language or detect_language(path)
        self.code, self.structure = _lex(text, self.language)
        self._line_starts = [0]
        for index, char in enumerate(text):
            if char == "\n":
                self._line_starts.append(index + 1)
        self.lines = text.split("\n")
        if self.language in BRACE_LANGUAGES:
            self.root, self.statements = _brace_layout(self.structure)
        elif self.language == "python":
            self.root, self.statements = _indent_layout(self.structure)
        else:
            self.root, self.statements = _line_layout(self.structure)
        self._statement_starts = [s.start for s in self.statements]

    @property
    def suffix(self) -> str:
        return PurePath(self.path).suffix.lower()

    def line_of(self, offset: int) -> int:
        """1-based line number of a character offset."""
        return bisect.bisect_right(self._line_starts, offset)

    def line_start(self, offset: int) -> int:
        return self._line_starts[self.line_of(offset) - 1]

    def line_span(self, start: int, end: int) -> Tuple[int, int]:
        """Line range covered by the half-open offset range ``[start, end)``."""
        last = max(start, end - 1)
        return self.line_of(start), self.line_of(last)

    def code_region(self, start_line: int, end_line: int) -> str:
        start = self._line_starts[start_line - 1]
        end = self._line_starts[end_line] - 1 if end_line < len(self._line_starts) else len(self.code)
        return self.code[start:end]

    def snippet(self, start_line: int, end_line: int) -> str:
        selected = self.lines[start_line - 1 : end_line]
        if len(selected) > MAX_SNIPPET_LINES:
            selected = selected[:MAX_SNIPPET_LINES] + ["..."]
        return "\n".join(line.strip() for line in selected)

    def in_string(self, offset: int) -> bool:
        return self.structure[offset] != self.code[offset]

    def block_at(self, offset: int) -> Block:
        block = self.root
        while True:
            inner = block.child_at(offset)
            if inner is None:
                return block
            block = inner

    def statement_at(self, offset: int) -> Optional[Statement]:
        index = bisect.bisect_right(self._statement_starts, offset) - 1
        if index < 0:
            return None
        statement = self.statements[index]
        if statement.start <= offset < statement.end:
            return statement
        return None

    def matching_close(self, open_index: int) -> int:
        """Index of the bracket closing the one at ``open_index`` (or end of text)."""
        depth = 0
        for index in range(open_index, len(self.structure)):
            char = self.structure[index]
            if char in "([{":
                depth += 1
            elif char in ")]}":
                depth -= 1
                if depth == 0:
                    return index
        return len(self.structure)


def _blank(chars: List[str], start: int, end: int) -> None:
    for index in range(start, end):
        if chars[index] != "\n":
            chars[index] = " "


def _lex(text: str, language: str) -> Tuple[str, str]:
    if language not in _LINE_COMMENTS:
        return text, text

    code = list(text)
    structure = list(text)
    line_comments = _LINE_COMMENTS[language]
    quotes = _QUOTES[language]
    block_comments = language != "python"
    regex_literals = language in ("javascript", "typescript")
    length = len(text)
    index = 0
    while index < length:
        char = text[index]
        if block_comments and text.startswith("/*", index):
            end = text.find("*/", index + 2)
            end = length if end == -1 else end + 2
            _blank(code, index, end)
            _blank(structure, index, end)
            index = end
            continue
        if any(text.startswith(marker, index) for marker in line_comments):
            end = text.find("\n", index)
            end = length if end == -1 else end
            _blank(code, index, end)
            _blank(structure, index, end)
            index = end
            continue
        if (
            char == "/"
            and regex_literals
            and not text.startswith("/>", index)
            and _starts_regex(structure, index)
        ):
            index = _lex_regex(text, structure, index)
            continue
        if char in quotes:
            index = _lex_string(text, structure, index, language)
            continue
        index += 1
    return "".join(code), "".join(structure)


def _lex_string(text: str, structure: List[str], start: int, language: str) -> int:
    """Blank a string body in ``structure``; return the offset after the string."""
    quote = text[start]
    if language == "python" and text[start : start + 3] in ('"""', "'''"):
        quote = text[start : start + 3]
    interpolation = None
    if quote == "`":
        interpolation = "${"
    elif language == "python" and start > 0 and text[start - 1] in "fF":
        interpolation = "{"

    length = len(text)
    body_start = index = start + len(quote)
    while index < length:
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if text.startswith(quote, index):
            _blank_string_body(text, structure, body_start, index, interpolation)
            return index + len(quote)
        if char == "\n" and len(quote) == 1 and quote != "`":
            break
        index += 1
    end = min(index, length)
    _blank_string_body(text, structure, body_start, end, interpolation)
    return end


def _starts_regex(structure: List[str], index: int) -> bool:
    cursor = index - 1
    while cursor >= 0 and structure[cursor] in " \t\r\n":
        cursor -= 1
    if cursor < 0 or structure[cursor] in _REGEX_PRECEDERS:
        return True
    word_end = cursor + 1
    while cursor >= 0 and (structure[cursor].isalnum() or structure[cursor] in "_$"):
        cursor -= 1
    return "".join(structure[cursor + 1 : word_end]) in _REGEX_KEYWORDS


def _lex_regex(text: str, structure: List[str], start: int) -> int:
    """Blank a regex literal body in ``structure``; return the offset after it.

    A slash with no closing slash on the same line is left as an operator.
    """
    length = len(text)
    index = start + 1
    in_class = False
    while index < length:
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == "\n":
            break
        if char == "[":
            in_class = True
        elif char == "]":
            in_class = False
        elif char == "/" and not in_class:
            _blank(structure, start + 1, index)
            index += 1
            while index < length and text[index].isalpha():
                index += 1
            return index
        index += 1
    return start + 1


def _blank_string_body(
    text: str, structure: List[str], start: int, end: int, interpolation: str | None
) -> None:
    if not interpolation:
        _blank(structure, start, end)
        return
    index = start
    while index < end:
        opener = text.find(interpolation, index, end)
        if opener == -1:
            _blank(structure, index, end)
            return
        if interpolation == "{" and text.startswith("{{", opener):
            _blank(structure, index, opener + 2)
            index = opener + 2
            continue
        inner_start = opener + len(interpolation)
        depth = 1
        cursor = inner_start
        while cursor < end and depth:
            if text[cursor] == "{":
                depth += 1
            elif text[cursor] == "}":
                depth -= 1
            cursor += 1
        inner_end = cursor - 1 if depth == 0 else end
        # Keep the interpolated expression, blank the literal text and delimiters.
        _blank(structure, index, inner_start)
        if inner_end < end:
            _blank(structure, inner_end, inner_end + 1)
        index = inner_end + 1


def _is_block_brace(structure: str, index: int) -> bool:
    cursor = index - 1
    while cursor >= 0 and structure[cursor] in " \t\r\n":
        cursor -= 1
    if cursor < 0:
        return True
    if structure[cursor] in _OBJECT_PRECEDERS:
        return False
    word_end = cursor + 1
    while cursor >= 0 and (structure[cursor].isalnum() or structure[cursor] in "_$"):
        cursor -= 1
    return structure[cursor + 1 : word_end] not in _OBJECT_KEYWORDS


class _StatementSplitter:
    def __init__(self, structure: str) -> None:
        self.structure = structure
        self.statements: List[Statement] = []
        self._start: Optional[int] = None

    def mark(self, index: int) -> None:
        if self._start is None and not self.structure[index].isspace():
            self._start = index

    def cut(self, index: int) -> None:
        if self._start is not None:
            end = index
            while end > self._start and self.structure[end - 1].isspace():
                end -= 1
            self.statements.append(Statement(self._start, end))
        self._start = None


def _brace_layout(structure: str) -> Tuple[Block, List[Statement]]:
    root = Block(start=0, end=len(structure) + 1)
    current = root
    splitter = _StatementSplitter(structure)
    depths = [0]
    kinds: List[str] = []
    for index, char in enumerate(structure):
        if char in "([":
            splitter.mark(index)
            depths[-1] += 1
        elif char in ")]":
            splitter.mark(index)
            depths[-1] = max(0, depths[-1] - 1)
        elif char == "{":
            if _is_block_brace(structure, index):
                splitter.cut(index)
                kinds.append("block")
                depths.append(0)
                block = Block(start=index, end=len(structure), parent=current)
                current.add_child(block)
                current = block
            else:
                splitter.mark(index)
                kinds.append("object")
                depths[-1] += 1
        elif char == "}":
            kind = kinds.pop() if kinds else "block"
            if kind == "block":
                splitter.cut(index)
                if len(depths) > 1:
                    depths.pop()
                if current.parent is not None:
                    current.end = index + 1
                    current = current.parent
            else:
                splitter.mark(index)
                depths[-1] = max(0, depths[-1] - 1)
        elif char == ";" and depths[-1] == 0:
            splitter.cut(index)
        elif char == "\n" and depths[-1] == 0:
            splitter.cut(index)
        else:
            splitter.mark(index)
    splitter.cut(len(structure))
    return root, splitter.statements


def _indent_layout(structure: str) -> Tuple[Block, List[Statement]]:
    root = Block(start=0, end=len(structure) + 1)
    stack: List[Tuple[int, Block]] = [(0, root)]
    splitter = _StatementSplitter(structure)
    depth = 0
    offset = 0
    for line in structure.split("\n"):
        stripped = line.strip()
        if stripped and depth == 0:
            indent = len(line) - len(line.lstrip(" \t"))
            while len(stack) > 1 and indent < stack[-1][0]:
                _, closed = stack.pop()
                closed.end = offset
            if indent > stack[-1][0]:
                parent = stack[-1][1]
                block = Block(start=offset, end=len(structure), parent=parent)
                parent.add_child(block)
                stack.append((indent, block))
        for column, char in enumerate(line):
            index = offset + column
            if char in "([{":
                depth += 1
            elif char in ")]}":
                depth = max(0, depth - 1)
            if char == ";" and depth == 0:
                splitter.cut(index)
            else:
                splitter.mark(index)
        line_end = offset + len(line)
        if depth == 0 and line_end < len(structure):
            splitter.cut(line_end)
        offset = line_end + 1
    splitter.cut(len(structure))
    return root, splitter.statements


def _line_layout(structure: str) -> Tuple[Block, List[Statement]]:
    root = Block(start=0, end=len(structure) + 1)
    splitter = _StatementSplitter(structure)
    for index, char in enumerate(structure):
        if char == "\n":
            splitter.cut(index)
        else:
            splitter.mark(index)
    splitter.cut(len(structure))
    return root, splitter.statements
