"""
Source loader: expands scan inputs into files and reads them as text.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence

from ..errors import ScanError
from ..source import LANGUAGE_BY_SUFFIX

SCANNABLE_EXTENSIONS = frozenset(LANGUAGE_BY_SUFFIX)

EXCLUDED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".tox",
        ".venv",
        "venv",
        "__pycache__",
        "node_modules",
        "bower_components",
        "vendor",
        "dist",
        "build",
        "coverage",
        "site-packages",
    }
)


@dataclass(frozen=True)
class SourceUnit:
    """One file to scan. ``text`` is None until read from disk."""

    path: str
    text: str | None = None

    def read(self) -> str:
        if self.text is not None:
            return self.text
        return read_source(self.path)


def read_source(path: str | Path) -> str:
    try:
        with open(path, "r", encoding="utf-8", errors="strict") as handle:
            return handle.read()
    except UnicodeDecodeError as exc:
        raise ScanError(f"not valid UTF-8: {exc.reason}", file_path=str(path)) from exc
    except OSError as exc:
        raise ScanError(f"cannot read file: {exc.strerror or exc}", file_path=str(path)) from exc


def _walk(root: Path, extensions: frozenset, excluded: frozenset) -> Iterable[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        for filename in sorted(filenames):
            if Path(filename).suffix.lower() in extensions:
                yield Path(dirpath) / filename


def collect_sources(
    inputs: Sequence[str | Path] | Mapping[str, str],
    *,
    extensions: Iterable[str] | None = None,
    exclude_dirs: Iterable[str] = (),
) -> List[SourceUnit]:
    """Expand inputs into scan units, sorted by path and without duplicates.

    A mapping is taken as already-loaded ``path -> text``. Explicit file paths
    are kept even when their extension is not scannable; missing paths are
    kept too so the failure is reported when the unit is read.
    """
    if isinstance(inputs, Mapping):
        return [SourceUnit(path=str(path), text=text) for path, text in sorted(inputs.items())]

    allowed = frozenset(extensions) if extensions else SCANNABLE_EXTENSIONS
    excluded = EXCLUDED_DIRS | frozenset(exclude_dirs)
    paths = set()
    for item in inputs:
        path = Path(item)
        if path.is_dir():
            paths.update(str(found) for found in _walk(path, allowed, excluded))
        else:
            paths.add(str(path))
    return [SourceUnit(path=path) for path in sorted(paths)]
