"""JavaScript parsing using esprima."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import esprima

# Cheap textual markers for bundles produced by webpack runtimes
_BUNDLE_MARKERS = (
    "webpackJsonp",
    "webpackChunk",
    "__webpack_require__",
    ".push([[",
)


class JavaScriptParseError(ValueError):
    """Raised when esprima rejects the source."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


@dataclass
class Position:
    """Position in source code."""
    row: int
    column: int

    def __lt__(self, other: "Position") -> bool:
        if self.row != other.row:
            return self.row < other.row
        return self.column < other.column

    def __le__(self, other: "Position") -> bool:
        return self == other or self < other


@dataclass
class Range:
    """Range in source code."""
    start: Position
    end: Position

    def contains(self, other: "Range") -> bool:
        """Check if this range completely contains another range."""
        return self.start <= other.start and self.end >= other.end


def parse_javascript(source_code: str, module: bool = False, path: Optional[Path] = None) -> Any:
    """Parse JavaScript code into an esprima syntax tree.

    Bundles are scripts, so script grammar is tried first. Module grammar
    is used when requested or when the script parse fails (for files that
    contain ``import``/``export`` declarations).

    esprima implements ECMAScript 2017. Later syntax such as optional
    chaining, nullish coalescing, optional catch bindings, class fields,
    BigInt literals and logical assignment is rejected, so webpack 5
    output built for modern targets raises here.

    Args:
        source_code: The JavaScript source code to parse
        module: Parse with module grammar first
        path: Optional path, used in error messages

    Returns:
        The esprima ``Program`` node

    Raises:
        JavaScriptParseError: If neither grammar accepts the source
    """
    options = {"loc": True}
    parsers = (esprima.parseModule, esprima.parseScript) if module else (esprima.parseScript, esprima.parseModule)

    first_error: Optional[Exception] = None
    for parse in parsers:
        try:
            return parse(source_code, options)
        except Exception as e:
            if first_error is None:
                first_error = e

    raise JavaScriptParseError(str(first_error), path) from first_error


def parse_file(file_path: Path, module: bool = False) -> Any:
    """Parse a JavaScript file.

    Args:
        file_path: Path to the JavaScript file
        module: Parse with module grammar first

    Returns:
        The esprima ``Program`` node
    """
    source_code = file_path.read_text(encoding="utf-8")
    return parse_javascript(source_code, module=module, path=file_path)


def node_range(node: Any) -> Optional[Range]:
    """Convert an esprima ``loc`` into a Range (0-indexed rows)."""
    loc = getattr(node, "loc", None)
    if loc is None or getattr(loc, "start", None) is None:
        return None
    return Range(
        start=Position(row=loc.start.line - 1, column=loc.start.column),
        end=Position(row=loc.end.line - 1, column=loc.end.column),
    )


def looks_like_bundle(source_code: str) -> bool:
    """Check whether the text carries any webpack runtime marker."""
    return any(marker in source_code for marker in _BUNDLE_MARKERS)
