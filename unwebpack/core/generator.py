"""Code generation with escodegen and module file output."""

import re
from pathlib import Path
from typing import Any, Union

import escodegen
import esprima
from rich.console import Console

console = Console()

# Literals are printed from their source text; escodegen re-parses `raw` to
# check it before reusing it.
_GENERATE_OPTIONS = {
    "parse": esprima.parseScript,
    "format": {
        "indent": {"style": "  "},
        "quotes": "single",
    },
}

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_.\-]")


def generate_code(node: Any) -> str:
    """Generate JavaScript source for a syntax tree node.

    Args:
        node: Any esprima node (a whole program or a single function)

    Returns:
        Generated source code
    """
    return escodegen.generate(node, _GENERATE_OPTIONS)


def module_source(function_node: Any) -> str:
    """Source of an emitted module file: the wrapper as a default export."""
    return "export default " + generate_code(function_node)


def module_filename(prefix: str, module_id: Union[int, str]) -> str:
    """File name for a module id, e.g. ``mod_12.js``.

    Characters that are unsafe in file names are replaced with ``_``.
    """
    return f"{prefix}{_UNSAFE_FILENAME_RE.sub('_', str(module_id))}.js"


def save_output(
    code: str,
    output_path: Path,
    create_dirs: bool = True,
    only_if_changed: bool = True,
) -> bool:
    """Save code to file.

    Args:
        code: Source code to save
        output_path: Path to save to
        create_dirs: Whether to create parent directories
        only_if_changed: Leave the file untouched when it already holds ``code``

    Returns:
        True if the file was written
    """
    if only_if_changed and output_path.exists():
        try:
            if output_path.read_text(encoding="utf-8") == code:
                return False
        except (OSError, UnicodeDecodeError):
            pass

    if create_dirs:
        output_path.parent.mkdir(parents=True, exist_ok=True)

    output_path.write_text(code, encoding="utf-8")
    return True
