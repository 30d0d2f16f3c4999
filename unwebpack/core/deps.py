"""Dependency extraction from module functions."""

import re
from typing import Any, Optional

from unwebpack.core.parser import JavaScriptParseError, parse_javascript
from unwebpack.core.scope import ScopeAnalysis, analyze_scopes
from unwebpack.core.traverse import FUNCTION_TYPES, walk
from unwebpack.debug import debug_log


def _numeric_argument(node: Any) -> Optional[int]:
    if getattr(node, "type", None) != "Literal" or isinstance(node.value, bool):
        return None
    value = node.value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    return value if isinstance(value, int) else None


def extract_dependencies(function_node: Any, analysis: ScopeAnalysis) -> list[int]:
    """Module ids a module function requires, sorted and unique.

    A call counts when its callee resolves to the function's third
    parameter (a local of the same name does not) and its first argument
    is a number literal.
    """
    params = function_node.params
    if len(params) < 3 or params[2].type != "Identifier":
        return []
    require = analysis.binding_of(params[2])
    if require is None:
        return []

    found = set()
    for node in walk(function_node.body):
        if node.type != "CallExpression" or node.callee.type != "Identifier" or not node.arguments:
            continue
        if analysis.binding_of(node.callee) is not require:
            continue
        module_id = _numeric_argument(node.arguments[0])
        if module_id is not None:
            found.add(module_id)
    return sorted(found)


def find_module_function(program: Any) -> Optional[Any]:
    """First function in an emitted module file (``export default function ...``)."""
    for node in walk(program):
        if node.type in FUNCTION_TYPES:
            return node
    return None


def dependencies_from_source(code: str, require_name: str = "__webpack_require__") -> list[int]:
    """Re-extract dependencies from emitted module source.

    Falls back to a textual scan when the source does not parse.
    """
    try:
        program = parse_javascript(code, module=code.lstrip().startswith("export"))
    except JavaScriptParseError as e:
        debug_log("warning", "Module source did not parse, scanning text", {"error": str(e)})
        return scan_require_calls(code, require_name)

    function_node = find_module_function(program)
    if function_node is None:
        return []
    return extract_dependencies(function_node, analyze_scopes(program))


def scan_require_calls(code: str, require_name: str = "__webpack_require__") -> list[int]:
    """Textual ``require(<number>)`` scan, sorted and unique."""
    pattern = re.compile(r"(?<![\w$.])" + re.escape(require_name) + r"\(\s*(\d+)\s*\)")
    return sorted({int(match) for match in pattern.findall(code)})
