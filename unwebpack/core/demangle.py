"""Passes reversing minifier micro-patterns.

Each pass is one bottom-up traversal; a replaced node is never revisited,
so running a pass twice leaves the tree as running it once.
"""

from dataclasses import dataclass
from typing import Any, Optional

from esprima import nodes

from unwebpack.core.scope import ScopeAnalysis
from unwebpack.core.traverse import NodeTransformer

EQUALITY_OPERATORS = frozenset({"==", "===", "!=", "!=="})


def is_numeric_literal(node: Any, value: Optional[int] = None) -> bool:
    """Check for a number literal, optionally with an exact value."""
    if getattr(node, "type", None) != "Literal":
        return False
    literal = node.value
    if isinstance(literal, bool) or not isinstance(literal, (int, float)):
        return False
    return value is None or literal == value


def is_void_zero(node: Any) -> bool:
    return (
        getattr(node, "type", None) == "UnaryExpression"
        and node.operator == "void"
        and is_numeric_literal(node.argument, 0)
    )


def is_undefined_identifier(node: Any) -> bool:
    return getattr(node, "type", None) == "Identifier" and node.name == "undefined"


def is_constant_operand(node: Any) -> bool:
    """Literal-like operand that reads better on the right of a comparison."""
    node_type = getattr(node, "type", None)
    return node_type in ("Literal", "TemplateLiteral") or is_undefined_identifier(node)


class BooleanLiteralPass(NodeTransformer):
    """``!0`` to ``true`` and ``!1`` to ``false``."""

    def visit_UnaryExpression(self, node):
        if node.operator != "!":
            return node
        if is_numeric_literal(node.argument, 0):
            return nodes.Literal(True, "true")
        if is_numeric_literal(node.argument, 1):
            return nodes.Literal(False, "false")
        return node


class VoidZeroPass(NodeTransformer):
    """``void 0`` to ``undefined``, in comparisons and everywhere else."""

    def visit_UnaryExpression(self, node):
        if is_void_zero(node):
            return nodes.Identifier("undefined")
        return node


class YodaConditionPass(NodeTransformer):
    """``0 === x`` to ``x === 0`` for the equality operators."""

    def visit_BinaryExpression(self, node):
        if node.operator not in EQUALITY_OPERATORS:
            return node
        right_type = getattr(node.right, "type", None)
        if (
            is_constant_operand(node.left)
            and right_type in ("Identifier", "MemberExpression")
            and not is_undefined_identifier(node.right)
        ):
            # Swapped in place: operand nodes keep their identity
            node.left, node.right = node.right, node.left
            self.changes += 1
        return node


@dataclass
class DemangleStats:
    """Replacements made by each pass."""
    booleans: int = 0
    void_zero: int = 0
    yoda: int = 0

    @property
    def total(self) -> int:
        return self.booleans + self.void_zero + self.yoda


def _shadows_undefined(function_node: Any, analysis: Optional[ScopeAnalysis]) -> bool:
    if analysis is None:
        return False
    scope = analysis.scope_for(function_node)
    if scope is None:
        return False
    return any(
        "undefined" in inner.bindings
        for outer in scope.ancestors()
        for inner in ([outer] if outer is not scope else outer.iter_scopes())
    )


def demangle(function_node: Any, analysis: Optional[ScopeAnalysis] = None) -> DemangleStats:
    """Run every demangling pass over one module function, in place.

    When ``analysis`` shows a binding named ``undefined`` in or around the
    function, ``void 0`` is kept: the bare name would not mean the same.
    """
    stats = DemangleStats()

    booleans = BooleanLiteralPass()
    booleans.transform(function_node)
    stats.booleans = booleans.changes

    if not _shadows_undefined(function_node, analysis):
        void_zero = VoidZeroPass()
        void_zero.transform(function_node)
        stats.void_zero = void_zero.changes

    yoda = YodaConditionPass()
    yoda.transform(function_node)
    stats.yoda = yoda.changes

    return stats
