"""Traversal helpers for esprima (ESTree) syntax trees.

Child order follows the ESTree visitor keys, so every walk visits nodes in
source order. Walks are iterative: minified bundles routinely nest deeper
than the interpreter's recursion limit.
"""

from typing import Any, Iterator, Optional

# ESTree visitor keys, in source order
VISITOR_KEYS: dict[str, tuple[str, ...]] = {
    "ArrayExpression": ("elements",),
    "ArrayPattern": ("elements",),
    "ArrowFunctionExpression": ("params", "body"),
    "AssignmentExpression": ("left", "right"),
    "AssignmentPattern": ("left", "right"),
    "AwaitExpression": ("argument",),
    "BinaryExpression": ("left", "right"),
    "BlockStatement": ("body",),
    "BreakStatement": ("label",),
    "CallExpression": ("callee", "arguments"),
    "CatchClause": ("param", "body"),
    "ChainExpression": ("expression",),
    "ClassBody": ("body",),
    "ClassDeclaration": ("id", "superClass", "body"),
    "ClassExpression": ("id", "superClass", "body"),
    "ConditionalExpression": ("test", "consequent", "alternate"),
    "ContinueStatement": ("label",),
    "DebuggerStatement": (),
    "DoWhileStatement": ("body", "test"),
    "EmptyStatement": (),
    "ExportAllDeclaration": ("exported", "source"),
    "ExportDefaultDeclaration": ("declaration",),
    "ExportDefaultSpecifier": ("local",),
    "ExportNamedDeclaration": ("declaration", "specifiers", "source"),
    "ExportSpecifier": ("local", "exported"),
    "ExpressionStatement": ("expression",),
    "FieldDefinition": ("key", "value"),
    "ForInStatement": ("left", "right", "body"),
    "ForOfStatement": ("left", "right", "body"),
    "ForStatement": ("init", "test", "update", "body"),
    "FunctionDeclaration": ("id", "params", "body"),
    "FunctionExpression": ("id", "params", "body"),
    "Identifier": (),
    "IfStatement": ("test", "consequent", "alternate"),
    "Import": (),
    "ImportDeclaration": ("specifiers", "source"),
    "ImportDefaultSpecifier": ("local",),
    "ImportExpression": ("source",),
    "ImportNamespaceSpecifier": ("local",),
    "ImportSpecifier": ("imported", "local"),
    "LabeledStatement": ("label", "body"),
    "Literal": (),
    "LogicalExpression": ("left", "right"),
    "MemberExpression": ("object", "property"),
    "MetaProperty": ("meta", "property"),
    "MethodDefinition": ("key", "value"),
    "NewExpression": ("callee", "arguments"),
    "ObjectExpression": ("properties",),
    "ObjectPattern": ("properties",),
    "PrivateIdentifier": (),
    "Program": ("body",),
    "Property": ("key", "value"),
    "PropertyDefinition": ("key", "value"),
    "RestElement": ("argument",),
    "ReturnStatement": ("argument",),
    "SequenceExpression": ("expressions",),
    "SpreadElement": ("argument",),
    "StaticBlock": ("body",),
    "Super": (),
    "SwitchCase": ("test", "consequent"),
    "SwitchStatement": ("discriminant", "cases"),
    "TaggedTemplateExpression": ("tag", "quasi"),
    "TemplateElement": (),
    "TemplateLiteral": ("quasis", "expressions"),
    "ThisExpression": (),
    "ThrowStatement": ("argument",),
    "TryStatement": ("block", "handler", "finalizer"),
    "UnaryExpression": ("argument",),
    "UpdateExpression": ("argument",),
    "VariableDeclaration": ("declarations",),
    "VariableDeclarator": ("id", "init"),
    "WhileStatement": ("test", "body"),
    "WithStatement": ("object", "body"),
    "YieldExpression": ("argument",),
}

_NON_CHILD_FIELDS = frozenset({
    "type", "loc", "range", "leadingComments", "trailingComments", "innerComments",
})

FUNCTION_TYPES = frozenset({"FunctionDeclaration", "FunctionExpression", "ArrowFunctionExpression"})


def is_node(value: Any) -> bool:
    """Check if a value is a syntax tree node."""
    return isinstance(getattr(value, "type", None), str) and not isinstance(value, (str, dict))


def child_fields(node: Any) -> tuple[str, ...]:
    """Names of the fields of ``node`` that may hold child nodes."""
    keys = VISITOR_KEYS.get(node.type)
    if keys is not None:
        return keys
    # Node types newer than the table: fall back to the instance fields
    try:
        fields = vars(node)
    except TypeError:
        return ()
    return tuple(key for key in fields if key not in _NON_CHILD_FIELDS)


def iter_children(node: Any) -> Iterator[tuple[str, Optional[int], Any]]:
    """Yield ``(field, index, child)`` for every direct child, in source order.

    ``index`` is None for single-node fields and the list position for
    list fields (holes in array literals are skipped).
    """
    for field in child_fields(node):
        value = getattr(node, field, None)
        if isinstance(value, list):
            for index, item in enumerate(value):
                if is_node(item):
                    yield field, index, item
        elif is_node(value):
            yield field, None, value


def walk_with_parents(root: Any) -> Iterator[tuple[Any, Optional[Any], Optional[str], Optional[int]]]:
    """Pre-order walk yielding ``(node, parent, field, index)``."""
    stack: list[tuple[Any, Optional[Any], Optional[str], Optional[int]]] = [(root, None, None, None)]
    while stack:
        node, parent, field, index = stack.pop()
        yield node, parent, field, index
        children = [(child, node, f, i) for f, i, child in iter_children(node)]
        stack.extend(reversed(children))


def walk(root: Any) -> Iterator[Any]:
    """Pre-order walk over ``root`` and all of its descendants."""
    for node, _parent, _field, _index in walk_with_parents(root):
        yield node


def replace_child(parent: Any, field: str, index: Optional[int], new_node: Any) -> None:
    """Put ``new_node`` where the child at ``field``/``index`` was."""
    if index is None:
        setattr(parent, field, new_node)
    else:
        getattr(parent, field)[index] = new_node


class NodeTransformer:
    """Single bottom-up pass replacing nodes.

    Subclasses define ``visit_<NodeType>`` methods that return either the
    node unchanged or a replacement. Children are always visited before
    their parent; replacements are not visited again.
    """

    def __init__(self):
        self.changes = 0

    def transform(self, root: Any) -> Any:
        """Run the pass over ``root`` and return the (possibly new) root."""
        # Reversed pre-order puts every node after all of its descendants
        entries = list(walk_with_parents(root))
        new_root = root
        for node, parent, field, index in reversed(entries):
            visitor = getattr(self, f"visit_{node.type}", None)
            if visitor is None:
                continue
            replacement = visitor(node)
            if replacement is None or replacement is node:
                continue
            self.changes += 1
            if parent is None:
                new_root = replacement
            else:
                replace_child(parent, field, index, replacement)
        return new_root
