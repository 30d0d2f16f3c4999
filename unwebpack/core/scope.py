"""Scope tree, binding resolution and safe renaming for esprima syntax trees.

esprima only produces a syntax tree. This module builds the symbol table on
top of it: a tree of lexical scopes, the bindings declared in each, and for
every binding the identifier occurrences (declarations, reads and writes)
that refer to it. Renames go through a binding, never through text, so a
rename touches exactly the occurrences of that binding.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from esprima import nodes

from unwebpack.core.traverse import iter_children

# Names that always resolve to something, even when never declared
CONTEXT_NAMES = frozenset({"arguments", "undefined", "NaN", "Infinity", "eval"})

RESERVED_WORDS = frozenset({
    "break", "case", "catch", "class", "const", "continue", "debugger", "default",
    "delete", "do", "else", "enum", "export", "extends", "false", "finally", "for",
    "function", "if", "implements", "import", "in", "instanceof", "interface", "let",
    "new", "null", "package", "private", "protected", "public", "return", "static",
    "super", "switch", "this", "throw", "true", "try", "typeof", "var", "void",
    "while", "with", "yield", "await",
})

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def is_valid_identifier(name: str) -> bool:
    """Check if ``name`` can be used as a JavaScript binding name."""
    return bool(name) and bool(_IDENTIFIER_RE.match(name)) and name not in RESERVED_WORDS


class RenameConflictError(ValueError):
    """Raised when a rename would capture or shadow another binding."""


@dataclass(eq=False)
class Reference:
    """One identifier occurrence and where it sits."""
    identifier: Any
    parent: Any
    grandparent: Any
    scope: "Scope"


@dataclass(eq=False)
class Binding:
    """A name declared in a scope together with all of its occurrences."""
    name: str
    kind: str  # var, let, const, param, hoisted, local, catch, class, module
    scope: "Scope"
    identifier: Any
    occurrences: list[Reference] = field(default_factory=list)

    @property
    def reference_count(self) -> int:
        return len(self.occurrences)


class Scope:
    """A lexical scope."""

    def __init__(self, node: Any, kind: str, parent: Optional["Scope"], analysis: "ScopeAnalysis"):
        self.node = node
        self.kind = kind  # program, function, block, catch, class
        self.parent = parent
        self.analysis = analysis
        self.bindings: dict[str, Binding] = {}
        self.children: list["Scope"] = []
        # Names referenced inside this scope that resolve outside of it
        self.through: Counter = Counter()
        if parent is not None:
            parent.children.append(self)

    def __repr__(self) -> str:
        return f"<Scope {self.kind} bindings={sorted(self.bindings)}>"

    @property
    def is_function_scope(self) -> bool:
        return self.kind in ("function", "program")

    def function_scope(self) -> "Scope":
        """Nearest enclosing function (or program) scope, ``var`` target."""
        scope = self
        while not scope.is_function_scope:
            scope = scope.parent
        return scope

    def ancestors(self) -> Iterator["Scope"]:
        """This scope and every enclosing scope, innermost first."""
        scope: Optional[Scope] = self
        while scope is not None:
            yield scope
            scope = scope.parent

    def is_within(self, other: "Scope") -> bool:
        """Check if this scope is ``other`` or nested inside it."""
        return any(scope is other for scope in self.ancestors())

    def iter_scopes(self) -> Iterator["Scope"]:
        """This scope and all nested scopes, pre-order."""
        stack = [self]
        while stack:
            scope = stack.pop()
            yield scope
            stack.extend(reversed(scope.children))

    def get_own_binding(self, name: str) -> Optional[Binding]:
        return self.bindings.get(name)

    def get_binding(self, name: str) -> Optional[Binding]:
        """Resolve ``name`` through the scope chain."""
        for scope in self.ancestors():
            binding = scope.bindings.get(name)
            if binding is not None:
                return binding
        return None

    def has_binding(self, name: str) -> bool:
        """Check if ``name`` is visible here: bound, a used global or a context name."""
        return (
            self.get_binding(name) is not None
            or name in self.analysis.globals
            or name in CONTEXT_NAMES
        )

    def rename(self, old_name: str, new_name: str) -> None:
        """Rename the binding ``old_name`` visible from this scope."""
        binding = self.get_binding(old_name)
        if binding is None:
            raise KeyError(old_name)
        self.analysis.rename(binding, new_name)


@dataclass
class _DeclarationContext:
    """Identifiers reached under this context declare a binding."""
    kind: str
    scope: Scope


# Context marker for identifiers that are property names or labels
_SKIP = object()
# Context marker for a function body block, which shares the function scope
_FUNCTION_BODY = object()


class ScopeAnalysis:
    """Scope tree and binding table for one parsed file."""

    def __init__(self, program: Any):
        self.program = program
        self.root = Scope(program, "program", None, self)
        self.globals: dict[str, list[Reference]] = {}
        self.names: set[str] = set()
        self._scopes_by_node: dict[int, Scope] = {id(program): self.root}
        self._bindings_by_identifier: dict[int, Binding] = {}
        self._pending: list[Reference] = []
        self._build()
        self._resolve()

    # -- queries ---------------------------------------------------------

    def scope_for(self, node: Any) -> Optional[Scope]:
        """Scope created by ``node`` (a function, block, catch clause, ...)."""
        return self._scopes_by_node.get(id(node))

    def binding_of(self, identifier: Any) -> Optional[Binding]:
        """Binding an identifier occurrence refers to, None for globals."""
        return self._bindings_by_identifier.get(id(identifier))

    def iter_bindings(self, scope: Optional[Scope] = None) -> Iterator[Binding]:
        for current in (scope or self.root).iter_scopes():
            yield from current.bindings.values()

    def generate_uid(self, name: str) -> str:
        """Generate a name unused anywhere in the file: ``_name``, ``_name2``, ..."""
        base = re.sub(r"^_+", "", name)
        base = re.sub(r"[0-9]+$", "", base) or "ref"
        index = 1
        while True:
            uid = f"_{base}" if index == 1 else f"_{base}{index}"
            if uid not in self.names and uid not in CONTEXT_NAMES:
                self.names.add(uid)
                return uid
            index += 1

    def can_rename(self, binding: Binding, new_name: str) -> bool:
        """Check that renaming ``binding`` to ``new_name`` keeps every resolution intact."""
        if new_name == binding.name:
            return True
        if not is_valid_identifier(new_name) or new_name in CONTEXT_NAMES:
            return False
        if new_name in self.globals and binding.scope is self.root:
            return False
        # An outer binding or global of that name is used inside our scope
        if binding.scope.through.get(new_name, 0) > 0:
            return False
        # A binding of that name between an occurrence and its declaration
        for ref in binding.occurrences:
            other = ref.scope.get_binding(new_name)
            if other is not None and other is not binding and other.scope.is_within(binding.scope):
                return False
        return True

    def rename(self, binding: Binding, new_name: str) -> None:
        """Rename a binding and every occurrence of it.

        Raises:
            RenameConflictError: If the new name would change what any
                identifier resolves to
        """
        old_name = binding.name
        if new_name == old_name:
            return
        if not self.can_rename(binding, new_name):
            raise RenameConflictError(f"cannot rename {old_name!r} to {new_name!r}")

        scope = binding.scope
        del scope.bindings[old_name]
        binding.name = new_name
        scope.bindings[new_name] = binding

        for ref in binding.occurrences:
            self._expand_shorthand(ref, old_name)
            ref.identifier.name = new_name
            for passed in self._scopes_between(ref.scope, scope):
                passed.through[old_name] -= 1
                if passed.through[old_name] <= 0:
                    del passed.through[old_name]
                passed.through[new_name] += 1

        self.names.add(new_name)

    # -- construction ----------------------------------------------------

    @staticmethod
    def _scopes_between(inner: Scope, outer: Optional[Scope]) -> Iterator[Scope]:
        """Scopes from ``inner`` up to, not including, ``outer``."""
        scope: Optional[Scope] = inner
        while scope is not None and scope is not outer:
            yield scope
            scope = scope.parent

    @staticmethod
    def _expand_shorthand(ref: Reference, old_name: str) -> None:
        """Keep property, import and export names when a shared identifier is renamed.

        ``{a}`` becomes ``{a: renamed}``, ``export {a}`` becomes
        ``export {renamed as a}`` and ``import {a}`` becomes
        ``import {a as renamed}``.
        """
        parent_type = getattr(ref.parent, "type", None)
        if parent_type == "ExportSpecifier":
            if ref.parent.exported is ref.identifier:
                ref.parent.exported = nodes.Identifier(old_name)
            return
        if parent_type == "ImportSpecifier":
            if ref.parent.imported is ref.identifier:
                ref.parent.imported = nodes.Identifier(old_name)
            return

        prop = None
        if parent_type == "Property":
            prop = ref.parent
        elif parent_type == "AssignmentPattern" and getattr(ref.grandparent, "type", None) == "Property":
            prop = ref.grandparent
        if prop is None or not getattr(prop, "shorthand", False):
            return
        prop.shorthand = False
        if prop.key is ref.identifier:
            prop.key = nodes.Identifier(old_name)

    def _new_scope(self, node: Any, kind: str, parent: Scope) -> Scope:
        scope = Scope(node, kind, parent, self)
        self._scopes_by_node[id(node)] = scope
        return scope

    def _declare(self, identifier: Any, parent: Any, grandparent: Any, ref_scope: Scope, context: _DeclarationContext) -> None:
        name = identifier.name
        target = context.scope
        binding = target.bindings.get(name)
        if binding is None:
            binding = Binding(name=name, kind=context.kind, scope=target, identifier=identifier)
            target.bindings[name] = binding
        binding.occurrences.append(Reference(identifier, parent, grandparent, ref_scope))
        self._bindings_by_identifier[id(identifier)] = binding

    def _build(self) -> None:
        # (node, parent, grandparent, scope, context)
        stack: list[tuple[Any, Any, Any, Scope, Any]] = [(self.program, None, None, self.root, None)]
        while stack:
            node, parent, grandparent, scope, context = stack.pop()
            tasks = self._visit(node, parent, grandparent, scope, context)
            stack.extend(reversed(tasks))

    def _visit(self, node: Any, parent: Any, grandparent: Any, scope: Scope, context: Any) -> list:
        node_type = node.type

        if node_type == "Identifier":
            self.names.add(node.name)
            if context is _SKIP:
                return []
            if isinstance(context, _DeclarationContext):
                self._declare(node, parent, grandparent, scope, context)
            else:
                self._pending.append(Reference(node, parent, grandparent, scope))
            return []

        def task(child: Any, child_scope: Scope = scope, child_context: Any = None) -> tuple:
            return (child, node, parent, child_scope, child_context)

        pattern_context = context if isinstance(context, _DeclarationContext) else None

        if node_type in ("FunctionDeclaration", "FunctionExpression", "ArrowFunctionExpression"):
            tasks = []
            if node_type == "FunctionDeclaration" and node.id is not None:
                tasks.append(task(node.id, scope, _DeclarationContext("hoisted", scope)))
            function_scope = self._new_scope(node, "function", scope)
            if node_type == "FunctionExpression" and node.id is not None:
                tasks.append(task(node.id, function_scope, _DeclarationContext("local", function_scope)))
            for param in node.params:
                tasks.append(task(param, function_scope, _DeclarationContext("param", function_scope)))
            if node.body is not None:
                body_context = _FUNCTION_BODY if node.body.type == "BlockStatement" else None
                tasks.append(task(node.body, function_scope, body_context))
            return tasks

        if node_type in ("ClassDeclaration", "ClassExpression"):
            tasks = []
            if node_type == "ClassDeclaration" and node.id is not None:
                tasks.append(task(node.id, scope, _DeclarationContext("class", scope)))
            if node.superClass is not None:
                tasks.append(task(node.superClass))
            class_scope = self._new_scope(node, "class", scope)
            if node_type == "ClassExpression" and node.id is not None:
                tasks.append(task(node.id, class_scope, _DeclarationContext("class", class_scope)))
            tasks.append(task(node.body, class_scope))
            return tasks

        if node_type == "VariableDeclaration":
            target = scope.function_scope() if node.kind == "var" else scope
            declaration = _DeclarationContext(node.kind, target)
            return [task(declarator, scope, declaration) for declarator in node.declarations]

        if node_type == "VariableDeclarator":
            tasks = [task(node.id, scope, pattern_context)]
            if node.init is not None:
                tasks.append(task(node.init))
            return tasks

        if node_type == "BlockStatement":
            block_scope = scope if context is _FUNCTION_BODY else self._new_scope(node, "block", scope)
            return [task(statement, block_scope) for statement in node.body]

        if node_type in ("ForStatement", "ForInStatement", "ForOfStatement", "SwitchStatement", "StaticBlock"):
            if node_type == "SwitchStatement":
                tasks = [task(node.discriminant)]
                case_scope = self._new_scope(node, "block", scope)
                return tasks + [task(case, case_scope) for case in node.cases]
            head_scope = self._new_scope(node, "block", scope)
            return [task(child, head_scope) for _f, _i, child in iter_children(node)]

        if node_type == "CatchClause":
            catch_scope = self._new_scope(node, "catch", scope)
            tasks = []
            if node.param is not None:
                tasks.append(task(node.param, catch_scope, _DeclarationContext("catch", catch_scope)))
            tasks.append(task(node.body, catch_scope))
            return tasks

        if node_type in ("ObjectPattern", "ArrayPattern"):
            return [task(child, scope, pattern_context) for _f, _i, child in iter_children(node)]

        if node_type == "AssignmentPattern":
            return [task(node.left, scope, pattern_context), task(node.right)]

        if node_type == "RestElement":
            return [task(node.argument, scope, pattern_context)]

        if node_type in ("Property", "PropertyDefinition", "FieldDefinition", "MethodDefinition"):
            tasks = []
            value = getattr(node, "value", None)
            if node.key is not None and node.key is not value:
                tasks.append(task(node.key, scope, None if node.computed else _SKIP))
            if value is not None:
                tasks.append(task(value, scope, pattern_context))
            return tasks

        if node_type == "MemberExpression":
            return [task(node.object), task(node.property, scope, None if node.computed else _SKIP)]

        if node_type in ("LabeledStatement", "BreakStatement", "ContinueStatement"):
            tasks = []
            if node.label is not None:
                tasks.append(task(node.label, scope, _SKIP))
            body = getattr(node, "body", None)
            if body is not None:
                tasks.append(task(body))
            return tasks

        if node_type == "MetaProperty":
            return []

        if node_type in ("ImportDefaultSpecifier", "ImportNamespaceSpecifier", "ImportSpecifier"):
            tasks = []
            imported = getattr(node, "imported", None)
            if imported is not None and imported is not node.local:
                tasks.append(task(imported, scope, _SKIP))
            tasks.append(task(node.local, scope, _DeclarationContext("module", self.root)))
            return tasks

        if node_type == "ExportSpecifier":
            tasks = [task(node.local)]
            if node.exported is not None and node.exported is not node.local:
                tasks.append(task(node.exported, scope, _SKIP))
            return tasks

        if node_type == "ExportAllDeclaration":
            return [task(node.source)] if node.source is not None else []

        if node_type == "ExportNamedDeclaration" and node.source is not None:
            # Re-exports name bindings of another module
            return [task(node.source)]

        if node_type == "ExportDefaultSpecifier":
            return [task(node.local, scope, _SKIP)]

        return [task(child) for _f, _i, child in iter_children(node)]

    def _resolve(self) -> None:
        for ref in self._pending:
            name = ref.identifier.name
            binding = ref.scope.get_binding(name)
            if binding is None:
                self.globals.setdefault(name, []).append(ref)
            else:
                binding.occurrences.append(ref)
                self._bindings_by_identifier[id(ref.identifier)] = binding
        self._pending = []

        for binding in self.iter_bindings():
            for ref in binding.occurrences:
                for passed in self._scopes_between(ref.scope, binding.scope):
                    passed.through[binding.name] += 1
        for name, refs in self.globals.items():
            for ref in refs:
                for passed in self._scopes_between(ref.scope, None):
                    passed.through[name] += 1


def analyze_scopes(program: Any) -> ScopeAnalysis:
    """Build the scope tree and binding table for a parsed program."""
    return ScopeAnalysis(program)
