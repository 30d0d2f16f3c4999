"""Scope-safe renaming of module function bindings.

All renames go through bindings resolved by ``ScopeAnalysis``: a require
call is recognised because its callee resolves to the wrapper's third
parameter, not because it is spelled ``__webpack_require__``.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional, Union

from unwebpack.core.allocator import NameAllocator
from unwebpack.core.demangle import DemangleStats, demangle
from unwebpack.core.scope import Binding, ScopeAnalysis
from unwebpack.core.traverse import FUNCTION_TYPES, walk
from unwebpack.debug import debug_log

MODULE_PARAM_NAMES = ("module", "exports")

_SINGLE_LETTER_RE = re.compile(r"^[A-Za-z]$")

ModuleId = Union[int, str]


def is_single_letter(name: str) -> bool:
    return bool(_SINGLE_LETTER_RE.match(name))


def literal_module_id(node: Any) -> Optional[ModuleId]:
    """Module id carried by a number or string literal argument."""
    if getattr(node, "type", None) != "Literal":
        return None
    value = node.value
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (int, float, str)):
        return value
    return None


@dataclass
class ModuleRewriteStats:
    """What the rewrite of one module function changed."""
    params: int = 0
    interop_helpers: int = 0
    require_bindings: int = 0
    aliases: int = 0
    single_letter: int = 0
    demangle: DemangleStats = field(default_factory=DemangleStats)

    @property
    def renames(self) -> int:
        return self.params + self.interop_helpers + self.require_bindings + self.aliases + self.single_letter


class RenameEngine:
    """Rewrites the bindings of module wrapper functions of one file."""

    def __init__(
        self,
        analysis: ScopeAnalysis,
        allocator: NameAllocator,
        aliases: Optional[Mapping[str, str]] = None,
        require_name: str = "__webpack_require__",
        interop_helper_name: str = "interopRequireDefault",
    ):
        self.analysis = analysis
        self.allocator = allocator
        self.aliases = dict(aliases or {})
        self.require_name = require_name
        self.interop_helper_name = interop_helper_name

    # -- primitives ------------------------------------------------------

    def rename_binding(self, binding: Binding, desired: str) -> str:
        """Rename ``binding`` to ``desired``, or to a fresh uid if that would clash."""
        if binding.name == desired:
            return desired
        final_name = desired
        if not self.analysis.can_rename(binding, desired):
            final_name = self.analysis.generate_uid(desired)
            debug_log("debug", f"Rename target {desired!r} taken, using {final_name!r}")
        self.analysis.rename(binding, final_name)
        self.allocator.reserve(final_name)
        return final_name

    def require_binding(self, function_node: Any) -> Optional[Binding]:
        """Binding of the wrapper's third parameter, if it is a plain identifier."""
        params = function_node.params
        if len(params) < 3 or params[2].type != "Identifier":
            return None
        return self.analysis.binding_of(params[2])

    def _owned_by(self, binding: Optional[Binding], function_node: Any) -> bool:
        function_scope = self.analysis.scope_for(function_node)
        return binding is not None and function_scope is not None and binding.scope.is_within(function_scope)

    def _refers_to(self, node: Any, binding: Optional[Binding]) -> bool:
        return (
            binding is not None
            and getattr(node, "type", None) == "Identifier"
            and self.analysis.binding_of(node) is binding
        )

    def required_module_id(
        self,
        node: Any,
        require: Optional[Binding],
        interop: tuple[Binding, ...] = (),
    ) -> tuple[Optional[ModuleId], bool]:
        """Module id of a require expression and whether the interop helper wraps it.

        Matches ``require(<id>)``, ``require.n(require(<id>))`` and either of
        them passed to an interop helper.
        """
        wrapped = False
        if (
            getattr(node, "type", None) == "CallExpression"
            and node.arguments
            and any(self._refers_to(node.callee, helper) for helper in interop)
        ):
            node = node.arguments[0]
            wrapped = True

        if getattr(node, "type", None) != "CallExpression" or not node.arguments:
            return None, wrapped

        callee = node.callee
        if self._refers_to(callee, require):
            return literal_module_id(node.arguments[0]), wrapped

        if (
            callee.type == "MemberExpression"
            and not callee.computed
            and self._refers_to(callee.object, require)
            and callee.property.type == "Identifier"
            and callee.property.name == "n"
            and len(node.arguments) == 1
        ):
            inner, _ = self.required_module_id(node.arguments[0], require)
            return inner, wrapped

        return None, wrapped

    def _declarators(self, function_node: Any) -> Iterator[Any]:
        for node in walk(function_node.body):
            if node.type == "VariableDeclarator" and node.id.type == "Identifier" and node.init is not None:
                yield node

    # -- passes ----------------------------------------------------------

    def normalize_params(self, function_node: Any) -> int:
        """Rename the first three parameters to ``module, exports, <require>``.

        A binding inside the function already using a target name is moved
        to a fresh uid first. A parameter keeps its name when the target
        would capture a name from outside the function.
        """
        targets = MODULE_PARAM_NAMES + (self.require_name,)
        renamed = 0
        for param, target in zip(function_node.params, targets):
            if param.type != "Identifier" or param.name == target:
                continue
            binding = self.analysis.binding_of(param)
            if binding is None:
                continue

            for ref in list(binding.occurrences):
                other = ref.scope.get_binding(target)
                if other is not None and other is not binding and self._owned_by(other, function_node):
                    self.analysis.rename(other, self.analysis.generate_uid(target))

            if not self.analysis.can_rename(binding, target):
                debug_log("debug", f"Keeping parameter {param.name!r}: {target!r} is used from outside")
                continue
            self.analysis.rename(binding, target)
            renamed += 1
        return renamed

    def is_interop_helper(self, fn: Any) -> bool:
        """Match ``function (p) { return p && p.__esModule ? p : { default: p }; }``."""
        if fn.type not in FUNCTION_TYPES or len(fn.params) != 1 or fn.params[0].type != "Identifier":
            return False
        param = self.analysis.binding_of(fn.params[0])
        if param is None:
            return False

        body = fn.body
        if body.type == "BlockStatement":
            returned = next((s.argument for s in body.body if s.type == "ReturnStatement"), None)
        else:
            returned = body
        if getattr(returned, "type", None) != "ConditionalExpression":
            return False

        test = returned.test
        test_ok = (
            test.type == "LogicalExpression"
            and test.operator == "&&"
            and self._refers_to(test.left, param)
            and test.right.type == "MemberExpression"
            and not test.right.computed
            and self._refers_to(test.right.object, param)
            and test.right.property.type == "Identifier"
            and test.right.property.name == "__esModule"
        )
        if not test_ok or not self._refers_to(returned.consequent, param):
            return False

        alternate = returned.alternate
        if alternate.type != "ObjectExpression" or len(alternate.properties) != 1:
            return False
        prop = alternate.properties[0]
        if prop.type != "Property" or prop.computed or prop.kind != "init":
            return False
        key_name = prop.key.name if prop.key.type == "Identifier" else getattr(prop.key, "value", None)
        return key_name == "default" and self._refers_to(prop.value, param)

    def find_interop_helpers(self, function_node: Any) -> list[Binding]:
        """Find and rename interop-default helpers declared in the function."""
        helpers: list[Binding] = []
        for node in walk(function_node.body):
            identifier = None
            if node.type == "FunctionDeclaration" and node.id is not None and self.is_interop_helper(node):
                identifier = node.id
            elif (
                node.type == "VariableDeclarator"
                and node.id.type == "Identifier"
                and node.init is not None
                and node.init.type in ("FunctionExpression", "ArrowFunctionExpression")
                and self.is_interop_helper(node.init)
            ):
                identifier = node.id
            if identifier is None:
                continue
            binding = self.analysis.binding_of(identifier)
            if binding is None or any(binding is helper for helper in helpers):
                continue
            self.rename_binding(binding, self.interop_helper_name)
            helpers.append(binding)
        return helpers

    def rename_require_bindings(self, function_node: Any, interop: tuple[Binding, ...] = ()) -> int:
        """``var r = require(7)`` to ``require_r``; ``import_r`` when interop-wrapped."""
        require = self.require_binding(function_node)
        if require is None:
            return 0
        renamed = 0
        for declarator in self._declarators(function_node):
            name = declarator.id.name
            if len(name) != 1:
                continue
            module_id, wrapped = self.required_module_id(declarator.init, require, interop)
            if module_id is None:
                continue
            binding = self.analysis.binding_of(declarator.id)
            if binding is None:
                continue
            prefix = "import_" if wrapped else "require_"
            self.rename_binding(binding, f"{prefix}{name}")
            renamed += 1
        return renamed

    def apply_aliases(self, function_node: Any, interop: tuple[Binding, ...] = ()) -> int:
        """Rename require-bound variables whose module id has an alias."""
        if not self.aliases:
            return 0
        require = self.require_binding(function_node)
        if require is None:
            return 0
        renamed = 0
        for declarator in self._declarators(function_node):
            module_id, _ = self.required_module_id(declarator.init, require, interop)
            if module_id is None:
                continue
            alias = self.aliases.get(str(module_id))
            binding = self.analysis.binding_of(declarator.id)
            if not alias or binding is None:
                continue
            self.rename_binding(binding, alias)
            renamed += 1
        return renamed

    def _single_letter_candidates(self, function_node: Any) -> Iterator[Any]:
        """Binding identifiers in pre-order, the wrapper's own included."""
        for node in walk(function_node):
            node_type = node.type
            if node_type == "VariableDeclarator":
                if node.id.type == "Identifier":
                    yield node.id
            elif node_type in FUNCTION_TYPES:
                if node_type != "ArrowFunctionExpression" and node.id is not None:
                    yield node.id
                for param in node.params:
                    if param.type == "AssignmentPattern":
                        param = param.left
                    if param.type == "Identifier":
                        yield param
            elif node_type == "CatchClause":
                if node.param is not None and node.param.type == "Identifier":
                    yield node.param

    def rename_single_letter_bindings(self, function_node: Any) -> int:
        """Give every single-letter binding a ``<letter>_<tag>`` name."""
        renamed = 0
        for identifier in self._single_letter_candidates(function_node):
            binding = self.analysis.binding_of(identifier)
            if binding is None or not is_single_letter(binding.name):
                continue
            if not self._owned_by(binding, function_node):
                continue
            new_name = self.allocator.next_name_for(
                binding.name,
                binding.scope,
                accept=lambda candidate: self.analysis.can_rename(binding, candidate),
            )
            self.analysis.rename(binding, new_name)
            renamed += 1
        return renamed

    def rewrite_module(self, function_node: Any) -> ModuleRewriteStats:
        """Run parameter normalization, demangling and every rename pass, in order."""
        stats = ModuleRewriteStats()
        stats.params = self.normalize_params(function_node)
        stats.demangle = demangle(function_node, self.analysis)
        interop = tuple(self.find_interop_helpers(function_node))
        stats.interop_helpers = len(interop)
        stats.require_bindings = self.rename_require_bindings(function_node, interop)
        stats.aliases = self.apply_aliases(function_node, interop)
        stats.single_letter = self.rename_single_letter_bindings(function_node)
        return stats
