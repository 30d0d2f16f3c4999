"""Recognition of webpack module-registration idioms.

Each idiom is a small tagged variant produced by ``classify_call``:

* ``(self.webpackChunkapp = self.webpackChunkapp || []).push([[ids], {id: fn}])``
* ``window.webpackJsonp.push([[ids], [fn, fn]])``
* ``webpackJsonp.push([[ids], Array(5).concat([fn, fn])])``
* ``(function (modules) { ... })({id: fn})``, the bootstrap runtime
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Union

from unwebpack.core.traverse import iter_children

ModuleId = Union[int, str]

MODULE_FUNCTION_TYPES = frozenset({"FunctionExpression", "ArrowFunctionExpression"})

_CANONICAL_INT_RE = re.compile(r"^(0|[1-9][0-9]*)$")


@dataclass
class RuntimePushObjectMap:
    """``push([chunkIds, {id: fn, ...}])``."""
    call: Any
    chunk_ids: list
    modules: Any  # ObjectExpression
    kind: str = field(default="runtime-push-object", init=False)


@dataclass
class RuntimePushArray:
    """``push([chunkIds, [fn, fn, ...]])``, ids are positions."""
    call: Any
    chunk_ids: list
    modules: Any  # ArrayExpression
    kind: str = field(default="runtime-push-array", init=False)


@dataclass
class RuntimePushConcatPadded:
    """``push([chunkIds, Array(base).concat([fn, ...])])``, ids start at ``base``."""
    call: Any
    chunk_ids: list
    base: int
    modules: Any  # ArrayExpression
    kind: str = field(default="runtime-push-concat", init=False)


@dataclass
class BootstrapIIFE:
    """``(function (modules) {...})({id: fn})``, the main chunk."""
    call: Any
    modules: Any  # ObjectExpression or ArrayExpression
    chunk_ids: list = field(default_factory=lambda: [0])
    kind: str = field(default="bootstrap-iife", init=False)


BundleIdiom = Union[RuntimePushObjectMap, RuntimePushArray, RuntimePushConcatPadded, BootstrapIIFE]


def _type(node: Any) -> Optional[str]:
    return getattr(node, "type", None)


def _number(node: Any) -> Optional[int]:
    if _type(node) != "Literal" or isinstance(node.value, bool):
        return None
    value = node.value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value if isinstance(value, int) else None


def _literal_key(node: Any) -> Optional[ModuleId]:
    """Chunk or module id from a literal: numbers and numeric strings become ints."""
    if _type(node) != "Literal" or isinstance(node.value, bool):
        return None
    value = node.value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value) if _CANONICAL_INT_RE.match(value) else value
    return None


def property_module_id(prop: Any) -> Optional[ModuleId]:
    """Module id of an object-map property, None for computed or exotic keys."""
    if _type(prop) != "Property" or prop.computed:
        return None
    key = prop.key
    if _type(key) == "Identifier":
        return key.name
    return _literal_key(key)


def _member_property_name(member: Any) -> Optional[str]:
    prop = member.property
    if not member.computed and _type(prop) == "Identifier":
        return prop.name
    if _type(prop) == "Literal" and isinstance(prop.value, str):
        return prop.value
    return None


def _is_chunk_array_name(name: Optional[str]) -> bool:
    return name is not None and (name == "webpackJsonp" or name.startswith("webpackChunk"))


def is_chunk_array_member(node: Any) -> bool:
    """``<x>.webpackJsonp``, ``<x>.webpackChunk<name>`` or the bare global name."""
    if _type(node) == "Identifier":
        return _is_chunk_array_name(node.name)
    if _type(node) != "MemberExpression":
        return False
    return _is_chunk_array_name(_member_property_name(node))


def is_chunk_array_target(node: Any) -> bool:
    """The receiver of a runtime ``push``: the member itself, or ``(m = m || [])``."""
    if is_chunk_array_member(node):
        return True
    if _type(node) == "AssignmentExpression" and node.operator == "=":
        right = node.right
        return (
            is_chunk_array_member(node.left)
            and _type(right) == "LogicalExpression"
            and right.operator == "||"
            and _type(right.right) == "ArrayExpression"
        )
    return False


def match_concat_padded(node: Any) -> Optional[tuple[int, Any]]:
    """Match ``Array(base).concat([...])`` or ``new Array(base).concat([...])``."""
    if _type(node) != "CallExpression":
        return None
    callee = node.callee
    if _type(callee) != "MemberExpression" or _member_property_name(callee) != "concat":
        return None

    receiver = callee.object
    if _type(receiver) not in ("CallExpression", "NewExpression"):
        return None
    if _type(receiver.callee) != "Identifier" or receiver.callee.name != "Array":
        return None
    if len(receiver.arguments) != 1:
        return None
    base = _number(receiver.arguments[0])
    if base is None or base < 0:
        return None

    if not node.arguments or _type(node.arguments[0]) != "ArrayExpression":
        return None
    return base, node.arguments[0]


def _chunk_ids(node: Any) -> list:
    ids = []
    for element in node.elements:
        value = _literal_key(element)
        if value is not None:
            ids.append(value)
    return ids


def _has_module_function(container: Any) -> bool:
    if _type(container) == "ObjectExpression":
        return any(_type(getattr(p, "value", None)) in MODULE_FUNCTION_TYPES for p in container.properties)
    return any(_type(e) in MODULE_FUNCTION_TYPES for e in container.elements)


def classify_call(node: Any) -> Optional[BundleIdiom]:
    """Classify a call expression as one of the registration idioms, or None."""
    if _type(node) != "CallExpression":
        return None
    callee = node.callee

    if (
        _type(callee) == "MemberExpression"
        and _member_property_name(callee) == "push"
        and is_chunk_array_target(callee.object)
    ):
        if not node.arguments or _type(node.arguments[0]) != "ArrayExpression":
            return None
        elements = node.arguments[0].elements
        if len(elements) < 2 or _type(elements[0]) != "ArrayExpression" or elements[1] is None:
            return None
        chunk_ids = _chunk_ids(elements[0])
        modules = elements[1]

        if _type(modules) == "ObjectExpression":
            return RuntimePushObjectMap(call=node, chunk_ids=chunk_ids, modules=modules)
        if _type(modules) == "ArrayExpression":
            return RuntimePushArray(call=node, chunk_ids=chunk_ids, modules=modules)
        padded = match_concat_padded(modules)
        if padded is not None:
            base, array = padded
            return RuntimePushConcatPadded(call=node, chunk_ids=chunk_ids, base=base, modules=array)
        return None

    if _type(callee) in MODULE_FUNCTION_TYPES and node.arguments:
        modules = node.arguments[0]
        if _type(modules) in ("ObjectExpression", "ArrayExpression") and _has_module_function(modules):
            return BootstrapIIFE(call=node, modules=modules)
    return None


def iter_idioms(program: Any) -> Iterator[BundleIdiom]:
    """Pre-order search for registration idioms.

    A matched call's subtree is not searched further: module functions are
    never registration sites themselves.
    """
    stack = [program]
    while stack:
        node = stack.pop()
        idiom = classify_call(node) if node.type == "CallExpression" else None
        if idiom is not None:
            yield idiom
            continue
        children = [child for _field, _index, child in iter_children(node)]
        stack.extend(reversed(children))


def iter_module_functions(idiom: BundleIdiom) -> Iterator[tuple[ModuleId, Any]]:
    """Yield ``(module_id, function_node)`` in bundle order."""
    modules = idiom.modules
    if _type(modules) == "ObjectExpression":
        for prop in modules.properties:
            module_id = property_module_id(prop)
            if module_id is None or _type(prop.value) not in MODULE_FUNCTION_TYPES:
                continue
            yield module_id, prop.value
        return

    base = idiom.base if isinstance(idiom, RuntimePushConcatPadded) else 0
    for index, element in enumerate(modules.elements):
        # Holes keep their position
        if _type(element) in MODULE_FUNCTION_TYPES:
            yield base + index, element
