"""Dependency graph assembly and serialization.

Graphs use the ``{"nodes": [...], "links": [{"source", "target"}]}`` shape
understood by D3-style visualizers.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from rich.console import Console

from unwebpack.core.deps import dependencies_from_source
from unwebpack.core.generator import module_filename
from unwebpack.core.parser import JavaScriptParseError, parse_javascript
from unwebpack.debug import debug_log

console = Console()

ModuleId = Union[int, str]

# import a from './a.js'; import a, { b } from './b.js'; import { c } from './c.js'
IMPORT_REGEX = re.compile(
    r"""^import\s+(?:(?:([\w$]+)\s*,?\s*)?(?:\{[^}]*\}\s*,?\s*)?)?from\s+['"](.*?)['"];?""",
    re.MULTILINE,
)


@dataclass
class GraphData:
    """Nodes and links of a dependency graph."""
    nodes: list[dict] = field(default_factory=list)
    links: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"nodes": self.nodes, "links": self.links}


class NodeIdRegistry:
    """Hands out stable integer node ids per key, in first-seen order."""

    def __init__(self, start: int = 0):
        self._ids: dict[Any, int] = {}
        self._next = start

    def __contains__(self, key: Any) -> bool:
        return key in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def get(self, key: Any) -> int:
        if key not in self._ids:
            self._ids[key] = self._next
            self._next += 1
        return self._ids[key]

    def items(self):
        return self._ids.items()


def build_bundle_graph(records: Iterable[Any], prefix: str = "mod_") -> GraphData:
    """Graph of one bundle's module records.

    Integer module ids are node ids; string ids get fresh integers above
    every integer id, dependencies included, so a dependency on a module
    outside this bundle never lands on a string id's node. Every record
    contributes its links, so chunk duplicates repeat their edges.
    """
    records = list(records)
    int_ids = [r.module_id for r in records if isinstance(r.module_id, int)]
    int_ids.extend(d for r in records for d in r.dependencies)
    registry = NodeIdRegistry(start=max(int_ids, default=-1) + 1)

    def node_id(module_id: ModuleId) -> int:
        return module_id if isinstance(module_id, int) else registry.get(module_id)

    graph = GraphData()
    seen = set()
    for record in records:
        key = node_id(record.module_id)
        if key in seen:
            continue
        seen.add(key)
        graph.nodes.append({
            "id": key,
            "label": f"{prefix}{record.module_id}",
            "file": module_filename(prefix, record.module_id),
        })

    for record in records:
        source = node_id(record.module_id)
        for dependency in record.dependencies:
            graph.links.append({"source": source, "target": node_id(dependency)})

    return graph


def build_module_dir_graph(directory: Path, prefix: str = "mod_", require_name: str = "__webpack_require__") -> GraphData:
    """Graph of a directory of emitted ``<prefix><id>.js`` module files."""
    file_re = re.compile(r"^" + re.escape(prefix) + r"(\d+)\.js$")
    modules: dict[int, tuple[str, list[int]]] = {}

    for path in sorted(Path(directory).iterdir(), key=lambda p: p.name):
        match = file_re.match(path.name)
        if not path.is_file() or match is None:
            continue
        module_id = int(match.group(1))
        if module_id in modules:
            continue
        code = path.read_text(encoding="utf-8")
        dependencies = dependencies_from_source(code, require_name)
        modules[module_id] = (path.name, dependencies)
        debug_log("debug", f"Found {path.name} with {len(dependencies)} unique dependencies")

    graph = GraphData()
    for module_id in sorted(modules):
        graph.nodes.append({"id": module_id, "label": f"{prefix}{module_id}", "file": modules[module_id][0]})
    for module_id in sorted(modules):
        for dependency in modules[module_id][1]:
            graph.links.append({"source": module_id, "target": dependency})
    return graph


def is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith(("./", "../", "/")) or specifier in (".", "..")


def _source_imports(code: str) -> list[tuple[str, Optional[str]]]:
    """``(specifier, default import name)`` for each import/re-export."""
    try:
        program = parse_javascript(code, module=True)
    except JavaScriptParseError as e:
        debug_log("warning", "Source file did not parse, scanning text", {"error": str(e)})
        return [(m.group(2), m.group(1)) for m in IMPORT_REGEX.finditer(code) if m.group(2)]

    imports = []
    for statement in program.body:
        if statement.type == "ImportDeclaration":
            default = next(
                (s.local.name for s in statement.specifiers if s.type == "ImportDefaultSpecifier"),
                None,
            )
            imports.append((statement.source.value, default))
        elif statement.type in ("ExportNamedDeclaration", "ExportAllDeclaration") and statement.source is not None:
            imports.append((statement.source.value, None))
    return imports


def build_source_graph(directory: Path) -> GraphData:
    """Graph of an ES-module source tree.

    Node ids are handed out per absolute path; labels are the default
    import name a file was imported under, else its file name.
    """
    registry = NodeIdRegistry()
    labels: dict[int, str] = {}
    dependencies: dict[int, list[int]] = {}

    for path in sorted(Path(directory).rglob("*.js")):
        if not path.is_file():
            continue
        absolute = path.resolve()
        current = registry.get(absolute)
        code = path.read_text(encoding="utf-8")

        found: list[int] = []
        for specifier, default_name in _source_imports(code):
            if not is_relative_specifier(specifier):
                continue
            target = (absolute.parent / specifier).resolve()
            target_id = registry.get(target)
            if target_id not in found:
                found.append(target_id)
            if default_name:
                labels[target_id] = default_name
        dependencies[current] = found

    graph = GraphData()
    for absolute, node_id in sorted(registry.items(), key=lambda item: item[1]):
        graph.nodes.append({"id": node_id, "label": labels.get(node_id, absolute.name), "path": str(absolute)})
    for source, targets in dependencies.items():
        for target in targets:
            graph.links.append({"source": source, "target": target})
    return graph


def save_graph(graph: GraphData, output_path: Path) -> None:
    """Write a graph as indented JSON."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(graph.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    console.print(f"[green]Dependency graph saved to '{output_path}' ({len(graph.nodes)} nodes, {len(graph.links)} links)[/green]")
