"""Per-file pipeline: recognize modules, rewrite them, extract dependencies."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from rich.console import Console

from unwebpack.config import Config
from unwebpack.core.allocator import NameAllocator, NameAllocatorState
from unwebpack.core.deps import extract_dependencies
from unwebpack.core.parser import Range, node_range, parse_javascript
from unwebpack.core.recognizer import BundleIdiom, iter_idioms, iter_module_functions
from unwebpack.core.renamer import ModuleRewriteStats, RenameEngine
from unwebpack.core.scope import analyze_scopes
from unwebpack.debug import debug_log

ModuleId = Union[int, str]

console = Console()


@dataclass
class ModuleRecord:
    """One recovered module, attached to one chunk.

    Records that are chunk duplicates of one module share ``function_node``.
    """
    module_id: ModuleId
    chunk_ids: list
    function_node: Any
    dependencies: list[int] = field(default_factory=list)
    idiom: str = ""
    location: Optional[Range] = None

    @property
    def chunk_id(self) -> Optional[Any]:
        return self.chunk_ids[0] if self.chunk_ids else None


@dataclass
class BundleResult:
    """Everything recovered from one bundle file."""
    path: Optional[Path]
    records: list[ModuleRecord] = field(default_factory=list)
    idioms: list[str] = field(default_factory=list)
    rewrites: dict = field(default_factory=dict)  # module id -> ModuleRewriteStats
    errors: list[dict] = field(default_factory=list)  # {"module": id, "error": message}

    def unique_records(self) -> list[ModuleRecord]:
        """One record per module id, its first chunk attachment."""
        seen = set()
        unique = []
        for record in self.records:
            key = (type(record.module_id).__name__, record.module_id)
            if key in seen:
                continue
            seen.add(key)
            unique.append(record)
        return unique

    def dependency_map(self) -> dict[ModuleId, list[int]]:
        """Module id to dependency list."""
        return {record.module_id: record.dependencies for record in self.unique_records()}

    @property
    def module_count(self) -> int:
        return len(self.unique_records())


class BundleProcessor:
    """Turns bundle source into module records.

    Allocation state is created fresh for every file.
    """

    def __init__(self, config: Optional[Config] = None, aliases: Optional[Mapping[str, str]] = None):
        self.config = config or Config()
        self.aliases = dict(aliases or {})

    def process_source(self, source_code: str, path: Optional[Path] = None) -> BundleResult:
        """Process bundle source.

        Raises:
            JavaScriptParseError: If the source does not parse
        """
        program = parse_javascript(source_code, path=path)
        return self.process_program(program, path)

    def process_file(self, path: Path) -> BundleResult:
        """Read and process one bundle file."""
        source_code = Path(path).read_text(encoding="utf-8")
        return self.process_source(source_code, path)

    def process_program(self, program: Any, path: Optional[Path] = None) -> BundleResult:
        """Recognize and rewrite every module of a parsed bundle, in place."""
        analysis = analyze_scopes(program)
        allocator = NameAllocator(NameAllocatorState(), max_attempts=self.config.max_name_attempts)
        engine = RenameEngine(
            analysis,
            allocator,
            aliases=self.aliases,
            require_name=self.config.require_name,
            interop_helper_name=self.config.interop_helper_name,
        )

        result = BundleResult(path=path)
        for idiom in iter_idioms(program):
            result.idioms.append(idiom.kind)
            self._process_idiom(idiom, engine, result)

        if not result.idioms:
            debug_log("info", f"No module registration found in {path or '<source>'}")
        debug_log("info", f"Processed {path or '<source>'}", {
            "idioms": result.idioms,
            "records": len(result.records),
            "modules": result.module_count,
            "failed": len(result.errors),
        })
        return result

    def _process_idiom(self, idiom: BundleIdiom, engine: RenameEngine, result: BundleResult) -> None:
        for module_id, function_node in iter_module_functions(idiom):
            try:
                stats: ModuleRewriteStats = engine.rewrite_module(function_node)
                dependencies = extract_dependencies(function_node, engine.analysis)
            except Exception as e:
                console.print(f"[red]Error rewriting module {module_id}: {e}[/red]")
                debug_log("error", f"Error rewriting module {module_id}", {"idiom": idiom.kind, "error": str(e)})
                result.errors.append({"module": module_id, "error": str(e)})
                continue
            result.rewrites[module_id] = stats
            location = node_range(function_node)

            debug_log("debug", f"Module {module_id} rewritten", {
                "idiom": idiom.kind,
                "renames": stats.renames,
                "demangled": stats.demangle.total,
                "dependencies": dependencies,
            })

            for chunk_id in idiom.chunk_ids:
                result.records.append(ModuleRecord(
                    module_id=module_id,
                    chunk_ids=[chunk_id],
                    function_node=function_node,
                    dependencies=list(dependencies),
                    idiom=idiom.kind,
                    location=location,
                ))
