"""CLI interface for unwebpack."""

import asyncio
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from tqdm import tqdm

from unwebpack import __version__, debug
from unwebpack.config import AliasConfigError, Config, load_aliases
from unwebpack.core.analyzer import summarize_dependencies
from unwebpack.core.bundle import BundleProcessor, BundleResult, ModuleRecord
from unwebpack.core.generator import module_filename, module_source, save_output
from unwebpack.core.graph import build_bundle_graph, build_module_dir_graph, build_source_graph, save_graph
from unwebpack.core.parser import looks_like_bundle
from unwebpack.debug import debug_log, setup_debug_logger
from unwebpack.plugins import BeautifyPlugin, LintPlugin, PluginChain, PluginContext

console = Console()


def build_plugin_chain(config: Config) -> PluginChain:
    """Lint and format collaborators enabled by the configuration."""
    chain = PluginChain()
    if config.lint_enabled:
        chain.add_plugin(LintPlugin(timeout=config.tool_timeout_seconds))
    if config.prettier_format:
        chain.add_plugin(BeautifyPlugin(
            print_width=config.print_width,
            single_quote=config.single_quote,
            timeout=config.tool_timeout_seconds,
        ))
    return chain


async def emit_module(
    record: ModuleRecord,
    output_dir: Path,
    config: Config,
    plugins: Optional[PluginChain] = None,
) -> bool:
    """Generate, post-process and write one module file.

    Returns:
        True if the file was written
    """
    output_path = output_dir / module_filename(config.module_file_prefix, record.module_id)
    context = PluginContext(
        source_code=module_source(record.function_node),
        file_path=output_path,
        module_id=record.module_id,
    )
    if plugins is not None and len(plugins):
        context = await plugins.run(context)

    written = save_output(context.source_code, output_path, only_if_changed=config.only_write_changed)
    if written:
        debug_log("info", f"Generated {output_path}")
    return written


async def process_file(
    file_path: Path,
    config: Config,
    aliases: dict[str, str],
    output_dir: Optional[Path] = None,
    plugins: Optional[PluginChain] = None,
) -> dict:
    """Recover the modules of one bundle and write them out.

    Args:
        file_path: Bundle file
        config: Configuration
        aliases: Module id to preferred binding name
        output_dir: Where module files go (defaults to ``config.output_dir``)
        plugins: Lint/format chain applied to every module

    Returns:
        Processing statistics, with the BundleResult under ``"result"``
    """
    debug_log("info", "=" * 80)
    debug_log("info", f"Starting processing file: {file_path}")

    output_dir = output_dir or config.output_dir
    processor = BundleProcessor(config, aliases)
    result = processor.process_file(file_path)

    if not result.records:
        console.print(f"[yellow]No webpack modules found in {file_path}[/yellow]")

    written = unchanged = 0
    failed = list(result.errors)
    records = result.unique_records()
    for record in tqdm(records, desc=file_path.name, unit="module", leave=False, disable=not records):
        try:
            if await emit_module(record, output_dir, config, plugins):
                written += 1
            else:
                unchanged += 1
        except Exception as e:
            console.print(f"[red]Error writing module {record.module_id}: {e}[/red]")
            debug_log("error", f"Error writing module {record.module_id}", {"error": str(e)})
            failed.append({"module": record.module_id, "error": str(e)})

    stats = {
        "file": str(file_path),
        "idioms": ", ".join(sorted(set(result.idioms))) or "-",
        "modules": len(records),
        "records": len(result.records),
        "written": written,
        "unchanged": unchanged,
        "failed": len(failed),
        "failures": failed,
        "result": result,
    }
    debug_log("info", "Processing complete", {k: v for k, v in stats.items() if k != "result"})
    return stats


async def process_directory(
    dir_path: Path,
    config: Config,
    aliases: dict[str, str],
    output_dir: Optional[Path] = None,
    plugins: Optional[PluginChain] = None,
) -> list[dict]:
    """Process every bundle file in a directory; one file failing does not stop the rest."""
    js_files = sorted(p for p in dir_path.rglob("*.js") if "node_modules" not in p.parts)
    console.print(f"[blue]Found {len(js_files)} JavaScript files in {dir_path}[/blue]")

    results = []
    for js_file in js_files:
        try:
            if not looks_like_bundle(js_file.read_text(encoding="utf-8")):
                debug_log("debug", f"Skipping {js_file}: no webpack markers")
                continue
            results.append(await process_file(js_file, config, aliases, output_dir, plugins))
        except Exception as e:
            console.print(f"[red]Error processing {js_file}: {e}[/red]")
            debug_log("error", f"Error processing {js_file}", {"error": str(e)})
            results.append({"file": str(js_file), "error": str(e)})

    return results


def print_summary(results: list[dict]) -> None:
    """Print the per-file summary table."""
    table = Table(title="Processing Summary")
    table.add_column("File")
    table.add_column("Idioms")
    table.add_column("Modules")
    table.add_column("Written")
    table.add_column("Failed")
    table.add_column("Status")

    for r in results:
        status = "✓" if "error" not in r else f"✗ {r['error'][:60]}"
        table.add_row(
            r.get("file", "unknown"),
            r.get("idioms", "-"),
            str(r.get("modules", 0)),
            str(r.get("written", 0)),
            str(r.get("failed", 0)),
            status,
        )

    console.print(table)


def _start_debug(enabled: bool, debug_file: Optional[Path], **details) -> None:
    if not enabled:
        return
    setup_debug_logger(debug_file)
    console.print(f"[yellow]Debug logging enabled: {debug.debug_log_file}[/yellow]")
    debug_log("info", "Debug logging started", {k: str(v) for k, v in details.items()})


def _load_aliases_or_exit(alias_file: Optional[Path]) -> dict[str, str]:
    try:
        return load_aliases(alias_file)
    except AliasConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)


def _bundle_or_exit(input_path: Path, config: Config, aliases: dict[str, str]) -> BundleResult:
    try:
        return BundleProcessor(config, aliases).process_file(input_path)
    except Exception as e:
        console.print(f"[red]Error processing {input_path}: {e}[/red]")
        raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
def main():
    """Unwebpack - split webpack bundles into readable modules."""


@main.command()
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", "output_dir", type=click.Path(file_okay=False, path_type=Path), help="Output directory (default: out)")
@click.option("--aliases", "alias_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="JSON/JSONC file mapping module ids to names")
@click.option("--no-lint", is_flag=True, help="Disable ESLint autofix")
@click.option("--no-prettier", is_flag=True, help="Disable prettier formatting")
@click.option("--graph", "write_graph", is_flag=True, help="Also write dependency-graph.json")
@click.option("--debug", "debug_enabled", is_flag=True, help="Enable debug logging to file")
@click.option("--debug-file", type=click.Path(path_type=Path), help="Debug log file path (default: unwebpack_debug_TIMESTAMP.log)")
def unpack(
    input_path: Path,
    output_dir: Optional[Path],
    alias_file: Optional[Path],
    no_lint: bool,
    no_prettier: bool,
    write_graph: bool,
    debug_enabled: bool,
    debug_file: Optional[Path],
):
    """Split webpack bundles into mod_<id>.js files.

    INPUT_PATH can be a bundle file or a directory containing bundles.
    """
    _start_debug(debug_enabled, debug_file, input_path=input_path, output_dir=output_dir)

    # Only override .env values if CLI args are explicitly provided
    config_kwargs = {}
    if output_dir:
        config_kwargs["output_dir"] = output_dir
    if alias_file:
        config_kwargs["alias_file"] = alias_file
    if no_lint:
        config_kwargs["lint_enabled"] = False
    if no_prettier:
        config_kwargs["prettier_format"] = False
    config = Config(**config_kwargs)

    aliases = _load_aliases_or_exit(config.alias_file)
    plugins = build_plugin_chain(config)

    async def run() -> list[dict]:
        if input_path.is_file():
            try:
                return [await process_file(input_path, config, aliases, plugins=plugins)]
            except Exception as e:
                console.print(f"[red]Error processing {input_path}: {e}[/red]")
                debug_log("error", "Fatal error processing file", {"error": str(e)})
                return [{"file": str(input_path), "error": str(e)}]
        return await process_directory(input_path, config, aliases, plugins=plugins)

    results = asyncio.run(run())
    print_summary(results)

    if write_graph:
        records = [record for r in results if "result" in r for record in r["result"].records]
        save_graph(build_bundle_graph(records, config.module_file_prefix), config.output_dir / config.graph_file)

    if debug_enabled:
        console.print(f"\n[yellow]Debug log saved to: {debug.debug_log_file}[/yellow]")

    if results and all("error" in r for r in results):
        raise SystemExit(1)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", "output_file", type=click.Path(dir_okay=False, path_type=Path), help="Graph file (default: dependency-graph.json)")
@click.option("--aliases", "alias_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="JSON/JSONC file mapping module ids to names")
@click.option("--debug", "debug_enabled", is_flag=True, help="Enable debug logging to file")
@click.option("--debug-file", type=click.Path(path_type=Path), help="Debug log file path")
def deps(
    input_path: Path,
    output_file: Optional[Path],
    alias_file: Optional[Path],
    debug_enabled: bool,
    debug_file: Optional[Path],
):
    """Write the dependency graph of a bundle without writing modules."""
    _start_debug(debug_enabled, debug_file, input_path=input_path)
    config = Config()
    aliases = _load_aliases_or_exit(alias_file or config.alias_file)
    result = _bundle_or_exit(input_path, config, aliases)

    console.print(f"[blue]Found {result.module_count} modules ({len(result.records)} chunk records)[/blue]")
    save_graph(build_bundle_graph(result.records, config.module_file_prefix), output_file or Path(config.graph_file))


@main.command()
@click.argument("module_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("-o", "--output", "output_file", type=click.Path(dir_okay=False, path_type=Path), help="Graph file (default: dependency-graph.json)")
def graph(module_dir: Path, output_file: Optional[Path]):
    """Build the dependency graph of a directory of mod_<id>.js files."""
    config = Config()
    console.print(f"[blue]Scanning directory: {module_dir}[/blue]")
    graph_data = build_module_dir_graph(module_dir, config.module_file_prefix, config.require_name)
    save_graph(graph_data, output_file or Path(config.graph_file))


@main.command()
@click.argument("source_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("-o", "--output", "output_file", type=click.Path(dir_okay=False, path_type=Path), help="Graph file (default: source-dependency-graph.json)")
def srcgraph(source_dir: Path, output_file: Optional[Path]):
    """Build the import graph of an ES-module source tree."""
    config = Config()
    console.print(f"[blue]Scanning directory recursively: {source_dir}[/blue]")
    graph_data = build_source_graph(source_dir)
    save_graph(graph_data, output_file or Path(config.source_graph_file))


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--top", default=10, show_default=True, help="Modules to list by import count")
def analyze(input_path: Path, top: int):
    """Show dependency statistics of a bundle."""
    config = Config()
    result = _bundle_or_exit(input_path, config, {})
    summary = summarize_dependencies(result.dependency_map(), top=top)

    console.print(f"[blue]File:[/blue] {input_path}")
    console.print(f"[blue]Idioms:[/blue] {', '.join(sorted(set(result.idioms))) or 'none'}")
    console.print(f"[blue]Modules:[/blue] {summary.module_count}")
    console.print(f"[blue]Modules with dependencies:[/blue] {summary.modules_with_dependencies}")

    importers = Table(title="Top modules by import count")
    importers.add_column("Module")
    importers.add_column("Imports")
    importers.add_column("Dependencies")
    for module_id, dependencies in summary.top_importers:
        importers.add_row(str(module_id), str(len(dependencies)), ", ".join(map(str, dependencies)))
    console.print(importers)

    imported = Table(title="Most imported modules")
    imported.add_column("Module")
    imported.add_column("Imported by")
    for module_id, modules in summary.most_imported:
        imported.add_row(str(module_id), str(len(modules)))
    console.print(imported)


if __name__ == "__main__":
    main()
