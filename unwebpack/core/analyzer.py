"""Dependency statistics over recovered modules."""

from dataclasses import dataclass, field
from typing import Mapping, Union

ModuleId = Union[int, str]


@dataclass
class DependencySummary:
    """Import statistics for one bundle."""
    module_count: int
    modules_with_dependencies: int
    top_importers: list[tuple[ModuleId, list[int]]] = field(default_factory=list)
    most_imported: list[tuple[int, list[ModuleId]]] = field(default_factory=list)


def _sort_key(module_id: ModuleId) -> tuple[int, str]:
    return (0, f"{module_id:020d}") if isinstance(module_id, int) else (1, str(module_id))


def summarize_dependencies(
    dependency_map: Mapping[ModuleId, list[int]],
    top: int = 10,
    most_imported: int = 5,
) -> DependencySummary:
    """Summarize a module id to dependencies map.

    Args:
        dependency_map: Module id to sorted dependency ids
        top: Number of modules to list by import count
        most_imported: Number of modules to list by importer count

    Returns:
        DependencySummary; ties keep module id order
    """
    ordered = sorted(dependency_map.items(), key=lambda item: _sort_key(item[0]))

    importers: dict[int, list[ModuleId]] = {}
    for module_id, dependencies in ordered:
        for dependency in dependencies:
            importers.setdefault(dependency, []).append(module_id)

    by_imports = sorted(
        (item for item in ordered if item[1]),
        key=lambda item: len(item[1]),
        reverse=True,
    )
    by_importers = sorted(
        sorted(importers.items(), key=lambda item: _sort_key(item[0])),
        key=lambda item: len(item[1]),
        reverse=True,
    )

    return DependencySummary(
        module_count=len(dependency_map),
        modules_with_dependencies=sum(1 for _, deps in ordered if deps),
        top_importers=by_imports[:top],
        most_imported=by_importers[:most_imported],
    )
