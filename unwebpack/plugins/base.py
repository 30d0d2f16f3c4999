"""Post-processing of emitted module sources by external collaborators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

from unwebpack.debug import debug_log


@dataclass
class PluginContext:
    """One emitted module on its way to disk.

    ``source_code`` starts as the generated ``export default function``
    text; each collaborator may replace it. ``applied`` lists the
    collaborators that ran, in order.
    """
    source_code: str
    file_path: Optional[Path] = None
    module_id: Optional[Any] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    applied: list[str] = field(default_factory=list)


class Plugin(ABC):
    """A linter or formatter applied to every emitted module.

    Collaborators are advisory. When the tool is missing, times out or
    fails, ``process`` returns the context with ``source_code`` untouched.
    """

    name: str = "base_plugin"
    description: str = "Base plugin class"
    priority: int = 100  # Lower priority runs first

    @abstractmethod
    async def process(self, context: PluginContext) -> PluginContext:
        """Rewrite ``context.source_code`` and return the context."""

    def should_run(self, context: PluginContext) -> bool:
        """Whether the collaborator is available for this module."""
        return True


class PluginChain:
    """Collaborators applied to each module, lowest priority first."""

    def __init__(self, plugins: Iterable[Plugin] = ()):
        self.plugins: list[Plugin] = sorted(plugins, key=lambda p: p.priority)

    def add_plugin(self, plugin: Plugin) -> "PluginChain":
        """Add a collaborator, keeping priority order. Returns self."""
        self.plugins.append(plugin)
        self.plugins.sort(key=lambda p: p.priority)
        return self

    async def run(self, context: PluginContext) -> PluginContext:
        """Pass one module through every available collaborator."""
        for plugin in self.plugins:
            if not plugin.should_run(context):
                debug_log("debug", f"Skipping {plugin.name} for module {context.module_id}")
                continue
            context = await plugin.process(context)
            context.applied.append(plugin.name)
        return context

    def __len__(self) -> int:
        return len(self.plugins)

    def __or__(self, other: "PluginChain") -> "PluginChain":
        """Combine two chains."""
        return PluginChain(self.plugins + other.plugins)
