"""Plugin system for unwebpack."""

from unwebpack.plugins.base import Plugin, PluginChain, PluginContext
from unwebpack.plugins.beautify import BeautifyPlugin
from unwebpack.plugins.lint import LintPlugin

__all__ = ["Plugin", "PluginChain", "PluginContext", "BeautifyPlugin", "LintPlugin"]
