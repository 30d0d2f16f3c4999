"""Beautify plugin for code formatting."""

import shutil
import subprocess

import jsbeautifier
from rich.console import Console

from unwebpack.plugins.base import Plugin, PluginContext

console = Console()


class BeautifyPlugin(Plugin):
    """Plugin to beautify/format JavaScript code."""

    name = "beautify"
    description = "Beautify JavaScript code using prettier or js-beautify"
    priority = 20  # After linting

    def __init__(
        self,
        use_prettier: bool = True,
        fallback_to_js_beautify: bool = True,
        print_width: int = 180,
        single_quote: bool = True,
        timeout: int = 30,
    ):
        self.use_prettier = use_prettier
        self.fallback_to_js_beautify = fallback_to_js_beautify
        self.print_width = print_width
        self.single_quote = single_quote
        self.timeout = timeout

    async def process(self, context: PluginContext) -> PluginContext:
        """Beautify the code."""
        code = context.source_code

        if self.use_prettier and shutil.which("npx") is not None:
            code = await self._format_with_prettier(code)

        if self.fallback_to_js_beautify and code == context.source_code:
            code = await self._format_with_js_beautify(code)

        context.source_code = code
        return context

    async def _format_with_prettier(self, code: str) -> str:
        """Format code using prettier."""
        command = ["npx", "--no-install", "prettier", "--parser", "babel", "--print-width", str(self.print_width)]
        if self.single_quote:
            command.append("--single-quote")
        try:
            result = subprocess.run(
                command,
                input=code,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )

            if result.returncode == 0 and result.stdout:
                return result.stdout
            console.print(f"[yellow]Prettier failed: {result.stderr[:100]}[/yellow]")

        except subprocess.TimeoutExpired:
            console.print("[yellow]Prettier timed out[/yellow]")
        except Exception as e:
            console.print(f"[yellow]Prettier error: {e}[/yellow]")

        return code

    async def _format_with_js_beautify(self, code: str) -> str:
        """Format code using the jsbeautifier library as fallback."""
        try:
            options = jsbeautifier.default_options()
            options.indent_size = 2
            options.wrap_line_length = self.print_width
            options.end_with_newline = True
            return jsbeautifier.beautify(code, options)
        except Exception as e:
            console.print(f"[yellow]js-beautify error: {e}[/yellow]")
        return code
