"""ESLint plugin: advisory lint and autofix of emitted modules."""

import json
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from rich.console import Console

from unwebpack.plugins.base import Plugin, PluginContext

console = Console()

# Core rules only: the output must lint without any plugin installed
ESLINT_CONFIG = {
    "root": True,
    "parserOptions": {"ecmaVersion": 2022, "sourceType": "module"},
    "extends": ["eslint:recommended"],
    "rules": {
        "one-var": ["error", "never"],
        "no-var": "error",
        "prefer-const": ["error", {"destructuring": "any", "ignoreReadBeforeAssign": True}],
        "eqeqeq": ["error", "always", {"null": "ignore"}],
        "semi": ["error", "always"],
        "eol-last": ["error", "always"],
        "indent": ["error", 2, {"SwitchCase": 1}],
        "object-shorthand": ["error", "always", {"ignoreConstructors": False, "avoidQuotes": True}],
        "curly": ["error", "all"],
        "block-spacing": ["error", "always"],
        "brace-style": ["error", "1tbs", {"allowSingleLine": True}],
        "yoda": "error",
        "no-trailing-spaces": "error",
        "prefer-template": "error",
        "no-else-return": "error",
        "no-undef-init": "error",
        "prefer-object-spread": "error",
        "quotes": ["error", "single"],
        "no-console": "off",
        "no-unused-vars": "warn",
    },
}


class LintPlugin(Plugin):
    """Plugin to lint and autofix JavaScript with ESLint."""

    name = "lint"
    description = "Lint and autofix module code using ESLint"
    priority = 10  # Before formatting

    def __init__(self, timeout: int = 30, report_messages: bool = True):
        self.timeout = timeout
        self.report_messages = report_messages

    def should_run(self, context: PluginContext) -> bool:
        """Check if npx is available."""
        return shutil.which("npx") is not None

    async def process(self, context: PluginContext) -> PluginContext:
        """Lint the code and take ESLint's fixed output when it has one."""
        code = context.source_code
        results = self._run_eslint(code)
        if not results:
            return context

        result = results[0]
        for message in result.get("messages", []):
            text = f"At line {message.get('line', '?')} : {message.get('message', '')}"
            context.warnings.append(text)
            if self.report_messages:
                console.print(f"[yellow]{context.file_path or 'module'}: {text}[/yellow]")

        fixed = result.get("output")
        if fixed:
            context.source_code = fixed
        return context

    def _run_eslint(self, code: str) -> list:
        """Run ESLint on stdin, return its JSON results (empty on any failure)."""
        config_path = None
        try:
            with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False, encoding="utf-8") as f:
                json.dump(ESLINT_CONFIG, f)
                config_path = Path(f.name)

            result = subprocess.run(
                [
                    "npx", "--no-install", "eslint",
                    "--no-eslintrc", "-c", str(config_path),
                    "--stdin", "--stdin-filename", "module.js",
                    "--fix-dry-run", "--format", "json",
                ],
                input=code,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env={**os.environ, "ESLINT_USE_FLAT_CONFIG": "false"},
            )

            # Exit code 1 means lint errors remain, the report is still valid
            if result.returncode not in (0, 1) or not result.stdout.strip():
                console.print(f"[yellow]ESLint failed: {result.stderr.strip()[:100]}[/yellow]")
                return []
            return json.loads(result.stdout)

        except subprocess.TimeoutExpired:
            console.print("[yellow]ESLint timed out[/yellow]")
        except json.JSONDecodeError as e:
            console.print(f"[yellow]ESLint output unreadable: {e}[/yellow]")
        except Exception as e:
            console.print(f"[yellow]ESLint error: {e}[/yellow]")
        finally:
            if config_path is not None:
                config_path.unlink(missing_ok=True)

        return []
