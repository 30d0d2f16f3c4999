"""Configuration management for unwebpack."""

import json
import re
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from rich.console import Console

from unwebpack.core.scope import is_valid_identifier

console = Console()

# Load .env from multiple locations
# 1. Current working directory
load_dotenv()
# 2. Project directory (where this package is installed)
_package_dir = Path(__file__).parent
load_dotenv(_package_dir.parent / ".env")
# 3. Home directory config
load_dotenv(Path.home() / ".config" / "unwebpack" / ".env")


class AliasConfigError(ValueError):
    """Raised for an alias document that is not a JSON object."""


class Config(BaseSettings):
    """Configuration for unwebpack."""

    # Output Settings
    output_dir: Path = Field(default=Path("out"), description="Directory receiving mod_<id>.js files")
    module_file_prefix: str = Field(default="mod_", description="File name prefix of emitted modules")
    only_write_changed: bool = Field(default=True, description="Leave module files alone when content is unchanged")
    graph_file: str = Field(default="dependency-graph.json", description="Bundle dependency graph file name")
    source_graph_file: str = Field(
        default="source-dependency-graph.json",
        description="Source tree dependency graph file name",
    )

    # Rewrite Settings
    alias_file: Optional[Path] = Field(default=None, description="JSON (comments allowed) mapping module ids to names")
    require_name: str = Field(default="__webpack_require__", description="Name given to the require parameter")
    interop_helper_name: str = Field(
        default="interopRequireDefault",
        description="Name given to detected interop-default helpers",
    )
    max_name_attempts: int = Field(default=100_000, ge=1, description="Candidate limit per allocated name")

    # Collaborator Settings
    lint_enabled: bool = Field(default=True, description="Run ESLint over emitted modules")
    prettier_format: bool = Field(default=True, description="Apply prettier formatting to output")
    print_width: int = Field(default=180, ge=40, description="Prettier print width")
    single_quote: bool = Field(default=True, description="Prefer single quotes when formatting")
    tool_timeout_seconds: int = Field(default=30, ge=1, description="Timeout for npx lint/format runs")

    model_config = {
        "env_prefix": "UNWEBPACK_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("require_name", "interop_helper_name")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Reject names that cannot be JavaScript bindings."""
        if not is_valid_identifier(v):
            raise ValueError(f"{v!r} is not a valid JavaScript identifier")
        return v

    @field_validator("module_file_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Keep module files inside the output directory."""
        if "/" in v or "\\" in v:
            raise ValueError("module_file_prefix must not contain path separators")
        return v


_BLOCK_COMMENT_RE = re.compile(r"/\*[\s\S]*?\*/")
# Not after ":" so that "https://..." survives
_LINE_COMMENT_RE = re.compile(r"(^|[^:])//.*$", re.MULTILINE)


def strip_jsonc_comments(text: str) -> str:
    """Remove ``/* */`` and ``//`` comments from a relaxed JSON document."""
    text = _BLOCK_COMMENT_RE.sub("", text)
    return _LINE_COMMENT_RE.sub(r"\1", text)


def parse_aliases(text: str) -> dict[str, str]:
    """Parse an alias document into ``{module id: name}``.

    Keys are normalized with ``str()``; values that are not usable as
    identifiers are dropped with a warning.

    Raises:
        AliasConfigError: If the document is not a JSON object
    """
    try:
        data = json.loads(strip_jsonc_comments(text))
    except json.JSONDecodeError as e:
        raise AliasConfigError(f"Invalid alias document: {e}") from e

    if not isinstance(data, dict):
        raise AliasConfigError("Alias document must be an object mapping module ids to names")

    aliases = {}
    for key, value in data.items():
        if not isinstance(value, str) or not is_valid_identifier(value):
            console.print(f"[yellow]Ignoring alias for module {key}: {value!r} is not a valid identifier[/yellow]")
            continue
        aliases[str(key)] = value
    return aliases


def load_aliases(path: Optional[Path]) -> dict[str, str]:
    """Load an alias file, or return an empty map when no path is given."""
    if path is None:
        return {}
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise AliasConfigError(f"Cannot read alias file {path}: {e}") from e
    return parse_aliases(text)
