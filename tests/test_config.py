"""Tests for configuration and alias loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from unwebpack.config import (
    AliasConfigError,
    Config,
    load_aliases,
    parse_aliases,
    strip_jsonc_comments,
)


class TestConfig:
    """Tests for Config settings."""

    def test_defaults(self):
        """Test default values."""
        config = Config()

        assert config.module_file_prefix == "mod_"
        assert config.require_name == "__webpack_require__"
        assert config.graph_file == "dependency-graph.json"

    def test_environment_override(self, monkeypatch):
        """Test UNWEBPACK_ environment variables."""
        monkeypatch.setenv("UNWEBPACK_PRINT_WIDTH", "120")
        monkeypatch.setenv("UNWEBPACK_LINT_ENABLED", "false")

        config = Config()

        assert config.print_width == 120
        assert config.lint_enabled is False

    def test_invalid_require_name(self):
        """Test that the require name must be an identifier."""
        with pytest.raises(ValidationError):
            Config(require_name="not-valid")

    def test_invalid_prefix(self):
        """Test that the prefix cannot leave the output directory."""
        with pytest.raises(ValidationError):
            Config(module_file_prefix="../mod_")

    def test_print_width_lower_bound(self):
        """Test the print width bound."""
        with pytest.raises(ValidationError):
            Config(print_width=10)


class TestAliases:
    """Tests for alias documents."""

    def test_strip_comments(self):
        """Test that comments go and URLs stay."""
        text = '{\n  // line\n  "1": "a", /* block */ "url": "https://x.y"\n}'

        stripped = strip_jsonc_comments(text)

        assert "line" not in stripped
        assert "block" not in stripped
        assert "https://x.y" in stripped

    def test_parse_aliases(self):
        """Test key normalization and invalid values."""
        text = '{\n  "7": "React", // react\n  "8": "not valid",\n  "9": 3\n}'

        assert parse_aliases(text) == {"7": "React"}

    def test_not_an_object(self):
        """Test that a list is rejected."""
        with pytest.raises(AliasConfigError):
            parse_aliases('["React"]')

    def test_invalid_json(self):
        """Test that broken JSON is rejected."""
        with pytest.raises(AliasConfigError):
            parse_aliases('{"7": }')

    def test_load_aliases(self, tmp_path):
        """Test loading from a file."""
        path = tmp_path / "aliases.jsonc"
        path.write_text('{"12": "lodash"}', encoding="utf-8")

        assert load_aliases(path) == {"12": "lodash"}
        assert load_aliases(None) == {}

    def test_missing_file(self, tmp_path):
        """Test a missing alias file."""
        with pytest.raises(AliasConfigError):
            load_aliases(Path(tmp_path / "missing.json"))
