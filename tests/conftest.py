"""Pytest configuration and fixtures."""

import pytest
from pathlib import Path

from unwebpack.config import Config


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def jsonp_bundle(fixtures_dir: Path) -> str:
    """Return contents of the webpackJsonp sample bundle."""
    return (fixtures_dir / "webpack_jsonp_bundle.js").read_text()


@pytest.fixture
def bootstrap_bundle(fixtures_dir: Path) -> str:
    """Return contents of the bootstrap runtime sample bundle."""
    return (fixtures_dir / "bootstrap_bundle.js").read_text()


@pytest.fixture
def chunk_push_code() -> str:
    """Return the smallest runtime-push bundle."""
    return "webpackJsonp.push([[0],{0:function(e,t,n){e.exports=!0}}]);"


@pytest.fixture
def concat_padded_code() -> str:
    """Return a runtime-push bundle with a padded module array."""
    return "window.webpackJsonp.push([[2], Array(5).concat([function(e,t,n){n(7)}])]);"


@pytest.fixture
def sibling_scopes_code() -> str:
    """Return a bundle with two modules each declaring a local ``a``."""
    return """
webpackJsonp.push([[0], {
  0: function (e, t, n) { var a = 1; e.exports = a; },
  1: function (e, t, n) { var a = 2; e.exports = a; }
}]);
"""


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Return a configuration writing into a temporary directory, tools off."""
    return Config(output_dir=tmp_path / "out", lint_enabled=False, prettier_format=False)


@pytest.fixture
def quoted_strings_code() -> str:
    """Return a bundle whose string literals contain quote characters."""
    return """
webpackJsonp.push([[0], {
  0: function (e, t, n) { e.exports = "Can't resolve " + n(3); },
  3: function (e, t) { t.message = 'say "hi"'; t.path = 'it\\'s'; }
}]);
"""
