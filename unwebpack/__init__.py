"""Unwebpack - recover readable modules from minified webpack bundles."""

__version__ = "0.1.0"
__author__ = "unwebpack"

from unwebpack.config import Config, load_aliases
from unwebpack.core.bundle import BundleProcessor, BundleResult, ModuleRecord
from unwebpack.core.generator import generate_code
from unwebpack.core.parser import parse_javascript

__all__ = [
    "__version__",
    "Config",
    "load_aliases",
    "BundleProcessor",
    "BundleResult",
    "ModuleRecord",
    "generate_code",
    "parse_javascript",
]
