"""Core bundle recognition and rewriting functionality."""

from unwebpack.core.parser import JavaScriptParseError, parse_javascript
from unwebpack.core.scope import ScopeAnalysis, analyze_scopes
from unwebpack.core.recognizer import classify_call, iter_idioms, iter_module_functions
from unwebpack.core.renamer import RenameEngine
from unwebpack.core.deps import extract_dependencies
from unwebpack.core.generator import generate_code

__all__ = [
    "JavaScriptParseError",
    "parse_javascript",
    "ScopeAnalysis",
    "analyze_scopes",
    "classify_call",
    "iter_idioms",
    "iter_module_functions",
    "RenameEngine",
    "extract_dependencies",
    "generate_code",
]
