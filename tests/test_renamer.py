"""Tests for the module rename engine."""

from unwebpack.core.allocator import NameAllocator
from unwebpack.core.generator import generate_code
from unwebpack.core.parser import parse_javascript
from unwebpack.core.renamer import RenameEngine, is_single_letter, literal_module_id
from unwebpack.core.scope import analyze_scopes


def engine_for(code: str, aliases=None):
    """Parse a parenthesized module function and build an engine for it."""
    program = parse_javascript(code)
    function_node = program.body[0].expression
    engine = RenameEngine(analyze_scopes(program), NameAllocator(), aliases=aliases)
    return engine, function_node


class TestHelpers:
    """Tests for small helper functions."""

    def test_is_single_letter(self):
        """Test single-letter names."""
        assert is_single_letter("e")
        assert is_single_letter("Z")
        assert not is_single_letter("_")
        assert not is_single_letter("ab")

    def test_literal_module_id(self):
        """Test module ids of literal arguments."""
        program = parse_javascript("f(12, 'abc', true, x);")
        args = program.body[0].expression.arguments

        assert [literal_module_id(arg) for arg in args] == [12, "abc", None, None]


class TestNormalizeParams:
    """Tests for parameter normalization."""

    def test_wrapper_params(self):
        """Test ``(e, t, n)`` to ``(module, exports, __webpack_require__)``."""
        engine, fn = engine_for("(function (e, t, n) { e.exports = n(1); });")

        assert engine.normalize_params(fn) == 3
        code = generate_code(fn)
        assert "function (module, exports, __webpack_require__)" in code
        assert "module.exports = __webpack_require__(1);" in code

    def test_conflicting_local_is_moved(self):
        """Test that a local already named ``module`` gets a fresh name."""
        engine, fn = engine_for("(function (e, t, n) { var module = 1; e.exports = module; });")

        engine.normalize_params(fn)
        code = generate_code(fn)

        assert "var _module = 1;" in code
        assert "module.exports = _module;" in code

    def test_outer_name_is_not_captured(self):
        """Test that a parameter keeps its name when the target is used from outside."""
        engine, fn = engine_for("(function (e, t, n) { e.exports = module; });")

        assert engine.normalize_params(fn) == 2
        assert "function (e, exports, __webpack_require__)" in generate_code(fn)

    def test_fewer_params(self):
        """Test a wrapper without the require parameter."""
        engine, fn = engine_for("(function (e, t) { e.exports = t; });")

        engine.normalize_params(fn)

        assert "module.exports = exports;" in generate_code(fn)


class TestRequireBindings:
    """Tests for require and interop detection."""

    def test_require_binding(self):
        """Test ``var r = n(7)`` to ``require_r``."""
        engine, fn = engine_for("(function (e, t, n) { var r = n(7); e.exports = r.x; });")

        stats = engine.rewrite_module(fn)
        code = generate_code(fn)

        assert "var require_r = __webpack_require__(7);" in code
        assert "module.exports = require_r.x;" in code
        assert stats.require_bindings == 1

    def test_require_n(self):
        """Test ``n.n(n(3))`` counts as a require of 3."""
        engine, fn = engine_for("(function (e, t, n) { var o = n.n(n(3)); t.y = o; });")

        engine.rewrite_module(fn)

        assert "var require_o = __webpack_require__.n(__webpack_require__(3));" in generate_code(fn)

    def test_interop_helper(self):
        """Test that the interop helper is renamed and wrapped requires become ``import_``."""
        engine, fn = engine_for(
            "(function (e, t, n) {"
            " function r(e) { return e && e.__esModule ? e : { default: e }; }"
            " var o = r(n(3)); t.x = o.default; });"
        )

        stats = engine.rewrite_module(fn)
        code = generate_code(fn)

        assert "function interopRequireDefault(e_aaa)" in code
        assert "var import_o = interopRequireDefault(__webpack_require__(3));" in code
        assert "exports.x = import_o.default;" in code
        assert stats.interop_helpers == 1

    def test_not_an_interop_helper(self):
        """Test that a similar but different helper is left alone."""
        engine, fn = engine_for(
            "(function (e, t, n) { function r(e) { return e && e.__esModule ? e : { value: e }; } t.r = r; });"
        )

        assert engine.rewrite_module(fn).interop_helpers == 0
        assert "interopRequireDefault" not in generate_code(fn)

    def test_local_named_like_require_is_not_require(self):
        """Test that only calls resolving to the third parameter count."""
        engine, fn = engine_for("(function (e, t, n) { function f(n) { var r = n(4); return r; } t.f = f; });")

        engine.rewrite_module(fn)

        assert "require_r" not in generate_code(fn)


class TestAliases:
    """Tests for alias substitution."""

    def test_alias_wins_over_require_name(self):
        """Test ``{"7": "React"}`` renames ``r`` to ``React``."""
        engine, fn = engine_for(
            "(function (e, t, n) { var r = n(7); e.exports = r.createElement; });",
            aliases={"7": "React"},
        )

        stats = engine.rewrite_module(fn)
        code = generate_code(fn)

        assert "var React = __webpack_require__(7);" in code
        assert "module.exports = React.createElement;" in code
        assert "require_r" not in code
        assert stats.aliases == 1

    def test_alias_collision_gets_fresh_name(self):
        """Test an alias already used as a global inside the module."""
        engine, fn = engine_for(
            "(function (e, t, n) { var r = n(7); e.exports = [r, React]; });",
            aliases={"7": "React"},
        )

        engine.rewrite_module(fn)
        code = generate_code(fn)

        assert "var _React = __webpack_require__(7);" in code
        assert "module.exports = [ _React, React ];" in " ".join(code.split())


class TestSingleLetterBindings:
    """Tests for single-letter renaming."""

    def test_every_single_letter_binding(self):
        """Test variables, parameters, functions and catch parameters."""
        engine, fn = engine_for(
            "(function (e, t, n) {"
            " var a = 1;"
            " function b(c) { try { return c(a); } catch (d) { return d; } }"
            " e.exports = b; });"
        )

        stats = engine.rewrite_module(fn)
        code = generate_code(fn)

        for name in ("a_aaa", "b_aaa", "c_aaa", "d_aaa"):
            assert name in code
        assert stats.single_letter == 4

    def test_same_letter_in_nested_scopes(self):
        """Test that shadowing single letters get distinct names."""
        engine, fn = engine_for("(function (e, t, n) { var a = 1; t.f = function (a) { return a; }; t.a = a; });")

        engine.rewrite_module(fn)
        code = generate_code(fn)

        assert "var a_aaa = 1;" in code
        assert "function (a_aab)" in code
        assert "return a_aab;" in code
        assert "exports.a = a_aaa;" in code

    def test_multi_letter_names_untouched(self):
        """Test that longer names are kept."""
        engine, fn = engine_for("(function (e, t, n) { var value = 1; t.v = value; });")

        assert engine.rewrite_module(fn).single_letter == 0
        assert "var value = 1;" in generate_code(fn)
