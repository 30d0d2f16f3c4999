"""Tests for bundle idiom recognition."""

from unwebpack.core.parser import parse_javascript
from unwebpack.core.recognizer import (
    BootstrapIIFE,
    RuntimePushArray,
    RuntimePushConcatPadded,
    RuntimePushObjectMap,
    classify_call,
    iter_idioms,
    iter_module_functions,
)


def idioms_of(code: str) -> list:
    return list(iter_idioms(parse_javascript(code)))


def module_ids(code: str) -> list:
    return [module_id for idiom in idioms_of(code) for module_id, _ in iter_module_functions(idiom)]


class TestRuntimePush:
    """Tests for the runtime push idioms."""

    def test_object_map(self, chunk_push_code):
        """Test ``push([[0], {0: fn}])``."""
        idioms = idioms_of(chunk_push_code)

        assert len(idioms) == 1
        assert isinstance(idioms[0], RuntimePushObjectMap)
        assert idioms[0].kind == "runtime-push-object"
        assert idioms[0].chunk_ids == [0]
        assert module_ids(chunk_push_code) == [0]

    def test_webpack_chunk_assignment_target(self):
        """Test ``(self.webpackChunkapp = self.webpackChunkapp || []).push(...)``."""
        code = "(self.webpackChunkapp = self.webpackChunkapp || []).push([[5, 6], {12: function (e) {}, 'ab': function (e) {}}]);"

        idioms = idioms_of(code)

        assert idioms[0].chunk_ids == [5, 6]
        assert module_ids(code) == [12, "ab"]

    def test_numeric_string_keys(self):
        """Test that numeric string keys become integers."""
        code = "webpackJsonp.push([['1'], {'42': function () {}, '007': function () {}, abc: function () {}}]);"

        assert idioms_of(code)[0].chunk_ids == [1]
        assert module_ids(code) == [42, "007", "abc"]

    def test_array_of_functions(self):
        """Test that array positions are module ids and holes keep their position."""
        code = "window.webpackJsonp.push([[0], [function () {}, , function () {}]]);"

        idioms = idioms_of(code)

        assert isinstance(idioms[0], RuntimePushArray)
        assert module_ids(code) == [0, 2]

    def test_concat_padded(self, concat_padded_code):
        """Test ``Array(5).concat([fn])``."""
        idioms = idioms_of(concat_padded_code)

        assert isinstance(idioms[0], RuntimePushConcatPadded)
        assert idioms[0].base == 5
        assert idioms[0].chunk_ids == [2]
        assert module_ids(concat_padded_code) == [5]

    def test_new_array_concat(self):
        """Test ``new Array(3).concat([fn, fn])``."""
        code = "webpackJsonp.push([[1], new Array(3).concat([function () {}, function () {}])]);"

        assert module_ids(code) == [3, 4]

    def test_other_push_calls_ignored(self):
        """Test that pushes onto other arrays are not idioms."""
        assert idioms_of("list.push([[0], {0: function () {}}]);") == []

    def test_malformed_payload_ignored(self):
        """Test pushes without a chunk id array."""
        assert idioms_of("webpackJsonp.push([0, {0: function () {}}]);") == []
        assert idioms_of("webpackJsonp.push(x);") == []


class TestBootstrap:
    """Tests for the bootstrap runtime idiom."""

    def test_bootstrap_array(self, bootstrap_bundle):
        """Test the IIFE with a module array."""
        idioms = idioms_of(bootstrap_bundle)

        assert len(idioms) == 1
        assert isinstance(idioms[0], BootstrapIIFE)
        assert idioms[0].chunk_ids == [0]
        assert module_ids(bootstrap_bundle) == [0, 1]

    def test_bootstrap_object(self):
        """Test the IIFE with a module object."""
        code = "(function (modules) { return modules; })({0: function (e, t) {}, 7: function (e, t) {}});"

        assert module_ids(code) == [0, 7]

    def test_plain_iife_is_not_bootstrap(self):
        """Test that an IIFE without module functions is ignored."""
        assert idioms_of("(function (x) { return x; })({a: 1});") == []


class TestClassifyCall:
    """Tests for classify_call and traversal."""

    def test_non_call(self):
        """Test that other nodes are not classified."""
        program = parse_javascript("x;")

        assert classify_call(program.body[0].expression) is None

    def test_multiple_idioms_in_order(self):
        """Test that every idiom of a file is found in source order."""
        code = (
            "webpackJsonp.push([[0], {1: function () {}}]);\n"
            "webpackJsonp.push([[1], [function () {}]]);"
        )

        assert [idiom.kind for idiom in idioms_of(code)] == ["runtime-push-object", "runtime-push-array"]

    def test_nested_idiom(self):
        """Test that idioms wrapped in other code are found."""
        code = "!function () { webpackJsonp.push([[3], {9: function () {}}]); }();"

        assert module_ids(code) == [9]
