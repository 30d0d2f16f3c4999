"""Tests for dependency graph building."""

import json

from unwebpack.core.bundle import ModuleRecord
from unwebpack.core.graph import (
    GraphData,
    NodeIdRegistry,
    build_bundle_graph,
    build_module_dir_graph,
    build_source_graph,
    is_relative_specifier,
    save_graph,
)


def record(module_id, dependencies, chunk=0):
    return ModuleRecord(module_id=module_id, chunk_ids=[chunk], function_node=None, dependencies=dependencies)


class TestNodeIdRegistry:
    """Tests for NodeIdRegistry."""

    def test_stable_ids(self):
        """Test first-seen ids."""
        registry = NodeIdRegistry()

        assert registry.get("a") == 0
        assert registry.get("b") == 1
        assert registry.get("a") == 0
        assert "b" in registry
        assert len(registry) == 2


class TestBundleGraph:
    """Tests for build_bundle_graph function."""

    def test_nodes_and_links(self):
        """Test the graph of a few records."""
        graph = build_bundle_graph([record(0, [1, 2]), record(1, [2]), record(2, [])])

        assert graph.nodes == [
            {"id": 0, "label": "mod_0", "file": "mod_0.js"},
            {"id": 1, "label": "mod_1", "file": "mod_1.js"},
            {"id": 2, "label": "mod_2", "file": "mod_2.js"},
        ]
        assert graph.links == [
            {"source": 0, "target": 1},
            {"source": 0, "target": 2},
            {"source": 1, "target": 2},
        ]

    def test_chunk_duplicates_repeat_links(self):
        """Test that each record contributes its links."""
        graph = build_bundle_graph([record(0, [1], chunk=0), record(0, [1], chunk=1)])

        assert len(graph.nodes) == 1
        assert graph.links == [{"source": 0, "target": 1}, {"source": 0, "target": 1}]

    def test_string_ids(self):
        """Test that string module ids get integers above the largest int id."""
        graph = build_bundle_graph([record(4, []), record("abc", [4])])

        assert graph.nodes[1] == {"id": 5, "label": "mod_abc", "file": "mod_abc.js"}
        assert graph.links == [{"source": 5, "target": 4}]

    def test_string_ids_above_dependency_ids(self):
        """Test that a dependency on a module from another chunk keeps its own node."""
        graph = build_bundle_graph([record(3, []), record("app", [10])])

        assert graph.nodes[1]["id"] == 11
        assert graph.links == [{"source": 11, "target": 10}]


class TestModuleDirGraph:
    """Tests for build_module_dir_graph function."""

    def test_directory(self, tmp_path):
        """Test scanning emitted module files."""
        (tmp_path / "mod_2.js").write_text(
            "export default function (module, exports, __webpack_require__) {\n  __webpack_require__(1);\n}\n"
        )
        (tmp_path / "mod_1.js").write_text("export default function (module, exports) {\n  module.exports = 1;\n}\n")
        (tmp_path / "notes.js").write_text("__webpack_require__(9);")

        graph = build_module_dir_graph(tmp_path)

        assert graph.nodes == [
            {"id": 1, "label": "mod_1", "file": "mod_1.js"},
            {"id": 2, "label": "mod_2", "file": "mod_2.js"},
        ]
        assert graph.links == [{"source": 2, "target": 1}]


class TestSourceGraph:
    """Tests for build_source_graph function."""

    def test_relative_specifier(self):
        """Test relative and bare specifiers."""
        assert is_relative_specifier("./a.js")
        assert is_relative_specifier("../b.js")
        assert not is_relative_specifier("react")

    def test_source_tree(self, tmp_path):
        """Test an ES module tree with default import labels."""
        (tmp_path / "lib").mkdir()
        (tmp_path / "a.js").write_text("import Button from './lib/button.js';\nimport React from 'react';\nexport default Button;\n")
        (tmp_path / "lib" / "button.js").write_text("export * from './util.js';\nexport default 1;\n")
        (tmp_path / "lib" / "util.js").write_text("export const x = 1;\n")

        graph = build_source_graph(tmp_path)
        labels = {node["label"]: node["id"] for node in graph.nodes}

        assert set(labels) == {"a.js", "Button", "util.js"}
        assert {"source": labels["a.js"], "target": labels["Button"]} in graph.links
        assert {"source": labels["Button"], "target": labels["util.js"]} in graph.links
        assert len(graph.links) == 2

    def test_unparsable_file_falls_back_to_regex(self, tmp_path):
        """Test the textual import scan."""
        (tmp_path / "a.js").write_text("import Thing from './b.js';\nlet = ;\n")
        (tmp_path / "b.js").write_text("export default 2;\n")

        graph = build_source_graph(tmp_path)

        assert sorted(node["label"] for node in graph.nodes) == ["Thing", "a.js"]
        assert len(graph.links) == 1


class TestSaveGraph:
    """Tests for save_graph function."""

    def test_json_shape(self, tmp_path):
        """Test the written document."""
        path = tmp_path / "graphs" / "dependency-graph.json"

        save_graph(GraphData(nodes=[{"id": 0}], links=[]), path)

        assert json.loads(path.read_text()) == {"nodes": [{"id": 0}], "links": []}
