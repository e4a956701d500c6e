# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from mlirlink.errors import LinkOrderError
from mlirlink.fsys import LocalFileSystem
from mlirlink.manifest import DependencyGraph, load_dependency_manifest, parse_manifest_text
from mlirlink.test_support import FakeFileSystem


def test_two_line_manifest_edges() -> None:
	graph = parse_manifest_text("A\tB\tC\nB\tC\n")
	assert sorted(graph.edge_pairs()) == [("A", "B"), ("A", "C"), ("B", "C")]
	assert graph.nodes() == ["A", "B", "C"]


def test_trailing_whitespace_and_trailing_tab_are_trimmed() -> None:
	graph = parse_manifest_text("libBaz.a\t\nlibFoo.a\tlibBar.a  \r\n")
	assert graph.edges["libBaz.a"] == ()
	assert graph.edges["libFoo.a"] == ("libBar.a",)


def test_isolated_node_is_kept() -> None:
	graph = parse_manifest_text("X\n")
	assert graph.nodes() == ["X"]
	assert len(graph) == 1


def test_blank_lines_are_skipped() -> None:
	graph = parse_manifest_text("\n\nA\tB\n\n")
	assert list(graph.edges) == ["A"]


def test_duplicate_source_last_occurrence_wins() -> None:
	graph = parse_manifest_text("A\tB\nA\tC\n")
	assert graph.edges["A"] == ("C",)
	assert graph.nodes() == ["A", "C"]


def test_graph_is_immutable() -> None:
	graph = DependencyGraph(edges={"A": ["B"]})
	assert graph.edges["A"] == ("B",)
	with pytest.raises(TypeError):
		graph.edges["Z"] = ()  # type: ignore[index]


def test_missing_manifest_is_unreadable() -> None:
	fs = FakeFileSystem(dirs=["/install/lib"])
	with pytest.raises(LinkOrderError) as excinfo:
		load_dependency_manifest(fs, Path("/install/lib/mlir-deps.tsv"))
	assert excinfo.value.reason_code == "MANIFEST_UNREADABLE"
	assert excinfo.value.path == "/install/lib/mlir-deps.tsv"


def test_undecodable_manifest_is_malformed() -> None:
	fs = FakeFileSystem(files={"/m.tsv": b"A\tB\n\xff\xfe\tC\n"})
	with pytest.raises(LinkOrderError) as excinfo:
		load_dependency_manifest(fs, Path("/m.tsv"))
	assert excinfo.value.reason_code == "MANIFEST_MALFORMED"
	assert "line 2" in excinfo.value.message


def test_load_from_disk(tmp_path: Path) -> None:
	path = tmp_path / "mlir-deps.tsv"
	path.write_text("libMLIRFoo.a\tlibMLIRBar.a\nlibMLIRBar.a\t\n", encoding="utf-8")
	graph = load_dependency_manifest(LocalFileSystem(), path)
	assert graph.edges == {"libMLIRFoo.a": ("libMLIRBar.a",), "libMLIRBar.a": ()}
