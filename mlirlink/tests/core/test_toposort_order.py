# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import os
import random
import subprocess
import sys
from pathlib import Path

import pytest

from mlirlink.errors import LinkOrderError
from mlirlink.manifest import DependencyGraph, parse_manifest_text
from mlirlink.toposort import toposort, unresolved_nodes


def _assert_valid_order(graph: DependencyGraph, order: list[str]) -> None:
	assert len(order) == len(graph.nodes())
	assert len(set(order)) == len(order)
	index = {node: i for i, node in enumerate(order)}
	for src, dst in graph.edge_pairs():
		assert index[src] < index[dst], f"{src} must precede {dst}"


def _random_dag(rng: random.Random, n: int) -> DependencyGraph:
	names = [f"lib{i:03d}.a" for i in range(n)]
	rng.shuffle(names)
	edges: dict[str, list[str]] = {}
	for i, src in enumerate(names):
		later = names[i + 1 :]
		k = rng.randint(0, min(4, len(later)))
		edges[src] = rng.sample(later, k)
	items = list(edges.items())
	rng.shuffle(items)
	return DependencyGraph(edges=dict(items))


def test_two_line_manifest_order() -> None:
	graph = parse_manifest_text("A\tB\tC\nB\tC\n")
	assert toposort(graph) == ["A", "B", "C"]


def test_random_dags_respect_every_edge() -> None:
	rng = random.Random(1234)
	for _ in range(50):
		graph = _random_dag(rng, rng.randint(1, 40))
		_assert_valid_order(graph, toposort(graph))


def test_order_does_not_depend_on_manifest_line_order() -> None:
	lines = ["MLIRFoo\tMLIRIR\tMLIRSupport", "MLIRBar\tMLIRIR", "MLIRIR\tMLIRSupport", "MLIRSupport", "MLIRBaz"]
	expected = toposort(parse_manifest_text("\n".join(lines)))
	rng = random.Random(7)
	for _ in range(20):
		rng.shuffle(lines)
		assert toposort(parse_manifest_text("\n".join(lines))) == expected


def test_ties_break_lexically() -> None:
	graph = parse_manifest_text("c\nb\na\nz\tm\n")
	assert toposort(graph) == ["a", "b", "c", "z", "m"]


def test_isolated_nodes_appear_once() -> None:
	graph = parse_manifest_text("X\nY\nX\n")
	assert toposort(graph) == ["X", "Y"]


def test_duplicate_successor_is_emitted_once() -> None:
	graph = parse_manifest_text("A\tB\tB\nC\tB\n")
	order = toposort(graph)
	assert order == ["A", "C", "B"]


def test_three_cycle_yields_empty_order() -> None:
	graph = parse_manifest_text("X\tY\nY\tZ\nZ\tX\n")
	assert toposort(graph) == []
	assert unresolved_nodes(graph, []) == ["X", "Y", "Z"]


def test_cycle_truncates_downstream_nodes_only() -> None:
	graph = parse_manifest_text("A\tB\nB\tC\nC\tB\tD\nE\n")
	order = toposort(graph)
	assert order == ["A", "E"]
	assert unresolved_nodes(graph, order) == ["B", "C", "D"]


def test_strict_mode_names_cycle_nodes() -> None:
	graph = parse_manifest_text("X\tY\nY\tZ\nZ\tX\nW\n")
	with pytest.raises(LinkOrderError) as excinfo:
		toposort(graph, strict=True)
	assert excinfo.value.reason_code == "CYCLE_DETECTED"
	assert excinfo.value.nodes == ("X", "Y", "Z")


def test_strict_mode_accepts_acyclic_graph() -> None:
	graph = parse_manifest_text("A\tB\n")
	assert toposort(graph, strict=True) == ["A", "B"]


def test_order_identical_across_processes() -> None:
	code = (
		"from mlirlink.manifest import parse_manifest_text\n"
		"from mlirlink.toposort import toposort\n"
		"g = parse_manifest_text('d\\tb\\nc\\tb\\na\\nb\\te\\n')\n"
		"print(','.join(toposort(g)))\n"
	)
	outputs = set()
	for seed in ("0", "1", "2"):
		cp = subprocess.run(
			[sys.executable, "-c", code],
			text=True,
			capture_output=True,
			cwd=Path(__file__).resolve().parents[3],
			env={**os.environ, "PYTHONHASHSEED": seed},
		)
		assert cp.returncode == 0, cp.stderr
		outputs.add(cp.stdout.strip())
	assert outputs == {"a,c,d,b,e"}
