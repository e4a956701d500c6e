# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Dependency manifest (`mlir-deps.tsv`) loading.

The native build dumps one line per MLIR library target:

    libMLIRFoo.a<TAB>libMLIRBar.a<TAB>libMLIRBaz.a

meaning libMLIRBar.a and libMLIRBaz.a must come after libMLIRFoo.a on the link
line. No header, no comments, no escaping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

from mlirlink.errors import LinkOrderError
from mlirlink.fsys import FileSystem


@dataclass(frozen=True)
class DependencyGraph:
	"""
	Must-follow edges keyed by precedence source, in manifest order.

	`edges[a]` lists every b with an edge a -> b. Targets that never appear as a
	source are still nodes (with no outgoing edges).
	"""

	edges: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

	def __post_init__(self) -> None:
		frozen = MappingProxyType({src: tuple(dsts) for src, dsts in self.edges.items()})
		object.__setattr__(self, "edges", frozen)

	def successors(self, node: str) -> tuple[str, ...]:
		return self.edges.get(node, ())

	def nodes(self) -> list[str]:
		"""Every node, sources first in manifest order, then target-only nodes."""
		seen: dict[str, None] = {}
		for src, dsts in self.edges.items():
			seen.setdefault(src, None)
			for dst in dsts:
				seen.setdefault(dst, None)
		return list(seen)

	def edge_pairs(self) -> Iterator[tuple[str, str]]:
		for src, dsts in self.edges.items():
			for dst in dsts:
				yield src, dst

	def __len__(self) -> int:
		return len(self.nodes())


def parse_manifest_text(text: str) -> DependencyGraph:
	"""
	Parse manifest text into a graph.

	A repeated source line replaces the earlier one (last occurrence wins).
	Empty fields left by a trailing tab are dropped; blank lines are skipped.
	"""
	edges: dict[str, tuple[str, ...]] = {}
	for raw_line in text.splitlines():
		line = raw_line.strip()
		if not line:
			continue
		cols = line.split("\t")
		src = cols[0]
		edges.pop(src, None)
		edges[src] = tuple(col for col in cols[1:] if col)
	return DependencyGraph(edges=edges)


def load_dependency_manifest(fs: FileSystem, path: Path) -> DependencyGraph:
	try:
		data = fs.read_bytes(path)
	except OSError as err:
		raise LinkOrderError(
			reason_code="MANIFEST_UNREADABLE",
			message=f"cannot read dependency manifest: {err.strerror or err}",
			path=str(path),
		) from err
	try:
		text = data.decode("utf-8")
	except UnicodeDecodeError as err:
		line_no = data.count(b"\n", 0, err.start) + 1
		raise LinkOrderError(
			reason_code="MANIFEST_MALFORMED",
			message=f"dependency manifest is not valid UTF-8 (line {line_no})",
			path=str(path),
		) from err
	return parse_manifest_text(text)


__all__ = ["DependencyGraph", "parse_manifest_text", "load_dependency_manifest"]
