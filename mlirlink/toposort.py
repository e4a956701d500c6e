# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Topological ordering of the dependency graph (Kahn's algorithm).

Ready nodes are kept in a min-heap so that, whenever several nodes become
eligible at once, the lexically smallest id is emitted first. The result
depends only on the edge set, never on manifest line order or dict iteration,
which keeps link plans byte-identical across builds.

Nodes on a cycle (and everything reachable only through one) never reach
indegree zero. By default they are left out of the result; callers that need
a complete order pass `strict=True` or compare against `unresolved_nodes`.
"""

from __future__ import annotations

import heapq

from mlirlink.errors import LinkOrderError
from mlirlink.manifest import DependencyGraph


def _indegrees(graph: DependencyGraph) -> dict[str, int]:
	indegrees: dict[str, int] = {}
	for src, dsts in graph.edges.items():
		indegrees.setdefault(src, 0)
		for dst in dsts:
			indegrees[dst] = indegrees.get(dst, 0) + 1
	return indegrees


def toposort(graph: DependencyGraph, *, strict: bool = False) -> list[str]:
	indegrees = _indegrees(graph)
	ready = [node for node, indegree in indegrees.items() if indegree == 0]
	heapq.heapify(ready)

	order: list[str] = []
	while ready:
		node = heapq.heappop(ready)
		order.append(node)
		for dst in graph.successors(node):
			indegrees[dst] -= 1
			if indegrees[dst] == 0:
				heapq.heappush(ready, dst)

	if strict and len(order) != len(indegrees):
		raise LinkOrderError(
			reason_code="CYCLE_DETECTED",
			message="dependency graph has a cycle; no complete link order exists",
			nodes=tuple(unresolved_nodes(graph, order)),
		)
	return order


def unresolved_nodes(graph: DependencyGraph, order: list[str]) -> list[str]:
	"""Nodes of `graph` missing from `order`, sorted."""
	placed = set(order)
	return sorted(node for node in graph.nodes() if node not in placed)


__all__ = ["toposort", "unresolved_nodes"]
