# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class LinkOrderError(Exception):
	"""
	A structured, serializable error for link-order resolution.

	Every fatal condition in the resolver and its build glue is raised as this
	type. `reason_code` is stable; the remaining fields carry just enough context
	(directory, prefix, expected vs. found) to act on the failure without
	re-running the build.
	"""

	reason_code: str
	message: str
	path: str | None = None
	prefix: str | None = None
	expected: str | None = None
	found: str | None = None
	nodes: tuple[str, ...] | None = None
	command: str | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"path": self.path,
			"prefix": self.prefix,
			"expected": self.expected,
			"found": self.found,
			"nodes": list(self.nodes) if self.nodes is not None else None,
			"command": self.command,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.path:
			parts.append(f"path={self.path}")
		if self.prefix:
			parts.append(f"prefix={self.prefix}")
		if self.expected is not None or self.found is not None:
			parts.append(f"expected={self.expected}")
			parts.append(f"found={self.found}")
		if self.nodes:
			parts.append(f"nodes={','.join(self.nodes)}")
		if self.command:
			parts.append(f"command={self.command}")
		return " ".join(parts)


__all__ = ["LinkOrderError"]
