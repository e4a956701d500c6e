# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Filesystem access used by the resolver.

The resolver only ever lists directories and reads whole files. Keeping that
surface behind `FileSystem` lets ordering tests run against an in-memory tree
(see `mlirlink.test_support.FakeFileSystem`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class FileSystem(Protocol):
	def list_dir(self, directory: Path) -> list[str]:
		"""Return the entry names of `directory` (any order)."""
		...

	def read_bytes(self, path: Path) -> bytes:
		...

	def exists(self, path: Path) -> bool:
		...

	def is_dir(self, path: Path) -> bool:
		...


class LocalFileSystem:
	def list_dir(self, directory: Path) -> list[str]:
		return [entry.name for entry in Path(directory).iterdir()]

	def read_bytes(self, path: Path) -> bytes:
		return Path(path).read_bytes()

	def exists(self, path: Path) -> bool:
		return Path(path).exists()

	def is_dir(self, path: Path) -> bool:
		return Path(path).is_dir()


__all__ = ["FileSystem", "LocalFileSystem"]
