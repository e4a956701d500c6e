# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Fakes for the resolver's capability boundaries.

`FakeFileSystem` stands in for directory listings and file reads,
`FakeToolchain` for llvm-config, and `FakeRunner` for `subprocess.run`, so
ordering and directive tests need neither a native build nor an LLVM install.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Mapping


class FakeFileSystem:
	def __init__(self, files: Mapping[str | Path, bytes | str] | None = None, dirs: Iterable[str | Path] = ()) -> None:
		self.files: dict[Path, bytes] = {}
		self.dirs: set[Path] = set()
		for d in dirs:
			self.add_dir(d)
		for path, data in (files or {}).items():
			self.add_file(path, data)

	def add_dir(self, path: str | Path) -> None:
		p = Path(path)
		self.dirs.add(p)
		self.dirs.update(p.parents)

	def add_file(self, path: str | Path, data: bytes | str = b"") -> None:
		p = Path(path)
		self.files[p] = data.encode("utf-8") if isinstance(data, str) else data
		self.add_dir(p.parent)

	def list_dir(self, directory: Path) -> list[str]:
		d = Path(directory)
		if d not in self.dirs:
			raise FileNotFoundError(str(d))
		names = {p.name for p in self.files if p.parent == d}
		names.update(p.name for p in self.dirs if p.parent == d and p != d)
		# Reverse order so tests catch callers relying on listing order.
		return sorted(names, reverse=True)

	def read_bytes(self, path: Path) -> bytes:
		p = Path(path)
		if p not in self.files:
			raise FileNotFoundError(2, "No such file or directory", str(p))
		return self.files[p]

	def exists(self, path: Path) -> bool:
		p = Path(path)
		return p in self.files or p in self.dirs

	def is_dir(self, path: Path) -> bool:
		return Path(path) in self.dirs


@dataclass
class FakeToolchain:
	version_text: str = "20.1.8"
	lib_dir_text: str = "/opt/llvm/lib"
	lib_names_text: str = ""
	system_libs_text: str = ""
	include_dir_text: str = "/opt/llvm/include"
	calls: list[str] = field(default_factory=list)

	def version(self) -> str:
		self.calls.append("version")
		return self.version_text

	def lib_dir(self) -> str:
		self.calls.append("lib_dir")
		return self.lib_dir_text

	def lib_names(self) -> str:
		self.calls.append("lib_names")
		return self.lib_names_text

	def system_libs(self) -> str:
		self.calls.append("system_libs")
		return self.system_libs_text

	def include_dir(self) -> str:
		self.calls.append("include_dir")
		return self.include_dir_text


Responder = Callable[[list[str]], "subprocess.CompletedProcess[str] | BaseException"]


@dataclass
class FakeRunner:
	"""
	Records every command and answers through `respond`.

	`respond` returns a CompletedProcess or an exception instance to raise; the
	default answers every command with exit status 0 and empty output.
	"""

	respond: Responder | None = None
	commands: list[list[str]] = field(default_factory=list)
	timeouts: list[float | None] = field(default_factory=list)

	def __call__(self, argv: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
		self.commands.append(list(argv))
		self.timeouts.append(kwargs.get("timeout"))  # type: ignore[arg-type]
		if self.respond is None:
			return completed(argv)
		result = self.respond(list(argv))
		if isinstance(result, BaseException):
			raise result
		return result


def completed(argv: list[str], stdout: str = "", stderr: str = "", returncode: int = 0) -> subprocess.CompletedProcess[str]:
	return subprocess.CompletedProcess(args=argv, returncode=returncode, stdout=stdout, stderr=stderr)


__all__ = ["FakeFileSystem", "FakeToolchain", "FakeRunner", "completed"]
