# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Toolchain bridge: what the installed LLVM/MLIR toolchain reports about itself.

The resolver only needs five answers (version, library dir, library names,
system-library flags, include dir), all plain text. `ToolchainBridge` is the
seam; `LlvmConfig` answers them by running `llvm-config --link-static`.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path, PurePath, PurePosixPath, PureWindowsPath
from typing import Mapping, Protocol

from mlirlink.archive import UNIX_ARCHIVES, ArchiveConvention, parse_archive_name
from mlirlink.directives import Directive, link_lib, link_search
from mlirlink.errors import LinkOrderError
from mlirlink.process import DEFAULT_TIMEOUT_S, Runner, run_tool

LLVM_MAJOR_VERSION = 20


class ToolchainBridge(Protocol):
	def version(self) -> str:
		...

	def lib_dir(self) -> str:
		...

	def lib_names(self) -> str:
		...

	def system_libs(self) -> str:
		...

	def include_dir(self) -> str:
		...


def prefix_env_var(major: int = LLVM_MAJOR_VERSION) -> str:
	return f"MLIR_SYS_{major}0_PREFIX"


def llvm_prefix_from_env(major: int = LLVM_MAJOR_VERSION, environ: Mapping[str, str] | None = None) -> Path | None:
	env = os.environ if environ is None else environ
	value = env.get(prefix_env_var(major))
	if not value:
		return None
	return Path(value)


@dataclass(frozen=True)
class LlvmConfig:
	prefix: Path | None = None
	timeout_s: float | None = DEFAULT_TIMEOUT_S
	runner: Runner = subprocess.run
	windows: bool = os.name == "nt"
	verbose: bool = False

	def executable(self) -> str:
		exe = "llvm-config.exe" if self.windows else "llvm-config"
		if self.prefix is not None:
			return str(self.prefix / "bin" / exe)
		return shutil.which(exe) or exe

	def query(self, flag: str) -> str:
		res = run_tool(
			[self.executable(), "--link-static", flag],
			failure_code="TOOLCHAIN_FAILED",
			missing_code="TOOLCHAIN_NOT_FOUND",
			runner=self.runner,
			timeout_s=self.timeout_s,
			verbose=self.verbose,
		)
		return (res.stdout or "").strip()

	def version(self) -> str:
		return self.query("--version")

	def lib_dir(self) -> str:
		return self.query("--libdir")

	def lib_names(self) -> str:
		return self.query("--libnames")

	def system_libs(self) -> str:
		return self.query("--system-libs")

	def include_dir(self) -> str:
		return self.query("--includedir")


def check_llvm_version(bridge: ToolchainBridge, major: int = LLVM_MAJOR_VERSION) -> str:
	version = bridge.version().strip()
	if not version.startswith(f"{major}."):
		raise LinkOrderError(
			reason_code="TOOLCHAIN_VERSION_MISMATCH",
			message=f"failed to find correct version ({major}.x.x) of llvm-config",
			expected=f"{major}.x.x",
			found=version or "<empty>",
		)
	return version


def toolchain_lib_directives(names: str, convention: ArchiveConvention = UNIX_ARCHIVES) -> list[Directive]:
	"""Link directives for `llvm-config --libnames` output."""
	out: list[Directive] = []
	for name in names.split():
		library_id = parse_archive_name(name, convention)
		if library_id is not None:
			out.append(link_lib(library_id))
	return out


def _pure_path(flag: str) -> PurePath | None:
	if flag.startswith("/"):
		return PurePosixPath(flag)
	if len(flag) > 2 and flag[1] == ":" and flag[2] in "\\/":
		return PureWindowsPath(flag)
	return None


def system_lib_directives(flags: str) -> list[Directive]:
	"""
	Link directives for `llvm-config --system-libs` output.

	llvm-config reports most system libraries as `-lz` style flags but gives
	absolute paths for some dynamically linked ones (e.g.
	`/usr/lib/libxml2.so`); those become a search path plus a link directive
	for the bare library name.
	"""
	out: list[Directive] = []
	for raw in flags.split():
		flag = raw[2:] if raw.startswith("-l") else raw
		if not flag:
			continue
		path = _pure_path(flag)
		if path is not None:
			stem = path.stem
			if stem.startswith("lib"):
				stem = stem[3:]
			out.append(link_search(str(path.parent)))
			out.append(link_lib(stem))
		else:
			out.append(link_lib(flag))
	return out


def system_libcpp(triple: str) -> str | None:
	if triple.endswith("-msvc"):
		return None
	if "-apple-" in triple or "darwin" in triple or "macos" in triple:
		return "c++"
	return "stdc++"


__all__ = [
	"LLVM_MAJOR_VERSION",
	"ToolchainBridge",
	"LlvmConfig",
	"prefix_env_var",
	"llvm_prefix_from_env",
	"check_llvm_version",
	"toolchain_lib_directives",
	"system_lib_directives",
	"system_libcpp",
]
