# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Native (CMake) build of the C++ dialect libraries.

Configures, builds and installs the parent CMake project, then hands back the
install tree layout. The manifest `lib/mlir-deps.tsv` is written by the CMake
project itself when `DUMP_MLIR_DEPS` is on.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from mlirlink.errors import LinkOrderError
from mlirlink.fsys import FileSystem
from mlirlink.process import Runner, run_tool

MANIFEST_NAME = "mlir-deps.tsv"


def _default_rerun_paths() -> tuple[str, ...]:
	return ("CMakeLists.txt", "qwerty_mlir", "qwerty_util", "tweedledum")


@dataclass(frozen=True)
class NativeBuildOptions:
	source_dir: Path
	build_dir: Path
	install_dir: Path | None = None
	generator: str = "Ninja"
	defines: Mapping[str, str] = field(default_factory=lambda: {"DUMP_MLIR_DEPS": "ON"})
	# Hide a wall of warnings that come from LLVM, not from us.
	configure_args: tuple[str, ...] = ("-Wno-dev",)
	build_type: str = "Release"
	rerun_if_changed: tuple[str, ...] = field(default_factory=_default_rerun_paths)
	manifest_name: str = MANIFEST_NAME
	timeout_s: float | None = None
	verbose: bool = False

	@property
	def resolved_install_dir(self) -> Path:
		return self.install_dir if self.install_dir is not None else self.build_dir / "install"


@dataclass(frozen=True)
class BuiltNative:
	include_dir: Path
	lib_dir: Path
	bin_dir: Path
	manifest_path: Path
	rerun_if_changed: tuple[Path, ...] = ()


def install_layout(install_dir: Path, *, manifest_name: str = MANIFEST_NAME, rerun_if_changed: tuple[Path, ...] = ()) -> BuiltNative:
	lib_dir = install_dir / "lib"
	return BuiltNative(
		include_dir=install_dir / "include",
		lib_dir=lib_dir,
		bin_dir=install_dir / "bin",
		manifest_path=lib_dir / manifest_name,
		rerun_if_changed=rerun_if_changed,
	)


def cmake_commands(opts: NativeBuildOptions) -> list[list[str]]:
	configure = [
		"cmake",
		"-S",
		str(opts.source_dir),
		"-B",
		str(opts.build_dir),
		"-G",
		opts.generator,
		f"-DCMAKE_BUILD_TYPE={opts.build_type}",
		f"-DCMAKE_INSTALL_PREFIX={opts.resolved_install_dir}",
		*(f"-D{key}={value}" for key, value in sorted(opts.defines.items())),
		*opts.configure_args,
	]
	build = ["cmake", "--build", str(opts.build_dir), "--config", opts.build_type]
	install = ["cmake", "--install", str(opts.build_dir), "--config", opts.build_type, "--prefix", str(opts.resolved_install_dir)]
	return [configure, build, install]


def build_native(opts: NativeBuildOptions, *, runner: Runner = subprocess.run) -> BuiltNative:
	# Native builds are long; no timeout unless configured.
	for cmd in cmake_commands(opts):
		run_tool(
			cmd,
			failure_code="NATIVE_BUILD_FAILED",
			runner=runner,
			timeout_s=opts.timeout_s,
			verbose=opts.verbose,
		)
	return install_layout(
		opts.resolved_install_dir,
		manifest_name=opts.manifest_name,
		rerun_if_changed=tuple(opts.source_dir / p for p in opts.rerun_if_changed),
	)


def check_nonempty_dirs(fs: FileSystem, built: BuiltNative) -> None:
	for directory, contents_summary in (
		(built.include_dir, "header files"),
		(built.bin_dir, "debugging executables"),
	):
		try:
			entries = fs.list_dir(directory) if fs.is_dir(directory) else []
		except OSError as err:
			raise LinkOrderError(
				reason_code="DIRECTORY_UNREADABLE",
				message=f"cannot list install directory: {err.strerror or err}",
				path=str(directory),
			) from err
		if not entries:
			raise LinkOrderError(
				reason_code="EMPTY_DIRECTORY",
				message=f"expected directory to contain {contents_summary}",
				path=str(directory),
			)


__all__ = [
	"MANIFEST_NAME",
	"NativeBuildOptions",
	"BuiltNative",
	"install_layout",
	"cmake_commands",
	"build_native",
	"check_nonempty_dirs",
]
