# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
End-to-end build glue.

    native build -> install tree sanity checks -> toolchain version check
    -> manifest + link plan -> build directives -> ctypes bindings

Each step needs the previous step's output, so they run strictly in order and
the first fatal `LinkOrderError` aborts the rest.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from mlirlink.archive import convention_for_triple, host_triple
from mlirlink.bindgen import BindgenOptions, BindingResult, generate_bindings
from mlirlink.config import ResolverConfig
from mlirlink.directives import Directive, directives_to_dict, emit_build_directives
from mlirlink.fsys import FileSystem, LocalFileSystem
from mlirlink.manifest import load_dependency_manifest
from mlirlink.native_build import BuiltNative, NativeBuildOptions, build_native, check_nonempty_dirs
from mlirlink.process import Runner
from mlirlink.resolver import LinkPlan, resolve_link_plan
from mlirlink.toolchain import (
	LlvmConfig,
	ToolchainBridge,
	check_llvm_version,
	system_lib_directives,
	system_libcpp,
	toolchain_lib_directives,
)


@dataclass(frozen=True)
class ResolvedBuild:
	plan: LinkPlan
	directives: list[Directive]
	include_dirs: tuple[Path, ...]
	llvm_version: str
	triple: str
	bindings: BindingResult | None = None

	def to_dict(self) -> dict[str, Any]:
		return {
			"llvm_version": self.llvm_version,
			"triple": self.triple,
			"link_plan": self.plan.to_dict(),
			"directives": directives_to_dict(self.directives),
			"include_dirs": [str(p) for p in self.include_dirs],
			"bindings": (
				{
					"out_path": str(self.bindings.out_path),
					"function_count": self.bindings.function_count,
					"skipped_count": len(self.bindings.skipped),
				}
				if self.bindings is not None
				else None
			),
		}


@dataclass(frozen=True)
class BuildOptions:
	source_dir: Path
	build_dir: Path
	install_dir: Path | None = None
	header: Path | None = None
	bindings_out: Path | None = None
	clang: str | None = None
	defines: Mapping[str, str] = field(default_factory=lambda: {"DUMP_MLIR_DEPS": "ON"})
	verbose: bool = False


def make_bridge(cfg: ResolverConfig, *, runner: Runner = subprocess.run, verbose: bool = False, environ: Mapping[str, str] | None = None) -> LlvmConfig:
	return LlvmConfig(
		prefix=cfg.effective_llvm_prefix(environ),
		timeout_s=cfg.subprocess_timeout_s,
		runner=runner,
		verbose=verbose,
	)


def resolve_install_tree(
	built: BuiltNative,
	bridge: ToolchainBridge,
	cfg: ResolverConfig,
	*,
	fs: FileSystem | None = None,
	triple: str | None = None,
	extra_rerun: tuple[Path, ...] = (),
) -> ResolvedBuild:
	fs = fs if fs is not None else LocalFileSystem()
	triple = triple or cfg.target or host_triple()
	convention = convention_for_triple(triple)

	llvm_version = check_llvm_version(bridge, cfg.llvm_major_version)

	graph = load_dependency_manifest(fs, built.manifest_path)
	toolchain_lib_dir = Path(bridge.lib_dir())
	plan = resolve_link_plan(
		fs,
		lib_dir=built.lib_dir,
		manual_groups=cfg.manual_groups_for(convention),
		graph=graph,
		toolchain_lib_dir=toolchain_lib_dir,
		toolchain_prefix=cfg.toolchain_prefix_for(convention),
		convention=convention,
		strict_cycles=cfg.strict_cycles,
	)

	include_dirs = (Path(bridge.include_dir()), built.include_dir)
	directives = emit_build_directives(
		plan=plan,
		lib_dir=built.lib_dir,
		toolchain_lib_dir=toolchain_lib_dir,
		rerun_paths=[*built.rerun_if_changed, *extra_rerun],
		bin_dir=built.bin_dir,
		toolchain_libs=toolchain_lib_directives(bridge.lib_names(), convention),
		system_libs=system_lib_directives(bridge.system_libs()),
		libcpp=system_libcpp(triple),
		include_dirs=include_dirs,
	)
	return ResolvedBuild(
		plan=plan,
		directives=directives,
		include_dirs=include_dirs,
		llvm_version=llvm_version,
		triple=triple,
	)


def run_build(
	opts: BuildOptions,
	cfg: ResolverConfig,
	*,
	bridge: ToolchainBridge | None = None,
	fs: FileSystem | None = None,
	runner: Runner = subprocess.run,
	triple: str | None = None,
) -> ResolvedBuild:
	fs = fs if fs is not None else LocalFileSystem()
	bridge = bridge if bridge is not None else make_bridge(cfg, runner=runner, verbose=opts.verbose)

	built = build_native(
		NativeBuildOptions(
			source_dir=opts.source_dir,
			build_dir=opts.build_dir,
			install_dir=opts.install_dir,
			defines=opts.defines,
			manifest_name=cfg.manifest_name,
			verbose=opts.verbose,
		),
		runner=runner,
	)
	check_nonempty_dirs(fs, built)

	extra_rerun = (opts.header,) if opts.header is not None else ()
	resolved = resolve_install_tree(built, bridge, cfg, fs=fs, triple=triple, extra_rerun=extra_rerun)

	if opts.header is None or opts.bindings_out is None:
		return resolved
	bindings = generate_bindings(
		BindgenOptions(
			header=opts.header,
			out_path=opts.bindings_out,
			include_dirs=resolved.include_dirs,
			clang=opts.clang,
			timeout_s=cfg.subprocess_timeout_s,
			verbose=opts.verbose,
		),
		runner=runner,
	)
	return ResolvedBuild(
		plan=resolved.plan,
		directives=resolved.directives,
		include_dirs=resolved.include_dirs,
		llvm_version=resolved.llvm_version,
		triple=resolved.triple,
		bindings=bindings,
	)


__all__ = ["ResolvedBuild", "BuildOptions", "make_bridge", "resolve_install_tree", "run_build"]
