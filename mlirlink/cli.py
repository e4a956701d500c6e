# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from mlirlink.archive import UNIX_ARCHIVES, convention_for_triple
from mlirlink.bindgen import BindgenOptions, generate_bindings
from mlirlink.config import DEFAULT_CONFIG_PATH, ResolverConfig, load_config
from mlirlink.directives import Directive, directives_to_dict, render_cargo
from mlirlink.errors import LinkOrderError
from mlirlink.fsys import LocalFileSystem
from mlirlink.manifest import load_dependency_manifest
from mlirlink.native_build import check_nonempty_dirs, install_layout
from mlirlink.pipeline import BuildOptions, make_bridge, resolve_install_tree, run_build
from mlirlink.resolver import ManualOrderGroups, resolve_link_plan
from mlirlink.toposort import toposort, unresolved_nodes


def _add_config_args(p: argparse.ArgumentParser) -> None:
	p.add_argument(
		"--config",
		type=Path,
		default=DEFAULT_CONFIG_PATH,
		help="Path to mlirlink.json (default: ./mlirlink.json; missing file means defaults)",
	)
	p.add_argument("--strict-cycles", action="store_true", help="Fail when the dependency graph has a cycle")
	p.add_argument("--target", type=str, default=None, help="Target triple (default: config, then host triple)")
	p.add_argument("--llvm-prefix", type=Path, default=None, help="LLVM install prefix (default: config, then MLIR_SYS_<N>0_PREFIX)")
	p.add_argument("-v", "--verbose", action="store_true", help="Trace external commands on stderr")


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="mlirlink", description="Static link-order resolution for MLIR-based native builds")
	sub = p.add_subparsers(dest="cmd", required=True)

	plan = sub.add_parser("plan", help="Resolve the static link order for an install tree")
	plan.add_argument("--lib-dir", type=Path, required=True, help="Directory holding the project's static archives")
	plan.add_argument("--manifest", type=Path, default=None, help="Dependency manifest (default: <lib-dir>/<manifest_name>)")
	plan.add_argument("--toolchain-lib-dir", type=Path, required=True, help="Toolchain library directory (llvm-config --libdir)")
	plan.add_argument(
		"--group",
		dest="groups",
		action="append",
		default=None,
		help="Manually ordered archive prefix (repeatable, in link order); defaults to config",
	)
	plan.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
	_add_config_args(plan)

	topo = sub.add_parser("toposort", help="Print the topological order of a dependency manifest")
	topo.add_argument("manifest", type=Path, help="Path to mlir-deps.tsv")
	topo.add_argument("--strict-cycles", action="store_true", help="Fail when the dependency graph has a cycle")
	topo.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

	directives = sub.add_parser("directives", help="Emit build directives for an existing install tree")
	directives.add_argument("--install-dir", type=Path, required=True, help="Native install tree (include/, lib/, bin/)")
	directives.add_argument("--format", choices=["cargo", "json"], default="cargo", help="Output format (default: cargo)")
	_add_config_args(directives)

	build = sub.add_parser("build", help="Run the native build, resolve link order, emit directives and bindings")
	build.add_argument("--source-dir", type=Path, required=True, help="CMake source root")
	build.add_argument("--build-dir", type=Path, required=True, help="CMake build directory")
	build.add_argument("--install-dir", type=Path, default=None, help="Install prefix (default: <build-dir>/install)")
	build.add_argument("--header", type=Path, default=None, help="Wrapper header for binding generation")
	build.add_argument("--bindings-out", type=Path, default=None, help="Output path for generated ctypes bindings")
	build.add_argument("--clang", type=str, default=None, help="clang executable for binding generation (default: found on PATH)")
	build.add_argument("--format", choices=["cargo", "json"], default="cargo", help="Output format (default: cargo)")
	_add_config_args(build)

	bindgen = sub.add_parser("bindgen", help="Generate ctypes bindings from a C header")
	bindgen.add_argument("header", type=Path, help="Wrapper header")
	bindgen.add_argument("--out", type=Path, required=True, help="Output Python module path")
	bindgen.add_argument("-I", dest="include_dirs", action="append", type=Path, default=[], help="Include directory (repeatable)")
	bindgen.add_argument("-D", dest="defines", action="append", default=[], help="Preprocessor define (repeatable)")
	bindgen.add_argument("--clang", type=str, default=None, help="clang executable (default: found on PATH)")
	bindgen.add_argument("--json", action="store_true", help="Emit machine-readable JSON report")
	bindgen.add_argument("-v", "--verbose", action="store_true", help="Trace external commands on stderr")
	return p


def _config_with_overrides(args: argparse.Namespace) -> ResolverConfig:
	cfg = load_config(args.config)
	updates: dict[str, object] = {}
	if args.strict_cycles:
		updates["strict_cycles"] = True
	if args.target is not None:
		updates["target"] = args.target
	if args.llvm_prefix is not None:
		updates["llvm_prefix"] = args.llvm_prefix
	if getattr(args, "groups", None):
		updates["manual_groups"] = ManualOrderGroups(prefixes=tuple(args.groups))
	return replace(cfg, **updates) if updates else cfg


def _emit_directives(directives: list[Directive], fmt: str) -> None:
	if fmt == "json":
		print(json.dumps({"ok": True, "directives": directives_to_dict(directives)}, sort_keys=True, separators=(",", ":")))
		return
	for line in render_cargo(directives):
		print(line)


def _fail(err: LinkOrderError, *, as_json: bool) -> int:
	if as_json:
		print(json.dumps({"ok": False, "error": err.to_dict()}, sort_keys=True, separators=(",", ":")))
	else:
		print(f"mlirlink: {err.format_human()}", file=sys.stderr)
	return 2


def _cmd_plan(args: argparse.Namespace) -> int:
	cfg = _config_with_overrides(args)
	fs = LocalFileSystem()
	manifest = args.manifest if args.manifest is not None else args.lib_dir / cfg.manifest_name
	# No toolchain is queried here; without an explicit target assume unix archives.
	convention = convention_for_triple(cfg.target) if cfg.target else UNIX_ARCHIVES
	graph = load_dependency_manifest(fs, manifest)
	plan = resolve_link_plan(
		fs,
		lib_dir=args.lib_dir,
		manual_groups=cfg.manual_groups_for(convention),
		graph=graph,
		toolchain_lib_dir=args.toolchain_lib_dir,
		toolchain_prefix=cfg.toolchain_prefix_for(convention),
		convention=convention,
		strict_cycles=cfg.strict_cycles,
	)
	if args.json:
		print(json.dumps({"ok": True, **plan.to_dict()}, sort_keys=True, separators=(",", ":")))
		return 0
	if plan.unresolved:
		print(f"mlirlink: warning: dependency cycle; omitted {', '.join(plan.unresolved)}", file=sys.stderr)
	for library_id in plan:
		print(library_id)
	return 0


def _cmd_toposort(args: argparse.Namespace) -> int:
	graph = load_dependency_manifest(LocalFileSystem(), args.manifest)
	order = toposort(graph, strict=bool(args.strict_cycles))
	unresolved = unresolved_nodes(graph, order)
	if args.json:
		print(json.dumps({"ok": True, "order": order, "unresolved": unresolved}, sort_keys=True, separators=(",", ":")))
		return 0
	if unresolved:
		print(f"mlirlink: warning: dependency cycle; omitted {', '.join(unresolved)}", file=sys.stderr)
	for node in order:
		print(node)
	return 0


def _cmd_directives(args: argparse.Namespace) -> int:
	cfg = _config_with_overrides(args)
	fs = LocalFileSystem()
	built = install_layout(args.install_dir, manifest_name=cfg.manifest_name)
	check_nonempty_dirs(fs, built)
	resolved = resolve_install_tree(built, make_bridge(cfg, verbose=bool(args.verbose)), cfg, fs=fs)
	_emit_directives(resolved.directives, args.format)
	return 0


def _cmd_build(args: argparse.Namespace) -> int:
	cfg = _config_with_overrides(args)
	opts = BuildOptions(
		source_dir=args.source_dir,
		build_dir=args.build_dir,
		install_dir=args.install_dir,
		header=args.header,
		bindings_out=args.bindings_out,
		clang=args.clang,
		verbose=bool(args.verbose),
	)
	resolved = run_build(opts, cfg)
	if args.format == "json":
		print(json.dumps({"ok": True, **resolved.to_dict()}, sort_keys=True, separators=(",", ":")))
		return 0
	_emit_directives(resolved.directives, args.format)
	return 0


def _cmd_bindgen(args: argparse.Namespace) -> int:
	opts = BindgenOptions(
		header=args.header,
		out_path=args.out,
		include_dirs=tuple(args.include_dirs),
		defines=tuple(args.defines),
		clang=args.clang,
		verbose=bool(args.verbose),
	)
	result = generate_bindings(opts)
	if args.json:
		report = {
			"ok": True,
			"out_path": str(result.out_path),
			"function_count": result.function_count,
			"skipped": [{"text": s.text, "reason": s.reason} for s in result.skipped],
		}
		print(json.dumps(report, sort_keys=True, separators=(",", ":")))
	elif args.verbose:
		for s in result.skipped:
			print(f"mlirlink: skipped declaration ({s.reason}): {s.text[:80]}", file=sys.stderr)
	return 0


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)
	as_json = bool(getattr(args, "json", False)) or getattr(args, "format", None) == "json"

	handlers = {
		"plan": _cmd_plan,
		"toposort": _cmd_toposort,
		"directives": _cmd_directives,
		"build": _cmd_build,
		"bindgen": _cmd_bindgen,
	}
	handler = handlers.get(args.cmd)
	if handler is None:
		raise AssertionError("unreachable")
	try:
		return handler(args)
	except LinkOrderError as err:
		return _fail(err, as_json=as_json)
