# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Build directives handed to the surrounding build orchestration.

A directive list is emitted once per build and consumed in order: each
search path precedes the link directives that rely on it, and static link
directives follow the LinkPlan exactly. Renderers never reorder.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Literal

from mlirlink.resolver import LinkPlan

DirectiveKind = Literal["rerun-if-changed", "link-search", "link-lib", "metadata", "include-dir"]
LinkKind = Literal["static", "dylib"]


@dataclass(frozen=True)
class Directive:
	kind: DirectiveKind
	value: str
	link_kind: LinkKind | None = None

	def to_dict(self) -> dict[str, Any]:
		return {"kind": self.kind, "value": self.value, "link_kind": self.link_kind}


def rerun_if_changed(path: Path | str) -> Directive:
	return Directive(kind="rerun-if-changed", value=str(path))


def link_search(path: Path | str) -> Directive:
	return Directive(kind="link-search", value=str(path))


def link_lib(name: str, link_kind: LinkKind | None = None) -> Directive:
	return Directive(kind="link-lib", value=name, link_kind=link_kind)


def metadata(key: str, value: Path | str) -> Directive:
	return Directive(kind="metadata", value=f"{key}={value}")


def include_dir(path: Path | str) -> Directive:
	return Directive(kind="include-dir", value=str(path))


def static_link_directives(library_ids: Iterable[str]) -> list[Directive]:
	return [link_lib(library_id, "static") for library_id in library_ids]


def emit_build_directives(
	*,
	plan: LinkPlan,
	lib_dir: Path,
	toolchain_lib_dir: Path,
	rerun_paths: Iterable[Path | str] = (),
	bin_dir: Path | None = None,
	toolchain_libs: Iterable[Directive] = (),
	system_libs: Iterable[Directive] = (),
	libcpp: str | None = None,
	include_dirs: Iterable[Path | str] = (),
) -> list[Directive]:
	out: list[Directive] = [rerun_if_changed(p) for p in rerun_paths]
	if bin_dir is not None:
		out.append(metadata("bin_dir", bin_dir))

	out.append(link_search(lib_dir))
	out.extend(static_link_directives(plan.manual))

	out.append(link_search(toolchain_lib_dir))
	out.extend(static_link_directives(plan.from_manifest))

	out.extend(toolchain_libs)
	out.extend(system_libs)
	if libcpp is not None:
		out.append(link_lib(libcpp))
	out.extend(include_dir(p) for p in include_dirs)
	return out


def render_cargo(directives: Iterable[Directive]) -> list[str]:
	"""
	Render directives as cargo build-script lines.

	`include-dir` has no cargo counterpart and is emitted as metadata so the
	binding step downstream can pick it up.
	"""
	lines: list[str] = []
	for d in directives:
		if d.kind == "rerun-if-changed":
			lines.append(f"cargo::rerun-if-changed={d.value}")
		elif d.kind == "metadata":
			lines.append(f"cargo::metadata={d.value}")
		elif d.kind == "link-search":
			lines.append(f"cargo:rustc-link-search={d.value}")
		elif d.kind == "link-lib":
			if d.link_kind is not None:
				lines.append(f"cargo:rustc-link-lib={d.link_kind}={d.value}")
			else:
				lines.append(f"cargo:rustc-link-lib={d.value}")
		elif d.kind == "include-dir":
			lines.append(f"cargo::metadata=include_dir={d.value}")
		else:
			raise AssertionError(f"unknown directive kind {d.kind!r}")
	return lines


def directives_to_dict(directives: Iterable[Directive]) -> list[dict[str, Any]]:
	return [d.to_dict() for d in directives]


__all__ = [
	"Directive",
	"rerun_if_changed",
	"link_search",
	"link_lib",
	"metadata",
	"include_dir",
	"static_link_directives",
	"emit_build_directives",
	"render_cargo",
	"directives_to_dict",
]
