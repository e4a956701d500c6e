# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Link-order resolution.

The final static link order has two parts:

1. Manually pinned archive groups built by this project. Their precedence is
   known from the source tree and is not in the dependency manifest:

       libMLIRCAPIQwerty.a
             |
             V
       libMLIRQwerty*.a
             |
             V
         libqwutil.a ----> libtweedledum.a
             |
             |   libMLIRCAPIQCirc.a
             |      |
             V      V
        libMLIRQCirc*.a

2. The upstream MLIR libraries, ordered by a topological sort of the manifest
   and filtered to the archives the installed toolchain actually ships.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from mlirlink.archive import UNIX_ARCHIVES, ArchiveConvention, parse_archive_name
from mlirlink.fsys import FileSystem
from mlirlink.inventory import library_ids, scan_archives
from mlirlink.manifest import DependencyGraph
from mlirlink.toposort import toposort, unresolved_nodes


@dataclass(frozen=True)
class ManualOrderGroups:
	prefixes: tuple[str, ...]

	def __post_init__(self) -> None:
		object.__setattr__(self, "prefixes", tuple(self.prefixes))

	def __iter__(self) -> Iterator[str]:
		return iter(self.prefixes)

	def __len__(self) -> int:
		return len(self.prefixes)


# Archive stems in link order; each target's archive prefix is prepended.
_DEFAULT_GROUP_STEMS = (
	"MLIRCAPIQwerty",
	"MLIRQwerty",
	"qwutil",
	"tweedledum",
	"MLIRCAPIUtils",
	"MLIRCAPIQCirc",
	"MLIRCAPICCirc",
	"MLIRQCirc",
	"MLIRCCirc",
)


def default_manual_groups(convention: ArchiveConvention = UNIX_ARCHIVES) -> ManualOrderGroups:
	return ManualOrderGroups(prefixes=tuple(convention.prefix + stem for stem in _DEFAULT_GROUP_STEMS))


def default_toolchain_prefix(convention: ArchiveConvention = UNIX_ARCHIVES) -> str:
	return f"{convention.prefix}MLIR"


DEFAULT_MANUAL_GROUPS = default_manual_groups()


@dataclass(frozen=True)
class LinkPlan:
	"""
	Ordered library ids for the static link line.

	`library_ids[:manual_count]` came from the pinned groups, the rest from the
	manifest. Order is load-bearing; consumers must not sort or deduplicate.
	"""

	library_ids: tuple[str, ...]
	manual_count: int = 0
	unresolved: tuple[str, ...] = field(default_factory=tuple)
	filtered_out: tuple[str, ...] = field(default_factory=tuple)

	@property
	def manual(self) -> tuple[str, ...]:
		return self.library_ids[: self.manual_count]

	@property
	def from_manifest(self) -> tuple[str, ...]:
		return self.library_ids[self.manual_count :]

	def __iter__(self) -> Iterator[str]:
		return iter(self.library_ids)

	def __len__(self) -> int:
		return len(self.library_ids)

	def to_dict(self) -> dict[str, object]:
		return {
			"plan": list(self.library_ids),
			"manual": list(self.manual),
			"manifest": list(self.from_manifest),
			"unresolved": list(self.unresolved),
			"filtered_out": list(self.filtered_out),
		}


def manual_library_ids(
	fs: FileSystem,
	lib_dir: Path,
	groups: ManualOrderGroups,
	convention: ArchiveConvention = UNIX_ARCHIVES,
) -> list[str]:
	out: list[str] = []
	for prefix in groups:
		out.extend(library_ids(scan_archives(fs, lib_dir, prefix, required=True), convention))
	return out


def filter_present(order: list[str], present: set[str], convention: ArchiveConvention = UNIX_ARCHIVES) -> tuple[list[str], list[str]]:
	"""
	Split manifest entries into (kept, dropped), preserving order.

	Manifest entries are raw archive filenames; entries that do not parse are
	compared as written so a manifest of bare ids works too.
	"""
	kept: list[str] = []
	dropped: list[str] = []
	for entry in order:
		library_id = parse_archive_name(entry, convention) or entry
		if library_id in present:
			kept.append(library_id)
		else:
			dropped.append(library_id)
	return kept, dropped


def resolve_link_plan(
	fs: FileSystem,
	*,
	lib_dir: Path,
	manual_groups: ManualOrderGroups,
	graph: DependencyGraph,
	toolchain_lib_dir: Path,
	toolchain_prefix: str | None = None,
	convention: ArchiveConvention = UNIX_ARCHIVES,
	strict_cycles: bool = False,
) -> LinkPlan:
	if toolchain_prefix is None:
		toolchain_prefix = default_toolchain_prefix(convention)
	manual = manual_library_ids(fs, lib_dir, manual_groups, convention)

	order = toposort(graph, strict=strict_cycles)

	present = set(library_ids(scan_archives(fs, toolchain_lib_dir, toolchain_prefix), convention))
	kept, dropped = filter_present(order, present, convention)

	return LinkPlan(
		library_ids=tuple(manual + kept),
		manual_count=len(manual),
		unresolved=tuple(unresolved_nodes(graph, order)),
		filtered_out=tuple(dropped),
	)


__all__ = [
	"ManualOrderGroups",
	"DEFAULT_MANUAL_GROUPS",
	"default_manual_groups",
	"default_toolchain_prefix",
	"LinkPlan",
	"manual_library_ids",
	"filter_present",
	"resolve_link_plan",
]
