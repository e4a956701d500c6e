# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Static archive naming conventions.

A library id is the bare name a linker wants (`-lMLIRIR`), independent of the
platform decoration around it on disk (`libMLIRIR.a`, `MLIRIR.lib`).
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ArchiveConvention:
	prefix: str
	suffix: str


UNIX_ARCHIVES = ArchiveConvention(prefix="lib", suffix=".a")
MSVC_ARCHIVES = ArchiveConvention(prefix="", suffix=".lib")


def parse_archive_name(name: str, convention: ArchiveConvention = UNIX_ARCHIVES) -> str | None:
	"""
	Return the library id contained in an archive filename, or None.

	Never raises: filenames that do not follow `convention` are simply not
	archives as far as linking is concerned.
	"""
	if not isinstance(name, str):
		return None
	if not name.startswith(convention.prefix):
		return None
	rest = name[len(convention.prefix) :]
	if not convention.suffix or not rest.endswith(convention.suffix):
		return None
	library_id = rest[: len(rest) - len(convention.suffix)]
	if not library_id:
		return None
	return library_id


def format_archive_name(library_id: str, convention: ArchiveConvention = UNIX_ARCHIVES) -> str:
	return f"{convention.prefix}{library_id}{convention.suffix}"


def convention_for_triple(triple: str) -> ArchiveConvention:
	if triple.endswith("-msvc") or "-windows-msvc" in triple:
		return MSVC_ARCHIVES
	return UNIX_ARCHIVES


def host_triple() -> str:
	"""Default LLVM target triple of the host, as reported by llvmlite."""
	from llvmlite import binding as llvm

	return llvm.get_default_triple()


__all__ = [
	"ArchiveConvention",
	"UNIX_ARCHIVES",
	"MSVC_ARCHIVES",
	"parse_archive_name",
	"format_archive_name",
	"convention_for_triple",
	"host_triple",
]
