# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mlirlink.archive import UNIX_ARCHIVES, ArchiveConvention, parse_archive_name
from mlirlink.errors import LinkOrderError
from mlirlink.fsys import FileSystem


@dataclass(frozen=True)
class ArchiveFile:
	filename: str
	directory: Path

	@property
	def path(self) -> Path:
		return self.directory / self.filename

	def library_id(self, convention: ArchiveConvention = UNIX_ARCHIVES) -> str | None:
		return parse_archive_name(self.filename, convention)


def _list_dir(fs: FileSystem, directory: Path) -> list[str]:
	if not fs.is_dir(directory):
		raise LinkOrderError(
			reason_code="DIRECTORY_MISSING",
			message="library directory does not exist",
			path=str(directory),
		)
	try:
		return fs.list_dir(directory)
	except OSError as err:
		raise LinkOrderError(
			reason_code="DIRECTORY_UNREADABLE",
			message=f"cannot list library directory: {err.strerror or err}",
			path=str(directory),
		) from err


def lib_names_starting_with(
	fs: FileSystem,
	directory: Path,
	prefix: str,
	*,
	required: bool = True,
) -> list[str]:
	"""
	List filenames in `directory` that start with `prefix`, sorted.

	When `required` is set an empty match is fatal: the native build was
	expected to produce at least one archive for this prefix, and linking
	without it only fails later with unresolved symbols.
	"""
	names = sorted(name for name in _list_dir(fs, directory) if name.startswith(prefix))
	if required and not names:
		raise LinkOrderError(
			reason_code="ARCHIVE_PREFIX_MISSING",
			message="could not find libraries starting with prefix",
			path=str(directory),
			prefix=prefix,
		)
	return names


def scan_archives(
	fs: FileSystem,
	directory: Path,
	prefix: str = "",
	*,
	required: bool = False,
) -> list[ArchiveFile]:
	return [ArchiveFile(filename=name, directory=Path(directory)) for name in lib_names_starting_with(fs, directory, prefix, required=required)]


def library_ids(archives: list[ArchiveFile], convention: ArchiveConvention = UNIX_ARCHIVES) -> list[str]:
	"""Parsed ids of `archives` in order; non-archive files are dropped."""
	out: list[str] = []
	for archive in archives:
		library_id = archive.library_id(convention)
		if library_id is not None:
			out.append(library_id)
	return out


__all__ = ["ArchiveFile", "lib_names_starting_with", "scan_archives", "library_ids"]
