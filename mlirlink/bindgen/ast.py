# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Declaration nodes produced by the header parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

BaseKind = Literal["scalar", "struct", "enum", "named"]


@dataclass(frozen=True)
class CType:
	"""
	A C type as written: base plus pointer depth.

	`base` is the scalar spelling (`"unsigned long"`), or the struct/enum tag,
	or the typedef name, depending on `kind`.
	"""

	kind: BaseKind
	base: str
	pointer_depth: int = 0
	is_const: bool = False

	@property
	def is_void(self) -> bool:
		return self.kind == "scalar" and self.base == "void" and self.pointer_depth == 0


@dataclass(frozen=True)
class Param:
	name: str | None
	type: CType


@dataclass(frozen=True)
class FunctionDecl:
	name: str
	return_type: CType
	params: tuple[Param, ...] = ()
	variadic: bool = False
	is_static: bool = False


@dataclass(frozen=True)
class StructField:
	name: str
	type: CType
	array_len: int | None = None


@dataclass(frozen=True)
class StructDecl:
	name: str
	fields: tuple[StructField, ...]
	tag: str | None = None


@dataclass(frozen=True)
class OpaqueStructDecl:
	tag: str


@dataclass(frozen=True)
class Enumerator:
	name: str
	value: int


@dataclass(frozen=True)
class EnumDecl:
	name: str | None
	enumerators: tuple[Enumerator, ...] = field(default_factory=tuple)
	tag: str | None = None


@dataclass(frozen=True)
class TypedefDecl:
	name: str
	type: CType


@dataclass(frozen=True)
class FnPtrTypedefDecl:
	name: str
	return_type: CType
	params: tuple[Param, ...] = ()


Decl = Union[FunctionDecl, StructDecl, OpaqueStructDecl, EnumDecl, TypedefDecl, FnPtrTypedefDecl]


@dataclass(frozen=True)
class SkippedDecl:
	text: str
	reason: str


@dataclass(frozen=True)
class HeaderDecls:
	decls: tuple[Decl, ...]
	skipped: tuple[SkippedDecl, ...] = ()
