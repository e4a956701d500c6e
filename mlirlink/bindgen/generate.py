# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
ctypes binding generation for the C API headers.

The wrapper header is run through the C preprocessor with the toolchain and
native include directories, parsed by `mlirlink.bindgen.parser`, and rendered
as a Python module of ctypes declarations:

- handle structs (`typedef struct { void *ptr; } MlirContext;`) become
  `ctypes.Structure` subclasses,
- enums become integer constants plus a `ctypes.c_int` alias,
- function prototypes become a `FUNCTIONS` table and a `bind(lib)` helper that
  attaches `restype`/`argtypes` to a loaded library.

Output is a pure function of the preprocessed header, so regenerating against
the same install tree is byte-identical.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from mlirlink.bindgen.ast import (
	CType,
	EnumDecl,
	FnPtrTypedefDecl,
	FunctionDecl,
	HeaderDecls,
	OpaqueStructDecl,
	Param,
	SkippedDecl,
	StructDecl,
	StructField,
	TypedefDecl,
)
from mlirlink.bindgen.parser import parse_header
from mlirlink.errors import LinkOrderError
from mlirlink.process import DEFAULT_TIMEOUT_S, Runner, run_tool

# Fallbacks for fixed-width typedefs whose system-header definitions did not
# make it through the parser.
_BUILTIN_NAMED = {
	"size_t": "ctypes.c_size_t",
	"ssize_t": "ctypes.c_ssize_t",
	"ptrdiff_t": "ctypes.c_ssize_t",
	"intptr_t": "ctypes.c_ssize_t",
	"uintptr_t": "ctypes.c_size_t",
	"int8_t": "ctypes.c_int8",
	"int16_t": "ctypes.c_int16",
	"int32_t": "ctypes.c_int32",
	"int64_t": "ctypes.c_int64",
	"uint8_t": "ctypes.c_uint8",
	"uint16_t": "ctypes.c_uint16",
	"uint32_t": "ctypes.c_uint32",
	"uint64_t": "ctypes.c_uint64",
	"wchar_t": "ctypes.c_wchar",
}


class UnknownTypeError(ValueError):
	pass


def _scalar_ctype(spelling: str) -> str | None:
	words = spelling.split()
	if "void" in words:
		return None
	if "_Bool" in words or "bool" in words:
		return "ctypes.c_bool"
	unsigned = "unsigned" in words
	if "char" in words:
		if unsigned:
			return "ctypes.c_ubyte"
		if "signed" in words:
			return "ctypes.c_byte"
		return "ctypes.c_char"
	if "float" in words:
		return "ctypes.c_float"
	if "double" in words:
		return "ctypes.c_longdouble" if "long" in words else "ctypes.c_double"
	if "short" in words:
		return "ctypes.c_ushort" if unsigned else "ctypes.c_short"
	longs = words.count("long")
	if longs >= 2:
		return "ctypes.c_ulonglong" if unsigned else "ctypes.c_longlong"
	if longs == 1:
		return "ctypes.c_ulong" if unsigned else "ctypes.c_long"
	return "ctypes.c_uint" if unsigned else "ctypes.c_int"


@dataclass
class _TypeScope:
	"""Names seen so far, mapped to the Python expression for their ctype."""

	named: dict[str, str | None] = field(default_factory=dict)
	opaque: set[str] = field(default_factory=set)
	structs: dict[str, str] = field(default_factory=dict)

	def base_expr(self, ty: CType) -> str | None:
		"""ctype expression for the base of `ty`; None means void."""
		if ty.kind == "scalar":
			return _scalar_ctype(ty.base)
		if ty.kind == "enum":
			return "ctypes.c_int"
		if ty.kind == "struct":
			if ty.base in self.structs:
				return self.structs[ty.base]
			raise UnknownTypeError(f"incomplete struct {ty.base}")
		if ty.base in self.named:
			return self.named[ty.base]
		if ty.base in _BUILTIN_NAMED:
			return _BUILTIN_NAMED[ty.base]
		raise UnknownTypeError(f"unknown type {ty.base}")

	def is_opaque(self, ty: CType) -> bool:
		if ty.kind == "struct":
			return ty.base not in self.structs
		if ty.kind == "named":
			return ty.base in self.opaque or (ty.base not in self.named and ty.base not in _BUILTIN_NAMED)
		return False

	def expr(self, ty: CType) -> str:
		if ty.pointer_depth == 0:
			base = self.base_expr(ty)
			if base is None:
				raise UnknownTypeError("void value type")
			return base
		if self.is_opaque(ty):
			inner = "ctypes.c_void_p"
			depth = ty.pointer_depth - 1
		else:
			base = self.base_expr(ty)
			if base is None:
				inner, depth = "ctypes.c_void_p", ty.pointer_depth - 1
			elif base == "ctypes.c_char":
				inner, depth = "ctypes.c_char_p", ty.pointer_depth - 1
			else:
				inner, depth = base, ty.pointer_depth
		for _ in range(depth):
			inner = f"ctypes.POINTER({inner})"
		return inner

	def return_expr(self, ty: CType) -> str:
		if ty.is_void:
			return "None"
		return self.expr(ty)


@dataclass(frozen=True)
class RenderedBindings:
	source: str
	function_count: int
	skipped: tuple[SkippedDecl, ...]


def _argtypes(scope: _TypeScope, params: tuple[Param, ...]) -> str:
	return "[" + ", ".join(scope.expr(p.type) for p in params) + "]"


def _field_entry(scope: _TypeScope, f: StructField) -> str:
	ctype = scope.expr(f.type)
	if f.array_len is not None:
		ctype = f"{ctype} * {f.array_len}"
	return f"(\"{f.name}\", {ctype})"


def render_bindings(decls: HeaderDecls, *, header_name: str = "wrapper.h") -> RenderedBindings:
	scope = _TypeScope()
	skipped = list(decls.skipped)
	lines: list[str] = [
		f"# Generated by mlirlink.bindgen from {header_name}. Do not edit.",
		"import ctypes",
		"",
	]
	functions: list[str] = []
	seen_functions: set[str] = set()

	for decl in decls.decls:
		try:
			if isinstance(decl, OpaqueStructDecl):
				continue
			if isinstance(decl, StructDecl):
				fields = [_field_entry(scope, f) for f in decl.fields]
				if decl.name in scope.named:
					continue
				lines.append("")
				lines.append(f"class {decl.name}(ctypes.Structure):")
				lines.append(f"\t_fields_ = [{', '.join(fields)}]")
				lines.append("")
				scope.named[decl.name] = decl.name
				if decl.tag is not None:
					scope.structs[decl.tag] = decl.name
				continue
			if isinstance(decl, EnumDecl):
				for e in decl.enumerators:
					lines.append(f"{e.name} = {e.value}")
				if decl.name is not None and decl.name not in scope.named:
					lines.append(f"{decl.name} = ctypes.c_int")
					scope.named[decl.name] = "ctypes.c_int"
				continue
			if isinstance(decl, TypedefDecl):
				if decl.name in scope.named or decl.name in scope.opaque:
					continue
				ty = decl.type
				if ty.pointer_depth == 0 and ty.kind == "struct" and ty.base not in scope.structs:
					scope.opaque.add(decl.name)
					continue
				if ty.pointer_depth == 0 and ty.kind == "named" and ty.base in scope.opaque:
					scope.opaque.add(decl.name)
					continue
				if ty.is_void:
					scope.named[decl.name] = None
					continue
				target = scope.expr(ty)
				scope.named[decl.name] = target
				lines.append(f"{decl.name} = {target}")
				continue
			if isinstance(decl, FnPtrTypedefDecl):
				if decl.name in scope.named:
					continue
				args = ", ".join([scope.return_expr(decl.return_type), *(scope.expr(p.type) for p in decl.params)])
				lines.append(f"{decl.name} = ctypes.CFUNCTYPE({args})")
				scope.named[decl.name] = decl.name
				continue
			if isinstance(decl, FunctionDecl):
				if decl.is_static or decl.name in seen_functions:
					continue
				entry = f"\t\"{decl.name}\": ({scope.return_expr(decl.return_type)}, {_argtypes(scope, decl.params)}),"
				seen_functions.add(decl.name)
				functions.append(entry)
				continue
		except UnknownTypeError as err:
			skipped.append(SkippedDecl(text=getattr(decl, "name", None) or getattr(decl, "tag", None) or "?", reason=str(err)))

	lines.append("")
	lines.append("FUNCTIONS = {")
	lines.extend(functions)
	lines.append("}")
	lines.append("")
	lines.append("")
	lines.append("def bind(lib):")
	lines.append("\t\"\"\"Set restype/argtypes on every function of `lib` (a ctypes.CDLL) known here.\"\"\"")
	lines.append("\tfor name, (restype, argtypes) in FUNCTIONS.items():")
	lines.append("\t\tfn = getattr(lib, name, None)")
	lines.append("\t\tif fn is None:")
	lines.append("\t\t\tcontinue")
	lines.append("\t\tfn.restype = restype")
	lines.append("\t\tfn.argtypes = argtypes")
	lines.append("\treturn lib")
	source = "\n".join(_collapse_blank_lines(lines)) + "\n"
	return RenderedBindings(source=source, function_count=len(functions), skipped=tuple(skipped))


def _collapse_blank_lines(lines: list[str]) -> list[str]:
	out: list[str] = []
	blanks = 0
	for line in lines:
		if line == "":
			blanks += 1
			if blanks > 2:
				continue
		else:
			blanks = 0
		out.append(line)
	return out


@dataclass(frozen=True)
class BindgenOptions:
	header: Path
	out_path: Path
	include_dirs: tuple[Path, ...] = ()
	defines: tuple[str, ...] = ()
	clang: str | None = None
	timeout_s: float | None = DEFAULT_TIMEOUT_S
	verbose: bool = False


@dataclass(frozen=True)
class BindingResult:
	out_path: Path
	function_count: int
	skipped: tuple[SkippedDecl, ...]


def find_clang() -> str:
	clang = shutil.which("clang") or shutil.which("clang-20")
	if clang is None:
		raise LinkOrderError(reason_code="BINDGEN_FAILED", message="clang not available for header preprocessing")
	return clang


def preprocess_header(opts: BindgenOptions, *, runner: Runner = subprocess.run) -> str:
	clang = opts.clang or find_clang()
	cmd = [clang, "-E", "-P", "-x", "c"]
	cmd.extend(f"-I{d}" for d in opts.include_dirs)
	cmd.extend(f"-D{d}" for d in opts.defines)
	cmd.append(str(opts.header))
	res = run_tool(cmd, failure_code="BINDGEN_FAILED", runner=runner, timeout_s=opts.timeout_s, verbose=opts.verbose)
	return res.stdout or ""


def write_atomic(path: Path, text: str) -> None:
	path.parent.mkdir(parents=True, exist_ok=True)
	tmp = path.with_name(path.name + f".tmp.{os.getpid()}")
	tmp.write_text(text, encoding="utf-8")
	os.replace(tmp, path)


def generate_bindings(opts: BindgenOptions, *, runner: Runner = subprocess.run) -> BindingResult:
	text = preprocess_header(opts, runner=runner)
	rendered = render_bindings(parse_header(text), header_name=opts.header.name)
	write_atomic(opts.out_path, rendered.source)
	return BindingResult(out_path=opts.out_path, function_count=rendered.function_count, skipped=rendered.skipped)


__all__ = [
	"BindgenOptions",
	"BindingResult",
	"RenderedBindings",
	"render_bindings",
	"preprocess_header",
	"generate_bindings",
	"find_clang",
	"write_atomic",
]
