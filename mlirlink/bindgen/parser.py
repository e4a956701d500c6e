# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Parse preprocessed C header text into declaration nodes.

The header is first split into top-level declarations (a `;` or a function
body closing at brace depth zero ends one). Each declaration is parsed on its
own with the LALR grammar in `cdecl.lark`; anything the grammar does not
accept (inline function bodies, unions, bitfields, ...) is recorded as
skipped rather than failing the whole header.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, List

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput

from mlirlink.bindgen.ast import (
	CType,
	Decl,
	EnumDecl,
	Enumerator,
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

_GRAMMAR_PATH = Path(__file__).with_name("cdecl.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	start="declaration",
	maybe_placeholders=False,
)

# Compiler extensions that take a parenthesized argument.
_PAREN_EXTENSIONS = ("__attribute__", "__declspec", "__asm__", "__asm", "_Alignas", "__deprecated_msg")
_BARE_EXTENSIONS = re.compile(r"\b(__extension__|__attribute_deprecated__)\b")


class DeclarationError(ValueError):
	"""A declaration parsed but cannot be represented (e.g. bad enum value)."""


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return str(node)


def _subtrees(tree: Tree, kind: str) -> list[Tree]:
	return [c for c in tree.children if isinstance(c, Tree) and _name(c) == kind]


def _subtree(tree: Tree, kind: str) -> Tree | None:
	found = _subtrees(tree, kind)
	return found[0] if found else None


def _tokens(tree: Tree, kind: str) -> list[Token]:
	return [c for c in tree.children if isinstance(c, Token) and c.type == kind]


def _strip_paren_group(text: str, start: int) -> int:
	"""Return the index just past the balanced `(...)` group at or after `start`."""
	i = start
	while i < len(text) and text[i].isspace():
		i += 1
	if i >= len(text) or text[i] != "(":
		return start
	depth = 0
	while i < len(text):
		if text[i] == "(":
			depth += 1
		elif text[i] == ")":
			depth -= 1
			if depth == 0:
				return i + 1
		i += 1
	return len(text)


def strip_extensions(text: str) -> str:
	"""Remove `__attribute__((...))` and similar compiler extensions."""
	for keyword in _PAREN_EXTENSIONS:
		pattern = re.compile(rf"\b{re.escape(keyword)}\b")
		while True:
			m = pattern.search(text)
			if m is None:
				break
			end = _strip_paren_group(text, m.end())
			text = text[: m.start()] + " " + text[end:]
	return _BARE_EXTENSIONS.sub(" ", text)


def split_declarations(text: str) -> Iterator[str]:
	"""
	Yield top-level declarations from preprocessed C text.

	Preprocessor leftovers (`#pragma`, line markers) are dropped. String and
	character literals are skipped over so a `;` or brace inside one does not
	end a declaration.
	"""
	lines = [line for line in text.splitlines() if not line.lstrip().startswith("#")]
	src = "\n".join(lines)
	buf: List[str] = []
	depth = 0
	body_start: int | None = None
	quote: str | None = None
	i = 0
	while i < len(src):
		c = src[i]
		buf.append(c)
		i += 1
		if quote is not None:
			if c == "\\" and i < len(src):
				buf.append(src[i])
				i += 1
			elif c == quote:
				quote = None
			continue
		if c in ('"', "'"):
			quote = c
		elif c == "{":
			if depth == 0:
				body_start = len(buf) - 1
			depth += 1
		elif c == "}":
			depth = max(depth - 1, 0)
			if depth == 0 and body_start is not None and "".join(buf[:body_start]).rstrip().endswith(")"):
				yield "".join(buf).strip()
				buf = []
				body_start = None
		elif c == ";" and depth == 0:
			yield "".join(buf).strip()
			buf = []
			body_start = None
	rest = "".join(buf).strip()
	if rest:
		yield rest


def _build_type(tree: Tree) -> CType:
	is_const = any(t.children and t.children[0] == "const" for t in _subtrees(tree, "qualifier"))
	pointer_depth = len(_subtrees(tree, "pointer"))
	base = next(c for c in tree.children if isinstance(c, Tree) and _name(c) in ("scalar", "struct_ref", "enum_ref", "named"))
	kind = _name(base)
	if kind == "scalar":
		spelling = " ".join(str(tok) for tok in base.children if isinstance(tok, Token))
		return CType(kind="scalar", base=spelling, pointer_depth=pointer_depth, is_const=is_const)
	name_tok = _tokens(base, "NAME")[0]
	if kind == "struct_ref":
		return CType(kind="struct", base=str(name_tok), pointer_depth=pointer_depth, is_const=is_const)
	if kind == "enum_ref":
		return CType(kind="enum", base=str(name_tok), pointer_depth=pointer_depth, is_const=is_const)
	return CType(kind="named", base=str(name_tok), pointer_depth=pointer_depth, is_const=is_const)


def _build_params(tree: Tree | None) -> tuple[tuple[Param, ...], bool]:
	if tree is None:
		return (), False
	params: list[Param] = []
	for p in _subtrees(tree, "param"):
		ty = _build_type(_subtree(p, "type_spec"))  # type: ignore[arg-type]
		if _subtree(p, "array_suffix") is not None:
			ty = CType(kind=ty.kind, base=ty.base, pointer_depth=ty.pointer_depth + 1, is_const=ty.is_const)
		names = _tokens(p, "NAME")
		params.append(Param(name=str(names[0]) if names else None, type=ty))
	variadic = bool(_tokens(tree, "ELLIPSIS"))
	# `f(void)` declares no parameters.
	if len(params) == 1 and params[0].name is None and params[0].type.is_void:
		params = []
	return tuple(params), variadic


def _parse_int(text: str) -> int:
	digits = text.rstrip("uUlL")
	if digits.lower().startswith("0x"):
		return int(digits, 16)
	if len(digits) > 1 and digits.startswith("0"):
		return int(digits, 8)
	return int(digits)


def _build_enumerators(tree: Tree) -> tuple[Enumerator, ...]:
	out: list[Enumerator] = []
	known: dict[str, int] = {}
	next_value = 0
	for e in _subtrees(tree, "enumerator"):
		name = str(_tokens(e, "NAME")[0])
		value_node = next((c for c in e.children if isinstance(c, Tree)), None)
		if value_node is None:
			value = next_value
		elif _name(value_node) == "number":
			value = _parse_int(str(value_node.children[0]))
		elif _name(value_node) == "neg_number":
			value = -_parse_int(str(value_node.children[0]))
		else:
			ref = str(value_node.children[0])
			if ref not in known:
				raise DeclarationError(f"enumerator '{name}' refers to unknown constant '{ref}'")
			value = known[ref]
		known[name] = value
		out.append(Enumerator(name=name, value=value))
		next_value = value + 1
	return tuple(out)


def _build_fields(tree: Tree) -> tuple[StructField, ...]:
	fields: list[StructField] = []
	for f in _subtrees(tree, "field"):
		ty = _build_type(_subtree(f, "type_spec"))  # type: ignore[arg-type]
		suffix = _subtree(f, "array_suffix")
		array_len: int | None = None
		if suffix is not None:
			nums = _tokens(suffix, "NUMBER")
			if not nums:
				raise DeclarationError("flexible array members are not supported")
			array_len = _parse_int(str(nums[0]))
		fields.append(StructField(name=str(_tokens(f, "NAME")[0]), type=ty, array_len=array_len))
	return tuple(fields)


def _build_decl(tree: Tree) -> Decl:
	kind = _name(tree)
	if kind == "function_decl":
		storage = {str(c.children[0]) for c in _subtrees(tree, "storage")}
		return_type = _build_type(_subtree(tree, "type_spec"))  # type: ignore[arg-type]
		params, variadic = _build_params(_subtree(tree, "param_list"))
		return FunctionDecl(
			name=str(_tokens(tree, "NAME")[0]),
			return_type=return_type,
			params=params,
			variadic=variadic,
			is_static="static" in storage,
		)
	if kind == "struct_typedef":
		names = _tokens(tree, "NAME")
		return StructDecl(name=str(names[-1]), fields=_build_fields(tree), tag=str(names[0]) if len(names) > 1 else None)
	if kind == "struct_decl":
		tag = str(_tokens(tree, "NAME")[0])
		return StructDecl(name=tag, fields=_build_fields(tree), tag=tag)
	if kind == "struct_forward":
		return OpaqueStructDecl(tag=str(_tokens(tree, "NAME")[0]))
	if kind == "enum_typedef":
		names = _tokens(tree, "NAME")
		return EnumDecl(
			name=str(names[-1]),
			enumerators=_build_enumerators(_subtree(tree, "enumerator_list")),  # type: ignore[arg-type]
			tag=str(names[0]) if len(names) > 1 else None,
		)
	if kind == "enum_decl":
		tag = str(_tokens(tree, "NAME")[0])
		return EnumDecl(name=None, enumerators=_build_enumerators(_subtree(tree, "enumerator_list")), tag=tag)  # type: ignore[arg-type]
	if kind == "alias_typedef":
		return TypedefDecl(name=str(_tokens(tree, "NAME")[0]), type=_build_type(_subtree(tree, "type_spec")))  # type: ignore[arg-type]
	if kind == "fnptr_typedef":
		params, _variadic = _build_params(_subtree(tree, "param_list"))
		return FnPtrTypedefDecl(
			name=str(_tokens(tree, "NAME")[0]),
			return_type=_build_type(_subtree(tree, "type_spec")),  # type: ignore[arg-type]
			params=params,
		)
	raise AssertionError(f"unexpected declaration node {kind!r}")


def parse_declaration(text: str) -> Decl:
	"""Parse one declaration; raises `UnexpectedInput` or `DeclarationError`."""
	return _build_decl(_PARSER.parse(strip_extensions(text)))


def parse_header(text: str) -> HeaderDecls:
	decls: list[Decl] = []
	skipped: list[SkippedDecl] = []
	for chunk in split_declarations(text):
		if chunk == ";":
			continue
		try:
			decls.append(parse_declaration(chunk))
		except UnexpectedInput as err:
			line = getattr(err, "line", None)
			column = getattr(err, "column", None)
			skipped.append(SkippedDecl(text=chunk, reason=f"unsupported syntax at {line}:{column}"))
		except DeclarationError as err:
			skipped.append(SkippedDecl(text=chunk, reason=str(err)))
	return HeaderDecls(decls=tuple(decls), skipped=tuple(skipped))


__all__ = ["DeclarationError", "strip_extensions", "split_declarations", "parse_declaration", "parse_header"]
