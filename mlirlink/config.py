# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Resolver configuration (`mlirlink.json`, v0).

    {
      "format": "mlirlink-config",
      "version": 0,
      "llvm_major_version": 20,
      "manual_groups": ["libMLIRCAPIQwerty", "libMLIRQwerty", ...],
      "toolchain_prefix": "libMLIR",
      "llvm_prefix": "/opt/llvm-20",
      "manifest_name": "mlir-deps.tsv",
      "target": null,
      "strict_cycles": false,
      "subprocess_timeout_s": 120,
      "x": {}
    }

Every field except `format`/`version` is optional. A missing file means all
defaults. Without `manual_groups` or `toolchain_prefix` the defaults follow the
target's archive naming (`libMLIR` for `lib*.a`, `MLIR` for `*.lib`).
Precedence when resolving a value: command line, then this file, then the
environment (`MLIR_SYS_<N>0_PREFIX`), then the built-in default.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from mlirlink.archive import UNIX_ARCHIVES, ArchiveConvention
from mlirlink.errors import LinkOrderError
from mlirlink.native_build import MANIFEST_NAME
from mlirlink.process import DEFAULT_TIMEOUT_S
from mlirlink.resolver import ManualOrderGroups, default_manual_groups, default_toolchain_prefix
from mlirlink.toolchain import LLVM_MAJOR_VERSION, llvm_prefix_from_env

CONFIG_FORMAT = "mlirlink-config"
CONFIG_VERSION = 0
DEFAULT_CONFIG_PATH = Path("mlirlink.json")


@dataclass(frozen=True)
class ResolverConfig:
	llvm_major_version: int = LLVM_MAJOR_VERSION
	manual_groups: ManualOrderGroups | None = None
	toolchain_prefix: str | None = None
	llvm_prefix: Path | None = None
	manifest_name: str = MANIFEST_NAME
	target: str | None = None
	strict_cycles: bool = False
	subprocess_timeout_s: float | None = DEFAULT_TIMEOUT_S
	x: Mapping[str, Any] = field(default_factory=dict)

	def manual_groups_for(self, convention: ArchiveConvention = UNIX_ARCHIVES) -> ManualOrderGroups:
		"""Configured groups as written, else the project defaults named for `convention`."""
		if self.manual_groups is not None:
			return self.manual_groups
		return default_manual_groups(convention)

	def toolchain_prefix_for(self, convention: ArchiveConvention = UNIX_ARCHIVES) -> str:
		if self.toolchain_prefix is not None:
			return self.toolchain_prefix
		return default_toolchain_prefix(convention)

	def effective_llvm_prefix(self, environ: Mapping[str, str] | None = None) -> Path | None:
		if self.llvm_prefix is not None:
			return self.llvm_prefix
		return llvm_prefix_from_env(self.llvm_major_version, environ)


def _invalid(path: Path, message: str) -> LinkOrderError:
	return LinkOrderError(reason_code="CONFIG_INVALID", message=message, path=str(path))


def _load_config_json(path: Path) -> dict[str, Any]:
	try:
		text = path.read_text(encoding="utf-8")
	except (OSError, UnicodeDecodeError) as err:
		raise _invalid(path, f"cannot read config: {getattr(err, 'strerror', None) or err}") from err
	try:
		data = json.loads(text)
	except json.JSONDecodeError as err:
		raise _invalid(path, f"config is not valid JSON: {err}") from err
	if not isinstance(data, dict):
		raise _invalid(path, "config must be a JSON object")
	if data.get("format") != CONFIG_FORMAT or data.get("version") != CONFIG_VERSION:
		raise _invalid(path, "unsupported config format/version")
	allowed_top = {
		"format",
		"version",
		"llvm_major_version",
		"manual_groups",
		"toolchain_prefix",
		"llvm_prefix",
		"manifest_name",
		"target",
		"strict_cycles",
		"subprocess_timeout_s",
		"x",
	}
	unknown_top = sorted(set(data.keys()) - allowed_top)
	if unknown_top:
		raise _invalid(path, f"config has unknown top-level fields: {', '.join(unknown_top)}")
	return data


def _optional_str(path: Path, data: Mapping[str, Any], key: str) -> str | None:
	value = data.get(key)
	if value is None:
		return None
	if not isinstance(value, str) or not value:
		raise _invalid(path, f"'{key}' must be a non-empty string or null")
	return value


def config_from_dict(data: Mapping[str, Any], *, path: Path = DEFAULT_CONFIG_PATH) -> ResolverConfig:
	cfg = ResolverConfig()
	updates: dict[str, Any] = {}

	if "llvm_major_version" in data:
		major = data["llvm_major_version"]
		if not isinstance(major, int) or isinstance(major, bool) or major <= 0:
			raise _invalid(path, "'llvm_major_version' must be a positive integer")
		updates["llvm_major_version"] = major

	if "manual_groups" in data:
		groups = data["manual_groups"]
		if not isinstance(groups, list) or not all(isinstance(g, str) and g for g in groups):
			raise _invalid(path, "'manual_groups' must be a list of non-empty strings")
		updates["manual_groups"] = ManualOrderGroups(prefixes=tuple(groups))

	if "toolchain_prefix" in data:
		prefix = data["toolchain_prefix"]
		if not isinstance(prefix, str):
			raise _invalid(path, "'toolchain_prefix' must be a string")
		updates["toolchain_prefix"] = prefix

	llvm_prefix = _optional_str(path, data, "llvm_prefix")
	if llvm_prefix is not None:
		updates["llvm_prefix"] = Path(llvm_prefix)

	manifest_name = _optional_str(path, data, "manifest_name")
	if manifest_name is not None:
		updates["manifest_name"] = manifest_name

	target = _optional_str(path, data, "target")
	if target is not None:
		updates["target"] = target

	if "strict_cycles" in data:
		if not isinstance(data["strict_cycles"], bool):
			raise _invalid(path, "'strict_cycles' must be a boolean")
		updates["strict_cycles"] = data["strict_cycles"]

	if "subprocess_timeout_s" in data:
		timeout = data["subprocess_timeout_s"]
		if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
			raise _invalid(path, "'subprocess_timeout_s' must be a positive number or null")
		updates["subprocess_timeout_s"] = float(timeout) if timeout is not None else None

	if "x" in data:
		if not isinstance(data["x"], dict):
			raise _invalid(path, "config top-level 'x' must be an object")
		updates["x"] = dict(data["x"])

	return replace(cfg, **updates)


def load_config(path: Path | None) -> ResolverConfig:
	if path is None or not path.exists():
		return ResolverConfig()
	return config_from_dict(_load_config_json(path), path=path)


__all__ = [
	"CONFIG_FORMAT",
	"CONFIG_VERSION",
	"DEFAULT_CONFIG_PATH",
	"ResolverConfig",
	"config_from_dict",
	"load_config",
]
