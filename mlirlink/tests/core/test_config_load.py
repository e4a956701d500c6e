# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

import pytest

from mlirlink.archive import MSVC_ARCHIVES
from mlirlink.config import CONFIG_FORMAT, CONFIG_VERSION, ResolverConfig, config_from_dict, load_config
from mlirlink.errors import LinkOrderError
from mlirlink.resolver import DEFAULT_MANUAL_GROUPS


def _write(path: Path, obj: object) -> Path:
	path.write_text(json.dumps(obj), encoding="utf-8")
	return path


def test_missing_config_means_defaults(tmp_path: Path) -> None:
	cfg = load_config(tmp_path / "mlirlink.json")
	assert cfg == ResolverConfig()
	assert cfg.manual_groups is None
	assert cfg.manual_groups_for() == DEFAULT_MANUAL_GROUPS
	assert cfg.toolchain_prefix_for() == "libMLIR"
	assert cfg.llvm_major_version == 20
	assert load_config(None) == ResolverConfig()


def test_full_config_round_trip(tmp_path: Path) -> None:
	path = _write(
		tmp_path / "mlirlink.json",
		{
			"format": CONFIG_FORMAT,
			"version": CONFIG_VERSION,
			"llvm_major_version": 19,
			"manual_groups": ["libA", "libB"],
			"toolchain_prefix": "libLLVM",
			"llvm_prefix": "/opt/llvm-19",
			"manifest_name": "deps.tsv",
			"target": "x86_64-pc-windows-msvc",
			"strict_cycles": True,
			"subprocess_timeout_s": 30,
			"x": {"note": "kept"},
		},
	)
	cfg = load_config(path)
	assert cfg.llvm_major_version == 19
	assert cfg.manual_groups.prefixes == ("libA", "libB")
	assert cfg.toolchain_prefix == "libLLVM"
	assert cfg.llvm_prefix == Path("/opt/llvm-19")
	assert cfg.manifest_name == "deps.tsv"
	assert cfg.target == "x86_64-pc-windows-msvc"
	assert cfg.strict_cycles is True
	assert cfg.subprocess_timeout_s == 30.0
	assert cfg.x == {"note": "kept"}


def test_wrong_format_is_rejected(tmp_path: Path) -> None:
	path = _write(tmp_path / "c.json", {"format": "other", "version": 0})
	with pytest.raises(LinkOrderError) as excinfo:
		load_config(path)
	assert excinfo.value.reason_code == "CONFIG_INVALID"
	assert excinfo.value.path == str(path)


def test_invalid_json_is_rejected(tmp_path: Path) -> None:
	path = tmp_path / "c.json"
	path.write_text("{not json", encoding="utf-8")
	with pytest.raises(LinkOrderError) as excinfo:
		load_config(path)
	assert excinfo.value.reason_code == "CONFIG_INVALID"


def test_unknown_field_is_rejected(tmp_path: Path) -> None:
	path = _write(tmp_path / "c.json", {"format": CONFIG_FORMAT, "version": 0, "groups": []})
	with pytest.raises(LinkOrderError) as excinfo:
		load_config(path)
	assert "groups" in excinfo.value.message


@pytest.mark.parametrize(
	"data",
	[
		{"llvm_major_version": "20"},
		{"llvm_major_version": True},
		{"manual_groups": "libA"},
		{"manual_groups": ["libA", ""]},
		{"strict_cycles": "yes"},
		{"subprocess_timeout_s": -1},
		{"llvm_prefix": ""},
		{"x": []},
	],
)
def test_bad_field_types(data: dict[str, object]) -> None:
	with pytest.raises(LinkOrderError) as excinfo:
		config_from_dict(data)
	assert excinfo.value.reason_code == "CONFIG_INVALID"


def test_null_timeout_disables_timeout() -> None:
	assert config_from_dict({"subprocess_timeout_s": None}).subprocess_timeout_s is None


def test_llvm_prefix_precedence() -> None:
	env = {"MLIR_SYS_200_PREFIX": "/from/env"}
	assert ResolverConfig().effective_llvm_prefix(env) == Path("/from/env")
	assert ResolverConfig(llvm_prefix=Path("/from/config")).effective_llvm_prefix(env) == Path("/from/config")
	assert ResolverConfig().effective_llvm_prefix({}) is None
	assert ResolverConfig(llvm_major_version=19).effective_llvm_prefix(env) is None


def test_default_names_follow_the_archive_convention() -> None:
	cfg = ResolverConfig()
	assert cfg.manual_groups_for(MSVC_ARCHIVES).prefixes[0] == "MLIRCAPIQwerty"
	assert cfg.manual_groups_for(MSVC_ARCHIVES).prefixes[2] == "qwutil"
	assert cfg.toolchain_prefix_for(MSVC_ARCHIVES) == "MLIR"

	configured = config_from_dict({"manual_groups": ["libA"], "toolchain_prefix": "libLLVM"})
	assert configured.manual_groups_for(MSVC_ARCHIVES).prefixes == ("libA",)
	assert configured.toolchain_prefix_for(MSVC_ARCHIVES) == "libLLVM"


def test_config_path_that_is_a_directory_is_invalid(tmp_path: Path) -> None:
	with pytest.raises(LinkOrderError) as excinfo:
		load_config(tmp_path)
	assert excinfo.value.reason_code == "CONFIG_INVALID"
	assert excinfo.value.path == str(tmp_path)
	assert excinfo.value.message.startswith("cannot read config:")
