# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from mlirlink.errors import LinkOrderError
from mlirlink.native_build import NativeBuildOptions, build_native, check_nonempty_dirs, cmake_commands, install_layout
from mlirlink.test_support import FakeFileSystem, FakeRunner, completed


def _opts(**kw: object) -> NativeBuildOptions:
	return NativeBuildOptions(source_dir=Path("/src"), build_dir=Path("/build"), **kw)  # type: ignore[arg-type]


def test_cmake_configure_build_install() -> None:
	configure, build, install = cmake_commands(_opts())
	assert configure[:7] == ["cmake", "-S", "/src", "-B", "/build", "-G", "Ninja"]
	assert "-DCMAKE_BUILD_TYPE=Release" in configure
	assert "-DCMAKE_INSTALL_PREFIX=/build/install" in configure
	assert "-DDUMP_MLIR_DEPS=ON" in configure
	assert configure[-1] == "-Wno-dev"
	assert build == ["cmake", "--build", "/build", "--config", "Release"]
	assert install == ["cmake", "--install", "/build", "--config", "Release", "--prefix", "/build/install"]


def test_defines_are_sorted() -> None:
	configure, _, _ = cmake_commands(_opts(defines={"ZED": "1", "ALPHA": "2"}, configure_args=()))
	assert configure[-2:] == ["-DALPHA=2", "-DZED=1"]


def test_build_native_runs_in_order_and_returns_layout() -> None:
	runner = FakeRunner()
	built = build_native(_opts(install_dir=Path("/inst")), runner=runner)
	assert [cmd[1] for cmd in runner.commands] == ["-S", "--build", "--install"]
	assert runner.timeouts == [None, None, None]
	assert built.lib_dir == Path("/inst/lib")
	assert built.include_dir == Path("/inst/include")
	assert built.bin_dir == Path("/inst/bin")
	assert built.manifest_path == Path("/inst/lib/mlir-deps.tsv")
	assert built.rerun_if_changed == (
		Path("/src/CMakeLists.txt"),
		Path("/src/qwerty_mlir"),
		Path("/src/qwerty_util"),
		Path("/src/tweedledum"),
	)


def test_failed_step_stops_the_build() -> None:
	def respond(argv: list[str]):
		if argv[1] == "--build":
			return completed(argv, stderr="ninja: build stopped\n", returncode=1)
		return completed(argv)

	runner = FakeRunner(respond=respond)
	with pytest.raises(LinkOrderError) as excinfo:
		build_native(_opts(), runner=runner)
	assert excinfo.value.reason_code == "NATIVE_BUILD_FAILED"
	assert "ninja: build stopped" in excinfo.value.message
	assert len(runner.commands) == 2


def test_missing_cmake_is_build_failure() -> None:
	runner = FakeRunner(respond=lambda argv: FileNotFoundError(2, "No such file", argv[0]))
	with pytest.raises(LinkOrderError) as excinfo:
		build_native(_opts(), runner=runner)
	assert excinfo.value.reason_code == "NATIVE_BUILD_FAILED"


def test_nonempty_install_dirs_pass() -> None:
	built = install_layout(Path("/inst"))
	fs = FakeFileSystem(files={"/inst/include/qwerty.h": b"", "/inst/bin/qwerty-opt": b""})
	check_nonempty_dirs(fs, built)


@pytest.mark.parametrize(
	"files,empty",
	[
		({"/inst/bin/qwerty-opt": b""}, "/inst/include"),
		({"/inst/include/qwerty.h": b""}, "/inst/bin"),
	],
)
def test_empty_install_dir_names_that_dir(files: dict[str, bytes], empty: str) -> None:
	fs = FakeFileSystem(files=files, dirs=["/inst/include", "/inst/bin"])
	with pytest.raises(LinkOrderError) as excinfo:
		check_nonempty_dirs(fs, install_layout(Path("/inst")))
	assert excinfo.value.reason_code == "EMPTY_DIRECTORY"
	assert excinfo.value.path == empty
