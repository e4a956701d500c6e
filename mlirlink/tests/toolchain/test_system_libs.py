# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from mlirlink.archive import MSVC_ARCHIVES
from mlirlink.directives import link_lib, link_search
from mlirlink.toolchain import system_lib_directives, system_libcpp, toolchain_lib_directives


def test_dash_l_flags() -> None:
	assert system_lib_directives("-lrt -ldl -lm -lz -lzstd") == [
		link_lib("rt"),
		link_lib("dl"),
		link_lib("m"),
		link_lib("z"),
		link_lib("zstd"),
	]


def test_absolute_library_path_becomes_search_plus_name() -> None:
	assert system_lib_directives("-lm /usr/lib/x86_64-linux-gnu/libxml2.so") == [
		link_lib("m"),
		link_search("/usr/lib/x86_64-linux-gnu"),
		link_lib("xml2"),
	]


def test_windows_library_path() -> None:
	out = system_lib_directives(r"C:\vcpkg\lib\zstd.lib ntdll.lib")
	assert out[0] == link_search(r"C:\vcpkg\lib")
	assert out[1] == link_lib("zstd")
	assert out[2] == link_lib("ntdll.lib")


def test_empty_output_means_no_directives() -> None:
	assert system_lib_directives("") == []
	assert system_lib_directives("   \n") == []


def test_toolchain_libnames_are_parsed() -> None:
	out = toolchain_lib_directives("libLLVMCore.a libLLVMSupport.a\nlibLLVMDemangle.a")
	assert [d.value for d in out] == ["LLVMCore", "LLVMSupport", "LLVMDemangle"]
	assert all(d.link_kind is None for d in out)


def test_toolchain_libnames_msvc() -> None:
	out = toolchain_lib_directives("LLVMCore.lib LLVMSupport.lib", MSVC_ARCHIVES)
	assert [d.value for d in out] == ["LLVMCore", "LLVMSupport"]


def test_cxx_runtime_by_triple() -> None:
	assert system_libcpp("x86_64-unknown-linux-gnu") == "stdc++"
	assert system_libcpp("aarch64-apple-darwin") == "c++"
	assert system_libcpp("x86_64-pc-windows-msvc") is None
	assert system_libcpp("x86_64-pc-windows-gnu") == "stdc++"
