# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
C header to ctypes binding generation.

`parser` turns preprocessed declarations into `ast` nodes; `generate` renders
them and drives the preprocessor.
"""

from mlirlink.bindgen.generate import BindgenOptions, BindingResult, generate_bindings, render_bindings
from mlirlink.bindgen.parser import parse_header

__all__ = ["BindgenOptions", "BindingResult", "generate_bindings", "render_bindings", "parse_header"]
