# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
mlirlink: static link-order resolution for MLIR-based native builds.

Modules:
  archive, inventory: archive naming and discovery
  manifest, toposort: dependency manifest and its topological order
  resolver: manual groups + manifest order -> LinkPlan
  toolchain, native_build, bindgen: external build collaborators
  directives, pipeline, cli: build-integration output and drivers

The CLI entrypoint is `mlirlink.cli:main`.
"""

__all__ = ["archive", "inventory", "manifest", "toposort", "resolver"]
