# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Subprocess helper shared by the external build steps (cmake, llvm-config, clang).

Commands run without a shell and always with a timeout, so a hung tool aborts
the build with a diagnostic instead of blocking it forever.
"""

from __future__ import annotations

import shlex
import subprocess
import sys
from pathlib import Path
from typing import Callable, Sequence

from mlirlink.errors import LinkOrderError

Runner = Callable[..., "subprocess.CompletedProcess[str]"]

DEFAULT_TIMEOUT_S = 120.0


def format_command(cmd: Sequence[str | Path]) -> str:
	return " ".join(shlex.quote(str(c)) for c in cmd)


def _stderr_tail(text: str | None, limit: int = 20) -> str:
	lines = (text or "").strip().splitlines()
	return "\n".join(lines[-limit:])


def run_tool(
	cmd: Sequence[str | Path],
	*,
	failure_code: str,
	missing_code: str | None = None,
	runner: Runner = subprocess.run,
	timeout_s: float | None = DEFAULT_TIMEOUT_S,
	cwd: Path | None = None,
	verbose: bool = False,
) -> subprocess.CompletedProcess[str]:
	"""
	Run `cmd`, returning the completed process on exit status 0.

	A missing executable raises `missing_code` (default: `failure_code`), a
	timeout raises TOOL_TIMEOUT, and a non-zero exit raises `failure_code` with
	the tail of stderr.
	"""
	argv = [str(c) for c in cmd]
	cmd_str = format_command(argv)
	if verbose:
		print(f"mlirlink: running: {cmd_str}", file=sys.stderr)
	try:
		res = runner(argv, cwd=cwd, capture_output=True, text=True, timeout=timeout_s, check=False)
	except FileNotFoundError as err:
		raise LinkOrderError(
			reason_code=missing_code or failure_code,
			message=f"executable not found: {argv[0]}",
			command=cmd_str,
		) from err
	except subprocess.TimeoutExpired as err:
		raise LinkOrderError(
			reason_code="TOOL_TIMEOUT",
			message=f"command did not finish within {timeout_s}s",
			command=cmd_str,
		) from err
	if res.returncode != 0:
		tail = _stderr_tail(res.stderr)
		suffix = f": {tail}" if tail else ""
		raise LinkOrderError(
			reason_code=failure_code,
			message=f"command exited with status {res.returncode}{suffix}",
			command=cmd_str,
		)
	return res


__all__ = ["Runner", "DEFAULT_TIMEOUT_S", "format_command", "run_tool"]
