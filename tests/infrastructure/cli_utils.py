"""
Utilities for working with CLI in tests.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Tuple

from jinx.cli import main

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def run_cli(root: Path, *args: str, stdin: str = "") -> subprocess.CompletedProcess:
    """
    Runs ``python -m jinx`` with specified arguments in the given directory.

    Args:
        root: Working directory for command execution
        *args: Command line arguments
        stdin: Text passed to standard input

    Returns:
        CompletedProcess with execution results
    """
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(PROJECT_ROOT), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "jinx", *args],
        cwd=root, env=env, input=stdin, capture_output=True, text=True, encoding="utf-8",
    )


def run_main(capsys, *args: str) -> Tuple[int, str, str]:
    """
    Calls ``jinx.cli.main`` in-process.

    Returns:
        (exit code, stdout, stderr)
    """
    code = main(list(args))
    captured = capsys.readouterr()
    return code, captured.out, captured.err


__all__ = ["run_cli", "run_main"]
