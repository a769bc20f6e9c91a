"""Version string, taken from git when available."""

from __future__ import annotations

import subprocess
from pathlib import Path

PACKAGE_VERSION = "0.3.2"


def git_description() -> str:
    """Return the output of ``git describe --tags --always``.

    Raises OSError if git cannot be run or reports failure.
    """
    result = subprocess.run(
        ["git", "describe", "--tags", "--always"],
        capture_output=True,
        cwd=Path(__file__).resolve().parent,
        check=False,
    )
    if result.returncode != 0:
        raise OSError("Git command failed")
    return result.stdout.decode("utf-8").strip()


def cryo_version() -> str:
    """Return the git description, or the package version if git is unavailable."""
    try:
        return git_description()
    except OSError:
        return PACKAGE_VERSION