import subprocess
from unittest.mock import patch

import pytest

from cryokit.version import PACKAGE_VERSION, cryo_version, git_description


def _completed(returncode, stdout=b""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=b"")


def test_git_description_strips_output():
    with patch("cryokit.version.subprocess.run", return_value=_completed(0, b"v1.2.3-4-gabc\n")) as run:
        assert git_description() == "v1.2.3-4-gabc"
    assert run.call_args.args[0] == ["git", "describe", "--tags", "--always"]


def test_git_description_failure_raises():
    with patch("cryokit.version.subprocess.run", return_value=_completed(128)):
        with pytest.raises(OSError, match="Git command failed"):
            git_description()


def test_cryo_version_uses_git_when_it_succeeds():
    with patch("cryokit.version.subprocess.run", return_value=_completed(0, b"v9.9.9\n")):
        assert cryo_version() == "v9.9.9"


def test_cryo_version_falls_back_on_failure():
    with patch("cryokit.version.subprocess.run", return_value=_completed(1)):
        assert cryo_version() == PACKAGE_VERSION


def test_cryo_version_falls_back_without_git():
    with patch("cryokit.version.subprocess.run", side_effect=FileNotFoundError("git")):
        assert cryo_version() == PACKAGE_VERSION