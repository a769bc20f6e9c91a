"""Saving and loading the command remembered for an output directory.

A remembered command is used whenever cryo runs without datatypes; any extra
arguments given then are merged over it.
"""

from __future__ import annotations

import dataclasses
import json
import sys
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Optional, Sequence, Union

from cryokit.cli_args import Args
from cryokit.errors import ParseError
from cryokit.version import cryo_version

REMEMBER_FILENAME = "remembered_command.json"


@dataclass
class RememberedCommand:
    """A command saved with --remember."""

    cryo_version: str
    command: list[str]
    args: Args


def get_remembered_command_path(cryo_dir: Union[str, PathLike]) -> Path:
    """Return the path of the remembered command file inside ``cryo_dir``."""
    return Path(cryo_dir) / REMEMBER_FILENAME


def save_remembered_command(
    cryo_dir: Union[str, PathLike], args: Args, argv: Optional[Sequence[str]] = None
) -> None:
    """Save ``args`` and the command words (minus --remember) for later runs."""
    words = sys.argv if argv is None else argv
    remembered = RememberedCommand(
        cryo_version=cryo_version(),
        command=[word for word in words if word != "--remember"],
        args=dataclasses.replace(args, remember=False),
    )
    try:
        text = json.dumps(
            {
                "cryo_version": remembered.cryo_version,
                "command": remembered.command,
                "args": remembered.args.to_dict(),
            },
            separators=(",", ":"),
        )
    except (TypeError, ValueError) as exc:
        raise ParseError("could not serialize remembered command") from exc
    path = get_remembered_command_path(cryo_dir)
    try:
        handle = open(path, "w", encoding="utf-8")
    except OSError as exc:
        raise ParseError("could not create remembered file") from exc
    with handle:
        try:
            handle.write(text)
        except OSError as exc:
            raise ParseError("could not write remembered command") from exc


def load_remembered_command(cryo_dir: Union[str, PathLike]) -> RememberedCommand:
    """Load the command remembered in ``cryo_dir``."""
    path = get_remembered_command_path(cryo_dir)
    try:
        handle = open(path, encoding="utf-8")
    except OSError as exc:
        raise ParseError(
            "either 1) specify datasets to collect or 2) specify a command to remember with --remember"
        ) from exc
    with handle:
        try:
            contents = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseError("could not read remembered file") from exc
    try:
        data = json.loads(contents)
        version = data["cryo_version"]
        command = data["command"]
        if not isinstance(version, str):
            raise ValueError("cryo_version must be a string")
        if not isinstance(command, list) or not all(isinstance(word, str) for word in command):
            raise ValueError("command must be a list of strings")
        args = Args.from_dict(data["args"])
    except (ValueError, KeyError, TypeError) as exc:
        raise ParseError("could not deserialize remembered file") from exc
    return RememberedCommand(cryo_version=version, command=list(command), args=args)