import json

import pytest

from cryokit.cli_args import parse_cli
from cryokit.errors import ParseError
from cryokit.remember import (
    REMEMBER_FILENAME,
    get_remembered_command_path,
    load_remembered_command,
    save_remembered_command,
)
from cryokit.version import cryo_version


def test_path_is_inside_directory(tmp_path):
    assert get_remembered_command_path(tmp_path) == tmp_path / "remembered_command.json"
    assert get_remembered_command_path(str(tmp_path)).name == REMEMBER_FILENAME


def test_save_and_load_round_trip(tmp_path):
    args = parse_cli(["blocks", "-b", "1:2", "--remember"])
    argv = ["cryo", "blocks", "-b", "1:2", "--remember"]
    save_remembered_command(tmp_path, args, argv)
    loaded = load_remembered_command(tmp_path)
    assert loaded.command == ["cryo", "blocks", "-b", "1:2"]
    assert loaded.args.blocks == ["1:2"]
    assert loaded.args.datatype == ["blocks"]
    assert loaded.args.remember is False
    assert loaded.cryo_version == cryo_version()


def test_saved_json_is_compact(tmp_path):
    save_remembered_command(tmp_path, parse_cli(["blocks"]), ["cryo", "blocks"])
    text = (tmp_path / REMEMBER_FILENAME).read_text(encoding="utf-8")
    assert '"command":["cryo","blocks"]' in text
    assert json.loads(text)["args"]["chunk_size"] == 1000


def test_load_missing_file_explains_what_to_do(tmp_path):
    with pytest.raises(ParseError, match="--remember"):
        load_remembered_command(tmp_path)


def test_load_corrupt_file_raises(tmp_path):
    (tmp_path / REMEMBER_FILENAME).write_text("{not json", encoding="utf-8")
    with pytest.raises(ParseError, match="could not deserialize remembered file"):
        load_remembered_command(tmp_path)


def test_load_bad_args_raises(tmp_path):
    payload = {"cryo_version": "x", "command": ["cryo"], "args": {"dry": "yes"}}
    (tmp_path / REMEMBER_FILENAME).write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ParseError, match="could not deserialize remembered file"):
        load_remembered_command(tmp_path)


def test_save_into_missing_directory_raises(tmp_path):
    with pytest.raises(ParseError, match="could not create remembered file"):
        save_remembered_command(tmp_path / "absent", parse_cli(["blocks"]), ["cryo", "blocks"])