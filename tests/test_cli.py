# tests/test_cli.py

import json

import pytest

from voting_node.__main__ import main
from voting_node.crypto_utils import Keypair
from voting_node.voting_runtime.addresses import config_address, proposal_address, vote_record_address


@pytest.fixture
def no_config(tmp_path, monkeypatch):
    monkeypatch.delenv("VOTING_PROGRAM_ID", raising=False)
    monkeypatch.chdir(tmp_path)
    return str(tmp_path / "missing.yaml")


def _run(capsys, *argv):
    code = main(list(argv))
    out, err = capsys.readouterr()
    return code, out, err


def test_derive_config(capsys, no_config):
    code, out, _err = _run(capsys, "--config", no_config, "derive", "config")
    assert code == 0
    assert json.loads(out)["address"] == config_address().hex()


def test_derive_proposal(capsys, no_config):
    code, out, _err = _run(capsys, "--config", no_config, "derive", "proposal", "4")
    assert code == 0
    body = json.loads(out)
    assert body["proposal_id"] == 4
    assert body["address"] == proposal_address(4).hex()


def test_derive_vote(capsys, no_config):
    voter = Keypair.generate()
    code, out, _err = _run(capsys, "--config", no_config, "derive", "vote", "2", voter.public_key_hex)
    assert code == 0
    assert json.loads(out)["address"] == vote_record_address(2, voter.public_key).hex()


def test_derive_uses_configured_program(capsys, tmp_path, no_config):
    pid = "ab" * 32
    path = tmp_path / "voting_config.yaml"
    path.write_text(f"program:\n  id: '{pid}'\n", encoding="utf-8")
    code, out, _err = _run(capsys, "--config", str(path), "derive", "config")
    assert code == 0
    assert json.loads(out)["address"] == config_address(bytes.fromhex(pid)).hex()


def test_derive_errors(capsys, no_config):
    code, _out, err = _run(capsys, "--config", no_config, "derive", "vote", "2")
    assert code == 2
    assert "voter" in err
    code, _out, err = _run(capsys, "--config", no_config, "derive", "vote", "2", "beef")
    assert code == 2
    code, _out, _err = _run(capsys, "--config", no_config, "derive", "proposal")
    assert code == 2


def test_bad_config_file(capsys, tmp_path, no_config):
    path = tmp_path / "voting_config.yaml"
    path.write_text("persistence:\n  driver: redis\n", encoding="utf-8")
    code, _out, err = _run(capsys, "--config", str(path), "derive", "config")
    assert code == 2
    assert "config error" in err


def test_keygen(capsys, tmp_path, no_config):
    out_path = tmp_path / "keys" / "owner.json"
    code, out, _err = _run(capsys, "--config", no_config, "keygen", "--out", str(out_path))
    assert code == 0
    body = json.loads(out)
    assert Keypair.load(out_path).public_key_hex == body["public_key"]
