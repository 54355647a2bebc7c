# tests/test_config.py

import logging

import pytest

from voting_node.config import (
    ConfigError,
    configure_logging,
    default_config,
    get_bind_host,
    get_bind_port,
    get_cors_origins,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "VOTING_CHAIN_ID",
        "VOTING_PROGRAM_ID",
        "VOTING_PERSISTENCE",
        "VOTING_DATA_DIR",
        "VOTING_HOST",
        "VOTING_PORT",
        "VOTING_LOG_LEVEL",
        "VOTING_FAUCET",
        "VOTING_REQUIRE_SIGNATURES",
    ):
        monkeypatch.delenv(name, raising=False)


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(str(tmp_path / "nope.yaml"))
    assert cfg == default_config()
    assert get_bind_host(cfg) == "127.0.0.1"
    assert get_bind_port(cfg) == 8000


def test_yaml_is_merged_over_defaults(tmp_path):
    path = tmp_path / "voting_config.yaml"
    path.write_text(
        "chain:\n"
        "  chain_id: testnet\n"
        "persistence:\n"
        "  driver: sqlite\n"
        "cors:\n"
        "  origins: http://example.org\n",
        encoding="utf-8",
    )
    cfg = load_config(str(path))
    assert cfg["chain"]["chain_id"] == "testnet"
    assert cfg["chain"]["schema_version"] == 1
    assert cfg["persistence"]["driver"] == "sqlite"
    assert cfg["persistence"]["data_dir"] == "data"
    assert get_cors_origins(cfg) == ["http://example.org"]


def test_env_beats_yaml_and_overrides_beat_env(tmp_path, monkeypatch):
    path = tmp_path / "voting_config.yaml"
    path.write_text("server:\n  port: 9000\n", encoding="utf-8")
    monkeypatch.setenv("VOTING_PORT", "9100")
    monkeypatch.setenv("VOTING_FAUCET", "off")
    monkeypatch.setenv("VOTING_CHAIN_ID", "from-env")

    cfg = load_config(str(path), overrides={"chain": {"chain_id": "from-test"}})
    assert get_bind_port(cfg) == 9100
    assert cfg["dev"]["faucet_enabled"] is False
    assert cfg["chain"]["chain_id"] == "from-test"


def test_bad_env_value(tmp_path, monkeypatch):
    monkeypatch.setenv("VOTING_PORT", "eighty")
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.yaml"))


def test_bad_driver(tmp_path):
    with pytest.raises(ConfigError, match="persistence.driver"):
        load_config(str(tmp_path / "nope.yaml"), overrides={"persistence": {"driver": "redis"}})


@pytest.mark.parametrize("pid", ["xyz", "ab" * 31])
def test_bad_program_id(tmp_path, pid):
    with pytest.raises(ConfigError, match="program.id"):
        load_config(str(tmp_path / "nope.yaml"), overrides={"program": {"id": pid}})


def test_unparseable_yaml(tmp_path):
    path = tmp_path / "voting_config.yaml"
    path.write_text("chain: [unterminated\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="cannot parse"):
        load_config(str(path))


def test_yaml_must_be_a_mapping(tmp_path):
    path = tmp_path / "voting_config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(str(path))


def test_defaults_are_not_shared():
    a = default_config()
    a["dev"]["faucet_enabled"] = False
    assert default_config()["dev"]["faucet_enabled"] is True


def test_configure_logging_accepts_level(monkeypatch):
    seen = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: seen.update(kw))
    configure_logging({"logging": {"level": "debug"}})
    assert seen["level"] == logging.DEBUG
    assert "%(message)s" in seen["format"]
