# voting_node/config.py
import copy
import logging
import os
from typing import Any, Dict, List, Optional

import yaml

CONFIG_FILENAME = "voting_config.yaml"

# -------- Defaults (non-secret) --------
_DEFAULT: Dict[str, Any] = {
    "chain": {"chain_id": "voting-local", "schema_version": 1},
    # program.id: hex program id; empty -> voting_runtime.addresses.DEFAULT_PROGRAM_ID
    "program": {"id": ""},
    "persistence": {
        "driver": "json",  # memory | json | sqlite
        "data_dir": "data",
        "json_filename": "accounts.json",
        "sqlite_filename": "accounts.sqlite",
        "keep_backups": 2,
    },
    "rent": {"lamports_per_byte_year": 3480, "exemption_years": 2.0},
    "dev": {"faucet_enabled": True, "max_airdrop_lamports": 10_000_000_000},
    "security": {"require_signatures": True, "seen_tx_ttl_sec": 600},
    "logging": {"level": "INFO", "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
    "server": {"host": "127.0.0.1", "port": 8000},
    "cors": {"origins": ["http://localhost:5173", "http://127.0.0.1:5173"]},
}


def _to_bool(raw: str) -> bool:
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


# -------- ENV overrides --------
_ENV_MAP = {
    ("chain", "chain_id"): ("VOTING_CHAIN_ID", str),
    ("program", "id"): ("VOTING_PROGRAM_ID", str),
    ("persistence", "driver"): ("VOTING_PERSISTENCE", str),
    ("persistence", "data_dir"): ("VOTING_DATA_DIR", str),
    ("server", "host"): ("VOTING_HOST", str),
    ("server", "port"): ("VOTING_PORT", int),
    ("logging", "level"): ("VOTING_LOG_LEVEL", str),
    ("dev", "faucet_enabled"): ("VOTING_FAUCET", _to_bool),
    ("security", "require_signatures"): ("VOTING_REQUIRE_SIGNATURES", _to_bool),
}

PERSISTENCE_DRIVERS = ("memory", "json", "sqlite")


class ConfigError(ValueError):
    pass


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in (overlay or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    for (section, key), (env_name, cast) in _ENV_MAP.items():
        val = os.getenv(env_name)
        if val is None:
            continue
        try:
            casted = cast(val)
        except ValueError as e:
            raise ConfigError(f"{env_name}={val!r} is not a valid {section}.{key}") from e
        cfg.setdefault(section, {})
        cfg[section][key] = casted
    return cfg


def _validate(cfg: Dict[str, Any]) -> None:
    driver = cfg["persistence"].get("driver")
    if driver not in PERSISTENCE_DRIVERS:
        raise ConfigError(f"persistence.driver must be one of {PERSISTENCE_DRIVERS}, got {driver!r}")

    pid = str(cfg["program"].get("id") or "")
    if pid:
        try:
            raw = bytes.fromhex(pid)
        except ValueError as e:
            raise ConfigError("program.id must be hex") from e
        if len(raw) != 32:
            raise ConfigError("program.id must be 32 bytes")


def load_config(path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Loads YAML config from `path` (or ./voting_config.yaml when omitted).
    Missing file -> defaults. A file that exists but does not parse is an
    error. ENV overrides are applied last, then `overrides` (used by tests).
    """
    if path is None:
        path = os.path.join(os.getcwd(), CONFIG_FILENAME)

    cfg = _deep_merge({}, _DEFAULT)

    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"cannot parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping")
        cfg = _deep_merge(cfg, data)

    cfg = _apply_env_overrides(cfg)
    if overrides:
        cfg = _deep_merge(cfg, overrides)

    origins = cfg.get("cors", {}).get("origins")
    if isinstance(origins, str):
        cfg["cors"]["origins"] = [origins]

    _validate(cfg)
    return cfg


def default_config() -> Dict[str, Any]:
    return _deep_merge({}, _DEFAULT)


# -------- Small helpers used by the app --------
def get_bind_host(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("server", {}).get("host", "127.0.0.1"))


def get_bind_port(cfg: Dict[str, Any]) -> int:
    return int(cfg.get("server", {}).get("port", 8000))


def get_cors_origins(cfg: Dict[str, Any]) -> List[str]:
    return list(cfg.get("cors", {}).get("origins", []))


def configure_logging(cfg: Dict[str, Any]) -> None:
    section = cfg.get("logging", {})
    level = getattr(logging, str(section.get("level", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format=section.get("format") or _DEFAULT["logging"]["format"])
