from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from solders.pubkey import Pubkey

from .constants import (
    DEFAULT_PRICE_URL,
    DEFAULT_RPC_URL,
    DEX_FEES_PUBKEY,
    DEX_PUBKEY,
    METADATA_PROGRAM,
    PROGRAM_ID,
)
from .errors import ConfigError

_PUBKEY_FIELDS = ("program_id", "dex_pubkey", "dex_fees_pubkey", "metadata_program_id")

_ENV_KEYS = {
    "rpc_url": "URANUS_RPC_URL",
    "commitment": "URANUS_COMMITMENT",
    "program_id": "URANUS_PROGRAM_ID",
    "dex_pubkey": "URANUS_DEX_PUBKEY",
    "dex_fees_pubkey": "URANUS_DEX_FEES_PUBKEY",
    "metadata_program_id": "URANUS_METADATA_PROGRAM_ID",
    "price_url": "URANUS_PRICE_URL",
    "http_timeout": "URANUS_HTTP_TIMEOUT",
}


@dataclass(frozen=True)
class UranusConfig:
    """Network environment for the Uranus program.

    One instance per cluster; services take it at construction so test and
    main deployments can live side by side in one process.
    """

    rpc_url: str = DEFAULT_RPC_URL
    commitment: str = "confirmed"

    program_id: Pubkey = PROGRAM_ID
    dex_pubkey: Pubkey = DEX_PUBKEY
    dex_fees_pubkey: Pubkey = DEX_FEES_PUBKEY
    metadata_program_id: Pubkey = METADATA_PROGRAM

    price_url: str = DEFAULT_PRICE_URL
    http_timeout: float = 20.0

    def with_overrides(self, **changes: Any) -> "UranusConfig":
        return _build(self, changes)


def mainnet() -> UranusConfig:
    return UranusConfig()


def _as_pubkey(name: str, value: Any) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    try:
        return Pubkey.from_string(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{name} is not a valid base58 address: {value!r}") from exc


def _build(base: UranusConfig, changes: Dict[str, Any]) -> UranusConfig:
    clean: Dict[str, Any] = {}
    for key, value in changes.items():
        if value is None:
            continue
        if key not in _ENV_KEYS:
            raise ConfigError(f"Unknown config key: {key}")
        if key in _PUBKEY_FIELDS:
            value = _as_pubkey(key, value)
        elif key == "http_timeout":
            try:
                value = float(value)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"http_timeout must be a number, got {value!r}") from exc
        else:
            value = str(value).strip()
        clean[key] = value
    return replace(base, **clean)


def load_config_from_env(dotenv_path: Optional[str] = None) -> UranusConfig:
    """Return a config with ``URANUS_*`` environment overrides applied.

    A ``.env`` file is loaded first (existing variables win).
    """
    load_dotenv(dotenv_path=dotenv_path, override=False)
    changes = {}
    for key, env_key in _ENV_KEYS.items():
        raw = (os.getenv(env_key) or "").strip()
        if raw:
            changes[key] = raw
    return _build(UranusConfig(), changes)


def _resolve_env(val: Any) -> Any:
    """Resolve ENV:FOO placeholders recursively inside the uranus subtree."""
    if isinstance(val, str) and val.startswith("ENV:"):
        env_key = val.split("ENV:", 1)[1].strip()
        v = os.environ.get(env_key)
        if v is None or v == "":
            raise ConfigError(f"Missing required environment variable: {env_key}")
        return v
    if isinstance(val, dict):
        return {k: _resolve_env(v) for k, v in val.items()}
    if isinstance(val, list):
        return [_resolve_env(v) for v in val]
    return val


def load_config(path: str) -> UranusConfig:
    """Load the 'uranus' section of a YAML file and resolve ENV placeholders there."""
    if not os.path.exists(path):
        raise ConfigError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    section = raw.get("uranus") if isinstance(raw, dict) else None
    if not section:
        raise ConfigError("Missing 'uranus' section in config.")
    if not isinstance(section, dict):
        raise ConfigError("'uranus' section must be a mapping.")
    return _build(UranusConfig(), _resolve_env(section))


def as_dict(cfg: UranusConfig) -> Dict[str, Any]:
    return {key: str(getattr(cfg, key)) if key in _PUBKEY_FIELDS else getattr(cfg, key) for key in _ENV_KEYS}
