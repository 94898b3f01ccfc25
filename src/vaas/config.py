"""Client configuration: defaults, optional YAML file, environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

DEFAULT_URL = "wss://gateway.production.vaas.gdatasecurity.de"
DEFAULT_TOKEN_URL = (
    "https://account.gdata.de/realms/vaas-production/protocol/openid-connect/token"
)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _default_config_path() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "vaas" / "config.yaml"
    return Path.home() / ".config" / "vaas" / "config.yaml"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _parse_optional_float(value: str) -> float | None:
    if value.strip().lower() in {"", "none", "off"}:
        return None
    return float(value)


@dataclass
class VaasConfig:
    """Settings for connecting to the verdict service."""

    url: str = DEFAULT_URL
    token_url: str = DEFAULT_TOKEN_URL
    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    timeout: float = 600.0
    upload_timeout: float | None = None
    keep_alive_interval: float | None = 10.0
    use_cache: bool | None = None
    use_hash_lookup: bool | None = None

    @classmethod
    def load(cls, path: str | Path | None = None) -> VaasConfig:
        """Build a config from the YAML file (if present) and the environment.

        Environment variables win over the file.
        """
        config = cls()

        config_path = Path(path) if path is not None else _default_config_path()
        if config_path.is_file():
            config.apply_mapping(_read_yaml(config_path))

        env = os.environ
        config.url = env.get("VAAS_URL", config.url)
        config.token_url = env.get("VAAS_TOKEN_URL", config.token_url)
        config.client_id = env.get(
            "VAAS_CLIENT_ID", env.get("CLIENT_ID", config.client_id)
        )
        config.client_secret = env.get(
            "VAAS_CLIENT_SECRET", env.get("CLIENT_SECRET", config.client_secret)
        )

        env_timeout = env.get("VAAS_TIMEOUT")
        if env_timeout:
            config.timeout = float(env_timeout)

        env_upload_timeout = env.get("VAAS_UPLOAD_TIMEOUT")
        if env_upload_timeout is not None:
            config.upload_timeout = _parse_optional_float(env_upload_timeout)

        env_keep_alive = env.get("VAAS_KEEP_ALIVE")
        if env_keep_alive is not None:
            config.keep_alive_interval = _parse_optional_float(env_keep_alive)

        env_cache = env.get("VAAS_USE_CACHE")
        if env_cache:
            config.use_cache = _parse_bool("VAAS_USE_CACHE", env_cache)

        env_lookup = env.get("VAAS_USE_HASH_LOOKUP")
        if env_lookup:
            config.use_hash_lookup = _parse_bool("VAAS_USE_HASH_LOOKUP", env_lookup)

        return config

    def apply_mapping(self, data: dict) -> None:
        """Overlay known keys from a mapping; unknown keys are rejected."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        for key, value in data.items():
            setattr(self, key, value)


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must be a mapping")
    return data
