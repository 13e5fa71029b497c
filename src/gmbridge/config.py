"""Configuration: YAML + env overlay."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from gmbridge.errors import BridgeConfigurationError

DEFAULT_PORT = 5287
DEFAULT_SERVER_NAME = "0.0.0.0"
DEFAULT_GROUPME_API_URL = "https://api.groupme.com/v3/bots/post"

# Env var -> dotted config path
_ENV_OVERRIDES = {
    "BRIDGE_PORT": "port",
    "BRIDGE_SERVER_NAME": "server_name",
    "BRIDGE_SLACK_WEBHOOK_URL": "slack.webhook_url",
    "BRIDGE_SLACK_USER_ID": "slack.user_id",
}

# Top-level numeric settings; unset or null falls back to the default
_NUMERIC_KEYS = {
    "port": int,
    "request_timeout_seconds": float,
    "delivery_delay_seconds": float,
}


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def _env_overrides(environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Nested dict of config values set through the environment."""
    environ = dict(os.environ) if environ is None else environ
    result: dict[str, Any] = {}
    for env_key, path in _ENV_OVERRIDES.items():
        value = environ.get(env_key)
        if not value:
            continue
        node = result
        *parents, leaf = path.split(".")
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
    return result


def load_config(path: str | Path) -> dict[str, Any]:
    """Load config from YAML file. Use SafeLoader. Returns raw dict."""
    path = Path(path)
    if not path.exists():
        logger.warning("Config file not found: {}", path)
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        logger.error("Failed to parse config {}: {}", path, exc)
        raise
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Config file {} has invalid structure (expected dict)", path)
        return {}
    return data


def load_config_with_env(path: str | Path) -> dict[str, Any]:
    """Load config from YAML and overlay env-derived values.

    Loads .env via python-dotenv when present, then applies BRIDGE_* overrides.
    """
    from dotenv import load_dotenv

    load_dotenv()
    return _deep_update(load_config(path), _env_overrides())


class Config:
    """Config accessor with attribute-style access for nested keys."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}

    def reload(self, data: dict[str, Any], *, validate: bool = True) -> None:
        """Replace config data."""
        self._data = data or {}
        if validate:
            self._validate()
        logger.debug("Config reloaded: {} gateways", len(self.gateways))

    def _validate(self) -> None:
        """Validate config structure; raise BridgeConfigurationError on failure."""
        for key in ("gateways", "groupme.groups", "slack.channels"):
            value = self.get(key)
            if value is not None and not isinstance(value, list):
                raise BridgeConfigurationError(
                    f"{key} must be a list",
                    code="invalid_list",
                    details={"key": key, "type": type(value).__name__},
                )
        for i, item in enumerate(self.gateways):
            if not isinstance(item, dict):
                raise BridgeConfigurationError(
                    f"gateways[{i}] must be a dict",
                    code="invalid_gateway_item",
                    details={"index": i},
                )
        for key, convert in _NUMERIC_KEYS.items():
            value = self._data.get(key)
            if value is None or value == "":
                continue
            try:
                convert(value)
            except (TypeError, ValueError) as exc:
                raise BridgeConfigurationError(
                    f"{key} must be a number, got {value!r}",
                    code="invalid_number",
                    details={"key": key, "value": value},
                    original_error=exc,
                ) from exc

    @property
    def raw(self) -> dict[str, Any]:
        """Raw config dict for the routing table."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dot-separated path (e.g. 'slack.webhook_url')."""
        parts = key.split(".")
        obj: Any = self._data
        for part in parts:
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    @property
    def port(self) -> int:
        """Port the inbound HTTP server listens on."""
        return int(self._data.get("port") or DEFAULT_PORT)

    @property
    def server_name(self) -> str:
        """Host/interface the inbound HTTP server binds."""
        return str(self._data.get("server_name") or DEFAULT_SERVER_NAME)

    @property
    def gateways(self) -> list[dict[str, Any]]:
        """GroupMe <-> Slack pairing list."""
        g = self._data.get("gateways")
        return g if isinstance(g, list) else []

    @property
    def groupme_groups(self) -> list[dict[str, Any]]:
        g = self.get("groupme.groups")
        return g if isinstance(g, list) else []

    @property
    def groupme_api_url(self) -> str:
        return str(self.get("groupme.api_url") or DEFAULT_GROUPME_API_URL)

    @property
    def slack_channels(self) -> list[dict[str, Any]]:
        c = self.get("slack.channels")
        return c if isinstance(c, list) else []

    @property
    def slack_webhook_url(self) -> str:
        return str(self.get("slack.webhook_url") or "")

    @property
    def slack_user_id(self) -> str | None:
        """Slack account the bridge posts as (loop prevention)."""
        val = self.get("slack.user_id")
        return str(val) if val else None

    @property
    def request_timeout_seconds(self) -> float:
        """Timeout for outbound GroupMe/Slack posts."""
        val = self._data.get("request_timeout_seconds")
        return 10.0 if val is None else float(val)

    @property
    def delivery_delay_seconds(self) -> float:
        """Pause after each outbound post, per platform."""
        val = self._data.get("delivery_delay_seconds")
        return 0.0 if val is None else float(val)


# Global config instance (set by __main__)
cfg: Config = Config({})
