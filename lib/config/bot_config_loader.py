import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from lib.utils.validation import ensure


CONFIG_PATH_ENV = "RATTLE_CONFIG"

# setting name -> environment variable; aliases are consulted when it is unset
_ENV_KEYS = {
    "bot_token": "BOT_TOKEN",
    "port": "PORT",
    "host": "HOST",
    "database_url": "POSTGRES_CONFIG",
    "bind_address": "BIND_ADDRESS",
    "log_level": "LOG_LEVEL",
    "graceful_timeout": "GRACEFUL_TIMEOUT",
}

_ENV_ALIASES = {
    "bot_token": ("TELOXIDE_TOKEN",),
}

_REQUIRED = ("bot_token", "port", "host", "database_url")


class ConfigError(ValueError):
    """A required setting is missing or cannot be interpreted."""


@dataclass(frozen=True)
class BotConfig:
    """Typed view over the process settings.

    ``bot_token`` doubles as the secret path segment of the webhook route, so
    it must never end up in log output.
    """

    bot_token: str
    port: int
    host: str
    database_url: str
    bind_address: str = "0.0.0.0"
    log_level: str = "INFO"
    graceful_timeout: Optional[float] = None

    @property
    def webhook_path(self) -> str:
        return f"/bot{self.bot_token}"

    @property
    def webhook_url(self) -> str:
        return f"https://{self.host}{self.webhook_path}"


def _merge(file_values: Dict[str, Any], env: Mapping[str, str]) -> Dict[str, Any]:
    merged = {k: v for k, v in file_values.items() if k in _ENV_KEYS and v not in (None, "")}
    for key, var in _ENV_KEYS.items():
        for name in (var,) + _ENV_ALIASES.get(key, ()):
            value = env.get(name)
            if value not in (None, ""):
                merged[key] = value
                break
    return merged


def load_yaml(path: str) -> Dict[str, Any]:
    """Load a YAML mapping from ``path``; anything else is a :class:`ConfigError`."""

    try:
        with open(path) as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse config file {path}: {exc}") from exc
    ensure(isinstance(data, dict), f"config file {path} must contain a mapping", ConfigError)
    return data


def _as_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"PORT must be an integer, got {value!r}") from None
    ensure(0 < port < 65536, f"PORT out of range: {port}", ConfigError)
    return port


def _as_timeout(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"GRACEFUL_TIMEOUT must be a number, got {value!r}") from None
    ensure(timeout >= 0, "GRACEFUL_TIMEOUT must not be negative", ConfigError)
    return timeout


def load_bot_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> BotConfig:
    """Build a :class:`BotConfig` from an optional YAML file and the environment.

    Parameters
    ----------
    path:
        YAML file whose ``bot`` section supplies defaults.  Falls back to the
        ``RATTLE_CONFIG`` environment variable; a missing file is an error only
        when a path was given explicitly.
    env:
        Mapping consulted for overrides, ``os.environ`` by default.
    """

    env = os.environ if env is None else env
    file_values: Dict[str, Any] = {}
    cfg_path = path or env.get(CONFIG_PATH_ENV)
    if cfg_path:
        if not Path(cfg_path).exists():
            raise ConfigError(f"config file not found: {cfg_path}")
        file_values = load_yaml(cfg_path).get("bot", {}) or {}
        ensure(isinstance(file_values, dict), "config section 'bot' must be a mapping", ConfigError)

    values = _merge(file_values, env)
    missing = [_ENV_KEYS[key] for key in _REQUIRED if key not in values]
    ensure(not missing, f"missing required settings: {', '.join(missing)}", ConfigError)

    return BotConfig(
        bot_token=str(values["bot_token"]),
        port=_as_port(values["port"]),
        host=str(values["host"]),
        database_url=str(values["database_url"]),
        bind_address=str(values.get("bind_address", "0.0.0.0")),
        log_level=str(values.get("log_level", "INFO")).upper(),
        graceful_timeout=_as_timeout(values.get("graceful_timeout")),
    )
