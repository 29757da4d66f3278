"""Client configuration loading and validation.

Reads ``guildcal.toml`` (from a file path or a directory containing it),
expands ``${VAR_NAME}`` references from the environment, and returns a
validated ``GuildcalConfig`` dataclass.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from guildcal.constants import API_BASE_URL
from guildcal.transport import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT

CONFIG_FILENAME = "guildcal.toml"
TOKEN_ENV = "GUILDCAL_TOKEN"

# Pattern matching ${VAR_NAME}; names are alphanumeric plus underscore.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_LOG_FORMATS = ("text", "json")


class ConfigError(Exception):
    """Raised when configuration is missing, malformed, or invalid."""


@dataclass
class LoggingConfig:
    """Logging configuration from the [logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    file: str | None = None


@dataclass
class ClientSettings:
    """HTTP client settings from the [client] section."""

    token: str | None = None
    api_base_url: str = API_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class CacheConfig:
    """Cache behaviour from the [cache] section.

    ``evict_on_delete`` drops a scheduled event from the local cache once its
    DELETE succeeds. Off by default, leaving eviction to whoever observes the
    deletion.
    """

    evict_on_delete: bool = False


@dataclass
class GuildcalConfig:
    client: ClientSettings = field(default_factory=ClientSettings)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Raises ``ConfigError`` if a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]

    if isinstance(value, str):
        return _resolve_string(value)

    return value


def _resolve_string(s: str) -> str:
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)

    if missing:
        vars_str = ", ".join(missing)
        raise ConfigError(
            f"Unresolved environment variable(s) in config value: {vars_str} (original: {s!r})"
        )

    return result


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _parse_client(section: dict[str, Any]) -> ClientSettings:
    token = section.get("token")
    if token is not None and not isinstance(token, str):
        raise ConfigError("client.token must be a string when set")
    token = (token or "").strip() or os.environ.get(TOKEN_ENV) or None

    base_url = section.get("api_base_url", API_BASE_URL)
    if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
        raise ConfigError("client.api_base_url must be an http(s) URL")

    timeout = section.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)
    if isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
        raise ConfigError("client.timeout_seconds must be a positive number")

    user_agent = section.get("user_agent", DEFAULT_USER_AGENT)
    if not isinstance(user_agent, str) or not user_agent.strip():
        raise ConfigError("client.user_agent must be a non-empty string")

    return ClientSettings(
        token=token,
        api_base_url=base_url.rstrip("/"),
        timeout_seconds=float(timeout),
        user_agent=user_agent.strip(),
    )


def _parse_cache(section: dict[str, Any]) -> CacheConfig:
    evict_on_delete = section.get("evict_on_delete", False)
    if not isinstance(evict_on_delete, bool):
        raise ConfigError("cache.evict_on_delete must be a boolean")
    return CacheConfig(evict_on_delete=evict_on_delete)


def _parse_logging(section: dict[str, Any]) -> LoggingConfig:
    level = str(section.get("level", "INFO")).upper()
    fmt = str(section.get("format", "text")).lower()
    if fmt not in _LOG_FORMATS:
        raise ConfigError(f"logging.format must be one of {', '.join(_LOG_FORMATS)}")
    log_file = section.get("file")
    if log_file is not None and not isinstance(log_file, str):
        raise ConfigError("logging.file must be a string when set")
    return LoggingConfig(level=level, format=fmt, file=log_file or None)


def load_config(path: Path) -> GuildcalConfig:
    """Load and validate ``guildcal.toml``.

    *path* may point at the file itself or at a directory containing it.
    A token missing from the file is taken from ``GUILDCAL_TOKEN``.

    Raises ``ConfigError`` if the file is missing, contains invalid TOML, or
    holds invalid values.
    """
    toml_path = path / CONFIG_FILENAME if path.is_dir() else path

    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    try:
        data = tomllib.loads(toml_path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    data = resolve_env_vars(data)

    return GuildcalConfig(
        client=_parse_client(_section(data, "client")),
        cache=_parse_cache(_section(data, "cache")),
        logging=_parse_logging(_section(data, "logging")),
    )
