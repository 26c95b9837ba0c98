"""Configuration — the probe's config file plus process-level settings.

The config file is INI (``[config]`` + one section per check command) or YAML
(``config:`` mapping + ``commands:`` list). It is loaded once at startup and
never mutated afterwards, so both records are frozen.
"""

from __future__ import annotations

import configparser
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

from mybckchk.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "mybckchk.cfg"
CONFIG_SECTION = "config"

DEFAULT_MYSQL_PORT = 3306
DEFAULT_LISTEN_PORT = 9200
DEFAULT_CHECK_INTERVAL_MS = 1000
DEFAULT_MYSQL_SOCKET = "/var/run/mysqld/mysqld.sock"

_INT_DEFAULTS = {
    "mysql_port": DEFAULT_MYSQL_PORT,
    "listen": DEFAULT_LISTEN_PORT,
    "check_interval": DEFAULT_CHECK_INTERVAL_MS,
}


# ── Models ───────────────────────────────────────────────────────────────────


class ProbeConfig(BaseModel):
    """Connection target and server settings from the ``[config]`` section."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    mysql_host: str | None = None  # None → local socket
    mysql_user: str = ""
    mysql_password: str = ""
    mysql_port: int = DEFAULT_MYSQL_PORT
    mysql_db: str = ""
    mysql_socket: str = DEFAULT_MYSQL_SOCKET
    listen: int = DEFAULT_LISTEN_PORT
    check_interval: int = DEFAULT_CHECK_INTERVAL_MS  # milliseconds

    @field_validator("mysql_host", mode="before")
    @classmethod
    def _blank_host_is_local(cls, v: Any) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("mysql_user", "mysql_password", "mysql_db", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("mysql_socket", mode="before")
    @classmethod
    def _blank_socket_is_default(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return DEFAULT_MYSQL_SOCKET
        return str(v).strip()

    @field_validator("mysql_port", "listen", "check_interval", mode="before")
    @classmethod
    def _zero_means_default(cls, v: Any, info: ValidationInfo) -> int:
        # Unparseable counts as zero, zero (or less) means "use the default".
        try:
            n = int(str(v).strip())
        except (TypeError, ValueError):
            n = 0
        return n if n > 0 else _INT_DEFAULTS[info.field_name]

    @property
    def uses_local_socket(self) -> bool:
        return self.mysql_host is None

    @property
    def check_interval_seconds(self) -> float:
        return self.check_interval / 1000


class Command(BaseModel):
    """A scalar query and the exact string its single value must equal."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    query: str
    expect: str

    @field_validator("name", "query", "expect", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> str:
        return "" if v is None else str(v)


# ── Loaders ──────────────────────────────────────────────────────────────────


def load_config(path: str | Path) -> tuple[ProbeConfig, list[Command]]:
    """Load the probe configuration and its ordered command list.

    Raises ``ConfigError`` when the file is missing, unreadable or malformed.
    """
    path = Path(path)
    if path.suffix.lower() in (".yaml", ".yml"):
        config, commands = _load_yaml(path)
    else:
        config, commands = _load_ini(path)

    logger.debug("Config loaded from %s", path)
    if not commands:
        logger.warning("No check commands configured in %s, backend will always report available", path)
    return config, commands


def _load_ini(path: Path) -> tuple[ProbeConfig, list[Command]]:
    parser = configparser.ConfigParser(interpolation=None)
    try:
        with path.open(encoding="utf-8") as fh:
            parser.read_file(fh)
    except (OSError, UnicodeDecodeError, configparser.Error) as e:
        raise ConfigError(str(path), str(e)) from e

    config_values: dict[str, Any] = {}
    commands: list[Command] = []

    # sections() never includes DEFAULT; order is file order
    for name in parser.sections():
        section = parser[name]
        if name == CONFIG_SECTION:
            config_values = {k: _unquote(v) for k, v in section.items()}
            continue
        commands.append(
            Command(
                name=name,
                query=_unquote(section.get("query", "")),
                expect=_unquote(section.get("expect", "")),
            )
        )

    if not parser.has_section(CONFIG_SECTION):
        logger.warning("No [%s] section in %s, using defaults", CONFIG_SECTION, path)

    return _build_config(path, config_values), commands


def _unquote(value: str) -> str:
    """Drop one pair of surrounding double, triple-double or backtick quotes, as go-ini does."""
    for quote in ('"""', '"', "`"):
        n = len(quote)
        if len(value) >= 2 * n and value.startswith(quote) and value.endswith(quote):
            return value[n:-n]
    return value


def _load_yaml(path: Path) -> tuple[ProbeConfig, list[Command]]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigError(str(path), str(e)) from e

    if not isinstance(raw, dict):
        raise ConfigError(str(path), "top level must be a mapping")

    config_values = raw.get(CONFIG_SECTION)
    if config_values is None:
        logger.warning("No '%s' mapping in %s, using defaults", CONFIG_SECTION, path)
        config_values = {}
    elif not isinstance(config_values, dict):
        raise ConfigError(str(path), f"'{CONFIG_SECTION}' must be a mapping")

    commands: list[Command] = []
    for i, entry in enumerate(raw.get("commands") or []):
        if not isinstance(entry, dict):
            raise ConfigError(str(path), f"command #{i + 1} must be a mapping")
        try:
            commands.append(
                Command(
                    name=entry.get("name") or f"command-{i + 1}",
                    query=entry.get("query", ""),
                    expect=entry.get("expect", ""),
                )
            )
        except ValidationError as e:
            raise ConfigError(str(path), f"command #{i + 1}: {e}") from e

    return _build_config(path, config_values), commands


def _build_config(path: Path, values: dict[str, Any]) -> ProbeConfig:
    try:
        return ProbeConfig(**values)
    except ValidationError as e:
        raise ConfigError(str(path), str(e)) from e


# ── Process settings ─────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """Process-level knobs loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "MYBCKCHK_",
        "extra": "ignore",
    }

    # Logging (-debug overrides to DEBUG)
    log_level: str = "INFO"

    # HTTP bind address; the port comes from the config file's `listen`
    listen_host: str = "0.0.0.0"

    # Driver timeouts per connection attempt and per query
    connect_timeout: int = 5  # seconds
    query_timeout: int = 10  # seconds


settings = Settings()
