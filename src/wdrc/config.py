"""Runtime configuration for the sync service."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy.engine import URL

from wdrc.http.fetcher import DEFAULT_USER_AGENT
from wdrc.sync.errors import ConfigError
from wdrc.sync.revisions import DEFAULT_API_URL

DEFAULT_CONFIG_FILE = Path("config.json")


@dataclass(slots=True)
class DatabaseSettings:
    """Connection target of one store."""

    url: str

    @classmethod
    def from_config(cls, name: str, raw: Any) -> DatabaseSettings:
        """Accept either {"url": ...} or MySQL pool parameters."""

        if not isinstance(raw, dict):
            raise ConfigError(f"Missing {name} database config")
        if raw.get("url"):
            return cls(url=str(raw["url"]))
        missing = [key for key in ("host", "user", "schema") if not raw.get(key)]
        if missing:
            raise ConfigError(f"Missing {name} database config keys: {', '.join(missing)}")
        url = URL.create(
            "mysql+pymysql",
            username=str(raw["user"]),
            password=raw.get("password") or None,
            host=str(raw["host"]),
            port=int(raw["port"]) if raw.get("port") else None,
            database=str(raw["schema"]),
            query={"charset": "utf8mb4"},
        )
        return cls(url=url.render_as_string(hide_password=False))


@dataclass(slots=True)
class SyncSettings:
    """Polling, fan-out and write-path limits."""

    max_recent_changes: int = 500
    max_concurrent_fetches: int = 50
    window_hours: float = 1.0
    write_batch_size: int = 500
    error_backoff_seconds: float = 5.0


@dataclass(slots=True)
class ApiSettings:
    """Revision API client settings."""

    url: str = DEFAULT_API_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 30.0
    max_retries: int = 3


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    wikidata: DatabaseSettings
    wdrc: DatabaseSettings
    sync: SyncSettings = field(default_factory=SyncSettings)
    api: ApiSettings = field(default_factory=ApiSettings)
    logging_enabled: bool = True

    @classmethod
    def from_file(cls, path: Path = DEFAULT_CONFIG_FILE) -> Settings:
        """Load settings from a JSON config file, then apply WDRC_* environment overrides."""

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as error:
            raise ConfigError(f"Config file not found: {path}") from error
        except ValueError as error:
            raise ConfigError(f"Config file is not valid JSON: {path}: {error}") from error
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file must contain a JSON object: {path}")
        return cls.from_mapping(raw)

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> Settings:
        sync_defaults = SyncSettings()
        api_defaults = ApiSettings()
        settings = cls(
            wikidata=DatabaseSettings.from_config(
                "wikidata",
                _env_database("WDRC_WIKIDATA_DB_URL", raw.get("wikidata")),
            ),
            wdrc=DatabaseSettings.from_config(
                "wdrc",
                _env_database("WDRC_DB_URL", raw.get("wdrc")),
            ),
            sync=SyncSettings(
                max_recent_changes=_int_setting(
                    raw, "max_recent_changes", "WDRC_MAX_RECENT_CHANGES",
                    sync_defaults.max_recent_changes,
                ),
                max_concurrent_fetches=_int_setting(
                    raw, "max_concurrent_fetches", "WDRC_MAX_CONCURRENT_FETCHES",
                    sync_defaults.max_concurrent_fetches,
                ),
                window_hours=_float_setting(
                    raw, "window_hours", "WDRC_WINDOW_HOURS", sync_defaults.window_hours,
                ),
                write_batch_size=_int_setting(
                    raw, "write_batch_size", "WDRC_WRITE_BATCH_SIZE",
                    sync_defaults.write_batch_size,
                ),
                error_backoff_seconds=_float_setting(
                    raw, "error_backoff_seconds", "WDRC_ERROR_BACKOFF_SECONDS",
                    sync_defaults.error_backoff_seconds,
                ),
            ),
            api=ApiSettings(
                url=os.getenv("WDRC_API_URL", str(raw.get("api_url") or api_defaults.url)),
                user_agent=str(raw.get("user_agent") or api_defaults.user_agent),
                timeout_seconds=_float_setting(
                    raw, "fetch_timeout_seconds", "WDRC_FETCH_TIMEOUT_SECONDS",
                    api_defaults.timeout_seconds,
                ),
                max_retries=_int_setting(
                    raw, "fetch_max_retries", "WDRC_FETCH_MAX_RETRIES", api_defaults.max_retries,
                ),
            ),
            logging_enabled=_env_bool("WDRC_LOGGING", default=_as_bool(raw.get("logging", True))),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise ConfigError for limits that would stall or unbound the sync loop."""

        if self.sync.max_recent_changes <= 0:
            raise ConfigError("max_recent_changes must be > 0.")
        if self.sync.max_concurrent_fetches <= 0:
            raise ConfigError("max_concurrent_fetches must be > 0.")
        if self.sync.window_hours <= 0:
            raise ConfigError("window_hours must be > 0.")
        if self.sync.write_batch_size <= 0:
            raise ConfigError("write_batch_size must be > 0.")
        if self.sync.error_backoff_seconds < 0:
            raise ConfigError("error_backoff_seconds must be >= 0.")
        if self.api.timeout_seconds <= 0:
            raise ConfigError("fetch_timeout_seconds must be > 0.")
        if self.api.max_retries < 0:
            raise ConfigError("fetch_max_retries must be >= 0.")


def _env_database(env_name: str, raw: Any) -> Any:
    override = os.getenv(env_name, "").strip()
    if override:
        return {"url": override}
    return raw


def _int_setting(raw: dict[str, Any], key: str, env_name: str, default: int) -> int:
    value = os.getenv(env_name, raw.get(key, default))
    try:
        return int(value)
    except (TypeError, ValueError) as error:
        raise ConfigError(f"Invalid integer for {key}: {value!r}") from error


def _float_setting(raw: dict[str, Any], key: str, env_name: str, default: float) -> float:
    value = os.getenv(env_name, raw.get(key, default))
    try:
        return float(value)
    except (TypeError, ValueError) as error:
        raise ConfigError(f"Invalid number for {key}: {value!r}") from error


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return bool(value)
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"Invalid boolean value for logging: {value!r}")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"Invalid boolean value for {name}: {value!r}")
