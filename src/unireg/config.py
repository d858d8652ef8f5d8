"""Configuration loading for UniReg."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

MAIL_TRANSPORTS = ("log", "http")


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


@dataclass(frozen=True)
class Settings:
    """Service settings.

    Attributes:
        db_path: SQLite database file. Use ":memory:" for an in-memory DB.
        max_credit_hours: Credit-hour cap for one semester registration.
        mail_transport: "log" to only log outgoing email, "http" to deliver it.
        mail_api_url: Base URL of the HTTP email API.
        mail_api_key: Bearer key for the HTTP email API.
        mail_from: Sender address for all notifications.
        app_url: Public portal URL used for links inside emails.
        outbox_max_attempts: Delivery attempts before an email stays FAILED.
        outbox_poll_seconds: Background outbox flush interval; 0 disables it.
        log_dir: Directory for rotating log files.
        log_level: Root log level for the unireg logger.
    """

    db_path: str = "unireg.db"
    max_credit_hours: int = 24
    mail_transport: str = "log"
    mail_api_url: str = "https://api.resend.com"
    mail_api_key: str = ""
    mail_from: str = "noreply@university.edu"
    app_url: str = "http://localhost:3000"
    outbox_max_attempts: int = 5
    outbox_poll_seconds: float = 0.0
    log_dir: str = "logs"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_credit_hours <= 0:
            raise ConfigError("max_credit_hours must be positive")
        if self.mail_transport not in MAIL_TRANSPORTS:
            raise ConfigError(
                f"mail_transport must be one of {', '.join(MAIL_TRANSPORTS)}, "
                f"got '{self.mail_transport}'"
            )
        if self.mail_transport == "http" and not self.mail_api_key:
            raise ConfigError("mail_api_key is required when mail_transport is 'http'")
        if self.outbox_max_attempts < 1:
            raise ConfigError("outbox_max_attempts must be at least 1")
        if self.outbox_poll_seconds < 0:
            raise ConfigError("outbox_poll_seconds cannot be negative")

    @classmethod
    def from_dict(cls, data: dict[str, Any], base: Settings | None = None) -> Settings:
        """Create settings from a dictionary, overlaying ``base``.

        Args:
            data: Mapping of setting names to values.
            base: Settings to start from. Defaults to built-in defaults.

        Returns:
            New settings object.

        Raises:
            ConfigError: If a key is unknown or a value has the wrong type.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for name, value in data.items():
            default = getattr(cls, name)
            try:
                values[name] = _coerce(value, type(default))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for {name}: {value!r}") from e

        return replace(base or cls(), **values)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Load settings from UNIREG_* environment variables.

        If UNIREG_CONFIG names a YAML file it is loaded first and environment
        variables are applied on top of it.
        """
        env = os.environ if environ is None else environ

        base = cls()
        config_path = env.get("UNIREG_CONFIG")
        if config_path:
            base = load_settings(config_path)

        overrides = {}
        for f in fields(cls):
            key = f"UNIREG_{f.name.upper()}"
            if key in env:
                overrides[f.name] = env[key]

        return cls.from_dict(overrides, base=base)


def _coerce(value: Any, target: type) -> Any:
    """Convert a raw config value to the type of the field default."""
    if target is bool:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if target in (int, float):
        if isinstance(value, bool):
            raise TypeError("boolean is not a number")
        return target(value)
    if target is str:
        if not isinstance(value, str | int | float):
            raise TypeError(f"expected string, got {type(value).__name__}")
        return str(value)
    return value


def load_settings(path: str | Path) -> Settings:
    """Load settings from a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed settings object.

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    return Settings.from_dict(data)
