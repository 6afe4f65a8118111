"""User settings for gitty."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast


class ConfigError(Exception):
    """Settings file is missing required structure."""


@dataclass(frozen=True)
class RetryPolicy:
    """How the executor waits out a held index.lock."""

    attempts: int = 3
    delay: float = 0.1


@dataclass(frozen=True)
class Limits:
    recent_commits: int = 3
    history: int = 20
    log: int = 50
    rebase_max: int = 50


@dataclass(frozen=True)
class Settings:
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    limits: Limits = field(default_factory=Limits)
    status_ttl: float = 3.0
    log_level: str = "INFO"


def config_dir() -> Path:
    return Path.home() / ".config" / "gitty"


def settings_path() -> Path:
    override = os.environ.get("GITTY_CONFIG")
    if override:
        return Path(override).expanduser()
    return config_dir() / "settings.json"


def _load_raw(path: Path) -> dict[str, object]:
    if not path.is_file():
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid settings format in {path}")
    return raw


def _expect_object_dict(value: object, section: str) -> dict[str, object]:
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid {section} section in settings.")
    return cast(dict[str, object], value)


def _expect_number(value: object, key: str, minimum: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"Setting {key} must be a number.")
    if value < minimum:
        raise ConfigError(f"Setting {key} must be at least {minimum}.")
    return value


def _expect_int(value: object, key: str, minimum: int = 1) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Setting {key} must be an integer.")
    if value < minimum:
        raise ConfigError(f"Setting {key} must be at least {minimum}.")
    return value


def load_settings(path: Path | None = None) -> Settings:
    """Load settings, falling back to defaults for anything unset."""
    raw = _load_raw(path or settings_path())
    defaults = Settings()

    retry = defaults.retry
    retry_raw = raw.get("retry")
    if retry_raw is not None:
        section = _expect_object_dict(retry_raw, "retry")
        retry = RetryPolicy(
            attempts=_expect_int(section.get("attempts", retry.attempts), "retry.attempts"),
            delay=_expect_number(section.get("delay", retry.delay), "retry.delay", 0),
        )

    limits = defaults.limits
    limits_raw = raw.get("limits")
    if limits_raw is not None:
        section = _expect_object_dict(limits_raw, "limits")
        limits = Limits(
            **{
                name: _expect_int(section.get(name, getattr(limits, name)), f"limits.{name}")
                for name in ("recent_commits", "history", "log", "rebase_max")
            }
        )

    status_ttl = _expect_number(raw.get("status_ttl", defaults.status_ttl), "status_ttl", 0)

    log_level = raw.get("log_level", defaults.log_level)
    if not isinstance(log_level, str):
        raise ConfigError("Setting log_level must be a string.")
    log_level = os.environ.get("GITTY_LOG_LEVEL", log_level)

    return Settings(retry=retry, limits=limits, status_ttl=status_ttl, log_level=log_level.upper())
