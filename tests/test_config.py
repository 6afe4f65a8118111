import json
import logging
from pathlib import Path

import pytest

from gitty.config import ConfigError, Limits, RetryPolicy, Settings, load_settings, settings_path
from gitty.logs import setup_logging


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITTY_CONFIG", raising=False)
    monkeypatch.delenv("GITTY_LOG_LEVEL", raising=False)


def _write(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    assert load_settings(tmp_path / "missing.json") == Settings()


def test_partial_settings(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "settings.json",
        {"retry": {"attempts": 5}, "limits": {"log": 200}, "status_ttl": 1.5, "log_level": "debug"},
    )
    settings = load_settings(path)
    assert settings.retry == RetryPolicy(attempts=5, delay=0.1)
    assert settings.limits == Limits(log=200)
    assert settings.status_ttl == 1.5
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"retry": "fast"},
        {"retry": {"attempts": 0}},
        {"retry": {"attempts": True}},
        {"retry": {"delay": -1}},
        {"limits": {"rebase_max": "many"}},
        {"status_ttl": "soon"},
        {"log_level": 10},
    ],
)
def test_invalid_settings(tmp_path: Path, data: object) -> None:
    with pytest.raises(ConfigError):
        load_settings(_write(tmp_path / "settings.json", data))


def test_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{nope", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        load_settings(path)


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path / "custom.json", {"log_level": "INFO"})
    monkeypatch.setenv("GITTY_CONFIG", str(path))
    monkeypatch.setenv("GITTY_LOG_LEVEL", "warning")
    assert settings_path() == path
    assert load_settings().log_level == "WARNING"


def test_setup_logging_writes_file(tmp_path: Path) -> None:
    log_path = setup_logging("DEBUG", tmp_path / "logs" / "gitty.log")
    logger = logging.getLogger("gitty")
    try:
        logging.getLogger("gitty.tests").debug("hello %s", "there")
        for handler in logger.handlers:
            handler.flush()
        assert "DEBUG: hello there" in log_path.read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
