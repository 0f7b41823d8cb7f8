import json
from pathlib import Path

import pytest

from modsentry.configuration.app_configuration import AppConfig


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path, tmp_path: Path) -> None:
    config_path.write_text(
        "moderation:\n"
        f"  rules_path: {tmp_path / 'rules.yml'}\n"
        f"  log_directory: {tmp_path / 'audit'}\n"
        "  match_mode: word_boundary\n"
        "  log_retention_days: 14\n"
        "  retry:\n"
        "    attempts: 5\n"
        "    base_delay_ms: 250\n",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.rules_path == (tmp_path / "rules.yml").resolve()
    assert config.log_directory == (tmp_path / "audit").resolve()
    assert config.match_mode == "word_boundary"
    assert config.log_retention_days == 14
    assert config.retry_attempts == 5
    assert config.retry_base_delay_ms == 250


def test_app_config_accepts_json(config_path: Path) -> None:
    config_path.write_text(json.dumps({"moderation": {"retry": {"attempts": 7}}}), encoding="utf-8")

    config = AppConfig(config_path)

    assert config.retry_attempts == 7
    assert config.get("moderation") == {"retry": {"attempts": 7}}


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.rules_path.name == "moderation_rules.yml"
    assert config.log_directory.name == "moderation"
    assert config.match_mode == "substring"
    assert config.retry_attempts == 3
    assert config.retry_base_delay_ms == 1000
    assert config.log_retention_days == 30


def test_app_config_bad_values_fall_back(config_path: Path) -> None:
    config_path.write_text(
        "moderation:\n  log_retention_days: soon\n  retry: [1, 2]\n",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.log_retention_days == 30
    assert config.retry_attempts == 3


def test_app_config_non_mapping_is_ignored(config_path: Path) -> None:
    config_path.write_text("- one\n- two\n", encoding="utf-8")

    assert AppConfig(config_path).data == {}


def test_app_config_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("moderation:\n  match_mode: substring\n", encoding="utf-8")
    config = AppConfig(config_path)

    config_path.write_text("moderation:\n  match_mode: word_boundary\n", encoding="utf-8")
    reloaded = config.reload()

    assert reloaded["moderation"]["match_mode"] == "word_boundary"
    assert config.match_mode == "word_boundary"
