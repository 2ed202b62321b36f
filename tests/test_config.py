"""Tests for configuration helpers."""

from dotenv import dotenv_values

import config


def test_set_validation_command_persists_to_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config.app_config, "validation_command", "")
    monkeypatch.setenv("VALIDATION_COMMAND", "")

    config.set_validation_command("  pytest -q  ")

    assert config.app_config.validation_command == "pytest -q"
    assert config.app_config.has_validation_command()
    assert dotenv_values(tmp_path / ".env")["VALIDATION_COMMAND"] == "pytest -q"


def test_set_validation_command_without_persisting(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config.app_config, "validation_command", "")
    monkeypatch.setenv("VALIDATION_COMMAND", "")

    config.set_validation_command("make check", persist=False)

    assert config.app_config.validation_command == "make check"
    assert not (tmp_path / ".env").exists()


def test_state_path_is_inside_project(tmp_path):
    path = config.AppConfig(state_dir=".state").state_path(str(tmp_path), config.SESSION_FILENAME)
    assert path == str(tmp_path / ".state" / "session.json")
