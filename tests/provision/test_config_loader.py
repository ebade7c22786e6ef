import argparse

import pytest

from provision.config_loader import (
    ConfigurationError,
    _deep_update,
    cli_overrides,
    load_app_settings,
)
from provision.config_models import AppSettings


def _cli(**overrides):
    values = {
        "config": None,
        "verbose": False,
        "force": False,
        "only": None,
        "list_steps": False,
        "timezone": None,
        "project_id": None,
        "log_file": None,
        "allow_insecure_secret_fallbacks": None,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def test_defaults(tmp_path, mock_logger):
    settings = load_app_settings(config_file_path=str(tmp_path / "absent.yaml"), current_logger=mock_logger)

    assert settings.timezone == "America/New_York"
    assert settings.log_file == "/var/log/server-boot.log"
    assert settings.secrets.project_id == "scripthammer"
    assert settings.secrets.allow_insecure_fallbacks is False
    assert settings.retry.max_attempts == 5
    assert settings.retry.wait_seconds == 30
    assert settings.swap.size_gb == 4
    assert settings.apt.lock_max_checks == 180


def test_yaml_overrides_defaults(tmp_path, mock_logger):
    config = tmp_path / "config.yaml"
    config.write_text(
        "timezone: Europe/Berlin\n"
        "retry:\n"
        "  max_attempts: 2\n"
        "swap:\n"
        "  size_gb: 8\n"
    )

    settings = load_app_settings(config_file_path=str(config), current_logger=mock_logger)

    assert settings.timezone == "Europe/Berlin"
    assert settings.retry.max_attempts == 2
    assert settings.retry.wait_seconds == 30
    assert settings.swap.size_gb == 8
    assert settings.swap.file_path == "/swapfile"


def test_environment_is_overridden_by_yaml(tmp_path, monkeypatch, mock_logger):
    monkeypatch.setenv("BOOT_TIMEZONE", "Asia/Tokyo")
    monkeypatch.setenv("SWAP_SIZE_GB", "2")
    config = tmp_path / "config.yaml"
    config.write_text("timezone: Europe/Paris\n")

    settings = load_app_settings(config_file_path=str(config), current_logger=mock_logger)

    assert settings.timezone == "Europe/Paris"
    assert settings.swap.size_gb == 2


def test_cli_overrides_everything(tmp_path, mock_logger):
    config = tmp_path / "config.yaml"
    config.write_text("timezone: Europe/Paris\nsecrets:\n  project_id: from-yaml\n")

    settings = load_app_settings(
        cli_args=_cli(
            timezone="UTC",
            project_id="from-cli",
            log_file="/tmp/boot.log",
            allow_insecure_secret_fallbacks=True,
        ),
        config_file_path=str(config),
        current_logger=mock_logger,
    )

    assert settings.timezone == "UTC"
    assert settings.secrets.project_id == "from-cli"
    assert settings.log_file == "/tmp/boot.log"
    assert settings.secrets.allow_insecure_fallbacks is True


def test_cli_overrides_skip_unset_values():
    assert cli_overrides(_cli()) == {}


def test_fallback_values_survive_reload(tmp_path, mock_logger):
    settings = load_app_settings(config_file_path=str(tmp_path / "absent.yaml"), current_logger=mock_logger)
    assert settings.secrets.fallbacks["MYSQL_PASSWORD"] == "default_mysql_password"


def test_unparseable_yaml_is_a_configuration_error(tmp_path, mock_logger):
    config = tmp_path / "config.yaml"
    config.write_text("timezone: [unclosed\n")

    with pytest.raises(ConfigurationError):
        load_app_settings(config_file_path=str(config), current_logger=mock_logger)


def test_non_mapping_yaml_is_ignored(tmp_path, mock_logger):
    config = tmp_path / "config.yaml"
    config.write_text("- just\n- a list\n")

    settings = load_app_settings(config_file_path=str(config), current_logger=mock_logger)

    assert settings.timezone == "America/New_York"
    mock_logger.warning.assert_called_once()


@pytest.mark.parametrize(
    "yaml_text",
    ["retry:\n  max_attempts: 0\n", "retry:\n  wait_seconds: -1\n", "swap:\n  size_gb: zero\n"],
)
def test_invalid_values_are_configuration_errors(tmp_path, mock_logger, yaml_text):
    config = tmp_path / "config.yaml"
    config.write_text(yaml_text)

    with pytest.raises(ConfigurationError):
        load_app_settings(config_file_path=str(config), current_logger=mock_logger)


def test_invalid_timezone_is_rejected():
    with pytest.raises(ValueError):
        AppSettings(timezone="New York")


def test_unused_yaml_keys_are_ignored(tmp_path, mock_logger):
    config = tmp_path / "config.yaml"
    config.write_text("log_prefix: '[x]'\ndeploy_dir: /opt/app\ntimezone: UTC\n")

    settings = load_app_settings(config_file_path=str(config), current_logger=mock_logger)

    assert settings.timezone == "UTC"
    assert "log_prefix" not in AppSettings.model_fields
    assert "deploy_dir" not in AppSettings.model_fields


def test_deep_update_merges_nested_dicts():
    source = {"retry": {"max_attempts": 5, "wait_seconds": 30}, "timezone": "UTC"}

    result = _deep_update(source, {"retry": {"max_attempts": 2}, "timezone": None})

    assert result == {"retry": {"max_attempts": 2, "wait_seconds": 30}, "timezone": "UTC"}
