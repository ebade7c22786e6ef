import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

import common.system_utils as system_utils
from common.system_utils import (
    calculate_project_hash,
    get_architecture,
    get_debian_codename,
    get_os_id,
    list_home_users,
    log_disk_diagnostics,
    log_system_status,
    read_os_release,
)
from provision import config as static_config

OS_RELEASE = '''PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"
NAME="Debian GNU/Linux"
VERSION_CODENAME=bookworm
ID=debian
'''


@pytest.fixture
def os_release(tmp_path):
    path = tmp_path / "os-release"
    path.write_text(OS_RELEASE)
    return str(path)


def test_read_os_release(os_release):
    values = read_os_release(os_release)
    assert values["ID"] == "debian"
    assert values["PRETTY_NAME"] == "Debian GNU/Linux 12 (bookworm)"


def test_read_os_release_missing(tmp_path):
    assert read_os_release(str(tmp_path / "missing")) == {}


def test_get_os_id(os_release, app_settings, mock_logger):
    assert get_os_id(app_settings, mock_logger, os_release_path=os_release) == "debian"
    mock_logger.info.assert_any_call("Detected OS: debian", exc_info=False)


def test_get_os_id_unknown(tmp_path, app_settings, mock_logger):
    assert get_os_id(app_settings, mock_logger, os_release_path=str(tmp_path / "x")) == "unknown"
    mock_logger.warning.assert_called_once()


def test_get_debian_codename_from_lsb_release(mocker, app_settings):
    mocker.patch(
        "common.system_utils.run_command",
        return_value=MagicMock(stdout="jammy\n"),
    )
    assert get_debian_codename(app_settings) == "jammy"


def test_get_debian_codename_falls_back_to_os_release(mocker, app_settings):
    mocker.patch("common.system_utils.run_command", side_effect=FileNotFoundError("lsb_release"))
    mocker.patch(
        "common.system_utils.read_os_release",
        return_value={"VERSION_CODENAME": "bookworm"},
    )
    assert get_debian_codename(app_settings) == "bookworm"


def test_get_architecture(mocker, app_settings):
    mocker.patch(
        "common.system_utils.run_command",
        return_value=MagicMock(stdout="amd64\n"),
    )
    assert get_architecture(app_settings) == "amd64"


def test_get_architecture_failure_propagates(mocker, app_settings):
    mocker.patch(
        "common.system_utils.run_command",
        side_effect=subprocess.CalledProcessError(1, ["dpkg"]),
    )
    with pytest.raises(subprocess.CalledProcessError):
        get_architecture(app_settings)


def test_diagnostics_commands(mocker, app_settings, mock_logger):
    mock_diag = mocker.patch("common.system_utils.run_diagnostic_command")

    log_system_status(app_settings, mock_logger)
    log_disk_diagnostics("/", app_settings, mock_logger)

    assert [c.args[0] for c in mock_diag.call_args_list] == [
        ["df", "-h"],
        ["free", "-h"],
        ["ls", "-la", "/"],
        ["df", "-h"],
    ]


def test_list_home_users(tmp_path):
    (tmp_path / "bob").mkdir()
    (tmp_path / "alice").mkdir()
    (tmp_path / "notes.txt").write_text("x")

    assert list_home_users(str(tmp_path)) == [
        ("alice", tmp_path / "alice"),
        ("bob", tmp_path / "bob"),
    ]
    assert list_home_users(str(tmp_path / "missing")) == []


def _package(root, name, source="VALUE = 1\n"):
    package = root / name
    package.mkdir(exist_ok=True)
    (package / "module.py").write_text(source)
    return package


def test_calculate_project_hash_changes_with_content(tmp_path, app_settings):
    roots = [_package(tmp_path, "common"), _package(tmp_path, "provision")]
    first = calculate_project_hash(roots, app_settings)
    assert first == calculate_project_hash(roots, app_settings)

    (tmp_path / "provision" / "module.py").write_text("VALUE = 2\n")
    assert calculate_project_hash(roots, app_settings) != first


def test_calculate_project_hash_ignores_files_beside_packages(tmp_path, app_settings):
    roots = [_package(tmp_path, "common"), _package(tmp_path, "provision")]
    first = calculate_project_hash(roots, app_settings)

    (tmp_path / "requests.py").write_text("# another installed library\n")
    _package(tmp_path, "yaml", "# another installed package\n")

    assert calculate_project_hash(roots, app_settings) == first


def test_calculate_project_hash_includes_package_name(tmp_path, app_settings):
    first = calculate_project_hash([_package(tmp_path, "common")], app_settings)
    second = calculate_project_hash([_package(tmp_path, "installers")], app_settings)
    assert first != second


def test_calculate_project_hash_missing_dir(tmp_path, app_settings):
    roots = [_package(tmp_path, "common"), tmp_path / "missing"]
    assert calculate_project_hash(roots, app_settings) is None


def test_source_roots_are_the_boot_packages():
    assert [root.name for root in static_config.SOURCE_ROOTS] == ["common", "provision", "installers"]
    assert all(root.parent == static_config.PROJECT_ROOT for root in static_config.SOURCE_ROOTS)
    assert all(root.is_dir() for root in static_config.SOURCE_ROOTS)


def test_get_current_script_hash_is_cached(mocker, app_settings):
    mocker.patch.object(system_utils, "CACHED_SCRIPT_HASH", None)
    calc = mocker.patch("common.system_utils.calculate_project_hash", return_value="abc")

    assert system_utils.get_current_script_hash([Path("/x")], app_settings) == "abc"
    assert system_utils.get_current_script_hash([Path("/x")], app_settings) == "abc"
    calc.assert_called_once()
