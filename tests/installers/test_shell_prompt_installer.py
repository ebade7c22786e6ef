import subprocess

import pytest

from installers.components.shell_prompt_installer import (
    PROMPT_REPLACEMENTS,
    ShellPromptInstaller,
)
from provision import config as static_config

MODULE = "installers.components.shell_prompt_installer"

STOCK_BASHRC = (
    "#force_color_prompt=yes\n"
    "if [ \"$color_prompt\" = yes ]; then\n"
    "    PS1='${debian_chroot:+($debian_chroot)}" + static_config.STOCK_PROMPT + "'\n"
    "fi\n"
)


@pytest.fixture
def writes(mocker):
    return {
        "replace": mocker.patch(f"{MODULE}.replace_in_file", return_value=True),
        "write": mocker.patch(f"{MODULE}.write_file_elevated"),
        "chown": mocker.patch(f"{MODULE}.chown_path"),
        "user_exists": mocker.patch(f"{MODULE}.user_exists", side_effect=lambda name: name == "alice"),
    }


def test_replacements_produce_custom_prompt():
    updated = STOCK_BASHRC
    for old, new in PROMPT_REPLACEMENTS:
        updated = updated.replace(old, new)

    assert "\nforce_color_prompt=yes\n" in "\n" + updated
    assert "#force_color_prompt=yes" not in updated
    assert static_config.CUSTOM_PROMPT in updated
    assert static_config.STOCK_PROMPT not in updated


def test_updates_skeleton_files(app_settings, mock_logger, writes):
    installer = ShellPromptInstaller(app_settings, mock_logger)

    assert installer.install() is True

    writes["replace"].assert_any_call(
        installer.skel_bashrc, PROMPT_REPLACEMENTS, app_settings, current_logger=mock_logger
    )
    writes["write"].assert_any_call(
        installer.skel_aliases,
        static_config.BASH_ALIASES_CONTENT,
        app_settings,
        current_logger=mock_logger,
    )


def test_updates_existing_users(app_settings, mock_logger, writes, logged, tmp_path):
    alice = tmp_path / "home" / "alice"
    ghost = tmp_path / "home" / "ghost"
    alice.mkdir()
    ghost.mkdir()
    (alice / ".bashrc").write_text(STOCK_BASHRC)

    assert ShellPromptInstaller(app_settings, mock_logger).install() is True

    owners = [(c.args[0], c.args[1]) for c in writes["chown"].call_args_list]
    assert owners == [
        (str(alice / ".bashrc"), "alice"),
        (str(alice / ".bash_aliases"), "alice"),
    ]
    written = [c.args[0] for c in writes["write"].call_args_list]
    assert str(ghost / ".bash_aliases") not in written
    assert any("Skipping" in m and "ghost" in m for m in logged("warning"))


def test_user_without_bashrc_still_gets_aliases(app_settings, mock_logger, writes, tmp_path):
    (tmp_path / "home" / "alice").mkdir()

    assert ShellPromptInstaller(app_settings, mock_logger).install() is True

    replaced = [c.args[0] for c in writes["replace"].call_args_list]
    assert replaced == [str(tmp_path / "skel" / ".bashrc")]
    writes["chown"].assert_called_once_with(
        str(tmp_path / "home" / "alice" / ".bash_aliases"), "alice", app_settings, mock_logger
    )


def test_skeleton_failure_is_reported(app_settings, mock_logger, writes, logged):
    writes["write"].side_effect = subprocess.CalledProcessError(1, "install")

    assert ShellPromptInstaller(app_settings, mock_logger).install() is False
    assert any("Failed to update skeleton dotfiles" in m for m in logged("error"))


def test_is_installed(app_settings, mock_logger, tmp_path):
    installer = ShellPromptInstaller(app_settings, mock_logger)
    assert installer.is_installed() is False

    (tmp_path / "skel" / ".bashrc").write_text(static_config.CUSTOM_PROMPT)
    (tmp_path / "skel" / ".bash_aliases").write_text(static_config.BASH_ALIASES_CONTENT)

    assert installer.is_installed() is True
