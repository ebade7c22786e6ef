# tests/conftest.py
import logging
from typing import Callable, List, Optional
from unittest.mock import MagicMock

import pytest

from provision.config_models import AppSettings, PromptSettings, SwapSettings

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


@pytest.fixture
def mock_logger():
    """Fixture to create a mock logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def logged(mock_logger) -> Callable[[Optional[str]], List[str]]:
    """Returns the messages sent to ``mock_logger``, optionally for one level."""

    def _messages(level: Optional[str] = None) -> List[str]:
        levels = [level] if level else LOG_LEVELS
        return [
            call.args[0]
            for name in levels
            for call in getattr(mock_logger, name).call_args_list
            if call.args
        ]

    return _messages


@pytest.fixture
def app_settings(tmp_path):
    """AppSettings whose filesystem paths all live under ``tmp_path``."""
    skel_dir = tmp_path / "skel"
    home_root = tmp_path / "home"
    skel_dir.mkdir()
    home_root.mkdir()
    return AppSettings(
        log_file=str(tmp_path / "server-boot.log"),
        state_file=tmp_path / "state" / "progress_state.txt",
        completion_marker=tmp_path / "server-boot-completed",
        swap=SwapSettings(file_path=str(tmp_path / "swapfile")),
        prompt=PromptSettings(skel_dir=str(skel_dir), home_root=str(home_root)),
    )


@pytest.fixture
def sleeps() -> List[float]:
    """Records the durations passed to an injected sleep function."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append
