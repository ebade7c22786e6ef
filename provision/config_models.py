# provision/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the boot sequence,
including defaults, type annotations, and descriptions.
It utilizes Pydantic for data validation and settings management.
"""

from pathlib import Path
from typing import Dict, List, Union

from pydantic import BaseModel, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from provision import config as static_config

SYMBOLS_DEFAULT: Dict[str, str] = dict(static_config.SYMBOLS)


class RetryPolicy(BaseModel):
    """Bounded retry with a fixed wait between attempts."""

    max_attempts: int = Field(
        default=static_config.RETRY_MAX_ATTEMPTS_DEFAULT,
        ge=1,
        description="Maximum number of attempts before the operation is marked failed.",
    )
    wait_seconds: float = Field(
        default=static_config.RETRY_WAIT_SECONDS_DEFAULT,
        ge=0,
        description="Fixed wait between attempts, in seconds.",
    )


class AptSettings(BaseSettings):
    """Apt lock polling and package settings."""
    model_config = SettingsConfigDict(env_prefix="APT_", extra="ignore")

    lock_files: List[str] = Field(
        default_factory=lambda: list(static_config.APT_LOCK_FILES),
        description="Lock files that must be free before an apt operation runs.",
    )
    lock_max_checks: int = Field(
        default=static_config.APT_LOCK_MAX_CHECKS_DEFAULT,
        ge=1,
        description="Number of lock polls before giving up.",
    )
    lock_check_interval: float = Field(
        default=static_config.APT_LOCK_CHECK_INTERVAL_DEFAULT,
        ge=0,
        description="Seconds to wait after a poll that finds a lock held.",
    )
    essential_packages: List[str] = Field(
        default_factory=lambda: list(static_config.ESSENTIAL_PACKAGES),
        description="Packages installed before any other section runs.",
    )


class SwapSettings(BaseSettings):
    """Swap file settings."""
    model_config = SettingsConfigDict(env_prefix="SWAP_", extra="ignore")

    file_path: str = Field(default=static_config.SWAP_FILE_PATH_DEFAULT)
    size_gb: int = Field(default=static_config.SWAP_SIZE_GB_DEFAULT, ge=1)
    sysctl_settings: List[str] = Field(
        default_factory=lambda: list(static_config.SWAP_SYSCTL_SETTINGS)
    )


class DockerSettings(BaseSettings):
    """Docker Engine installation settings."""
    model_config = SettingsConfigDict(env_prefix="DOCKER_", extra="ignore")

    packages: List[str] = Field(
        default_factory=lambda: list(static_config.DOCKER_PACKAGES)
    )
    download_base_url: Union[HttpUrl, str] = Field(
        default=static_config.DOCKER_DOWNLOAD_BASE_URL,
        description="Base URL; the OS id is appended to build the repository URL.",
    )
    keyring_path: str = Field(default=static_config.DOCKER_KEYRING_PATH)
    install_attempts: int = Field(
        default=static_config.DOCKER_INSTALL_ATTEMPTS_DEFAULT, ge=1
    )
    install_wait_seconds: float = Field(
        default=static_config.RETRY_WAIT_SECONDS_DEFAULT, ge=0
    )
    compose_plugin_path: str = Field(
        default=static_config.DOCKER_COMPOSE_PLUGIN_PATH
    )
    compose_link_path: str = Field(
        default=static_config.DOCKER_COMPOSE_LINK_PATH
    )


class SecretSettings(BaseSettings):
    """Secret Manager access settings."""
    model_config = SettingsConfigDict(env_prefix="SECRETS_", extra="ignore")

    project_id: str = Field(
        default=static_config.SECRET_PROJECT_ID_DEFAULT,
        description="Cloud project holding the secrets.",
    )
    version: str = Field(default=static_config.SECRET_VERSION_DEFAULT)
    names: List[str] = Field(
        default_factory=lambda: list(static_config.BOOT_SECRET_FALLBACKS),
        description="Secrets fetched once at the start of the boot sequence.",
    )
    metadata_token_url: str = Field(default=static_config.METADATA_TOKEN_URL)
    api_base_url: str = Field(default=static_config.SECRET_MANAGER_API_BASE)
    request_timeout: float = Field(default=10.0, gt=0)
    allow_insecure_fallbacks: bool = Field(
        default=False,
        description="DEV FLAG: substitute hardcoded fallback values for unavailable secrets instead of failing.",
    )
    fallbacks: Dict[str, str] = Field(
        default_factory=lambda: dict(static_config.BOOT_SECRET_FALLBACKS),
        exclude=True,
    )


class PromptSettings(BaseSettings):
    """Shell prompt and alias customisation settings."""
    model_config = SettingsConfigDict(env_prefix="PROMPT_", extra="ignore")

    skel_dir: str = Field(default=static_config.SKEL_DIR)
    home_root: str = Field(default=static_config.HOME_ROOT)
    aliases: str = Field(default=static_config.BASH_ALIASES_CONTENT)


class AppSettings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(env_prefix="BOOT_", extra="ignore")

    timezone: str = Field(default=static_config.TIMEZONE_DEFAULT,
                          description="IANA timezone applied with timedatectl.")
    log_file: str = Field(default=static_config.LOG_FILE_DEFAULT,
                          description="Log file appended to by every boot.")
    json_logs: bool = Field(default=False,
                            description="Write JSON records to the log file instead of plain text.")
    state_file: Path = Field(default=static_config.STATE_FILE_PATH)
    completion_marker: Path = Field(default=static_config.COMPLETION_MARKER_PATH)

    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    apt: AptSettings = Field(default_factory=AptSettings)
    swap: SwapSettings = Field(default_factory=SwapSettings)
    docker: DockerSettings = Field(default_factory=DockerSettings)
    secrets: SecretSettings = Field(default_factory=SecretSettings)
    prompt: PromptSettings = Field(default_factory=PromptSettings)

    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))

    @field_validator("timezone")
    @classmethod
    def _timezone_has_region(cls, value: str) -> str:
        if not value or " " in value:
            raise ValueError(f"Invalid timezone '{value}'")
        return value
