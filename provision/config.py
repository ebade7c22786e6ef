# provision/config.py
"""
Centralized constants and default values for the server boot sequence.

This module defines default paths, package lists, apt lock files, secret
names with their development fallbacks, and the shell customisation written
into skeleton and user dotfiles.
"""

from pathlib import Path

# --- Default Global Variable Values ---
LOG_FILE_DEFAULT: str = "/var/log/server-boot.log"
TIMEZONE_DEFAULT: str = "America/New_York"

# --- State File Configuration ---
STATE_FILE_DIR: str = "/var/lib/server-boot"
STATE_FILE_PATH: Path = Path(STATE_FILE_DIR) / "progress_state.txt"
COMPLETION_MARKER_PATH: Path = Path("/tmp/server-boot-completed")
# Represents the version of the boot sequence logic.
SCRIPT_VERSION: str = "1.0.0"

# Directory holding the boot packages (a checkout or site-packages).
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
# Packages whose sources are hashed to invalidate stale state.
HASHED_PACKAGES: tuple[str, ...] = ("common", "provision", "installers")
SOURCE_ROOTS: list[Path] = [PROJECT_ROOT / name for name in HASHED_PACKAGES]

# --- Secret Manager ---
SECRET_PROJECT_ID_DEFAULT: str = "scripthammer"
SECRET_VERSION_DEFAULT: str = "latest"
METADATA_TOKEN_URL: str = (
    "http://metadata.google.internal/computeMetadata/v1/"
    "instance/service-accounts/default/token"
)
SECRET_MANAGER_API_BASE: str = "https://secretmanager.googleapis.com/v1"

# Secret name -> value used only when insecure fallbacks are allowed.
BOOT_SECRET_FALLBACKS: dict[str, str] = {
    "GITHUB_TOKEN": "token_placeholder",
    "MYSQL_PASSWORD": "default_mysql_password",
    "MYSQL_ROOT_PASSWORD": "default_mysql_root_password",
    "WP_ADMIN_EMAIL": "admin@example.com",
    "WP_ADMIN_PASSWORD": "default_admin_password",
}

# --- Apt ---
APT_LOCK_FILES: list[str] = [
    "/var/lib/dpkg/lock-frontend",
    "/var/lib/apt/lists/lock",
    "/var/cache/apt/archives/lock",
]
APT_LOCK_MAX_CHECKS_DEFAULT: int = 180  # 180 * 10s = 30 minutes
APT_LOCK_CHECK_INTERVAL_DEFAULT: int = 10
APT_TERM_LOG_PATH: str = "/var/log/apt/term.log"

ESSENTIAL_PACKAGES: list[str] = [
    "apt-transport-https",
    "ca-certificates",
    "curl",
    "software-properties-common",
    "gnupg",
    "lsb-release",
]

# --- Retry ---
RETRY_MAX_ATTEMPTS_DEFAULT: int = 5
RETRY_WAIT_SECONDS_DEFAULT: int = 30

# --- Swap ---
SWAP_FILE_PATH_DEFAULT: str = "/swapfile"
SWAP_SIZE_GB_DEFAULT: int = 4
FSTAB_PATH: str = "/etc/fstab"
SYSCTL_CONF_PATH: str = "/etc/sysctl.conf"
SWAP_SYSCTL_SETTINGS: list[str] = [
    "vm.swappiness=10",
    "vm.vfs_cache_pressure=50",
]

# --- Docker ---
DOCKER_PACKAGES: list[str] = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-compose-plugin",
]
DOCKER_DOWNLOAD_BASE_URL: str = "https://download.docker.com/linux"
DOCKER_KEYRING_PATH: str = "/usr/share/keyrings/docker-archive-keyring.gpg"
DOCKER_INSTALL_ATTEMPTS_DEFAULT: int = 3
DOCKER_COMPOSE_PLUGIN_PATH: str = "/usr/libexec/docker/cli-plugins/docker-compose"
DOCKER_COMPOSE_LINK_PATH: str = "/usr/local/bin/docker-compose"

# --- Shell customisation ---
SKEL_DIR: str = "/etc/skel"
HOME_ROOT: str = "/home"

FORCE_COLOR_PROMPT_DISABLED: str = "#force_color_prompt=yes"
FORCE_COLOR_PROMPT_ENABLED: str = "force_color_prompt=yes"

# Stock Debian/Ubuntu coloured PS1 body and its two-line replacement.
STOCK_PROMPT: str = (
    r"\[\033[01;32m\]\u@\h\[\033[00m\]:\[\033[01;34m\]\w\[\033[00m\]\$ "
)
CUSTOM_PROMPT: str = (
    r"\n\@ \[\e[32;40m\]\u\[\e[m\] \[\e[32;40m\]@\[\e[m\]\n"
    r" \[\e[32;40m\]\H\[\e[m\] \[\e[36;40m\]\w\[\e[m\] \[\e[33m\]\\$\[\e[m\] "
)

BASH_ALIASES_CONTENT: str = """\
# System aliases
alias ll='ls -la'
alias la='ls -A'
alias l='ls -CF'
alias ..='cd ..'
alias ...='cd ../..'
alias update='sudo apt update && sudo apt upgrade -y'
alias cls='clear'

# Docker aliases
alias d='docker'
alias dc='docker-compose'
alias dps='docker ps'
alias dex='docker exec -it'
"""

# --- Logging Symbols ---
SYMBOLS: dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}
