"""Configuration management for CadenceIQ.

Loads configuration from environment variables and .env file.
Provides validation and sensible defaults.

Usage:
    from cadenceiq.core.config import get_config, validate_config

    config = get_config()
    issues = validate_config(config)
    if issues:
        for issue in issues:
            print(f"Config issue: {issue}")
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from cadenceiq.core.exceptions import ConfigurationError

# Model used for social profile insights
CLAUDE_MODEL = "claude-sonnet-4-20250514"

# Default paths (defined once, used by both Config and load_config)
DEFAULT_DB_PATH = Path.home() / ".cadenceiq" / "cadenceiq.db"
DEFAULT_LOG_PATH = Path.home() / ".cadenceiq" / "logs"

DEFAULT_LEAD_GOAL = 10
DEFAULT_PRICE_CENTS = 995  # $9.95 one-time unlock
DEFAULT_APP_URL = "http://localhost:5173"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        db_path: Path to SQLite snapshot file
        log_path: Directory for log files
        default_lead_goal: Rows-per-bucket goal used until the user sets one
        claude_api_key: Anthropic Claude API key (insights)
        stripe_secret_key: Stripe secret key (checkout)
        access_price_cents: One-time unlock price in cents
        app_url: Public URL used for checkout success/cancel redirects
        require_access: Refuse contact commands until the unlock is redeemed
        debug: Enable debug mode
    """

    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    log_path: Path = field(default_factory=lambda: DEFAULT_LOG_PATH)
    default_lead_goal: int = DEFAULT_LEAD_GOAL

    claude_api_key: Optional[str] = None

    stripe_secret_key: Optional[str] = None
    access_price_cents: int = DEFAULT_PRICE_CENTS
    app_url: str = DEFAULT_APP_URL
    require_access: bool = False

    debug: bool = False


def load_env_file(path: Path) -> dict[str, str]:
    """Parse .env file.

    Handles:
        - KEY=VALUE format
        - Comments (lines starting with #)
        - Blank lines
        - Quoted values

    Args:
        path: Path to .env file

    Returns:
        Dictionary of environment variables
    """
    env_vars: dict[str, str] = {}

    if not path.exists():
        return env_vars

    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()

                if value and value[0] in ('"', "'") and value[-1] == value[0]:
                    value = value[1:-1]

                if key:
                    env_vars[key] = value

    return env_vars


def _get_path(key: str, default: Path, env_vars: dict[str, str]) -> Path:
    """Get path from environment, expanding ~ and resolving."""
    value = os.environ.get(key) or env_vars.get(key)
    if value:
        return Path(value).expanduser().resolve()
    return default


def _get_str(key: str, env_vars: dict[str, str]) -> Optional[str]:
    """Get string from environment."""
    return os.environ.get(key) or env_vars.get(key) or None


def _get_int(key: str, default: int, env_vars: dict[str, str]) -> int:
    """Get integer from environment."""
    value = os.environ.get(key) or env_vars.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _get_bool(key: str, default: bool, env_vars: dict[str, str]) -> bool:
    """Get boolean from environment."""
    value = os.environ.get(key) or env_vars.get(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def load_config(env_file: Optional[Path] = None) -> Config:
    """Load configuration from environment and .env file.

    Priority:
        1. Environment variables (highest)
        2. .env file
        3. Default values (lowest)

    Args:
        env_file: Path to .env file. Defaults to .env in current directory.

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If a numeric setting is not an integer
    """
    if env_file is None:
        env_file = Path.cwd() / ".env"

    env_vars = load_env_file(Path(env_file))

    return Config(
        db_path=_get_path("CADENCEIQ_DB_PATH", DEFAULT_DB_PATH, env_vars),
        log_path=_get_path("CADENCEIQ_LOG_PATH", DEFAULT_LOG_PATH, env_vars),
        default_lead_goal=_get_int("CADENCEIQ_LEAD_GOAL", DEFAULT_LEAD_GOAL, env_vars),
        claude_api_key=_get_str("CLAUDE_API_KEY", env_vars),
        stripe_secret_key=_get_str("STRIPE_SECRET_KEY", env_vars),
        access_price_cents=_get_int("CADENCEIQ_PRICE_CENTS", DEFAULT_PRICE_CENTS, env_vars),
        app_url=_get_str("CADENCEIQ_APP_URL", env_vars) or DEFAULT_APP_URL,
        require_access=_get_bool("CADENCEIQ_REQUIRE_ACCESS", False, env_vars),
        debug=_get_bool("CADENCEIQ_DEBUG", False, env_vars),
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration.

    Checks:
        - Data and log directories exist or can be created
        - Directories are writable
        - Numeric settings are positive

    Args:
        config: Configuration to validate

    Returns:
        List of issues (empty if valid)
    """
    issues: list[str] = []

    db_dir = config.db_path.parent
    try:
        db_dir.mkdir(parents=True, exist_ok=True)
        if not os.access(db_dir, os.W_OK):
            issues.append(f"Database directory not writable: {db_dir}")
    except OSError as e:
        issues.append(f"Cannot create database directory {db_dir}: {e}")

    try:
        config.log_path.mkdir(parents=True, exist_ok=True)
        if not os.access(config.log_path, os.W_OK):
            issues.append(f"Log directory not writable: {config.log_path}")
    except OSError as e:
        issues.append(f"Cannot create log directory {config.log_path}: {e}")

    if config.default_lead_goal <= 0:
        issues.append(f"Lead goal must be positive, got {config.default_lead_goal}")

    if config.access_price_cents <= 0:
        issues.append(f"Access price must be positive, got {config.access_price_cents}")

    return issues


# Singleton config
_config: Optional[Config] = None


def get_config() -> Config:
    """Return cached configuration singleton.

    Loads configuration on first call, returns cached version thereafter.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset cached configuration.

    Used primarily for testing.
    """
    global _config
    _config = None
