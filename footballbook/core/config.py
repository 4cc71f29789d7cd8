"""
Configuration for FootballBook.

Sources, lowest to highest precedence:
    1. model defaults below
    2. optional YAML file (config/settings.yaml or $SETTINGS_FILE), with
       ${VAR} / ${VAR:default} substitution
    3. environment variables (a .env file is loaded first)
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from ..utils.exceptions import ConfigError
from ..utils.logger import get_logger

logger = get_logger(__name__)

load_dotenv()

DEFAULT_SETTINGS_FILE = Path("config") / "settings.yaml"

# Placeholder key; only acceptable outside production.
DEV_SIGNING_KEY = "dev-only-signing-key-change-me-before-deploying"
DEVELOPMENT_ENVIRONMENTS = {"development", "test"}


class AppSettings(BaseModel):
    name: str = "FootballBook"
    version: str = "1.0.0"
    environment: str = "development"


class AuthSettings(BaseModel):
    signing_key: str = DEV_SIGNING_KEY
    algorithm: str = "HS256"
    user_token_ttl_seconds: int = 7 * 24 * 60 * 60
    admin_token_ttl_seconds: int = 24 * 60 * 60
    bcrypt_rounds: int = Field(default=12, ge=12)
    admin_invite_token: Optional[str] = None
    admin_seed_email: Optional[str] = None
    admin_seed_password: Optional[str] = None
    admin_seed_name: str = "Admin User"
    api_timeout_seconds: float = 10.0
    logout_redirect_delay_seconds: float = 2.0


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = None
    max_bytes: int = 10485760
    backup_count: int = 5


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    data_dir: str = "data"

    @property
    def is_development(self) -> bool:
        return self.app.environment.strip().lower() in DEVELOPMENT_ENVIRONMENTS

    @property
    def is_production(self) -> bool:
        return self.app.environment.strip().lower() == "production"


# env var -> (section, key); section None means a top-level field
ENV_OVERRIDES: Dict[str, Tuple[Optional[str], str]] = {
    "ENVIRONMENT": ("app", "environment"),
    "JWT_SECRET": ("auth", "signing_key"),
    "JWT_ALGORITHM": ("auth", "algorithm"),
    "USER_TOKEN_TTL_SECONDS": ("auth", "user_token_ttl_seconds"),
    "ADMIN_TOKEN_TTL_SECONDS": ("auth", "admin_token_ttl_seconds"),
    "BCRYPT_ROUNDS": ("auth", "bcrypt_rounds"),
    "ADMIN_INVITE_TOKEN": ("auth", "admin_invite_token"),
    "ADMIN_SEED_EMAIL": ("auth", "admin_seed_email"),
    "ADMIN_SEED_PASSWORD": ("auth", "admin_seed_password"),
    "ADMIN_SEED_NAME": ("auth", "admin_seed_name"),
    "API_TIMEOUT_SECONDS": ("auth", "api_timeout_seconds"),
    "LOGOUT_REDIRECT_DELAY_SECONDS": ("auth", "logout_redirect_delay_seconds"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "format"),
    "LOG_FILE": ("logging", "file_path"),
    "DATA_DIR": (None, "data_dir"),
}


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR} and ${VAR:default} references"""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            var_expr = value[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
                return os.getenv(var_name.strip(), default.strip())
            return os.getenv(var_expr, value)
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read settings file {path}: {e}")
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return _substitute_env_vars(raw)


def load_settings(path: Optional[Path] = None) -> Settings:
    """Build Settings from defaults, the optional YAML file and the environment."""
    if path is None:
        path = Path(os.getenv("SETTINGS_FILE") or DEFAULT_SETTINGS_FILE)
    raw: Dict[str, Any] = _read_yaml(path) if path.exists() else {}

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None or value.strip() == "":
            continue
        if section is None:
            raw[key] = value
        else:
            raw.setdefault(section, {})[key] = value

    try:
        return Settings(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}")


def check_signing_key(settings: Settings) -> None:
    """
    Refuse a missing or placeholder signing key outside development.

    In development/test the placeholder is allowed but logged loudly on
    every startup.
    """
    key = (settings.auth.signing_key or "").strip()
    if key and key != DEV_SIGNING_KEY:
        return
    if settings.is_development:
        logger.warning(
            "JWT_SECRET is not set; using the development placeholder signing key",
            environment=settings.app.environment,
        )
        return
    raise ConfigError(
        "JWT_SECRET must be set to a private value when ENVIRONMENT="
        f"{settings.app.environment!r}"
    )
