"""
Configuration for the résumé site.

Provides:
- SiteConfig dataclass holding configuration values
- TOML config file loading (resume_site.toml)
- Precedence: environment variables > config file > defaults
"""

import logging
import os
import secrets
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "resume_site.toml"
DEFAULT_DATABASE_URL = "sqlite:///resume_site.db"

ENV_SECRET_KEY = "RESUME_SITE_SECRET_KEY"
ENV_DATABASE_URL = "RESUME_SITE_DATABASE_URL"
ENV_ADMIN_EMAILS = "ADMIN_EMAILS"
ENV_SITE_URL = "RESUME_SITE_SITE_URL"
ENV_LOG_LEVEL = "RESUME_SITE_LOG_LEVEL"


def parse_email_list(value: Any) -> List[str]:
    """Normalize a comma-separated string or a list of emails."""
    if not value:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return [str(item).strip().lower() for item in items if str(item).strip()]


@dataclass
class SiteConfig:
    """Complete configuration for the résumé site."""

    secret_key: Optional[str] = None
    database_url: str = DEFAULT_DATABASE_URL
    admin_emails: List[str] = field(default_factory=list)
    site_url: str = "http://localhost:5000"
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    config_path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], config_path: Optional[Path] = None) -> "SiteConfig":
        """Create a SiteConfig from a dictionary (parsed TOML)."""
        site = data.get("site", {})
        auth = data.get("auth", {})
        database = data.get("database", {})
        log = data.get("logging", {})

        return cls(
            secret_key=site.get("secret_key"),
            database_url=database.get("url", DEFAULT_DATABASE_URL),
            admin_emails=parse_email_list(auth.get("admin_emails")),
            site_url=site.get("url", "http://localhost:5000"),
            log_level=log.get("level", "WARNING"),
            log_file=log.get("log_file"),
            config_path=config_path,
        )

    def apply_environment(self, environ: Optional[Dict[str, str]] = None) -> "SiteConfig":
        """Override values with any environment variables that are set."""
        env = os.environ if environ is None else environ

        secret = env.get(ENV_SECRET_KEY, "").strip()
        if secret:
            self.secret_key = secret
        database_url = env.get(ENV_DATABASE_URL, "").strip()
        if database_url:
            self.database_url = database_url
        if env.get(ENV_ADMIN_EMAILS, "").strip():
            self.admin_emails = parse_email_list(env[ENV_ADMIN_EMAILS])
        site_url = env.get(ENV_SITE_URL, "").strip()
        if site_url:
            self.site_url = site_url
        log_level = env.get(ENV_LOG_LEVEL, "").strip()
        if log_level:
            self.log_level = log_level
        return self

    def flask_config(self) -> Dict[str, Any]:
        """Translate into the keys the Flask app factory understands."""
        return {
            "SECRET_KEY": self.secret_key or ephemeral_secret_key(),
            "SQLALCHEMY_DATABASE_URI": self.database_url,
            "ADMIN_EMAILS": list(self.admin_emails),
            "SITE_URL": self.site_url.rstrip("/"),
        }


def ephemeral_secret_key() -> str:
    logger.warning(
        "No secret key configured (set %s); sessions will not survive a restart",
        ENV_SECRET_KEY,
    )
    return secrets.token_urlsafe(32)


def find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find the configuration file.

    Search order:
    1. Explicit path if provided
    2. resume_site.toml in the current directory
    """
    if config_path is not None:
        if config_path.exists():
            return config_path
        raise ConfigurationError(f"Config file not found: {config_path}")

    cwd_config = Path.cwd() / DEFAULT_CONFIG_NAME
    if cwd_config.exists():
        return cwd_config

    return None


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> SiteConfig:
    """
    Load configuration from a TOML file, then apply environment overrides.

    If no config file is found, defaults are used.

    Raises:
        ConfigurationError: If a config file exists but cannot be parsed.
    """
    config_file = find_config_file(config_path)

    if config_file is None:
        logger.debug("No config file found, using defaults")
        return SiteConfig().apply_environment(environ)

    logger.debug(f"Loading config from: {config_file}")
    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {config_file}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_file}: {e}")

    config = SiteConfig.from_dict(data, config_path=config_file)
    logger.info(f"Loaded config from: {config_file}")
    return config.apply_environment(environ)
