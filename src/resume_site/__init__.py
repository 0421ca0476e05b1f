"""
Résumé site - a personal résumé and portfolio website.

This package provides:
- Public résumé, portfolio and landing pages
- A JSON API for reading and replacing the résumé document
- A password-protected admin panel for editing it
"""

__version__ = "1.0.0"
__author__ = "Résumé Site Contributors"

from .config import SiteConfig, load_config
from .errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    ResumeSiteError,
    StoreError,
    StoreUnavailableError,
    ValidationError,
)
from .webui import create_app

__all__ = [
    "__version__",
    "create_app",
    "SiteConfig",
    "load_config",
    "ResumeSiteError",
    "ConfigurationError",
    "ValidationError",
    "AuthenticationError",
    "NotFoundError",
    "StoreError",
    "StoreUnavailableError",
]
