"""Test configuration and fixtures for résumé site tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for development testing
_src_dir = Path(__file__).parent.parent / "src"
if _src_dir.exists():
    sys.path.insert(0, str(_src_dir))

from resume_site.config import SiteConfig  # noqa: E402
from resume_site.webui import create_app  # noqa: E402
from resume_site.webui.auth import SESSION_KEY, create_or_update_admin  # noqa: E402
from resume_site.webui.models import db  # noqa: E402

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct horse battery"


# ==============================================================================
# Shared pytest fixtures
# ==============================================================================

@pytest.fixture
def site_config(tmp_path) -> SiteConfig:
    """Site configuration backed by a throwaway SQLite file."""
    return SiteConfig(
        secret_key="test-secret-key",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        admin_emails=[ADMIN_EMAIL],
        site_url="https://example.com",
    )


@pytest.fixture
def app(site_config):
    """App with CSRF disabled and one admin account."""
    app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False}, site_config=site_config)
    with app.app_context():
        db.create_all()
        create_or_update_admin(ADMIN_EMAIL, ADMIN_PASSWORD)
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    """Run the test body inside an application context."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    """A test client whose session already belongs to the admin."""
    with client.session_transaction() as sess:
        sess[SESSION_KEY] = ADMIN_EMAIL
    return client
