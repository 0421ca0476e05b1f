"""
Session-based access gate.

An admin signs in with email + password. The email must be on the
configured allow-list (``ADMIN_EMAILS``) and match a stored user whose salted
hash verifies. The signed Flask session then carries the admin's email;
every write endpoint checks it before touching the store.

The check is binary: a request is either from the signed-in admin or from an
anonymous visitor.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable, List, Optional

from flask import current_app, jsonify, redirect, request, session, url_for
from passlib.context import CryptContext

from ..errors import ValidationError
from .models import User, db

logger = logging.getLogger(__name__)

SESSION_KEY = "admin_email"
DRAFT_SESSION_KEY = "draft_id"
DRAFTS_EXTENSION = "resume_drafts"
MIN_PASSWORD_LENGTH = 8

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # unknown or corrupt hash format
        return False


def allowed_emails() -> List[str]:
    return [e.lower() for e in current_app.config.get("ADMIN_EMAILS", [])]


def is_allowed(email: str) -> bool:
    return email.strip().lower() in allowed_emails()


def authenticate(email: Optional[str], password: Optional[str]) -> Optional[User]:
    """
    Verify credentials against the allow-list and the user table.

    Returns:
        The matching user, or None when any check fails.
    """
    if not email or not password:
        return None
    email = email.strip().lower()
    if not is_allowed(email):
        logger.warning("Sign-in rejected: %s is not an allowed admin", email)
        return None

    user = User.query.filter_by(email=email).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Sign-in rejected: bad credentials for %s", email)
        return None
    return user


def login_user(user: User) -> None:
    session.clear()
    session[SESSION_KEY] = user.email
    session.permanent = True
    logger.info("Admin %s signed in", user.email)


def logout_user() -> None:
    email = session.pop(SESSION_KEY, None)
    drafts = current_app.extensions.get(DRAFTS_EXTENSION)
    if drafts is not None:
        drafts.discard(session.get(DRAFT_SESSION_KEY))
    session.clear()
    if email:
        logger.info("Admin %s signed out", email)


def current_admin() -> Optional[str]:
    """Email of the signed-in admin, or None for anonymous visitors."""
    email = session.get(SESSION_KEY)
    if not email:
        return None
    if not is_allowed(email):
        # removed from the allow-list after signing in
        return None
    return email


def is_admin() -> bool:
    return current_admin() is not None


def api_login_required(f: Callable) -> Callable:
    """Reject anonymous API writes with a JSON 401 before any store access."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if not is_admin():
            logger.warning("Unauthorized %s %s", request.method, request.path)
            return jsonify({"error": "Unauthorized", "code": "unauthorized"}), 401
        return f(*args, **kwargs)
    return decorated


def login_required(f: Callable) -> Callable:
    """Send anonymous visitors of admin pages to the sign-in form."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if not is_admin():
            return redirect(url_for("signin", next=request.path))
        return f(*args, **kwargs)
    return decorated


def create_or_update_admin(email: str, password: str) -> User:
    """
    Store (or re-hash) an admin's credentials.

    The allow-list is configured separately; a user that is not on it cannot
    sign in even with a correct password.
    """
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, password_hash=hash_password(password))
        db.session.add(user)
    else:
        user.password_hash = hash_password(password)
    db.session.commit()
    return user
