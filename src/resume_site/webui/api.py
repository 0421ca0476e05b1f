"""
JSON API.

Reads are public; every write passes the access gate first. Writes only
accept ``application/json`` bodies, which a cross-site form cannot produce,
so this blueprint is exempt from the form CSRF check.
"""

from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, request

from ..errors import AuthenticationError, ResumeSiteError, ValidationError
from . import store, sync
from .auth import api_login_required, authenticate, current_admin, is_admin, login_user, logout_user

api = Blueprint("api", __name__, url_prefix="/api")


@api.errorhandler(ResumeSiteError)
def _handle_site_error(error: ResumeSiteError):
    # store details were logged where they happened; clients get the summary
    return jsonify({"error": error.message, "code": error.code}), error.status_code


def _json_body() -> Any:
    if not request.is_json:
        raise ValidationError("Expected an application/json body")
    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationError("Request body is not valid JSON")
    return payload


def _date_style() -> str:
    return "admin" if request.args.get("view") == "admin" else "public"


# -------------------------
# Resume
# -------------------------

@api.get("/resume")
def get_resume():
    if not is_admin():
        return jsonify(store.load_public_resume(_date_style()))
    return jsonify(store.load_resume(_date_style()))


@api.post("/resume")
@api_login_required
def post_resume():
    result = sync.save_resume(_json_body())
    return jsonify(result.to_dict())


# -------------------------
# Portfolio (articles)
# -------------------------

@api.get("/portfolio")
def get_portfolio():
    return jsonify(store.load_articles(include_drafts=is_admin(), date_style=_date_style()))


@api.post("/portfolio")
@api_login_required
def replace_portfolio():
    result = sync.replace_articles(_json_body())
    return jsonify(result.to_dict())


@api.put("/portfolio")
@api_login_required
def upsert_portfolio_article():
    article = sync.upsert_article(_json_body())
    return jsonify({"success": True, "article": article})


@api.delete("/portfolio")
@api_login_required
def delete_portfolio_article():
    article_id = request.args.get("id")
    if not article_id and request.is_json:
        body = request.get_json(silent=True) or {}
        if isinstance(body, dict):
            article_id = body.get("id")
    sync.delete_article(str(article_id) if article_id else None)
    return jsonify({"success": True})


# -------------------------
# Showcase
# -------------------------

@api.get("/showcase")
def get_showcase():
    include_inactive = is_admin() and request.args.get("all") == "1"
    return jsonify(store.load_showcase(include_inactive=include_inactive))


@api.post("/showcase")
@api_login_required
def post_showcase():
    result = sync.save_showcase(_json_body())
    return jsonify(result.to_dict())


# -------------------------
# Session
# -------------------------

@api.get("/auth/session")
def get_session():
    email = current_admin()
    return jsonify({"authenticated": email is not None, "email": email})


@api.post("/auth/signin")
def api_signin():
    payload = _json_body()
    if not isinstance(payload, dict):
        raise ValidationError("Expected an object with email and password")
    user = authenticate(payload.get("email"), payload.get("password"))
    if user is None:
        raise AuthenticationError("Invalid credentials")
    login_user(user)
    return jsonify({"authenticated": True, "email": user.email})


@api.post("/auth/signout")
def api_signout():
    logout_user()
    return jsonify({"authenticated": False})
