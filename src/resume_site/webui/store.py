"""
Read side of the résumé store.

Assembles the documents the API and the public pages render. Every read goes
through ``_reading`` so a failing store always surfaces as
``StoreUnavailableError`` instead of an empty result; "nothing saved yet" is
answered with defaults and is not an error.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from sqlalchemy.exc import SQLAlchemyError

from ..errors import StoreUnavailableError
from .fields import (
    COLLECTION_ORDER,
    MAX_SHOWCASE_ITEMS,
    default_profile,
    serialize_profile,
    serialize_row,
    strip_private,
)
from .models import COLLECTION_MODELS, PROFILE_ID, Article, Resume, ShowcaseItem, db

logger = logging.getLogger(__name__)


@contextmanager
def _reading(what: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to read %s", what)
        raise StoreUnavailableError(f"Failed to fetch {what}") from e


def _ordered(model: Any):
    return model.query.order_by(model.sort_order.asc(), model.id.asc())


def list_collection(collection: str, date_style: str = "public") -> List[Dict[str, Any]]:
    model = COLLECTION_MODELS[collection]
    with _reading(collection):
        rows = _ordered(model).all()
    return [serialize_row(collection, row, date_style) for row in rows]


def load_profile(date_style: str = "public") -> Dict[str, Any]:
    with _reading("profile"):
        profile = db.session.get(Resume, PROFILE_ID)
    if profile is None:
        return default_profile(PROFILE_ID)
    return serialize_profile(profile, date_style)


def load_resume(date_style: str = "public") -> Dict[str, Any]:
    """
    The profile merged with every child collection.

    Each collection is ascending by ``order``. ``date_style`` selects
    ``YYYY-MM-DD`` ("admin") or full timestamps ("public").
    """
    document = load_profile(date_style)
    for collection in COLLECTION_ORDER:
        document[collection] = list_collection(collection, date_style)
    return document


def load_public_resume(date_style: str = "public") -> Dict[str, Any]:
    """What visitors may see: no draft articles, no office address."""
    document = load_resume(date_style)
    document["experiences"] = [strip_private("experiences", row) for row in document["experiences"]]
    document["articles"] = [row for row in document["articles"] if row["isPublished"]]
    return document


def load_articles(include_drafts: bool = False, date_style: str = "public") -> List[Dict[str, Any]]:
    with _reading("articles"):
        query = _ordered(Article)
        if not include_drafts:
            query = query.filter(Article.is_published.is_(True))
        rows = query.all()
    return [serialize_row("articles", row, date_style) for row in rows]


def load_showcase(include_inactive: bool = False) -> List[Dict[str, Any]]:
    with _reading("showcase items"):
        query = _ordered(ShowcaseItem)
        if not include_inactive:
            query = query.filter(ShowcaseItem.is_active.is_(True)).limit(MAX_SHOWCASE_ITEMS)
        rows = query.all()
    logger.debug("Found %d showcase items", len(rows))
    return [serialize_row("showcase", row) for row in rows]


def article_tags(articles: List[Dict[str, Any]]) -> List[str]:
    """Distinct tags in first-seen order."""
    seen: List[str] = []
    for article in articles:
        for tag in article.get("tags") or []:
            if tag not in seen:
                seen.append(tag)
    return seen
