"""
Write side of the résumé store.

Every save replaces child collections wholesale: all existing rows of a
collection are deleted and the submitted array is inserted in its place.
There is no per-row diff, so a row the client leaves out is gone after the
save.

Order policy:
- Collections edited as lists (education, experiences, skills, publications,
  languages, certifications, showcase) get ``order = array index``; any
  submitted ``order`` is ignored.
- Articles keep the submitted ``order`` (they are ordered through an explicit
  "Order #" field and can also be written one row at a time). A missing or
  non-numeric article order falls back to the array index.

A whole save runs in a single transaction: if any collection fails, nothing
is committed.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from jsonschema import Draft7Validator
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, StoreError, ValidationError
from .fields import (
    COLLECTION_ORDER,
    MAX_SHOWCASE_ITEMS,
    coerce_profile,
    coerce_row,
    new_row_id,
    serialize_row,
)
from .models import COLLECTION_MODELS, PROFILE_ID, Article, Resume, db

logger = logging.getLogger(__name__)

# Keys the client may send back that are never written to the profile row.
IGNORED_PROFILE_KEYS = {"id", "theme", "updatedAt"}

_ROW_LIST = {"type": ["array", "null"], "items": {"type": "object"}}

RESUME_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {collection: _ROW_LIST for collection in COLLECTION_ORDER},
}

ROW_LIST_SCHEMA: Dict[str, Any] = {"type": "array", "items": {"type": "object"}}

ARTICLE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"id": {"type": ["string", "integer", "null"]}},
}


@dataclass
class SaveResult:
    """Outcome of one save, for logging and the API response."""

    operation: str
    counts: Dict[str, int] = field(default_factory=dict)
    profile_updated: bool = False
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    def mark_complete(self) -> None:
        self.end_time = time.time()

    @property
    def duration_ms(self) -> float:
        end = self.end_time if self.end_time is not None else time.time()
        return (end - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "operation": self.operation,
            "counts": dict(self.counts),
            "profileUpdated": self.profile_updated,
            "durationMs": round(self.duration_ms, 2),
        }


def validate_shape(payload: Any, schema: Dict[str, Any], what: str) -> None:
    """Reject payloads whose structure is wrong; field content is not checked."""
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.absolute_path))
    if errors:
        first = errors[0]
        location = "/".join(str(p) for p in first.absolute_path) or "(root)"
        raise ValidationError(f"Invalid {what} at {location}: {first.message}")


@contextmanager
def _writing(what: str) -> Iterator[None]:
    try:
        yield
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to update %s", what)
        raise StoreError(f"Failed to update {what}") from e


def _row_id(item: Dict[str, Any], taken: set) -> str:
    raw = item.get("id")
    row_id = str(raw).strip() if raw not in (None, "") and not isinstance(raw, bool) else ""
    if not row_id or row_id in taken:
        row_id = new_row_id()
    taken.add(row_id)
    return row_id


def _submitted_order(item: Dict[str, Any], fallback: int) -> int:
    value = item.get("order")
    if isinstance(value, bool):
        return fallback
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def build_rows(collection: str, items: List[Dict[str, Any]]) -> List[Any]:
    """Model instances for a submitted array, ids and order assigned."""
    model = COLLECTION_MODELS[collection]
    taken: set = set()
    rows = []
    for index, item in enumerate(items):
        if collection == "articles":
            order = _submitted_order(item, index)
        else:
            order = index
        rows.append(model(id=_row_id(item, taken), sort_order=order, **coerce_row(collection, item)))
    return rows


def replace_collection(collection: str, items: Optional[List[Dict[str, Any]]]) -> int:
    """
    Delete every row of ``collection`` and insert ``items``.

    Runs inside the caller's transaction; nothing is committed here.
    """
    model = COLLECTION_MODELS[collection]
    db.session.execute(db.delete(model))
    rows = build_rows(collection, items or [])
    db.session.add_all(rows)
    db.session.flush()
    return len(rows)


def upsert_profile(payload: Dict[str, Any]) -> bool:
    """Write the submitted profile fields onto the singleton row."""
    values = coerce_profile(
        {k: v for k, v in payload.items() if k not in IGNORED_PROFILE_KEYS}
    )
    profile = db.session.get(Resume, PROFILE_ID)
    if profile is None:
        db.session.add(Resume(id=PROFILE_ID, **values))
        return True
    for attr, value in values.items():
        setattr(profile, attr, value)
    return bool(values)


def save_resume(document: Any) -> SaveResult:
    """
    Persist a full résumé document.

    Profile fields present in the document are upserted; child collection
    keys are stripped from the profile and each one present is replaced
    wholesale. A collection key that is absent is left untouched; ``[]`` or
    ``null`` clears it.
    """
    validate_shape(document, RESUME_SCHEMA, "resume document")
    result = SaveResult(operation="save_resume")

    profile_payload = {k: v for k, v in document.items() if k not in COLLECTION_ORDER}
    with _writing("resume data"):
        result.profile_updated = upsert_profile(profile_payload)
        for collection in COLLECTION_ORDER:
            if collection in document:
                result.counts[collection] = replace_collection(collection, document[collection])

    result.mark_complete()
    logger.info(
        "Saved resume (%s) in %.1f ms",
        ", ".join(f"{k}={v}" for k, v in result.counts.items()) or "profile only",
        result.duration_ms,
    )
    return result


def save_showcase(items: Any) -> SaveResult:
    """Replace the showcase with the first ``MAX_SHOWCASE_ITEMS`` items."""
    validate_shape(items, ROW_LIST_SCHEMA, "showcase items")
    if len(items) > MAX_SHOWCASE_ITEMS:
        logger.info("Dropping %d showcase items beyond the cap", len(items) - MAX_SHOWCASE_ITEMS)
    result = SaveResult(operation="save_showcase")
    with _writing("showcase items"):
        result.counts["showcase"] = replace_collection("showcase", items[:MAX_SHOWCASE_ITEMS])
    result.mark_complete()
    logger.info("Saved %d showcase items", result.counts["showcase"])
    return result


def replace_articles(items: Any) -> SaveResult:
    validate_shape(items, ROW_LIST_SCHEMA, "articles")
    result = SaveResult(operation="replace_articles")
    with _writing("articles"):
        result.counts["articles"] = replace_collection("articles", items)
    result.mark_complete()
    logger.info("Saved %d articles", result.counts["articles"])
    return result


def upsert_article(payload: Any) -> Dict[str, Any]:
    """Create or fully overwrite one article; returns the stored row."""
    validate_shape(payload, ARTICLE_SCHEMA, "article")
    raw_id = payload.get("id")
    article_id = str(raw_id).strip() if raw_id not in (None, "") else new_row_id()
    values = coerce_row("articles", payload)

    with _writing("article"):
        article = db.session.get(Article, article_id)
        if article is None:
            highest = db.session.query(db.func.max(Article.sort_order)).scalar()
            next_order = 0 if highest is None else highest + 1
            article = Article(id=article_id, sort_order=_submitted_order(payload, next_order), **values)
            db.session.add(article)
            logger.info("Created article %s", article_id)
        else:
            for attr, value in values.items():
                setattr(article, attr, value)
            article.sort_order = _submitted_order(payload, article.sort_order)
            logger.info("Updated article %s", article_id)
        db.session.flush()
        stored = serialize_row("articles", article)
    return stored


def delete_article(article_id: Optional[str]) -> None:
    if not article_id:
        raise ValidationError("Article id is required")
    with _writing("article"):
        article = db.session.get(Article, article_id)
        if article is None:
            raise NotFoundError(f"Article not found: {article_id}")
        db.session.delete(article)
    logger.info("Deleted article %s", article_id)
