"""
Working copy of the résumé for the admin panel.

``ResumeEditor`` holds the whole document while an admin edits it. Each
logical edit is one method; nothing reaches the store until the admin saves,
at which point ``to_payload()`` is handed to the synchronizer. Every mutation
pushes an undo snapshot first.

``DraftRegistry`` keeps one editor per signed-in browser session, in process.
"""

from __future__ import annotations

import base64
import copy
import secrets
import threading
import time
from typing import Any, Dict, List, Optional, Set

from ..errors import ValidationError
from .fields import (
    COLLECTION_ORDER,
    DUTY_SLOTS,
    MAX_SHOWCASE_ITEMS,
    PROFILE_FIELDS,
    coerce_value,
    default_item,
    default_profile,
    get_field,
)

EDITABLE_SECTIONS = COLLECTION_ORDER + ["showcase"]
MAX_UNDO = 50
MAX_IMAGE_BYTES = 5 * 1024 * 1024

# Parts of the draft that are saved separately
RESUME_PART = "resume"
SHOWCASE_PART = "showcase"
PARTS = (RESUME_PART, SHOWCASE_PART)


def part_of(section: str) -> str:
    """Which separately saved part a section belongs to."""
    return SHOWCASE_PART if section == "showcase" else RESUME_PART


def to_data_uri(content: bytes, mimetype: Optional[str]) -> str:
    """Inline an uploaded image as a ``data:`` URI."""
    if not content:
        raise ValidationError("Uploaded file is empty")
    if not mimetype or not mimetype.startswith("image/"):
        raise ValidationError("Only image uploads are supported")
    if len(content) > MAX_IMAGE_BYTES:
        raise ValidationError("Image is larger than 5 MB")
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mimetype};base64,{encoded}"


def _normalize_item(section: str, item: Any) -> Dict[str, Any]:
    base = default_item(section)
    if isinstance(item, dict):
        for key, value in item.items():
            if value is None and base.get(key) is not None:
                continue
            base[key] = value
    if section == "experiences":
        duties = list(base.get("duties") or [])
        base["duties"] = (duties + [""] * DUTY_SLOTS)[:max(DUTY_SLOTS, len(duties))]
        if not isinstance(base.get("fullBullets"), list):
            base["fullBullets"] = []
    return base


class ResumeEditor:
    """Explicit state container for an editing session."""

    def __init__(self, profile: Dict[str, Any], sections: Dict[str, List[Dict[str, Any]]]):
        self.profile = profile
        self.sections = sections
        self.dirty_parts: Set[str] = set()
        self._history: List[Dict[str, Any]] = []

    @classmethod
    def from_document(
        cls,
        document: Optional[Dict[str, Any]],
        showcase: Optional[List[Dict[str, Any]]] = None,
    ) -> "ResumeEditor":
        """
        Build an editor from a Read Accessor document.

        Missing collections become empty lists and missing scalars get their
        defaults, so the editing forms never see a hole.
        """
        document = document or {}
        profile = default_profile()
        for key in profile:
            value = document.get(key)
            if value is not None:
                profile[key] = value

        sections: Dict[str, List[Dict[str, Any]]] = {}
        for section in COLLECTION_ORDER:
            items = document.get(section)
            sections[section] = [_normalize_item(section, item) for item in (items or [])]
        sections["showcase"] = [_normalize_item("showcase", item) for item in (showcase or [])]
        return cls(profile, sections)

    # -------------------------
    # History
    # -------------------------

    def _snapshot(self, section: str) -> None:
        self._history.append({
            "profile": copy.deepcopy(self.profile),
            "sections": copy.deepcopy(self.sections),
            "dirty_parts": set(self.dirty_parts),
        })
        if len(self._history) > MAX_UNDO:
            self._history.pop(0)
        self.dirty_parts.add(part_of(section))

    @property
    def dirty(self) -> bool:
        return bool(self.dirty_parts)

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    def undo(self) -> bool:
        if not self._history:
            return False
        state = self._history.pop()
        self.profile = state["profile"]
        self.sections = state["sections"]
        self.dirty_parts = state["dirty_parts"]
        return True

    @staticmethod
    def _part_state(part: str, profile: Dict[str, Any], sections: Dict[str, Any]) -> Any:
        if part == SHOWCASE_PART:
            return sections["showcase"]
        return profile, [sections[section] for section in COLLECTION_ORDER]

    def mark_saved(self, part: Optional[str] = None) -> None:
        """
        Record that ``part`` (or everything) now matches the store.

        Other parts keep their unsaved flag. Undo history survives while
        anything is still unsaved; stepping back past the save marks the
        saved part unsaved again.
        """
        parts = PARTS if part is None else (part,)
        for saved in parts:
            self.dirty_parts.discard(saved)
            current = self._part_state(saved, self.profile, self.sections)
            for state in self._history:
                if self._part_state(saved, state["profile"], state["sections"]) == current:
                    state["dirty_parts"].discard(saved)
                else:
                    state["dirty_parts"].add(saved)
        if not self.dirty_parts:
            self._history.clear()

    # -------------------------
    # Lookups
    # -------------------------

    def items(self, section: str) -> List[Dict[str, Any]]:
        if section not in self.sections:
            raise ValidationError(f"Unknown section: {section}")
        return self.sections[section]

    def _item(self, section: str, index: int) -> Dict[str, Any]:
        items = self.items(section)
        if not 0 <= index < len(items):
            raise ValidationError(f"No {section} item at position {index}")
        return items[index]

    def _next_order(self, section: str) -> int:
        items = self.items(section)
        if section != "articles":
            return len(items)
        orders = [item.get("order") for item in items if isinstance(item.get("order"), int)]
        return max(orders) + 1 if orders else 0

    def _swap(self, section: str, first: int, second: int) -> None:
        items = self.items(section)
        items[first], items[second] = items[second], items[first]
        if section == "articles":
            # article order is saved verbatim
            items[first]["order"], items[second]["order"] = items[second].get("order"), items[first].get("order")

    @staticmethod
    def _normalize_value(section: str, key: str, value: Any) -> Any:
        if section == "articles" and key == "order":
            try:
                return int(value)
            except (TypeError, ValueError):
                raise ValidationError(f"Order must be a whole number, got {value!r}") from None
        fi = get_field(section, key)
        if fi is None or fi.read_only:
            raise ValidationError(f"Unknown field: {section}.{key}")
        if fi.kind in ("bool", "int", "choice", "image") or (fi.kind == "list" and isinstance(value, str)):
            return coerce_value(fi, value)
        return "" if value is None else value

    # -------------------------
    # Mutations
    # -------------------------

    def set_profile_field(self, key: str, value: Any) -> None:
        value = self._normalize_value("profile", key, value)
        self._snapshot("profile")
        self.profile[key] = value

    def set_item_field(self, section: str, index: int, key: str, value: Any) -> None:
        item = self._item(section, index)
        value = self._normalize_value(section, key, value)
        self._snapshot(section)
        item[key] = value

    def set_list_entry(self, section: str, index: int, key: str, position: int, value: str) -> None:
        """Edit one duty or bullet line of an experience."""
        item = self._item(section, index)
        entries = item.get(key)
        if not isinstance(entries, list):
            raise ValidationError(f"{section}.{key} is not a list")
        if not 0 <= position < len(entries):
            raise ValidationError(f"No entry {position} in {section}.{key}")
        self._snapshot(section)
        entries[position] = value or ""

    def add_item(self, section: str) -> Dict[str, Any]:
        items = self.items(section)
        if section == "showcase" and len(items) >= MAX_SHOWCASE_ITEMS:
            raise ValidationError(f"The showcase holds at most {MAX_SHOWCASE_ITEMS} items")
        self._snapshot(section)
        item = default_item(section)
        item["order"] = self._next_order(section)
        items.append(item)
        return item

    def remove_item(self, section: str, index: int) -> Dict[str, Any]:
        self._item(section, index)
        self._snapshot(section)
        return self.items(section).pop(index)

    def move_up(self, section: str, index: int) -> bool:
        self._item(section, index)
        if index == 0:
            return False
        self._snapshot(section)
        self._swap(section, index - 1, index)
        return True

    def move_down(self, section: str, index: int) -> bool:
        items = self.items(section)
        self._item(section, index)
        if index == len(items) - 1:
            return False
        self._snapshot(section)
        self._swap(section, index, index + 1)
        return True

    def add_bullet(self, index: int) -> None:
        item = self._item("experiences", index)
        self._snapshot("experiences")
        item.setdefault("fullBullets", []).append("")

    def remove_bullet(self, index: int, bullet_index: int) -> None:
        item = self._item("experiences", index)
        bullets = item.get("fullBullets") or []
        if not 0 <= bullet_index < len(bullets):
            raise ValidationError(f"No bullet {bullet_index} on experience {index}")
        self._snapshot("experiences")
        bullets.pop(bullet_index)

    def set_image(
        self,
        section: str,
        key: str,
        content: bytes,
        mimetype: Optional[str],
        index: Optional[int] = None,
    ) -> str:
        """Store an uploaded image inline on the profile or on an item."""
        fi = get_field(section, key)
        if fi is None or fi.kind != "image":
            raise ValidationError(f"{section}.{key} does not hold an image")
        data_uri = to_data_uri(content, mimetype)
        if section == "profile":
            self._snapshot("profile")
            self.profile[key] = data_uri
        else:
            if index is None:
                raise ValidationError("An item position is required")
            item = self._item(section, index)
            self._snapshot(section)
            item[key] = data_uri
        return data_uri

    # -------------------------
    # Output
    # -------------------------

    def to_payload(self) -> Dict[str, Any]:
        """The full document as the synchronizer expects it."""
        payload = {fi.key: copy.deepcopy(self.profile.get(fi.key)) for fi in PROFILE_FIELDS if not fi.read_only}
        for section in COLLECTION_ORDER:
            payload[section] = copy.deepcopy(self.sections[section])
        return payload

    def showcase_payload(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.sections["showcase"])


class DraftRegistry:
    """
    One in-process editor per signed-in session, addressed by a random key.

    A draft untouched for ``max_age`` seconds is dropped on the next
    ``get`` or ``create``, so sessions that expire without signing out do
    not pin their editors in memory.
    """

    def __init__(self, max_age: float = 12 * 60 * 60, clock=time.monotonic) -> None:
        self.max_age = max_age
        self._clock = clock
        self._drafts: Dict[str, ResumeEditor] = {}
        self._last_seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, seen in self._last_seen.items() if now - seen > self.max_age]
        for key in expired:
            del self._drafts[key]
            del self._last_seen[key]

    def get(self, draft_id: Optional[str]) -> Optional[ResumeEditor]:
        if not draft_id:
            return None
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            editor = self._drafts.get(draft_id)
            if editor is not None:
                self._last_seen[draft_id] = now
            return editor

    def create(self, editor: ResumeEditor) -> str:
        draft_id = secrets.token_urlsafe(16)
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            self._drafts[draft_id] = editor
            self._last_seen[draft_id] = now
        return draft_id

    def discard(self, draft_id: Optional[str]) -> None:
        if not draft_id:
            return
        with self._lock:
            self._drafts.pop(draft_id, None)
            self._last_seen.pop(draft_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._drafts)
