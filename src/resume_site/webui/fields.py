from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

COLLECTION_ORDER = [
    "experiences",
    "education",
    "skills",
    "publications",
    "languages",
    "certifications",
    "articles",
]

SECTION_LABELS = {
    "profile": "General",
    "experiences": "Experience",
    "education": "Education",
    "skills": "Skills",
    "publications": "Publications",
    "languages": "Languages",
    "certifications": "Certifications",
    "articles": "Articles",
    "showcase": "Showcase",
    "settings": "Settings",
}

SECTION_ICONS = {
    "profile": "👤",
    "experiences": "💼",
    "education": "🎓",
    "skills": "🧰",
    "publications": "🧾",
    "languages": "🗣️",
    "certifications": "📜",
    "articles": "📰",
    "showcase": "🖼️",
    "settings": "⚙️",
}

WORK_LOCATIONS = ("remote", "hybrid")
LINK_TYPES = ("internal", "external", "mailto")
DUTY_SLOTS = 3
MAX_SHOWCASE_ITEMS = 6

DATE_STYLES = ("admin", "public")
TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off", ""}


@dataclass
class FieldInfo:
    key: str
    attr: str
    kind: str = "text"
    default: Any = ""
    label: str = ""
    multiline: bool = False
    choices: Tuple[Any, ...] = ()
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    separator: Optional[str] = None
    read_only: bool = False
    public: bool = True

    def fresh_default(self) -> Any:
        return copy.deepcopy(self.default)


def _f(key: str, attr: str, label: str, **kwargs: Any) -> FieldInfo:
    return FieldInfo(key=key, attr=attr, label=label, **kwargs)


PROFILE_FIELDS: List[FieldInfo] = [
    _f("name", "name", "Name"),
    _f("title", "title", "Title"),
    _f("bio", "bio", "Bio", multiline=True),
    _f("email", "email", "Email"),
    _f("signalUrl", "signal_url", "Signal URL"),
    _f("linkedinPersonal", "linkedin_personal", "LinkedIn Personal"),
    _f("linkedinBusiness", "linkedin_business", "LinkedIn Business"),
    _f("photoUrl", "photo_url", "Profile Photo", kind="image", default=None),
    _f("showMission", "show_mission", "Show Mission Section", kind="bool", default=False),
    _f("missionTitle", "mission_title", "Mission Title", default="Mission"),
    _f("missionText", "mission_text", "Mission Text", multiline=True),
    _f("updatedAt", "updated_at", "Last Updated", kind="datetime", default=None, read_only=True),
]

# Wire keys are what the API and the editor exchange; attrs are ORM columns.
COLLECTION_FIELDS: Dict[str, List[FieldInfo]] = {
    "education": [
        _f("schoolName", "school_name", "School"),
        _f("degree", "degree", "Degree"),
        _f("major", "major", "Major"),
        _f("location", "location", "Location"),
        _f("yearsAttended", "years_attended", "Years Attended"),
    ],
    "experiences": [
        _f("jobTitle", "job_title", "Job Title"),
        _f("company", "company", "Company"),
        _f("dateRange", "date_range", "Date Range (legacy)"),
        _f("startDate", "start_date", "Start Date", kind="date", default=None),
        _f("endDate", "end_date", "End Date", kind="date", default=None),
        _f("isCurrent", "is_current", "Current Position", kind="bool", default=False),
        _f("workLocation", "work_location", "Work Location", kind="choice", default=None, choices=WORK_LOCATIONS),
        _f("duties", "duties", "Short Duties", kind="list", default=[]),
        _f("fullBullets", "full_bullets", "Full Bullets", kind="list", default=[], multiline=True),
        _f("officeStreet", "office_street", "Office Street", public=False),
        _f("officeCity", "office_city", "Office City", public=False),
        _f("officeState", "office_state", "Office State", public=False),
        _f("officeZip", "office_zip", "Office ZIP", public=False),
    ],
    "skills": [
        _f("name", "name", "Skill"),
        _f("level", "level", "Level (1-10)", kind="int", default=5, minimum=1, maximum=10),
        _f("hoverText", "hover_text", "Hover Text", multiline=True),
    ],
    "publications": [
        _f("title", "title", "Title"),
        _f("year", "year", "Year"),
        _f("url", "url", "URL"),
    ],
    "languages": [
        _f("name", "name", "Language"),
        _f("proficiency", "proficiency", "Proficiency"),
    ],
    "certifications": [
        _f("name", "name", "Certification"),
        _f("issuer", "issuer", "Issuer"),
        _f("dateObtained", "date_obtained", "Date Obtained", kind="date", default=None),
        _f("credentialUrl", "credential_url", "Credential URL"),
        _f("iconUrl", "icon_url", "Icon", kind="image", default=None),
    ],
    "articles": [
        _f("title", "title", "Title"),
        _f("subtitle", "subtitle", "Subtitle"),
        _f("excerpt", "excerpt", "Excerpt", multiline=True),
        _f("url", "url", "URL"),
        _f("ogImageUrl", "og_image_url", "Preview Image", kind="image", default=None),
        _f("publishedDate", "published_date", "Published", kind="datetime", default=None),
        _f("readTime", "read_time", "Read Time"),
        _f("tags", "tags", "Tags", kind="list", default=[], separator=","),
        _f("isPublished", "is_published", "Published (not a draft)", kind="bool", default=True),
    ],
    "showcase": [
        _f("title", "title", "Title"),
        _f("description", "description", "Description", multiline=True),
        _f("imageUrl", "image_url", "Image", kind="image", default=None),
        _f("linkUrl", "link_url", "Link", default="#"),
        _f("linkType", "link_type", "Link Type", kind="choice", default="internal", choices=LINK_TYPES),
        _f("isActive", "is_active", "Active", kind="bool", default=True),
    ],
}

WRITABLE_PROFILE_FIELDS = [fi for fi in PROFILE_FIELDS if not fi.read_only]


def get_section_label(section: str) -> str:
    return SECTION_LABELS.get(section, section.replace("_", " ").title())


def get_section_icon(section: str) -> str:
    return SECTION_ICONS.get(section, "📄")


def get_fields(collection: str) -> List[FieldInfo]:
    try:
        return COLLECTION_FIELDS[collection]
    except KeyError:
        raise KeyError(f"Unknown collection: {collection}") from None


def get_field(collection: str, key: str) -> Optional[FieldInfo]:
    fields = PROFILE_FIELDS if collection == "profile" else get_fields(collection)
    for fi in fields:
        if fi.key == key:
            return fi
    return None


def new_row_id() -> str:
    return uuid.uuid4().hex


# -------------------------
# Dates
# -------------------------

def _to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse the date strings the site itself produces (and a few looser ones).

    Accepts datetime/date objects, ``YYYY-MM-DD``, ``YYYY-MM``, ``YYYY`` and
    ISO timestamps with or without a trailing ``Z``. Anything else is None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_utc_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return _to_utc_naive(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in ("%Y-%m", "%Y"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_date(value: Any) -> Optional[date]:
    parsed = parse_datetime(value)
    return parsed.date() if parsed is not None else None


def format_date_value(value: Any, date_style: str = "public") -> str:
    """
    Render a stored date/datetime for a client.

    ``admin`` gives ``YYYY-MM-DD`` (what an HTML date input expects);
    ``public`` gives a full UTC timestamp, e.g. ``2024-03-01T00:00:00.000Z``.
    """
    if value is None:
        return ""
    if date_style not in DATE_STYLES:
        raise ValueError(f"Unknown date style: {date_style}")
    if isinstance(value, datetime):
        moment = _to_utc_naive(value)
    else:
        moment = datetime(value.year, value.month, value.day)
    if date_style == "admin":
        return moment.strftime("%Y-%m-%d")
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def format_long_date(value: Any) -> str:
    """``2024-03-01...`` -> ``March 1, 2024``; empty for unparseable input."""
    parsed = parse_datetime(value)
    if parsed is None:
        return ""
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def format_date_range(experience: Dict[str, Any]) -> str:
    """
    Display string for an experience's dates.

    A legacy free-text ``dateRange`` wins. Otherwise the range is derived from
    ``startDate``/``endDate``/``isCurrent`` using years only.
    """
    legacy = (experience.get("dateRange") or "").strip()
    if legacy:
        return legacy

    start = parse_date(experience.get("startDate"))
    if start is None:
        return ""
    if experience.get("isCurrent"):
        return f"{start.year} - Present"
    end = parse_date(experience.get("endDate"))
    if end is None or end.year == start.year:
        return f"{start.year}"
    return f"{start.year} - {end.year}"


# -------------------------
# Coercion (payload -> column values)
# -------------------------

def _coerce_text(fi: FieldInfo, value: Any) -> Any:
    if value is None:
        return fi.fresh_default()
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return fi.fresh_default()


def _coerce_image(fi: FieldInfo, value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _coerce_int(fi: FieldInfo, value: Any) -> int:
    if isinstance(value, bool) or value is None:
        return fi.fresh_default()
    try:
        number = int(value)
    except (TypeError, ValueError):
        return fi.fresh_default()
    if fi.minimum is not None:
        number = max(fi.minimum, number)
    if fi.maximum is not None:
        number = min(fi.maximum, number)
    return number


def _coerce_bool(fi: FieldInfo, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return fi.fresh_default()
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return fi.fresh_default()


def _coerce_list(fi: FieldInfo, value: Any) -> List[str]:
    if isinstance(value, str):
        if fi.separator is None:
            return [value] if value else []
        return [part.strip() for part in value.split(fi.separator) if part.strip()]
    if not isinstance(value, (list, tuple)):
        return fi.fresh_default()
    return ["" if item is None else str(item) for item in value]


def _coerce_choice(fi: FieldInfo, value: Any) -> Any:
    if isinstance(value, str) and value in fi.choices:
        return value
    return fi.fresh_default()


_COERCERS = {
    "text": _coerce_text,
    "image": _coerce_image,
    "int": _coerce_int,
    "bool": _coerce_bool,
    "list": _coerce_list,
    "choice": _coerce_choice,
    "date": lambda fi, value: parse_date(value),
    "datetime": lambda fi, value: parse_datetime(value),
}


def coerce_value(fi: FieldInfo, value: Any) -> Any:
    return _COERCERS[fi.kind](fi, value)


def coerce_row(collection: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a submitted row onto column values.

    Missing or malformed values fall back to the field default; a row is
    never rejected for incomplete content.
    """
    values: Dict[str, Any] = {}
    for fi in get_fields(collection):
        values[fi.attr] = coerce_value(fi, payload.get(fi.key))
    return values


def coerce_profile(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Column values for the profile keys actually present in ``payload``."""
    return {
        fi.attr: coerce_value(fi, payload[fi.key])
        for fi in WRITABLE_PROFILE_FIELDS
        if fi.key in payload
    }


# -------------------------
# Serialization (row -> wire dict)
# -------------------------

def _serialize_value(fi: FieldInfo, value: Any, date_style: str) -> Any:
    if fi.kind in ("date", "datetime"):
        return format_date_value(value, date_style)
    if fi.kind == "list":
        return list(value or [])
    if value is None and fi.kind == "text":
        return ""
    return value


def serialize_row(collection: str, obj: Any, date_style: str = "public") -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": obj.id}
    for fi in get_fields(collection):
        data[fi.key] = _serialize_value(fi, getattr(obj, fi.attr), date_style)
    data["order"] = obj.sort_order
    return data


def serialize_profile(obj: Any, date_style: str = "public") -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": obj.id}
    for fi in PROFILE_FIELDS:
        data[fi.key] = _serialize_value(fi, getattr(obj, fi.attr), date_style)
    return data


def default_profile(profile_id: str = "default") -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": profile_id}
    for fi in PROFILE_FIELDS:
        data[fi.key] = "" if fi.kind == "datetime" else fi.fresh_default()
    return data


def default_item(collection: str) -> Dict[str, Any]:
    """A blank row as the editor inserts it."""
    data: Dict[str, Any] = {"id": new_row_id()}
    for fi in get_fields(collection):
        if fi.kind in ("date", "datetime"):
            data[fi.key] = ""
        else:
            data[fi.key] = fi.fresh_default()
    if collection == "experiences":
        data["duties"] = [""] * DUTY_SLOTS
        data["fullBullets"] = [""]
    return data


def strip_private(collection: str, row: Dict[str, Any]) -> Dict[str, Any]:
    hidden = {fi.key for fi in get_fields(collection) if not fi.public}
    return {k: v for k, v in row.items() if k not in hidden}


def summarize_item(collection: str, item: Dict[str, Any]) -> str:
    """Short one-line label for an item in admin lists."""
    if collection == "experiences":
        parts = [item.get("jobTitle") or "", item.get("company") or ""]
        text = " @ ".join(p for p in parts if p)
    elif collection == "education":
        text = item.get("schoolName") or ""
    else:
        text = item.get("title") or item.get("name") or ""
    return text.strip() or "(untitled)"
