from __future__ import annotations

from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

PROFILE_ID = "default"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Resume(db.Model):
    """The singleton profile record (id is always PROFILE_ID)."""
    __tablename__ = "resume"

    id = db.Column(db.String(64), primary_key=True, default=PROFILE_ID)
    name = db.Column(db.String(200), nullable=False, default="")
    title = db.Column(db.String(300), nullable=False, default="")
    bio = db.Column(db.Text, nullable=False, default="")
    email = db.Column(db.String(320), nullable=False, default="")

    signal_url = db.Column(db.String(600), nullable=False, default="")
    linkedin_personal = db.Column(db.String(600), nullable=False, default="")
    linkedin_business = db.Column(db.String(600), nullable=False, default="")

    # inline data: URI or a plain URL
    photo_url = db.Column(db.Text, nullable=True)

    show_mission = db.Column(db.Boolean, nullable=False, default=False)
    mission_title = db.Column(db.String(200), nullable=False, default="Mission")
    mission_text = db.Column(db.Text, nullable=False, default="")

    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Resume {self.id} {self.name!r}>"


class OrderedRow:
    """Columns shared by every ordered child collection."""

    id = db.Column(db.String(64), primary_key=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0, index=True)


class Education(OrderedRow, db.Model):
    __tablename__ = "education"

    school_name = db.Column(db.String(300), nullable=False, default="")
    degree = db.Column(db.String(200), nullable=False, default="")
    major = db.Column(db.String(200), nullable=False, default="")
    location = db.Column(db.String(200), nullable=False, default="")
    years_attended = db.Column(db.String(100), nullable=False, default="")


class Experience(OrderedRow, db.Model):
    __tablename__ = "experience"

    job_title = db.Column(db.String(300), nullable=False, default="")
    company = db.Column(db.String(300), nullable=False, default="")
    duties = db.Column(db.JSON, nullable=False, default=list)
    full_bullets = db.Column(db.JSON, nullable=False, default=list)

    # None means in-person / unset
    work_location = db.Column(db.String(16), nullable=True)

    # legacy free-text range; wins over the derived dates when set
    date_range = db.Column(db.String(100), nullable=False, default="")
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    is_current = db.Column(db.Boolean, nullable=False, default=False)

    # stored and returned by the API, never rendered publicly
    office_street = db.Column(db.String(300), nullable=False, default="")
    office_city = db.Column(db.String(120), nullable=False, default="")
    office_state = db.Column(db.String(120), nullable=False, default="")
    office_zip = db.Column(db.String(20), nullable=False, default="")


class Skill(OrderedRow, db.Model):
    __tablename__ = "skill"

    name = db.Column(db.String(200), nullable=False, default="")
    level = db.Column(db.Integer, nullable=False, default=5)
    hover_text = db.Column(db.String(600), nullable=False, default="")


class Publication(OrderedRow, db.Model):
    __tablename__ = "publication"

    title = db.Column(db.String(600), nullable=False, default="")
    year = db.Column(db.String(20), nullable=False, default="")
    url = db.Column(db.String(600), nullable=False, default="")


class Language(OrderedRow, db.Model):
    __tablename__ = "language"

    name = db.Column(db.String(120), nullable=False, default="")
    proficiency = db.Column(db.String(120), nullable=False, default="")


class Certification(OrderedRow, db.Model):
    __tablename__ = "certification"

    name = db.Column(db.String(300), nullable=False, default="")
    issuer = db.Column(db.String(300), nullable=False, default="")
    date_obtained = db.Column(db.Date, nullable=True)
    credential_url = db.Column(db.String(600), nullable=False, default="")
    icon_url = db.Column(db.Text, nullable=True)


class Article(OrderedRow, db.Model):
    __tablename__ = "article"

    title = db.Column(db.String(400), nullable=False, default="")
    subtitle = db.Column(db.String(400), nullable=False, default="")
    excerpt = db.Column(db.Text, nullable=False, default="")
    url = db.Column(db.String(600), nullable=False, default="")
    og_image_url = db.Column(db.Text, nullable=True)
    published_date = db.Column(db.DateTime, nullable=True)
    read_time = db.Column(db.String(40), nullable=False, default="")
    tags = db.Column(db.JSON, nullable=False, default=list)
    is_published = db.Column(db.Boolean, nullable=False, default=True, index=True)


class ShowcaseItem(OrderedRow, db.Model):
    """Landing-page card; managed independently of the profile."""
    __tablename__ = "showcase_items"

    title = db.Column(db.String(300), nullable=False, default="")
    description = db.Column(db.Text, nullable=False, default="")
    image_url = db.Column(db.Text, nullable=True)
    link_url = db.Column(db.String(600), nullable=False, default="#")
    link_type = db.Column(db.String(16), nullable=False, default="internal")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(320), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(400), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<User {self.email}>"


# wire collection name -> model
COLLECTION_MODELS = {
    "education": Education,
    "experiences": Experience,
    "skills": Skill,
    "publications": Publication,
    "languages": Language,
    "certifications": Certification,
    "articles": Article,
    "showcase": ShowcaseItem,
}
