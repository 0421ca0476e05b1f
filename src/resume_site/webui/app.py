from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Mapping, Optional
from xml.sax.saxutils import escape

from flask import (
    Flask,
    Response,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from flask_wtf.csrf import CSRFProtect, generate_csrf

from ..config import SiteConfig, load_config
from ..errors import ConfigurationError, StoreError, StoreUnavailableError, ValidationError
from . import store, sync
from .api import api
from .auth import (
    DRAFT_SESSION_KEY,
    DRAFTS_EXTENSION,
    authenticate,
    current_admin,
    login_required,
    login_user,
    logout_user,
)
from .editor import EDITABLE_SECTIONS, RESUME_PART, SHOWCASE_PART, DraftRegistry, ResumeEditor
from .fields import (
    COLLECTION_FIELDS,
    MAX_SHOWCASE_ITEMS,
    PROFILE_FIELDS,
    format_date_range,
    format_long_date,
    get_section_icon,
    get_section_label,
    summarize_item,
)
from .models import db

logger = logging.getLogger(__name__)

ADMIN_TABS = ["profile"] + EDITABLE_SECTIONS + ["settings"]


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    *,
    site_config: Optional[SiteConfig] = None,
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config: Flask config overrides applied last (tests use this).
        site_config: Loaded site configuration; read from
            resume_site.toml and the environment when omitted.
    """
    app = Flask(__name__, template_folder="templates", static_folder="static")

    site_config = site_config or load_config()
    app.config.update(site_config.flask_config())
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=12)
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    if config:
        app.config.update(config)

    # Extensions
    db.init_app(app)
    csrf = CSRFProtect(app)
    csrf.exempt(api)
    app.register_blueprint(api)
    app.extensions[DRAFTS_EXTENSION] = DraftRegistry(max_age=app.permanent_session_lifetime.total_seconds())

    # Template globals
    app.jinja_env.globals["csrf_token"] = generate_csrf
    app.jinja_env.globals["get_section_label"] = get_section_label
    app.jinja_env.globals["get_section_icon"] = get_section_icon
    app.jinja_env.globals["format_date_range"] = format_date_range
    app.jinja_env.globals["summarize_item"] = summarize_item
    app.jinja_env.filters["long_date"] = format_long_date

    @app.before_request
    def _ensure_db() -> None:
        # create tables on first request
        if getattr(app, "_db_ready", False):
            return
        with app.app_context():
            db.create_all()
            app._db_ready = True  # type: ignore[attr-defined]

    @app.context_processor
    def inject_globals():
        return {"admin_email": current_admin()}

    @app.errorhandler(StoreUnavailableError)
    def store_unavailable(error: StoreUnavailableError):
        if request.path.startswith("/api/"):
            return {"error": error.message, "code": error.code}, error.status_code
        return render_template("error.html", message=error.message), error.status_code

    def drafts() -> DraftRegistry:
        return current_app.extensions[DRAFTS_EXTENSION]

    def current_editor() -> ResumeEditor:
        editor = drafts().get(session.get(DRAFT_SESSION_KEY))
        if editor is None:
            editor = ResumeEditor.from_document(
                store.load_resume("admin"),
                store.load_showcase(include_inactive=True),
            )
            session[DRAFT_SESSION_KEY] = drafts().create(editor)
        return editor

    def reset_editor() -> None:
        drafts().discard(session.pop(DRAFT_SESSION_KEY, None))

    def back_to(tab: str):
        if tab not in ADMIN_TABS:
            tab = "profile"
        return redirect(url_for("admin", tab=tab))

    # -------------------------
    # Public pages
    # -------------------------
    @app.route("/")
    def index():
        return render_template(
            "index.html",
            profile=store.load_profile(),
            showcase=store.load_showcase(),
        )

    @app.route("/resume")
    def resume():
        return render_template("resume.html", resume=store.load_public_resume())

    @app.route("/portfolio")
    def portfolio():
        articles = store.load_articles()
        selected_tag = request.args.get("tag") or None
        visible = [a for a in articles if selected_tag in a["tags"]] if selected_tag else articles
        return render_template(
            "portfolio.html",
            articles=visible,
            tags=store.article_tags(articles),
            selected_tag=selected_tag,
        )

    @app.route("/sitemap.xml")
    def sitemap():
        base = app.config["SITE_URL"]
        entries = [("/", "weekly", "1.0"), ("/resume", "monthly", "0.9"), ("/portfolio", "weekly", "0.8")]
        urls = "".join(
            f"<url><loc>{escape(base + path)}</loc><changefreq>{freq}</changefreq>"
            f"<priority>{priority}</priority></url>"
            for path, freq, priority in entries
        )
        body = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{urls}</urlset>'
        )
        return Response(body, mimetype="application/xml")

    # -------------------------
    # Sign-in
    # -------------------------
    @app.route("/signin", methods=["GET", "POST"])
    def signin():
        next_url = request.values.get("next") or url_for("admin")
        if not next_url.startswith("/") or next_url.startswith("//"):
            next_url = url_for("admin")

        if request.method == "POST":
            user = authenticate(request.form.get("email"), request.form.get("password"))
            if user is None:
                flash("Invalid email or password.", "error")
                return render_template("signin.html", next_url=next_url), 401
            login_user(user)
            return redirect(next_url)

        return render_template("signin.html", next_url=next_url)

    @app.route("/signout", methods=["POST"])
    def signout():
        logout_user()
        flash("Signed out.", "success")
        return redirect(url_for("index"))

    # -------------------------
    # Admin editing surface
    # -------------------------
    @app.route("/admin")
    @login_required
    def admin():
        tab = request.args.get("tab") or "profile"
        if tab not in ADMIN_TABS:
            abort(404)
        editor = current_editor()
        return render_template(
            "admin/editor.html",
            tab=tab,
            tabs=ADMIN_TABS,
            editor=editor,
            profile_fields=PROFILE_FIELDS,
            collection_fields=COLLECTION_FIELDS,
            max_showcase=MAX_SHOWCASE_ITEMS,
        )

    @app.route("/admin/edit", methods=["POST"])
    @login_required
    def admin_edit():
        editor = current_editor()
        form = request.form
        action = form.get("action") or ""
        section = form.get("section") or "profile"
        tab = form.get("tab") or section
        # checkboxes post a hidden "false" followed by "true" when ticked
        values = form.getlist("value")
        value = values[-1] if values else None

        try:
            index = int(form.get("index") or -1)
            if action == "set_profile_field":
                editor.set_profile_field(form.get("key", ""), value)
            elif action == "set_item_field":
                editor.set_item_field(section, index, form.get("key", ""), value)
            elif action == "set_list_entry":
                editor.set_list_entry(section, index, form.get("key", ""), int(form.get("position") or -1), value)
            elif action == "add_item":
                editor.add_item(section)
            elif action == "remove_item":
                editor.remove_item(section, index)
            elif action == "move_up":
                editor.move_up(section, index)
            elif action == "move_down":
                editor.move_down(section, index)
            elif action == "add_bullet":
                editor.add_bullet(index)
            elif action == "remove_bullet":
                editor.remove_bullet(index, int(form.get("position") or -1))
            else:
                raise ValidationError(f"Unknown action: {action}")
        except (ValidationError, ValueError) as ex:
            flash(f"Edit rejected: {ex}", "error")
        return back_to(tab)

    @app.route("/admin/upload", methods=["POST"])
    @login_required
    def admin_upload():
        editor = current_editor()
        section = request.form.get("section") or "profile"
        upload = request.files.get("file")
        try:
            if upload is None:
                raise ValidationError("No file selected")
            index = request.form.get("index")
            editor.set_image(
                section,
                request.form.get("key", ""),
                upload.read(),
                upload.mimetype,
                index=int(index) if index not in (None, "") else None,
            )
            flash("Image updated. Save to publish it.", "success")
        except (ValidationError, ValueError) as ex:
            flash(f"Upload rejected: {ex}", "error")
        return back_to(request.form.get("tab") or section)

    @app.route("/admin/undo", methods=["POST"])
    @login_required
    def admin_undo():
        if not current_editor().undo():
            flash("Nothing to undo.", "warning")
        return back_to(request.form.get("tab") or "profile")

    @app.route("/admin/save", methods=["POST"])
    @login_required
    def admin_save():
        editor = current_editor()
        try:
            sync.save_resume(editor.to_payload())
        except (StoreError, ValidationError):
            # detail already logged by the synchronizer
            flash("Failed to save changes.", "error")
            return back_to(request.form.get("tab") or "profile")
        editor.mark_saved(RESUME_PART)
        flash("Resume updated successfully!", "success")
        return back_to(request.form.get("tab") or "profile")

    @app.route("/admin/showcase", methods=["POST"])
    @login_required
    def admin_save_showcase():
        editor = current_editor()
        try:
            sync.save_showcase(editor.showcase_payload())
        except (StoreError, ValidationError):
            flash("Failed to save showcase items.", "error")
            return back_to("showcase")
        editor.mark_saved(SHOWCASE_PART)
        flash("Showcase updated successfully!", "success")
        return back_to("showcase")

    @app.route("/admin/discard", methods=["POST"])
    @login_required
    def admin_discard():
        reset_editor()
        flash("Unsaved changes discarded.", "success")
        return back_to(request.form.get("tab") or "profile")

    return app


def is_localhost(host: str) -> bool:
    """True for 127.x.x.x, ::1 and "localhost"."""
    return host == "localhost" or host.startswith("127.") or host == "::1"


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 5000,
    debug: bool = False,
    allow_unsafe_bind: bool = False,
) -> None:
    """
    Run the development server.

    Raises:
        ConfigurationError: When binding beyond localhost without
            ``allow_unsafe_bind``.
    """
    if not is_localhost(host) and not allow_unsafe_bind:
        raise ConfigurationError(
            f"Refusing to bind to '{host}': this exposes the admin panel beyond "
            "this machine. Pass --i-know-what-im-doing to proceed."
        )
    if not app.config.get("ADMIN_EMAILS"):
        logger.warning("No admin emails configured; nobody can sign in")
    logger.info(f"Starting résumé site at http://{host}:{port}")
    app.run(host=host, port=port, debug=debug)
