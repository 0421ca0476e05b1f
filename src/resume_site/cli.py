"""
Command-line interface for the résumé site.

Provides the `resume-site` command with the following subcommands:
- serve: Run the development server
- db: Database operations (init, init-resume)
- setup-admin: Create or update an admin account
- export: Dump the résumé document as JSON
- import: Replace the résumé document from a JSON file
"""

import argparse
import getpass
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import SiteConfig, load_config
from .errors import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    ConfigurationError,
    ResumeSiteError,
)
from .logging_config import configure_logging, level_from_name, setup_logging

logger = logging.getLogger(__name__)


def _app(args: argparse.Namespace):
    from .webui import create_app

    config = getattr(args, "_config", None) or SiteConfig()
    return create_app(site_config=config)


def serve_command(args: argparse.Namespace) -> int:
    """
    Execute the serve command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code.
    """
    from .webui import run_server

    app = _app(args)
    try:
        run_server(
            app,
            host=args.host,
            port=args.port,
            debug=args.debug_server,
            allow_unsafe_bind=args.i_know_what_im_doing,
        )
    except ConfigurationError as e:
        print("\n" + "=" * 70)
        print("⚠️  WARNING: BINDING TO NON-LOCALHOST ADDRESS")
        print("=" * 70)
        print(f"   {e.message}")
        print("=" * 70 + "\n")
        return e.exit_code
    return EXIT_SUCCESS


def db_init_command(args: argparse.Namespace) -> int:
    """Create the tables, or drop and recreate them with --reset."""
    from .webui.models import db

    app = _app(args)
    with app.app_context():
        if args.reset:
            logger.warning("Dropping all tables")
            db.drop_all()
        db.create_all()
    print(f"✅ Database initialized: {app.config['SQLALCHEMY_DATABASE_URI']}")
    return EXIT_SUCCESS


def db_init_resume_command(args: argparse.Namespace) -> int:
    """Insert the default profile row if none exists yet."""
    from .webui.models import PROFILE_ID, Resume, db

    app = _app(args)
    with app.app_context():
        db.create_all()
        if db.session.get(Resume, PROFILE_ID) is not None:
            print("ℹ️  Resume record already exists")
            return EXIT_SUCCESS
        db.session.add(Resume(id=PROFILE_ID))
        db.session.commit()
    logger.info("Created default resume record")
    print("✅ Created default resume record")
    return EXIT_SUCCESS


def setup_admin_command(args: argparse.Namespace) -> int:
    """
    Execute the setup-admin command.

    Prompts for the password when --password is not given.
    """
    from .webui.auth import create_or_update_admin
    from .webui.models import db

    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        if getpass.getpass("Confirm password: ") != password:
            print("❌ Passwords do not match")
            return EXIT_VALIDATION_ERROR

    app = _app(args)
    with app.app_context():
        db.create_all()
        try:
            user = create_or_update_admin(args.email, password)
        except ResumeSiteError as e:
            print(f"❌ {e.message}")
            return e.exit_code
        email = user.email
        allowed = email in app.config["ADMIN_EMAILS"]

    print(f"✅ Admin account ready: {email}")
    if not allowed:
        print(f"⚠️  {email} is not in ADMIN_EMAILS; add it before signing in")
    return EXIT_SUCCESS


def export_command(args: argparse.Namespace) -> int:
    """Write the full résumé document (showcase included) as JSON."""
    from .webui import store

    app = _app(args)
    try:
        with app.app_context():
            document = store.load_resume("public")
            document["showcase"] = store.load_showcase(include_inactive=True)
    except ResumeSiteError as e:
        logger.error(f"Export failed: {e.message}")
        return e.exit_code

    text = json.dumps(document, indent=2, ensure_ascii=False)
    if args.output:
        output = Path(args.output)
        output.write_text(text + "\n", encoding="utf-8")
        print(f"✅ Exported resume to {output}")
    else:
        print(text)
    return EXIT_SUCCESS


def import_command(args: argparse.Namespace) -> int:
    """Replace the stored résumé with the document in FILE."""
    from .webui import sync
    from .webui.models import db

    path = Path(args.file)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        return EXIT_ERROR
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {path}: {e}")
        return EXIT_VALIDATION_ERROR
    if not isinstance(document, dict):
        logger.error(f"{path} does not hold a resume document")
        return EXIT_VALIDATION_ERROR

    showcase = document.pop("showcase", None)
    app = _app(args)
    try:
        with app.app_context():
            db.create_all()
            result = sync.save_resume(document)
            if showcase is not None:
                sync.save_showcase(showcase)
    except ResumeSiteError as e:
        logger.error(f"Import failed: {e.message}")
        return e.exit_code

    print(f"📥 Imported {path}")
    for collection, count in result.counts.items():
        print(f"   {collection}: {count}")
    return EXIT_SUCCESS


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="resume-site",
        description="Personal résumé and portfolio website.",
        epilog="Example: resume-site serve --port 8000",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"resume-site {__version__}",
    )

    # Global options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (INFO level logging)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output (DEBUG level logging)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress output except errors",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        dest="config_file",
        help="Path to config file (default: resume_site.toml)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
    )

    # Serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the development server",
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=5000, help="Port to listen on (default: 5000)")
    serve_parser.add_argument(
        "--debug",
        action="store_true",
        dest="debug_server",
        help="Enable the Flask debugger and reloader",
    )
    serve_parser.add_argument(
        "--i-know-what-im-doing",
        action="store_true",
        dest="i_know_what_im_doing",
        help="Allow binding to a non-localhost address",
    )
    serve_parser.set_defaults(func=serve_command)

    # DB commands
    db_parser = subparsers.add_parser(
        "db",
        help="Database operations",
    )
    db_subparsers = db_parser.add_subparsers(
        dest="db_command",
        title="db commands",
        description="Available database commands",
    )

    db_init_parser = db_subparsers.add_parser(
        "init",
        help="Create the database tables",
    )
    db_init_parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop every table first (destroys all data)",
    )
    db_init_parser.set_defaults(func=db_init_command)

    db_init_resume_parser = db_subparsers.add_parser(
        "init-resume",
        help="Insert the default resume record if missing",
    )
    db_init_resume_parser.set_defaults(func=db_init_resume_command)

    db_parser.set_defaults(func=lambda args: db_parser.print_help() or EXIT_SUCCESS)

    # Setup-admin command
    admin_parser = subparsers.add_parser(
        "setup-admin",
        help="Create or update an admin account",
    )
    admin_parser.add_argument("--email", required=True, help="Admin email address")
    admin_parser.add_argument("--password", help="Password (prompted when omitted)")
    admin_parser.set_defaults(func=setup_admin_command)

    # Export / import
    export_parser = subparsers.add_parser(
        "export",
        help="Export the resume document as JSON",
    )
    export_parser.add_argument("--output", "-o", help="Output file (default: stdout)")
    export_parser.set_defaults(func=export_command)

    import_parser = subparsers.add_parser(
        "import",
        help="Replace the resume document from a JSON file",
    )
    import_parser.add_argument("file", help="JSON file produced by 'export'")
    import_parser.set_defaults(func=import_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv).

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, debug=args.debug, quiet=args.quiet)

    config_path = Path(args.config_file) if args.config_file else None
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        logger.error(f"Config error: {e}")
        print(f"❌ Config error: {e}")
        return EXIT_CONFIG_ERROR
    args._config = config

    # verbosity flags beat the configured level
    flags_given = args.verbose or args.debug or args.quiet
    if not flags_given or config.log_file:
        level = logging.getLogger().level if flags_given else level_from_name(config.log_level)
        configure_logging(level=level, log_file=Path(config.log_file) if config.log_file else None)

    if hasattr(args, "func"):
        return args.func(args)
    parser.print_help()
    return EXIT_SUCCESS


def main_cli() -> None:
    """
    CLI entry point for setuptools console_scripts.

    Calls main() and exits with the returned code.
    """
    sys.exit(main())


if __name__ == "__main__":
    main_cli()
