"""
Logging setup for the résumé site.

The CLI configures the root logger exactly once: the level comes from the
``--quiet/--verbose/--debug`` flags, or from ``[logging] level`` in
``resume_site.toml`` when no flag is given. Modules log through
``logging.getLogger(__name__)`` and never add handlers themselves.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "resume_site"

CONSOLE_FORMAT = "%(message)s"
DETAILED_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    format_str: Optional[str] = None,
) -> None:
    """
    Point the root logger at stderr (and optionally a file).

    Calling it again replaces the handlers installed by the previous call.
    The file handler always uses the detailed format so saved logs carry
    timestamps and logger names.
    """
    if format_str is None:
        format_str = DETAILED_FORMAT if level <= logging.INFO else CONSOLE_FORMAT

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(level)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(format_str))
    root.addHandler(console)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        except OSError as e:
            logging.getLogger(__name__).warning(f"Cannot log to {log_file}: {e}")
        else:
            file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
            root.addHandler(file_handler)

    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    # dev server request lines show at INFO and below
    logging.getLogger("werkzeug").setLevel(max(level, logging.INFO))


def get_log_level_from_flags(
    quiet: bool = False,
    verbose: bool = False,
    debug: bool = False,
) -> int:
    """--debug beats --quiet, which beats --verbose."""
    if debug:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    if verbose:
        return logging.INFO
    return logging.WARNING


def level_from_name(name: Optional[str], default: int = logging.WARNING) -> int:
    """Translate a level name such as "info" into a logging constant."""
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(
    verbose: bool = False,
    debug: bool = False,
    quiet: bool = False,
    log_file: Optional[Path] = None,
) -> None:
    configure_logging(
        level=get_log_level_from_flags(quiet=quiet, verbose=verbose, debug=debug),
        log_file=log_file,
    )
