"""
Flask application for the résumé site: public pages, the JSON API and the
admin editing surface.
"""

from .app import create_app, run_server

__all__ = ["create_app", "run_server"]
