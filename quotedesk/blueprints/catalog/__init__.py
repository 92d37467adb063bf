"""
Catalog blueprint package.

Exposes the Blueprint object imported in quotedesk.__init__. Routes are in routes.py.
"""

from .routes import catalog_bp  # noqa: F401
