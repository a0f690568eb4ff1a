"""
HTTP interface for the analytics console.

Exposes the store's append and query operations as JSON endpoints.
"""

from .app import app_factory, create_app

__all__ = ["app_factory", "create_app"]
