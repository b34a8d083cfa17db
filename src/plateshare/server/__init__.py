"""HTTP surface for Plateshare: application factory and request dependencies."""

from plateshare.server.app import app, create_app

__all__ = ["app", "create_app"]
