"""Persistence layer: SQLAlchemy models, sessions and data access helpers."""
