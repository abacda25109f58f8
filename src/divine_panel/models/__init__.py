# src/divine_panel/models/__init__.py
"""SQLAlchemy models for the Divine Panel service."""

from .document import StoredDocument

__all__ = ["StoredDocument"]
