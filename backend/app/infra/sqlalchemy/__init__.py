"""SQLAlchemy adapters for collaborator ports."""

from __future__ import annotations

from .catalog import SQLAlchemyCatalog

__all__ = ["SQLAlchemyCatalog"]
