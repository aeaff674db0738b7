"""Database package exports."""

from domugrauds.db.base import Base
from domugrauds.db.session import Database

__all__ = ["Base", "Database"]
