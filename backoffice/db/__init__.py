"""Database package."""

from backoffice.db.database import SessionLocal, engine, get_db, init_db
from backoffice.db.models import Base, User

__all__ = ["Base", "SessionLocal", "User", "engine", "get_db", "init_db"]
