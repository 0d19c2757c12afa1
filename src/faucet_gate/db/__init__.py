"""Database helpers for the optional SQL-backed store."""

from .session import Base, SessionLocal, create_tables, engine

__all__ = ["Base", "SessionLocal", "create_tables", "engine"]
