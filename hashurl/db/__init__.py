"""Database module for the URL shortener service."""
from hashurl.db.base import engine, get_engine, create_tables, DatabaseHealthCheck
from hashurl.db.session import get_db, db_transaction, SessionManager

__all__ = [
    "engine",
    "get_engine",
    "create_tables",
    "DatabaseHealthCheck",
    "get_db",
    "db_transaction",
    "SessionManager",
]
