"""
Database infrastructure: engine lifecycle, ORM tables and repositories.
"""

from app.infrastructure.db.database import (
    DatabaseManager,
    close_db,
    get_db_manager,
    get_session_context,
    init_db,
)


__all__ = [
    "DatabaseManager",
    "close_db",
    "get_db_manager",
    "get_session_context",
    "init_db",
]
