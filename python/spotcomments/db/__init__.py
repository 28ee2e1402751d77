"""Database module.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from spotcomments.db.engine import create_db_engine, get_engine
from spotcomments.db.models import Base, Comment, User
from spotcomments.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Models
    "Base",
    "User",
    "Comment",
]
