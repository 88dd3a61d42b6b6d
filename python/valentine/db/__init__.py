"""Database module for Valentine pages.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from valentine.db.engine import create_db_engine, get_engine
from valentine.db.models import Base, ValentinePage, YesEvent
from valentine.db.session import create_session_factory, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "create_session_factory",
    "transaction",
    # Models
    "Base",
    "ValentinePage",
    "YesEvent",
]
