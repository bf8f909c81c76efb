"""
Merkle Commitment Service - Database Package

Provides async database session management and the root repository.
"""

from merkle_commit.db.session import (
    close_db,
    get_engine,
    get_session_factory,
    init_db,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
]
