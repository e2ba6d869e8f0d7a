"""MailDrain lease store layer."""

from maildrain.db.base import (
    Base,
    create_engine,
    create_session_factory,
    get_session,
    init_db,
)
from maildrain.db.tables import MailboxLockTable

__all__ = [
    "Base",
    "MailboxLockTable",
    "create_engine",
    "create_session_factory",
    "get_session",
    "init_db",
]
