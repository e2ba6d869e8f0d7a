"""MailDrain engine - lease manager, drain coordinator and errors."""

from maildrain.engine.drain import DrainCoordinator, PayloadSink, RemoteQueue
from maildrain.engine.errors import (
    DuplicateHeadAnomaly,
    LeaseStoreUnavailable,
    LockContended,
    MailDrainError,
    PayloadPersistenceError,
    RemoteQueueProtocolError,
)
from maildrain.engine.leases import LeaseManager

__all__ = [
    "DrainCoordinator",
    "DuplicateHeadAnomaly",
    "LeaseManager",
    "LeaseStoreUnavailable",
    "LockContended",
    "MailDrainError",
    "PayloadPersistenceError",
    "PayloadSink",
    "RemoteQueue",
    "RemoteQueueProtocolError",
]
