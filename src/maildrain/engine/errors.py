"""MailDrain engine errors."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from maildrain.models import DrainOutcome


class MailDrainError(Exception):
    """Base error for MailDrain operations."""

    def __init__(self, message: str, code: str = "MAILDRAIN_ERROR"):
        self.message = message
        self.code = code
        # Attached by the drain coordinator before the error leaves a run
        self.outcome: Optional["DrainOutcome"] = None
        super().__init__(message)


class LockContended(MailDrainError):
    """Another invocation holds a live lease on the mailbox."""

    def __init__(self, resource_id: str):
        super().__init__(
            f"Mailbox {resource_id} is locked by another process",
            "LOCK_CONTENDED",
        )
        self.resource_id = resource_id


class LeaseStoreUnavailable(MailDrainError):
    """The lease store failed for a reason other than a held lease."""

    def __init__(self, resource_id: str, detail: str):
        super().__init__(
            f"Error locking mailbox id {resource_id}: {detail}",
            "LEASE_STORE_UNAVAILABLE",
        )
        self.resource_id = resource_id
        self.detail = detail


class RemoteQueueProtocolError(MailDrainError):
    """The remote mailbox answered in a way the drain cannot act on."""

    def __init__(self, message: str, method: str = ""):
        super().__init__(message, "REMOTE_QUEUE_PROTOCOL_ERROR")
        self.method = method


class DuplicateHeadAnomaly(MailDrainError):
    """The head voicemail did not change after a successful delete."""

    def __init__(self, identity: tuple[str, ...]):
        super().__init__(
            "Error traversing voicemails. Found the same voicemail twice: "
            f"{identity}",
            "DUPLICATE_HEAD_ANOMALY",
        )
        self.identity = identity


class PayloadPersistenceError(MailDrainError):
    """A downloaded voicemail could not be handed to storage."""

    def __init__(self, voicemail_id: str, detail: str):
        super().__init__(
            f"Failed to store voicemail {voicemail_id}: {detail}",
            "PAYLOAD_PERSISTENCE_ERROR",
        )
        self.voicemail_id = voicemail_id
