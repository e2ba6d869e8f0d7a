"""MailDrain enumerations."""

from enum import Enum


class AcquireResult(str, Enum):
    """Result of a lease acquisition attempt."""

    ACQUIRED = "acquired"
    CONTENDED = "contended"


class TerminatedBy(str, Enum):
    """Why a drain run stopped."""

    EMPTY = "empty"
    LOCK_CONTENTION = "lock_contention"
    ANOMALY = "anomaly"
    ERROR = "error"
    # Diagnostic run: one voicemail downloaded, nothing deleted
    SINGLE_ITEM_DEBUG = "single_item_debug"

    @classmethod
    def clean_exits(cls) -> set["TerminatedBy"]:
        """Return outcomes that count as a successful invocation."""
        return {cls.EMPTY, cls.LOCK_CONTENTION, cls.SINGLE_ITEM_DEBUG}

    def is_clean(self) -> bool:
        """Check if the run ended without a fatal error."""
        return self in self.clean_exits()


class DrainState(str, Enum):
    """Drain coordinator lifecycle state."""

    IDLE = "idle"
    LEASE_HELD = "lease_held"
    ANOMALY = "anomaly"
    DONE = "done"
