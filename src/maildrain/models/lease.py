"""Lease model - exclusive, time-bounded claim on a mailbox."""

from datetime import datetime, timezone

from pydantic import BaseModel


class Lease(BaseModel):
    """Represents an invocation's exclusive claim on a mailbox."""

    resource_id: str
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        """
        Check if lease has expired.

        A lease is still live at exactly its expiry instant, matching the
        store, which only takes over rows whose expiry is strictly past.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        return now > self.expires_at
