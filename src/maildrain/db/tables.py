"""SQLAlchemy table definitions."""

from sqlalchemy import Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from maildrain.db.base import Base


class MailboxLockTable(Base):
    """Mailbox locks - one row per leased mailbox."""

    __tablename__ = "mailbox_locks"

    # Keep the primary key as the only constraint that can fail a write:
    # the lease manager reads any IntegrityError as a held lease.

    tenantidmailbox: Mapped[str] = mapped_column(String(255), primary_key=True)
    # Epoch seconds, so a TTL reaper can use the column directly
    expiration_time: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        # Index for expiry sweeps
        Index("idx_mailbox_locks_expiration", "expiration_time"),
    )
