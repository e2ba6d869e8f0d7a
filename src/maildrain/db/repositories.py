"""Database repositories for MailDrain entities."""

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from maildrain.db.tables import MailboxLockTable
from maildrain.models import Lease
from maildrain.utils.time import from_epoch, to_epoch


class LeaseRepository:
    """Repository for mailbox lock operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def put_if_absent_or_expired(
        self,
        resource_id: str,
        expires_at: datetime,
        now: datetime,
    ) -> Lease:
        """
        Conditionally write a lock row for a mailbox.

        An expired row is taken over in place. When no row exists a new one
        is inserted. When a live row exists the insert collides on the
        primary key and sqlalchemy.exc.IntegrityError is raised, either here
        on flush or when the caller commits; that is the "condition failed"
        signal.
        """
        result = await self.session.execute(
            update(MailboxLockTable)
            .where(
                MailboxLockTable.tenantidmailbox == resource_id,
                MailboxLockTable.expiration_time < to_epoch(now),
            )
            .values(expiration_time=to_epoch(expires_at))
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            self.session.add(
                MailboxLockTable(
                    tenantidmailbox=resource_id,
                    expiration_time=to_epoch(expires_at),
                )
            )
            await self.session.flush()

        return Lease(resource_id=resource_id, expires_at=expires_at)

    async def get(self, resource_id: str) -> Lease | None:
        """Get the lock row for a mailbox, live or not."""
        result = await self.session.execute(
            select(MailboxLockTable).where(
                MailboxLockTable.tenantidmailbox == resource_id,
            )
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def delete(self, resource_id: str) -> bool:
        """Delete the lock row for a mailbox."""
        result = await self.session.execute(
            delete(MailboxLockTable).where(
                MailboxLockTable.tenantidmailbox == resource_id,
            )
        )
        return result.rowcount > 0

    def _row_to_model(self, row: MailboxLockTable) -> Lease:
        """Convert database row to model."""
        return Lease(
            resource_id=row.tenantidmailbox,
            expires_at=from_epoch(row.expiration_time),
        )
