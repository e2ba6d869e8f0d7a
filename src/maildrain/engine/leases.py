"""Lease manager - single-owner, time-bounded mailbox locks."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from maildrain.db.base import get_session
from maildrain.db.repositories import LeaseRepository
from maildrain.engine.errors import LeaseStoreUnavailable, LockContended
from maildrain.models import AcquireResult, Lease
from maildrain.utils.time import utc_now

logger = logging.getLogger("maildrain.leases")


class LeaseManager:
    """
    Acquires and releases mailbox leases through the lease store.

    Mutual exclusion comes entirely from the store's conditional write;
    nothing is locked in-process. There is no renewal: a lease lives for
    the duration it was acquired with, and a crashed holder's lease simply
    lapses.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self.clock = clock

    async def acquire(self, resource_id: str, duration: timedelta) -> AcquireResult:
        """
        Try to take the lease on a mailbox.

        Returns CONTENDED when a live lease already exists. Any other store
        failure raises LeaseStoreUnavailable and is not retried here.
        """
        lease = await self._try_acquire(resource_id, duration)
        return AcquireResult.CONTENDED if lease is None else AcquireResult.ACQUIRED

    async def _try_acquire(self, resource_id: str, duration: timedelta) -> Lease | None:
        if duration <= timedelta(0):
            raise ValueError(f"Lease duration must be positive, got {duration}")

        now = self.clock()
        expires_at = now + duration

        try:
            async with get_session(self.session_factory) as session:
                lease = await LeaseRepository(session).put_if_absent_or_expired(
                    resource_id, expires_at=expires_at, now=now
                )
        except IntegrityError:
            # mailbox_locks carries no constraint besides its primary key and a
            # NOT NULL expiry that is always written, so this is a key collision
            logger.debug(f"Lease on {resource_id} is held by another process")
            return None
        except SQLAlchemyError as e:
            raise LeaseStoreUnavailable(resource_id, str(e)) from e

        logger.debug(f"Acquired lease on {resource_id} until {expires_at.isoformat()}")
        return lease

    async def release(self, resource_id: str) -> None:
        """Delete the lease unconditionally. Releasing twice is a no-op."""
        try:
            async with get_session(self.session_factory) as session:
                existed = await LeaseRepository(session).delete(resource_id)
        except SQLAlchemyError as e:
            raise LeaseStoreUnavailable(resource_id, str(e)) from e

        if existed:
            logger.debug(f"Released lease on {resource_id}")
        else:
            logger.debug(f"No lease to release on {resource_id}")

    async def get(self, resource_id: str) -> Lease | None:
        """Return the stored lease for a mailbox, live or lapsed."""
        try:
            async with get_session(self.session_factory) as session:
                return await LeaseRepository(session).get(resource_id)
        except SQLAlchemyError as e:
            raise LeaseStoreUnavailable(resource_id, str(e)) from e

    @asynccontextmanager
    async def lease(self, resource_id: str, duration: timedelta) -> AsyncIterator[Lease]:
        """
        Hold the lease for the body of an ``async with`` block.

        Raises LockContended before the body runs if the mailbox is taken.
        The lease is released however the body exits.
        """
        held = await self._try_acquire(resource_id, duration)
        if held is None:
            raise LockContended(resource_id)

        try:
            yield held
        except BaseException:
            try:
                await self.release(resource_id)
            except LeaseStoreUnavailable:
                # Keep the original error; the lease will lapse on its own
                logger.error(
                    f"Failed to release lease on {resource_id} while unwinding",
                    exc_info=True,
                )
            raise
        else:
            await self.release(resource_id)
