"""Drain coordinator - empties the remote mailbox under a lease."""

import logging
from datetime import timedelta
from typing import Optional, Protocol

from maildrain.engine.errors import DuplicateHeadAnomaly, LockContended, MailDrainError
from maildrain.engine.leases import LeaseManager
from maildrain.models import DrainOutcome, DrainState, TerminatedBy, Voicemail

logger = logging.getLogger("maildrain.drain")


class RemoteQueue(Protocol):
    """The remote mailbox, treated as an unordered queue."""

    async def peek_head(self) -> Optional[Voicemail]:
        """Return the canonical-first voicemail, or None when empty."""
        ...

    async def fetch_payload(self, item: Voicemail) -> bytes:
        ...

    async def delete_head(self, item: Voicemail) -> None:
        ...


class PayloadSink(Protocol):
    """Where downloaded voicemails go before they are deleted remotely."""

    async def store(self, item: Voicemail, payload: bytes) -> str:
        """Persist a voicemail and return its storage key."""
        ...


# Allowed state transitions
_TRANSITIONS: dict[DrainState, set[DrainState]] = {
    DrainState.IDLE: {DrainState.LEASE_HELD, DrainState.DONE},
    DrainState.LEASE_HELD: {DrainState.ANOMALY, DrainState.DONE},
    DrainState.ANOMALY: {DrainState.DONE},
    DrainState.DONE: set(),
}


class DrainCoordinator:
    """
    Walks the remote mailbox to empty while holding its lease.

    Each voicemail is downloaded and stored before it is deleted, so a
    failure between the two steps duplicates a voicemail instead of losing
    it. After every delete the new head is compared with the old one; a head
    that did not move raises DuplicateHeadAnomaly rather than looping.

    A coordinator runs once. States:

        IDLE -> LEASE_HELD -> DONE
        IDLE -> DONE                      (lease contended or store failure)
        LEASE_HELD -> ANOMALY -> DONE     (head did not advance)
    """

    def __init__(
        self,
        leases: LeaseManager,
        queue: RemoteQueue,
        sink: PayloadSink,
        single_item_debug: bool = False,
    ):
        self.leases = leases
        self.queue = queue
        self.sink = sink
        self.single_item_debug = single_item_debug
        self.state = DrainState.IDLE
        self.history: list[DrainState] = [DrainState.IDLE]
        self.items_processed = 0

    def _transition(self, new_state: DrainState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid drain transition from {self.state.value} to {new_state.value}"
            )
        logger.debug(f"Drain state {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def _outcome(self, resource_id: str, terminated_by: TerminatedBy) -> DrainOutcome:
        return DrainOutcome(
            resource_id=resource_id,
            items_processed=self.items_processed,
            terminated_by=terminated_by,
        )

    async def drain(self, resource_id: str, lease_duration: timedelta) -> DrainOutcome:
        """
        Drain the mailbox identified by resource_id.

        Returns an outcome for clean exits (empty, contended, single-item
        debug). Every other exit raises; MailDrainError instances carry the
        partial outcome on ``.outcome``. The lease is released before any
        error leaves this method.
        """
        if self.state is not DrainState.IDLE:
            raise RuntimeError("DrainCoordinator instances run exactly once")

        try:
            async with self.leases.lease(resource_id, lease_duration):
                self._transition(DrainState.LEASE_HELD)
                terminated_by = await self._drain_loop()
        except LockContended:
            self._transition(DrainState.DONE)
            logger.info(f"Mailbox {resource_id} was locked by another process.")
            return self._outcome(resource_id, TerminatedBy.LOCK_CONTENTION)
        except MailDrainError as e:
            terminated_by = (
                TerminatedBy.ANOMALY if self.state is DrainState.ANOMALY else TerminatedBy.ERROR
            )
            self._transition(DrainState.DONE)
            e.outcome = self._outcome(resource_id, terminated_by)
            raise
        except BaseException:
            if self.state is not DrainState.DONE:
                self._transition(DrainState.DONE)
            raise

        self._transition(DrainState.DONE)
        outcome = self._outcome(resource_id, terminated_by)
        logger.info(
            f"Drained mailbox {resource_id}: {outcome.items_processed} voicemail(s), "
            f"terminated by {outcome.terminated_by.value}"
        )
        return outcome

    async def _drain_loop(self) -> TerminatedBy:
        previous: Optional[Voicemail] = None
        head = await self.queue.peek_head()

        while True:
            terminated_by = self._check_head(previous, head)
            if terminated_by is not None:
                return terminated_by

            logger.debug(f"Voicemail to download: {head.model_dump_json()}")
            payload = await self.queue.fetch_payload(head)
            await self.sink.store(head, payload)
            self.items_processed += 1

            if self.single_item_debug:
                logger.info(
                    "Single Voicemail Debug Mode - not deleting first voicemail "
                    "and ignoring any others"
                )
                return TerminatedBy.SINGLE_ITEM_DEBUG

            await self.queue.delete_head(head)
            previous, head = head, await self.queue.peek_head()

    def _check_head(
        self,
        previous: Optional[Voicemail],
        head: Optional[Voicemail],
    ) -> Optional[TerminatedBy]:
        """
        React to the head the queue just reported.

        Returns EMPTY when there is nothing left, None to keep going, and
        raises DuplicateHeadAnomaly when the head did not advance.
        """
        if head is None:
            return TerminatedBy.EMPTY

        # (date, callerid, duration) is the strongest key voip.ms offers
        if previous is not None and previous.identity == head.identity:
            self._transition(DrainState.ANOMALY)
            raise DuplicateHeadAnomaly(head.identity)

        return None
