"""One trigger, one drain run."""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from maildrain.archive import LocalArchive
from maildrain.config import Settings
from maildrain.db.base import create_engine, create_session_factory, init_db
from maildrain.engine import (
    DrainCoordinator,
    LeaseManager,
    MailDrainError,
    PayloadSink,
    RemoteQueue,
)
from maildrain.models import DrainOutcome
from maildrain.voipms import VoipMsClient

logger = logging.getLogger("maildrain.invocation")


def compute_lease_duration(budget_seconds: float, settings: Settings) -> timedelta:
    """
    Size the lease from the invocation's remaining execution budget.

    The lease must not outlive the invocation that holds it, so it is the
    budget minus the safety margin, floored at min_lease_seconds. It is
    computed once and never renewed.
    """
    if budget_seconds <= 0:
        raise ValueError(f"Execution budget must be positive, got {budget_seconds}")
    seconds = max(
        budget_seconds - settings.lease_safety_margin_seconds,
        settings.min_lease_seconds,
    )
    return timedelta(seconds=seconds)


async def run_invocation(
    settings: Settings,
    budget_seconds: Optional[float] = None,
    *,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    queue: Optional[RemoteQueue] = None,
    sink: Optional[PayloadSink] = None,
    single_item_debug: Optional[bool] = None,
) -> DrainOutcome:
    """
    Drain the configured mailbox once.

    Collaborators not passed in are built from settings and torn down
    afterwards. Fatal errors are logged and re-raised.
    """
    resource_id = settings.voipms_mailbox
    if not resource_id:
        raise ValueError("voipms_mailbox is not configured")

    budget = budget_seconds if budget_seconds is not None else settings.default_budget_seconds
    lease_duration = compute_lease_duration(budget, settings)
    if single_item_debug is None:
        single_item_debug = settings.single_voicemail_debug_mode

    engine = None
    if session_factory is None:
        engine = create_engine(settings)
        await init_db(engine)
        session_factory = create_session_factory(engine)

    client = None
    if queue is None:
        settings.require_voipms()
        client = VoipMsClient(settings)
        queue = client

    if sink is None:
        sink = LocalArchive(settings)

    coordinator = DrainCoordinator(
        LeaseManager(session_factory),
        queue,
        sink,
        single_item_debug=single_item_debug,
    )

    logger.info(
        f"Draining mailbox {resource_id} with a {lease_duration.total_seconds():.0f}s lease"
    )
    try:
        return await coordinator.drain(resource_id, lease_duration)
    except MailDrainError as e:
        processed = e.outcome.items_processed if e.outcome else 0
        logger.error(
            f"Drain of mailbox {resource_id} failed after {processed} voicemail(s): "
            f"[{e.code}] {e.message}",
            exc_info=True,
        )
        raise
    finally:
        if client is not None:
            await client.close()
        if engine is not None:
            await engine.dispose()
