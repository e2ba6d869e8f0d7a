"""REST API router."""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from maildrain import __version__
from maildrain.api.deps import (
    get_drain_collaborators,
    get_session_factory,
    get_settings,
    verify_api_key,
)
from maildrain.api.schemas import (
    DrainRequest,
    DrainResponse,
    ErrorResponse,
    HealthResponse,
    LockStatusResponse,
)
from maildrain.config import Settings
from maildrain.engine import LeaseManager, LeaseStoreUnavailable, MailDrainError
from maildrain.invocation import run_invocation
from maildrain.models import DrainOutcome

logger = logging.getLogger("maildrain.api")

router = APIRouter(prefix="/v1", dependencies=[Depends(verify_api_key)])


def _to_response(outcome: DrainOutcome) -> DrainResponse:
    return DrainResponse(
        resource_id=outcome.resource_id,
        items_processed=outcome.items_processed,
        terminated_by=outcome.terminated_by.value,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.post(
    "/mailbox/drain",
    response_model=DrainResponse,
    responses={
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def drain_mailbox(
    body: Optional[DrainRequest] = None,
    settings: Settings = Depends(get_settings),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    collaborators: dict[str, Any] = Depends(get_drain_collaborators),
):
    """
    Trigger one drain of the configured mailbox.

    Lock contention is a normal 200 response with terminated_by
    "lock_contention": another invocation is already draining.
    """
    body = body or DrainRequest()
    if body.event is not None:
        logger.debug(f"Event: {json.dumps(body.event)}")

    try:
        outcome = await run_invocation(
            settings,
            budget_seconds=body.budget_seconds,
            session_factory=session_factory,
            **collaborators,
        )
    except MailDrainError as e:
        status_code = 503 if isinstance(e, LeaseStoreUnavailable) else 502
        error = ErrorResponse(
            code=e.code,
            message=e.message,
            outcome=_to_response(e.outcome) if e.outcome else None,
        )
        return JSONResponse(status_code=status_code, content=error.model_dump())
    except ValueError as e:
        # Missing mailbox or voip.ms credentials in the server configuration
        logger.error(f"Drain not started: {e}")
        error = ErrorResponse(code="CONFIGURATION_ERROR", message=str(e))
        return JSONResponse(status_code=500, content=error.model_dump())

    return _to_response(outcome)


@router.get("/mailbox/lock", response_model=LockStatusResponse)
async def get_lock_status(
    settings: Settings = Depends(get_settings),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Report whether the configured mailbox is currently leased."""
    resource_id = settings.voipms_mailbox
    try:
        lease = await LeaseManager(session_factory).get(resource_id)
    except LeaseStoreUnavailable as e:
        error = ErrorResponse(code=e.code, message=e.message)
        return JSONResponse(status_code=503, content=error.model_dump())

    if lease is None or lease.is_expired():
        return LockStatusResponse(resource_id=resource_id, locked=False)
    return LockStatusResponse(
        resource_id=resource_id,
        locked=True,
        expires_at=lease.expires_at.isoformat(),
    )
