"""API dependencies."""

import logging
import secrets
from typing import Any

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from maildrain.config import Environment, Settings

logger = logging.getLogger("maildrain.api")


def get_settings(request: Request) -> Settings:
    """Settings loaded once at startup and passed along explicitly."""
    return request.app.state.settings


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session factory for the lease store."""
    return request.app.state.session_factory


def get_drain_collaborators(request: Request) -> dict[str, Any]:
    """
    Queue and sink the app was built with.

    Empty unless create_app was given them; run_invocation then builds the
    voip.ms client and local archive from settings.
    """
    return request.app.state.drain_collaborators


async def verify_api_key(
    request: Request,
    authorization: str | None = Header(None),
    x_api_key: str | None = Header(None, alias="X-API-Key"),
) -> None:
    """
    Verify the shared API key.

    Accepts ``Authorization: Bearer <key>`` or ``X-API-Key``. Fails closed
    unless insecure dev mode is explicitly enabled in development.
    """
    settings = get_settings(request)
    if settings.insecure_dev:
        return

    api_key = None
    if authorization and authorization.startswith("Bearer "):
        api_key = authorization[7:]
    elif x_api_key:
        api_key = x_api_key

    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing authorization. Use Authorization: Bearer <key> or X-API-Key header",
        )

    if not settings.api_key:
        logger.error("SECURITY VIOLATION: No API key configured. Set MAILDRAIN_API_KEY.")
        raise HTTPException(
            status_code=503,
            detail="Server misconfigured: authentication not properly initialized",
        )

    if not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(status_code=401, detail="Invalid API key")


def validate_auth_config(settings: Settings) -> None:
    """
    Validate authentication configuration at startup.

    Raises:
        RuntimeError: If configuration is insecure for the current environment
    """
    if settings.allow_insecure_dev and settings.env != Environment.DEVELOPMENT:
        raise RuntimeError(
            f"SECURITY ERROR: allow_insecure_dev=true is only permitted in development. "
            f"Current environment: {settings.env.value}. "
            f"Set MAILDRAIN_ALLOW_INSECURE_DEV=false for {settings.env.value}."
        )

    if not settings.allow_insecure_dev and not settings.api_key:
        raise RuntimeError(
            "SECURITY ERROR: MAILDRAIN_API_KEY is required unless "
            "MAILDRAIN_ALLOW_INSECURE_DEV=true in development."
        )

    if settings.allow_insecure_dev:
        logger.warning(
            "=" * 80 + "\n"
            "WARNING: Running in INSECURE DEV MODE\n"
            "  - Authentication is DISABLED\n"
            "  - Anyone who can reach the server can trigger a drain\n"
            + "=" * 80
        )
    else:
        logger.info(f"Authentication enabled: shared API key for {settings.env.value}")
