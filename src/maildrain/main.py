"""MailDrain HTTP trigger application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from maildrain import __version__
from maildrain.api import router
from maildrain.api.deps import validate_auth_config
from maildrain.config import Settings, load_settings
from maildrain.db.base import create_engine, create_session_factory, init_db
from maildrain.engine import PayloadSink, RemoteQueue

logger = logging.getLogger("maildrain")


def create_app(
    settings: Optional[Settings] = None,
    *,
    queue: Optional[RemoteQueue] = None,
    sink: Optional[PayloadSink] = None,
) -> FastAPI:
    """
    Build the application around one explicitly loaded Settings value.

    queue and sink replace the voip.ms client and local archive for every
    drain this app triggers.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting MailDrain server...")
        logger.info(f"Environment: {settings.env.value}")

        # Fail fast if insecure
        validate_auth_config(settings)

        engine = create_engine(settings)
        await init_db(engine)
        app.state.session_factory = create_session_factory(engine)
        logger.info("Lease store initialized")

        yield

        logger.info("Shutting down MailDrain server...")
        await engine.dispose()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="MailDrain",
        description="Lease-guarded voicemail mailbox drain",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.drain_collaborators = {
        name: value for name, value in (("queue", queue), ("sink", sink)) if value is not None
    }
    app.include_router(router)
    return app


def main():
    """Entry point for the application."""
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
