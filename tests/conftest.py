"""
Pytest fixtures for MailDrain tests.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from maildrain.config import Settings
from maildrain.db.base import Base, create_engine, create_session_factory
import maildrain.db.tables  # noqa: F401
from maildrain.engine import LeaseManager, PayloadPersistenceError, RemoteQueueProtocolError
from maildrain.models import Voicemail


def _ensure_test_database_url(database_url: str) -> None:
    if "test" not in database_url:
        raise RuntimeError(
            "Refusing to run MailDrain tests against a non-test database. "
            "Set MAILDRAIN_TEST_DATABASE_URL to a dedicated test database."
        )


class FakeClock:
    """Controllable clock for lease expiry tests."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMailbox:
    """
    In-memory remote mailbox. The head is always the first item.

    stuck=True simulates voip.ms acknowledging a delete without removing
    anything.
    """

    def __init__(
        self,
        items: list[Voicemail],
        stuck: bool = False,
        fail_delete: bool = False,
    ):
        self.items = list(items)
        self.stuck = stuck
        self.fail_delete = fail_delete
        self.calls: list[tuple[str, Optional[str]]] = []

    async def peek_head(self) -> Optional[Voicemail]:
        self.calls.append(("peek_head", None))
        return self.items[0] if self.items else None

    async def fetch_payload(self, item: Voicemail) -> bytes:
        self.calls.append(("fetch_payload", item.date))
        return f"audio for {item.date}".encode()

    async def delete_head(self, item: Voicemail) -> None:
        self.calls.append(("delete_head", item.date))
        if self.fail_delete:
            raise RemoteQueueProtocolError("Voip.ms responded with status error", "delMessages")
        if not self.stuck:
            self.items.pop(0)


class RecordingSink:
    """Payload sink that keeps everything in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.stored: list[tuple[Voicemail, bytes]] = []

    async def store(self, item: Voicemail, payload: bytes) -> str:
        if self.fail:
            raise PayloadPersistenceError(item.date, "disk full")
        self.stored.append((item, payload))
        return f"{item.mailbox}/{item.folder}/{item.date}.mp3"


def make_voicemail(date: str, callerid: str = "ABBOTSFORD, BC <6045555555>", **fields) -> Voicemail:
    values = {
        "mailbox": "999999",
        "folder": "INBOX",
        "message_num": "0",
        "date": date,
        "callerid": callerid,
        "duration": "00:00:05",
        "urgent": "no",
        "listened": "no",
    }
    values.update(fields)
    return Voicemail(**values)


@pytest.fixture
def database_url(tmp_path) -> str:
    url = os.getenv(
        "MAILDRAIN_TEST_DATABASE_URL",
        f"sqlite+aiosqlite:///{tmp_path / 'maildrain_test.db'}",
    )
    _ensure_test_database_url(url)
    return url


@pytest.fixture
def settings(database_url, tmp_path) -> Settings:
    return Settings(
        database_url=database_url,
        voipms_api_url="https://voip.ms/api/v1/rest.php",
        voipms_user="user@example.com",
        voipms_password="s3cret-pass",
        voipms_mailbox="999999",
        archive_dir=str(tmp_path / "archive"),
        allow_insecure_dev=True,
        min_lease_seconds=30,
    )


@pytest_asyncio.fixture
async def engine(settings):
    """Create a test engine with a clean lease store."""
    engine = create_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def lease_manager(session_factory, clock) -> LeaseManager:
    return LeaseManager(session_factory, clock=clock)


@pytest.fixture
def voicemail():
    """Factory for voicemails with a given date."""
    return make_voicemail


@pytest.fixture
def fake_mailbox():
    """Factory for in-memory mailboxes."""
    return FakeMailbox


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> RecordingSink:
    return RecordingSink(fail=True)
