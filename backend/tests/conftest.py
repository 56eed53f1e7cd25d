"""
Pytest configuration and fixtures.

Database fixtures use an in-memory SQLite engine (aiosqlite + StaticPool):
every test gets a fresh schema, so tests are fully isolated.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from timesink.core.database import enable_sqlite_foreign_keys, get_db
from timesink.main import app
from timesink.models import Base, Client, TimeEntry
from timesink.repositories import (
    ClientRepository,
    EntryRepository,
    InvoiceRepository,
    TimerRepository,
)
from timesink.services.invoice_service import InvoiceService
from timesink.services.timer_service import TimerService


# ============================================================
# Clock controllabile
# ============================================================


class FakeClock:
    """Orologio fermo che avanza solo su richiesta."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


T0 = datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def clock():
    return FakeClock(T0)


# ============================================================
# Fixtures per il Database
# ============================================================


@pytest_asyncio.fixture
async def engine():
    """Engine in-memory con schema completo."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    """Sessione configurata come quella dell'applicazione."""
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.info = {}
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.add = MagicMock()
    return db


# ============================================================
# Fixtures per Repository e Service
# ============================================================


@pytest.fixture
def client_repo(db):
    return ClientRepository(db)


@pytest.fixture
def entry_repo(db):
    return EntryRepository(db)


@pytest.fixture
def invoice_repo(db):
    return InvoiceRepository(db)


@pytest.fixture
def timer_repo(db):
    return TimerRepository(db)


@pytest.fixture
def timer_service(timer_repo, entry_repo, client_repo, clock):
    return TimerService(timer_repo, entry_repo, client_repo, clock=clock)


@pytest.fixture
def invoice_service(invoice_repo, entry_repo, client_repo, clock):
    return InvoiceService(invoice_repo, entry_repo, client_repo, clock=clock)


# ============================================================
# Fixtures per dati di esempio
# ============================================================


@pytest_asyncio.fixture
async def acme(client_repo) -> Client:
    """Cliente con tariffa 100/h."""
    return await client_repo.create_client(
        Client(name="Acme", email="billing@acme.test", hourly_rate=Decimal("100.00"))
    )


@pytest_asyncio.fixture
async def globex(client_repo) -> Client:
    """Secondo cliente con tariffa 80/h."""
    return await client_repo.create_client(
        Client(name="Globex", hourly_rate=Decimal("80.00"))
    )


@pytest.fixture
def make_entry(entry_repo):
    """Factory per voci chiuse: `await make_entry(client, hours=2)`."""

    async def _make(client: Client, hours: float = 1, start: datetime = T0, **kwargs) -> TimeEntry:
        kwargs.setdefault("hourly_rate", client.hourly_rate)
        kwargs.setdefault("description", "Sviluppo")
        entry = TimeEntry(
            client_id=client.id,
            start_time=start,
            end_time=start + timedelta(hours=hours),
            **kwargs,
        )
        return await entry_repo.create_entry(entry)

    return _make


# ============================================================
# Fixtures per le API
# ============================================================


@pytest_asyncio.fixture
async def api(db) -> AsyncGenerator[AsyncClient, None]:
    """Client HTTP sull'app con la sessione di test al posto di get_db."""
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
