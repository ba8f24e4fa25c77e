"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator, Callable
from datetime import date
from typing import Any
from unittest.mock import MagicMock
from uuid import uuid4

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from contentdesk.core.database import Base, build_session_factory, get_db
from contentdesk.core.feed import LocalChangeFeed
from contentdesk.integrations.captioning import CaptionGenerator
from contentdesk.integrations.scheduling import SchedulingClient
from contentdesk.main import close_services, create_app, init_services
from contentdesk.modules.records.models import Record
from contentdesk.modules.records.publisher import AutoPublisher
from contentdesk.modules.records.schemas import RecordSnapshot
from contentdesk.modules.records.status import RecordStatus
from contentdesk.modules.records.store import RecordStore

# Import all models to ensure they're registered with Base.metadata
from contentdesk.modules.tenants.models import Tenant
from contentdesk.modules.tenants.services import TenantDirectory
from tests.factories.tenant import TenantFactory


# Short enough to keep tests fast, long enough to coalesce back-to-back edits
TEST_QUIET_PERIOD = 0.05


@pytest.fixture
async def engine(tmp_path):
    """Create a file-backed SQLite engine with foreign keys enforced.

    Each connection is separate, so concurrent writes behave as they do
    against a real server.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session whose commits are visible to the store."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def feed() -> LocalChangeFeed:
    return LocalChangeFeed()


@pytest.fixture
def store(session_factory, feed) -> RecordStore:
    return RecordStore(session_factory, feed)


@pytest.fixture
def tenants(session_factory) -> TenantDirectory:
    return TenantDirectory(session_factory)


# ============================================================
# Collaborator Fakes
# ============================================================


class SchedulingRecorder:
    """httpx transport handler that records schedule calls."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: Any = {"post": {"_id": "late-post-1"}}
        self.profiles: Any = {"profiles": [{"_id": "acc-1", "platform": "instagram"}]}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/profiles"):
            return httpx.Response(200, json=self.profiles)
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture
def scheduling_recorder() -> SchedulingRecorder:
    return SchedulingRecorder()


@pytest.fixture
def scheduler(scheduling_recorder) -> SchedulingClient:
    return SchedulingClient(
        base_url="https://scheduler.test/api/v1",
        api_key="test-key",
        media_required_platforms=["instagram"],
        transport=httpx.MockTransport(scheduling_recorder),
    )


@pytest.fixture
def publisher(store, tenants, scheduler) -> AutoPublisher:
    return AutoPublisher(store, tenants, scheduler)


@pytest.fixture
def genai_client() -> MagicMock:
    """Stand-in for ``google.genai.Client``."""
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(
        text='{"caption": "Morning light \\u2014 slow coffee", "hashtags": ["#coffee", "ceramics"]}'
    )
    return client


@pytest.fixture
def captioner(genai_client) -> CaptionGenerator:
    return CaptionGenerator(api_key="test-key", max_hashtags=5, client=genai_client)


# ============================================================
# Tenant and Record Fixtures
# ============================================================


async def _add_tenant(db: AsyncSession, **overrides: Any) -> Tenant:
    seed = TenantFactory.build(**overrides)
    tenant = Tenant(id=uuid4(), **seed.model_dump())
    db.add(tenant)
    await db.commit()
    return tenant


@pytest.fixture
async def agency_tenant(db: AsyncSession) -> Tenant:
    """The agency super-tenant."""
    return await _add_tenant(db, name="Seam Media", secret="1991", is_super=True)


@pytest.fixture
async def client_tenant(db: AsyncSession) -> Tenant:
    """A client tenant with no publishing accounts."""
    return await _add_tenant(db, name="Light Dust", secret="5678")


@pytest.fixture
async def other_tenant(db: AsyncSession) -> Tenant:
    """A second client tenant."""
    return await _add_tenant(db, name="Harbour Bakes", secret="4321")


@pytest.fixture
def add_tenant(db: AsyncSession) -> Callable[..., Any]:
    """Create extra tenants with overrides."""

    async def factory(**overrides: Any) -> Tenant:
        return await _add_tenant(db, **overrides)

    return factory


@pytest.fixture
def add_record(db: AsyncSession) -> Callable[..., Any]:
    """Insert a record row directly, bypassing the store and its feed."""

    async def factory(tenant: Tenant, **overrides: Any) -> RecordSnapshot:
        values: dict[str, Any] = {
            "id": uuid4().hex,
            "title": "Post",
            "date": date(2026, 10, 19),
            "status": RecordStatus.DRAFT.value,
            "caption": "",
            "hashtags": [],
            "notes": "",
        }
        values.update(overrides)
        if isinstance(values["status"], RecordStatus):
            values["status"] = values["status"].value
        record = Record(tenant_id=tenant.id, **values)
        db.add(record)
        await db.commit()
        await db.refresh(record)
        return RecordSnapshot.model_validate(record)

    return factory


# ============================================================
# Application Fixtures
# ============================================================


@pytest.fixture
async def app(session_factory, feed, scheduler, captioner):
    """Create test application instance.

    ASGITransport does not run the lifespan, so services are built here.
    """
    application = create_app()
    registry = init_services(
        application,
        session_factory=session_factory,
        feed=feed,
        scheduler=scheduler,
        captioner=captioner,
    )
    registry.quiet_period = TEST_QUIET_PERIOD

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db

    yield application

    await close_services(application)
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def login(client: AsyncClient) -> Callable[[str], Any]:
    """Start a desk session and return the headers that carry it."""

    async def _login(secret: str) -> dict[str, str]:
        response = await client.post("/api/v1/sessions", json={"secret": secret})
        assert response.status_code == 201, response.text
        return {"X-Session-ID": response.json()["session_id"]}

    return _login
