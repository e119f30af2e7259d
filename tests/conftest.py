"""Shared fixtures: in-memory database, a frozen clock and a linked couple."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from conflict_governance.core import FrozenClock, get_clock, get_session
from conflict_governance.core.security import create_access_token
from conflict_governance.main import app
from conflict_governance.models import Base, Child, Role, Task, User

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite emits its own BEGIN lazily, which breaks SAVEPOINT; take over.
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0)


# =============================================================================
# PEOPLE AND THINGS
# =============================================================================


@pytest.fixture
async def couple(session: AsyncSession) -> tuple[User, User]:
    """Two users linked as partners."""
    alice = User(email="alice@example.com", name="Alice", created_at=T0)
    bob = User(email="bob@example.com", name="Bob", created_at=T0)
    session.add_all([alice, bob])
    await session.flush()

    alice.partner_id = bob.id
    bob.partner_id = alice.id
    await session.commit()
    return alice, bob


@pytest.fixture
def alice(couple) -> User:
    return couple[0]


@pytest.fixture
def bob(couple) -> User:
    return couple[1]


@pytest.fixture
async def carol(session: AsyncSession) -> User:
    """A user with no partner and no relation to the couple."""
    user = User(email="carol@example.com", name="Carol", created_at=T0)
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def alice_role(session: AsyncSession, alice: User) -> Role:
    role = Role(name="School runs", owner_id=alice.id, created_at=T0)
    session.add(role)
    await session.commit()
    return role


@pytest.fixture
async def child(session: AsyncSession, alice: User, bob: User) -> Child:
    kid = Child(name="Sam", parent_id_1=alice.id, parent_id_2=bob.id, created_at=T0)
    session.add(kid)
    await session.commit()
    return kid


@pytest.fixture
async def task(session: AsyncSession, alice: User, bob: User) -> Task:
    chore = Task(title="Book dentist", created_by=alice.id, assigned_to=bob.id, created_at=T0)
    session.add(chore)
    await session.commit()
    return chore


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
async def client(session_factory, clock: FrozenClock):
    """HTTP client against the app, bound to the test database and clock."""

    async def override_get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
