"""Shared test fixtures for the Reposignal API test suite.

Uses SQLite through aiosqlite for fast, isolated model and route tests.
Each test gets a fresh database. GitHub is never contacted: route tests
swap the installation verifier for a FakeVerifier, and client tests use
httpx.MockTransport.

The GitHub App environment is populated before any application module is
imported because create_app() refuses to start without it.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def _generate_test_private_key() -> str:
    """Generate a valid RSA private key for testing."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )
    return pem.decode()


TEST_PRIVATE_KEY = _generate_test_private_key()
TEST_APP_ID = "12345"
TEST_BOT_API_KEY = "test-bot-api-key"

os.environ.setdefault("GITHUB_APP_ID", TEST_APP_ID)
os.environ.setdefault("GITHUB_APP_PRIVATE_KEY", TEST_PRIVATE_KEY)
os.environ.setdefault("GITHUB_APP_NAME", "reposignal-test")
os.environ.setdefault("BOT_API_KEY", TEST_BOT_API_KEY)
os.environ.setdefault("DEBUG", "false")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from reposignal.core.config import Settings, get_settings  # noqa: E402
from reposignal.core.errors import InstallationInvalidError  # noqa: E402
from reposignal.db.models import Base, Installation, Repository  # noqa: E402
from reposignal.db.session import get_db  # noqa: E402
from reposignal.main import create_app  # noqa: E402
from reposignal.setup.router import get_installation_verifier  # noqa: E402

INSTALLATION_ID = 555


class FakeVerifier:
    """Stand-in for InstallationVerifier that records calls.

    ``error`` (an exception instance) is raised on every call when set.
    """

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[int] = []

    async def verify(self, installation_id: int) -> None:
        self.calls.append(installation_id)
        if self.error is not None:
            raise self.error


def _override_settings() -> Settings:
    return Settings(
        github_app_id=TEST_APP_ID,
        github_app_private_key=TEST_PRIVATE_KEY,
        github_app_name="reposignal-test",
        bot_api_key=TEST_BOT_API_KEY,
        setup_window_minutes=60,
        sentry_dsn="",
        debug=False,
    )


@pytest.fixture
def settings() -> Settings:
    return _override_settings()


@pytest.fixture
async def async_engine():
    """Create a fresh async SQLite engine for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a test DB session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def app(session_factory, verifier):
    """Create a FastAPI app with DB, settings and verifier overridden.

    The SlowAPI limiter keeps in-memory buckets across requests in the same
    process, so its storage is reset before each test.
    """
    from reposignal.core.limiter import limiter

    limiter.reset()

    test_app = create_app(_override_settings())

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_settings] = _override_settings
    test_app.dependency_overrides[get_installation_verifier] = lambda: verifier
    return test_app


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def bot_client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client carrying the bot API key."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {TEST_BOT_API_KEY}"},
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


async def seed_installation(
    session: AsyncSession,
    *,
    github_installation_id: int = INSTALLATION_ID,
    setup_completed: bool = False,
    setup_allowed_until: datetime | None = None,
    window: timedelta | None = timedelta(minutes=10),
    repositories: tuple[tuple[str, str], ...] = (("octo-org", "widgets"), ("octo-org", "gadgets")),
) -> Installation:
    """Insert an installation with repositories and commit.

    The setup window defaults to ten minutes from now; pass ``window=None``
    (and no explicit ``setup_allowed_until``) for an installation with no
    window at all.
    """
    if setup_allowed_until is None and window is not None and not setup_completed:
        setup_allowed_until = datetime.now(timezone.utc) + window

    installation = Installation(
        github_installation_id=github_installation_id,
        account_type="org",
        account_login="octo-org",
        setup_completed=setup_completed,
        setup_allowed_until=setup_allowed_until,
    )
    session.add(installation)
    await session.flush()

    for offset, (owner, name) in enumerate(repositories):
        session.add(
            Repository(
                installation_id=installation.id,
                github_repo_id=github_installation_id * 1000 + offset,
                owner=owner,
                name=name,
            )
        )
    await session.commit()
    return installation


@pytest.fixture
async def pending_installation(db_session) -> Installation:
    """Installation 555 with an open ten-minute window and two repositories."""
    return await seed_installation(db_session)


@pytest.fixture
def revoked_verifier() -> FakeVerifier:
    return FakeVerifier(InstallationInvalidError("GitHub returned status 404"))
