import html
import re
from collections.abc import AsyncGenerator, Iterator
from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlsplit

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.passwords import PasswordHasher
from app.models import Base

# In-memory SQLite; StaticPool keeps one connection so every session
# (fixtures and requests) sees the same database.
TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow

TEST_PASSWORD = "Shayari123"  # nosec B105  # gitleaks:allow
TEST_EMAIL = "poet@example.com"

# Low bcrypt cost factor for fast tests
FAST_HASH_ROUNDS = 4

_HREF_RE = re.compile(r"href='([^']+)'")


@dataclass
class SentEmail:
    to: str
    subject: str
    html_body: str


@dataclass
class FakeEmailSender:
    """Records outgoing email instead of sending it.

    Set ``error`` to make every send raise that exception.
    """

    sent: list[SentEmail] = field(default_factory=list)
    error: Exception | None = None

    async def send_email(self, to: str, subject: str, html_body: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(SentEmail(to=to, subject=subject, html_body=html_body))

    @property
    def last(self) -> SentEmail:
        return self.sent[-1]


def link_query(email: SentEmail) -> dict[str, str]:
    """Query parameters of the first link in an email body."""
    match = _HREF_RE.search(email.html_body)
    assert match is not None, "email contains no link"
    url = html.unescape(match.group(1))
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def link_url(email: SentEmail) -> str:
    """First link in an email body, HTML-unescaped."""
    match = _HREF_RE.search(email.html_body)
    assert match is not None, "email contains no link"
    return html.unescape(match.group(1))


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=FAST_HASH_ROUNDS)


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create an in-memory test database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def test_auth_secret() -> Iterator[None]:
    """Sign bearer and purpose tokens with the test secret."""
    original_auth_secret = settings.auth_secret
    original_previous = settings.auth_previous_secrets
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.auth_previous_secrets = []

    yield

    settings.auth_secret = original_auth_secret
    settings.auth_previous_secrets = original_previous


@pytest_asyncio.fixture
async def client(
    db_engine,
    email_sender: FakeEmailSender,
    hasher: PasswordHasher,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app.

    Sets up:
    - Test database connection via dependency override
    - FakeEmailSender in place of the real sender
    - Low-cost password hasher
    - httpx.AsyncClient with ASGI transport
    """
    from app.api.deps import get_password_hasher, provide_email_sender
    from app.core.database import get_db
    from app.main import app

    test_session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[provide_email_sender] = lambda: email_sender
    app.dependency_overrides[get_password_hasher] = lambda: hasher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Security: Rate limiting is tested separately; disable for other tests
    to avoid flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from app.core.rate_limiting import limiter

    # Store original state and disable
    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    # Restore original state
    limiter.enabled = original_enabled


@pytest.fixture(autouse=True)
def reset_email_sender_singleton() -> Iterator[None]:
    """Ensure clean email sender state between tests."""
    from app.core.email import reset_email_sender

    reset_email_sender()
    yield
    reset_email_sender()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, hasher: PasswordHasher):
    """Create an unconfirmed user whose password is TEST_PASSWORD.

    Args:
        db_session: Database session from db_session fixture.
        hasher: Low-cost password hasher.

    Yields:
        User model instance.
    """
    from app.models import User

    user = User(
        email=TEST_EMAIL,
        full_name="Mirza Ghalib",
        password_hash=hasher.hash(TEST_PASSWORD),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    yield user
