import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain.entities  # noqa: F401  registers the tables
from config import ApplicationConfig
from src.adapter.services.rate_limiter import InMemoryRateLimiter
from src.api.app import create_app
from src.app.services.background import drain_background_tasks
from src.app.services.notifier import INotifier
from src.app.services.passwords import hash_secret
from src.app.services.settings import SecuritySettings
from src.depends import get_notifier, get_rate_limiter, get_session_factory, get_settings
from src.domain.entities import OAuthClient, User
from tests.fixtures.json_loader import TestDataLoader


class RecordingNotifier(INotifier):
    """Keeps every message instead of sending it"""

    def __init__(self):
        self.magic_links = []
        self.password_resets = []
        self.pins = []

    async def send_magic_link(self, email: str, link: str) -> None:
        self.magic_links.append((email, link))

    async def send_password_reset(self, email: str, link: str) -> None:
        self.password_resets.append((email, link))

    async def send_login_pin(self, email: str, pin: str) -> None:
        self.pins.append((email, pin))


@pytest.fixture
def test_data():
    return TestDataLoader()


@pytest.fixture
def settings():
    return SecuritySettings(
        token_signing_secret="integration-signing-secret",
        jwt_key_id="integration-key",
        jwt_issuer="http://test",
        magic_link_base_url="http://test/auth/magic-login",
        password_reset_base_url="http://frontend.test/reset-password",
        login_url="http://frontend.test/login",
        bcrypt_rounds=4,
        failed_login_delay_ms=0,
        rate_limit_login_max=10,
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def rate_limiter():
    return InMemoryRateLimiter()


@pytest_asyncio.fixture
async def engine(tmp_path):
    # A file database so concurrent requests get their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine, test_data):
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    password_hash = hash_secret(test_data.get("password"), 4)
    async with factory() as session:
        for _, user in test_data.users():
            session.add(User(password_hash=password_hash, **user))
        for _, client in test_data.clients():
            secret = client.pop("client_secret")
            session.add(OAuthClient(client_secret_hash=hash_secret(secret, 4), **client))
        await session.commit()

    return factory


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(session_factory, settings, notifier, rate_limiter):
    app = create_app(ApplicationConfig)

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await drain_background_tasks()


@pytest.fixture
def admin_headers(test_data):
    return {"X-Admin-API-Key": test_data.get("admin_api_key")}
