from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.adapter.services.rate_limiter import InMemoryRateLimiter
from src.app.services.passwords import hash_secret
from src.domain.entities import User, UserStatus

PASSWORD = "SecurePass123!"


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.send_magic_link = AsyncMock()
    notifier.send_password_reset = AsyncMock()
    notifier.send_login_pin = AsyncMock()
    return notifier


@pytest.fixture
def rate_limiter():
    return InMemoryRateLimiter()


@pytest.fixture
def user():
    return User(
        id=uuid4(),
        email="user@example.com",
        name="Test User",
        password_hash=hash_secret(PASSWORD, 4),
        status=UserStatus.active,
    )
