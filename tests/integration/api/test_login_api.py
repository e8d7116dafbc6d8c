import pytest
from httpx import AsyncClient
from sqlmodel import select

from src.domain.entities import AuditEvent, User

PASSWORD = "SecurePass123!"


@pytest.mark.asyncio
async def test_successful_login(client: AsyncClient, settings):
    """
    Given an active user with a low login count
    When they log in with the right password
    Then a session cookie is set and GET /auth/session reports the same user
    """
    response = await client.post("/auth/login", json={
        "email": "alice@example.com",
        "password": PASSWORD,
    })

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "authenticated"
    assert data["user"]["email"] == "alice@example.com"
    assert data["session_id"]
    assert settings.session_cookie_name in response.cookies
    assert "token" not in data

    session_response = await client.get("/auth/session")
    assert session_response.status_code == 200
    assert session_response.json()["user_id"] == data["user"]["id"]
    assert session_response.json()["session_id"] == data["session_id"]


@pytest.mark.asyncio
async def test_login_email_is_case_insensitive(client: AsyncClient):
    response = await client.post("/auth/login", json={
        "email": "Alice@Example.com",
        "password": PASSWORD,
    })

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_login_records_audit_event(client: AsyncClient, db_session):
    await client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})

    events = (await db_session.exec(select(AuditEvent).where(AuditEvent.action == "login"))).all()
    assert len(events) == 1
    assert events[0].event_metadata["method"] == "password"

    user = (await db_session.exec(select(User).where(User.email == "alice@example.com"))).one()
    assert user.login_count == 1
    assert user.last_login_at is not None


@pytest.mark.asyncio
async def test_login_invalid_credentials(client: AsyncClient, settings):
    """Wrong password: 401 INVALID_CREDENTIALS and no cookie"""
    response = await client.post("/auth/login", json={
        "email": "alice@example.com",
        "password": "WrongPassword!",
    })

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"
    assert settings.session_cookie_name not in response.cookies


@pytest.mark.asyncio
async def test_login_nonexistent_user(client: AsyncClient):
    """Unknown email gets the same answer as a wrong password"""
    response = await client.post("/auth/login", json={
        "email": "nobody@example.com",
        "password": PASSWORD,
    })

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_user_disabled(client: AsyncClient):
    response = await client.post("/auth/login", json={
        "email": "disabled@example.com",
        "password": PASSWORD,
    })

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "USER_DISABLED"


@pytest.mark.asyncio
async def test_login_rate_limited(client: AsyncClient, settings):
    """
    Given the login bucket of this IP is full
    When another attempt arrives, even with the right password
    Then it is refused with 429 and a Retry-After header
    """
    for _ in range(settings.rate_limit_login_max):
        response = await client.post("/auth/login", json={
            "email": "alice@example.com",
            "password": "WrongPassword!",
        })
        assert response.status_code == 401

    response = await client.post("/auth/login", json={
        "email": "alice@example.com",
        "password": PASSWORD,
    })

    assert response.status_code == 429
    body = response.json()
    assert body["error"]["code"] == "RATE_LIMITED"
    assert body["error"]["details"]["retry_after"] > 0
    assert int(response.headers["Retry-After"]) > 0


@pytest.mark.asyncio
async def test_session_requires_cookie(client: AsyncClient):
    response = await client.get("/auth/session")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHENTICATED"


@pytest.mark.asyncio
async def test_garbage_cookie_is_unauthenticated(client: AsyncClient, settings):
    client.cookies.set(settings.session_cookie_name, "not-a-real-cookie")

    response = await client.get("/auth/session")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_session(client: AsyncClient):
    await client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    cookies = dict(client.cookies)

    response = await client.post("/auth/logout")
    assert response.status_code == 200
    assert response.json()["revoked_count"] == 1

    # Replaying the old cookie after logout must not work
    client.cookies.clear()
    for name, value in cookies.items():
        client.cookies.set(name, value)
    assert (await client.get("/auth/session")).status_code == 401


@pytest.mark.asyncio
async def test_logout_everywhere(client: AsyncClient):
    first = await client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert first.status_code == 200
    client.cookies.clear()
    second = await client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert second.status_code == 200

    response = await client.post("/auth/logout", json={"everywhere": True})

    assert response.status_code == 200
    assert response.json()["revoked_count"] == 2


@pytest.mark.asyncio
async def test_logout_without_session_is_harmless(client: AsyncClient):
    response = await client.post("/auth/logout")

    assert response.status_code == 200
    assert response.json()["revoked_count"] == 0
