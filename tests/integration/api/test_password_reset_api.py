from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient

PASSWORD = "SecurePass123!"
NEW_PASSWORD = "EvenMoreSecure456!"


async def _reset_token(client: AsyncClient, notifier, email: str = "alice@example.com") -> str:
    response = await client.post("/auth/request-password-reset", json={"email": email})
    assert response.status_code == 200
    link = notifier.password_resets[-1][1]
    return parse_qs(urlparse(link).query)["token"][0]


@pytest.mark.asyncio
async def test_password_reset_end_to_end(client: AsyncClient, notifier, settings):
    """
    Given a signed-in user who requested a reset link
    When they confirm with a new password
    Then the old password stops working, the new one works
    And the session that existed before the reset is revoked
    """
    assert (await client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})).status_code == 200
    token = await _reset_token(client, notifier)
    assert notifier.password_resets[-1][1].startswith(settings.password_reset_base_url)

    response = await client.post("/auth/confirm-password-reset", json={
        "token": token,
        "new_password": NEW_PASSWORD,
    })

    assert response.status_code == 200
    assert response.json()["status"] == "success"
    assert (await client.get("/auth/session")).status_code == 401

    client.cookies.clear()
    old = await client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert old.status_code == 401
    new = await client.post("/auth/login", json={"email": "alice@example.com", "password": NEW_PASSWORD})
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_reset_token_is_single_use(client: AsyncClient, notifier):
    token = await _reset_token(client, notifier)
    first = await client.post("/auth/confirm-password-reset", json={"token": token, "new_password": NEW_PASSWORD})
    assert first.status_code == 200

    second = await client.post("/auth/confirm-password-reset", json={"token": token, "new_password": "Another789!"})

    assert second.status_code == 400
    assert second.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_reset_invalidates_outstanding_magic_links(client: AsyncClient, notifier):
    await client.post("/auth/request-magic-link", json={"email": "alice@example.com"})
    magic_link = notifier.magic_links[-1][1]
    token = await _reset_token(client, notifier)

    assert (await client.post("/auth/confirm-password-reset", json={"token": token, "new_password": NEW_PASSWORD})).status_code == 200

    response = await client.get(magic_link)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_short_password_is_rejected(client: AsyncClient, notifier):
    token = await _reset_token(client, notifier)

    response = await client.post("/auth/confirm-password-reset", json={"token": token, "new_password": "short"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PASSWORD"

    # A rejected password does not burn the token
    retry = await client.post("/auth/confirm-password-reset", json={"token": token, "new_password": NEW_PASSWORD})
    assert retry.status_code == 200


@pytest.mark.asyncio
async def test_garbage_reset_token(client: AsyncClient):
    response = await client.post("/auth/confirm-password-reset", json={
        "token": "not.a-token",
        "new_password": NEW_PASSWORD,
    })

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_magic_link_token_cannot_reset_password(client: AsyncClient, notifier):
    await client.post("/auth/request-magic-link", json={"email": "alice@example.com"})
    magic_token = parse_qs(urlparse(notifier.magic_links[-1][1]).query)["t"][0]

    response = await client.post("/auth/confirm-password-reset", json={
        "token": magic_token,
        "new_password": NEW_PASSWORD,
    })

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_reset_request_for_unknown_email(client: AsyncClient, notifier):
    response = await client.post("/auth/request-password-reset", json={"email": "nobody@example.com"})

    assert response.status_code == 200
    assert notifier.password_resets == []
