import pytest
from httpx import AsyncClient
from sqlmodel import select

from src.domain.entities import AuditEvent, RefreshToken

SERVICE_CLIENT = "reporting-service"
SERVICE_SECRET = "reporting-service-secret"


async def _client_token(client: AsyncClient, auth=(SERVICE_CLIENT, SERVICE_SECRET), **form):
    return await client.post("/oauth/token", data={"grant_type": "client_credentials", **form}, auth=auth)


@pytest.mark.asyncio
async def test_client_credentials_issues_access_token(client: AsyncClient, settings, db_session):
    """
    Given a confidential client allowed the client_credentials grant
    When it asks for a token with HTTP Basic credentials
    Then it gets an access token only and the issuance is audited
    """
    response = await _client_token(client, scope="read:cards")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    tokens = response.json()
    assert tokens["token_type"] == "Bearer"
    assert tokens["scope"] == "read:cards"
    assert tokens["expires_in"] == settings.access_token_ttl_seconds
    assert "id_token" not in tokens
    assert "refresh_token" not in tokens

    assert (await db_session.execute(select(RefreshToken))).scalars().all() == []
    events = (
        await db_session.execute(select(AuditEvent).where(AuditEvent.client_id == SERVICE_CLIENT))
    ).scalars().all()
    assert [e.action for e in events] == ["oauth_token_issued"]
    assert events[0].user_id is None


@pytest.mark.asyncio
async def test_client_credentials_defaults_to_resource_scopes(client: AsyncClient):
    response = await _client_token(client)

    assert response.status_code == 200
    assert response.json()["scope"] == "read:cards read:decks"


@pytest.mark.asyncio
@pytest.mark.parametrize("scope", ["openid", "read:cards offline_access", "write:cards"])
async def test_client_credentials_rejects_scope(client: AsyncClient, scope):
    response = await _client_token(client, scope=scope)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_scope"


@pytest.mark.asyncio
async def test_client_credentials_wrong_secret(client: AsyncClient):
    response = await _client_token(client, auth=(SERVICE_CLIENT, "wrong"))

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_client"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "form",
    [
        {"client_id": "flashcards-web", "client_secret": "flashcards-web-secret"},
        {"client_id": "flashcards-mobile"},
    ],
)
async def test_clients_without_the_grant_are_unauthorized(client: AsyncClient, form):
    response = await _client_token(client, auth=None, **form)

    assert response.status_code == 400
    assert response.json()["error"] == "unauthorized_client"


@pytest.mark.asyncio
async def test_client_token_is_not_accepted_at_userinfo(client: AsyncClient):
    """
    Given an access token issued to a client acting for itself
    When it is presented at the userinfo endpoint
    Then it is rejected because it identifies no user
    """
    token = (await _client_token(client, scope="read:cards")).json()["access_token"]

    response = await client.get("/oauth/userinfo", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"
