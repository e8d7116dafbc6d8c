import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_openid_configuration(client: AsyncClient, settings):
    response = await client.get("/.well-known/openid-configuration")

    assert response.status_code == 200
    document = response.json()
    assert document["issuer"] == settings.jwt_issuer
    assert document["token_endpoint"] == f"{settings.jwt_issuer}/oauth/token"
    assert document["code_challenge_methods_supported"] == ["S256"]
    assert document["response_types_supported"] == ["code"]
    assert "offline_access" in document["scopes_supported"]
    assert set(document["grant_types_supported"]) == {"authorization_code", "refresh_token", "client_credentials"}
    assert document["id_token_signing_alg_values_supported"] == ["RS256"]
    assert document["jwks_uri"] == f"{settings.jwt_issuer}/.well-known/jwks.json"
    assert document["introspection_endpoint"] == f"{settings.jwt_issuer}/oauth/introspect"


@pytest.mark.asyncio
async def test_jwks_publishes_public_key_only(client: AsyncClient, settings):
    response = await client.get("/.well-known/jwks.json")

    assert response.status_code == 200
    keys = response.json()["keys"]
    assert len(keys) == 1
    assert keys[0]["kty"] == "RSA"
    assert keys[0]["kid"] == settings.jwt_key_id
    assert keys[0]["alg"] == "RS256"
    assert keys[0]["use"] == "sig"
    assert {"n", "e"} <= set(keys[0])
    assert "d" not in keys[0]
