from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient
from jose import jwt
from sqlmodel import select

from src.app.services.pkce import compute_challenge
from src.domain.entities import RefreshToken

PASSWORD = "SecurePass123!"
WEB_CLIENT = "flashcards-web"
WEB_SECRET = "flashcards-web-secret"
WEB_REDIRECT = "https://flashcards.example.com/callback"
MOBILE_CLIENT = "flashcards-mobile"
MOBILE_REDIRECT = "https://mobile.example.com/callback"
VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"


async def _login(client: AsyncClient):
    response = await client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert response.status_code == 200


async def _authorize(client: AsyncClient, **overrides):
    params = {
        "client_id": WEB_CLIENT,
        "redirect_uri": WEB_REDIRECT,
        "response_type": "code",
        "scope": "openid profile email",
        "state": "af0ifjsldkj",
        "nonce": "n-0S6_WzA2Mj",
        "code_challenge": compute_challenge(VERIFIER),
        "code_challenge_method": "S256",
    }
    params.update(overrides)
    return await client.get("/oauth/authorize", params={k: v for k, v in params.items() if v is not None})


def _redirect_query(response) -> dict:
    assert response.status_code == 302
    return {k: v[0] for k, v in parse_qs(urlparse(response.headers["location"]).query).items()}


async def _code(client: AsyncClient, **overrides) -> str:
    return _redirect_query(await _authorize(client, **overrides))["code"]


def _exchange_form(code: str, **overrides) -> dict:
    form = {
        "grant_type": "authorization_code",
        "client_id": WEB_CLIENT,
        "client_secret": WEB_SECRET,
        "code": code,
        "redirect_uri": WEB_REDIRECT,
        "code_verifier": VERIFIER,
    }
    form.update(overrides)
    return {k: v for k, v in form.items() if v is not None}


@pytest.mark.asyncio
async def test_authorize_without_session_redirects_to_login(client: AsyncClient, settings):
    response = await _authorize(client)

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == settings.login_url
    return_to = parse_qs(location.query)["return_to"][0]
    assert return_to.startswith("http://test/oauth/authorize?")
    assert "client_id=flashcards-web" in return_to


@pytest.mark.asyncio
async def test_authorization_code_flow(client: AsyncClient, settings, test_data):
    """
    Given a signed-in user and a registered confidential client
    When the client runs authorize then exchanges the code with its PKCE verifier
    Then it receives an access token and an ID token bound to the client
    """
    await _login(client)
    query = _redirect_query(await _authorize(client))
    assert query["state"] == "af0ifjsldkj"

    response = await client.post("/oauth/token", data=_exchange_form(query["code"]))

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    tokens = response.json()
    assert tokens["token_type"] == "Bearer"
    assert tokens["expires_in"] == settings.access_token_ttl_seconds
    assert tokens["scope"] == "openid profile email"
    assert "refresh_token" not in tokens

    jwks = (await client.get("/.well-known/jwks.json")).json()
    claims = jwt.decode(
        tokens["id_token"],
        jwks,
        algorithms=["RS256"],
        audience=WEB_CLIENT,
        issuer=settings.jwt_issuer,
    )
    assert claims["nonce"] == "n-0S6_WzA2Mj"
    assert claims["email"] == "alice@example.com"
    assert claims["name"] == test_data.get("users")["alice"]["name"]

    userinfo = await client.get("/oauth/userinfo", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert userinfo.status_code == 200
    assert userinfo.json()["sub"] == claims["sub"]
    assert userinfo.json()["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_openid_is_always_granted(client: AsyncClient):
    await _login(client)
    code = await _code(client, scope="email")

    response = await client.post("/oauth/token", data=_exchange_form(code))

    assert response.json()["scope"] == "openid email"


@pytest.mark.asyncio
async def test_client_secret_basic(client: AsyncClient):
    await _login(client)
    code = await _code(client)
    form = _exchange_form(code, client_id=None, client_secret=None)

    response = await client.post("/oauth/token", data=form, auth=(WEB_CLIENT, WEB_SECRET))

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_mismatched_redirect_uri_never_issues_tokens(client: AsyncClient, db_session):
    """
    Given a code issued for one redirect_uri
    When it is exchanged with a different redirect_uri
    Then the answer is invalid_grant and no tokens exist
    """
    await _login(client)
    code = await _code(client, scope="openid offline_access")

    response = await client.post(
        "/oauth/token",
        data=_exchange_form(code, redirect_uri="https://flashcards.example.com/other"),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_grant"
    assert "access_token" not in response.json()
    assert (await db_session.exec(select(RefreshToken))).all() == []


@pytest.mark.asyncio
async def test_wrong_code_verifier(client: AsyncClient):
    await _login(client)
    code = await _code(client)

    response = await client.post("/oauth/token", data=_exchange_form(code, code_verifier="x" * 43))

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_grant"


@pytest.mark.asyncio
async def test_code_is_single_use(client: AsyncClient):
    await _login(client)
    code = await _code(client)
    assert (await client.post("/oauth/token", data=_exchange_form(code))).status_code == 200

    response = await client.post("/oauth/token", data=_exchange_form(code))

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_grant"


@pytest.mark.asyncio
async def test_wrong_client_secret(client: AsyncClient):
    await _login(client)
    code = await _code(client)

    response = await client.post("/oauth/token", data=_exchange_form(code, client_secret="nope"))

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_client"
    assert response.headers["www-authenticate"].startswith("Basic")


@pytest.mark.asyncio
async def test_unsupported_grant_type(client: AsyncClient):
    response = await client.post("/oauth/token", data={
        "grant_type": "password",
        "client_id": WEB_CLIENT,
        "client_secret": WEB_SECRET,
    })

    assert response.status_code == 400
    assert response.json()["error"] == "unsupported_grant_type"


@pytest.mark.asyncio
async def test_unknown_client_is_not_redirected(client: AsyncClient):
    await _login(client)

    response = await _authorize(client, client_id="no-such-client")

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_client"
    assert "location" not in response.headers


@pytest.mark.asyncio
async def test_unregistered_redirect_uri_is_not_redirected(client: AsyncClient):
    await _login(client)

    response = await _authorize(client, redirect_uri="https://evil.example.com/callback")

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"
    assert "location" not in response.headers


@pytest.mark.asyncio
async def test_scope_outside_allow_list_redirects_error(client: AsyncClient):
    await _login(client)

    response = await _authorize(client, scope="openid admin")

    query = _redirect_query(response)
    assert response.headers["location"].startswith(WEB_REDIRECT)
    assert query["error"] == "invalid_scope"
    assert query["state"] == "af0ifjsldkj"
    assert "code" not in query


@pytest.mark.asyncio
async def test_plain_pkce_method_is_rejected(client: AsyncClient):
    await _login(client)

    query = _redirect_query(await _authorize(client, code_challenge_method="plain", code_challenge=VERIFIER))

    assert query["error"] == "invalid_request"


@pytest.mark.asyncio
async def test_public_client_requires_pkce(client: AsyncClient):
    await _login(client)

    response = await _authorize(
        client,
        client_id=MOBILE_CLIENT,
        redirect_uri=MOBILE_REDIRECT,
        code_challenge=None,
        code_challenge_method=None,
    )

    assert _redirect_query(response)["error"] == "invalid_request"


@pytest.mark.asyncio
async def test_public_client_exchanges_without_secret(client: AsyncClient):
    await _login(client)
    code = await _code(client, client_id=MOBILE_CLIENT, redirect_uri=MOBILE_REDIRECT)

    response = await client.post("/oauth/token", data={
        "grant_type": "authorization_code",
        "client_id": MOBILE_CLIENT,
        "code": code,
        "redirect_uri": MOBILE_REDIRECT,
        "code_verifier": VERIFIER,
    })

    assert response.status_code == 200
    assert response.json()["access_token"]


@pytest.mark.asyncio
async def test_code_from_one_client_fails_for_another(client: AsyncClient):
    await _login(client)
    code = await _code(client, client_id=MOBILE_CLIENT, redirect_uri=MOBILE_REDIRECT)

    response = await client.post("/oauth/token", data=_exchange_form(code, redirect_uri=MOBILE_REDIRECT))

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_grant"


@pytest.mark.asyncio
async def test_userinfo_rejects_bad_token(client: AsyncClient):
    response = await client.get("/oauth/userinfo", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"
    assert response.headers["www-authenticate"].startswith("Bearer")


@pytest.mark.asyncio
async def test_userinfo_requires_bearer(client: AsyncClient):
    response = await client.get("/oauth/userinfo")

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"
