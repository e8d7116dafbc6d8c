from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from src.app.services.passwords import hash_secret
from src.app.services.pkce import compute_challenge
from src.app.services.token_issuer import TokenIssuer
from src.app.services.token_signer import sha256_hex
from src.app.use_cases.oauth import (
    LOGIN_REQUIRED,
    AuthorizeCommand,
    AuthorizeUseCase,
    IntrospectTokenUseCase,
    TokenCommand,
    TokenUseCase,
)
from src.domain.base import utcnow
from src.domain.entities import (
    ClientStatus,
    OAuthClient,
    RefreshToken,
    RevokeReason,
    TokenEndpointAuthMethod,
)

REDIRECT_URI = "https://app.example.com/callback"
SECRET = "client-secret-value"
VERIFIER = "v" * 64


@pytest.fixture
def client():
    return OAuthClient(
        client_id="client-1",
        client_secret_hash=hash_secret(SECRET, 4),
        name="Flashcards",
        redirect_uris=[REDIRECT_URI],
        allowed_scopes=["openid", "profile", "email", "offline_access"],
        grant_types=["authorization_code", "refresh_token"],
        token_endpoint_auth_method=TokenEndpointAuthMethod.client_secret_post,
    )


@pytest.fixture
def wired(mock_uow, client, user):
    mock_uow.oauth_clients.get_by_client_id.return_value = client
    mock_uow.users.get_by_id.return_value = user
    return mock_uow


def _command(**overrides):
    params = {
        "client_id": "client-1",
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "scope": "email",
        "state": "xyz",
        "code_challenge": compute_challenge(VERIFIER),
        "code_challenge_method": "S256",
    }
    params.update(overrides)
    return AuthorizeCommand(**params)


@pytest.mark.asyncio
async def test_authorize_redirects_with_code_and_state(wired, settings, user):
    result = await AuthorizeUseCase(wired, settings).execute(_command(), user.id)

    query = parse_qs(urlparse(result.value.redirect_url).query)
    assert result.value.redirect_url.startswith(REDIRECT_URI + "?")
    assert query["state"] == ["xyz"]
    assert len(query["code"][0]) >= 43
    stored = wired.authorization_codes.create.call_args.args[0]
    assert stored.scope == "openid email"


@pytest.mark.asyncio
async def test_authorize_without_session_requires_login(wired, settings):
    result = await AuthorizeUseCase(wired, settings).execute(_command(), None)

    assert result.error.code == LOGIN_REQUIRED
    wired.authorization_codes.create.assert_not_called()


@pytest.mark.asyncio
async def test_unregistered_redirect_uri_is_never_redirected_to(wired, settings, user):
    result = await AuthorizeUseCase(wired, settings).execute(
        _command(redirect_uri="https://evil.example.com/cb"), user.id
    )

    assert result.error.code == "invalid_request"
    assert "redirect_url" not in result.error.details


@pytest.mark.asyncio
async def test_suspended_client_is_invalid_client(wired, settings, user, client):
    client.status = ClientStatus.suspended

    result = await AuthorizeUseCase(wired, settings).execute(_command(), user.id)

    assert result.error.code == "invalid_client"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, code",
    [
        ({"response_type": "token"}, "unsupported_response_type"),
        ({"scope": "openid admin:all"}, "invalid_scope"),
        ({"code_challenge_method": "plain"}, "invalid_request"),
    ],
)
async def test_errors_after_redirect_check_go_back_to_client(wired, settings, user, overrides, code):
    result = await AuthorizeUseCase(wired, settings).execute(_command(**overrides), user.id)

    assert result.error.code == code
    redirect = urlparse(result.error.details["redirect_url"])
    query = parse_qs(redirect.query)
    assert query["error"] == [code]
    assert query["state"] == ["xyz"]


@pytest.mark.asyncio
async def test_pkce_required_for_flagged_client(wired, settings, user, client):
    client.require_pkce = True

    result = await AuthorizeUseCase(wired, settings).execute(
        _command(code_challenge=None, code_challenge_method=None), user.id
    )

    assert result.error.code == "invalid_request"


async def _authorize(wired, settings, user, scope="email"):
    result = await AuthorizeUseCase(wired, settings).execute(_command(scope=scope), user.id)
    code = parse_qs(urlparse(result.value.redirect_url).query)["code"][0]
    wired.authorization_codes.get_by_code_hash.return_value = wired.authorization_codes.create.call_args.args[0]
    wired.authorization_codes.mark_used.return_value = True
    return code


def _token_command(code, **overrides):
    params = {
        "grant_type": "authorization_code",
        "client_id": "client-1",
        "client_secret": SECRET,
        "code": code,
        "redirect_uri": REDIRECT_URI,
        "code_verifier": VERIFIER,
    }
    params.update(overrides)
    return TokenCommand(**params)


@pytest.mark.asyncio
async def test_code_exchange_issues_tokens(wired, settings, user):
    code = await _authorize(wired, settings, user)

    result = await TokenUseCase(wired, settings).execute(_token_command(code))

    assert result.is_ok()
    assert result.value.token_type == "Bearer"
    assert result.value.id_token
    assert result.value.refresh_token is None
    assert result.value.scope == "openid email"


@pytest.mark.asyncio
async def test_offline_access_adds_refresh_token(wired, settings, user):
    code = await _authorize(wired, settings, user, scope="openid offline_access")

    result = await TokenUseCase(wired, settings).execute(_token_command(code))

    assert result.value.refresh_token
    wired.refresh_tokens.create.assert_called_once()


@pytest.mark.asyncio
async def test_mismatched_redirect_uri_is_invalid_grant(wired, settings, user):
    code = await _authorize(wired, settings, user)

    result = await TokenUseCase(wired, settings).execute(
        _token_command(code, redirect_uri="https://app.example.com/other")
    )

    assert result.error.code == "invalid_grant"
    wired.authorization_codes.mark_used.assert_not_called()


@pytest.mark.asyncio
async def test_bad_client_secret_is_invalid_client(wired, settings, user):
    code = await _authorize(wired, settings, user)

    result = await TokenUseCase(wired, settings).execute(_token_command(code, client_secret="wrong"))

    assert result.error.code == "invalid_client"


@pytest.mark.asyncio
async def test_unknown_grant_type(wired, settings):
    result = await TokenUseCase(wired, settings).execute(_token_command("c", grant_type="password"))

    assert result.error.code == "unsupported_grant_type"


@pytest.mark.asyncio
async def test_grant_type_not_allowed_for_client(wired, settings, client):
    client.grant_types = ["authorization_code"]

    result = await TokenUseCase(wired, settings).execute(
        _token_command(None, grant_type="refresh_token", refresh_token="r")
    )

    assert result.error.code == "unauthorized_client"


@pytest.mark.asyncio
async def test_unknown_refresh_token_is_invalid_grant(wired, settings):
    wired.refresh_tokens.get_by_token_hash.return_value = None

    result = await TokenUseCase(wired, settings).execute(
        _token_command(None, grant_type="refresh_token", refresh_token="unknown")
    )

    assert result.error.code == "invalid_grant"
    wired.audit_events.create.assert_not_called()


@pytest.mark.asyncio
async def test_rotated_refresh_token_reuse_is_audited(wired, settings, user):
    wired.refresh_tokens.get_by_token_hash.return_value = RefreshToken(
        token_hash="0" * 64,
        client_id="client-1",
        user_id=user.id,
        scope="openid offline_access",
        expires_at=utcnow() + timedelta(days=1),
        revoked_at=utcnow(),
        revoke_reason=RevokeReason.rotated.value,
    )
    wired.refresh_tokens.revoke_chain.return_value = 2

    result = await TokenUseCase(wired, settings).execute(
        _token_command(None, grant_type="refresh_token", refresh_token="stolen")
    )

    assert result.error.code == "invalid_grant"
    assert result.error.details == {}
    wired.refresh_tokens.revoke_chain.assert_called_once()
    event = wired.audit_events.create.call_args.args[0]
    assert event.action == "refresh_token_reuse_detected"
    assert event.user_id == user.id
    wired.commit.assert_called_once()


@pytest.fixture
def service_client(client):
    client.allowed_scopes = ["openid", "read:cards", "write:decks"]
    client.grant_types = ["client_credentials"]
    return client


def _client_credentials(**overrides):
    params = {"grant_type": "client_credentials", "client_id": "client-1", "client_secret": SECRET}
    params.update(overrides)
    return TokenCommand(**params)


@pytest.mark.asyncio
async def test_client_credentials_issues_access_token_only(wired, settings, service_client):
    result = await TokenUseCase(wired, settings).execute(_client_credentials(scope="read:cards"))

    assert result.value.scope == "read:cards"
    assert result.value.id_token is None
    assert result.value.refresh_token is None
    claims = TokenIssuer(wired, settings).verify_access_token(result.value.access_token).value
    assert claims["sub"] == "client-1"
    assert claims["gty"] == "client_credentials"
    event = wired.audit_events.create.call_args.args[0]
    assert event.user_id is None
    assert event.event_metadata["grant_type"] == "client_credentials"
    wired.refresh_tokens.create.assert_not_called()


@pytest.mark.asyncio
async def test_client_credentials_defaults_to_resource_scopes(wired, settings, service_client):
    result = await TokenUseCase(wired, settings).execute(_client_credentials())

    assert result.value.scope == "read:cards write:decks"


@pytest.mark.asyncio
@pytest.mark.parametrize("scope", ["openid", "admin:users"])
async def test_client_credentials_rejects_oidc_and_unlisted_scopes(wired, settings, service_client, scope):
    result = await TokenUseCase(wired, settings).execute(_client_credentials(scope=scope))

    assert result.error.code == "invalid_scope"
    wired.commit.assert_not_called()


@pytest.mark.asyncio
async def test_public_client_cannot_use_client_credentials(wired, settings, service_client):
    service_client.token_endpoint_auth_method = TokenEndpointAuthMethod.none

    result = await TokenUseCase(wired, settings).execute(_client_credentials(client_secret=None))

    assert result.error.code == "unauthorized_client"


@pytest.mark.asyncio
async def test_introspect_active_access_token(wired, settings, user):
    token = TokenIssuer(wired, settings).issue_access_token(user.id, "client-1", "openid email")

    result = await IntrospectTokenUseCase(wired, settings).execute(token, "client-1", SECRET)

    assert result.value["active"] is True
    assert result.value["sub"] == str(user.id)
    assert result.value["client_id"] == "client-1"
    assert result.value["scope"] == "openid email"
    assert result.value["iss"] == settings.jwt_issuer


@pytest.mark.asyncio
async def test_introspect_refresh_token_only_for_its_client(wired, settings, user):
    record = RefreshToken(
        token_hash=sha256_hex("refresh-value"),
        client_id="other-client",
        user_id=user.id,
        scope="openid offline_access",
        expires_at=utcnow() + timedelta(days=1),
    )
    wired.refresh_tokens.get_by_token_hash.return_value = record
    use_case = IntrospectTokenUseCase(wired, settings)

    foreign = await use_case.execute("refresh-value", "client-1", SECRET, "refresh_token")
    record.client_id = "client-1"
    own = await use_case.execute("refresh-value", "client-1", SECRET, "refresh_token")

    assert foreign.value == {"active": False}
    assert own.value["active"] is True
    assert own.value["token_type"] == "refresh_token"
    assert own.value["sub"] == str(user.id)


@pytest.mark.asyncio
async def test_introspect_unknown_token_is_inactive(wired, settings):
    wired.refresh_tokens.get_by_token_hash.return_value = None

    result = await IntrospectTokenUseCase(wired, settings).execute("garbage", "client-1", SECRET)

    assert result.value == {"active": False}


@pytest.mark.asyncio
async def test_introspect_requires_confidential_client(wired, settings, client):
    bad_secret = await IntrospectTokenUseCase(wired, settings).execute("t", "client-1", "wrong")
    client.token_endpoint_auth_method = TokenEndpointAuthMethod.none
    public = await IntrospectTokenUseCase(wired, settings).execute("t", "client-1", None)

    assert bad_secret.error.code == "invalid_client"
    assert public.error.code == "invalid_client"
