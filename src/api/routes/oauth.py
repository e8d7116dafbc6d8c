from typing import Optional
from urllib.parse import unquote
from uuid import UUID

from fastapi import APIRouter, Depends, Form, Request, Response, status
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBasic, HTTPBasicCredentials, HTTPBearer

from libs.result import Error
from src.api.error import OAuthError, ServerError, oauth_error
from src.app.services import pkce
from src.app.services import scopes as scope_catalog
from src.app.services.settings import SecuritySettings
from src.app.services.signing_keys import JWT_ALGORITHM
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import SessionInfo
from src.app.use_cases.oauth import (
    LOGIN_REQUIRED,
    AuthorizeCommand,
    AuthorizeUseCase,
    IntrospectTokenUseCase,
    RevokeTokenUseCase,
    TokenCommand,
    TokenResponse,
    TokenUseCase,
    UserInfoUseCase,
)
from src.app.use_cases.oauth.authorize_use_case import append_query
from src.depends import get_optional_session, get_settings, get_unit_of_work
from src.domain.entities import GrantType, TokenEndpointAuthMethod

router = APIRouter(prefix="/oauth", tags=["OAuth"])
well_known_router = APIRouter(tags=["OAuth"])

basic_auth = HTTPBasic(auto_error=False)
bearer_auth = HTTPBearer(auto_error=False)

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def client_credentials(
    basic: Optional[HTTPBasicCredentials],
    client_id: Optional[str],
    client_secret: Optional[str],
):
    """client_secret_basic wins over form credentials"""
    if basic is not None:
        return unquote(basic.username), unquote(basic.password)
    return client_id, client_secret


@router.get("/authorize")
async def authorize(
    request: Request,
    client_id: Optional[str] = None,
    redirect_uri: Optional[str] = None,
    response_type: Optional[str] = None,
    scope: Optional[str] = None,
    state: Optional[str] = None,
    nonce: Optional[str] = None,
    code_challenge: Optional[str] = None,
    code_challenge_method: Optional[str] = None,
    session: Optional[SessionInfo] = Depends(get_optional_session),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Authorization endpoint (authorization code flow).

    Responses:
        - 302 to redirect_uri?code=...&state=... on success
        - 302 to redirect_uri?error=...&error_description=...&state=...
        - 302 to LOGIN_URL?return_to=<this URL> without a valid session
        - 400 {error, error_description} for an unknown client or redirect_uri
    """
    command = AuthorizeCommand(
        client_id=client_id,
        redirect_uri=redirect_uri,
        response_type=response_type,
        scope=scope,
        state=state,
        nonce=nonce,
        code_challenge=code_challenge,
        code_challenge_method=code_challenge_method,
    )
    user_id = UUID(session.user_id) if session else None

    use_case = AuthorizeUseCase(uow, settings)
    result = await use_case.execute(command, user_id)

    if result.is_err():
        error = result.error
        if error.code == LOGIN_REQUIRED:
            return RedirectResponse(
                append_query(settings.login_url, return_to=str(request.url)),
                status_code=status.HTTP_302_FOUND,
            )
        redirect_url = (error.details or {}).get("redirect_url")
        if redirect_url:
            return RedirectResponse(redirect_url, status_code=status.HTTP_302_FOUND)
        # Unknown client or redirect_uri: shown to the browser, never redirected
        raise OAuthError(error)

    return RedirectResponse(result.value.redirect_url, status_code=status.HTTP_302_FOUND)


@router.post("/token", response_model=TokenResponse, response_model_exclude_none=True)
async def token(
    response: Response,
    grant_type: Optional[str] = Form(None),
    client_id: Optional[str] = Form(None),
    client_secret: Optional[str] = Form(None),
    code: Optional[str] = Form(None),
    redirect_uri: Optional[str] = Form(None),
    code_verifier: Optional[str] = Form(None),
    refresh_token: Optional[str] = Form(None),
    scope: Optional[str] = Form(None),
    basic: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Token endpoint: authorization_code, refresh_token and client_credentials grants.

    Raises:
        - 401 invalid_client
        - 400 invalid_grant / invalid_request / invalid_scope /
          unauthorized_client / unsupported_grant_type
    """
    client_id, client_secret = client_credentials(basic, client_id, client_secret)
    command = TokenCommand(
        grant_type=grant_type,
        client_id=client_id,
        client_secret=client_secret,
        code=code,
        redirect_uri=redirect_uri,
        code_verifier=code_verifier,
        refresh_token=refresh_token,
        scope=scope,
    )

    use_case = TokenUseCase(uow, settings)
    result = await use_case.execute(command)

    if result.is_err():
        raise oauth_error(result.error)

    response.headers.update(NO_STORE_HEADERS)
    return result.value


async def read_payload(request: Request) -> dict:
    """Form or JSON body as a dict"""
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            payload = {}
    else:
        payload = dict(await request.form())
    return payload if isinstance(payload, dict) else {}


@router.post("/revoke")
async def revoke(
    request: Request,
    basic: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Token revocation (RFC 7009). Accepts form or JSON.

    Always {"success": true} once the client has authenticated.
    """
    payload = await read_payload(request)

    client_id, client_secret = client_credentials(
        basic, payload.get("client_id"), payload.get("client_secret")
    )

    use_case = RevokeTokenUseCase(uow, settings)
    result = await use_case.execute(payload.get("token") or "", client_id, client_secret)

    if result.is_err():
        raise oauth_error(result.error)

    return result.value


@router.post("/introspect")
async def introspect(
    request: Request,
    response: Response,
    basic: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Token introspection (RFC 7662). Accepts form or JSON.

    Returns:
        {"active": true, ...claims} or {"active": false}

    Raises:
        - 401 invalid_client (public clients included)
        - 400 invalid_request without a token
    """
    payload = await read_payload(request)
    client_id, client_secret = client_credentials(
        basic, payload.get("client_id"), payload.get("client_secret")
    )

    use_case = IntrospectTokenUseCase(uow, settings)
    result = await use_case.execute(
        payload.get("token") or "", client_id, client_secret, payload.get("token_type_hint")
    )

    if result.is_err():
        raise oauth_error(result.error)

    response.headers.update(NO_STORE_HEADERS)
    return result.value


@router.get("/userinfo")
async def userinfo(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_auth),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    OIDC userinfo: claims of the access token's subject, filtered by scope.

    Raises:
        - 401 invalid_token
    """
    if credentials is None:
        raise oauth_error(Error("invalid_token", "Bearer access token required"))

    use_case = UserInfoUseCase(uow, settings)
    result = await use_case.execute(credentials.credentials)

    if result.is_err():
        if result.error.code == "invalid_token":
            raise oauth_error(result.error)
        raise ServerError(result.error)

    return result.value


@well_known_router.get("/.well-known/openid-configuration")
async def openid_configuration(settings: SecuritySettings = Depends(get_settings)):
    """OIDC discovery document"""
    issuer = settings.jwt_issuer.rstrip("/")
    return {
        "issuer": issuer,
        "authorization_endpoint": f"{issuer}/oauth/authorize",
        "token_endpoint": f"{issuer}/oauth/token",
        "revocation_endpoint": f"{issuer}/oauth/revoke",
        "introspection_endpoint": f"{issuer}/oauth/introspect",
        "jwks_uri": f"{issuer}/.well-known/jwks.json",
        "userinfo_endpoint": f"{issuer}/oauth/userinfo",
        "response_types_supported": ["code"],
        "grant_types_supported": [g.value for g in GrantType],
        "subject_types_supported": ["public"],
        "id_token_signing_alg_values_supported": [JWT_ALGORITHM],
        "scopes_supported": scope_catalog.STANDARD_SCOPES + list(settings.custom_scopes),
        "token_endpoint_auth_methods_supported": [m.value for m in TokenEndpointAuthMethod],
        "code_challenge_methods_supported": [pkce.S256],
        "claims_supported": ["sub", "iss", "aud", "exp", "iat", "auth_time", "nonce", "name", "email"],
    }


@well_known_router.get("/.well-known/jwks.json")
async def jwks(settings: SecuritySettings = Depends(get_settings)):
    """Public keys that verify access and ID tokens (RFC 7517)"""
    return settings.jwt_key().jwks()
