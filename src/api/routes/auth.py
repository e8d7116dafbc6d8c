from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

from src.api.error import ClientError, ServerError
from src.api.utils.cookies import clear_session_cookie, set_session_cookie
from src.app.services.notifier import INotifier
from src.app.services.rate_limiter import IRateLimiter
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import (
    ConfirmPasswordResetUseCase,
    LoginResponse,
    LogoutResponse,
    LogoutUseCase,
    MagicLoginUseCase,
    MessageResponse,
    RequestMagicLinkUseCase,
    RequestPasswordResetUseCase,
    SessionInfo,
    UserInfo,
    VerifyPinUseCase,
    LoginUseCase,
)
from src.depends import (
    client_ip,
    get_current_session,
    get_notifier,
    get_rate_limiter,
    get_settings,
    get_unit_of_work,
    session_token_from_request,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])

ERROR_STATUS = {
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "USER_DISABLED": status.HTTP_403_FORBIDDEN,
    "RATE_LIMITED": status.HTTP_429_TOO_MANY_REQUESTS,
    "PIN_NOT_FOUND": status.HTTP_400_BAD_REQUEST,
    "INVALID_PIN": status.HTTP_401_UNAUTHORIZED,
    "PIN_EXPIRED": status.HTTP_400_BAD_REQUEST,
    "TOO_MANY_ATTEMPTS": status.HTTP_429_TOO_MANY_REQUESTS,
    "INVALID_TOKEN": status.HTTP_400_BAD_REQUEST,
    "INVALID_PASSWORD": status.HTTP_400_BAD_REQUEST,
}


def raise_for_error(error):
    status_code = ERROR_STATUS.get(error.code)
    if status_code is None:
        raise ServerError(error)
    raise ClientError(error, status_code=status_code)


class AuthResponse(BaseModel):
    """
    HTTP view of a login outcome.

    The session token itself only travels in the HttpOnly cookie.
    """

    status: str
    user: UserInfo
    session_id: Optional[str] = None
    expires_at: Optional[datetime] = None


def _authenticated(result: LoginResponse, response: Response, settings: SecuritySettings) -> AuthResponse:
    grant = result.session
    if grant is None:
        return AuthResponse(status=result.status, user=result.user)

    set_session_cookie(
        response,
        settings,
        grant.token,
        grant.expires_at,
        result.user.id,
        result.user.role,
    )
    return AuthResponse(
        status=result.status,
        user=result.user,
        session_id=grant.session_id,
        expires_at=grant.expires_at,
    )


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


@router.post("/login", status_code=status.HTTP_200_OK, response_model=AuthResponse)
async def login(
    request: LoginRequest,
    http_request: Request,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
    rate_limiter: IRateLimiter = Depends(get_rate_limiter),
    notifier: INotifier = Depends(get_notifier),
):
    """
    Password login.

    Sets the session cookie when authenticated; answers status=pin_required
    (no cookie) when the step-up policy fires and a PIN was sent.

    Raises:
        - 401 Unauthorized: Invalid credentials
        - 403 Forbidden: User disabled
        - 429 Too Many Requests: Rate limited
    """
    use_case = LoginUseCase(uow, settings, rate_limiter, notifier)
    result = await use_case.execute(
        request.email,
        request.password,
        ip=client_ip(http_request),
        user_agent=http_request.headers.get("user-agent"),
    )

    if result.is_err():
        raise_for_error(result.error)

    return _authenticated(result.value, response, settings)


class VerifyPinRequest(BaseModel):
    email: EmailStr
    pin: str = Field(..., min_length=1, max_length=16)


@router.post("/verify-pin", status_code=status.HTTP_200_OK, response_model=AuthResponse)
async def verify_pin(
    request: VerifyPinRequest,
    http_request: Request,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
    rate_limiter: IRateLimiter = Depends(get_rate_limiter),
):
    """
    Second step of a login that answered pin_required.

    Raises:
        - 401 Unauthorized: Wrong PIN (details.attempts_remaining)
        - 429 Too Many Requests: Attempts exhausted or rate limited
        - 400 Bad Request: No pending PIN, or PIN expired
    """
    use_case = VerifyPinUseCase(uow, settings, rate_limiter)
    result = await use_case.execute(
        request.email,
        request.pin,
        ip=client_ip(http_request),
        user_agent=http_request.headers.get("user-agent"),
    )

    if result.is_err():
        raise_for_error(result.error)

    return _authenticated(result.value, response, settings)


class LogoutRequest(BaseModel):
    everywhere: bool = False


@router.post("/logout", status_code=status.HTTP_200_OK, response_model=LogoutResponse)
async def logout(
    http_request: Request,
    response: Response,
    request: Optional[LogoutRequest] = None,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """Revoke the cookie's session (or all of the user's sessions) and clear the cookie"""
    clear_session_cookie(response, settings)

    token = session_token_from_request(http_request, settings)
    if not token:
        return LogoutResponse(revoked_count=0)

    use_case = LogoutUseCase(uow, settings)
    result = await use_case.execute(token, everywhere=bool(request and request.everywhere))

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.get("/session", status_code=status.HTTP_200_OK, response_model=SessionInfo)
async def get_session(session: SessionInfo = Depends(get_current_session)):
    """
    Current session behind the cookie.

    Raises:
        - 401 Unauthorized: Missing, unknown, revoked or expired session
    """
    return session


class EmailRequest(BaseModel):
    email: EmailStr


@router.post("/request-magic-link", status_code=status.HTTP_200_OK, response_model=MessageResponse)
async def request_magic_link(
    request: EmailRequest,
    http_request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
    rate_limiter: IRateLimiter = Depends(get_rate_limiter),
    notifier: INotifier = Depends(get_notifier),
):
    """
    Email a single-use login link.

    Always answers the same message whether or not the account exists.

    Raises:
        - 429 Too Many Requests: Rate limited
    """
    use_case = RequestMagicLinkUseCase(uow, settings, rate_limiter, notifier)
    result = await use_case.execute(
        request.email, ip=client_ip(http_request), user_agent=http_request.headers.get("user-agent")
    )

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.get("/magic-login", status_code=status.HTTP_200_OK, response_model=AuthResponse)
async def magic_login(
    http_request: Request,
    response: Response,
    t: str = Query(..., description="Signed magic link token"),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Consume a magic link and start a session.

    Raises:
        - 400 Bad Request: Invalid or expired token (already used, tampered, wrong purpose)
    """
    use_case = MagicLoginUseCase(uow, settings)
    result = await use_case.execute(
        t, ip=client_ip(http_request), user_agent=http_request.headers.get("user-agent")
    )

    if result.is_err():
        raise_for_error(result.error)

    return _authenticated(result.value, response, settings)


@router.post("/request-password-reset", status_code=status.HTTP_200_OK, response_model=MessageResponse)
async def request_password_reset(
    request: EmailRequest,
    http_request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
    rate_limiter: IRateLimiter = Depends(get_rate_limiter),
    notifier: INotifier = Depends(get_notifier),
):
    """
    Email a password reset link. No email enumeration.

    Raises:
        - 429 Too Many Requests: Rate limited
    """
    use_case = RequestPasswordResetUseCase(uow, settings, rate_limiter, notifier)
    result = await use_case.execute(
        request.email, ip=client_ip(http_request), user_agent=http_request.headers.get("user-agent")
    )

    if result.is_err():
        raise_for_error(result.error)

    return result.value


class ConfirmPasswordResetRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str


@router.post("/confirm-password-reset", status_code=status.HTTP_200_OK, response_model=MessageResponse)
async def confirm_password_reset(
    request: ConfirmPasswordResetRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Set a new password with a reset token.

    Every session, refresh token and outstanding single-use token of the
    user is revoked.

    Raises:
        - 400 Bad Request: Invalid or expired token, or password too short
    """
    use_case = ConfirmPasswordResetUseCase(uow, settings)
    result = await use_case.execute(request.token, request.new_password)

    if result.is_err():
        raise_for_error(result.error)

    return result.value
