from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from libs.result import Error
from src.api.error import ClientError, ServerError
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import SessionInfo
from src.app.use_cases.sessions import RevokeSessionsUseCase
from src.depends import get_current_session, get_settings, get_unit_of_work

router = APIRouter(prefix="/sessions", tags=["Sessions"])


class ActiveSession(BaseModel):
    session_id: str
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: str
    last_accessed_at: Optional[str] = None
    expires_at: str
    current: bool


class RevokeAllSessionsRequest(BaseModel):
    """Request to revoke all sessions for a user"""

    user_id: Optional[str] = Field(None, description="Defaults to the caller")
    keep_current: bool = Field(False, description="Keep the caller's own session alive")


class RevokeSessionResponse(BaseModel):
    """Response for session revocation operations"""

    message: str
    revoked_count: int


class RevokeSpecificSessionResponse(BaseModel):
    """Response for specific session revocation"""

    message: str
    session_id: str
    revoked: bool


@router.get("", status_code=status.HTTP_200_OK, response_model=List[ActiveSession])
async def list_sessions(
    current: SessionInfo = Depends(get_current_session),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """Active sessions of the caller"""
    use_case = RevokeSessionsUseCase(uow, settings)
    result = await use_case.list_sessions(UUID(current.user_id), UUID(current.session_id))

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.post(
    "/revoke-all",
    status_code=status.HTTP_200_OK,
    response_model=RevokeSessionResponse,
)
async def revoke_all_sessions(
    request: RevokeAllSessionsRequest,
    current: SessionInfo = Depends(get_current_session),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Revoke All Sessions

    Revokes all active sessions for a user. Useful for:
    - Security incidents (account compromise)
    - Logging out other devices (keep_current=true)

    Authorization:
    - Users can revoke their own sessions
    - Admins can revoke any user's sessions

    Raises:
        - 400 Bad Request: Malformed user_id
        - 403 Forbidden: Insufficient permissions
        - 404 Not Found: User not found
    """
    requesting_user_id = UUID(current.user_id)
    try:
        target_user_id = UUID(request.user_id) if request.user_id else requesting_user_id
    except ValueError:
        raise ClientError(
            Error("INVALID_USER_ID", "user_id must be a UUID"),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    use_case = RevokeSessionsUseCase(uow, settings)
    if request.keep_current and target_user_id == requesting_user_id:
        result = await use_case.revoke_all_except_current(UUID(current.session_id), requesting_user_id)
    else:
        result = await use_case.revoke_all_sessions(target_user_id, requesting_user_id, current.role)

    if result.is_err():
        error = result.error
        if error.code == "FORBIDDEN":
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        elif error.code in ("USER_NOT_FOUND", "SESSION_NOT_FOUND"):
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return RevokeSessionResponse(
        message="Sessions revoked successfully",
        revoked_count=result.value["revoked_count"],
    )


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_200_OK,
    response_model=RevokeSpecificSessionResponse,
)
async def revoke_session(
    session_id: UUID,
    current: SessionInfo = Depends(get_current_session),
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Revoke Specific Session

    Raises:
        - 404 Not Found: Session not found (or not the caller's)
        - 409 Conflict: Session already revoked
    """
    use_case = RevokeSessionsUseCase(uow, settings)
    result = await use_case.revoke_specific_session(session_id, UUID(current.user_id), current.role)

    if result.is_err():
        error = result.error
        if error.code == "SESSION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        elif error.code == "SESSION_ALREADY_REVOKED":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise ServerError(error)

    return RevokeSpecificSessionResponse(
        message="Session revoked successfully",
        session_id=result.value["session_id"],
        revoked=result.value["revoked"],
    )
