"""
Admin API Routes - System Administration Endpoints

OAuth client registry and session maintenance for operators and internal
tooling. Authentication is via Admin API Key, not session cookies.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.api.error import ClientError, ServerError
from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.settings import SecuritySettings
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.oauth import (
    ClientInfo,
    ClientWithSecret,
    ManageClientsUseCase,
    RegisterClientCommand,
    UpdateClientCommand,
)
from src.app.use_cases.sessions import RevokeSessionsUseCase
from src.app.use_cases.sessions.revoke_sessions_use_case import ADMIN_ROLE
from src.depends import get_settings, get_unit_of_work

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_api_key)],
)


def raise_for_client_error(error):
    if error.code == "CLIENT_NOT_FOUND":
        raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
    elif error.code == "INVALID_CLIENT_METADATA":
        raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
    raise ServerError(error)


@router.post(
    "/clients",
    status_code=status.HTTP_201_CREATED,
    response_model=ClientWithSecret,
)
async def register_client(
    command: RegisterClientCommand,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Register OAuth Client

    The plaintext client_secret is returned once, here. Public clients
    (token_endpoint_auth_method=none) get no usable secret and must use PKCE.

    Requires: X-Admin-API-Key header

    Raises:
        - 400 Bad Request: INVALID_CLIENT_METADATA (redirect URIs, scopes, grants)
        - 401 Unauthorized: Missing or invalid admin API key
    """
    result = await ManageClientsUseCase(uow, settings).register(command)

    if result.is_err():
        raise_for_client_error(result.error)

    return result.value


@router.get("/clients", status_code=status.HTTP_200_OK, response_model=List[ClientInfo])
async def list_clients(
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    result = await ManageClientsUseCase(uow, settings).list()

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.get("/clients/{client_id}", status_code=status.HTTP_200_OK, response_model=ClientInfo)
async def get_client(
    client_id: str,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    result = await ManageClientsUseCase(uow, settings).get(client_id)

    if result.is_err():
        raise_for_client_error(result.error)

    return result.value


@router.patch("/clients/{client_id}", status_code=status.HTTP_200_OK, response_model=ClientInfo)
async def update_client(
    client_id: str,
    command: UpdateClientCommand,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """Partial update; redirect URIs and scopes are validated as at registration"""
    result = await ManageClientsUseCase(uow, settings).update(client_id, command)

    if result.is_err():
        raise_for_client_error(result.error)

    return result.value


@router.post(
    "/clients/{client_id}/regenerate-secret",
    status_code=status.HTTP_200_OK,
    response_model=ClientWithSecret,
)
async def regenerate_client_secret(
    client_id: str,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Regenerate Client Secret

    The previous secret stops working immediately.

    Raises:
        - 404 Not Found: CLIENT_NOT_FOUND
    """
    result = await ManageClientsUseCase(uow, settings).regenerate_secret(client_id)

    if result.is_err():
        raise_for_client_error(result.error)

    return result.value


class ClientStatusRequest(BaseModel):
    status: str = Field(..., description="active or suspended")


@router.post("/clients/{client_id}/status", status_code=status.HTTP_200_OK, response_model=ClientInfo)
async def set_client_status(
    client_id: str,
    request: ClientStatusRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """Suspended clients can neither authorize nor use the token endpoint"""
    result = await ManageClientsUseCase(uow, settings).set_status(client_id, request.status)

    if result.is_err():
        raise_for_client_error(result.error)

    return result.value


@router.delete("/clients/{client_id}", status_code=status.HTTP_200_OK)
async def delete_client(
    client_id: str,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    result = await ManageClientsUseCase(uow, settings).delete(client_id)

    if result.is_err():
        raise_for_client_error(result.error)

    return result.value


class CleanupRequest(BaseModel):
    retention_days: Optional[int] = Field(None, ge=0)


@router.post("/sessions/cleanup", status_code=status.HTTP_200_OK)
async def cleanup_sessions(
    request: Optional[CleanupRequest] = None,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Delete sessions revoked more than retention_days ago
    (default SESSION_RETENTION_DAYS).
    """
    retention_days = request.retention_days if request else None
    result = await RevokeSessionsUseCase(uow, settings).cleanup(retention_days)

    if result.is_err():
        raise ServerError(result.error)

    return result.value


@router.post("/users/{user_id}/revoke-sessions", status_code=status.HTTP_200_OK)
async def revoke_user_sessions(
    user_id: UUID,
    uow: UnitOfWork = Depends(get_unit_of_work),
    settings: SecuritySettings = Depends(get_settings),
):
    """
    Revoke every active session of a user.

    Raises:
        - 404 Not Found: USER_NOT_FOUND
    """
    result = await RevokeSessionsUseCase(uow, settings).revoke_all_sessions(user_id, None, ADMIN_ROLE)

    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value
