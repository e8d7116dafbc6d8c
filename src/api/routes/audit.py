"""
Audit API Routes

Audit trail for operators, behind the admin API key.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from src.api.error import ClientError, ServerError
from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.audit import GetAuditEventsUseCase
from src.depends import get_unit_of_work

router = APIRouter(prefix="/admin", tags=["Audit"])


class AuditEventResponse(BaseModel):
    """Single audit event in response"""

    action: str
    user_email: Optional[str]
    client_id: Optional[str] = None
    timestamp: str
    metadata: Dict[str, Any]


class AuditEventsResponse(BaseModel):
    """GET /admin/audit-events response payload"""

    events: List[AuditEventResponse]
    next_cursor: Optional[str]


@router.get(
    "/audit-events",
    status_code=status.HTTP_200_OK,
    response_model=AuditEventsResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def get_audit_events(
    uow: UnitOfWork = Depends(get_unit_of_work),
    user_id: Optional[UUID] = Query(None, description="Only events of this user"),
    action: Optional[str] = Query(None, description="Only events with this action"),
    limit: int = Query(50, description="Maximum number of events to return"),
    cursor: Optional[str] = Query(None, description="Pagination cursor"),
):
    """
    Get Audit Events

    Query Parameters:
        - user_id, action: optional filters
        - limit: Maximum number of events to return (1-200, default 50)
        - cursor: Pagination cursor for fetching next page

    Returns:
        - events: List of audit events ordered by newest first
        - next_cursor: Cursor for next page (null if no more events)

    Raises:
        - 400 Bad Request: INVALID_LIMIT
        - 401 Unauthorized: Missing or invalid admin API key
    """
    use_case = GetAuditEventsUseCase(uow)
    result = await use_case.execute(user_id=user_id, action=action, limit=limit, cursor=cursor)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_LIMIT":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value
