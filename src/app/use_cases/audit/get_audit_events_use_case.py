"""
Get Audit Events Use Case

Retrieves authentication audit events with pagination.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork

MAX_PAGE_SIZE = 200


class GetAuditEventsUseCase:
    """
    Use case for retrieving audit events.

    Business Rules:
    - Admin-only (enforced by the API key at the route)
    - Optional filters: user_id, action
    - Results ordered by newest first
    - Supports cursor-based pagination
    - Each event includes action, user_email, client_id, timestamp, metadata
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self,
        user_id: Optional[UUID] = None,
        action: Optional[str] = None,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> Result[Dict[str, Any]]:
        """
        Execute get audit events use case.

        Args:
            user_id: Only events of this user (optional)
            action: Only events with this action (optional)
            limit: Maximum number of events to return
            cursor: Pagination cursor (optional)

        Returns:
            Result with events list and next_cursor, or Error
        """
        if limit < 1 or limit > MAX_PAGE_SIZE:
            return Return.err(
                Error("INVALID_LIMIT", f"limit must be between 1 and {MAX_PAGE_SIZE}")
            )

        async with self.uow:
            events, next_cursor = await self.uow.audit_events.list_paginated(
                user_id=user_id, action=action, limit=limit, cursor=cursor
            )

            # Build events list with user email
            emails: Dict[UUID, Optional[str]] = {}
            events_list = []
            for event in events:
                user_email = None
                if event.user_id:
                    if event.user_id not in emails:
                        user = await self.uow.users.get_by_id(event.user_id)
                        emails[event.user_id] = user.email if user else None
                    user_email = emails[event.user_id]

                events_list.append(
                    {
                        "action": event.action,
                        "user_email": user_email,
                        "client_id": event.client_id,
                        "timestamp": event.created_at.isoformat() + "Z",
                        "metadata": event.event_metadata or {},
                    }
                )

            return Return.ok({"events": events_list, "next_cursor": next_cursor})
