"""
Notification Service
====================

Persists a notification row per recipient, then pushes it live.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import NotificationType
from helpdesk.notifications.external import NOTIFICATION_EVENT, PushClient, get_push_client, user_channel
from helpdesk.notifications.models import NotificationModel
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.shared.infrastructure.models import MemberModel

logger = get_logger(__name__)


class NotificationService:
    """
    Writes notifications and forwards them to the push channel.

    A push failure never fails the caller; it is logged and the stored row
    remains for the client to fetch.
    """

    def __init__(self, session: AsyncSession, push_client: Optional[PushClient] = None):
        self._session = session
        self._push = push_client or get_push_client()

    async def list_member_ids(self, organization_id: str) -> List[str]:
        """User ids of every member of an organization."""
        stmt = select(MemberModel.user_id).where(MemberModel.organization_id == organization_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def notify(
        self,
        user_id: str,
        organization_id: str,
        title: str,
        body: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        type: str = NotificationType.SLA_BREACH_WARNING
    ) -> NotificationModel:
        notification = NotificationModel(
            user_id=user_id,
            organization_id=organization_id,
            type=type,
            title=title,
            body=body,
            data=data,
        )
        self._session.add(notification)
        await self._session.flush()

        try:
            await self._push.trigger(
                user_channel(user_id), NOTIFICATION_EVENT, notification.to_payload()
            )
        except Exception:
            logger.exception(
                "Failed to push notification",
                extra={"user_id": user_id, "notification_id": str(notification.id)}
            )

        return notification
