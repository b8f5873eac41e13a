"""
Notifications Module
====================

In-app notifications: persisted rows plus a best-effort live push.
"""

from helpdesk.notifications.models import NotificationModel
from helpdesk.notifications.external import (
    PushClient,
    CircuitBreaker,
    CircuitState,
    get_push_client,
    close_push_client,
)
from helpdesk.notifications.services import NotificationService

__all__ = [
    "NotificationModel",
    "PushClient",
    "CircuitBreaker",
    "CircuitState",
    "get_push_client",
    "close_push_client",
    "NotificationService",
]
