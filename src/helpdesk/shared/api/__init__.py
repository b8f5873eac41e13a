"""
Shared API
==========

Middleware, exception handlers and dependencies shared by every router.
"""

from helpdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from helpdesk.shared.api.dependencies import get_active_organization_id, verify_cron_secret

__all__ = [
    "CorrelationIDMiddleware",
    "LoggingMiddleware",
    "application_exception_handler",
    "global_exception_handler",
    "get_active_organization_id",
    "verify_cron_secret",
]
