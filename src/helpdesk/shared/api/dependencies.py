"""
Shared API Dependencies
=======================

FastAPI dependencies for tenant scoping and the cron shared secret.
"""

import secrets
from typing import Optional

from fastapi import Header

from helpdesk.config import settings
from helpdesk.core import AuthorizationException


async def get_active_organization_id(
    x_organization_id: Optional[str] = Header(default=None, alias="X-Organization-ID")
) -> str:
    """
    Active tenant of the request, set by the authenticating gateway.

    Raises:
        AuthorizationException: If no tenant is selected
    """
    if not x_organization_id:
        raise AuthorizationException("No active organization selected")
    return x_organization_id


async def verify_cron_secret(
    authorization: Optional[str] = Header(default=None)
) -> None:
    """
    Require 'Bearer <CRON_SECRET>' when a secret is configured.

    Raises:
        AuthorizationException: If the header does not match
    """
    if not settings.cron_secret:
        return

    expected = f"Bearer {settings.cron_secret}"
    if authorization is None or not secrets.compare_digest(
        authorization.encode(), expected.encode()
    ):
        raise AuthorizationException("Unauthorized")
