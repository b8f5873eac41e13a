"""
Notification Push Client
========================

Pushes notification events to an HTTP fan-out endpoint so connected
clients see them live. Delivery is best-effort: the persisted row is the
source of truth.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from helpdesk.config import settings
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

NOTIFICATION_EVENT = "notification:new"


def user_channel(user_id: str) -> str:
    return f"private-user-{user_id}"


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class PushClient:
    """
    HTTP push client with circuit breaker and retry logic.

    Posts {"channel", "event", "data"} to the configured push endpoint.
    Does nothing when no endpoint is configured.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self._url = url if url is not None else settings.push_url
        self._api_key = api_key if api_key is not None else settings.push_api_key
        self._timeout = timeout or settings.push_timeout_seconds
        self._circuit_breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            headers = {}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._http_client = httpx.AsyncClient(timeout=self._timeout, headers=headers)
        return self._http_client

    async def trigger(
        self,
        channel: str,
        event: str,
        data: Dict[str, Any],
        max_retries: int = 3
    ) -> bool:
        """
        Publish an event on a channel.

        Returns:
            True if delivered, False otherwise
        """
        if not self.enabled:
            logger.debug("Push URL not configured, skipping push", extra={"channel": channel})
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning("Circuit breaker open, skipping push", extra={"channel": channel})
            return False

        payload = {"channel": channel, "event": event, "data": data}

        for attempt in range(max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._url, json=payload)

                if response.is_success:
                    self._circuit_breaker.record_success()
                    return True

                logger.warning(
                    "Push endpoint returned an error status",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                logger.error(
                    "Push request failed",
                    extra={"error": str(e), "attempt": attempt + 1, "channel": channel}
                )

            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


_push_client: Optional[PushClient] = None


def get_push_client() -> PushClient:
    """Process-wide push client (one connection pool)."""
    global _push_client
    if _push_client is None:
        _push_client = PushClient()
    return _push_client


async def close_push_client() -> None:
    global _push_client
    if _push_client is not None:
        await _push_client.close()
        _push_client = None
