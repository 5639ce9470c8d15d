"""
Notification External Integrations
==================================

Webhook delivery channel with retry and a circuit breaker.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from helpdesk.core import NotificationDeliveryException
from helpdesk.notifications.application.services import INotificationChannel
from helpdesk.notifications.domain import Notification
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for a flaky downstream.

    States:
    - CLOSED: requests pass through
    - OPEN: after N consecutive failures, requests are refused for M seconds
    - HALF_OPEN: after the timeout one probe request is let through
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
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if time.monotonic() - self._opened_at >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._opened_at = None
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._opened_at = time.monotonic()
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class WebhookNotificationChannel(INotificationChannel):
    """
    Pushes notifications as JSON to a webhook.

    A channel without a URL skips every notification.
    """

    name = "webhook"

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.webhook_url = webhook_url
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )
        self._http_client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._http_client

    def _build_message(self, notification: Notification) -> Dict[str, Any]:
        return {
            "event": notification.kind.value,
            "notification": notification.to_payload(),
        }

    async def deliver(self, notification: Notification) -> bool:
        if not self.webhook_url:
            logger.debug("Webhook URL not configured, skipping notification")
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping webhook notification",
                extra={"notification_id": notification.id, "ticket_id": notification.ticket_id}
            )
            return False

        message = self._build_message(notification)
        last_error = None

        for attempt in range(self.max_retries):
            try:
                response = await self._get_client().post(self.webhook_url, json=message)
                if response.is_success:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Webhook notification sent",
                        extra={
                            "notification_id": notification.id,
                            "notification_type": notification.kind.value
                        }
                    )
                    return True
                last_error = f"HTTP {response.status_code}"
                logger.warning(
                    "Webhook returned non-2xx",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                last_error = str(e)
                logger.warning(
                    "Webhook request failed",
                    extra={"error": str(e), "attempt": attempt + 1}
                )

            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_base_delay * (2 ** attempt))

        self._circuit_breaker.record_failure()
        raise NotificationDeliveryException(
            "webhook delivery failed",
            {
                "notification_id": notification.id,
                "attempts": self.max_retries,
                "error": last_error
            }
        )

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
