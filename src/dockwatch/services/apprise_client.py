"""
Apprise API HTTP Client.

Sends notifications through an Apprise API server
(`POST {base_url}/notify/{key}`). One attempt per call: failures are
reported in the SendResult, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from ..core.logging import get_logger

if TYPE_CHECKING:
    from ..subscriptions import Target
    from .payload import NotificationPayload

logger = get_logger(__name__)


@dataclass
class SendResult:
    """Result of a notification send attempt."""

    success: bool
    status_code: int | None = None
    error: str | None = None


@dataclass
class AppriseClient:
    """
    HTTP client for the Apprise API notification gateway.

    The underlying httpx.AsyncClient is shared by all in-flight
    deliveries; it is safe for concurrent use within one event loop.
    """

    base_url: str
    timeout: float = 30.0

    # Metrics
    _total_sent: int = 0
    _total_failed: int = 0
    _last_success: datetime | None = None
    _last_failure: datetime | None = None
    _consecutive_failures: int = 0

    # HTTP client
    _client: httpx.AsyncClient | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "User-Agent": "dockwatch/1.0",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def notify_url(self, target: Target) -> str:
        return f"{self.base_url}/notify/{quote(target.key, safe='')}"

    async def send(self, target: Target, payload: NotificationPayload) -> SendResult:
        """
        Send a notification for a target.

        Args:
            target: Subscription target (its key selects the Apprise config)
            payload: Notification content

        Returns:
            SendResult with success status and details
        """
        client = await self._get_client()
        url = self.notify_url(target)

        try:
            response = await client.post(url, json=payload.to_dict())
        except httpx.TimeoutException:
            return self._failure(error=f"Timeout after {self.timeout:.0f}s")
        except httpx.RequestError as e:
            return self._failure(error=f"Request error: {e}")

        if response.is_success:
            self._total_sent += 1
            self._last_success = datetime.now()
            self._consecutive_failures = 0
            return SendResult(success=True, status_code=response.status_code)

        return self._failure(
            status_code=response.status_code,
            error=f"HTTP {response.status_code}: {response.text[:200]}",
        )

    def _failure(self, error: str, status_code: int | None = None) -> SendResult:
        """Record a failed send attempt."""
        self._total_failed += 1
        self._last_failure = datetime.now()
        self._consecutive_failures += 1
        return SendResult(success=False, status_code=status_code, error=error)

    @property
    def success_rate(self) -> float:
        """Calculate success rate (0.0 to 1.0)."""
        total = self._total_sent + self._total_failed
        if total == 0:
            return 1.0
        return self._total_sent / total

    def get_metrics(self) -> dict[str, Any]:
        """Get client metrics for status reporting."""
        return {
            "total_sent": self._total_sent,
            "total_failed": self._total_failed,
            "success_rate": round(self.success_rate, 3),
            "consecutive_failures": self._consecutive_failures,
            "last_success": self._last_success.isoformat() if self._last_success else None,
            "last_failure": self._last_failure.isoformat() if self._last_failure else None,
        }
