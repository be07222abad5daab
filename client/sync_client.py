"""Sync Portal HTTP Client.

Submits sync requests and polls their status. Status polling backs off
exponentially and tolerates 404s for a grace period after submission, since
a freshly queued item may not be visible to lookups yet.

Usage:
    async with SyncPortalClient("http://localhost:8787", token) as client:
        receipt = await client.submit(company_id="C1", table_name="orders")
        final = await client.wait_for_completion(receipt["id"])
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from core.observability.logging import get_logger

logger = get_logger(__name__)

TERMINAL_STATUSES = frozenset({"successful", "failed"})


class SyncPortalError(Exception):
    """Base exception for portal client errors."""
    def __init__(self, message: str, status_code: int = 0, response_body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class SyncPollTimeout(SyncPortalError):
    """Item did not reach a terminal status before the deadline."""
    pass


@dataclass
class PollPolicy:
    """Configuration for status polling."""
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    deadline_seconds: float = 600.0
    not_found_grace_seconds: float = 30.0

    def get_delay(self, attempt: int) -> float:
        """Calculate delay before poll ``attempt`` (exponential backoff)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)


class SyncPortalClient:
    """HTTP client for the sync portal."""

    def __init__(self, base_url: str, token: str, timeout_seconds: int = 30):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "SyncPortalClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """Open the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/json",
                },
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )

    async def disconnect(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> tuple:
        if not self._session:
            raise SyncPortalError("Not connected. Call connect() first.")

        async with self._session.request(method, f"{self.base_url}{path}", headers=headers) as response:
            try:
                body = await response.json(content_type=None)
            except ValueError:
                body = {"error": await response.text()}
            return response.status, body or {}

    async def submit(
        self,
        company_id: str,
        table_name: str,
        contact_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Queue a sync request and return the 202 body (id, status_url, ...).

        Raises:
            SyncPortalError: The portal did not accept the request
        """
        headers = {"COMPANY-ID": company_id, "TABLE-NAME": table_name}
        if contact_id:
            headers["CONTACT-ID"] = contact_id
        if status:
            headers["STATUS"] = status

        code, body = await self._request("POST", "/Sync", headers=headers)
        if code != 202:
            raise SyncPortalError(
                f"Submission rejected ({code}): {body.get('error', body)}",
                code,
                body,
            )
        logger.info(f"Submitted sync request {body['id']}")
        return body

    async def get_status(self, event_id: str) -> Optional[Dict[str, Any]]:
        """Current status body, or None if the portal answers 404.

        A failed transaction comes back as a body with ``status == "failed"``
        (the portal answers 400 for it), not as an exception.
        """
        code, body = await self._request("GET", f"/status/{quote(event_id, safe='')}")
        if code == 404:
            return None
        if code == 200 or (code == 400 and "status" in body):
            return body
        raise SyncPortalError(
            f"Status check failed ({code}): {body.get('error', body)}",
            code,
            body,
        )

    async def wait_for_completion(
        self,
        event_id: str,
        policy: Optional[PollPolicy] = None,
    ) -> Dict[str, Any]:
        """Poll until the item reaches ``successful`` or ``failed``.

        Raises:
            SyncPortalError: Still not found after the grace period
            SyncPollTimeout: Deadline passed without a terminal status
        """
        policy = policy or PollPolicy()
        started = time.monotonic()
        attempt = 0

        while True:
            body = await self.get_status(event_id)
            elapsed = time.monotonic() - started

            if body is None:
                if elapsed >= policy.not_found_grace_seconds:
                    raise SyncPortalError(f"Transaction not found: {event_id}", 404)
                logger.debug(f"{event_id} not visible yet ({elapsed:.1f}s)")
            elif body.get("status") in TERMINAL_STATUSES:
                return body
            else:
                logger.debug(f"{event_id} still {body.get('state')}")

            if elapsed >= policy.deadline_seconds:
                raise SyncPollTimeout(f"Gave up waiting for {event_id} after {elapsed:.0f}s")

            await asyncio.sleep(policy.get_delay(attempt))
            attempt += 1
