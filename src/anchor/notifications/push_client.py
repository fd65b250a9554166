"""
Expo push-delivery client.

Messages are sent in chunks (at most 100 per request). Each chunk is one
POST; a failed chunk is logged and recorded in the ``DeliveryResult`` but
never retried and never raised, so delivery problems cannot affect the write
that triggered them.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Sequence

import aiohttp

from anchor.configuration.service_settings import PushSettings
from anchor.datatypes.notification_datatypes import (
    ChunkResult,
    DeliveryResult,
    NotificationEvent,
    PushMessage,
)
from anchor.exceptions import PushDeliveryError
from anchor.util.logger import get_logger

logger = get_logger("push_client")


def chunked(messages: Sequence[PushMessage], size: int) -> List[List[PushMessage]]:
    return [list(messages[i:i + size]) for i in range(0, len(messages), size)]


def ticket_errors(payload: Dict[str, Any]) -> List[str]:
    """Collect per-message errors from an Expo push response."""
    errors: List[str] = []
    for ticket in payload.get("data") or []:
        if isinstance(ticket, dict) and ticket.get("status") == "error":
            details = ticket.get("details") or {}
            code = details.get("error") if isinstance(details, dict) else None
            errors.append(f"{code or 'error'}: {ticket.get('message', '')}".strip())
    for error in payload.get("errors") or []:
        if isinstance(error, dict):
            errors.append(f"{error.get('code', 'error')}: {error.get('message', '')}".strip())
    return errors


class PushClient:
    """Sends push messages through the Expo push API."""

    def __init__(self, settings: PushSettings, session: aiohttp.ClientSession | None = None) -> None:
        self._settings = settings
        self._session = session
        self._owns_session = session is None

    @property
    def chunk_size(self) -> int:
        return self._settings.chunk_size

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._settings.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def send(self, messages: Sequence[PushMessage], event: NotificationEvent) -> DeliveryResult:
        """Deliver ``messages`` chunk by chunk and report per-chunk results."""
        result = DeliveryResult(event=event, recipients=len(messages))
        if not messages:
            return result

        for index, chunk in enumerate(chunked(messages, self.chunk_size)):
            try:
                payload = await self._post_chunk([message.to_payload() for message in chunk])
            except PushDeliveryError as exc:
                logger.error("[PUSH] %s chunk %d (%d messages) failed: %s", event, index, len(chunk), exc)
                result.chunks.append(ChunkResult(size=len(chunk), delivered=False, error=str(exc)))
                continue

            errors = ticket_errors(payload)
            if errors:
                logger.warning("[PUSH] %s chunk %d: %d ticket error(s): %s", event, index, len(errors), "; ".join(errors[:5]))
            result.chunks.append(ChunkResult(size=len(chunk), delivered=True, ticket_errors=errors))

        logger.info(
            "[PUSH] %s: %d message(s) in %d chunk(s), %d failed chunk(s)",
            event,
            result.recipients,
            len(result.chunks),
            len(result.failed_chunks),
        )
        return result

    async def _post_chunk(self, payload: List[Dict[str, Any]]) -> Dict[str, Any]:
        """POST one chunk.

        Raises:
            PushDeliveryError: On timeouts, transport errors or non-2xx status.
        """
        session = await self._get_session()
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self._settings.access_token:
            headers["Authorization"] = f"Bearer {self._settings.access_token}"

        async def _post() -> Dict[str, Any]:
            async with session.post(self._settings.endpoint, json=payload, headers=headers) as response:
                if response.status >= 300:
                    body = await response.text()
                    raise PushDeliveryError(f"HTTP {response.status}: {body[:200]}")
                return await response.json()

        try:
            return await asyncio.wait_for(_post(), timeout=self._settings.request_timeout)
        except asyncio.TimeoutError as exc:
            raise PushDeliveryError(f"timed out after {self._settings.request_timeout:.1f}s") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise PushDeliveryError(str(exc)) from exc
