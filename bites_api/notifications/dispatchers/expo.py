"""Mobile push delivery through the Expo push service"""

from typing import List, Optional, Sequence

import httpx
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from bites_api.config import settings
from bites_api.notifications.dispatchers.base import PushDispatcher, SessionFactory
from bites_api.notifications.recipients import prune_device_tokens
from bites_api.orders.errors import DeliveryFailure
from bites_api.schemas.notification import MobileRecipient, PushPayload

logger = structlog.get_logger()

# Expo accepts at most 100 messages per request
CHUNK_SIZE = 100

# Ticket errors meaning the token will never work again
PERMANENT_ERRORS = {"DeviceNotRegistered"}


class ExpoPushDispatcher(PushDispatcher[MobileRecipient]):
    """Sends to Expo push tokens and classifies each returned ticket"""

    channel = "expo"

    def __init__(
        self,
        session_factory: SessionFactory,
        url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(session_factory)
        self.url = url or settings.expo_push_url
        self.access_token = access_token if access_token is not None else settings.expo_access_token
        self.timeout = timeout or settings.expo_timeout_seconds
        self.transport = transport

    def endpoint_of(self, recipient: MobileRecipient) -> str:
        return recipient.token

    async def prune(self, db: AsyncSession, endpoints: List[str]) -> int:
        return await prune_device_tokens(db, endpoints)

    def _headers(self) -> dict:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _message(self, token: str, payload: PushPayload) -> dict:
        return {
            "to": token,
            "sound": "default",
            "title": payload.title,
            "body": payload.body,
            "data": payload.data,
        }

    async def deliver(
        self,
        recipients: Sequence[MobileRecipient],
        payload: PushPayload,
    ) -> List[Optional[Exception]]:
        outcomes: List[Optional[Exception]] = []
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for start in range(0, len(recipients), CHUNK_SIZE):
                tokens = [r.token for r in recipients[start:start + CHUNK_SIZE]]
                outcomes.extend(await self._send_chunk(client, tokens, payload))
        return outcomes

    async def _send_chunk(
        self,
        client: httpx.AsyncClient,
        tokens: List[str],
        payload: PushPayload,
    ) -> List[Optional[Exception]]:
        logger.debug("Expo push request", count=len(tokens))
        try:
            response = await client.post(
                self.url,
                json=[self._message(token, payload) for token in tokens],
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            return [DeliveryFailure(token, f"transport error: {e}") for token in tokens]

        if response.status_code >= 400:
            reason = f"HTTP {response.status_code}: {response.text[:200]}"
            return [
                DeliveryFailure(token, reason, status_code=response.status_code)
                for token in tokens
            ]

        try:
            tickets = response.json().get("data") or []
        except (ValueError, AttributeError):
            reason = f"unreadable response: {response.text[:200]}"
            return [DeliveryFailure(token, reason) for token in tokens]

        outcomes: List[Optional[Exception]] = []
        for index, token in enumerate(tokens):
            if index >= len(tickets):
                outcomes.append(DeliveryFailure(token, "no ticket returned"))
                continue
            outcomes.append(self._classify(token, tickets[index]))
        return outcomes

    def _classify(self, token: str, ticket: dict) -> Optional[DeliveryFailure]:
        if ticket.get("status") == "ok":
            return None
        error = (ticket.get("details") or {}).get("error")
        return DeliveryFailure(
            token,
            error or ticket.get("message") or "unknown error",
            permanent=error in PERMANENT_ERRORS,
        )
