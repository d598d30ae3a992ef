"""Browser push delivery with VAPID (pywebpush)"""

import asyncio
import json
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from pywebpush import webpush, WebPushException
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from bites_api.config import settings
from bites_api.notifications.dispatchers.base import PushDispatcher, SessionFactory
from bites_api.notifications.recipients import prune_web_push_subscriptions
from bites_api.orders.errors import DeliveryFailure
from bites_api.schemas.notification import PushPayload, WebPushRecipient

logger = structlog.get_logger()

# Push services answer 404/410 for subscriptions that are gone for good
EXPIRED_STATUS_CODES = {404, 410}

ICON = "/icons/icon-192x192.png"
BADGE = "/icons/icon-72x72.png"


class WebPushDispatcher(PushDispatcher[WebPushRecipient]):
    """Sends to browser push subscriptions.

    pywebpush is blocking, so sends run on a thread pool owned by this
    dispatcher and never on the threads serving order requests.
    """

    channel = "webpush"

    def __init__(
        self,
        session_factory: SessionFactory,
        vapid_private_key: Optional[str] = None,
        vapid_subject: Optional[str] = None,
        ttl: Optional[int] = None,
        max_workers: Optional[int] = None,
        sender: Callable[..., object] = webpush,
    ):
        super().__init__(session_factory)
        self.vapid_private_key = (
            vapid_private_key if vapid_private_key is not None else settings.vapid_private_key
        )
        self.vapid_subject = vapid_subject or settings.vapid_subject
        self.ttl = ttl if ttl is not None else settings.webpush_ttl
        self.sender = sender
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.webpush_max_workers,
            thread_name_prefix="webpush",
        )

    @property
    def configured(self) -> bool:
        return bool(self.vapid_private_key)

    def endpoint_of(self, recipient: WebPushRecipient) -> str:
        return recipient.endpoint

    async def prune(self, db: AsyncSession, endpoints: List[str]) -> int:
        return await prune_web_push_subscriptions(db, endpoints)

    def encode(self, payload: PushPayload) -> str:
        return json.dumps({
            "title": payload.title,
            "body": payload.body,
            "data": payload.data,
            "icon": ICON,
            "badge": BADGE,
        })

    def _send_blocking(self, recipient: WebPushRecipient, data: str) -> None:
        try:
            self.sender(
                subscription_info=recipient.subscription_info(),
                data=data,
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl,
            )
        except WebPushException as e:
            status_code = getattr(e.response, "status_code", None)
            raise DeliveryFailure(
                recipient.endpoint,
                str(e),
                permanent=status_code in EXPIRED_STATUS_CODES,
                status_code=status_code,
            )

    async def _send_one(self, recipient: WebPushRecipient, data: str) -> Optional[Exception]:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self.executor, self._send_blocking, recipient, data)
        except Exception as e:
            return e
        return None

    async def deliver(
        self,
        recipients: Sequence[WebPushRecipient],
        payload: PushPayload,
    ) -> List[Optional[Exception]]:
        if not self.configured:
            logger.warning("Web Push: VAPID keys not configured", skipped=len(recipients))
            return [DeliveryFailure(r.endpoint, "VAPID keys not configured") for r in recipients]

        data = self.encode(payload)
        return list(await asyncio.gather(*(self._send_one(r, data) for r in recipients)))

    def close(self) -> None:
        self.executor.shutdown(wait=False)
