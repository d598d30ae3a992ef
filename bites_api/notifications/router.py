"""Routes lifecycle events to the admin channel and customer push channels"""

import asyncio
from typing import Dict, List, Optional, Tuple

import structlog

from bites_api.config import settings
from bites_api.notifications.broadcast import AdminBroadcastPublisher
from bites_api.notifications.dispatchers.base import PushDispatcher, SessionFactory
from bites_api.notifications.recipients import mobile_recipients_for, web_recipients_for
from bites_api.notifications.templates import compose_status_payload
from bites_api.orders.events import OrderCreated, OrderEvent, OrderStatusChanged
from bites_api.schemas.notification import DispatchReport, MobileRecipient, WebPushRecipient
from bites_api.schemas.order import OrderResponse

logger = structlog.get_logger()


class NotificationRouter:
    """Resolves recipients and fans an event out to every channel.

    Guest orders are matched to unattached endpoints registered since
    ``guest_window_hours`` before the order was placed. This is an
    approximation: a shared device or a late registration can be missed or
    notified wrongly.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        mobile: PushDispatcher,
        web: PushDispatcher,
        broadcaster: AdminBroadcastPublisher,
        guest_window_hours: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.mobile = mobile
        self.web = web
        self.broadcaster = broadcaster
        self.guest_window_hours = guest_window_hours or settings.guest_recipient_window_hours

    async def handle(self, event: OrderEvent) -> Dict[str, DispatchReport]:
        """Entry point for schedulers. Never raises."""
        try:
            if isinstance(event, OrderCreated):
                await self.on_order_created(event)
                return {}
            if isinstance(event, OrderStatusChanged):
                return await self.on_status_changed(event)
            logger.warning("Unhandled order event", event_type=type(event).__name__)
        except Exception:
            logger.exception(
                "Notification routing failed",
                event_type=event.type,
                order_number=event.order.order_number,
            )
        return {}

    async def on_order_created(self, event: OrderCreated) -> None:
        # The customer already has the confirmation in the order response
        await self.broadcaster.publish_order_created(event.order)

    async def resolve_recipients(
        self, order: OrderResponse
    ) -> Tuple[List[MobileRecipient], List[WebPushRecipient]]:
        async with self.session_factory() as db:
            mobile = await mobile_recipients_for(
                db, order.user_id, order.created_at, self.guest_window_hours
            )
            web = await web_recipients_for(
                db, order.user_id, order.created_at, self.guest_window_hours
            )
        return mobile, web

    async def on_status_changed(self, event: OrderStatusChanged) -> Dict[str, DispatchReport]:
        order = event.order
        payload = compose_status_payload(order, event.new_status)
        mobile, web = await self.resolve_recipients(order)

        logger.info(
            "Routing status notification",
            order_number=order.order_number,
            status=event.new_status.value,
            guest=order.user_id is None,
            mobile_recipients=len(mobile),
            web_recipients=len(web),
        )

        jobs = []
        if mobile:
            jobs.append(self.mobile.dispatch(mobile, payload))
        if web:
            jobs.append(self.web.dispatch(web, payload))
        if not jobs:
            return {}

        reports: List[DispatchReport] = await asyncio.gather(*jobs)
        return {report.channel: report for report in reports}

    async def close(self) -> None:
        self.mobile.close()
        self.web.close()
        await self.broadcaster.close()
