"""Hands lifecycle events to the notification router off the request path"""

import asyncio
from typing import Optional, Set

import structlog

from bites_api.config import settings
from bites_api.notifications.broadcast import AdminBroadcastPublisher
from bites_api.notifications.dispatchers import ExpoPushDispatcher, WebPushDispatcher
from bites_api.notifications.dispatchers.base import SessionFactory
from bites_api.notifications.router import NotificationRouter
from bites_api.orders.events import EventBus, OrderCreated, OrderEvent, OrderStatusChanged

logger = structlog.get_logger()

BACKGROUND = "background"
CELERY = "celery"


def build_notification_router(session_factory: SessionFactory) -> NotificationRouter:
    """Router wired to the production channels"""
    return NotificationRouter(
        session_factory=session_factory,
        mobile=ExpoPushDispatcher(session_factory),
        web=WebPushDispatcher(session_factory),
        broadcaster=AdminBroadcastPublisher(),
    )


class NotificationScheduler:
    """Bus subscriber that schedules routing and returns immediately.

    ``background`` runs the router as tracked asyncio tasks in this process;
    ``celery`` enqueues the event for a worker. Either way the publisher
    never waits on, or fails because of, delivery.
    """

    def __init__(self, router: Optional[NotificationRouter] = None, backend: Optional[str] = None):
        self.router = router
        self.backend = backend or settings.notification_backend
        self._tasks: Set[asyncio.Task] = set()

        if self.backend not in (BACKGROUND, CELERY):
            raise ValueError(f"Unknown notification backend: {self.backend}")
        if self.backend == BACKGROUND and router is None:
            raise ValueError("The background backend needs a router")

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(OrderCreated, self.schedule)
        bus.subscribe(OrderStatusChanged, self.schedule)

    def schedule(self, event: OrderEvent) -> None:
        if self.backend == CELERY:
            from bites_api.jobs.tasks import deliver_order_event

            deliver_order_event.delay(event.model_dump(mode="json"))
            logger.debug("Queued order event", event_type=event.type, order_number=event.order.order_number)
            return

        task = asyncio.get_running_loop().create_task(self.router.handle(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
