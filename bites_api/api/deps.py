"""Service wiring shared by the API routers"""

from functools import lru_cache

from bites_api.database import SessionLocal
from bites_api.notifications.scheduler import (
    BACKGROUND,
    NotificationScheduler,
    build_notification_router,
)
from bites_api.config import settings
from bites_api.orders.events import EventBus
from bites_api.orders.lifecycle import LifecycleService


@lru_cache()
def get_notification_scheduler() -> NotificationScheduler:
    router = None
    if settings.notification_backend == BACKGROUND:
        router = build_notification_router(SessionLocal)
    return NotificationScheduler(router=router)


@lru_cache()
def get_event_bus() -> EventBus:
    bus = EventBus()
    get_notification_scheduler().attach(bus)
    return bus


def get_lifecycle_service() -> LifecycleService:
    return LifecycleService(bus=get_event_bus())
