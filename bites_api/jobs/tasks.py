"""Background job tasks"""

import asyncio
import structlog

from bites_api.jobs.celery_app import celery_app

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


@celery_app.task(name="deliver_order_event")
def deliver_order_event(payload: dict):
    """Route a serialized lifecycle event to its notification channels"""
    logger.info(
        "Delivering order event",
        event_type=payload.get("type"),
        order_number=(payload.get("order") or {}).get("order_number"),
    )

    async def _deliver():
        from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
        from sqlalchemy.pool import NullPool
        from bites_api.config import settings
        from bites_api.notifications.scheduler import build_notification_router
        from bites_api.orders.events import event_from_dict

        # Each task runs on a fresh event loop, so connections are not pooled across tasks
        engine = create_async_engine(settings.database_url, poolclass=NullPool)
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        router = build_notification_router(session_factory)
        try:
            await router.handle(event_from_dict(payload))
        finally:
            await router.close()
            await engine.dispose()

    run_async(_deliver())
