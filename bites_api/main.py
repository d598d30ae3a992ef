"""
Kasi Bites ordering API - FastAPI Backend Application
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from bites_api.config import settings
from bites_api.api import orders, notifications
from bites_api.api.deps import get_notification_scheduler

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Kasi Bites API", version="1.0.0", notification_backend=settings.notification_backend)
    yield
    scheduler = get_notification_scheduler()
    logger.info("Shutting down Kasi Bites API", pending_notifications=scheduler.pending)
    await scheduler.drain()
    if scheduler.router is not None:
        await scheduler.router.close()


# Create FastAPI application
app = FastAPI(
    title="Kasi Bites",
    description="Food ordering with live order tracking and push notifications",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    """Basic health check"""
    return {"status": "healthy", "service": "api", "version": "1.0.0"}


# Include API routers
app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(orders.admin_router, prefix="/admin/orders", tags=["Admin"])
app.include_router(notifications.device_tokens_router, prefix="/device-tokens", tags=["Notifications"])
app.include_router(notifications.web_push_router, prefix="/web-push", tags=["Notifications"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bites_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
