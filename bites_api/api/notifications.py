"""Push recipient registration endpoints (guests allowed)"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bites_api.config import settings
from bites_api.database import get_db
from bites_api.models.user import User
from bites_api.notifications import recipients
from bites_api.schemas.notification import (
    DeviceTokenCreate,
    DeviceTokenDelete,
    RegistrationResponse,
    WebPushSubscribe,
    WebPushUnsubscribe,
)
from bites_api.api.auth import get_optional_user

device_tokens_router = APIRouter()
web_push_router = APIRouter()


@device_tokens_router.post("", response_model=RegistrationResponse, status_code=201)
async def register_device_token(
    request: DeviceTokenCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Register a mobile push token"""
    token = await recipients.register_device_token(
        db,
        request.token,
        user_id=current_user.id if current_user else None,
        platform=request.platform,
    )
    return RegistrationResponse(message="Device token registered", id=str(token.id))


@device_tokens_router.delete("", response_model=RegistrationResponse)
async def remove_device_token(
    request: DeviceTokenDelete,
    db: AsyncSession = Depends(get_db),
):
    """Remove a mobile push token"""
    await recipients.unregister_device_token(db, request.token)
    return RegistrationResponse(message="Device token removed")


@web_push_router.post("/subscribe", response_model=RegistrationResponse, status_code=201)
async def subscribe(
    request: WebPushSubscribe,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Register a browser push subscription"""
    subscription = await recipients.register_web_push_subscription(
        db,
        request.endpoint,
        p256dh_key=request.keys.p256dh,
        auth_key=request.keys.auth,
        user_id=current_user.id if current_user else None,
    )
    return RegistrationResponse(message="Web push subscription registered", id=str(subscription.id))


@web_push_router.post("/unsubscribe", response_model=RegistrationResponse)
async def unsubscribe(
    request: WebPushUnsubscribe,
    db: AsyncSession = Depends(get_db),
):
    """Remove a browser push subscription"""
    await recipients.unregister_web_push_subscription(db, request.endpoint)
    return RegistrationResponse(message="Web push subscription removed")


@web_push_router.get("/vapid-public-key")
async def vapid_public_key():
    """Public VAPID key for the browser's pushManager.subscribe call"""
    return {"public_key": settings.vapid_public_key or None}
