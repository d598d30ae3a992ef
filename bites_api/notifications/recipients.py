"""Recipient store: registration, lookup and pruning of push endpoints"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from bites_api.models.notification import DeviceToken, WebPushSubscription
from bites_api.schemas.notification import MobileRecipient, WebPushRecipient


async def register_device_token(
    db: AsyncSession,
    token: str,
    user_id: Optional[UUID],
    platform: Optional[str] = None,
) -> DeviceToken:
    """Upsert by token; a re-registration moves the token to the new owner"""
    result = await db.execute(select(DeviceToken).where(DeviceToken.token == token))
    device_token = result.scalar_one_or_none()

    if device_token is None:
        device_token = DeviceToken(token=token)
        db.add(device_token)

    device_token.user_id = user_id
    device_token.platform = platform or "expo"
    await db.commit()
    await db.refresh(device_token)
    return device_token


async def unregister_device_token(db: AsyncSession, token: str) -> int:
    result = await db.execute(delete(DeviceToken).where(DeviceToken.token == token))
    await db.commit()
    return result.rowcount


async def register_web_push_subscription(
    db: AsyncSession,
    endpoint: str,
    p256dh_key: str,
    auth_key: str,
    user_id: Optional[UUID],
) -> WebPushSubscription:
    """Upsert by endpoint"""
    result = await db.execute(
        select(WebPushSubscription).where(WebPushSubscription.endpoint == endpoint)
    )
    subscription = result.scalar_one_or_none()

    if subscription is None:
        subscription = WebPushSubscription(endpoint=endpoint)
        db.add(subscription)

    subscription.user_id = user_id
    subscription.p256dh_key = p256dh_key
    subscription.auth_key = auth_key
    await db.commit()
    await db.refresh(subscription)
    return subscription


async def unregister_web_push_subscription(db: AsyncSession, endpoint: str) -> int:
    result = await db.execute(
        delete(WebPushSubscription).where(WebPushSubscription.endpoint == endpoint)
    )
    await db.commit()
    return result.rowcount


def guest_window_start(order_created_at: datetime, window_hours: int) -> datetime:
    return order_created_at - timedelta(hours=window_hours)


async def mobile_recipients_for(
    db: AsyncSession,
    user_id: Optional[UUID],
    order_created_at: datetime,
    window_hours: int,
) -> List[MobileRecipient]:
    """The owner's tokens, or for guest orders every unattached token
    registered since the start of the guest window.
    """
    query = select(DeviceToken.token)
    if user_id is not None:
        query = query.where(DeviceToken.user_id == user_id)
    else:
        query = query.where(
            DeviceToken.user_id.is_(None),
            DeviceToken.created_at >= guest_window_start(order_created_at, window_hours),
        )
    result = await db.execute(query.order_by(DeviceToken.created_at))
    return [MobileRecipient(token=token) for token in result.scalars().all()]


async def web_recipients_for(
    db: AsyncSession,
    user_id: Optional[UUID],
    order_created_at: datetime,
    window_hours: int,
) -> List[WebPushRecipient]:
    query = select(WebPushSubscription)
    if user_id is not None:
        query = query.where(WebPushSubscription.user_id == user_id)
    else:
        query = query.where(
            WebPushSubscription.user_id.is_(None),
            WebPushSubscription.created_at >= guest_window_start(order_created_at, window_hours),
        )
    result = await db.execute(query.order_by(WebPushSubscription.created_at))
    return [
        WebPushRecipient(endpoint=sub.endpoint, p256dh=sub.p256dh_key, auth=sub.auth_key)
        for sub in result.scalars().all()
    ]


async def prune_device_tokens(db: AsyncSession, tokens: Iterable[str]) -> int:
    """Delete dead tokens in one statement"""
    tokens = list(set(tokens))
    if not tokens:
        return 0
    result = await db.execute(delete(DeviceToken).where(DeviceToken.token.in_(tokens)))
    await db.commit()
    return result.rowcount


async def prune_web_push_subscriptions(db: AsyncSession, endpoints: Iterable[str]) -> int:
    endpoints = list(set(endpoints))
    if not endpoints:
        return 0
    result = await db.execute(
        delete(WebPushSubscription).where(WebPushSubscription.endpoint.in_(endpoints))
    )
    await db.commit()
    return result.rowcount
