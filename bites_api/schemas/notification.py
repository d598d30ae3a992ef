"""Notification schemas"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class DeviceTokenCreate(BaseModel):
    """Register a mobile push token"""
    token: str = Field(min_length=1, max_length=255)
    platform: Optional[Literal["expo", "ios", "android"]] = None


class DeviceTokenDelete(BaseModel):
    token: str = Field(min_length=1)


class WebPushKeys(BaseModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class WebPushSubscribe(BaseModel):
    """Browser PushSubscription as serialized by the client"""
    endpoint: str = Field(min_length=1)
    keys: WebPushKeys


class WebPushUnsubscribe(BaseModel):
    endpoint: str = Field(min_length=1)


class RegistrationResponse(BaseModel):
    message: str
    id: Optional[str] = None


class PushPayload(BaseModel):
    """Channel-agnostic notification content"""
    title: str
    body: str
    data: Dict[str, Any] = {}


class MobileRecipient(BaseModel):
    token: str


class WebPushRecipient(BaseModel):
    endpoint: str
    p256dh: str
    auth: str

    def subscription_info(self) -> dict:
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}


class DispatchReport(BaseModel):
    """Outcome of one dispatch pass over a recipient batch"""
    channel: str
    attempted: int = 0
    delivered: List[str] = []
    transient: List[str] = []
    expired: List[str] = []
    pruned: int = 0
