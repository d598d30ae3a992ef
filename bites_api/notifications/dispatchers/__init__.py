"""Push channel dispatchers"""

from bites_api.notifications.dispatchers.base import PushDispatcher
from bites_api.notifications.dispatchers.expo import ExpoPushDispatcher
from bites_api.notifications.dispatchers.webpush import WebPushDispatcher

__all__ = ["PushDispatcher", "ExpoPushDispatcher", "WebPushDispatcher"]
