"""Public SDK exports."""

from domugrauds_sdk.client import DomuGraudsClient
from domugrauds_sdk.exceptions import APIResponseError, APIUnavailableError, SDKError
from domugrauds_sdk.notifications import NotificationFeed, NotificationPoller
from domugrauds_sdk.realtime import ChannelState, RealtimeChannel

__all__ = [
    "APIResponseError",
    "APIUnavailableError",
    "ChannelState",
    "DomuGraudsClient",
    "NotificationFeed",
    "NotificationPoller",
    "RealtimeChannel",
    "SDKError",
]
