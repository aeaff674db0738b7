"""ORM model exports."""

from domugrauds.models.account import Account, Follow
from domugrauds.models.group import Group, GroupInvitation, GroupMembership, GroupMessage
from domugrauds.models.notification import Notification
from domugrauds.models.session import Session
from domugrauds.models.thread import Thread, ThreadReaction
from domugrauds.models.topic import DailyTopic

__all__ = [
    "Account",
    "DailyTopic",
    "Follow",
    "Group",
    "GroupInvitation",
    "GroupMembership",
    "GroupMessage",
    "Notification",
    "Session",
    "Thread",
    "ThreadReaction",
]
