"""Operator notification model."""

from __future__ import annotations

from pyschoolbus.models._base import SchoolBusEnum, SchoolBusRecord

__all__ = ["Notification", "NotificationType"]


class NotificationType(SchoolBusEnum):
    UNKNOWN = "UNKNOWN"
    SAFETY = "SAFETY"
    DELAY = "DELAY"
    ATTENDANCE = "ATTENDANCE"
    SYSTEM = "SYSTEM"


class Notification(SchoolBusRecord):
    title: str = ""
    message: str = ""
    type: NotificationType = NotificationType.UNKNOWN
    timestamp: str = ""
    read: bool = False
