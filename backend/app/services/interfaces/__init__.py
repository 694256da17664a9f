"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .notification import NotificationGateway, Notice, NoticeKind
from .log_notification import LoggingNotificationGateway

__all__ = ['NotificationGateway', 'Notice', 'NoticeKind', 'LoggingNotificationGateway']
