"""
Notification gateway interface.
Member-facing delivery (push, email, in-app) lives outside this service; the
scheduling core only hands events to whichever gateway is configured.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class NoticeKind(str, Enum):
    PROMOTION = "promotion"
    BOOKING_CONFIRMED = "booking_confirmed"


@dataclass(frozen=True)
class Notice:
    """A member notification produced inside a unit of work, sent after commit."""

    kind: NoticeKind
    member_id: int
    session_id: int


class NotificationGateway(ABC):
    """
    Interface for notification delivery.

    Implementations:
    - LoggingNotificationGateway: writes notices to the structured log
    - RedisNotificationGateway: publishes notices on a Redis channel
    """

    @abstractmethod
    async def notify_promotion(self, member_id: int, session_id: int) -> None:
        """Tell a member they moved from the waitlist into a confirmed seat."""

    @abstractmethod
    async def notify_booking_confirmed(self, member_id: int, session_id: int) -> None:
        """Tell a member their booking request was confirmed."""

    async def send(self, notice: Notice) -> None:
        if notice.kind is NoticeKind.PROMOTION:
            await self.notify_promotion(notice.member_id, notice.session_id)
        else:
            await self.notify_booking_confirmed(notice.member_id, notice.session_id)
