"""
Logging notification gateway - no transport.
Used in development and whenever no delivery backend is configured.
"""

from app.core.logging import get_logger
from app.services.interfaces.notification import NotificationGateway

logger = get_logger(__name__)


class LoggingNotificationGateway(NotificationGateway):
    async def notify_promotion(self, member_id: int, session_id: int) -> None:
        logger.info("notify_promotion", member_id=member_id, session_id=session_id)

    async def notify_booking_confirmed(self, member_id: int, session_id: int) -> None:
        logger.info("notify_booking_confirmed", member_id=member_id, session_id=session_id)
