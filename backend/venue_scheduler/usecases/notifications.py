from __future__ import annotations

import logging
from typing import Optional

from ..domain.collaborators import NotificationSender, WaiverIssuer
from ..models import Booking

logger = logging.getLogger(__name__)


async def send_booking_followups(
    notifier: NotificationSender,
    waivers: WaiverIssuer,
    booking: Booking,
) -> Optional[str]:
    """Confirmation email and waiver link for a committed booking; returns the link if issued."""
    try:
        await notifier.send_booking_confirmation(booking)
    except Exception:
        logger.exception("confirmation email for booking %s failed", booking.id)

    try:
        return await waivers.issue_link(booking.id, booking.customer_email)
    except Exception:
        logger.exception("waiver link for booking %s failed", booking.id)
        return None
