"""
Logging adapters for the payment, email and waiver collaborators.

Deployments bind real providers through the ``deps`` getters; these adapters
keep the booking flow runnable without them and record every hand-off.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from ..domain.collaborators import NotificationSender, PaymentGateway, WaiverIssuer
from ..models import Booking

logger = logging.getLogger(__name__)


class LoggingPaymentGateway(PaymentGateway):
    async def refund(self, *, charge_id: str, amount_cents: int | None, metadata: Mapping[str, Any]) -> None:
        logger.info("refund requested for %s amount=%s metadata=%s", charge_id, amount_cents, dict(metadata))


class LoggingNotificationSender(NotificationSender):
    async def send_booking_confirmation(self, booking: Booking) -> None:
        logger.info("confirmation email queued for booking %s to %s", booking.id, booking.customer_email)


class LoggingWaiverIssuer(WaiverIssuer):
    def __init__(self, base_url: str = "/waiver") -> None:
        self.base_url = base_url.rstrip("/")

    async def issue_link(self, booking_id: int, customer_email: str) -> str:
        token = uuid.uuid4().hex
        link = f"{self.base_url}?token={token}"
        logger.info("waiver link issued for booking %s to %s", booking_id, customer_email)
        return link
