"""Contracts of the external services the booking flow hands off to."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from ..models import Booking


class PaymentGateway(Protocol):
    """Charges are taken by the client before booking; the server only compensates."""

    async def refund(self, *, charge_id: str, amount_cents: int | None, metadata: Mapping[str, Any]) -> None: ...


class NotificationSender(Protocol):
    async def send_booking_confirmation(self, booking: Booking) -> None: ...


class WaiverIssuer(Protocol):
    async def issue_link(self, booking_id: int, customer_email: str) -> str: ...
