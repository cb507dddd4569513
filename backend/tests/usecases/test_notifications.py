import logging

import pytest
from venue_scheduler.models import Booking
from venue_scheduler.usecases.notifications import send_booking_followups


class FakeNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[int] = []

    async def send_booking_confirmation(self, booking: Booking) -> None:
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append(booking.id)


class FakeWaivers:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    async def issue_link(self, booking_id: int, customer_email: str) -> str:
        if self.fail:
            raise ConnectionError("waiver service down")
        return f"/waiver?booking={booking_id}"


def _booking() -> Booking:
    return Booking(id=7, customer_name="Jamie", customer_email="jamie@example.com")


@pytest.mark.asyncio
async def test_followups_send_email_and_return_waiver_link() -> None:
    notifier = FakeNotifier()
    link = await send_booking_followups(notifier, FakeWaivers(), _booking())
    assert notifier.sent == [7]
    assert link == "/waiver?booking=7"


@pytest.mark.asyncio
async def test_email_failure_is_logged_and_waiver_still_issued(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.ERROR):
        link = await send_booking_followups(FakeNotifier(fail=True), FakeWaivers(), _booking())
    assert link == "/waiver?booking=7"
    assert any("confirmation email" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_waiver_failure_returns_none() -> None:
    assert await send_booking_followups(FakeNotifier(), FakeWaivers(fail=True), _booking()) is None
