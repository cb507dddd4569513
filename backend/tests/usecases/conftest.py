from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Sequence

import pytest
from sqlalchemy.exc import OperationalError
from venue_scheduler.models import (
    BlackoutRule,
    Booking,
    BufferRule,
    Resource,
    ResourceClaim,
    ResourceType,
    RuleScope,
)
from venue_scheduler.usecases.bookings import BookingRepos
from venue_scheduler.utils.time import local_minutes_to_utc_naive

NOW = datetime(2030, 1, 1, 17, 0, tzinfo=timezone.utc)
THURSDAY = date(2030, 1, 3)
MONDAY = date(2030, 1, 7)


def make_resources() -> list[Resource]:
    rows = [
        (1, "Bay 1", ResourceType.AXE, 1, None),
        (2, "Bay 2", ResourceType.AXE, 2, None),
        (3, "Bay 3", ResourceType.AXE, 3, None),
        (4, "Bay 4", ResourceType.AXE, 4, None),
        (11, "Lane 1", ResourceType.DUCKPIN, 1, 1),
        (12, "Lane 2", ResourceType.DUCKPIN, 2, 1),
        (13, "Lane 3", ResourceType.DUCKPIN, 3, 2),
        (14, "Lane 4", ResourceType.DUCKPIN, 4, 2),
        (21, "Party Room A", ResourceType.PARTY, 1, None),
        (22, "Party Room B", ResourceType.PARTY, 2, None),
    ]
    return [
        Resource(id=rid, name=name, type=rtype, active=True, sort_position=pos, pair_group=group)
        for rid, name, rtype, pos, group in rows
    ]


class FakeResourceRepo:
    def __init__(self, resources: Iterable[Resource]) -> None:
        self.resources = list(resources)
        self.locked: list[tuple[ResourceType, ...]] = []

    async def list_configured(self, types: Sequence[ResourceType], *, for_update: bool = False) -> list[Resource]:
        if for_update:
            self.locked.append(tuple(types))
        return [r for r in sorted(self.resources, key=lambda r: r.id) if r.type in types]

    async def get_many(self, resource_ids: Iterable[int]) -> list[Resource]:
        ids = set(resource_ids)
        return [r for r in self.resources if r.id in ids]


class FakeClaimRepo:
    def __init__(self) -> None:
        self.claims: list[ResourceClaim] = []
        self.reads: list[bool] = []
        self._next_id = 1

    def seed(self, *, booking_id: int, resource_id: int, day: date, start: int, end: int) -> ResourceClaim:
        claim = ResourceClaim(
            id=self._next_id,
            booking_id=booking_id,
            resource_id=resource_id,
            starts_at=local_minutes_to_utc_naive(day, start),
            ends_at=local_minutes_to_utc_naive(day, end),
            created_at=NOW.replace(tzinfo=None),
        )
        self._next_id += 1
        self.claims.append(claim)
        return claim

    async def list_overlapping(
        self,
        resource_ids: Sequence[int],
        start: datetime,
        end: datetime,
        *,
        exclude_booking_id: int | None = None,
        for_update: bool = False,
    ) -> list[ResourceClaim]:
        self.reads.append(for_update)
        return [
            c
            for c in self.claims
            if c.resource_id in resource_ids
            and c.starts_at < end
            and c.ends_at > start
            and c.booking_id != exclude_booking_id
        ]

    async def list_for_booking(self, booking_id: int) -> list[ResourceClaim]:
        owned = [c for c in self.claims if c.booking_id == booking_id]
        return sorted(owned, key=lambda c: (c.starts_at, c.resource_id))

    async def get_many(self, claim_ids: Iterable[int]) -> list[ResourceClaim]:
        ids = set(claim_ids)
        return [c for c in self.claims if c.id in ids]

    async def create(
        self,
        *,
        booking_id: int,
        resource_id: int,
        starts_at: datetime,
        ends_at: datetime,
    ) -> ResourceClaim:
        claim = ResourceClaim(
            id=self._next_id,
            booking_id=booking_id,
            resource_id=resource_id,
            starts_at=starts_at,
            ends_at=ends_at,
            created_at=NOW.replace(tzinfo=None),
        )
        self._next_id += 1
        self.claims.append(claim)
        return claim

    async def move(self, claim: ResourceClaim, resource_id: int) -> ResourceClaim:
        claim.resource_id = resource_id
        return claim

    async def delete_for_booking(self, booking_id: int) -> int:
        before = len(self.claims)
        self.claims = [c for c in self.claims if c.booking_id != booking_id]
        return before - len(self.claims)


class FakeBookingRepo:
    def __init__(self) -> None:
        self.bookings: dict[int, Booking] = {}
        self.saved: list[int] = []
        self._next_id = 100

    async def create(self, **fields: Any) -> Booking:
        now = NOW.replace(tzinfo=None)
        booking = Booking(id=self._next_id, version=1, created_at=now, updated_at=now, **fields)
        self.bookings[booking.id] = booking
        self._next_id += 1
        return booking

    async def get(self, booking_id: int) -> Booking | None:
        return self.bookings.get(booking_id)

    async def get_for_update(self, booking_id: int) -> Booking | None:
        return self.bookings.get(booking_id)

    async def save(self, booking: Booking) -> Booking:
        self.saved.append(booking.id)
        return booking

    async def delete(self, booking: Booking) -> None:
        self.bookings.pop(booking.id, None)


class FakeRuleRepo:
    def __init__(
        self,
        blackouts: Iterable[BlackoutRule] = (),
        buffers: Iterable[BufferRule] = (),
        *,
        fail: bool = False,
    ) -> None:
        self.blackouts = list(blackouts)
        self.buffers = list(buffers)
        self.fail = fail

    def _maybe_fail(self) -> None:
        if self.fail:
            raise OperationalError("SELECT rules", {}, Exception("database unavailable"))

    async def list_blackouts(self, date_key: date, scopes: Sequence[RuleScope]) -> list[BlackoutRule]:
        self._maybe_fail()
        return [b for b in self.blackouts if b.date_key == date_key and b.activity in scopes]

    async def list_buffers(self, scopes: Sequence[RuleScope]) -> list[BufferRule]:
        self._maybe_fail()
        return [b for b in self.buffers if b.active and b.activity in scopes]


class FakeTransaction:
    """Restores claim and booking rows when the block raises, like a session rollback."""

    def __init__(self, claims: FakeClaimRepo, bookings: FakeBookingRepo) -> None:
        self.claims = claims
        self.bookings = bookings

    async def __aenter__(self) -> "FakeTransaction":
        self._claims = [(c, c.resource_id) for c in self.claims.claims]
        self._bookings = dict(self.bookings.bookings)
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        if exc_type is not None:
            for claim, resource_id in self._claims:
                claim.resource_id = resource_id
            self.claims.claims = [c for c, _ in self._claims]
            self.bookings.bookings = self._bookings
        return False


@pytest.fixture
def repos() -> BookingRepos:
    return BookingRepos(
        resources=FakeResourceRepo(make_resources()),
        claims=FakeClaimRepo(),
        bookings=FakeBookingRepo(),
        rules=FakeRuleRepo(),
    )


@pytest.fixture
def begin(repos: BookingRepos) -> Callable[[], FakeTransaction]:
    return lambda: FakeTransaction(repos.claims, repos.bookings)
