from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Protocol, Sequence

from ..models import BlackoutRule, Booking, BufferRule, Resource, ResourceClaim, ResourceType, RuleScope


class ResourceRepository(Protocol):
    async def list_configured(
        self,
        types: Sequence[ResourceType],
        *,
        for_update: bool = False,
    ) -> list[Resource]:
        """Every resource of ``types``, retired ones included."""
        ...

    async def get_many(self, resource_ids: Iterable[int]) -> list[Resource]: ...


class ClaimRepository(Protocol):
    async def list_overlapping(
        self,
        resource_ids: Sequence[int],
        start: datetime,
        end: datetime,
        *,
        exclude_booking_id: int | None = None,
        for_update: bool = False,
    ) -> list[ResourceClaim]: ...

    async def list_for_booking(self, booking_id: int) -> list[ResourceClaim]: ...

    async def get_many(self, claim_ids: Iterable[int]) -> list[ResourceClaim]: ...

    async def create(
        self,
        *,
        booking_id: int,
        resource_id: int,
        starts_at: datetime,
        ends_at: datetime,
    ) -> ResourceClaim: ...

    async def move(self, claim: ResourceClaim, resource_id: int) -> ResourceClaim: ...

    async def delete_for_booking(self, booking_id: int) -> int: ...


class BookingRepository(Protocol):
    async def create(self, **fields: Any) -> Booking: ...

    async def get(self, booking_id: int) -> Booking | None: ...

    async def get_for_update(self, booking_id: int) -> Booking | None: ...

    async def save(self, booking: Booking) -> Booking: ...

    async def delete(self, booking: Booking) -> None: ...


class RuleRepository(Protocol):
    async def list_blackouts(self, date_key: date, scopes: Sequence[RuleScope]) -> list[BlackoutRule]: ...

    async def list_buffers(self, scopes: Sequence[RuleScope]) -> list[BufferRule]: ...
