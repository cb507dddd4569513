from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import BookingRepository, ClaimRepository, ResourceRepository, RuleRepository
from ..models import (
    BlackoutRule,
    Booking,
    BookingStatus,
    BufferRule,
    Resource,
    ResourceClaim,
    ResourceType,
    RuleScope,
)


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlAlchemyResourceRepository(ResourceRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_configured(
        self,
        types: Sequence[ResourceType],
        *,
        for_update: bool = False,
    ) -> List[Resource]:
        if not types:
            return []
        stmt: Select[tuple[Resource]] = (
            select(Resource)
            .where(Resource.type.in_(list(types)))
            .order_by(Resource.id)
        )
        if for_update:
            # Serialises concurrent allocators touching the same resources.
            stmt = stmt.with_for_update()
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def get_many(self, resource_ids: Iterable[int]) -> List[Resource]:
        ids = list(resource_ids)
        if not ids:
            return []
        rows = await self.session.scalars(select(Resource).where(Resource.id.in_(ids)))
        return list(rows.all())


class SqlAlchemyClaimRepository(ClaimRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_overlapping(
        self,
        resource_ids: Sequence[int],
        start: datetime,
        end: datetime,
        *,
        exclude_booking_id: int | None = None,
        for_update: bool = False,
    ) -> List[ResourceClaim]:
        if not resource_ids:
            return []
        stmt: Select[tuple[ResourceClaim]] = (
            select(ResourceClaim)
            .join(Booking, ResourceClaim.booking_id == Booking.id)
            .where(
                ResourceClaim.resource_id.in_(list(resource_ids)),
                ResourceClaim.starts_at < end,
                ResourceClaim.ends_at > start,
                Booking.status != BookingStatus.CANCELLED,
            )
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(ResourceClaim.booking_id != exclude_booking_id)
        if for_update:
            # A locking read sees claims committed after this transaction's
            # REPEATABLE READ snapshot, including ones we waited on.
            stmt = stmt.with_for_update(of=ResourceClaim)
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_for_booking(self, booking_id: int) -> List[ResourceClaim]:
        stmt = (
            select(ResourceClaim)
            .where(ResourceClaim.booking_id == booking_id)
            .order_by(ResourceClaim.starts_at, ResourceClaim.resource_id)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def get_many(self, claim_ids: Iterable[int]) -> List[ResourceClaim]:
        ids = list(claim_ids)
        if not ids:
            return []
        rows = await self.session.scalars(select(ResourceClaim).where(ResourceClaim.id.in_(ids)))
        return list(rows.all())

    async def create(
        self,
        *,
        booking_id: int,
        resource_id: int,
        starts_at: datetime,
        ends_at: datetime,
    ) -> ResourceClaim:
        claim = ResourceClaim(
            booking_id=booking_id,
            resource_id=resource_id,
            starts_at=starts_at,
            ends_at=ends_at,
            created_at=_utc_now_naive(),
        )
        self.session.add(claim)
        await self.session.flush()
        return claim

    async def move(self, claim: ResourceClaim, resource_id: int) -> ResourceClaim:
        claim.resource_id = resource_id
        self.session.add(claim)
        await self.session.flush()
        return claim

    async def delete_for_booking(self, booking_id: int) -> int:
        result: Any = await self.session.execute(
            delete(ResourceClaim).where(ResourceClaim.booking_id == booking_id)
        )
        return int(result.rowcount or 0)


class SqlAlchemyBookingRepository(BookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, **fields: Any) -> Booking:
        now = _utc_now_naive()
        booking = Booking(version=1, created_at=now, updated_at=now, **fields)
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get(self, booking_id: int) -> Optional[Booking]:
        return await self.session.get(Booking, booking_id)

    async def get_for_update(self, booking_id: int) -> Optional[Booking]:
        result = await self.session.scalar(select(Booking).where(Booking.id == booking_id).with_for_update())
        return result if isinstance(result, Booking) else None

    async def save(self, booking: Booking) -> Booking:
        booking.updated_at = _utc_now_naive()
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def delete(self, booking: Booking) -> None:
        await self.session.delete(booking)
        await self.session.flush()


class SqlAlchemyRuleRepository(RuleRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_blackouts(self, date_key: date, scopes: Sequence[RuleScope]) -> List[BlackoutRule]:
        stmt = (
            select(BlackoutRule)
            .where(BlackoutRule.date_key == date_key, BlackoutRule.activity.in_(list(scopes)))
            .order_by(BlackoutRule.start_min)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_buffers(self, scopes: Sequence[RuleScope]) -> List[BufferRule]:
        stmt = select(BufferRule).where(BufferRule.active.is_(True), BufferRule.activity.in_(list(scopes)))
        rows = await self.session.scalars(stmt)
        return list(rows.all())
