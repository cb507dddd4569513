from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..domain.allocator import Occupancy, allocate, assign_party_areas, inventory, plan_pair_relocation
from ..domain.collaborators import PaymentGateway
from ..domain.errors import (
    BookingNotFoundError,
    CapacityError,
    ConflictError,
    ValidationError,
    VersionConflictError,
)
from ..domain.planner import BookingPlan, SchedulingRequest, blackout_hit, build_scheduling_request, plan_at
from ..domain.pricing import total_cents
from ..domain.repositories import BookingRepository, ClaimRepository, ResourceRepository, RuleRepository
from ..domain.segments import overlay_fits
from ..domain.snapshots import MinuteInterval, ResourceSnapshot
from ..models import (
    Activity,
    Booking,
    BookingStatus,
    ComboOrder,
    PaymentMethod,
    ResourceClaim,
    ResourceType,
)
from ..utils.time import local_minutes_to_utc_naive, venue_today
from .availability import claim_interval, load_constraints, load_occupancy, load_resources, resolve_window

logger = logging.getLogger(__name__)


@dataclass
class BookingRepos:
    resources: ResourceRepository
    claims: ClaimRepository
    bookings: BookingRepository
    rules: RuleRepository


@dataclass(frozen=True)
class CustomerDetails:
    name: str
    email: str
    phone: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class PaymentDetails:
    method: PaymentMethod = PaymentMethod.AT_DOOR
    paid: bool = False
    reference: Optional[str] = None
    total_cents_override: Optional[int] = None


@dataclass(frozen=True)
class BookingChanges:
    """Staff edits; ``None`` leaves a field unchanged."""

    status: Optional[BookingStatus] = None
    activity: Optional[Activity] = None
    party_size: Optional[int] = None
    duration_minutes: Optional[int] = None
    combo_order: Optional[ComboOrder] = None
    combo_axe_minutes: Optional[int] = None
    combo_duckpin_minutes: Optional[int] = None
    date_key: Optional[date] = None
    start_min: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    paid: Optional[bool] = None
    total_cents_override: Optional[int] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    @property
    def reschedules(self) -> bool:
        return self.date_key is not None or self.start_min is not None

    @property
    def touches_schedule(self) -> bool:
        return self.reschedules or any(
            value is not None
            for value in (
                self.activity,
                self.party_size,
                self.duration_minutes,
                self.combo_order,
                self.combo_axe_minutes,
                self.combo_duckpin_minutes,
            )
        )


@dataclass(frozen=True)
class _Prepared:
    resources: tuple[ResourceSnapshot, ...]
    plan: BookingPlan
    occupancy: Occupancy


async def _prepare(
    repos: BookingRepos,
    request: SchedulingRequest,
    date_key: date,
    start_min: int,
    *,
    now_utc: Optional[datetime],
    exclude_booking_id: Optional[int] = None,
    reject_past: bool = True,
) -> _Prepared:
    """Validate the placement and lock everything the booking could claim."""
    if reject_past:
        today, now_minute = venue_today(now_utc)
        if date_key < today:
            raise ValidationError("cannot book a past date")
        if date_key == today and start_min < now_minute:
            raise ValidationError("cannot book a time in the past")

    window = resolve_window(date_key)
    resources = await load_resources(repos.resources, request.resource_types(), for_update=True)
    plan = plan_at(request, start_min, inventory(resources))

    if not window.contains(plan.overall.start, plan.overall.end):
        raise ValidationError("selected time is outside business hours")
    if plan.overlay is not None and not overlay_fits(plan.overlay, window.open_min):
        raise ValidationError("party area cannot start before opening")

    constraints = await load_constraints(repos.rules, date_key, request, degrade=False)
    hit = blackout_hit(plan, request, constraints.blackouts, constraints.padding, window)
    if hit is not None:
        raise ConflictError(
            f"blocked by {hit.scope.value} blackout [{hit.interval.start}, {hit.interval.end})"
        )

    span = plan.overall if plan.overlay is None else MinuteInterval(
        min(plan.overall.start, plan.overlay.start),
        max(plan.overall.end, plan.overlay.end),
    )
    occupancy = await load_occupancy(
        repos.claims,
        resources,
        date_key,
        span,
        exclude_booking_id=exclude_booking_id,
        for_update=True,
    )
    return _Prepared(resources=resources, plan=plan, occupancy=occupancy)


async def _insert_claim(
    claim_repo: ClaimRepository,
    *,
    booking_id: int,
    resource_id: int,
    date_key: date,
    interval: MinuteInterval,
) -> ResourceClaim:
    return await claim_repo.create(
        booking_id=booking_id,
        resource_id=resource_id,
        starts_at=local_minutes_to_utc_naive(date_key, interval.start),
        ends_at=local_minutes_to_utc_naive(date_key, interval.end),
    )


async def _claim_plan(
    repos: BookingRepos,
    booking_id: int,
    date_key: date,
    prepared: _Prepared,
) -> list[ResourceClaim]:
    """Allocate and insert every claim of the plan; raises before returning a partial set."""
    plan, occupancy = prepared.plan, prepared.occupancy
    claims: list[ResourceClaim] = []
    for segment in plan.segments:
        chosen = allocate(
            prepared.resources,
            occupancy,
            segment.resource_type,
            segment.count,
            segment.interval,
            pairing=not plan.buyout,
        )
        for resource in chosen:
            claims.append(
                await _insert_claim(
                    repos.claims,
                    booking_id=booking_id,
                    resource_id=resource.id,
                    date_key=date_key,
                    interval=segment.interval,
                )
            )
            occupancy.occupy(resource.id, segment.interval)

    if plan.overlay is not None:
        areas = assign_party_areas(prepared.resources, occupancy, plan.party_areas, plan.overlay)
        for area in areas:
            claims.append(
                await _insert_claim(
                    repos.claims,
                    booking_id=booking_id,
                    resource_id=area.id,
                    date_key=date_key,
                    interval=plan.overlay,
                )
            )
            occupancy.occupy(area.id, plan.overlay)
    return claims


def _schedule_fields(request: SchedulingRequest, date_key: date, plan: BookingPlan) -> dict[str, Any]:
    return {
        "activity": request.activity,
        "party_size": request.party_size,
        "date_key": date_key,
        "start_min": plan.overall.start,
        "duration_minutes": request.total_minutes,
        "starts_at": local_minutes_to_utc_naive(date_key, plan.overall.start),
        "ends_at": local_minutes_to_utc_naive(date_key, plan.overall.end),
        "combo_order": request.combo_order if request.is_combo else None,
        "combo_axe_minutes": request.combo_axe_minutes if request.is_combo else None,
        "combo_duckpin_minutes": request.combo_duckpin_minutes if request.is_combo else None,
        "party_area_minutes": request.party_area_minutes,
        "party_area_timing": request.party_area_timing if request.party_areas else None,
    }


async def create_booking(
    repos: BookingRepos,
    *,
    request: SchedulingRequest,
    date_key: date,
    start_min: int,
    customer: CustomerDetails,
    payment: PaymentDetails = PaymentDetails(),
    now_utc: Optional[datetime] = None,
) -> tuple[Booking, list[ResourceClaim]]:
    prepared = await _prepare(repos, request, date_key, start_min, now_utc=now_utc)

    booking = await repos.bookings.create(
        **_schedule_fields(request, date_key, prepared.plan),
        total_cents=total_cents(request, override_cents=payment.total_cents_override),
        customer_name=customer.name,
        customer_email=customer.email,
        customer_phone=customer.phone,
        notes=customer.notes,
        status=BookingStatus.CONFIRMED,
        paid=payment.paid,
        payment_method=payment.method,
        payment_reference=payment.reference,
    )
    try:
        claims = await _claim_plan(repos, booking.id, date_key, prepared)
    except (CapacityError, ConflictError) as exc:
        logger.warning("allocation failed for booking %s, rolling back: %s", booking.id, exc)
        raise

    logger.info(
        "booking %s created: %s party=%s %s@%s claims=%d",
        booking.id,
        request.activity.value,
        request.party_size,
        date_key,
        start_min,
        len(claims),
    )
    return booking, claims


async def get_booking(
    repos: BookingRepos,
    *,
    booking_id: int,
) -> tuple[Booking, list[ResourceClaim]]:
    booking = await repos.bookings.get(booking_id)
    if booking is None:
        raise BookingNotFoundError("booking not found")
    return booking, await repos.claims.list_for_booking(booking.id)


async def _locked_booking(repos: BookingRepos, booking_id: int, version: Optional[int] = None) -> Booking:
    booking = await repos.bookings.get_for_update(booking_id)
    if booking is None:
        raise BookingNotFoundError("booking not found")
    if version is not None and booking.version != version:
        raise VersionConflictError("version mismatch")
    return booking


async def _party_area_names(repos: BookingRepos, claims: Sequence[ResourceClaim]) -> tuple[str, ...]:
    resources = await repos.resources.get_many({c.resource_id for c in claims})
    areas = [r for r in resources if r.type == ResourceType.PARTY]
    return tuple(r.name for r in sorted(areas, key=lambda r: (r.sort_position or 0, r.id)))


def _request_for(booking: Booking, changes: BookingChanges, party_areas: Sequence[str]) -> SchedulingRequest:
    activity = changes.activity or booking.activity
    duration = changes.duration_minutes or booking.duration_minutes
    return build_scheduling_request(
        activity=activity,
        party_size=changes.party_size or booking.party_size,
        duration_minutes=None if activity == Activity.COMBO else duration,
        combo_order=changes.combo_order or booking.combo_order,
        combo_axe_minutes=changes.combo_axe_minutes or booking.combo_axe_minutes,
        combo_duckpin_minutes=changes.combo_duckpin_minutes or booking.combo_duckpin_minutes,
        party_areas=party_areas,
        party_area_minutes=booking.party_area_minutes,
        party_area_timing=booking.party_area_timing,
    )


def _apply_details(booking: Booking, changes: BookingChanges) -> None:
    for name in ("customer_name", "customer_email", "customer_phone", "notes", "paid"):
        value = getattr(changes, name)
        if value is not None:
            setattr(booking, name, value)
    if changes.total_cents_override is not None and changes.total_cents_override > 0:
        booking.total_cents = changes.total_cents_override


async def update_booking(
    repos: BookingRepos,
    *,
    booking_id: int,
    changes: BookingChanges,
    version: Optional[int] = None,
    now_utc: Optional[datetime] = None,
) -> tuple[Booking, list[ResourceClaim], BookingStatus]:
    """
    Apply staff edits, re-allocating when the schedule changes.

    Returns the booking, its claims after the edit and the status it had
    before. Cancelling releases every claim; reactivating a cancelled booking
    allocates again at its stored (or newly given) time.
    """
    if changes.is_empty():
        raise ValidationError("no updates provided")
    if changes.reschedules and (changes.date_key is None or changes.start_min is None):
        raise ValidationError("reschedule requires both date_key and start_min")

    booking = await _locked_booking(repos, booking_id, version)
    previous_status = BookingStatus(booking.status)
    target_status = changes.status or previous_status

    if target_status == BookingStatus.CANCELLED and changes.touches_schedule:
        raise ValidationError("cannot reschedule a cancelled booking")

    _apply_details(booking, changes)

    if target_status == BookingStatus.CANCELLED:
        released = await repos.claims.delete_for_booking(booking.id)
        if previous_status != BookingStatus.CANCELLED:
            logger.info("booking %s cancelled, released %d claims", booking.id, released)
        claims: list[ResourceClaim] = []
    elif changes.touches_schedule or previous_status == BookingStatus.CANCELLED:
        existing = await repos.claims.list_for_booking(booking.id)
        request = _request_for(booking, changes, await _party_area_names(repos, existing))
        date_key = changes.date_key or booking.date_key
        start_min = booking.start_min if changes.start_min is None else changes.start_min

        prepared = await _prepare(
            repos,
            request,
            date_key,
            start_min,
            now_utc=now_utc,
            exclude_booking_id=booking.id,
            reject_past=changes.reschedules or previous_status == BookingStatus.CANCELLED,
        )
        await repos.claims.delete_for_booking(booking.id)
        claims = await _claim_plan(repos, booking.id, date_key, prepared)
        for name, value in _schedule_fields(request, date_key, prepared.plan).items():
            setattr(booking, name, value)
        logger.info(
            "booking %s rescheduled to %s@%s claims=%d",
            booking.id,
            date_key,
            start_min,
            len(claims),
        )
    else:
        claims = await repos.claims.list_for_booking(booking.id)

    booking.status = target_status
    booking.version += 1
    await repos.bookings.save(booking)
    return booking, claims, previous_status


async def delete_booking(
    repos: BookingRepos,
    *,
    booking_id: int,
    version: Optional[int] = None,
) -> Booking:
    booking = await _locked_booking(repos, booking_id, version)
    released = await repos.claims.delete_for_booking(booking.id)
    await repos.bookings.delete(booking)
    logger.info("booking %s deleted, released %d claims", booking_id, released)
    return booking


async def repair_lane_pairing(
    repos: BookingRepos,
    *,
    booking_id: int,
) -> tuple[Booking, list[ResourceClaim], bool]:
    """Move a booking's two lanes onto one physical pair when a free pair exists."""
    booking = await _locked_booking(repos, booking_id)
    claims = await repos.claims.list_for_booking(booking.id)

    lanes = await load_resources(repos.resources, [ResourceType.DUCKPIN], for_update=True)
    lane_ids = {lane.id for lane in lanes}
    lane_claims = [c for c in claims if c.resource_id in lane_ids]
    if len(lane_claims) != 2:
        return booking, claims, False

    intervals = [claim_interval(c, booking.date_key) for c in lane_claims]
    window = MinuteInterval(min(i.start for i in intervals), max(i.end for i in intervals))
    occupancy = await load_occupancy(
        repos.claims,
        lanes,
        booking.date_key,
        window,
        exclude_booking_id=booking.id,
        for_update=True,
    )
    target = plan_pair_relocation(lanes, occupancy, [c.resource_id for c in lane_claims], window)
    if target is None:
        logger.info("booking %s lanes left as allocated: no relocation available", booking.id)
        return booking, claims, False

    target_ids = {lane.id for lane in target}
    held = {c.resource_id for c in lane_claims}
    movers = [c for c in lane_claims if c.resource_id not in target_ids]
    free_lanes = [lane for lane in target if lane.id not in held]
    for claim, lane in zip(movers, free_lanes):
        await repos.claims.move(claim, lane.id)

    logger.info("booking %s lanes relocated to %s", booking.id, sorted(target_ids))
    return booking, await repos.claims.list_for_booking(booking.id), True


async def reassign_claims(
    repos: BookingRepos,
    *,
    booking_id: int,
    moves: Sequence[tuple[int, int]],
) -> tuple[Booking, list[ResourceClaim]]:
    """Move individual claims (claim id, resource id) to free resources of the same type."""
    if not moves:
        raise ValidationError("no claim moves provided")

    booking = await _locked_booking(repos, booking_id)
    claims = {c.id: c for c in await repos.claims.get_many(claim_id for claim_id, _ in moves)}
    for claim_id, _ in moves:
        claim = claims.get(claim_id)
        if claim is None or claim.booking_id != booking.id:
            raise ValidationError(f"claim {claim_id} does not belong to booking {booking.id}")

    resource_ids = {rid for _, rid in moves} | {c.resource_id for c in claims.values()}
    resources = {r.id: r for r in await repos.resources.get_many(resource_ids)}
    for claim_id, resource_id in moves:
        target = resources.get(resource_id)
        current = resources.get(claims[claim_id].resource_id)
        if target is None:
            raise ValidationError(f"resource {resource_id} not found")
        if not target.active:
            raise ValidationError(f"resource {target.name} is inactive")
        if current is not None and current.type != target.type:
            raise ValidationError(f"resource {target.name} is not a {current.type.value} resource")

    await repos.resources.list_configured(sorted({resources[rid].type for _, rid in moves}), for_update=True)

    moving_ids = {claim_id for claim_id, _ in moves}
    planned: dict[int, list[MinuteInterval]] = {}
    for claim_id, resource_id in moves:
        claim = claims[claim_id]
        interval = claim_interval(claim, booking.date_key)
        overlapping = await repos.claims.list_overlapping(
            [resource_id],
            claim.starts_at,
            claim.ends_at,
            for_update=True,
        )
        blocking = [c for c in overlapping if c.id != claim.id and c.id not in moving_ids]
        if blocking or any(interval.overlaps(other) for other in planned.get(resource_id, ())):
            raise ConflictError(f"resource {resources[resource_id].name} is already booked")
        planned.setdefault(resource_id, []).append(interval)

    for claim_id, resource_id in moves:
        claim = claims[claim_id]
        if claim.resource_id != resource_id:
            await repos.claims.move(claim, resource_id)

    booking.version += 1
    await repos.bookings.save(booking)
    logger.info("booking %s claims reassigned: %s", booking.id, list(moves))
    return booking, await repos.claims.list_for_booking(booking.id)


async def refund_failed_charge(
    payments: PaymentGateway,
    *,
    charge_id: Optional[str],
    amount_cents: Optional[int],
    reason: str,
) -> bool:
    """Compensate an online charge whose booking did not commit."""
    if not charge_id:
        return False
    try:
        await payments.refund(charge_id=charge_id, amount_cents=amount_cents, metadata={"reason": reason})
    except Exception:
        logger.exception("refund of charge %s failed; needs manual follow-up", charge_id)
        return False
    logger.info("charge %s refunded: %s", charge_id, reason)
    return True
