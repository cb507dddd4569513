from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..domain.allocator import Occupancy, with_positional_pairs
from ..domain.availability import AvailabilitySnapshot, candidate_starts, compute_blocked_starts, evaluate_start
from ..domain.capacity import PARTY_AREA_MAX_MINUTES, validate_step
from ..domain.errors import ClosedDayError, ConfigurationError, ValidationError
from ..domain.hours import OpenWindow, open_window
from ..domain.planner import SchedulingRequest
from ..domain.repositories import ClaimRepository, ResourceRepository, RuleRepository
from ..domain.snapshots import BlackoutWindow, BufferPadding, MinuteInterval, ResourceSnapshot
from ..models import Resource, ResourceClaim, ResourceType
from ..utils.time import local_minutes_to_utc_naive, utc_naive_to_local_minutes, venue_today

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Constraints:
    blackouts: tuple[BlackoutWindow, ...] = ()
    padding: BufferPadding = field(default_factory=BufferPadding)


def to_snapshots(resources: Iterable[Resource]) -> tuple[ResourceSnapshot, ...]:
    return tuple(
        ResourceSnapshot(
            id=r.id,
            name=r.name,
            type=ResourceType(r.type),
            sort_position=r.sort_position or 0,
            pair_group=r.pair_group,
            active=bool(r.active),
        )
        for r in resources
    )


def claim_interval(claim: ResourceClaim, date_key: date) -> MinuteInterval:
    return MinuteInterval(
        utc_naive_to_local_minutes(claim.starts_at, date_key),
        utc_naive_to_local_minutes(claim.ends_at, date_key),
    )


async def load_resources(
    resource_repo: ResourceRepository,
    types: Sequence[ResourceType],
    *,
    for_update: bool = False,
) -> tuple[ResourceSnapshot, ...]:
    """Active resources of ``types``; lane pairs are fixed over every configured lane."""
    try:
        rows = await resource_repo.list_configured(types, for_update=for_update)
    except SQLAlchemyError as exc:
        raise ConfigurationError("failed to load resources") from exc
    return tuple(r for r in with_positional_pairs(to_snapshots(rows)) if r.active)


async def load_occupancy(
    claim_repo: ClaimRepository,
    resources: Sequence[ResourceSnapshot],
    date_key: date,
    span: MinuteInterval,
    *,
    exclude_booking_id: Optional[int] = None,
    for_update: bool = False,
) -> Occupancy:
    """
    Existing non-cancelled claims on ``resources`` that touch ``span`` of ``date_key``.

    Writers pass ``for_update`` so the read is not served from a stale snapshot.
    """
    claims = await claim_repo.list_overlapping(
        [r.id for r in resources],
        local_minutes_to_utc_naive(date_key, span.start),
        local_minutes_to_utc_naive(date_key, span.end),
        exclude_booking_id=exclude_booking_id,
        for_update=for_update,
    )
    return Occupancy((c.resource_id, claim_interval(c, date_key)) for c in claims)


async def load_constraints(
    rule_repo: RuleRepository,
    date_key: date,
    request: SchedulingRequest,
    *,
    degrade: bool,
) -> Constraints:
    """
    Blackouts for the date and the effective buffer padding for ``request``.

    With ``degrade`` a failed lookup is logged and treated as "no rule";
    otherwise it surfaces as ConfigurationError.
    """
    scopes = request.rule_scopes()

    blackouts: tuple[BlackoutWindow, ...] = ()
    try:
        rows = await rule_repo.list_blackouts(date_key, scopes)
        blackouts = tuple(
            BlackoutWindow(MinuteInterval(row.start_min, row.end_min), row.activity)
            for row in rows
            if row.end_min > row.start_min
        )
    except SQLAlchemyError as exc:
        if not degrade:
            raise ConfigurationError("failed to load blackout rules") from exc
        logger.warning("blackout lookup failed for %s, treating as none: %s", date_key, exc)

    padding = BufferPadding()
    try:
        buffers = await rule_repo.list_buffers(scopes)
        padding = BufferPadding.combine((b.before_min, b.after_min) for b in buffers)
    except SQLAlchemyError as exc:
        if not degrade:
            raise ConfigurationError("failed to load buffer rules") from exc
        logger.warning("buffer lookup failed for %s, treating as zero: %s", date_key, exc)

    return Constraints(blackouts=blackouts, padding=padding)


def search_span(window: OpenWindow, request: SchedulingRequest) -> MinuteInterval:
    if request.party_areas:
        return MinuteInterval(window.open_min - PARTY_AREA_MAX_MINUTES, window.close_min + PARTY_AREA_MAX_MINUTES)
    return MinuteInterval(window.open_min, window.close_min)


def resolve_window(
    date_key: date,
    open_start_min: Optional[int] = None,
    open_end_min: Optional[int] = None,
) -> OpenWindow:
    base = open_window(date_key)
    if base is None:
        raise ClosedDayError(f"closed on {date_key.isoformat()}")
    return base.narrowed(open_start_min, open_end_min)


async def check_availability(
    resource_repo: ResourceRepository,
    claim_repo: ClaimRepository,
    rule_repo: RuleRepository,
    *,
    request: SchedulingRequest,
    date_key: date,
    step: int,
    open_start_min: Optional[int] = None,
    open_end_min: Optional[int] = None,
    now_utc: Optional[datetime] = None,
) -> list[int]:
    validate_step(step)
    today, now_minute = venue_today(now_utc)
    if date_key < today:
        raise ValidationError("cannot check availability for a past date")
    hours = resolve_window(date_key)
    window = hours.narrowed(open_start_min, open_end_min)

    resources = await load_resources(resource_repo, request.resource_types())
    occupancy = await load_occupancy(claim_repo, resources, date_key, search_span(window, request))
    constraints = await load_constraints(rule_repo, date_key, request, degrade=True)

    snapshot = AvailabilitySnapshot(
        resources=resources,
        occupancy=occupancy,
        blackouts=constraints.blackouts,
        padding=constraints.padding,
        hours=hours,
    )
    cutoff = now_minute if date_key == today else None
    blocked = compute_blocked_starts(request, window, snapshot, step=step, now_minute=cutoff)

    if logger.isEnabledFor(logging.DEBUG):
        reasons = Counter(
            str(evaluate_start(request, start, window, snapshot, now_minute=cutoff))
            for start in blocked
        )
        logger.debug(
            "availability %s %s party=%s: %d/%d blocked %s",
            date_key,
            request.activity.value,
            request.party_size,
            len(blocked),
            len(candidate_starts(window, request.total_minutes, step)),
            dict(reasons),
        )
    return blocked
