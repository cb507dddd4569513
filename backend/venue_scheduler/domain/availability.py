from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Mapping, Optional

from ..models import ResourceType
from .allocator import Occupancy, allocate, assign_party_areas, inventory
from .errors import CapacityError, ConflictError
from .hours import OpenWindow
from .planner import SchedulingRequest, blackout_hit, plan_at
from .segments import overlay_fits
from .snapshots import BlackoutWindow, BufferPadding, ResourceSnapshot

ACTIVITY_TYPES = (ResourceType.AXE, ResourceType.DUCKPIN)


class BlockReason(StrEnum):
    PAST = "past"
    OUTSIDE_HOURS = "outside_hours"
    BLACKOUT = "blackout"
    INVENTORY = "inventory"
    RESOURCES = "resources"
    BUYOUT = "buyout"
    OVERLAY_BEFORE_OPEN = "overlay_before_open"
    PARTY_AREA = "party_area"


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """Everything one availability request reads, loaded once up front."""

    resources: tuple[ResourceSnapshot, ...]
    occupancy: Occupancy = field(default_factory=Occupancy)
    blackouts: tuple[BlackoutWindow, ...] = ()
    padding: BufferPadding = field(default_factory=BufferPadding)
    # Business hours of the date. Blackout padding and overlays are judged
    # against these, as at booking time, even when the caller narrows the window.
    hours: Optional[OpenWindow] = None


def candidate_starts(window: OpenWindow, total_minutes: int, step: int) -> list[int]:
    return list(range(window.open_min, window.close_min - total_minutes + 1, step))


def inventory_covers(request: SchedulingRequest, stock: Mapping[ResourceType, int]) -> bool:
    needs = request.needs
    if needs.buyout:
        return True
    return all(needs.count_for(t) <= stock.get(t, 0) for t in ACTIVITY_TYPES)


def evaluate_start(
    request: SchedulingRequest,
    start_min: int,
    window: OpenWindow,
    snapshot: AvailabilitySnapshot,
    *,
    now_minute: Optional[int] = None,
) -> Optional[BlockReason]:
    """Why ``start_min`` cannot be booked, or None when it can."""
    if now_minute is not None and start_min < now_minute:
        return BlockReason.PAST

    hours = snapshot.hours or window
    stock = inventory(snapshot.resources)
    plan = plan_at(request, start_min, stock)
    if not window.contains(plan.overall.start, plan.overall.end):
        return BlockReason.OUTSIDE_HOURS

    if blackout_hit(plan, request, snapshot.blackouts, snapshot.padding, hours) is not None:
        return BlockReason.BLACKOUT

    if plan.buyout:
        venue_ids = [r.id for r in snapshot.resources if r.type in ACTIVITY_TYPES]
        if snapshot.occupancy.any_busy(venue_ids, plan.overall):
            return BlockReason.BUYOUT
    else:
        for segment in plan.segments:
            try:
                allocate(
                    snapshot.resources,
                    snapshot.occupancy,
                    segment.resource_type,
                    segment.count,
                    segment.interval,
                )
            except CapacityError:
                return BlockReason.INVENTORY
            except ConflictError:
                return BlockReason.RESOURCES

    if plan.overlay is not None:
        if not overlay_fits(plan.overlay, hours.open_min):
            return BlockReason.OVERLAY_BEFORE_OPEN
        try:
            assign_party_areas(snapshot.resources, snapshot.occupancy, plan.party_areas, plan.overlay)
        except (CapacityError, ConflictError):
            return BlockReason.PARTY_AREA

    return None


def compute_blocked_starts(
    request: SchedulingRequest,
    window: OpenWindow,
    snapshot: AvailabilitySnapshot,
    *,
    step: int,
    now_minute: Optional[int] = None,
) -> list[int]:
    """
    Start minutes in ``window`` that cannot be booked for ``request``.

    Read-only over the snapshot; identical inputs always give identical output.
    When the active inventory is smaller than the party needs, every candidate
    is blocked.
    """
    candidates = candidate_starts(window, request.total_minutes, step)
    if not inventory_covers(request, inventory(snapshot.resources)):
        return candidates
    return [
        start
        for start in candidates
        if evaluate_start(request, start, window, snapshot, now_minute=now_minute) is not None
    ]
