"""
Single source of segment math for every scheduling entry point.

Availability checks, new bookings, reschedules, edits and repairs all turn a
``SchedulingRequest`` plus a start minute into a ``BookingPlan`` here, so the
intervals a booking claims are always the intervals availability evaluated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from ..models import Activity, ComboOrder, PartyAreaTiming, ResourceType, RuleScope
from .capacity import (
    DEFAULT_COMBO_SEGMENT_MINUTES,
    ResourceNeeds,
    normalize_party_area_minutes,
    required_resources,
    validate_combo_minutes,
    validate_duration,
    validate_party_size,
)
from .hours import OpenWindow
from .segments import combo_segments, overlay_window
from .snapshots import BlackoutWindow, BufferPadding, MinuteInterval

ACTIVITY_RESOURCE_TYPES: dict[Activity, ResourceType] = {
    Activity.AXE: ResourceType.AXE,
    Activity.DUCKPIN: ResourceType.DUCKPIN,
}


@dataclass(frozen=True)
class SchedulingRequest:
    activity: Activity
    party_size: int
    duration_minutes: int
    combo_order: ComboOrder = ComboOrder.DUCKPIN_FIRST
    combo_axe_minutes: int = DEFAULT_COMBO_SEGMENT_MINUTES
    combo_duckpin_minutes: int = DEFAULT_COMBO_SEGMENT_MINUTES
    party_areas: tuple[str, ...] = field(default_factory=tuple)
    party_area_minutes: Optional[int] = None
    party_area_timing: PartyAreaTiming = PartyAreaTiming.DURING

    @property
    def is_combo(self) -> bool:
        return self.activity == Activity.COMBO

    @property
    def total_minutes(self) -> int:
        if self.is_combo:
            return self.combo_axe_minutes + self.combo_duckpin_minutes
        return self.duration_minutes

    @property
    def needs(self) -> ResourceNeeds:
        return required_resources(self.activity, self.party_size)

    def resource_types(self) -> tuple[ResourceType, ...]:
        needs = self.needs
        types: list[ResourceType] = []
        if needs.buyout or needs.axe > 0:
            types.append(ResourceType.AXE)
        if needs.buyout or needs.duckpin > 0:
            types.append(ResourceType.DUCKPIN)
        if self.party_areas:
            types.append(ResourceType.PARTY)
        return tuple(types)

    def rule_scopes(self) -> tuple[RuleScope, ...]:
        """Blackout/buffer scopes that can apply to this request."""
        if self.needs.buyout:
            return tuple(RuleScope)
        scopes = [RuleScope.ALL, RuleScope(self.activity.value)]
        if self.is_combo:
            scopes += [RuleScope.AXE, RuleScope.DUCKPIN]
        return tuple(scopes)


def build_scheduling_request(
    *,
    activity: Activity,
    party_size: int,
    duration_minutes: Optional[int] = None,
    combo_order: Optional[ComboOrder] = None,
    combo_axe_minutes: Optional[int] = None,
    combo_duckpin_minutes: Optional[int] = None,
    party_areas: Iterable[str] = (),
    party_area_minutes: Optional[int] = None,
    party_area_timing: Optional[PartyAreaTiming] = None,
) -> SchedulingRequest:
    """Validate once at the boundary; the result is trusted by everything downstream."""
    validate_party_size(activity, party_size)
    validate_duration(activity, duration_minutes)

    axe_minutes = combo_axe_minutes or DEFAULT_COMBO_SEGMENT_MINUTES
    duckpin_minutes = combo_duckpin_minutes or DEFAULT_COMBO_SEGMENT_MINUTES
    if activity == Activity.COMBO:
        validate_combo_minutes(axe_minutes, duckpin_minutes)
        duration = axe_minutes + duckpin_minutes
    else:
        duration = int(duration_minutes or 0)

    areas = _dedupe_names(party_areas)
    return SchedulingRequest(
        activity=activity,
        party_size=party_size,
        duration_minutes=duration,
        combo_order=combo_order or ComboOrder.DUCKPIN_FIRST,
        combo_axe_minutes=axe_minutes,
        combo_duckpin_minutes=duckpin_minutes,
        party_areas=areas,
        party_area_minutes=normalize_party_area_minutes(party_area_minutes) if areas else None,
        party_area_timing=party_area_timing or PartyAreaTiming.DURING,
    )


def _dedupe_names(names: Iterable[str]) -> tuple[str, ...]:
    seen: list[str] = []
    for raw in names:
        name = str(raw or "").strip()
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


@dataclass(frozen=True)
class SegmentNeed:
    activity: Activity
    resource_type: ResourceType
    count: int
    interval: MinuteInterval


@dataclass(frozen=True)
class BookingPlan:
    overall: MinuteInterval
    segments: tuple[SegmentNeed, ...]
    buyout: bool = False
    overlay: Optional[MinuteInterval] = None
    party_areas: tuple[str, ...] = ()

    @property
    def claim_count(self) -> int:
        return sum(segment.count for segment in self.segments) + len(self.party_areas)


def plan_at(
    request: SchedulingRequest,
    start_min: int,
    inventory: Mapping[ResourceType, int],
) -> BookingPlan:
    needs = request.needs.resolve(inventory)
    overall = MinuteInterval(start_min, start_min + request.total_minutes)

    segments: list[SegmentNeed] = []
    if needs.buyout:
        for resource_type in (ResourceType.AXE, ResourceType.DUCKPIN):
            segments.append(
                SegmentNeed(request.activity, resource_type, needs.count_for(resource_type), overall)
            )
    elif request.is_combo:
        split = combo_segments(
            start_min,
            request.combo_order,
            axe_minutes=request.combo_axe_minutes,
            duckpin_minutes=request.combo_duckpin_minutes,
        )
        for part in (split.first, split.second):
            resource_type = ACTIVITY_RESOURCE_TYPES[part.activity]
            segments.append(SegmentNeed(part.activity, resource_type, needs.count_for(resource_type), part.interval))
    else:
        resource_type = ACTIVITY_RESOURCE_TYPES[request.activity]
        segments.append(SegmentNeed(request.activity, resource_type, needs.count_for(resource_type), overall))

    overlay = None
    if request.party_areas:
        overlay = overlay_window(overall, request.party_area_minutes, request.party_area_timing)

    return BookingPlan(
        overall=overall,
        segments=tuple(segments),
        buyout=needs.buyout,
        overlay=overlay,
        party_areas=request.party_areas,
    )


def blackout_hit(
    plan: BookingPlan,
    request: SchedulingRequest,
    blackouts: Sequence[BlackoutWindow],
    padding: BufferPadding,
    window: OpenWindow,
) -> Optional[BlackoutWindow]:
    """First blackout touching a padded segment window, or None."""
    if not blackouts:
        return None

    if plan.buyout:
        checks = [(plan.overall, None)]
    else:
        checks = [(segment.interval, segment.activity) for segment in plan.segments]

    for interval, sub_activity in checks:
        padded = interval.padded(padding.before, padding.after).clamped(window.open_min, window.close_min)
        for blackout in blackouts:
            if not _applies(blackout.scope, request, sub_activity):
                continue
            if padded.overlaps(blackout.interval):
                return blackout
    return None


def _applies(scope: RuleScope, request: SchedulingRequest, sub_activity: Optional[Activity]) -> bool:
    if scope == RuleScope.ALL or request.needs.buyout:
        return True
    if scope.value == request.activity.value:
        return True
    return sub_activity is not None and scope.value == sub_activity.value
