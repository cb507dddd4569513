from __future__ import annotations

from typing import Optional

from ..models import Activity
from .capacity import duckpin_lanes_for_party
from .planner import SchedulingRequest

AXE_PER_PERSON_HOUR_CENTS = 2500
DUCKPIN_PER_LANE_HOUR_CENTS = 4000
PARTY_AREA_PER_HOUR_CENTS = 5000

# Combo per-unit prices by segment length, in dollars.
COMBO_DUCKPIN_LANE_DOLLARS = {30: 30, 60: 40, 120: 75}
COMBO_AXE_PERSON_DOLLARS = {30: 15, 60: 20, 120: 35}


def combo_duckpin_lane_dollars(minutes: int) -> int:
    return COMBO_DUCKPIN_LANE_DOLLARS.get(minutes, round(40 * minutes / 60))


def combo_axe_person_dollars(minutes: int) -> int:
    return COMBO_AXE_PERSON_DOLLARS.get(minutes, round(20 * minutes / 60))


def activity_cents(request: SchedulingRequest) -> int:
    hours = request.duration_minutes / 60
    if request.activity == Activity.AXE:
        return round(request.party_size * AXE_PER_PERSON_HOUR_CENTS * hours)
    lanes = duckpin_lanes_for_party(request.party_size)
    if request.activity == Activity.DUCKPIN:
        return round(lanes * DUCKPIN_PER_LANE_HOUR_CENTS * hours)
    duckpin_part = lanes * combo_duckpin_lane_dollars(request.combo_duckpin_minutes)
    axe_part = request.party_size * combo_axe_person_dollars(request.combo_axe_minutes)
    return (duckpin_part + axe_part) * 100


def party_area_cents(minutes: Optional[int], area_count: int) -> int:
    if not minutes or area_count <= 0:
        return 0
    return round(PARTY_AREA_PER_HOUR_CENTS * minutes / 60) * area_count


def total_cents(request: SchedulingRequest, *, override_cents: Optional[int] = None) -> int:
    if override_cents is not None and override_cents > 0:
        return override_cents
    overlay_minutes = request.party_area_minutes or request.total_minutes
    return activity_cents(request) + party_area_cents(
        overlay_minutes if request.party_areas else None,
        len(request.party_areas),
    )
