from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional

from ..models import Activity, ResourceType
from .errors import ValidationError

AXE_GUESTS_PER_BAY = 8
DUCKPIN_GUESTS_PER_LANE = 6

BUYOUT_THRESHOLD = 25
VENUE_MAX_PARTY_SIZE = 60

MAX_PARTY_SIZES: dict[Activity, int] = {
    Activity.AXE: 16,
    Activity.DUCKPIN: 24,
    Activity.COMBO: 24,
}

ACTIVITY_DURATIONS = (30, 60, 120)
COMBO_SEGMENT_DURATIONS = (30, 60, 120)
DEFAULT_COMBO_SEGMENT_MINUTES = 60
SLOT_STEPS = (15, 30, 60)

PARTY_AREA_MIN_MINUTES = 60
PARTY_AREA_MAX_MINUTES = 480


@dataclass(frozen=True)
class ResourceNeeds:
    axe: int = 0
    duckpin: int = 0
    buyout: bool = False

    def count_for(self, resource_type: ResourceType) -> int:
        if resource_type == ResourceType.AXE:
            return self.axe
        if resource_type == ResourceType.DUCKPIN:
            return self.duckpin
        return 0

    def resolve(self, inventory: Mapping[ResourceType, int]) -> "ResourceNeeds":
        """A buyout claims the entire active inventory of every activity resource type."""
        if not self.buyout:
            return self
        return ResourceNeeds(
            axe=inventory.get(ResourceType.AXE, 0),
            duckpin=inventory.get(ResourceType.DUCKPIN, 0),
            buyout=True,
        )


def axe_bays_for_party(party_size: int) -> int:
    return max(1, math.ceil(party_size / AXE_GUESTS_PER_BAY))


def duckpin_lanes_for_party(party_size: int) -> int:
    return max(1, math.ceil(party_size / DUCKPIN_GUESTS_PER_LANE))


def is_buyout(party_size: int) -> bool:
    return party_size >= BUYOUT_THRESHOLD


def required_resources(activity: Activity, party_size: int) -> ResourceNeeds:
    if is_buyout(party_size):
        return ResourceNeeds(buyout=True)
    if activity == Activity.AXE:
        return ResourceNeeds(axe=axe_bays_for_party(party_size))
    if activity == Activity.DUCKPIN:
        return ResourceNeeds(duckpin=duckpin_lanes_for_party(party_size))
    return ResourceNeeds(
        axe=axe_bays_for_party(party_size),
        duckpin=duckpin_lanes_for_party(party_size),
    )


def validate_party_size(activity: Activity, party_size: int) -> None:
    if party_size < 1:
        raise ValidationError("party_size must be at least 1")
    if is_buyout(party_size):
        if party_size > VENUE_MAX_PARTY_SIZE:
            raise ValidationError(f"party_size exceeds venue maximum of {VENUE_MAX_PARTY_SIZE}")
        return
    limit = MAX_PARTY_SIZES[activity]
    if party_size > limit:
        raise ValidationError(f"party_size exceeds maximum of {limit} for {activity.value}")


def validate_duration(activity: Activity, duration_minutes: Optional[int]) -> None:
    if activity == Activity.COMBO:
        return
    if duration_minutes not in ACTIVITY_DURATIONS:
        raise ValidationError(f"duration_minutes must be one of {ACTIVITY_DURATIONS}")


def validate_combo_minutes(axe_minutes: int, duckpin_minutes: int) -> None:
    if axe_minutes not in COMBO_SEGMENT_DURATIONS or duckpin_minutes not in COMBO_SEGMENT_DURATIONS:
        raise ValidationError(f"combo segment minutes must be one of {COMBO_SEGMENT_DURATIONS}")


def validate_step(step: int) -> None:
    if step not in SLOT_STEPS:
        raise ValidationError(f"slot step must be one of {SLOT_STEPS}")


def normalize_party_area_minutes(minutes: Optional[int]) -> Optional[int]:
    """Round to the hour and clamp to 60..480; None keeps the main window length."""
    if minutes is None:
        return None
    hours = math.floor(minutes / 60 + 0.5)
    return min(PARTY_AREA_MAX_MINUTES, max(PARTY_AREA_MIN_MINUTES, hours * 60))
