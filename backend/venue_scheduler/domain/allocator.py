"""First-available resource assignment in fixed sort order."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from ..models import ResourceType
from .errors import CapacityError, ConflictError
from .snapshots import MinuteInterval, ResourceSnapshot

# Resource types whose two-unit allocations must come from one physical pair.
PAIRED_TYPES = frozenset({ResourceType.DUCKPIN})


class Occupancy:
    """Busy intervals per resource id, built from existing non-cancelled claims."""

    def __init__(self, busy: Iterable[tuple[int, MinuteInterval]] = ()) -> None:
        self._busy: dict[int, list[MinuteInterval]] = defaultdict(list)
        for resource_id, interval in busy:
            self.occupy(resource_id, interval)

    def occupy(self, resource_id: int, interval: MinuteInterval) -> None:
        self._busy[resource_id].append(interval)

    def is_free(self, resource_id: int, interval: MinuteInterval) -> bool:
        return not any(interval.overlaps(busy) for busy in self._busy.get(resource_id, ()))

    def any_busy(self, resource_ids: Iterable[int], interval: MinuteInterval) -> bool:
        return any(not self.is_free(resource_id, interval) for resource_id in resource_ids)

    def __len__(self) -> int:
        return sum(len(intervals) for intervals in self._busy.values())


def resources_of_type(
    resources: Iterable[ResourceSnapshot],
    resource_type: ResourceType,
) -> list[ResourceSnapshot]:
    return sorted((r for r in resources if r.type == resource_type), key=lambda r: r.order_key)


def inventory(resources: Iterable[ResourceSnapshot]) -> dict[ResourceType, int]:
    counts: dict[ResourceType, int] = defaultdict(int)
    for resource in resources:
        counts[resource.type] += 1
    return dict(counts)


def with_positional_pairs(resources: Sequence[ResourceSnapshot]) -> tuple[ResourceSnapshot, ...]:
    """
    Give lanes a ``pair_group`` by rank among every configured lane when none
    declares one: the first two lanes in sort order are group 1, the next two
    group 2, and so on.

    ``resources`` must include retired lanes, so retiring a lane drops its pair
    instead of shifting every pair behind it.
    """
    lanes = resources_of_type(resources, ResourceType.DUCKPIN)
    if not lanes or any(lane.pair_group is not None for lane in lanes):
        return tuple(resources)
    groups = {lane.id: rank // 2 + 1 for rank, lane in enumerate(lanes)}
    return tuple(
        replace(r, pair_group=groups[r.id]) if r.id in groups else r
        for r in resources
    )


def declared_pairs(lanes: Sequence[ResourceSnapshot]) -> list[tuple[ResourceSnapshot, ResourceSnapshot]]:
    """
    Physical pairs among the given active lanes, ordered by their first lane.

    Lanes sharing a ``pair_group`` form a pair; a group with a retired member
    yields no pair and a lane without a group never pairs.
    """
    ordered = sorted(lanes, key=lambda r: r.order_key)
    groups: dict[int, list[ResourceSnapshot]] = {}
    for lane in ordered:
        if lane.pair_group is None:
            continue
        groups.setdefault(lane.pair_group, []).append(lane)
    return [(group[0], group[1]) for group in groups.values() if len(group) == 2]


def allocate(
    resources: Sequence[ResourceSnapshot],
    occupancy: Occupancy,
    resource_type: ResourceType,
    count: int,
    interval: MinuteInterval,
    *,
    pairing: bool = True,
) -> list[ResourceSnapshot]:
    """``pairing=False`` is for buyouts, which take every lane regardless of pairs."""
    if count <= 0:
        return []

    candidates = resources_of_type(resources, resource_type)
    if len(candidates) < count:
        raise CapacityError(
            f"{count} {resource_type.value} resources required, {len(candidates)} active"
        )

    if pairing and resource_type in PAIRED_TYPES and count == 2:
        pairs = declared_pairs(candidates)
        if not pairs:
            raise CapacityError(f"no {resource_type.value} pair is configured")
        for pair in pairs:
            if all(occupancy.is_free(lane.id, interval) for lane in pair):
                return list(pair)
        raise ConflictError(f"no free {resource_type.value} pair for [{interval.start}, {interval.end})")

    chosen: list[ResourceSnapshot] = []
    for resource in candidates:
        if occupancy.is_free(resource.id, interval):
            chosen.append(resource)
            if len(chosen) == count:
                return chosen
    raise ConflictError(
        f"{len(chosen)} of {count} {resource_type.value} resources free for [{interval.start}, {interval.end})"
    )


def plan_pair_relocation(
    resources: Sequence[ResourceSnapshot],
    occupancy: Occupancy,
    current_ids: Iterable[int],
    interval: MinuteInterval,
) -> Optional[list[ResourceSnapshot]]:
    """
    Target lanes for a booking holding two lanes from different pairs.

    ``occupancy`` must exclude the booking's own claims. Returns None when the
    booking already holds a declared pair or no declared pair is conflict-free,
    in which case the current allocation stays as it is.
    """
    current = frozenset(current_ids)
    if len(current) != 2:
        return None
    pairs = declared_pairs(resources_of_type(resources, ResourceType.DUCKPIN))
    if any(frozenset(lane.id for lane in pair) == current for pair in pairs):
        return None
    for pair in pairs:
        if all(occupancy.is_free(lane.id, interval) for lane in pair):
            return list(pair)
    return None


def assign_party_areas(
    resources: Sequence[ResourceSnapshot],
    occupancy: Occupancy,
    names: Sequence[str],
    interval: MinuteInterval,
) -> list[ResourceSnapshot]:
    by_name = {r.name: r for r in resources_of_type(resources, ResourceType.PARTY)}
    chosen: list[ResourceSnapshot] = []
    for name in names:
        area = by_name.get(name)
        if area is None:
            raise CapacityError(f"party area {name!r} is unavailable")
        if not occupancy.is_free(area.id, interval):
            raise ConflictError(f"party area {name!r} is already booked")
        chosen.append(area)
    return chosen
