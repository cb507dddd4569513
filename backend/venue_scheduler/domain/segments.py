from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models import Activity, ComboOrder, PartyAreaTiming
from .snapshots import MinuteInterval


@dataclass(frozen=True)
class ComboSegment:
    activity: Activity
    interval: MinuteInterval


@dataclass(frozen=True)
class ComboSegments:
    first: ComboSegment
    second: ComboSegment

    @property
    def overall(self) -> MinuteInterval:
        return MinuteInterval(self.first.interval.start, self.second.interval.end)

    def for_activity(self, activity: Activity) -> ComboSegment:
        if self.first.activity == activity:
            return self.first
        return self.second


def combo_segments(
    start_min: int,
    order: ComboOrder,
    *,
    axe_minutes: int,
    duckpin_minutes: int,
) -> ComboSegments:
    """Split a combo start into two back-to-back sub-activity windows."""
    if order == ComboOrder.AXE_FIRST:
        first_activity, first_minutes = Activity.AXE, axe_minutes
        second_activity, second_minutes = Activity.DUCKPIN, duckpin_minutes
    else:
        first_activity, first_minutes = Activity.DUCKPIN, duckpin_minutes
        second_activity, second_minutes = Activity.AXE, axe_minutes

    first = MinuteInterval(start_min, start_min + first_minutes)
    second = MinuteInterval(first.end, first.end + second_minutes)
    return ComboSegments(
        first=ComboSegment(first_activity, first),
        second=ComboSegment(second_activity, second),
    )


def overlay_window(
    main: MinuteInterval,
    overlay_minutes: Optional[int],
    timing: PartyAreaTiming,
) -> MinuteInterval:
    minutes = overlay_minutes or main.minutes
    if timing == PartyAreaTiming.BEFORE:
        return MinuteInterval(main.start - minutes, main.start)
    if timing == PartyAreaTiming.AFTER:
        return MinuteInterval(main.end, main.end + minutes)
    return MinuteInterval(main.start, main.start + minutes)


def overlay_fits(overlay: MinuteInterval, open_min: int) -> bool:
    # Closing time is not enforced for overlays.
    return overlay.start >= open_min
