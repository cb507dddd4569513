"""Immutable, request-scoped views of venue state.

Everything here is measured in venue-local wall-clock minutes from midnight of
the booking date, so a single request never mixes time zones.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..models import ResourceType, RuleScope


@dataclass(frozen=True)
class MinuteInterval:
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"empty interval [{self.start}, {self.end})")

    @property
    def minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "MinuteInterval") -> bool:
        return self.start < other.end and other.start < self.end

    def padded(self, before: int, after: int) -> "MinuteInterval":
        return MinuteInterval(self.start - before, self.end + after)

    def clamped(self, lower: int, upper: int) -> "MinuteInterval":
        return MinuteInterval(max(lower, self.start), min(upper, self.end))


@dataclass(frozen=True)
class ResourceSnapshot:
    id: int
    name: str
    type: ResourceType
    sort_position: int
    pair_group: Optional[int] = None
    active: bool = True

    @property
    def order_key(self) -> tuple[int, int]:
        return (self.sort_position, self.id)


@dataclass(frozen=True)
class BlackoutWindow:
    interval: MinuteInterval
    scope: RuleScope = RuleScope.ALL


@dataclass(frozen=True)
class BufferPadding:
    before: int = 0
    after: int = 0

    @classmethod
    def combine(cls, paddings: Iterable[tuple[int, int]]) -> "BufferPadding":
        """Largest before/after across every applicable rule; zero when none apply."""
        before = 0
        after = 0
        for rule_before, rule_after in paddings:
            before = max(before, int(rule_before or 0))
            after = max(after, int(rule_after or 0))
        return cls(before=before, after=after)
