from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .errors import ValidationError

# Monday=0 .. Sunday=6
OPEN_HOURS: dict[int, tuple[int, int]] = {
    3: (16 * 60, 22 * 60),
    4: (16 * 60, 23 * 60),
    5: (12 * 60, 23 * 60),
    6: (12 * 60, 21 * 60),
}


@dataclass(frozen=True)
class OpenWindow:
    open_min: int
    close_min: int

    def __post_init__(self) -> None:
        if self.close_min <= self.open_min:
            raise ValidationError("close must be after open")

    def contains(self, start: int, end: int) -> bool:
        return self.open_min <= start and end <= self.close_min

    def narrowed(self, open_min: Optional[int], close_min: Optional[int]) -> "OpenWindow":
        """Intersect with caller-supplied bounds; bounds never widen business hours."""
        lower = self.open_min if open_min is None else max(self.open_min, open_min)
        upper = self.close_min if close_min is None else min(self.close_min, close_min)
        return OpenWindow(lower, upper)


def open_window(date_key: date) -> Optional[OpenWindow]:
    hours = OPEN_HOURS.get(date_key.weekday())
    if hours is None:
        return None
    return OpenWindow(*hours)
