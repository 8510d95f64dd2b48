from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class TimeInterval:
    """Half-open time range ``[start, end)``."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end

    def overlaps(self, other: TimeInterval) -> bool:
        return overlaps(self, other)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    # Touching endpoints do not overlap: [10:00, 11:00) and [11:00, 12:00) are disjoint.
    return a.start < b.end and b.start < a.end
