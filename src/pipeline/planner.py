"""
Split a media duration into fixed-length, contiguous time windows.
"""

import math
from dataclasses import dataclass
from typing import List

from .errors import ValidationError


@dataclass(frozen=True)
class Segment:
    """A planned time window: [start, end) in seconds, 1-based index."""
    index: int
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


def plan_segments(total_duration: float, segment_length: float) -> List[Segment]:
    """
    Plan ``ceil(total_duration / segment_length)`` windows covering the media.

    Boundaries are computed by multiplication so that each window's end is
    exactly the next window's start, and the last end is ``total_duration``.
    """
    if not total_duration > 0:
        raise ValidationError(f"total_duration must be positive, got {total_duration!r}")
    if not segment_length > 0:
        raise ValidationError(f"segment_length must be positive, got {segment_length!r}")

    count = math.ceil(total_duration / segment_length)
    # float division can be off by one near exact multiples
    if count > 1 and (count - 1) * segment_length >= total_duration:
        count -= 1
    elif count * segment_length < total_duration:
        count += 1

    return [
        Segment(
            index=i,
            start=(i - 1) * segment_length,
            end=min(i * segment_length, total_duration),
        )
        for i in range(1, count + 1)
    ]
