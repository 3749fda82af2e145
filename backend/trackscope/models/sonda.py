"""
Interpolated snapshot of every metric at one query point.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from trackscope.models.boundary import InputValue, MinMax
from trackscope.models.track import DEFAULT_CENTER, EPOCH, GeoPosition


@dataclass(frozen=True)
class Sonda:
    """
    Value snapshot returned by the telemetry queries.

    Each numeric field carries the boundary of its channel so the consumer can
    normalize it. Optional sensor channels are None when the surrounding track
    points do not both carry them.
    """

    time: datetime
    elapsed_time: InputValue  # milliseconds since the first track point
    location: GeoPosition
    elevation: InputValue
    grade: InputValue
    distance: InputValue
    speed: InputValue
    bearing: InputValue
    cadence: Optional[InputValue] = None
    heart_rate: Optional[InputValue] = None
    power: Optional[InputValue] = None
    temperature: Optional[InputValue] = None
    track_index: int = 0

    @classmethod
    def empty(cls) -> "Sonda":
        def zero() -> InputValue:
            return InputValue(0.0, MinMax.fixed(0.0, 0.0))

        return cls(
            time=EPOCH,
            elapsed_time=zero(),
            location=DEFAULT_CENTER,
            elevation=zero(),
            grade=zero(),
            distance=zero(),
            speed=zero(),
            bearing=zero(),
        )

    def with_track_index(self, ix: int) -> "Sonda":
        return replace(self, track_index=ix)
