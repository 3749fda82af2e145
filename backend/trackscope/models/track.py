"""
Raw track samples and the kinematics derived from them.

A TrackPoint is what the recording device wrote down. Kinematics are the
channels computed by the analysis pass, kept in arrays indexed exactly like
the track they belong to.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np
from numpy.typing import NDArray


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_millis(t: datetime) -> int:
    """Epoch milliseconds of an aware datetime."""
    return (t - EPOCH) // timedelta(milliseconds=1)


def from_millis(ms: float) -> datetime:
    return EPOCH + timedelta(milliseconds=int(ms))


@dataclass(frozen=True)
class GeoPosition:
    """Latitude/longitude pair in degrees."""

    latitude: float
    longitude: float


# Shown on the map when no track is loaded (Buerkliplatz, Zurich)
DEFAULT_CENTER = GeoPosition(47.366074, 8.541264)


@dataclass(frozen=True)
class SensorExtension:
    """Optional sensor channels recorded next to the GPS fix."""

    cadence: Optional[float] = None
    heart_rate: Optional[float] = None
    power: Optional[float] = None
    temperature: Optional[float] = None


@dataclass(frozen=True)
class TrackPoint:
    """Single raw sample of a track."""

    position: GeoPosition
    elevation: float
    time: datetime
    extension: SensorExtension = field(default_factory=SensorExtension)

    @property
    def latitude(self) -> float:
        return self.position.latitude

    @property
    def longitude(self) -> float:
        return self.position.longitude

    @property
    def time_ms(self) -> int:
        return to_millis(self.time)

    def __str__(self) -> str:
        return (
            f"{self.time.strftime('%H:%M:%S')} - "
            f"[{self.latitude:1.6f},{self.longitude:1.6f}] ^{self.elevation:4.1f}"
        )


@dataclass(frozen=True)
class Kinematics:
    """
    Derived channels of a track, one entry per track point.

    - distance: km from the track start
    - segment: km to the next point
    - speed: km/h, smoothed over a short lookback window
    - bearing: degrees, 0=North
    - grade: percent, smoothed over a longer lookback window

    The last point has no successor, its segment/speed/bearing/grade stay 0.
    """

    distance: NDArray[np.float64]
    segment: NDArray[np.float64]
    speed: NDArray[np.float64]
    bearing: NDArray[np.float64]
    grade: NDArray[np.float64]

    @classmethod
    def zeros(cls, n: int) -> "Kinematics":
        return cls(*(np.zeros(n, dtype=np.float64) for _ in range(5)))

    def __len__(self) -> int:
        return len(self.distance)

    def freeze(self) -> "Kinematics":
        for arr in (self.distance, self.segment, self.speed, self.bearing, self.grade):
            arr.setflags(write=False)
        return self

    def describe(self, point: TrackPoint, i: int) -> str:
        """One-line description of a point with its derived channels."""
        return (
            f"{point} ->{self.distance[i]:3.2f}(Δ{self.segment[i]:3.4f}) "
            f"%{self.grade[i]:2.2f}"
        )
