"""
Telemetry timeline of a recorded track.

Holds the ordered track points together with their derived kinematics and the
boundaries of every channel, and answers point queries by progress, elapsed
time, absolute time, distance or geographic position.

All interpolated values are produced between two neighbouring track points:
- progress is expressed between 0 and 100
- distances are in kilometers, speed in km/h, elevation in meters
- times are aware datetimes, offsets are in milliseconds
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from trackscope.models.boundary import InputValue, MinMax, TrackBoundaries
from trackscope.models.sonda import Sonda
from trackscope.models.track import (
    DEFAULT_CENTER,
    GeoPosition,
    TrackPoint,
    from_millis,
    to_millis,
)
from trackscope.services.analyzer import analyze_track
from trackscope.services.gpx_parser import TrackSource, load_track_points
from trackscope.utils.geodesy import haversine_distance
from trackscope.utils.timing import timed


logger = logging.getLogger(__name__)


class Telemetry:
    """
    Ordered, time-ascending track with derived kinematics.

    The analysis pass runs once in the constructor; afterwards the instance is
    read-only and can be queried from several threads.
    """

    def __init__(self, track: Sequence[TrackPoint]):
        # tuple: O(1) random access and size
        self.track: tuple[TrackPoint, ...] = tuple(track)
        self.boundaries = TrackBoundaries()

        with timed("analyze GPS data"):
            self.kinematics = analyze_track(self.track, self.boundaries)
        # shared by every Sonda, read-only from here on
        self.boundaries.freeze()

        self._times_ms: NDArray[np.int64] = np.array([p.time_ms for p in self.track], dtype=np.int64)
        self._latitude = np.array([p.latitude for p in self.track], dtype=np.float64)
        self._longitude = np.array([p.longitude for p in self.track], dtype=np.float64)

        self._center = DEFAULT_CENTER
        if self.track:
            self._center = GeoPosition(self.boundaries.latitude.mean, self.boundaries.longitude.mean)

    @classmethod
    def load(cls, source: TrackSource) -> "Telemetry":
        """
        Load a GPX file path, bytes or binary stream.

        Raises:
            ValueError: the document is not well-formed XML
            OSError: the source cannot be read
        """
        with timed("load telemetry"):
            points = load_track_points(source)
            logger.info(f"found {len(points)} track points")
            data = cls(points)
        if data.track:
            logger.debug(f"first: {data.kinematics.describe(data.track[0], 0)}")
            logger.debug(f"last: {data.kinematics.describe(data.track[-1], len(data) - 1)}")
        logger.info(
            f"elevation boundary: {data.boundaries.elevation}, "
            f"max speed: {data.boundaries.speed.max:.02f}"
        )
        return data

    @classmethod
    def empty(cls) -> "Telemetry":
        return cls([])

    @classmethod
    def sample(cls, resource: TrackSource) -> "Telemetry":
        """Load the demo track, an unreadable resource yields an empty telemetry."""
        with timed("load sample gps data"):
            try:
                return cls.load(resource)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load sample track {resource}: {e}")
                return cls.empty()

    def __len__(self) -> int:
        return len(self.track)

    @property
    def center_geo_position(self) -> GeoPosition:
        return self._center

    @property
    def min_time(self) -> Optional[datetime]:
        return self.track[0].time if self.track else None

    @property
    def max_time(self) -> Optional[datetime]:
        return self.track[-1].time if self.track else None

    @property
    def total_distance(self) -> float:
        """Kilometers up to the last track point, 0 for an empty track."""
        if not self.track:
            return 0.0
        return float(self.kinematics.distance[-1])

    @property
    def duration_ms(self) -> int:
        if not self.track:
            return 0
        return int(self._times_ms[-1] - self._times_ms[0])

    # ------------------------------------------------------------------
    # progress mapping, a coarse linear mapping between first and last point
    # ------------------------------------------------------------------

    def distance_for_progress(self, progress: float) -> Optional[float]:
        """Interpolated distance for the given progress."""
        return self._value_for_progress(progress, self.kinematics.distance)

    def time_for_progress(self, progress: float) -> Optional[datetime]:
        """Interpolated time for the given progress."""
        millis = self._value_for_progress(progress, self._times_ms)
        return from_millis(millis) if millis is not None else None

    def _value_for_progress(self, progress: float, values: NDArray) -> Optional[float]:
        if len(values) == 0:
            return None
        if progress <= 0:
            return float(values[0])
        if progress >= 100:
            return float(values[-1])
        return _interpolate(progress, float(values[0]), float(values[-1]))

    def progress_for_time(self, t: datetime) -> float:
        """Progress between 0 and 100 according to the elapsed time."""
        if not self.track:
            return 0.0
        return _progress_for_value(to_millis(t), float(self._times_ms[0]), float(self._times_ms[-1]))

    def progress_for_distance(self, d: float) -> float:
        """Progress between 0 and 100 according to the covered distance."""
        if not self.track:
            return 0.0
        distance = self.kinematics.distance
        return _progress_for_value(d, float(distance[0]), float(distance[-1]))

    # ------------------------------------------------------------------
    # point queries
    # ------------------------------------------------------------------

    def sonda_for_relative_time(self, offset_ms: int) -> Optional[Sonda]:
        if not self.track:
            return None
        return self._search(float(self._times_ms[0] + int(offset_ms)), self._times_ms)

    def sonda_for_progress(self, progress: float) -> Optional[Sonda]:
        t = self.time_for_progress(progress)
        if t is None:
            return None
        return self.sonda_for_absolute_time(t)

    def sonda_for_position(self, gp: GeoPosition) -> Optional[Sonda]:
        """
        Snapshot at the track point closest to the given position.

        Every point takes part in the scan, endpoints included.
        """
        if len(self.track) < 3:
            return None
        distances = haversine_distance(self._latitude, self._longitude, gp.latitude, gp.longitude)
        nearest = self.track[int(np.argmin(distances))]
        return self.sonda_for_absolute_time(nearest.time)

    def sonda_for_absolute_time(self, t: datetime) -> Sonda:
        return self._search(float(to_millis(t)), self._times_ms)

    def sonda_for_distance(self, d: float) -> Sonda:
        return self._search(d, self.kinematics.distance)

    def _search(self, target: float, keys: NDArray) -> Sonda:
        """Binary search for the bracketing points, then interpolate."""
        n = len(self.track)
        if n < 2:
            return Sonda.empty()

        ix = _find_nearest_index(keys, target)
        if ix == 0:
            left, right = 0, 1
        elif ix >= n - 1:
            left, right = n - 2, n - 1
        elif target < keys[ix]:
            left, right = ix, ix + 1
        else:
            left, right = ix - 1, ix

        progress = _progress_for_value(target, float(keys[left]), float(keys[right]))
        return self._interpolate_sonda(progress, left, right).with_track_index(ix)

    def _interpolate_sonda(self, progress: float, li: int, ri: int) -> Sonda:
        left, right = self.track[li], self.track[ri]
        k = self.kinematics
        b = self.boundaries

        t = from_millis(_interpolate(progress, float(self._times_ms[li]), float(self._times_ms[ri])))
        elevation = _interpolate(progress, left.elevation, right.elevation)
        # only advances within the left segment
        distance = float(k.distance[li]) + _interpolate(progress, 0.0, float(k.segment[li]))
        location = GeoPosition(
            _interpolate(progress, left.latitude, right.latitude),
            _interpolate(progress, left.longitude, right.longitude),
        )

        def channel(lv: Optional[float], rv: Optional[float], boundary: MinMax) -> Optional[InputValue]:
            if lv is None or rv is None:
                return None
            return InputValue(_interpolate(progress, lv, rv), boundary)

        lx, rx = left.extension, right.extension
        first_ms = int(self._times_ms[0])
        elapsed = MinMax.fixed(0.0, float(self.duration_ms)).freeze()
        return Sonda(
            time=t,
            elapsed_time=InputValue(float(to_millis(t) - first_ms), elapsed),
            location=location,
            elevation=InputValue(elevation, b.elevation),
            # speed, bearing and grade hold the value of the left point
            grade=InputValue(float(k.grade[li]), b.grade),
            distance=InputValue(distance, MinMax.fixed(0.0, self.total_distance).freeze()),
            speed=InputValue(float(k.speed[li]), b.speed),
            bearing=InputValue(float(k.bearing[li]), b.bearing),
            cadence=channel(lx.cadence, rx.cadence, b.cadence),
            heart_rate=channel(lx.heart_rate, rx.heart_rate, b.heart_rate),
            power=channel(lx.power, rx.power, b.power),
            temperature=channel(lx.temperature, rx.temperature, b.temperature),
        )

    # ------------------------------------------------------------------
    # export
    # ------------------------------------------------------------------

    def to_frame(self) -> pd.DataFrame:
        """One row per track point, absent sensor channels are NaN."""
        k = self.kinematics

        def optional(name: str) -> NDArray[np.float64]:
            values = [getattr(p.extension, name) for p in self.track]
            return np.array([np.nan if v is None else v for v in values], dtype=np.float64)

        first_ms = int(self._times_ms[0]) if self.track else 0
        return pd.DataFrame({
            "time": pd.to_datetime(self._times_ms, unit="ms", utc=True),
            "elapsed_ms": self._times_ms - first_ms,
            "latitude": self._latitude,
            "longitude": self._longitude,
            "elevation": np.array([p.elevation for p in self.track], dtype=np.float64),
            "distance": k.distance,
            "segment": k.segment,
            "speed": k.speed,
            "bearing": k.bearing,
            "grade": k.grade,
            "cadence": optional("cadence"),
            "heart_rate": optional("heart_rate"),
            "power": optional("power"),
            "temperature": optional("temperature"),
        })

    def elevation_gain(self) -> float:
        """Sum of all climbs in meters."""
        if len(self.track) < 2:
            return 0.0
        ele = np.array([p.elevation for p in self.track], dtype=np.float64)
        diff = np.diff(ele)
        return float(diff[diff > 0].sum())


@dataclass
class TrackSummary:
    """Lightweight summary of a track for listing."""

    id: str
    name: str
    source_file: str
    point_count: int
    start_time: Optional[str]
    end_time: Optional[str]
    duration_ms: int
    total_distance_km: float
    elevation_gain_m: float

    @classmethod
    def from_telemetry(cls, track_id: str, source_file: Path, telemetry: Telemetry) -> "TrackSummary":
        return cls(
            id=track_id,
            name=source_file.stem,
            source_file=str(source_file),
            point_count=len(telemetry),
            start_time=telemetry.min_time.isoformat() if telemetry.min_time else None,
            end_time=telemetry.max_time.isoformat() if telemetry.max_time else None,
            duration_ms=telemetry.duration_ms,
            total_distance_km=telemetry.total_distance,
            elevation_gain_m=telemetry.elevation_gain(),
        )


def _find_nearest_index(keys: NDArray, target: float) -> int:
    """
    Bisect on [lo, hi) until fewer than 2 candidates remain.

    Yields the last index whose key is not above the target, 0 when the
    target lies before the first key.
    """
    lo, hi = 0, len(keys)
    while hi - lo >= 2:
        mid = lo + (hi - lo) // 2
        if target < keys[mid]:
            hi = mid
        else:
            lo = mid
    return lo


def _progress_for_value(v: float, first: float, last: float) -> float:
    if v <= first:
        return 0.0
    if v >= last:
        return 100.0
    return (v - first) * 100 / (last - first)


def _interpolate(f: float, left: float, right: float) -> float:
    return left + f * (right - left) / 100
