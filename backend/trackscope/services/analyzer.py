"""
Analysis pass over a loaded track.

Derives cumulative distance, segment length, smoothed speed, bearing and
smoothed grade for every point, and feeds the channel boundaries.
"""

import logging
import os
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from trackscope.models.boundary import TrackBoundaries
from trackscope.models.track import Kinematics, TrackPoint
from trackscope.utils.geodesy import bearing, distance_3d


logger = logging.getLogger(__name__)

# Speed looks back up to 3 seconds and 1 point forward, grade up to 9 seconds
SPEED_WINDOW_MS = int(os.getenv("TRACKSCOPE_SPEED_WINDOW_MS", "3000"))
GRADE_WINDOW_MS = int(os.getenv("TRACKSCOPE_GRADE_WINDOW_MS", "9000"))
LOOKBACK_POINTS = int(os.getenv("TRACKSCOPE_LOOKBACK_POINTS", "10"))

MILLIS_PER_HOUR = 1000 * 60 * 60


def analyze_track(track: Sequence[TrackPoint], boundaries: TrackBoundaries) -> Kinematics:
    """
    Run the analysis pass.

    Each point's cumulative distance depends on the previous point's, so the
    pass runs strictly forward. The returned arrays are read-only.
    """
    n = len(track)
    kinematics = Kinematics.zeros(n)
    if n == 0:
        return kinematics.freeze()

    lat = np.array([p.latitude for p in track], dtype=np.float64)
    lon = np.array([p.longitude for p in track], dtype=np.float64)
    ele = np.array([p.elevation for p in track], dtype=np.float64)
    times = np.array([p.time_ms for p in track], dtype=np.int64)

    distance = kinematics.distance
    if n > 1:
        segments = distance_3d(lat[:-1], lon[:-1], ele[:-1], lat[1:], lon[1:], ele[1:])
        kinematics.segment[:-1] = segments
        # running sum in track order
        distance[1:] = np.cumsum(segments)
        kinematics.bearing[:-1] = bearing(lat[:-1], lon[:-1], lat[1:], lon[1:])

    for i, point in enumerate(track):
        boundaries.elevation.sample(point.elevation)
        boundaries.latitude.sample(point.latitude)
        boundaries.longitude.sample(point.longitude)
        ext = point.extension
        if ext.cadence is not None:
            boundaries.cadence.sample(ext.cadence)
        if ext.temperature is not None:
            boundaries.temperature.sample(ext.temperature)
        if ext.heart_rate is not None:
            boundaries.heart_rate.sample(ext.heart_rate)
        if ext.power is not None:
            boundaries.power.sample(ext.power)

        if i == n - 1:
            break

        nxt = i + 1
        first = max(0, i - LOOKBACK_POINTS)

        j = _lookback(times, first, i, SPEED_WINDOW_MS)
        dt_hours = float(times[nxt] - times[j]) / MILLIS_PER_HOUR
        if dt_hours != 0:
            kinematics.speed[i] = (distance[nxt] - distance[j]) / dt_hours

        k = _lookback(times, first, i, GRADE_WINDOW_MS)
        run_km = distance[nxt] - distance[k]
        if run_km > 0:
            # meters over kilometers, expressed in percent
            kinematics.grade[i] = (ele[nxt] - ele[k]) / run_km * (100 / 1000.0)

        boundaries.speed.sample(float(kinematics.speed[i]))
        boundaries.bearing.sample(float(kinematics.bearing[i]))
        boundaries.grade.sample(float(kinematics.grade[i]))

    return kinematics.freeze()


def _lookback(times: NDArray[np.int64], first: int, i: int, window_ms: int) -> int:
    """
    Earliest index in [first, i) still within window_ms of point i.

    Scans backwards and stops at the first point outside the window,
    falls back to i itself.
    """
    found = i
    for j in range(i - 1, first - 1, -1):
        if times[i] - times[j] <= window_ms:
            found = j
        else:
            break
    return found
