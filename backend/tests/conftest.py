"""
Shared fixtures for building tracks in memory.
"""

from datetime import datetime, timedelta, timezone

import pytest

from trackscope.models.track import GeoPosition, SensorExtension, TrackPoint


START = datetime(2017, 9, 24, 6, 10, 53, tzinfo=timezone.utc)


def make_point(seconds: float, lat: float, lon: float, ele: float = 0.0, **channels) -> TrackPoint:
    """Track point recorded `seconds` after START."""
    return TrackPoint(
        position=GeoPosition(lat, lon),
        elevation=ele,
        time=START + timedelta(seconds=seconds),
        extension=SensorExtension(**channels),
    )


@pytest.fixture
def three_points():
    """Climb to the north-east, one point every 5 seconds."""
    return [
        make_point(0, 47.000, 8.000, 500.0),
        make_point(5, 47.001, 8.001, 505.0),
        make_point(10, 47.002, 8.002, 510.0),
    ]
