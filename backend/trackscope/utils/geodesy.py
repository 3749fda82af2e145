"""
Geodesy helpers on a spherical Earth.

All functions accept scalars or numpy arrays (broadcasting), positions are
given in degrees and distances are returned in kilometers.
"""

import numpy as np
from numpy.typing import ArrayLike

# Distances from points on the surface to the center range from 6353 km to 6384 km,
# the usual spherical models settle on a mean radius of 6371 km.
EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: ArrayLike, lon1: ArrayLike, lat2: ArrayLike, lon2: ArrayLike):
    """
    Calculate great-circle distance between two points.

    Accuracy decreases for distant points and close to the poles.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = np.radians(np.subtract(lat2, lat1))
    dlon = np.radians(np.subtract(lon2, lon1))

    a = np.sin(dlat / 2) ** 2 + np.cos(lat2_rad) * np.cos(lat1_rad) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def bearing(lat1: ArrayLike, lon1: ArrayLike, lat2: ArrayLike, lon2: ArrayLike):
    """
    Initial compass bearing from the first point towards the second one.

    Returns:
        Bearing in degrees within [0, 360), 0=North, 90=East
    """
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dlon = np.radians(np.subtract(lon1, lon2))

    y = np.sin(dlon) * np.cos(phi2)
    x = np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(dlon)

    # atan2 of the reversed longitude delta runs counter-clockwise, flip it to compass
    deg = 360.0 - np.mod(np.degrees(np.arctan2(y, x)) + 360.0, 360.0)
    return np.mod(deg, 360.0)


def distance_3d(
    lat1: ArrayLike,
    lon1: ArrayLike,
    ele1: ArrayLike,
    lat2: ArrayLike,
    lon2: ArrayLike,
    ele2: ArrayLike,
):
    """
    Combine the surface distance with the elevation change.

    Args:
        ele1, ele2: Elevations in meters

    Returns:
        Distance in kilometers
    """
    horizontal = haversine_distance(lat1, lon1, lat2, lon2)
    vertical = np.subtract(ele2, ele1) / 1000.0
    return np.sqrt(horizontal**2 + vertical**2)
