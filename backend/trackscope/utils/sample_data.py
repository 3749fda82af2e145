"""
Sample data generator for testing.

Generates realistic-looking ride recordings in GPX 1.1 format, including the
Garmin TrackPointExtension sensor channels.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import numpy as np


GPX_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="trackscope"
     xmlns="http://www.topografix.com/GPX/1/1"
     xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v1">
  <trk>
    <name>{name}</name>
    <trkseg>
"""

GPX_FOOTER = """    </trkseg>
  </trk>
</gpx>
"""


def generate_loop_ride(
    output_path: Path,
    duration_s: float = 300.0,
    sample_rate_hz: float = 1.0,
    center_lat: float = 47.366074,  # Zurich, Buerkliplatz
    center_lon: float = 8.541264,
    loop_radius_m: float = 400.0,
    climb_m: float = 40.0,
    start_time: Optional[datetime] = None,
    with_sensors: bool = True,
    seed: Optional[int] = None,
) -> Path:
    """
    Generate a single loop ride with one climb and one descent.

    Sensor channels follow the effort: power and heart rate rise on the
    climb, cadence drops.
    """
    rng = np.random.default_rng(seed)
    if start_time is None:
        start_time = datetime(2017, 9, 24, 6, 10, 53, tzinfo=timezone.utc)

    n_samples = int(duration_s * sample_rate_hz)
    timestamps = np.linspace(0, duration_s, n_samples)

    # Circle around the center, starting south
    angle = timestamps / duration_s * 2 * np.pi
    x_local = loop_radius_m * np.sin(angle) + rng.normal(0, 0.5, n_samples)
    y_local = -loop_radius_m * np.cos(angle) + rng.normal(0, 0.5, n_samples)

    # Convert local meters to GPS coordinates
    meters_per_deg_lat = 111000
    meters_per_deg_lon = 111000 * np.cos(np.radians(center_lat))

    lat = center_lat + y_local / meters_per_deg_lat
    lon = center_lon + x_local / meters_per_deg_lon

    # Climb during the first half, descend during the second one
    elevation = 410.0 + climb_m * np.sin(angle / 2) + rng.normal(0, 0.2, n_samples)

    effort = np.clip(np.cos(angle / 2), 0, 1)
    power = 150 + 150 * effort + rng.normal(0, 10, n_samples)
    heart_rate = 120 + 45 * effort + rng.normal(0, 2, n_samples)
    cadence = 95 - 20 * effort + rng.normal(0, 2, n_samples)
    temperature = np.full(n_samples, 18.0)

    lines = [GPX_HEADER.format(name=output_path.stem)]
    for i in range(n_samples):
        when = start_time + timedelta(seconds=float(timestamps[i]))
        lines.append(f'      <trkpt lat="{lat[i]:.7f}" lon="{lon[i]:.7f}">\n')
        lines.append(f"        <ele>{elevation[i]:.1f}</ele>\n")
        lines.append(f"        <time>{when.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3]}Z</time>\n")
        if with_sensors:
            lines.append(
                "        <extensions>\n"
                f"          <power>{power[i]:.0f}</power>\n"
                "          <gpxtpx:TrackPointExtension>\n"
                f"            <gpxtpx:atemp>{temperature[i]:.0f}</gpxtpx:atemp>\n"
                f"            <gpxtpx:hr>{heart_rate[i]:.0f}</gpxtpx:hr>\n"
                f"            <gpxtpx:cad>{cadence[i]:.0f}</gpxtpx:cad>\n"
                "          </gpxtpx:TrackPointExtension>\n"
                "        </extensions>\n"
            )
        lines.append("      </trkpt>\n")
    lines.append(GPX_FOOTER)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write("".join(lines))

    return output_path


def generate_test_data_set(output_folder: Path) -> list[Path]:
    """Generate a set of test data files."""
    output_folder.mkdir(parents=True, exist_ok=True)

    files = []

    files.append(generate_loop_ride(
        output_folder / "ride_001_short_loop.gpx",
        duration_s=120.0,
        loop_radius_m=150.0,
        seed=1,
    ))

    files.append(generate_loop_ride(
        output_folder / "ride_002_hill_loop.gpx",
        duration_s=600.0,
        loop_radius_m=800.0,
        climb_m=120.0,
        start_time=datetime(2017, 9, 25, 7, 0, 0, tzinfo=timezone.utc),
        seed=2,
    ))

    files.append(generate_loop_ride(
        output_folder / "ride_003_gps_only.gpx",
        duration_s=180.0,
        sample_rate_hz=2.0,
        with_sensors=False,
        start_time=datetime(2017, 9, 26, 8, 0, 0, tzinfo=timezone.utc),
        seed=3,
    ))

    return files


if __name__ == "__main__":
    # Generate test data when run directly
    output = Path("./data/tracks")
    files = generate_test_data_set(output)
    print(f"Generated {len(files)} test files in {output}")
    for f in files:
        print(f"  - {f.name}")
