"""
Tests for telemetry queries.
"""

import logging
import math
from datetime import timedelta
from pathlib import Path

import numpy as np
import pytest
from numpy.testing import assert_allclose

from conftest import START, make_point
from trackscope.models.sonda import Sonda
from trackscope.models.telemetry import Telemetry, TrackSummary
from trackscope.models.track import DEFAULT_CENTER, GeoPosition
from trackscope.services.repository import DEFAULT_SAMPLE_GPX
from trackscope.utils.geodesy import distance_3d
from trackscope.utils.sample_data import generate_loop_ride


D01 = distance_3d(47.000, 8.000, 500.0, 47.001, 8.001, 505.0)
D12 = distance_3d(47.001, 8.001, 505.0, 47.002, 8.002, 510.0)


@pytest.fixture
def telemetry(three_points):
    return Telemetry(three_points)


@pytest.fixture
def ride(tmp_path):
    """A generated two minute loop with sensor channels."""
    path = generate_loop_ride(tmp_path / "loop.gpx", duration_s=120.0, loop_radius_m=150.0, seed=5)
    return Telemetry.load(path)


class TestTelemetryBasics:
    """Tests for track level properties."""

    def test_total_distance(self, telemetry):
        assert_allclose(telemetry.total_distance, D01 + D12, rtol=1e-12)

    def test_min_max_time(self, telemetry):
        assert telemetry.min_time == START
        assert telemetry.max_time == START + timedelta(seconds=10)
        assert telemetry.duration_ms == 10000

    def test_center_position(self, telemetry):
        center = telemetry.center_geo_position
        assert_allclose(center.latitude, 47.001, rtol=1e-12)
        assert_allclose(center.longitude, 8.001, rtol=1e-12)

    def test_cumulative_distance_non_decreasing(self, ride):
        distance = ride.kinematics.distance
        assert distance[0] == 0.0
        assert np.all(np.diff(distance) >= 0)
        assert ride.total_distance == distance[-1]

    def test_elevation_boundary_holds_every_point(self, ride):
        boundary = ride.boundaries.elevation
        for point in ride.track:
            assert boundary.min <= point.elevation <= boundary.max

    def test_summary(self, telemetry):
        summary = TrackSummary.from_telemetry("abc", Path("/tmp/climb.gpx"), telemetry)

        assert summary.name == "climb"
        assert summary.point_count == 3
        assert summary.start_time == START.isoformat()
        assert summary.elevation_gain_m == 10.0

    def test_to_frame(self, three_points):
        points = three_points[:2] + [make_point(10, 47.002, 8.002, 510.0, heart_rate=150.0)]
        frame = Telemetry(points).to_frame()

        assert len(frame) == 3
        assert list(frame["elapsed_ms"]) == [0, 5000, 10000]
        assert math.isnan(frame["heart_rate"].iloc[0])
        assert frame["heart_rate"].iloc[2] == 150.0
        assert_allclose(frame["distance"].iloc[-1], D01 + D12, rtol=1e-12)


class TestSharedBoundaries:
    """Boundaries are handed out to every snapshot and stay read-only."""

    def test_track_boundaries_frozen_after_analysis(self, telemetry):
        with pytest.raises(ValueError):
            telemetry.boundaries.elevation.sample(1000.0)

        assert telemetry.boundaries.elevation.range() == (500.0, 510.0)

    def test_sonda_boundaries_cannot_be_sampled(self, telemetry):
        sonda = telemetry.sonda_for_relative_time(2500)

        for value in (sonda.elevation, sonda.speed, sonda.elapsed_time, sonda.distance):
            with pytest.raises(ValueError):
                value.boundary.sample(-1.0)

        assert sonda.elevation.boundary is telemetry.boundaries.elevation
        assert telemetry.boundaries.elevation.count == 3


class TestEmptyTelemetry:
    """Degenerate tracks answer queries without failing."""

    def test_empty(self):
        empty = Telemetry.empty()

        assert len(empty) == 0
        assert empty.total_distance == 0.0
        assert empty.duration_ms == 0
        assert empty.min_time is None
        assert empty.max_time is None
        assert empty.center_geo_position == DEFAULT_CENTER

    def test_queries_on_empty(self):
        empty = Telemetry.empty()

        assert empty.sonda_for_absolute_time(START) == Sonda.empty()
        assert empty.sonda_for_distance(1.0) == Sonda.empty()
        assert empty.sonda_for_relative_time(0) is None
        assert empty.sonda_for_position(GeoPosition(47.0, 8.0)) is None
        assert empty.sonda_for_progress(50.0) is None
        assert empty.progress_for_time(START) == 0.0
        assert empty.progress_for_distance(1.0) == 0.0
        assert empty.time_for_progress(50.0) is None
        assert empty.distance_for_progress(50.0) is None
        assert empty.to_frame().empty

    def test_single_point_search_is_empty(self):
        single = Telemetry([make_point(0, 47.0, 8.0, 500.0)])

        assert single.sonda_for_absolute_time(START) == Sonda.empty()
        assert single.center_geo_position == GeoPosition(47.0, 8.0)

    def test_position_needs_three_points(self, three_points):
        assert Telemetry(three_points[:2]).sonda_for_position(GeoPosition(47.0, 8.0)) is None


class TestProgress:
    """Tests for the global progress mapping."""

    def test_time_bounds(self, telemetry):
        assert telemetry.progress_for_time(telemetry.min_time) == 0.0
        assert telemetry.progress_for_time(telemetry.max_time) == 100.0
        assert telemetry.progress_for_time(START - timedelta(hours=1)) == 0.0
        assert telemetry.progress_for_time(START + timedelta(hours=1)) == 100.0

    def test_distance_bounds(self, telemetry):
        assert telemetry.progress_for_distance(0.0) == 0.0
        assert telemetry.progress_for_distance(telemetry.total_distance) == 100.0
        assert telemetry.progress_for_distance(-1.0) == 0.0

    def test_time_for_progress(self, telemetry):
        assert telemetry.time_for_progress(-5.0) == START
        assert telemetry.time_for_progress(25.0) == START + timedelta(milliseconds=2500)
        assert telemetry.time_for_progress(150.0) == START + timedelta(seconds=10)

    def test_distance_for_progress(self, telemetry):
        assert telemetry.distance_for_progress(0.0) == 0.0
        assert_allclose(telemetry.distance_for_progress(50.0), (D01 + D12) / 2, rtol=1e-12)
        assert telemetry.distance_for_progress(100.0) == telemetry.total_distance

    @pytest.mark.parametrize("progress", [0.5, 12.5, 33.3, 50.0, 87.25, 99.9])
    def test_time_round_trip(self, ride, progress):
        """progress -> time -> progress is the identity up to millisecond rounding."""
        back = ride.progress_for_time(ride.time_for_progress(progress))
        assert_allclose(back, progress, atol=0.01)

    @pytest.mark.parametrize("progress", [1.0, 42.0, 77.7])
    def test_distance_round_trip(self, ride, progress):
        back = ride.progress_for_distance(ride.distance_for_progress(progress))
        assert_allclose(back, progress, atol=1e-9)


class TestSondaQueries:
    """Tests for interpolated snapshots."""

    def test_relative_time_on_second_point(self, telemetry):
        """Five seconds in lands on the middle point."""
        sonda = telemetry.sonda_for_relative_time(5000)

        assert_allclose(sonda.elevation.current, 505.0, rtol=1e-12)
        assert_allclose(sonda.distance.current, D01, rtol=1e-12)
        # speed holds the value of the left point: one segment over 5 s
        assert_allclose(sonda.speed.current, D01 * 720, rtol=1e-12)
        assert_allclose([sonda.location.latitude, sonda.location.longitude], [47.001, 8.001], rtol=1e-12)
        assert sonda.track_index == 1
        assert sonda.elapsed_time.current == 5000.0

    def test_interpolates_between_points(self, telemetry):
        sonda = telemetry.sonda_for_relative_time(2500)

        assert sonda.time == START + timedelta(milliseconds=2500)
        assert_allclose(sonda.elevation.current, 502.5, rtol=1e-12)
        assert_allclose(sonda.location.latitude, 47.0005, rtol=1e-12)
        assert_allclose(sonda.location.longitude, 8.0005, rtol=1e-12)
        assert_allclose(sonda.distance.current, D01 / 2, rtol=1e-12)
        assert sonda.track_index == 0

    def test_holds_lower_point_past_inner_key(self, telemetry):
        """Past an inner key the bracket ends at that key, local progress clamps to 100."""
        sonda = telemetry.sonda_for_relative_time(7000)

        assert sonda.track_index == 1
        assert_allclose(sonda.elevation.current, 505.0, rtol=1e-12)
        assert sonda.elapsed_time.current == 5000.0

    def test_boundaries_attached(self, telemetry):
        sonda = telemetry.sonda_for_relative_time(2500)

        assert sonda.elevation.boundary.range() == (500.0, 510.0)
        assert sonda.elapsed_time.boundary.range() == (0.0, 10000.0)
        assert sonda.distance.boundary.range() == (0.0, telemetry.total_distance)
        assert sonda.elevation.normalized == pytest.approx(0.25)

    def test_before_start_and_after_end(self, telemetry):
        before = telemetry.sonda_for_relative_time(-1000)
        after = telemetry.sonda_for_relative_time(60000)

        assert before.elevation.current == 500.0
        assert before.track_index == 0
        assert_allclose(after.elevation.current, 510.0, rtol=1e-12)
        assert after.track_index == 2

    def test_sonda_for_distance(self, telemetry):
        sonda = telemetry.sonda_for_distance(D01 / 2)

        assert_allclose(sonda.elevation.current, 502.5, rtol=1e-9)
        assert_allclose(sonda.distance.current, D01 / 2, rtol=1e-9)

    def test_sonda_for_progress(self, telemetry):
        by_progress = telemetry.sonda_for_progress(50.0)
        by_time = telemetry.sonda_for_relative_time(5000)

        assert by_progress == by_time

    def test_sonda_for_position(self, telemetry):
        """The closest point is found by a full scan, endpoints included."""
        sonda = telemetry.sonda_for_position(GeoPosition(47.0021, 8.0021))

        assert sonda.track_index == 2
        assert_allclose(sonda.elevation.current, 510.0, rtol=1e-12)

        first = telemetry.sonda_for_position(GeoPosition(46.9, 7.9))
        assert first.track_index == 0
        assert first.elevation.current == 500.0

    def test_optional_channels_need_both_points(self):
        track = [
            make_point(0, 47.000, 8.000, heart_rate=100.0, power=200.0, cadence=80.0),
            make_point(5, 47.001, 8.001, heart_rate=120.0, cadence=90.0),
            make_point(10, 47.002, 8.002, heart_rate=140.0),
        ]
        sonda = Telemetry(track).sonda_for_relative_time(2500)

        assert sonda.heart_rate.current == 110.0
        assert sonda.heart_rate.boundary.range() == (100.0, 140.0)
        assert sonda.cadence.current == 85.0
        assert sonda.power is None
        assert sonda.temperature is None

    def test_every_point_found_by_its_time(self, ride):
        """Searching a point's own time reproduces it."""
        for i, point in enumerate(ride.track):
            sonda = ride.sonda_for_absolute_time(point.time)

            assert abs(sonda.track_index - i) <= 1
            assert_allclose(sonda.location.latitude, point.latitude, rtol=1e-12)
            assert_allclose(sonda.location.longitude, point.longitude, rtol=1e-12)
            assert_allclose(sonda.elevation.current, point.elevation, rtol=1e-12)

    def test_sensor_channels_on_generated_ride(self, ride):
        sonda = ride.sonda_for_progress(50.0)

        assert sonda.heart_rate is not None
        assert sonda.power is not None
        assert sonda.temperature.current == 18.0
        assert 0.0 <= sonda.bearing.current < 360.0


class TestLoading:
    """Tests for loading and the demo track."""

    def test_sample_track(self):
        sample = Telemetry.sample(DEFAULT_SAMPLE_GPX)

        assert len(sample) == 40
        assert sample.total_distance > 0
        assert sample.boundaries.heart_rate.count == 40

    def test_missing_sample_is_empty(self, tmp_path):
        sample = Telemetry.sample(tmp_path / "missing.gpx")

        assert len(sample) == 0

    def test_broken_sample_is_empty(self, tmp_path):
        broken = tmp_path / "broken.gpx"
        broken.write_text("<gpx><trk>")

        assert len(Telemetry.sample(broken)) == 0

    def test_load_logs_first_and_last_point(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="trackscope.models.telemetry"):
            Telemetry.load(DEFAULT_SAMPLE_GPX)

        lines = [r.getMessage() for r in caplog.records if r.name == "trackscope.models.telemetry"]
        assert any(line.startswith("first: 06:10:53 - [47.366074,8.541264]") for line in lines)
        assert any(line.startswith("last: 06:12:11") for line in lines)

    def test_load_broken_raises(self, tmp_path):
        broken = tmp_path / "broken.gpx"
        broken.write_text("<gpx><trk>")

        with pytest.raises(ValueError):
            Telemetry.load(broken)
