"""
Tests for distance and drive-time estimation.
"""
import math

import numpy as np
import pytest

from job_routing.core.exceptions import ConfigurationException, InvalidLocationException
from job_routing.services.routing.geo import (
    DriveTimeEstimator,
    ServiceAreaGeocoder,
    haversine_miles,
    validate_location,
)
from job_routing.services.routing.models import Job, Location

from conftest import make_job, offset


class TestHaversine:
    """Tests for great-circle distance."""

    def test_same_point_is_zero(self):
        assert haversine_miles(30.0, -97.0, 30.0, -97.0) == 0.0

    def test_one_degree_latitude(self):
        """One degree of latitude is ~69.1 miles."""
        assert haversine_miles(30.0, -97.0, 31.0, -97.0) == pytest.approx(69.1, abs=0.1)

    def test_known_city_pair(self):
        """Austin to Round Rock is roughly 17 miles as the crow flies."""
        distance = haversine_miles(30.2672, -97.7431, 30.5083, -97.6789)
        assert 16 < distance < 18

    def test_broadcasts_over_arrays(self):
        lats = np.array([30.0, 31.0])
        lons = np.array([-97.0, -97.0])
        result = haversine_miles(30.0, -97.0, lats, lons)
        assert result.shape == (2,)
        assert result[0] == 0.0


class TestDriveTimeEstimator:
    """Tests for DriveTimeEstimator."""

    @pytest.fixture
    def estimator(self):
        return DriveTimeEstimator(average_speed_mph=28, stop_overhead_minutes=3)

    def test_drive_time_formula(self, estimator):
        """28 miles at 28 mph is an hour, plus the stop overhead."""
        assert estimator.drive_time_for_distance(28.0) == pytest.approx(63.0)

    def test_zero_distance_is_overhead_only(self, estimator):
        loc = Location(latitude=30.2672, longitude=-97.7431)
        assert estimator.drive_time(loc, loc) == pytest.approx(3.0)

    def test_negative_distance_never_negative_time(self, estimator):
        assert estimator.drive_time_for_distance(-5.0) == pytest.approx(3.0)

    def test_distance_between_locations(self, estimator):
        a = Location(*offset(0, 0))
        b = Location(*offset(0, 2))
        assert estimator.distance(a, b) == pytest.approx(2.0, rel=1e-3)

    def test_missing_location_raises(self, estimator):
        with pytest.raises(InvalidLocationException):
            estimator.distance(None, Location(latitude=30.0, longitude=-97.0))

    def test_unparseable_coordinate_raises(self, estimator):
        with pytest.raises(InvalidLocationException):
            estimator.drive_time(Location(latitude="north", longitude=-97.0), Location(latitude=30.0, longitude=-97.0))

    @pytest.mark.parametrize("speed", [0, -10, float("nan"), "fast"])
    def test_invalid_speed_rejected(self, speed):
        with pytest.raises(ConfigurationException) as exc_info:
            DriveTimeEstimator(average_speed_mph=speed)
        assert exc_info.value.parameter == "average_speed_mph"

    def test_negative_overhead_rejected(self):
        with pytest.raises(ConfigurationException):
            DriveTimeEstimator(stop_overhead_minutes=-1)

    def test_zero_overhead_allowed(self):
        estimator = DriveTimeEstimator(average_speed_mph=30, stop_overhead_minutes=0)
        assert estimator.drive_time_for_distance(15.0) == pytest.approx(30.0)

    def test_distance_matrix_symmetric_with_zero_diagonal(self, estimator):
        locations = [Location(*offset(e, n)) for e, n in [(0, 0), (1, 2), (-3, 4), (5, -1)]]
        matrix = estimator.distance_matrix(locations)

        assert matrix.shape == (4, 4)
        assert np.array_equal(matrix, matrix.T)
        assert np.all(np.diag(matrix) == 0)
        assert matrix[0, 1] == pytest.approx(math.hypot(1, 2), rel=1e-2)

    def test_distance_matrix_empty(self, estimator):
        assert estimator.distance_matrix([]).shape == (0, 0)

    def test_drive_time_matrix(self, estimator):
        locations = [Location(*offset(0, 0)), Location(*offset(0, 0)), Location(*offset(0, 7))]
        durations = estimator.drive_time_matrix(estimator.distance_matrix(locations))

        assert durations[0, 0] == 0
        # Two different jobs at the same address still cost the stop overhead
        assert durations[0, 1] == pytest.approx(3.0)
        assert durations[0, 2] == pytest.approx(7 / 28 * 60 + 3, rel=1e-3)


class TestValidateLocation:
    """Tests for coordinate validation."""

    def test_valid_location(self):
        loc = validate_location(Location(latitude="30.5", longitude=-97))
        assert loc == Location(latitude=30.5, longitude=-97.0)

    @pytest.mark.parametrize(
        "lat,lon",
        [(95.0, 0.0), (-91.0, 0.0), (0.0, 181.0), (float("inf"), 0.0), (None, 0.0), ("abc", 0.0)],
    )
    def test_invalid_locations(self, lat, lon):
        with pytest.raises(InvalidLocationException):
            validate_location(Location(latitude=lat, longitude=lon), job_id="job-1")

    def test_error_carries_job_id(self):
        with pytest.raises(InvalidLocationException) as exc_info:
            validate_location(None, job_id="job-9")
        assert exc_info.value.job_id == "job-9"
        assert "job-9" in exc_info.value.message


class TestServiceAreaGeocoder:
    """Tests for job location resolution."""

    @pytest.fixture
    def geocoder(self):
        return ServiceAreaGeocoder()

    def test_explicit_coordinates_win(self, geocoder):
        job = make_job("j1", east=1, north=1, service_area="Kyle")
        loc = geocoder.resolve(job)
        assert loc.latitude == pytest.approx(job.latitude)
        assert loc.longitude == pytest.approx(job.longitude)

    def test_service_area_name(self, geocoder):
        loc = geocoder.resolve(Job(id="j2", service_area="  south austin "))
        assert loc == Location(latitude=30.2241, longitude=-97.7470)

    def test_zip_code(self, geocoder):
        loc = geocoder.resolve(Job(id="j3", service_area="Austin, TX 78704-1234"))
        assert loc == Location(latitude=30.2241, longitude=-97.7470)

    def test_unknown_area_raises(self, geocoder):
        with pytest.raises(InvalidLocationException, match="unknown service area"):
            geocoder.resolve(Job(id="j4", service_area="Narnia"))

    def test_nothing_to_resolve_raises(self, geocoder):
        with pytest.raises(InvalidLocationException):
            geocoder.resolve(Job(id="j5"))

    def test_partial_coordinates_raise(self, geocoder):
        """A lone latitude is not silently replaced by the service area."""
        with pytest.raises(InvalidLocationException):
            geocoder.resolve(Job(id="j6", latitude=30.2, service_area="Kyle"))

    def test_custom_areas(self):
        geocoder = ServiceAreaGeocoder(areas={"Mueller": (30.2983, -97.7048)}, zip_codes={"78723": "Mueller"})
        assert geocoder.resolve(Job(id="j7", service_area="78723")) == Location(30.2983, -97.7048)

    def test_label_prefers_canonical_area_name(self, geocoder):
        job = Job(id="j8", service_area="round rock")
        assert geocoder.label(job, geocoder.resolve(job)) == "Round Rock"

    def test_label_uses_free_text_area(self, geocoder):
        job = make_job("j9", service_area="Mueller")
        assert geocoder.label(job, geocoder.resolve(job)) == "Mueller"

    def test_label_falls_back_to_coordinates(self, geocoder):
        job = Job(id="j10", latitude=30.12346, longitude=-97.54321)
        assert geocoder.label(job, geocoder.resolve(job)) == "30.1235, -97.5432"
