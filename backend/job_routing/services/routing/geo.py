"""
Straight-line distance and drive-time estimation.

No road network is assumed: distances are great-circle (haversine)
miles and drive time is a linear speed model plus a fixed per-stop
overhead (parking, unloading). Both constants are configurable so
callers can tune them per region.
"""

import math
import re
from typing import Any, Optional, Sequence

import numpy as np

from job_routing.core.config import settings
from job_routing.core.exceptions import ConfigurationException, InvalidLocationException
from job_routing.services.routing.models import Job, Location

EARTH_RADIUS_MILES = 3959.0

_ZIP_PATTERN = re.compile(r"\b(\d{5})(?:-\d{4})?\b")


def require_positive(parameter: str, value: Any) -> float:
    """Reject zero, negative and non-numeric configuration values."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationException(parameter, value, "must be a number")
    if not math.isfinite(number) or number <= 0:
        raise ConfigurationException(parameter, value, "must be a positive number")
    return number


def require_non_negative(parameter: str, value: Any) -> float:
    """Reject negative and non-numeric configuration values."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationException(parameter, value, "must be a number")
    if not math.isfinite(number) or number < 0:
        raise ConfigurationException(parameter, value, "must be zero or positive")
    return number


def validate_location(location: Optional[Location], job_id: Optional[str] = None) -> Location:
    """
    Check that a location holds finite, in-range coordinates.

    Raises:
        InvalidLocationException: location missing, unparseable or out of range
    """
    if location is None:
        raise InvalidLocationException(job_id, "location is missing")

    lat = _parse_coordinate(location.latitude, job_id, "latitude")
    lon = _parse_coordinate(location.longitude, job_id, "longitude")

    if not -90.0 <= lat <= 90.0:
        raise InvalidLocationException(job_id, f"latitude {lat} out of range")
    if not -180.0 <= lon <= 180.0:
        raise InvalidLocationException(job_id, f"longitude {lon} out of range")

    return Location(latitude=lat, longitude=lon)


def _parse_coordinate(value: Any, job_id: Optional[str], name: str) -> float:
    if value is None:
        raise InvalidLocationException(job_id, f"{name} is missing")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidLocationException(job_id, f"{name} {value!r} is not a number")
    if not math.isfinite(number):
        raise InvalidLocationException(job_id, f"{name} {value!r} is not finite")
    return number


def haversine_miles(lat1, lon1, lat2, lon2):
    """
    Great-circle distance in miles.

    Accepts scalars or numpy arrays (broadcast); returns the same shape.
    """
    lat1, lon1, lat2, lon2 = map(np.radians, (lat1, lon1, lat2, lon2))
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    # Rounding can push `a` a hair outside [0, 1] for (near-)antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_MILES * c


class DriveTimeEstimator:
    """
    Distance and drive-time estimator.

    drive_time = distance / average_speed_mph * 60 + stop_overhead_minutes
    """

    def __init__(
        self,
        average_speed_mph: Optional[float] = None,
        stop_overhead_minutes: Optional[float] = None,
    ):
        """
        Initialize estimator.

        Args:
            average_speed_mph: Assumed door-to-door average speed
            stop_overhead_minutes: Fixed time added to every leg

        Raises:
            ConfigurationException: non-positive speed or negative overhead
        """
        self.average_speed_mph = require_positive(
            "average_speed_mph",
            settings.AVERAGE_SPEED_MPH if average_speed_mph is None else average_speed_mph,
        )
        self.stop_overhead_minutes = require_non_negative(
            "stop_overhead_minutes",
            settings.STOP_OVERHEAD_MINUTES if stop_overhead_minutes is None else stop_overhead_minutes,
        )

    def distance(self, a: Optional[Location], b: Optional[Location]) -> float:
        """Straight-line distance between two locations in miles."""
        a = validate_location(a)
        b = validate_location(b)
        return float(haversine_miles(a.latitude, a.longitude, b.latitude, b.longitude))

    def drive_time(self, a: Optional[Location], b: Optional[Location]) -> float:
        """Estimated drive time between two locations in minutes."""
        return self.drive_time_for_distance(self.distance(a, b))

    def drive_time_for_distance(self, miles: float) -> float:
        """Convert a distance in miles into estimated minutes of driving."""
        return max(miles, 0.0) / self.average_speed_mph * 60 + self.stop_overhead_minutes

    def distance_matrix(self, locations: Sequence[Location]) -> np.ndarray:
        """
        Compute the full NxN distance matrix in miles.

        The result is exactly symmetric with a zero diagonal so that
        tie-breaks do not depend on direction of travel.
        """
        n = len(locations)
        if n == 0:
            return np.zeros((0, 0))

        lats = np.array([loc.latitude for loc in locations], dtype=float)
        lons = np.array([loc.longitude for loc in locations], dtype=float)

        matrix = haversine_miles(lats[:, None], lons[:, None], lats[None, :], lons[None, :])

        matrix = (matrix + matrix.T) / 2
        np.fill_diagonal(matrix, 0.0)

        return matrix

    def drive_time_matrix(self, distances: np.ndarray) -> np.ndarray:
        """Convert a distance matrix into a drive-time matrix in minutes."""
        durations = np.maximum(distances, 0.0) / self.average_speed_mph * 60 + self.stop_overhead_minutes
        if durations.size:
            np.fill_diagonal(durations, 0.0)
        return durations


class ServiceAreaGeocoder:
    """
    Resolve a job's location.

    Resolution order:
    1. Explicit latitude/longitude on the job
    2. Known service-area name (case-insensitive)
    3. Known 5-digit ZIP code anywhere in the service-area string
    """

    # Austin, TX metro service areas
    DEFAULT_AREAS: dict[str, tuple[float, float]] = {
        "Downtown Austin": (30.2672, -97.7431),
        "North Austin": (30.3922, -97.7278),
        "South Austin": (30.2241, -97.7470),
        "East Austin": (30.2711, -97.7097),
        "West Austin": (30.3048, -97.8206),
        "Round Rock": (30.5083, -97.6789),
        "Pflugerville": (30.4394, -97.6200),
        "Cedar Park": (30.5051, -97.8203),
        "Georgetown": (30.6327, -97.6779),
        "Kyle": (29.9894, -97.8772),
    }

    DEFAULT_ZIP_CODES: dict[str, str] = {
        "78701": "Downtown Austin",
        "78758": "North Austin",
        "78704": "South Austin",
        "78702": "East Austin",
        "78746": "West Austin",
        "78664": "Round Rock",
        "78681": "Round Rock",
        "78660": "Pflugerville",
        "78613": "Cedar Park",
        "78626": "Georgetown",
        "78640": "Kyle",
    }

    def __init__(
        self,
        areas: Optional[dict[str, tuple[float, float]]] = None,
        zip_codes: Optional[dict[str, str]] = None,
    ):
        areas = self.DEFAULT_AREAS if areas is None else areas
        self.zip_codes = dict(self.DEFAULT_ZIP_CODES if zip_codes is None else zip_codes)
        self._areas = {
            name.strip().lower(): (name, Location(latitude=lat, longitude=lon))
            for name, (lat, lon) in areas.items()
        }

    def resolve(self, job: Job) -> Location:
        """
        Resolve a job to coordinates.

        Raises:
            InvalidLocationException: nothing on the job resolves to a valid point
        """
        if job.latitude is not None or job.longitude is not None:
            return validate_location(
                Location(latitude=job.latitude, longitude=job.longitude),
                job_id=job.id,
            )

        area = self._lookup_area(job.service_area)
        if area is None:
            if job.service_area:
                raise InvalidLocationException(job.id, f"unknown service area {job.service_area!r}")
            raise InvalidLocationException(job.id, "no coordinates or service area")

        return area[1]

    def label(self, job: Job, location: Location) -> str:
        """Human-readable area name for a job."""
        area = self._lookup_area(job.service_area)
        if area is not None:
            return area[0]
        if job.service_area and job.service_area.strip():
            return job.service_area.strip()
        return f"{location.latitude:.4f}, {location.longitude:.4f}"

    def _lookup_area(self, service_area: Optional[str]) -> Optional[tuple[str, Location]]:
        if not service_area:
            return None

        key = service_area.strip().lower()
        if key in self._areas:
            return self._areas[key]

        match = _ZIP_PATTERN.search(service_area)
        if match and match.group(1) in self.zip_codes:
            return self._areas.get(self.zip_codes[match.group(1)].lower())

        return None


# Default instances
drive_time_estimator = DriveTimeEstimator()
service_area_geocoder = ServiceAreaGeocoder()
