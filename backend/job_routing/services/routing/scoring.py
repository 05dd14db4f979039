"""
Cluster efficiency scoring.

driveTimeSaved compares one sequential trip through the cluster with
a naive plan that returns home between jobs. The efficiency score
blends three normalized factors:

    0.5 * min(saved / naive_total, 1)
  + 0.3 * min(size, 5) / 5
  + 0.2 * min(size / (radius + 0.1) / density_normalizer, 1)

scaled to an integer 0-100.
"""

from typing import Iterable, Optional, Sequence

import numpy as np

from job_routing.core.config import settings
from job_routing.services.routing.clustering import ClusterGroup
from job_routing.services.routing.geo import (
    DriveTimeEstimator,
    drive_time_estimator,
    require_positive,
    validate_location,
)
from job_routing.services.routing.models import JobCluster, Location

SAVED_RATIO_WEIGHT = 0.5
SIZE_WEIGHT = 0.3
DENSITY_WEIGHT = 0.2

SIZE_CAP = 5
RADIUS_PADDING_MILES = 0.1

# (max average leg minutes, rating) for fixed-order routes
ROUTE_RATING_BANDS = [(10, 100), (15, 80), (20, 60), (30, 40)]
ROUTE_RATING_FLOOR = 20


class EfficiencyScorer:
    """
    Score clusters and rank them.

    Without a configured home base the naive plan uses a synthetic
    round trip of twice the average pairwise member distance.
    """

    def __init__(
        self,
        estimator: Optional[DriveTimeEstimator] = None,
        home_base: Optional[Location] = None,
        density_normalizer: Optional[float] = None,
    ):
        self.estimator = estimator or drive_time_estimator
        self.home_base = validate_location(home_base) if home_base is not None else None
        self.density_normalizer = require_positive(
            "density_normalizer",
            settings.DENSITY_NORMALIZER if density_normalizer is None else density_normalizer,
        )

    def score(self, group: ClusterGroup, ordered_drive_time: float) -> tuple[int, float]:
        """
        Score a cluster.

        Args:
            group: Cluster members
            ordered_drive_time: Total minutes of the ordered route

        Returns:
            (efficiency_score, drive_time_saved)
        """
        naive_total = self.naive_drive_time(group)
        saved = max(0.0, naive_total - ordered_drive_time)

        return self.compute_score(group.size, group.radius, saved, naive_total), saved

    def naive_drive_time(self, group: ClusterGroup) -> float:
        """Minutes spent visiting each member as a separate round trip."""
        if group.size < 2:
            return 0.0

        if self.home_base is not None:
            return sum(
                2 * self.estimator.drive_time(self.home_base, location)
                for location in group.locations
            )

        upper = np.triu_indices(group.size, k=1)
        avg_pairwise = float(group.distances[upper].mean())
        round_trip = 2 * self.estimator.drive_time_for_distance(avg_pairwise)

        return group.size * round_trip

    def compute_score(
        self,
        size: int,
        radius: float,
        drive_time_saved: float,
        naive_total: float,
    ) -> int:
        """Combine saved-ratio, size and density factors into 0-100."""
        if naive_total > 0:
            saved_ratio = min(max(drive_time_saved, 0.0) / naive_total, 1.0)
        else:
            saved_ratio = 0.0

        size_factor = min(size, SIZE_CAP) / SIZE_CAP

        density = size / (max(radius, 0.0) + RADIUS_PADDING_MILES)
        density_factor = min(density / self.density_normalizer, 1.0)

        raw = (
            SAVED_RATIO_WEIGHT * saved_ratio
            + SIZE_WEIGHT * size_factor
            + DENSITY_WEIGHT * density_factor
        )

        return int(min(100, max(0, round(raw * 100))))


def rank_clusters(clusters: Iterable[JobCluster]) -> list[JobCluster]:
    """Sort by score desc, then drive time saved desc, then id asc."""
    return sorted(
        clusters,
        key=lambda c: (-c.efficiency_score, -c.drive_time_saved, c.id),
    )


def route_efficiency_rating(leg_drive_times: Sequence[float]) -> int:
    """Rate a fixed visiting order by its average leg drive time."""
    if not leg_drive_times:
        return 100

    average = sum(leg_drive_times) / len(leg_drive_times)
    for max_minutes, rating in ROUTE_RATING_BANDS:
        if average <= max_minutes:
            return rating
    return ROUTE_RATING_FLOOR
