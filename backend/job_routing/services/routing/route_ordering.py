"""
Nearest-neighbour visiting order within a cluster.

Algorithm:
1. Start at the member closest to the cluster centroid
2. Repeatedly append the unvisited member with the smallest drive
   time from the last stop (ties: lowest job id)
3. Sum drive time over consecutive legs; the first stop has no
   preceding leg, travel *to* the cluster is not counted

A heuristic, not an exact TSP: clusters rarely exceed ten jobs, and
O(n^2) keeps the order deterministic and cheap.
"""

from typing import Optional, Sequence

import numpy as np

from job_routing.services.routing.clustering import ClusterGroup
from job_routing.services.routing.geo import DriveTimeEstimator, drive_time_estimator
from job_routing.services.routing.models import Job, Location


class RouteOrderer:
    """Order cluster members into a low-travel visiting sequence."""

    def __init__(self, estimator: Optional[DriveTimeEstimator] = None):
        self.estimator = estimator or drive_time_estimator

    def order(self, group: ClusterGroup) -> tuple[list[Job], float]:
        """
        Order a cluster for visiting.

        Returns:
            (ordered_jobs, total_drive_time_minutes)
        """
        ordered, legs = self.route(group)
        return ordered, sum(legs)

    def route(self, group: ClusterGroup) -> tuple[list[Job], list[float]]:
        """
        Order a cluster and report each leg.

        Returns:
            (ordered_jobs, leg_drive_times) where leg_drive_times[0] is 0
        """
        if group.size == 0:
            return [], []

        durations = self.estimator.drive_time_matrix(group.distances)
        ids = [job.id for job in group.jobs]

        start = min(
            range(group.size),
            key=lambda i: (float(group.centroid_distances[i]), ids[i], i),
        )

        route = [start]
        legs = [0.0]
        remaining = set(range(group.size)) - {start}

        while remaining:
            current = route[-1]
            nearest = min(
                remaining,
                key=lambda j: (float(durations[current, j]), ids[j], j),
            )
            legs.append(float(durations[current, nearest]))
            route.append(nearest)
            remaining.remove(nearest)

        return [group.jobs[i] for i in route], legs

    def leg_drive_times(self, locations: Sequence[Location]) -> list[float]:
        """Drive time of each leg of a fixed visiting order."""
        if len(locations) < 2:
            return []

        distances = self.estimator.distance_matrix(locations)
        durations = self.estimator.drive_time_matrix(distances)
        idx = np.arange(len(locations) - 1)

        return [float(t) for t in durations[idx, idx + 1]]


# Default instance
route_orderer = RouteOrderer()
