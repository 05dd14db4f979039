"""
Greedy density-first proximity clustering.

Partitions located jobs into clusters bounded by a radius:
1. Compute the pairwise distance matrix once
2. Repeatedly seed a cluster at the unassigned job with the most
   unassigned neighbours within the radius (ties: lowest job id)
3. Pull every unassigned job within the radius of the seed into it
4. Release the farthest members until all lie within the radius
   of the cluster centroid

Not globally optimal (unlike Ward/K-means), but O(n^2) overall and
fully deterministic: identical input always yields identical clusters.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from job_routing.services.routing.geo import (
    DriveTimeEstimator,
    ServiceAreaGeocoder,
    drive_time_estimator,
    haversine_miles,
    require_positive,
    service_area_geocoder,
)
from job_routing.services.routing.models import Job, Location

logger = logging.getLogger(__name__)


@dataclass
class ClusterGroup:
    """Members of one cluster before route ordering and scoring."""

    id: str
    jobs: list[Job]
    locations: list[Location]
    centroid: Location
    center_area: str
    radius: float
    distances: np.ndarray  # Member x member sub-matrix in miles
    centroid_distances: np.ndarray  # Member -> centroid in miles

    @property
    def size(self) -> int:
        return len(self.jobs)


class ProximityClusterer:
    """
    Cluster jobs by straight-line proximity.

    Usage:
        groups = ProximityClusterer().cluster(jobs, locations, radius_miles=8)
    """

    def __init__(
        self,
        estimator: Optional[DriveTimeEstimator] = None,
        geocoder: Optional[ServiceAreaGeocoder] = None,
    ):
        self.estimator = estimator or drive_time_estimator
        self.geocoder = geocoder or service_area_geocoder

    def cluster(
        self,
        jobs: Sequence[Job],
        locations: Sequence[Location],
        radius_miles: float,
        distances: Optional[np.ndarray] = None,
    ) -> list[ClusterGroup]:
        """
        Partition jobs into disjoint clusters.

        Args:
            jobs: Jobs to cluster, all with resolvable locations
            locations: Resolved location of each job (same order)
            radius_miles: Maximum distance from seed and from centroid
            distances: Precomputed NxN distance matrix, computed if omitted

        Returns:
            Cluster groups in creation order (ranking happens after scoring)
        """
        radius_miles = require_positive("radius_miles", radius_miles)

        n = len(jobs)
        if n == 0:
            return []
        if len(locations) != n:
            raise ValueError("jobs and locations must have the same length")

        if distances is None:
            distances = self.estimator.distance_matrix(locations)

        lats = np.array([loc.latitude for loc in locations], dtype=float)
        lons = np.array([loc.longitude for loc in locations], dtype=float)

        within = distances <= radius_miles
        np.fill_diagonal(within, False)

        unassigned = np.ones(n, dtype=bool)
        # Neighbours among still-unassigned jobs, decremented as clusters form
        neighbor_counts = within.sum(axis=1)
        groups: list[ClusterGroup] = []

        while unassigned.any():
            candidates = np.flatnonzero(unassigned)
            seed = min(candidates, key=lambda i: (-int(neighbor_counts[i]), jobs[i].id, int(i)))

            members = [int(seed)] + [
                int(j) for j in np.flatnonzero(unassigned & within[seed])
            ]

            members, centroid, centroid_distances = self._fit_radius(
                seed=int(seed),
                members=members,
                lats=lats,
                lons=lons,
                radius_miles=radius_miles,
                jobs=jobs,
            )

            unassigned[members] = False
            neighbor_counts -= within[:, members].sum(axis=1)
            groups.append(
                self._build_group(jobs, locations, distances, members, centroid, centroid_distances)
            )

        logger.debug(
            f"Clustered {n} jobs into {len(groups)} clusters (radius={radius_miles} mi)"
        )

        return groups

    def _fit_radius(
        self,
        seed: int,
        members: list[int],
        lats: np.ndarray,
        lons: np.ndarray,
        radius_miles: float,
        jobs: Sequence[Job],
    ) -> tuple[list[int], Location, np.ndarray]:
        """
        Shrink a candidate cluster until every member is within the
        radius of the centroid.

        The farthest non-seed member is released each round; a lone
        seed is its own centroid, so the loop always terminates.
        """
        members = list(members)

        while True:
            centroid = Location(
                latitude=float(lats[members].mean()),
                longitude=float(lons[members].mean()),
            )
            centroid_distances = haversine_miles(
                centroid.latitude, centroid.longitude, lats[members], lons[members]
            )

            if len(members) == 1 or float(centroid_distances.max()) <= radius_miles:
                return members, centroid, centroid_distances

            farthest = max(
                (pos for pos, idx in enumerate(members) if idx != seed),
                key=lambda pos: (float(centroid_distances[pos]), jobs[members[pos]].id, members[pos]),
            )
            logger.debug(
                f"Releasing job {jobs[members[farthest]].id} from cluster seeded at {jobs[seed].id}"
            )
            del members[farthest]

    def _build_group(
        self,
        jobs: Sequence[Job],
        locations: Sequence[Location],
        distances: np.ndarray,
        members: list[int],
        centroid: Location,
        centroid_distances: np.ndarray,
    ) -> ClusterGroup:
        """Assemble a cluster group and label it by the member nearest the centroid."""
        seed = members[0]
        member_jobs = [jobs[i] for i in members]
        member_locations = [locations[i] for i in members]

        nearest = min(
            range(len(members)),
            key=lambda pos: (float(centroid_distances[pos]), member_jobs[pos].id, members[pos]),
        )

        return ClusterGroup(
            id=f"cluster-{jobs[seed].id}",
            jobs=member_jobs,
            locations=member_locations,
            centroid=centroid,
            center_area=self.geocoder.label(member_jobs[nearest], member_locations[nearest]),
            radius=float(centroid_distances.max()),
            distances=distances[np.ix_(members, members)],
            centroid_distances=np.asarray(centroid_distances, dtype=float),
        )
