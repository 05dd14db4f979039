"""
Route efficiency pipeline.

jobs -> resolve locations (invalid ones skipped and reported)
     -> pairwise distance matrix (computed once)
     -> greedy proximity clustering
     -> per-cluster route ordering + scoring on a worker pool
     -> ranked JobCluster list

Every call works on an immutable snapshot and returns fresh results;
repeated calls with the same input produce identical output.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from job_routing.core.config import settings
from job_routing.core.exceptions import InvalidLocationException
from job_routing.services.routing.anchor import AnchorMatcher
from job_routing.services.routing.clustering import ClusterGroup, ProximityClusterer
from job_routing.services.routing.geo import (
    DriveTimeEstimator,
    ServiceAreaGeocoder,
    require_positive,
)
from job_routing.services.routing.models import (
    AnchorMatch,
    ClusteringResult,
    Job,
    JobCluster,
    Location,
    RouteEvaluation,
    SkippedJob,
)
from job_routing.services.routing.route_ordering import RouteOrderer
from job_routing.services.routing.scoring import (
    EfficiencyScorer,
    rank_clusters,
    route_efficiency_rating,
)

logger = logging.getLogger(__name__)


def _home_base_from_settings() -> Optional[Location]:
    if settings.HOME_BASE_LATITUDE is None or settings.HOME_BASE_LONGITUDE is None:
        return None
    return Location(latitude=settings.HOME_BASE_LATITUDE, longitude=settings.HOME_BASE_LONGITUDE)


class RouteEfficiencyEngine:
    """
    Job proximity clustering and route efficiency engine.

    Configuration is validated eagerly: a non-positive radius, speed,
    detour limit or worker count raises ConfigurationException before
    any computation starts.

    Usage:
        engine = RouteEfficiencyEngine(radius_miles=8)
        result = engine.cluster(jobs)
        for cluster in result.clusters:
            print(cluster.center_area, cluster.efficiency_score)
    """

    def __init__(
        self,
        radius_miles: Optional[float] = None,
        average_speed_mph: Optional[float] = None,
        stop_overhead_minutes: Optional[float] = None,
        max_detour_minutes: Optional[float] = None,
        home_base: Optional[Location] = None,
        density_normalizer: Optional[float] = None,
        max_workers: Optional[int] = None,
        geocoder: Optional[ServiceAreaGeocoder] = None,
    ):
        self.radius_miles = require_positive(
            "radius_miles",
            settings.CLUSTER_RADIUS_MILES if radius_miles is None else radius_miles,
        )
        self.max_detour_minutes = require_positive(
            "max_detour_minutes",
            settings.MAX_DETOUR_MINUTES if max_detour_minutes is None else max_detour_minutes,
        )
        self.max_workers = max(1, int(
            require_positive(
                "max_workers",
                settings.CLUSTER_WORKERS if max_workers is None else max_workers,
            )
        ))

        self.estimator = DriveTimeEstimator(
            average_speed_mph=average_speed_mph,
            stop_overhead_minutes=stop_overhead_minutes,
        )
        self.geocoder = geocoder or ServiceAreaGeocoder()
        self.clusterer = ProximityClusterer(self.estimator, self.geocoder)
        self.orderer = RouteOrderer(self.estimator)
        self.scorer = EfficiencyScorer(
            self.estimator,
            home_base=home_base if home_base is not None else _home_base_from_settings(),
            density_normalizer=density_normalizer,
        )
        self.anchor_matcher = AnchorMatcher(self.estimator, self.geocoder)

    def cluster(
        self,
        jobs: Sequence[Job],
        radius_miles: Optional[float] = None,
    ) -> ClusteringResult:
        """
        Cluster jobs and rank the clusters by efficiency.

        Args:
            jobs: Snapshot of jobs to group
            radius_miles: Override for the configured clustering radius

        Returns:
            ClusteringResult with ranked clusters and skipped jobs.
            No jobs is a normal state and yields an empty result.
        """
        radius = self.radius_miles if radius_miles is None else require_positive("radius_miles", radius_miles)

        if not jobs:
            return ClusteringResult()

        located, locations, skipped = self._resolve(jobs)

        if skipped:
            logger.warning(
                f"Skipped {len(skipped)} of {len(jobs)} jobs with invalid locations",
                extra={"skipped_job_ids": [s.job_id for s in skipped]},
            )

        if not located:
            return ClusteringResult(skipped=tuple(skipped))

        distances = self.estimator.distance_matrix(locations)
        groups = self.clusterer.cluster(located, locations, radius, distances=distances)

        workers = min(self.max_workers, len(groups))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cluster") as pool:
            clusters = list(pool.map(self._build_cluster, groups))

        ranked = rank_clusters(clusters)

        logger.info(
            f"Clustering complete: {len(located)} jobs -> {len(ranked)} clusters, "
            f"{len(skipped)} skipped (radius={radius} mi)"
        )

        return ClusteringResult(clusters=tuple(ranked), skipped=tuple(skipped))

    def match_anchor(
        self,
        anchor: Job,
        pool: Sequence[Job],
        max_detour_minutes: Optional[float] = None,
    ) -> AnchorMatch:
        """Find open jobs within the detour limit of an anchor job."""
        detour = self.max_detour_minutes if max_detour_minutes is None else max_detour_minutes
        match = self.anchor_matcher.match_anchor(anchor, pool, detour)

        logger.info(
            f"Anchor match for {anchor.id}: {len(match.candidates)} candidates "
            f"within {match.max_detour_minutes} min"
        )

        return match

    def evaluate_route(self, jobs: Sequence[Job]) -> RouteEvaluation:
        """
        Evaluate a caller-fixed visiting order.

        Jobs with invalid locations are dropped from the sequence and
        reported as skipped.
        """
        located, locations, skipped = self._resolve(jobs)
        legs = self.orderer.leg_drive_times(locations)

        return RouteEvaluation(
            jobs=tuple(located),
            leg_drive_times=tuple(legs),
            total_drive_time=sum(legs),
            rating=route_efficiency_rating(legs),
            skipped=tuple(skipped),
        )

    def _resolve(
        self,
        jobs: Sequence[Job],
    ) -> tuple[list[Job], list[Location], list[SkippedJob]]:
        """Split jobs into located ones and skipped ones."""
        located: list[Job] = []
        locations: list[Location] = []
        skipped: list[SkippedJob] = []

        for job in jobs:
            try:
                location = self.geocoder.resolve(job)
            except InvalidLocationException as e:
                skipped.append(SkippedJob(job_id=job.id, reason=e.reason))
                continue
            located.append(job)
            locations.append(location)

        return located, locations, skipped

    def _build_cluster(self, group: ClusterGroup) -> JobCluster:
        """Order and score one cluster."""
        ordered, legs = self.orderer.route(group)
        total_drive_time = sum(legs)
        score, saved = self.scorer.score(group, total_drive_time)

        return JobCluster(
            id=group.id,
            jobs=tuple(ordered),
            center_area=group.center_area,
            center_latitude=group.centroid.latitude,
            center_longitude=group.centroid.longitude,
            radius=group.radius,
            total_drive_time=total_drive_time,
            drive_time_saved=saved,
            efficiency_score=score,
            leg_drive_times=tuple(legs),
        )


# Default instance
route_engine = RouteEfficiencyEngine()
