"""
Anchor job matching.

Given a job the contractor has already committed to, find open jobs
close enough to fit around it. This is a pure proximity filter: slot
fitting against the contractor's calendar belongs to the caller.
"""

import logging
from typing import Optional, Sequence

from job_routing.core.exceptions import InvalidLocationException
from job_routing.services.routing.geo import (
    DriveTimeEstimator,
    ServiceAreaGeocoder,
    drive_time_estimator,
    require_positive,
    service_area_geocoder,
)
from job_routing.services.routing.models import (
    AnchorCandidate,
    AnchorMatch,
    Job,
    JobStatus,
    SkippedJob,
)

logger = logging.getLogger(__name__)


class AnchorMatcher:
    """Find nearby open jobs around a fixed anchor job."""

    def __init__(
        self,
        estimator: Optional[DriveTimeEstimator] = None,
        geocoder: Optional[ServiceAreaGeocoder] = None,
    ):
        self.estimator = estimator or drive_time_estimator
        self.geocoder = geocoder or service_area_geocoder

    def match_anchor(
        self,
        anchor: Job,
        pool: Sequence[Job],
        max_detour_minutes: float,
    ) -> AnchorMatch:
        """
        Match fill-in jobs around an anchor.

        Args:
            anchor: Job the contractor is committed to
            pool: Candidate jobs (the anchor itself may be included)
            max_detour_minutes: One-way drive time limit from the anchor

        Returns:
            AnchorMatch with candidates ordered closest first

        Raises:
            ConfigurationException: non-positive detour limit
            InvalidLocationException: the anchor itself has no usable location
        """
        max_detour_minutes = require_positive("max_detour_minutes", max_detour_minutes)
        anchor_location = self.geocoder.resolve(anchor)

        candidates: list[AnchorCandidate] = []
        skipped: list[SkippedJob] = []

        for job in pool:
            if job.id == anchor.id or job.status != JobStatus.OPEN:
                continue

            try:
                location = self.geocoder.resolve(job)
            except InvalidLocationException as e:
                skipped.append(SkippedJob(job_id=job.id, reason=e.reason))
                continue

            distance = self.estimator.distance(anchor_location, location)
            drive_time = self.estimator.drive_time_for_distance(distance)

            if drive_time <= max_detour_minutes:
                candidates.append(
                    AnchorCandidate(
                        job=job,
                        drive_time_minutes=drive_time,
                        distance_miles=distance,
                    )
                )

        candidates.sort(key=lambda c: (c.drive_time_minutes, c.job.id))

        if skipped:
            logger.warning(
                f"Anchor {anchor.id}: skipped {len(skipped)} jobs with invalid locations"
            )

        return AnchorMatch(
            anchor=anchor,
            candidates=tuple(candidates),
            max_detour_minutes=max_detour_minutes,
            skipped=tuple(skipped),
        )


# Default instance
anchor_matcher = AnchorMatcher()
