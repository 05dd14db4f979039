"""
Routing sub-package.

Contains the clustering pipeline:
- Geo distance / drive-time estimator
- Proximity clustering
- Route ordering
- Efficiency scoring
- Anchor matching
"""

from job_routing.services.routing.anchor import AnchorMatcher
from job_routing.services.routing.clustering import ClusterGroup, ProximityClusterer
from job_routing.services.routing.engine import RouteEfficiencyEngine, route_engine
from job_routing.services.routing.geo import DriveTimeEstimator, ServiceAreaGeocoder
from job_routing.services.routing.models import (
    AnchorCandidate,
    AnchorMatch,
    ClusteringResult,
    Job,
    JobCluster,
    JobStatus,
    Location,
    RouteEvaluation,
    SkippedJob,
)
from job_routing.services.routing.route_ordering import RouteOrderer
from job_routing.services.routing.scoring import EfficiencyScorer

__all__ = [
    "AnchorCandidate",
    "AnchorMatch",
    "AnchorMatcher",
    "ClusterGroup",
    "ClusteringResult",
    "DriveTimeEstimator",
    "EfficiencyScorer",
    "Job",
    "JobCluster",
    "JobStatus",
    "Location",
    "ProximityClusterer",
    "RouteEfficiencyEngine",
    "RouteEvaluation",
    "RouteOrderer",
    "ServiceAreaGeocoder",
    "SkippedJob",
    "route_engine",
]
