"""
Domain types for job proximity clustering.

Jobs are supplied by the job board and treated as immutable snapshots;
every computation returns fresh result objects and never mutates them.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class JobStatus(str, Enum):
    """Lifecycle status of a job posting."""

    OPEN = "open"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Location:
    """Geographic point in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class Job:
    """A job posting as seen by the routing engine."""

    id: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    service_area: Optional[str] = None  # Area name or ZIP; used when coordinates are absent
    price_low: float = 0.0
    price_high: float = 0.0
    status: JobStatus = JobStatus.OPEN
    created_at: Optional[datetime] = None
    title: Optional[str] = None

    @property
    def mid_price(self) -> float:
        return (self.price_low + self.price_high) / 2


@dataclass(frozen=True)
class SkippedJob:
    """A job excluded from a computation, with the reason."""

    job_id: str
    reason: str


@dataclass(frozen=True)
class JobCluster:
    """
    A group of nearby jobs, ordered for visiting.

    `jobs` is in route order, not insertion order. `radius` is the
    largest distance (miles) from the centroid to any member.
    """

    id: str
    jobs: tuple[Job, ...]
    center_area: str
    center_latitude: float
    center_longitude: float
    radius: float
    total_drive_time: float
    drive_time_saved: float
    efficiency_score: int
    leg_drive_times: tuple[float, ...] = ()  # Minutes from the previous stop; first is 0

    @property
    def size(self) -> int:
        return len(self.jobs)

    @property
    def efficiency_label(self) -> str:
        if self.efficiency_score >= 75:
            return "Excellent"
        if self.efficiency_score >= 50:
            return "Good"
        return "Needs Improvement"

    @property
    def potential_earnings(self) -> float:
        """Sum of the members' mid-range prices."""
        return sum(job.mid_price for job in self.jobs)


@dataclass(frozen=True)
class ClusteringResult:
    """Ranked clusters plus the jobs that could not be placed."""

    clusters: tuple[JobCluster, ...] = ()
    skipped: tuple[SkippedJob, ...] = ()

    @property
    def total_drive_time_saved(self) -> float:
        return sum(c.drive_time_saved for c in self.clusters)


@dataclass(frozen=True)
class AnchorCandidate:
    """A fill-in job near an anchor."""

    job: Job
    drive_time_minutes: float
    distance_miles: float


@dataclass(frozen=True)
class AnchorMatch:
    """Candidates around an anchor job, closest first."""

    anchor: Job
    candidates: tuple[AnchorCandidate, ...] = ()
    max_detour_minutes: float = 15.0
    skipped: tuple[SkippedJob, ...] = ()

    @property
    def jobs(self) -> list[Job]:
        return [c.job for c in self.candidates]


@dataclass(frozen=True)
class RouteEvaluation:
    """Drive-time breakdown of a caller-fixed visiting order."""

    jobs: tuple[Job, ...]
    leg_drive_times: tuple[float, ...] = ()
    total_drive_time: float = 0.0
    rating: int = 100
    skipped: tuple[SkippedJob, ...] = ()
