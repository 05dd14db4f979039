"""
Schemas for the job routing API.

Coordinates are deliberately loose on input: a job may carry only a
service area, or coordinates the engine cannot use. Such jobs are
reported back as skipped instead of failing the whole request.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from job_routing.core.config import settings
from job_routing.services.routing.models import (
    AnchorCandidate,
    AnchorMatch,
    ClusteringResult,
    Job,
    JobCluster,
    JobStatus,
    RouteEvaluation,
    SkippedJob,
)


class JobIn(BaseModel):
    """Job posting supplied by the job board."""

    id: str = Field(..., min_length=1, description="Unique job identifier", examples=["JOB-001"])
    title: Optional[str] = Field(default=None, description="Job title", examples=["Fix leaking faucet"])
    latitude: Optional[Union[float, str]] = Field(default=None, description="Latitude", examples=[30.2672])
    longitude: Optional[Union[float, str]] = Field(default=None, description="Longitude", examples=[-97.7431])
    service_area: Optional[str] = Field(
        default=None,
        description="Service area name or ZIP, used when coordinates are absent",
        examples=["South Austin"],
    )
    price_low: float = Field(default=0.0, ge=0, description="Low end of the price estimate", examples=[150])
    price_high: float = Field(default=0.0, ge=0, description="High end of the price estimate", examples=[300])
    status: JobStatus = Field(default=JobStatus.OPEN, description="Job status")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")

    def to_domain(self) -> Job:
        return Job(
            id=self.id,
            latitude=self.latitude,
            longitude=self.longitude,
            service_area=self.service_area,
            price_low=self.price_low,
            price_high=self.price_high,
            status=self.status,
            created_at=self.created_at,
            title=self.title,
        )


class JobOut(BaseModel):
    """Job echoed back in results."""

    id: str
    title: Optional[str] = None
    service_area: Optional[str] = None
    price_low: float
    price_high: float
    status: JobStatus

    @classmethod
    def from_domain(cls, job: Job) -> "JobOut":
        return cls(
            id=job.id,
            title=job.title,
            service_area=job.service_area,
            price_low=job.price_low,
            price_high=job.price_high,
            status=job.status,
        )


class SkippedJobOut(BaseModel):
    """Job excluded from the computation."""

    job_id: str
    reason: str

    @classmethod
    def from_domain(cls, skipped: SkippedJob) -> "SkippedJobOut":
        return cls(job_id=skipped.job_id, reason=skipped.reason)


class RouteStop(BaseModel):
    """A job at its position in a visiting order."""

    position: int = Field(..., ge=1, description="1-based stop number")
    job: JobOut
    drive_time_from_previous: float = Field(..., ge=0, description="Minutes from the previous stop (0 for the first)")


# ============================================================
# Clustering
# ============================================================


class ClusterRequest(BaseModel):
    """Request to cluster open jobs by proximity."""

    jobs: list[JobIn] = Field(
        ..., max_length=settings.MAX_JOBS_PER_REQUEST, description="Snapshot of jobs to cluster"
    )
    radius_miles: Optional[float] = Field(
        default=None, description="Clustering radius in miles (default from configuration)", examples=[8]
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "radius_miles": 8,
                "jobs": [
                    {
                        "id": "JOB-001",
                        "title": "Replace water heater",
                        "latitude": 30.2672,
                        "longitude": -97.7431,
                        "price_low": 900,
                        "price_high": 1400,
                    },
                    {
                        "id": "JOB-002",
                        "title": "Patch drywall",
                        "service_area": "East Austin",
                        "price_low": 150,
                        "price_high": 250,
                    },
                ],
            }
        }
    }


class ClusterOut(BaseModel):
    """A ranked cluster with its visiting order."""

    id: str
    center_area: str
    center_latitude: float
    center_longitude: float
    radius_miles: float
    total_drive_time_minutes: float
    drive_time_saved_minutes: float
    efficiency_score: int = Field(..., ge=0, le=100)
    efficiency_label: str
    potential_earnings: float
    stops: list[RouteStop]

    @classmethod
    def from_domain(cls, cluster: JobCluster) -> "ClusterOut":
        return cls(
            id=cluster.id,
            center_area=cluster.center_area,
            center_latitude=cluster.center_latitude,
            center_longitude=cluster.center_longitude,
            radius_miles=cluster.radius,
            total_drive_time_minutes=cluster.total_drive_time,
            drive_time_saved_minutes=cluster.drive_time_saved,
            efficiency_score=cluster.efficiency_score,
            efficiency_label=cluster.efficiency_label,
            potential_earnings=cluster.potential_earnings,
            stops=[
                RouteStop(position=i + 1, job=JobOut.from_domain(job), drive_time_from_previous=leg)
                for i, (job, leg) in enumerate(zip(cluster.jobs, cluster.leg_drive_times))
            ],
        )


class ClusterSummary(BaseModel):
    """Totals for a clustering run."""

    total_jobs: int
    clustered_jobs: int
    skipped_jobs: int
    cluster_count: int
    total_drive_time_saved_minutes: float
    computation_time_ms: int


class ClusterResponse(BaseModel):
    """Ranked clusters plus skipped jobs."""

    clusters: list[ClusterOut]
    skipped: list[SkippedJobOut]
    summary: ClusterSummary

    @classmethod
    def from_domain(
        cls,
        result: ClusteringResult,
        total_jobs: int,
        computation_time_ms: int,
    ) -> "ClusterResponse":
        return cls(
            clusters=[ClusterOut.from_domain(c) for c in result.clusters],
            skipped=[SkippedJobOut.from_domain(s) for s in result.skipped],
            summary=ClusterSummary(
                total_jobs=total_jobs,
                clustered_jobs=sum(c.size for c in result.clusters),
                skipped_jobs=len(result.skipped),
                cluster_count=len(result.clusters),
                total_drive_time_saved_minutes=result.total_drive_time_saved,
                computation_time_ms=computation_time_ms,
            ),
        )


# ============================================================
# Anchor matching
# ============================================================


class AnchorMatchRequest(BaseModel):
    """Request to find fill-in jobs around an anchor job."""

    anchor_job_id: str = Field(..., min_length=1, description="ID of the anchor job within `jobs`")
    jobs: list[JobIn] = Field(
        ..., min_length=1, max_length=settings.MAX_JOBS_PER_REQUEST, description="Job pool including the anchor"
    )
    max_detour_minutes: Optional[float] = Field(
        default=None, description="One-way drive time limit from the anchor (default from configuration)"
    )


class AnchorCandidateOut(BaseModel):
    """Candidate fill-in job."""

    job: JobOut
    drive_time_minutes: float
    distance_miles: float

    @classmethod
    def from_domain(cls, candidate: AnchorCandidate) -> "AnchorCandidateOut":
        return cls(
            job=JobOut.from_domain(candidate.job),
            drive_time_minutes=candidate.drive_time_minutes,
            distance_miles=candidate.distance_miles,
        )


class AnchorMatchResponse(BaseModel):
    """Candidates ordered closest first."""

    anchor: JobOut
    max_detour_minutes: float
    candidates: list[AnchorCandidateOut]
    skipped: list[SkippedJobOut]

    @classmethod
    def from_domain(cls, match: AnchorMatch) -> "AnchorMatchResponse":
        return cls(
            anchor=JobOut.from_domain(match.anchor),
            max_detour_minutes=match.max_detour_minutes,
            candidates=[AnchorCandidateOut.from_domain(c) for c in match.candidates],
            skipped=[SkippedJobOut.from_domain(s) for s in match.skipped],
        )


# ============================================================
# Route evaluation
# ============================================================


class RouteEvaluationRequest(BaseModel):
    """Jobs in the order the contractor plans to visit them."""

    jobs: list[JobIn] = Field(..., min_length=1, max_length=settings.MAX_JOBS_PER_REQUEST)


class RouteEvaluationResponse(BaseModel):
    """Drive-time breakdown of a fixed visiting order."""

    stops: list[RouteStop]
    total_drive_time_minutes: float
    rating: int = Field(..., ge=0, le=100)
    skipped: list[SkippedJobOut]

    @classmethod
    def from_domain(cls, evaluation: RouteEvaluation) -> "RouteEvaluationResponse":
        legs = (0.0,) + evaluation.leg_drive_times if evaluation.jobs else ()
        return cls(
            stops=[
                RouteStop(position=i + 1, job=JobOut.from_domain(job), drive_time_from_previous=leg)
                for i, (job, leg) in enumerate(zip(evaluation.jobs, legs))
            ],
            total_drive_time_minutes=evaluation.total_drive_time,
            rating=evaluation.rating,
            skipped=[SkippedJobOut.from_domain(s) for s in evaluation.skipped],
        )
