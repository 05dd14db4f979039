"""
Job routing API endpoints.

Clusters open jobs into drivable groups, finds fill-in jobs around an
anchor job and rates fixed visiting orders.
"""

import asyncio
import logging
import time
from functools import partial

from fastapi import APIRouter, Depends, Request, status

from job_routing.core.config import settings
from job_routing.core.exceptions import AnchorNotFoundException, ErrorResponse
from job_routing.core.metrics import record_anchor_match, record_skipped_jobs, track_clustering
from job_routing.core.rate_limit import limiter
from job_routing.schemas.routing import (
    AnchorMatchRequest,
    AnchorMatchResponse,
    ClusterRequest,
    ClusterResponse,
    RouteEvaluationRequest,
    RouteEvaluationResponse,
)
from job_routing.services.routing.engine import RouteEfficiencyEngine, route_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/route", tags=["Route Efficiency"])


def get_route_engine() -> RouteEfficiencyEngine:
    """Dependency injection for the routing engine."""
    return route_engine


@router.post(
    "/cluster",
    response_model=ClusterResponse,
    status_code=status.HTTP_200_OK,
    summary="Cluster jobs by proximity",
    description="""
    Groups jobs into clusters that can be driven in one trip and ranks
    them by efficiency score (0-100).

    ## Algorithm

    1. Jobs without a usable location are skipped and listed in `skipped`
    2. Clusters are seeded greedily at the densest remaining job
    3. Each cluster is ordered with a nearest-neighbour heuristic
    4. Clusters are scored on drive time saved, size and density

    Identical input always yields identical output.
    """,
    responses={
        400: {"description": "Invalid routing configuration", "model": ErrorResponse},
        422: {"description": "Request validation error"},
    },
)
@limiter.limit(settings.RATE_LIMIT_CLUSTER)
async def cluster_jobs(
    request: Request,
    payload: ClusterRequest,
    engine: RouteEfficiencyEngine = Depends(get_route_engine),
) -> ClusterResponse:
    """Cluster a snapshot of jobs and return ranked clusters."""
    jobs = [job.to_domain() for job in payload.jobs]

    logger.info(f"Cluster request: {len(jobs)} jobs, radius={payload.radius_miles or engine.radius_miles} mi")

    start = time.perf_counter()
    with track_clustering(len(jobs)) as tracker:
        result = await asyncio.get_event_loop().run_in_executor(
            None,
            partial(engine.cluster, jobs, radius_miles=payload.radius_miles),
        )
        tracker.set_result(result)
    elapsed_ms = int((time.perf_counter() - start) * 1000)

    return ClusterResponse.from_domain(result, total_jobs=len(jobs), computation_time_ms=elapsed_ms)


@router.post(
    "/anchor-match",
    response_model=AnchorMatchResponse,
    status_code=status.HTTP_200_OK,
    summary="Find fill-in jobs around an anchor job",
    description="""
    Returns open jobs whose one-way drive time from the anchor job is
    within `max_detour_minutes`, closest first. Scheduling against the
    contractor's calendar is left to the caller.
    """,
    responses={
        400: {"description": "Invalid anchor location or configuration", "model": ErrorResponse},
        404: {"description": "Anchor job not in the job pool", "model": ErrorResponse},
    },
)
async def match_anchor(
    payload: AnchorMatchRequest,
    engine: RouteEfficiencyEngine = Depends(get_route_engine),
) -> AnchorMatchResponse:
    """Match nearby open jobs to an anchor job."""
    jobs = [job.to_domain() for job in payload.jobs]

    anchor = next((job for job in jobs if job.id == payload.anchor_job_id), None)
    if anchor is None:
        raise AnchorNotFoundException(payload.anchor_job_id)

    match = engine.match_anchor(anchor, jobs, max_detour_minutes=payload.max_detour_minutes)
    record_anchor_match(len(match.candidates), len(match.skipped))

    return AnchorMatchResponse.from_domain(match)


@router.post(
    "/evaluate",
    response_model=RouteEvaluationResponse,
    status_code=status.HTTP_200_OK,
    summary="Rate a fixed visiting order",
    description="""
    Computes per-leg and total drive time for jobs in the given order
    and rates the route 0-100 by its average leg drive time.
    """,
)
async def evaluate_route(
    payload: RouteEvaluationRequest,
    engine: RouteEfficiencyEngine = Depends(get_route_engine),
) -> RouteEvaluationResponse:
    """Evaluate a contractor's scheduled route."""
    evaluation = engine.evaluate_route([job.to_domain() for job in payload.jobs])
    record_skipped_jobs("evaluate", len(evaluation.skipped))

    return RouteEvaluationResponse.from_domain(evaluation)
