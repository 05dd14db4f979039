"""
Pytest configuration and fixtures.
"""
import math
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from job_routing.services.routing.engine import RouteEfficiencyEngine
from job_routing.services.routing.geo import EARTH_RADIUS_MILES
from job_routing.services.routing.models import Job, JobStatus

# Downtown Austin
ORIGIN_LAT = 30.2672
ORIGIN_LON = -97.7431

MILES_PER_DEGREE_LAT = EARTH_RADIUS_MILES * math.pi / 180


def offset(east_miles: float = 0.0, north_miles: float = 0.0) -> tuple[float, float]:
    """(lat, lon) roughly `east_miles`/`north_miles` away from the origin."""
    lat = ORIGIN_LAT + north_miles / MILES_PER_DEGREE_LAT
    lon = ORIGIN_LON + east_miles / (MILES_PER_DEGREE_LAT * math.cos(math.radians(ORIGIN_LAT)))
    return lat, lon


def make_job(
    job_id: str,
    east: float = 0.0,
    north: float = 0.0,
    status: JobStatus = JobStatus.OPEN,
    price_low: float = 100.0,
    price_high: float = 200.0,
    service_area: Optional[str] = None,
) -> Job:
    """Job placed on a local miles grid around the origin."""
    lat, lon = offset(east, north)
    return Job(
        id=job_id,
        latitude=lat,
        longitude=lon,
        service_area=service_area,
        price_low=price_low,
        price_high=price_high,
        status=status,
    )


@pytest.fixture
def engine():
    """Engine with the documented defaults, independent of environment."""
    return RouteEfficiencyEngine(
        radius_miles=8,
        average_speed_mph=28,
        stop_overhead_minutes=3,
        max_detour_minutes=15,
        density_normalizer=20,
        max_workers=4,
    )


@pytest.fixture
def triangle_jobs():
    """Three jobs on an equilateral triangle with 2-mile sides."""
    return [
        make_job("job-a", east=0.0, north=0.0),
        make_job("job-b", east=2.0, north=0.0),
        make_job("job-c", east=1.0, north=math.sqrt(3)),
    ]


@pytest.fixture
def scattered_jobs():
    """Jobs spread over three neighbourhoods plus one isolated job."""
    return [
        make_job("n-1", east=0.0, north=0.0),
        make_job("n-2", east=0.5, north=0.3),
        make_job("n-3", east=-0.4, north=0.6),
        make_job("n-4", east=0.2, north=-0.7),
        make_job("e-1", east=20.0, north=1.0),
        make_job("e-2", east=21.0, north=0.5),
        make_job("e-3", east=20.5, north=2.0),
        make_job("s-1", east=-3.0, north=-25.0),
        make_job("s-2", east=-2.5, north=-24.0),
        make_job("far", east=80.0, north=80.0),
    ]


@pytest_asyncio.fixture
async def client(engine) -> AsyncGenerator[AsyncClient, None]:
    """Async test client with the engine dependency overridden."""
    from job_routing.api.routes.routing import get_route_engine
    from job_routing.core.rate_limit import limiter
    from job_routing.main import app

    app.dependency_overrides[get_route_engine] = lambda: engine
    limiter_enabled = limiter.enabled
    limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    limiter.enabled = limiter_enabled
    app.dependency_overrides.clear()
