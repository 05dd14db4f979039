"""
Services module.

Provides the job routing engine:
- Straight-line distance and drive-time estimation
- Greedy proximity clustering
- Nearest-neighbour route ordering
- Efficiency scoring
- Anchor job matching
"""
from job_routing.services.routing import RouteEfficiencyEngine, route_engine

__all__ = ["RouteEfficiencyEngine", "route_engine"]
