"""
Tests for greedy proximity clustering and route ordering.
"""
import random

import numpy as np
import pytest

from job_routing.core.exceptions import ConfigurationException
from job_routing.services.routing.clustering import ProximityClusterer
from job_routing.services.routing.geo import DriveTimeEstimator, ServiceAreaGeocoder, haversine_miles
from job_routing.services.routing.route_ordering import RouteOrderer

from conftest import make_job


def locate(jobs):
    geocoder = ServiceAreaGeocoder()
    return [geocoder.resolve(job) for job in jobs]


@pytest.fixture
def estimator():
    return DriveTimeEstimator(average_speed_mph=28, stop_overhead_minutes=3)


@pytest.fixture
def clusterer(estimator):
    return ProximityClusterer(estimator=estimator)


@pytest.fixture
def orderer(estimator):
    return RouteOrderer(estimator=estimator)


class TestProximityClusterer:
    """Tests for ProximityClusterer."""

    def test_empty_input(self, clusterer):
        assert clusterer.cluster([], [], radius_miles=8) == []

    def test_rejects_non_positive_radius(self, clusterer, triangle_jobs):
        with pytest.raises(ConfigurationException):
            clusterer.cluster(triangle_jobs, locate(triangle_jobs), radius_miles=0)

    def test_mismatched_locations(self, clusterer, triangle_jobs):
        with pytest.raises(ValueError):
            clusterer.cluster(triangle_jobs, locate(triangle_jobs)[:2], radius_miles=5)

    def test_triangle_forms_single_cluster(self, clusterer, triangle_jobs):
        groups = clusterer.cluster(triangle_jobs, locate(triangle_jobs), radius_miles=5)

        assert len(groups) == 1
        assert {job.id for job in groups[0].jobs} == {"job-a", "job-b", "job-c"}
        # All three have two neighbours; the lowest id seeds the cluster
        assert groups[0].id == "cluster-job-a"
        # Centroid of an equilateral triangle with 2-mile sides is 2/sqrt(3) from each corner
        assert groups[0].radius == pytest.approx(2 / np.sqrt(3), rel=1e-2)

    def test_distant_jobs_stay_apart(self, clusterer):
        jobs = [make_job("b", east=0), make_job("a", east=50)]
        groups = clusterer.cluster(jobs, locate(jobs), radius_miles=8)

        assert [g.id for g in groups] == ["cluster-a", "cluster-b"]
        assert all(g.size == 1 for g in groups)
        assert all(g.radius == 0.0 for g in groups)

    def test_densest_job_seeds_first(self, clusterer):
        """The hub with the most neighbours seeds, even with a higher id."""
        jobs = [
            make_job("a-west", east=-4),
            make_job("b-east", east=4),
            make_job("c-north", north=4),
            make_job("d-south", north=-4),
            make_job("z-hub"),
        ]
        groups = clusterer.cluster(jobs, locate(jobs), radius_miles=5)

        assert len(groups) == 1
        assert groups[0].id == "cluster-z-hub"
        # Seed first, the rest in input order
        assert [j.id for j in groups[0].jobs] == ["z-hub", "a-west", "b-east", "c-north", "d-south"]

    def test_partition_is_disjoint_and_complete(self, clusterer, scattered_jobs):
        groups = clusterer.cluster(scattered_jobs, locate(scattered_jobs), radius_miles=8)

        ids = [job.id for g in groups for job in g.jobs]
        assert len(ids) == len(set(ids))
        assert set(ids) == {job.id for job in scattered_jobs}
        assert all(g.size >= 1 for g in groups)

    def test_singleton_retained(self, clusterer, scattered_jobs):
        groups = clusterer.cluster(scattered_jobs, locate(scattered_jobs), radius_miles=8)
        far = [g for g in groups if any(j.id == "far" for j in g.jobs)]
        assert len(far) == 1
        assert far[0].size == 1

    def test_members_released_to_honour_centroid_radius(self, clusterer):
        """
        Everything is within the radius of the seed, but the lopsided
        group's centroid is pulled west, leaving the east job too far.
        """
        jobs = [
            make_job("seed", east=0),
            make_job("east", east=4.95),
            make_job("west-1", east=-4.95),
            make_job("west-2", east=-4.95, north=0.01),
        ]
        groups = clusterer.cluster(jobs, locate(jobs), radius_miles=5)

        membership = {g.id: {j.id for j in g.jobs} for g in groups}
        assert membership["cluster-seed"] == {"seed", "west-1", "west-2"}
        assert membership["cluster-east"] == {"east"}

    def test_radius_bound_holds_for_every_member(self, clusterer, scattered_jobs):
        for radius in (1, 3, 8, 30):
            for group in clusterer.cluster(scattered_jobs, locate(scattered_jobs), radius_miles=radius):
                for location in group.locations:
                    d = haversine_miles(
                        group.centroid.latitude, group.centroid.longitude,
                        location.latitude, location.longitude,
                    )
                    assert d <= radius
                assert group.radius <= radius

    @pytest.mark.parametrize("seed", [1, 7, 42])
    def test_each_seed_is_densest_remaining_job(self, clusterer, estimator, seed):
        """Seeds match neighbour counts recomputed from scratch at every pick."""
        rng = random.Random(seed)
        jobs = [
            make_job(f"j{i:02d}", east=rng.uniform(-12, 12), north=rng.uniform(-12, 12))
            for i in range(40)
        ]
        locations = locate(jobs)
        distances = estimator.distance_matrix(locations)
        radius = 4

        groups = clusterer.cluster(jobs, locations, radius_miles=radius, distances=distances)

        index = {job.id: i for i, job in enumerate(jobs)}
        remaining = set(range(len(jobs)))
        for group in groups:
            def live_count(i):
                return sum(1 for j in remaining if j != i and distances[i, j] <= radius)

            expected = min(remaining, key=lambda i: (-live_count(i), jobs[i].id))
            assert group.jobs[0].id == jobs[expected].id
            remaining -= {index[job.id] for job in group.jobs}

        assert not remaining

    def test_center_area_from_member_nearest_centroid(self, clusterer):
        jobs = [
            make_job("j1", east=-1, service_area="Zilker"),
            make_job("j2", east=0.1, service_area="Bouldin Creek"),
            make_job("j3", east=1, service_area="Travis Heights"),
        ]
        groups = clusterer.cluster(jobs, locate(jobs), radius_miles=5)
        assert groups[0].center_area == "Bouldin Creek"

    def test_reuses_precomputed_matrix(self, clusterer, estimator, triangle_jobs):
        locations = locate(triangle_jobs)
        distances = estimator.distance_matrix(locations)

        groups = clusterer.cluster(triangle_jobs, locations, radius_miles=5, distances=distances)

        assert np.array_equal(groups[0].distances, distances)


class TestRouteOrderer:
    """Tests for nearest-neighbour route ordering."""

    def test_orders_from_centroid_outwards(self, clusterer, orderer):
        jobs = [
            make_job("A", east=0),
            make_job("B", east=1),
            make_job("C", east=2),
            make_job("D", east=4),
        ]
        group = clusterer.cluster(jobs, locate(jobs), radius_miles=10)[0]

        ordered, total = orderer.order(group)

        # Centroid sits at 1.75 miles: start at C, then B, A and finally D
        assert [j.id for j in ordered] == ["C", "B", "A", "D"]
        assert total == pytest.approx(3 * 3 + 6 / 28 * 60, rel=1e-3)

    def test_tie_prefers_lower_id(self, clusterer, orderer):
        jobs = [
            make_job("S", east=0),
            make_job("Z", east=1),
            make_job("Y", east=1),
        ]
        group = clusterer.cluster(jobs, locate(jobs), radius_miles=5)[0]

        ordered, _ = orderer.order(group)

        assert [j.id for j in ordered] == ["Y", "Z", "S"]

    def test_route_reports_legs(self, clusterer, orderer, triangle_jobs):
        group = clusterer.cluster(triangle_jobs, locate(triangle_jobs), radius_miles=5)[0]

        ordered, legs = orderer.route(group)

        assert len(ordered) == len(legs) == 3
        assert legs[0] == 0.0
        assert legs[1] == pytest.approx(2 / 28 * 60 + 3, rel=1e-2)
        assert orderer.order(group)[1] == pytest.approx(sum(legs))

    def test_single_job_route_has_no_drive_time(self, clusterer, orderer):
        jobs = [make_job("solo")]
        group = clusterer.cluster(jobs, locate(jobs), radius_miles=5)[0]

        ordered, total = orderer.order(group)

        assert [j.id for j in ordered] == ["solo"]
        assert total == 0.0

    def test_leg_drive_times_for_fixed_order(self, orderer):
        jobs = [make_job("1", east=0), make_job("2", east=7), make_job("3", east=7)]
        legs = orderer.leg_drive_times(locate(jobs))

        assert len(legs) == 2
        assert legs[0] == pytest.approx(18.0, rel=1e-3)
        assert legs[1] == pytest.approx(3.0)

    def test_leg_drive_times_short_route(self, orderer):
        assert orderer.leg_drive_times(locate([make_job("1")])) == []
