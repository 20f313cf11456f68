import math

import pytest

from routing.geo import destination_point, distance_meters, polyline_length_meters
from routing.route_service import build_route
from simulation.models import SimulationPhase
from simulation.policy import SimulationPolicy, default_simulation_policy, fast_simulation_policy
from simulation.run import SimulationRun

CAPE_TOWN = (-33.9249, 18.4241)


@pytest.fixture
def no_delay_policy():
    return SimulationPolicy(pickup_delay_s=0.0, departure_delay_s=0.0, traffic_enabled=False)


def drive(sim_run, max_ticks=10_000):
    """Tick at the policy interval until arrival. Returns the number of ticks used."""
    step = sim_run.policy.tick_interval_s
    now = sim_run.started_at
    while not sim_run.finished and sim_run.ticks < max_ticks:
        sim_run.tick(now)
        now += step
    return sim_run.ticks


def test_route_needs_two_points():
    with pytest.raises(ValueError):
        SimulationRun("drv_1", "ord_1", [CAPE_TOWN])


def test_zero_distance_route_arrives_in_one_tick(no_delay_policy):
    sim_run = SimulationRun("drv_1", "ord_1", build_route(CAPE_TOWN, CAPE_TOWN), policy=no_delay_policy)

    snapshot = sim_run.tick(0.0)

    assert snapshot.phase == SimulationPhase.ARRIVED
    assert sim_run.position == CAPE_TOWN
    assert not any(math.isnan(value) for value in sim_run.position)
    assert snapshot.distance_remaining_m == 0.0
    assert snapshot.eta_label == "Arrived"


def test_straight_kilometre_takes_about_four_hundred_ticks(no_delay_policy):
    """
    10 m/s at 250 ms is 2.5 m per tick; 1000 m needs ~400 ticks, minus the
    20 m arrival threshold.
    """
    destination = destination_point(CAPE_TOWN, 90.0, 1000)
    sim_run = SimulationRun("drv_1", "ord_1", [CAPE_TOWN, destination], policy=no_delay_policy)

    ticks = drive(sim_run)

    assert sim_run.phase == SimulationPhase.ARRIVED
    assert 392 <= ticks <= 401
    assert sim_run.position == destination


def test_bent_route_passes_control_point_and_never_overshoots(no_delay_policy):
    destination = destination_point(CAPE_TOWN, 45.0, 2000)
    route = build_route(CAPE_TOWN, destination)
    sim_run = SimulationRun("drv_1", "ord_1", route, policy=no_delay_policy)

    ticks = drive(sim_run)

    assert sim_run.phase == SimulationPhase.ARRIVED
    assert sim_run.segment_index == 1
    expected_ticks = polyline_length_meters(route) / no_delay_policy.meters_per_tick
    assert ticks <= expected_ticks + 5

    path = sim_run.traveled_path()
    assert path[0] == CAPE_TOWN
    assert path[-1] == destination
    # every regular step is at most one tick of travel; only the final snap can be longer
    for a, b in zip(path[:-2], path[1:-1]):
        assert distance_meters(a, b) <= no_delay_policy.meters_per_tick + 1e-6


def test_phases_follow_time_delays():
    policy = SimulationPolicy(traffic_enabled=False)  # pickup 2.0 s, departure 3.5 s
    destination = destination_point(CAPE_TOWN, 0.0, 3000)
    sim_run = SimulationRun("drv_1", "ord_1", [CAPE_TOWN, destination], policy=policy, started_at=100.0)

    snapshot = sim_run.tick(101.0)
    assert snapshot.phase == SimulationPhase.PREPARING
    assert snapshot.eta_minutes is None
    assert snapshot.eta_label == "Preparing order…"
    assert sim_run.position == CAPE_TOWN

    snapshot = sim_run.tick(102.0)
    assert snapshot.phase == SimulationPhase.PICKED_UP
    assert sim_run.position != CAPE_TOWN

    snapshot = sim_run.tick(103.5)
    assert snapshot.phase == SimulationPhase.DELIVERING
    assert snapshot.eta_minutes == math.ceil(snapshot.distance_remaining_m / policy.speed_mps / 60)


def test_both_delay_transitions_can_land_in_one_tick():
    policy = SimulationPolicy(traffic_enabled=False)
    destination = destination_point(CAPE_TOWN, 0.0, 3000)
    sim_run = SimulationRun("drv_1", "ord_1", [CAPE_TOWN, destination], policy=policy)

    assert sim_run.tick(10.0).phase == SimulationPhase.DELIVERING


def test_pause_freezes_and_resume_continues(no_delay_policy):
    destination = destination_point(CAPE_TOWN, 0.0, 1000)
    sim_run = SimulationRun("drv_1", "ord_1", [CAPE_TOWN, destination], policy=no_delay_policy)
    sim_run.tick(0.0)
    position = sim_run.position

    sim_run.pause()
    assert sim_run.tick(0.25) is None
    assert sim_run.position == position
    assert sim_run.ticks == 1
    assert sim_run.snapshot().paused is True

    sim_run.resume()
    assert sim_run.tick(0.5) is not None
    assert sim_run.position != position


def test_ticks_after_stop_are_discarded(no_delay_policy):
    destination = destination_point(CAPE_TOWN, 0.0, 1000)
    sim_run = SimulationRun("drv_1", "ord_1", [CAPE_TOWN, destination], policy=no_delay_policy)
    sim_run.tick(0.0)
    position = sim_run.position

    sim_run.stop()

    assert sim_run.finished
    assert sim_run.tick(0.25) is None
    assert sim_run.position == position
    assert sim_run.skip_to_destination() is False


def test_skip_to_destination_forces_arrival(no_delay_policy):
    destination = destination_point(CAPE_TOWN, 0.0, 5000)
    sim_run = SimulationRun("drv_1", "ord_1", [CAPE_TOWN, destination], policy=no_delay_policy)

    assert sim_run.skip_to_destination() is True

    assert sim_run.phase == SimulationPhase.ARRIVED
    assert sim_run.position == destination
    assert sim_run.eta().minutes == 0
    assert sim_run.claim_arrival() is True
    assert sim_run.claim_arrival() is False


def test_manual_traffic_holds_position(no_delay_policy):
    destination = destination_point(CAPE_TOWN, 0.0, 1000)
    sim_run = SimulationRun("drv_1", "ord_1", [CAPE_TOWN, destination], policy=no_delay_policy)

    sim_run.simulate_traffic(now=0.0, seconds=5)
    snapshot = sim_run.tick(1.0)
    assert snapshot.in_traffic is True
    assert sim_run.position == CAPE_TOWN

    snapshot = sim_run.tick(5.0)
    assert snapshot.in_traffic is False
    assert sim_run.position != CAPE_TOWN


def test_random_traffic_is_seedable():
    policy = SimulationPolicy(
        pickup_delay_s=0.0,
        departure_delay_s=0.0,
        traffic_probability=0.3,
        seed=1234,
    )
    destination = destination_point(CAPE_TOWN, 0.0, 2000)

    def trail():
        sim_run = SimulationRun("drv_1", "ord_1", [CAPE_TOWN, destination], policy=policy)
        for i in range(200):
            sim_run.tick(i * policy.tick_interval_s)
        return sim_run.traveled_path()

    assert trail() == trail()


def test_certain_traffic_blocks_motion():
    policy = SimulationPolicy(
        pickup_delay_s=0.0,
        departure_delay_s=0.0,
        traffic_probability=1.0,
        traffic_pause_min_s=2.0,
        traffic_pause_max_s=2.0,
        seed=1,
    )
    destination = destination_point(CAPE_TOWN, 0.0, 1000)
    sim_run = SimulationRun("drv_1", "ord_1", [CAPE_TOWN, destination], policy=policy)

    for i in range(20):
        snapshot = sim_run.tick(i * 0.25)
        assert snapshot.in_traffic is True

    assert sim_run.position == CAPE_TOWN


def test_policies_validate():
    default_simulation_policy()
    fast = fast_simulation_policy()
    assert fast.speed_mps == 18.0
    assert fast.tick_interval_ms == 160

    with pytest.raises(ValueError):
        SimulationPolicy(speed_mps=0).validate()
    with pytest.raises(ValueError):
        SimulationPolicy(pickup_delay_s=5.0, departure_delay_s=1.0).validate()
    with pytest.raises(ValueError):
        SimulationPolicy(traffic_probability=1.5).validate()
