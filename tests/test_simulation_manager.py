import threading

import pytest

from routing.geo import destination_point
from simulation.manager import SimulationManager
from simulation.models import SimulationPhase
from simulation.policy import SimulationPolicy

CAPE_TOWN = (-33.9249, 18.4241)


@pytest.fixture
def far_away():
    return destination_point(CAPE_TOWN, 60.0, 3000)


def test_start_registers_one_run_per_courier(simulations, far_away):
    first = simulations.start("drv_1", "ord_1", CAPE_TOWN, far_away)
    assert simulations.get("drv_1") is first
    assert simulations.find_by_order("ord_1") is first
    assert first.route[0] == CAPE_TOWN
    assert first.destination == far_away

    second = simulations.start("drv_1", "ord_2", CAPE_TOWN, far_away)

    assert simulations.get("drv_1") is second
    assert first.stopped
    assert simulations.find_by_order("ord_1") is None
    assert len(simulations.active_runs()) == 1


def test_tick_publishes_snapshots(simulations, clock, far_away):
    seen = []
    simulations.add_snapshot_listener(seen.append)
    simulations.start("drv_1", "ord_1", CAPE_TOWN, far_away)

    clock.advance(0.25)
    snapshot = simulations.tick("drv_1")

    assert seen == [snapshot]
    assert snapshot.courier_id == "drv_1"
    assert snapshot.order_id == "ord_1"
    assert snapshot.phase == SimulationPhase.DELIVERING
    assert snapshot.position != CAPE_TOWN


def test_arrival_fires_once_and_retires_run(simulations, clock):
    arrivals = []
    simulations.add_arrival_listener(lambda sim_run, snapshot: arrivals.append((sim_run.order_id, snapshot.phase)))
    simulations.start("drv_1", "ord_1", CAPE_TOWN, CAPE_TOWN)

    snapshot = simulations.tick("drv_1")

    assert snapshot.phase == SimulationPhase.ARRIVED
    assert arrivals == [("ord_1", SimulationPhase.ARRIVED)]
    assert simulations.get("drv_1") is None
    assert simulations.tick("drv_1") is None
    assert arrivals == [("ord_1", SimulationPhase.ARRIVED)]


def test_failing_listener_does_not_stop_others(simulations, clock, far_away):
    seen = []

    def broken(snapshot):
        raise RuntimeError("display went away")

    simulations.add_snapshot_listener(broken)
    simulations.add_snapshot_listener(seen.append)
    simulations.start("drv_1", "ord_1", CAPE_TOWN, far_away)

    simulations.tick("drv_1")

    assert len(seen) == 1


def test_stop_makes_late_ticks_noops(simulations, clock, far_away):
    sim_run = simulations.start("drv_1", "ord_1", CAPE_TOWN, far_away)
    assert simulations.stop("drv_1") is True
    assert simulations.stop("drv_1") is False

    # a ticker that already grabbed the run before stop() still gets nothing
    assert sim_run.tick(clock.advance(0.25)) is None
    assert sim_run.position == CAPE_TOWN


def test_operator_controls(simulations, clock, far_away):
    simulations.start("drv_1", "ord_1", CAPE_TOWN, far_away)

    assert simulations.pause("drv_1") is True
    assert simulations.tick("drv_1", now=clock.advance(0.25)) is None
    assert simulations.resume("drv_1") is True

    assert simulations.simulate_traffic("drv_1", seconds=10) is True
    snapshot = simulations.tick("drv_1", now=clock.advance(0.25))
    assert snapshot.in_traffic is True
    assert snapshot.position == CAPE_TOWN

    snapshot = simulations.skip_to_destination("drv_1")
    assert snapshot.phase == SimulationPhase.ARRIVED
    assert snapshot.position == far_away
    assert simulations.get("drv_1") is None

    assert simulations.pause("nobody") is False
    assert simulations.skip_to_destination("nobody") is None
    assert simulations.snapshot("nobody") is None


def test_tick_all_moves_couriers_independently(simulations, clock, far_away):
    simulations.start("drv_1", "ord_1", CAPE_TOWN, far_away)
    simulations.start("drv_2", "ord_2", CAPE_TOWN, destination_point(CAPE_TOWN, 200.0, 3000))
    simulations.pause("drv_2")

    snapshots = simulations.tick_all(clock.advance(0.25))

    assert [s.courier_id for s in snapshots] == ["drv_1"]
    assert {s.courier_id for s in simulations.snapshots()} == {"drv_1", "drv_2"}


def test_ticker_thread_drives_run_to_arrival():
    policy = SimulationPolicy(
        tick_interval_ms=5,
        pickup_delay_s=0.0,
        departure_delay_s=0.0,
        traffic_enabled=False,
    )
    manager = SimulationManager(policy=policy)
    arrived = threading.Event()
    manager.add_arrival_listener(lambda sim_run, snapshot: arrived.set())

    try:
        manager.start("drv_1", "ord_1", CAPE_TOWN, CAPE_TOWN)
        assert arrived.wait(timeout=5.0)
        assert manager.get("drv_1") is None
    finally:
        manager.stop_all(wait=True, timeout=1.0)
