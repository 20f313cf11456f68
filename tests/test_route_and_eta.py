import pytest

from routing.eta_service import EtaState, estimate_eta, format_distance
from routing.route_service import build_route
from simulation.models import SimulationPhase


def test_build_route_bends_toward_destination():
    route = build_route((0.0, 0.0), (1.0, 1.0))
    assert len(route) == 3
    assert route[0] == (0.0, 0.0)
    assert route[2] == (1.0, 1.0)
    assert route[1] == pytest.approx((0.51, 0.51))


def test_build_route_offset_follows_delta_sign():
    route = build_route((1.0, 1.0), (0.0, 2.0), offset_degrees=0.1)
    # lat goes down, lng goes up
    assert route[1] == pytest.approx((0.4, 1.6))


def test_build_route_degenerate_collapses_onto_origin():
    origin = (-33.9249, 18.4241)
    assert build_route(origin, origin) == [origin, origin, origin]


def test_eta_preparing_is_not_moving():
    eta = estimate_eta(SimulationPhase.PREPARING, 5000, 10)
    assert eta.state == EtaState.NOT_MOVING
    assert eta.minutes is None
    assert eta.label == "Preparing order…"


def test_eta_arrived():
    eta = estimate_eta("arrived", 0, 10)
    assert eta.state == EtaState.ARRIVED
    assert eta.minutes == 0
    assert eta.label == "Arrived"


def test_eta_rounds_up_to_whole_minutes():
    # 1000 m at 10 m/s = 100 s -> 2 min
    eta = estimate_eta(SimulationPhase.DELIVERING, 1000, 10)
    assert eta.minutes == 2
    assert eta.label == "~2 min"


def test_eta_floors_at_minimum_and_clamps_speed():
    assert estimate_eta("picked_up", 0, 10).minutes == 1
    assert estimate_eta("picked_up", 0, 10, min_minutes=3).minutes == 3
    # speeds below 1 m/s are treated as 1 m/s: 1000 s -> 17 min
    assert estimate_eta("delivering", 1000, 0.2).minutes == 17


def test_format_distance():
    assert format_distance(640.4) == "640 m"
    assert format_distance(1300) == "1.3 km"
