import pytest

from dispatch.events import EventRecorder
from dispatch.service import DispatchService
from simulation.manager import SimulationManager
from simulation.policy import SimulationPolicy

# Café Frank, Bree St
CAPE_TOWN = (-33.9249, 18.4241)


class FakeClock:
    """Monotonic seconds that only move when a test says so."""
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def instant_policy():
    # No kitchen delay, no random traffic: the courier moves from the first tick
    return SimulationPolicy(pickup_delay_s=0.0, departure_delay_s=0.0, traffic_enabled=False)


@pytest.fixture
def simulations(clock, instant_policy):
    return SimulationManager(policy=instant_policy, clock=clock, autostart=False)


@pytest.fixture
def service(simulations):
    svc = DispatchService(simulations=simulations)
    yield svc
    svc.shutdown()


@pytest.fixture
def recorder(service):
    rec = EventRecorder()
    service.events.subscribe(rec)
    return rec


@pytest.fixture
def idle_courier(service):
    courier = service.register_courier("Thabo", "+27 82 555 0101", vehicle="scooter", plate="CA 123456")
    return service.set_availability(courier.id, True)


def delivery_to(lat, lng, label="12 Loop St"):
    return {"mode": "delivery", "address": {"lat": lat, "lng": lng, "label": label}}


@pytest.fixture
def delivery_order(service):
    return service.create_order(
        [{"id": "a", "name": "Flat White", "price": 50, "qty": 2}, {"id": "b", "name": "Croissant", "price": 30}],
        customer={"name": "Ayesha"},
        delivery=delivery_to(-33.9180, 18.4232),
    )
