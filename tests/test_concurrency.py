import threading

import pytest

from dispatch.errors import CourierBusy, DispatchError, OrderAlreadyAssigned
from dispatch.service import DispatchService
from orders.models import OrderStatus
from simulation.manager import SimulationManager


def delivery_order(service):
    return service.create_order(
        [{"id": "a", "price": 20}],
        delivery={"mode": "delivery", "address": {"lat": -33.918, "lng": 18.423}},
    )


def idle_courier(service, name):
    courier = service.register_courier(name, "+27 82 555 0000")
    return service.set_availability(courier.id, True)


def race(calls):
    """Run every call at the same instant. Returns ("ok", value) or ("err", exception) per call."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)

    def worker(index, call):
        barrier.wait()
        try:
            results[index] = ("ok", call())
        except DispatchError as exc:
            results[index] = ("err", exc)

    threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return results


@pytest.fixture
def service():
    svc = DispatchService(simulations=SimulationManager(autostart=False))
    yield svc
    svc.shutdown()


@pytest.mark.parametrize("attempt", range(20))
def test_two_orders_race_for_one_courier(service, attempt):
    courier = idle_courier(service, "Thabo")
    first, second = delivery_order(service), delivery_order(service)

    results = race([
        lambda: service.assign(courier.id, first.id),
        lambda: service.assign(courier.id, second.id),
    ])

    outcomes = sorted(kind for kind, _ in results)
    assert outcomes == ["err", "ok"]
    error = next(value for kind, value in results if kind == "err")
    assert isinstance(error, CourierBusy)

    on_the_way = service.list_orders(OrderStatus.ON_THE_WAY)
    assert len(on_the_way) == 1
    assert service.get_courier(courier.id).assigned_order_id == on_the_way[0].id
    assert service.store.invariant_violations() == []


@pytest.mark.parametrize("attempt", range(20))
def test_two_couriers_race_for_one_order(service, attempt):
    order = delivery_order(service)
    couriers = [idle_courier(service, "Thabo"), idle_courier(service, "Zanele")]

    results = race([lambda c=c: service.assign(c.id, order.id) for c in couriers])

    errors = [value for kind, value in results if kind == "err"]
    assert len(errors) == 1
    assert isinstance(errors[0], OrderAlreadyAssigned)
    busy = [c for c in service.list_couriers() if c.assigned_order_id == order.id]
    assert len(busy) == 1


def test_readers_never_see_half_updated_orders(service):
    couriers = [idle_courier(service, f"Courier {i}") for i in range(4)]
    orders = [delivery_order(service) for _ in range(40)]
    stop = threading.Event()
    torn = []

    def reader():
        while not stop.is_set():
            for order in service.list_orders():
                if (order.status == OrderStatus.ON_THE_WAY) != (order.assigned_courier_id is not None):
                    torn.append(order)
            for courier in service.list_couriers():
                if courier.assigned_order_id is not None and courier.status.value != "on_delivery":
                    torn.append(courier)

    def writer():
        for index, order in enumerate(orders):
            courier = couriers[index % len(couriers)]
            service.assign(courier.id, order.id)
            if index % 2:
                service.mark_delivered(courier.id)
            else:
                service.cancel_order(order.id)

    readers = [threading.Thread(target=reader) for _ in range(3)]
    for thread in readers:
        thread.start()
    try:
        writer()
    finally:
        stop.set()
        for thread in readers:
            thread.join(timeout=10)

    assert torn == []
    assert service.store.invariant_violations() == []
    assert sum(c.deliveries_count for c in service.list_couriers()) == 20
