import os
from typing import List

import numpy as np
import pandas as pd

from dispatch.dispatcher import Dispatcher
from dispatch.errors import DispatchError
from dispatch.events import EventRecorder
from dispatch.service import DispatchService
from dispatch.settings import configure_logging, load_settings
from routing import format_distance, polyline_length_meters
from simulation.manager import SimulationManager
from simulation.policy import fast_simulation_policy
from scripts.generate_mock_orders import generate_mock_couriers, generate_mock_orders


class SteppedClock:
    """Simulated seconds. The loop below moves it forward one tick at a time."""
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def load_orders(service: DispatchService, orders_df: pd.DataFrame) -> List[str]:
    order_ids = []
    for order_ref, group in orders_df.groupby("order_ref", sort=False):
        first = group.iloc[0]
        delivery = {"mode": first["mode"]}
        if first["mode"] == "delivery":
            delivery["address"] = {
                "lat": float(first["dropoff_lat"]),
                "lng": float(first["dropoff_lng"]),
                "label": f"Drop-off for {order_ref}",
            }

        lines = [
            {"id": row["line_id"], "name": row["line_name"], "price": float(row["price"]), "qty": int(row["qty"])}
            for _, row in group.iterrows()
        ]
        try:
            order = service.create_order(lines, customer={"name": first["customer"]}, delivery=delivery)
        except DispatchError as exc:
            print(f"[SKIPPED] {order_ref}: {exc}")
            continue
        order_ids.append(order.id)
    return order_ids


def load_couriers(service: DispatchService, couriers_df: pd.DataFrame) -> List[str]:
    courier_ids = []
    for _, row in couriers_df.iterrows():
        courier = service.register_courier(row["name"], row["phone"], row["vehicle"], row["plate"])
        service.update_courier_location(courier.id, float(row["lat"]), float(row["lng"]))
        service.set_availability(courier.id, bool(row["available"]))
        courier_ids.append(courier.id)
    return courier_ids


def run_simulation(num_orders=20, num_couriers=5, max_ticks=50_000):
    print("=== STARTING END-TO-END DISPATCH SIMULATION ===")
    settings = load_settings()
    configure_logging("WARNING")

    # 1. Configure System (no ticker threads: we drive the clock ourselves)
    clock = SteppedClock()
    policy = fast_simulation_policy()
    simulations = SimulationManager(policy=policy, clock=clock, autostart=False)
    service = DispatchService(simulations=simulations, policy=settings.dispatch)
    recorder = EventRecorder()
    service.events.subscribe(recorder)
    dispatcher = Dispatcher(service)

    # 2. Load Data
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    orders_df = generate_mock_orders(num_orders=num_orders, output_file=os.path.join(base_dir, "mock_orders.csv"))
    couriers_df = generate_mock_couriers(count=num_couriers, output_file=os.path.join(base_dir, "mock_couriers.csv"))
    order_ids = load_orders(service, orders_df)
    courier_ids = load_couriers(service, couriers_df)
    print(f"Loaded {len(order_ids)} Orders and {len(courier_ids)} Couriers.\n")

    # 3. Dispatch and tick until every delivery order is out the door
    ticks = 0
    paths = {}
    while ticks < max_ticks:
        for order_id, courier_id in dispatcher.dispatch_open_orders().items():
            if courier_id is None:
                continue
            print(f"[ASSIGNED] {order_id} -> {courier_id}")

        active = simulations.active_runs()
        if not active:
            break

        clock.now += policy.tick_interval_s
        for sim_run in active:
            paths[sim_run.order_id] = sim_run
        simulations.tick_all()
        ticks += 1

    print(f"\nSimulated {ticks} ticks ({clock.now:.1f}s of simulated time).")

    # 4. Export
    log_rows = []
    for courier in service.list_couriers():
        for entry in courier.delivery_log:
            log_rows.append({
                "courier_id": courier.id,
                "courier": courier.name,
                "order_id": entry.order_id,
                "customer": entry.customer,
                "destination": entry.destination,
                "amount": round(entry.amount, 2),
                "items": sum(line.qty for line in entry.lines),
                "delivered_at": entry.delivered_at.isoformat(),
            })
    log_df = pd.DataFrame(log_rows)
    log_path = os.path.join(base_dir, "delivery_log.csv")
    log_df.to_csv(log_path, index=False)

    path_rows = []
    for order_id, sim_run in paths.items():
        for step, (lat, lng) in enumerate(sim_run.traveled_path()):
            path_rows.append({"order_id": order_id, "courier_id": sim_run.courier_id, "step": step, "lat": lat, "lng": lng})
    path_df = pd.DataFrame(path_rows)
    path_path = os.path.join(base_dir, "traveled_paths.csv")
    path_df.to_csv(path_path, index=False)
    traveled_m = sum(polyline_length_meters(sim_run.traveled_path()) for sim_run in paths.values())

    print("\n=== SIMULATION COMPLETE ===")
    leftover = service.list_orders()
    print(f"Orders Delivered: {len(log_df)} / {len(order_ids)}")
    print(f"Orders still open: {len(leftover)} ({sum(order.destination is None for order in leftover)} collect)")
    print(f"Distance covered by couriers: {format_distance(traveled_m)}")
    if not log_df.empty:
        per_courier = log_df.groupby("courier")["amount"].agg(["count", "sum"])
        print("\nDeliveries per courier:")
        for name, row in per_courier.iterrows():
            print(f"  {name}: {int(row['count'])} deliveries, R{row['sum']:.2f}")
        steps = path_df.groupby("order_id")["step"].max()
        print(f"\nMedian ticks of motion per delivery: {int(np.median(steps))}")
    print(f"Events published: {len(recorder.events)}")
    print(f"Results written to '{log_path}' and '{path_path}'.")


if __name__ == "__main__":
    run_simulation()
