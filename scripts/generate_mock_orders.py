from datetime import datetime, timezone, timedelta

import numpy as np
import pandas as pd

from dispatch.policy import DEFAULT_MERCHANT_LOCATION

MENU = [
    ("flat-white", "Flat White", 32.0),
    ("croissant", "Butter Croissant", 28.0),
    ("avo-toast", "Avo Toast", 89.0),
    ("shakshuka", "Shakshuka", 115.0),
    ("brownie", "Chocolate Brownie", 38.0),
]


def generate_mock_orders(num_orders=40, collect_share=0.15, output_file="mock_orders.csv"):
    """
    Generates one row per order line, delivery drop-offs scattered around the merchant.
    A share of orders are 'collect' (no drop-off coordinate) so the matcher has to skip them.
    """
    merchant_lat, merchant_lng = DEFAULT_MERCHANT_LOCATION

    rows = []
    now = datetime.now(timezone.utc)

    for order_index in range(num_orders):
        order_ref = f"o_{str(order_index + 1).zfill(4)}"
        mode = np.random.choice(["delivery", "collect"], p=[1 - collect_share, collect_share])

        # Drop-offs within ~3km of the cafe (roughly 0.03 degrees)
        if mode == "delivery":
            dropoff_lat = np.round(merchant_lat + np.random.uniform(-0.03, 0.03), 6)
            dropoff_lng = np.round(merchant_lng + np.random.uniform(-0.03, 0.03), 6)
        else:
            dropoff_lat = dropoff_lng = np.nan

        created_at = (now - timedelta(minutes=int(np.random.randint(0, 45)))).isoformat()
        customer = f"Customer {np.random.randint(100, 999)}"

        picks = np.random.choice(len(MENU), size=np.random.randint(1, 4), replace=False)
        for pick in picks:
            line_id, name, price = MENU[pick]
            rows.append({
                "order_ref": order_ref,
                "created_at": created_at,
                "customer": customer,
                "mode": mode,
                "dropoff_lat": dropoff_lat,
                "dropoff_lng": dropoff_lng,
                "line_id": line_id,
                "line_name": name,
                "price": price,
                "qty": int(np.random.randint(1, 3)),
            })

    df = pd.DataFrame(rows)
    df.to_csv(output_file, index=False)
    print(f"✅ Generated {num_orders} orders ({len(df)} lines) and saved to '{output_file}'")

    totals = (df["price"] * df["qty"]).groupby(df["order_ref"]).sum()
    print(f"  Average basket: R{totals.mean():.2f}")
    print(f"  Delivery orders: {df.drop_duplicates('order_ref')['mode'].eq('delivery').sum()}")
    return df


def generate_mock_couriers(count=6, offline_share=0.2, output_file="mock_couriers.csv"):
    merchant_lat, merchant_lng = DEFAULT_MERCHANT_LOCATION

    rows = []
    for courier_index in range(count):
        rows.append({
            "name": f"Courier {courier_index + 1}",
            "phone": f"+27 82 {np.random.randint(100, 999)} {np.random.randint(1000, 9999)}",
            "vehicle": np.random.choice(["scooter", "bicycle", "car"], p=[0.6, 0.25, 0.15]),
            "plate": f"CA {np.random.randint(100000, 999999)}",
            "available": bool(np.random.random() >= offline_share),
            # Scattered around the cafe (roughly +/- 2km)
            "lat": np.round(merchant_lat + np.random.uniform(-0.02, 0.02), 6),
            "lng": np.round(merchant_lng + np.random.uniform(-0.02, 0.02), 6),
        })

    df = pd.DataFrame(rows)
    df.to_csv(output_file, index=False)
    print(f"Successfully generated {count} mock couriers into '{output_file}'.")
    return df


if __name__ == "__main__":
    generate_mock_orders()
    generate_mock_couriers()
