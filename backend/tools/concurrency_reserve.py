import argparse
import concurrent.futures
import json
import os
import sys

import requests

BASE = os.environ.get("RENTALHUB_BASE", "http://127.0.0.1:8000")


def reserve_task(i, product_id, qty, start, end, source_type):
    payload = {
        "product_id": product_id,
        "quantity": qty,
        "start_date": start,
        "end_date": end,
        "source_type": source_type,
        "source_id": 1000 + i,
        "customer_id": 1,
        "vendor_id": 1,
    }
    try:
        r = requests.post(f"{BASE}/api/reservations", json=payload, timeout=20)
        return (i, r.status_code, r.text)
    except Exception as e:
        return (i, "ERR", str(e))


def availability(product_id, start, end):
    r = requests.get(
        f"{BASE}/api/products/{product_id}/availability",
        params={"start_date": start, "end_date": end},
        timeout=10,
    )
    return r.json()


def run_reserve_concurrent(workers, product_id, qty, start, end, source_type):
    print(f"Running reserve test: workers={workers}, product={product_id}, qty={qty}, window=[{start}, {end})")
    before = availability(product_id, start, end)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [
            ex.submit(reserve_task, i, product_id, qty, start, end, source_type)
            for i in range(workers)
        ]
        results = [f.result() for f in futures]
    for r in results:
        print(r)
    granted = [json.loads(r[2]) for r in results if r[1] == 200]
    total = sum(g["quantity"] for g in granted)
    print("Granted reservations:", len(granted), "units:", total)
    print("Free before:", before.get("availableQuantity"))
    if total > before.get("availableQuantity", 0):
        print("OVERSOLD")
        sys.exit(2)
    print("No oversell detected.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fire concurrent reserve calls at one product/window.")
    parser.add_argument("--product", type=int, default=1)
    parser.add_argument("--qty", type=int, default=1)
    parser.add_argument("--start", default="2030-06-01T00:00:00")
    parser.add_argument("--end", default="2030-06-05T00:00:00")
    parser.add_argument("--source-type", default="quotation", choices=["quotation", "rental_order"])
    parser.add_argument("--workers", type=int, default=16)
    args = parser.parse_args()

    run_reserve_concurrent(args.workers, args.product, args.qty, args.start, args.end, args.source_type)
