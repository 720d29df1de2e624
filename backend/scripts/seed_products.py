#!/usr/bin/env python3
"""
Seed rentable products from a JSON file, or a small built-in catalogue when no
file is given.

Usage:
    python scripts/seed_products.py
    python scripts/seed_products.py --file products.json
"""
import argparse
import json
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from rentalhub.db import SessionLocal, init_db
from rentalhub.repositories.product_repo import ProductRepository

DEFAULT_PRODUCTS = [
    {"sku": "CAM-001", "name": "Mirrorless Camera Kit", "quantity_on_hand": 5, "vendor_id": 1},
    {"sku": "LNS-050", "name": "50mm Prime Lens", "quantity_on_hand": 3, "vendor_id": 1},
    {"sku": "TNT-4P", "name": "Four Person Tent", "quantity_on_hand": 10, "vendor_id": 2},
    {"sku": "PRJ-HD", "name": "HD Projector", "quantity_on_hand": 1, "vendor_id": 2},
]


def _normalize_entry(entry):
    """Return a dict with keys: sku, name, quantity_on_hand, vendor_id, description"""
    sku = entry.get("sku") or entry.get("id")
    name = entry.get("name") or entry.get("title") or ""
    try:
        quantity = int(entry.get("quantity_on_hand", entry.get("quantityOnHand", entry.get("stock", 0))) or 0)
    except (TypeError, ValueError):
        quantity = 0
    vendor_id = entry.get("vendor_id", entry.get("vendorId"))
    return {
        "sku": sku,
        "name": name,
        "quantity_on_hand": max(0, quantity),
        "vendor_id": int(vendor_id) if vendor_id is not None else None,
        "description": entry.get("description"),
    }


def load_entries(path):
    if path is None:
        return [_normalize_entry(e) for e in DEFAULT_PRODUCTS]
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        source_list = data.get("items") if isinstance(data.get("items"), list) else list(data.values())
    elif isinstance(data, list):
        source_list = data
    else:
        source_list = []
    return [_normalize_entry(e) for e in source_list]


def seed(entries):
    init_db()
    db = SessionLocal()
    repo = ProductRepository(db)
    created = 0
    try:
        for entry in entries:
            if not entry.get("sku"):
                continue
            repo.create_or_update(
                sku=entry["sku"],
                name=entry["name"],
                quantity_on_hand=entry["quantity_on_hand"],
                vendor_id=entry["vendor_id"],
                description=entry["description"],
            )
            created += 1
        db.commit()
        print("Seeded products:", created)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", default=None, help="Path to a JSON list of product entries")
    args = parser.parse_args()
    if args.file and not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)
    seed(load_entries(args.file))
