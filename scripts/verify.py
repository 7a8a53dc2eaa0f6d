"""
Order Integrity Report

Reads the recent orders through the admin API and checks that:
    - every order has at least one line (no orders left behind by a
      failed line write)
    - each order total equals the sum of its line subtotals
    - every status is one of the lifecycle states

Run from project root: python scripts/verify.py
"""

import os
import sys
from collections import Counter
from datetime import datetime
from decimal import Decimal

import httpx

API_BASE_URL = os.getenv("STOREFRONT_URL", "http://localhost:8001")
ADMIN_TOKEN = os.getenv("ADMIN_API_TOKEN", "")

STATUSES = {"pending", "confirmed", "preparing", "ready", "completed", "cancelled"}


def verify_orders(limit: int = 200) -> bool:
    print("=" * 60)
    print("🔍 ORDER INTEGRITY REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"🎯 Target: {API_BASE_URL}")
    print("=" * 60)

    if not ADMIN_TOKEN:
        print("\n❌ ADMIN_API_TOKEN is not set")
        return False

    try:
        response = httpx.get(
            f"{API_BASE_URL}/api/admin/orders",
            params={"limit": limit},
            headers={"X-Admin-Token": ADMIN_TOKEN},
            timeout=30.0,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        print(f"\n❌ Could not load orders: {e}")
        return False

    orders = response.json()["orders"]
    print(f"\n📊 Orders checked: {len(orders)}")

    orphans = [o for o in orders if not o["items"]]
    mismatched = [
        o for o in orders
        if o["items"] and Decimal(o["total_amount"]) != sum(
            (Decimal(i["unit_price"]) * i["quantity"] for i in o["items"]), Decimal("0")
        )
    ]
    unknown = [o for o in orders if o["status"] not in STATUSES]

    if orphans:
        print(f"\n⚠️ {len(orphans)} orders without lines:")
        for o in orphans[:5]:
            print(f"   #{o['reference']} ({o['customer_name']})")
    else:
        print("✅ Every order has its lines")

    if mismatched:
        print(f"\n⚠️ {len(mismatched)} orders whose total differs from their lines:")
        for o in mismatched[:5]:
            print(f"   #{o['reference']}: total {o['total_amount']}")
    else:
        print("✅ Totals match line subtotals")

    if unknown:
        print(f"\n⚠️ {len(unknown)} orders with an unknown status")

    statuses = Counter(o["status"] for o in orders)
    print("\n📦 STATUS BREAKDOWN:")
    for status, count in sorted(statuses.items()):
        print(f"   {status}: {count}")

    revenue = sum((Decimal(o["total_amount"]) for o in orders if o["status"] != "cancelled"), Decimal("0"))
    print(f"\n💰 Revenue (excluding cancelled): €{revenue:.2f}")

    ok = not (orphans or mismatched or unknown)
    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "❌ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)
    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_orders() else 1)
