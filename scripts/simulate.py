"""
Storefront Load Simulation

Simulates many customers filling carts and checking out at the same time,
then an admin walking a share of the new orders through the lifecycle.
Run from project root: python scripts/simulate.py --orders 30

Requires a running API (python -m storefront.main) with ADMIN_API_TOKEN set.
"""

import argparse
import asyncio
import os
import random
import sys
import time
import uuid
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = os.getenv("STOREFRONT_URL", "http://localhost:8001")
ADMIN_TOKEN = os.getenv("ADMIN_API_TOKEN", "")
TOTAL_ORDERS = 30

FIRST_NAMES = ["Matti", "Liisa", "Juha", "Anna", "Pekka", "Sanna", "Mikko", "Laura", "Antti", "Elina"]
LAST_NAMES = ["Virtanen", "Korhonen", "Nieminen", "Mäkinen", "Hämäläinen", "Laine", "Koskinen"]
REQUESTS = [None, "No onions", "Extra cheese", "Well done", "Spicy"]

# Admin action chain, one step per call
LIFECYCLE = ["accept", "start_preparing", "mark_ready", "complete"]


def generate_contact() -> dict[str, Any]:
    first = random.choice(FIRST_NAMES)
    last = random.choice(LAST_NAMES)
    return {
        "customer_name": f"{first} {last}",
        "customer_phone": f"040 {random.randint(100, 999)} {random.randint(1000, 9999)}",
        "customer_email": random.choice([None, f"{first.lower()}@example.com"]),
        "special_instructions": random.choice([None, "", "Pickup at 18:00", "Extra napkins"]),
    }


# =============================================================================
# CUSTOMER FLOW
# =============================================================================

async def place_order(
    client: httpx.AsyncClient,
    menu: list[dict[str, Any]],
    order_num: int,
) -> dict[str, Any]:
    """Fill a fresh cart with random items and check out."""
    headers = {"X-Session-Id": f"sim-{uuid.uuid4().hex}"}
    start_time = time.time()

    try:
        for item in random.sample(menu, k=min(len(menu), random.randint(1, 4))):
            response = await client.post(
                f"{API_BASE_URL}/api/cart/items",
                json={
                    "menu_item_id": item["id"],
                    "quantity": random.randint(1, 3),
                    "special_requests": random.choice(REQUESTS),
                },
                headers=headers,
            )
            response.raise_for_status()

        response = await client.post(
            f"{API_BASE_URL}/api/checkout",
            json=generate_contact(),
            headers=headers,
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data["order_id"],
                "reference": data["reference"],
                "total": float(data["total_amount"]),
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


# =============================================================================
# ADMIN FLOW
# =============================================================================

async def advance_order(client: httpx.AsyncClient, order_id: str) -> str:
    """Run the order through a random number of lifecycle steps, or reject it."""
    headers = {"X-Admin-Token": ADMIN_TOKEN}

    if random.random() < 0.1:
        steps = ["reject"]
    else:
        steps = LIFECYCLE[:random.randint(0, len(LIFECYCLE))]

    status = "pending"
    for action in steps:
        response = await client.post(
            f"{API_BASE_URL}/api/admin/orders/{order_id}/actions/{action}",
            headers=headers,
        )
        if response.status_code != 200:
            return f"error: {response.text[:60]}"
        status = response.json()["status"]
    return status


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, advance: bool = True) -> dict[str, Any]:
    print("=" * 70)
    print("🍕 STOREFRONT SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu = (await client.get(f"{API_BASE_URL}/api/menu")).json()
        if not menu:
            print("\n❌ The menu is empty. Add menu items in the admin console first.")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        print(f"\n🚀 Placing orders from a menu of {len(menu)} items...\n")
        results = await asyncio.gather(
            *[place_order(client, menu, i + 1) for i in range(num_orders)]
        )

        successful = [r for r in results if r["success"]]
        statuses: list[str] = []
        if advance and ADMIN_TOKEN and successful:
            print("👩‍🍳 Advancing orders through the lifecycle...\n")
            statuses = await asyncio.gather(
                *[advance_order(client, r["order_id"]) for r in successful]
            )

    total_time = round(time.time() - start_time, 2)
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r["total"] for r in successful)
        print(f"\n📈 Average checkout: {avg_time}s")
        print(f"   💰 Total Revenue: €{revenue:.2f}")

    if statuses:
        print("\n📦 Final statuses:")
        for status in sorted(set(statuses)):
            print(f"   {status}: {statuses.count(status)}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 Next: python scripts/verify.py")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Storefront Load Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--no-advance", action="store_true", help="Leave every order pending")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args.orders, advance=not args.no_advance))
    sys.exit(0 if summary["failed"] == 0 else 1)
