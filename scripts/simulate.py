"""
Cart Concurrency Simulation Script

Fires many identical "add to cart" requests at a running API at once and
checks that every one of them landed on a single cart entry, then checks
out that cart and prints the admin statistics.

Run from project root: python scripts/simulate.py
Start the API first with SEED_DATA_PATH=data/seed.json for an admin user.

Version: 1.0.0
"""

import argparse
import asyncio
import sys
import time
from datetime import datetime
from typing import Any

import httpx

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:5000"
CONCURRENT_ADDS = 50
CUSTOMER_UID = "sim-customer"
ADMIN_UID = "sim-admin"


async def get_token(client: httpx.AsyncClient, uid: str) -> dict[str, str]:
    """Exchange a uid for a bearer header."""
    response = await client.post(
        f"{API_BASE_URL}/jwt",
        json={"uid": uid, "email": f"{uid}@example.com"},
    )
    response.raise_for_status()
    return {"Authorization": f"Bearer {response.json()['token']}"}


async def add_to_cart(
    client: httpx.AsyncClient,
    headers: dict[str, str],
    menu_id: str,
    request_num: int,
) -> dict[str, Any]:
    """Send one cart add and time it."""
    start_time = time.time()
    try:
        response = await client.post(
            f"{API_BASE_URL}/carts",
            json={"userID": CUSTOMER_UID, "menuID": menu_id},
            headers=headers,
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)
        return {
            "request_num": request_num,
            "success": response.status_code == 200,
            "error": None if response.status_code == 200 else response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "request_num": request_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def run_simulation(num_adds: int = CONCURRENT_ADDS) -> bool:
    """
    Run the concurrency simulation.

    Returns True when the cart ends up with exactly one entry whose
    quantity equals the number of successful adds.
    """
    print("=" * 70)
    print("CART CONCURRENCY SIMULATION")
    print("=" * 70)
    print(f"Concurrent adds: {num_adds}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        health = await client.get(f"{API_BASE_URL}/health")
        health.raise_for_status()
        print(f"\nHealth: {health.json().get('status')} "
              f"(database={health.json().get('database')})")

        menu = (await client.get(f"{API_BASE_URL}/menu")).json()
        if not menu:
            print("\nMenu is empty. Seed it before running the simulation.")
            return False
        item = menu[0]
        print(f"Item under test: {item['name']} ({item['_id']})")

        customer = await get_token(client, CUSTOMER_UID)
        await client.post(
            f"{API_BASE_URL}/user",
            json={"uid": CUSTOMER_UID, "name": "Simulated Customer"},
        )

        # Start from an empty cart so the quantity check is exact
        for row in (await client.get(
            f"{API_BASE_URL}/carts", params={"userId": CUSTOMER_UID}, headers=customer
        )).json():
            await client.delete(
                f"{API_BASE_URL}/cart/{row['_id']}",
                params={"uid": CUSTOMER_UID},
                headers=customer,
            )

        print(f"\nFiring {num_adds} identical cart adds...\n")
        start_time = time.time()
        results = await asyncio.gather(*(
            add_to_cart(client, customer, item["_id"], i + 1) for i in range(num_adds)
        ))
        total_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        rows = (await client.get(
            f"{API_BASE_URL}/carts", params={"userId": CUSTOMER_UID}, headers=customer
        )).json()
        count = (await client.get(
            f"{API_BASE_URL}/carts/total", params={"userUID": CUSTOMER_UID}, headers=customer
        )).json()["count"]

        print("=" * 70)
        print("RESULTS")
        print("=" * 70)
        print(f"Successful adds: {len(successful)}/{num_adds}")
        print(f"Failed adds: {len(failed)}/{num_adds}")
        print(f"Total time: {total_time}s")
        if successful:
            avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
            print(f"Average response: {avg_time}s")
        for f in failed[:5]:
            print(f"   Add #{f['request_num']}: {f['error']}")

        quantity = rows[0]["quantity"] if rows else 0
        consistent = count == 1 and quantity == len(successful)
        print(f"\nCart entries: {count} (expected 1)")
        print(f"Quantity: {quantity} (expected {len(successful)})")
        print("Consistent" if consistent else "INCONSISTENT")

        if rows:
            price = float(rows[0]["price"]) * quantity
            payment = await client.post(f"{API_BASE_URL}/payments", json={
                "uid": CUSTOMER_UID,
                "email": f"{CUSTOMER_UID}@example.com",
                "price": round(price, 2),
                "transactionId": f"sim_{int(time.time())}",
                "cartIds": [row["_id"] for row in rows],
                "menuItemIds": [item["_id"]],
                "quantities": [quantity],
            })
            payment.raise_for_status()
            print(f"\nCheckout cleared {payment.json()['deleteResult']['deletedCount']} cart entries")

        admin = await get_token(client, ADMIN_UID)
        stats = await client.get(f"{API_BASE_URL}/admin/stats", headers=admin)
        if stats.status_code == 200:
            print("\nSummary:", stats.json())
            by_category = await client.get(f"{API_BASE_URL}/admin/order-stats", headers=admin)
            for row in by_category.json():
                print(f"   {row['category']}: {row['quantity']} sold, ${row['revenue']:.2f}")
        else:
            print(f"\nStats unavailable ({stats.status_code}): is {ADMIN_UID} an admin?")

    print("=" * 70)
    return consistent


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Cart Concurrency Simulation")
    parser.add_argument("--adds", type=int, default=CONCURRENT_ADDS, help="Number of concurrent adds")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    ok = asyncio.run(run_simulation(args.adds))
    sys.exit(0 if ok else 1)
