"""
Dinner Rush Simulation Script

Fires concurrent table orders at a running server, then walks a share of
them through the kitchen workflow. Open the staff feed (/ws/orders) in
another window to watch the board update.

Run from project root: python scripts/simulate.py

Version: 1.0.0
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 30
TABLES = 12

LINE_NOTES = [None, None, None, "No onions", "Extra spicy", "Well done"]
ORDER_NOTES = [None, None, "Birthday table", "Bring water first"]


def generate_order_payload(menu_ids: list[str]) -> dict[str, Any]:
    """Random cart for a random table, one line per dish."""
    dishes = random.sample(menu_ids, k=random.randint(1, min(4, len(menu_ids))))
    return {
        "table_number": random.randint(1, TABLES),
        "notes": random.choice(ORDER_NOTES),
        "items": [
            {
                "menu_item_id": dish,
                "quantity": random.randint(1, 3),
                "notes": random.choice(LINE_NOTES),
            }
            for dish in dishes
        ],
    }


async def load_menu(client: httpx.AsyncClient) -> list[str]:
    response = await client.get(f"{API_BASE_URL}/api/menu")
    response.raise_for_status()
    return [item["id"] for item in response.json()["items"]]


async def send_order(client: httpx.AsyncClient, menu_ids: list[str], order_num: int) -> dict[str, Any]:
    payload = generate_order_payload(menu_ids)
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 200:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data.get("order_id"),
                "total": float(data.get("total_amount", 0)),
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


async def work_kitchen(client: httpx.AsyncClient, order_ids: list[str]) -> dict[str, int]:
    """Advance most orders a random number of steps and cancel a few."""
    outcome = {"advanced": 0, "cancelled": 0, "rejected": 0}

    for order_id in order_ids:
        if random.random() < 0.1:
            response = await client.post(f"{API_BASE_URL}/api/orders/{order_id}/cancel")
            outcome["cancelled" if response.status_code == 200 else "rejected"] += 1
            continue

        for _ in range(random.randint(0, 3)):
            response = await client.post(f"{API_BASE_URL}/api/orders/{order_id}/advance")
            if response.status_code != 200:
                outcome["rejected"] += 1
                break
            outcome["advanced"] += 1

    return outcome


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, kitchen: bool = True) -> dict[str, Any]:
    print("=" * 70)
    print("DINNER RUSH SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu_ids = await load_menu(client)
        if not menu_ids:
            print("\nMenu is empty, nothing to order.")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        tasks = [send_order(client, menu_ids, i + 1) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

        successful = [r for r in results if r["success"]]
        kitchen_outcome = None
        if kitchen and successful:
            kitchen_outcome = await work_kitchen(client, [r["order_id"] for r in successful])

        report = (await client.get(f"{API_BASE_URL}/api/reports/sales")).json()

    total_time = round(time.time() - start_time, 2)
    failed = [r for r in results if not r["success"]]

    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"Average Response: {avg_time}s")
        print(f"Revenue Submitted: {sum(r['total'] for r in successful):,.0f}")

    if kitchen_outcome:
        print(f"\nKitchen: {kitchen_outcome}")

    print(f"\nStatus Breakdown: {report.get('status_breakdown')}")
    print(f"Completion Rate: {report.get('completion_rate')}%")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dinner Rush Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--no-kitchen", action="store_true", help="Only submit orders")
    args = parser.parse_args()

    asyncio.run(run_simulation(num_orders=args.orders, kitchen=not args.no_kitchen))
