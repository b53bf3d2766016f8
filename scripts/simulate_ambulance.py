#!/usr/bin/env python3
"""
simulate_ambulance.py — Drive an ambulance around downtown LA over /ws.

Opens a dispatch session against the hub, then pushes an AMBULANCE_LOCATION
frame every few seconds, walking the ambulance in a straight line towards
Memorial Hospital. Every frame the hub broadcasts back is printed, so two
copies of this script (or this script plus the web apps) show the fan-out.

Usage:
    python scripts/simulate_ambulance.py                      # ambulance 1
    python scripts/simulate_ambulance.py --ambulance-id 2 --steps 20

Requires:
    pip install -e .
    The API running locally (or set HUB_URL, e.g. ws://host:8000/ws)

Stops after --steps updates or on Ctrl+C.
"""

import argparse
import asyncio

from swiftaid.client.session import close_session, open_session
from swiftaid.core.config import settings
from swiftaid.models.messages import AmbulanceLocationMessage

# Start point → end point (Memorial Hospital)
ROUTE_START = (34.0500, -118.2400)
ROUTE_END = (34.0522, -118.2437)


def route_point(step: int, steps: int) -> tuple[float, float]:
    """Linear interpolation along the route, rounded to 6 decimals (~0.1 m)."""
    t = step / max(steps - 1, 1)
    lat = ROUTE_START[0] + (ROUTE_END[0] - ROUTE_START[0]) * t
    lon = ROUTE_START[1] + (ROUTE_END[1] - ROUTE_START[1]) * t
    return round(lat, 6), round(lon, 6)


def print_message(message) -> None:
    print(f"  ← {message.type}: {message.model_dump_json(by_alias=True)}")


async def simulate(ambulance_id: int, steps: int, interval: float, speed: float) -> None:
    print(f"Connecting to {settings.hub_url}...")
    session = await open_session(
        settings.hub_url,
        settings.default_requester_id,
        on_message=print_message,
        reconnect_interval=settings.reconnect_interval_seconds,
        max_reconnect_delay=settings.max_reconnect_delay_seconds,
    )

    try:
        if not await session.wait_connected(timeout=10):
            print("Could not reach the hub, giving up.")
            return
        print("Connected.")

        for step in range(steps):
            lat, lon = route_point(step, steps)
            sent = await session.send(
                AmbulanceLocationMessage(
                    ambulance_id=ambulance_id, latitude=lat, longitude=lon, speed=speed
                )
            )
            print(f"→ [{step + 1}/{steps}] ambulance {ambulance_id} at {lat}, {lon}" + ("" if sent else " (not sent)"))
            await asyncio.sleep(interval)

        print("\nSimulation complete.")
    finally:
        await close_session()


def main() -> None:
    parser = argparse.ArgumentParser(description="Stream simulated ambulance positions to the hub.")
    parser.add_argument("--ambulance-id", type=int, default=1)
    parser.add_argument("--steps", type=int, default=10)
    parser.add_argument("--interval", type=float, default=2.0, help="seconds between updates")
    parser.add_argument("--speed", type=float, default=40.0, help="reported speed (km/h)")
    args = parser.parse_args()

    try:
        asyncio.run(simulate(args.ambulance_id, args.steps, args.interval, args.speed))
    except KeyboardInterrupt:
        print("\nStopped.")


if __name__ == "__main__":
    main()
