#!/usr/bin/env python3
"""GeoTrack trip simulator.

Drives a recording session over the HTTP API with a synthetic trip: a device
moving along a wandering route, with GPS jitter, occasional standstills and
the odd malformed fix.

Usage:
    # 10 minute city drive around Lyon, one fix per second
    python -m tools.simulator.simulate --server http://localhost:8000 --duration 600

    # Walk in Paris, fixes replayed as fast as the server accepts them
    python -m tools.simulator.simulate --center 48.8566,2.3522 --speed 1.4 --realtime 0
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import random
import time
from dataclasses import dataclass

import httpx


@dataclass
class SimDevice:
    lat: float
    lon: float
    bearing: float
    speed_mps: float
    altitude_m: float
    fixes_sent: int = 0
    points_accepted: int = 0
    errors: int = 0


def move_device(device: SimDevice, dt_seconds: float, cruise_mps: float) -> None:
    """Move a device along its current bearing, with random turns."""
    device.bearing = (device.bearing + random.uniform(-15, 15)) % 360

    # Standstill now and then (traffic lights, pauses on a walk).
    if random.random() < 0.05:
        device.speed_mps = 0.0
    else:
        target = cruise_mps * random.uniform(0.7, 1.3)
        device.speed_mps = max(0.0, device.speed_mps + (target - device.speed_mps) * 0.3)

    distance_m = device.speed_mps * dt_seconds
    bearing_rad = math.radians(device.bearing)

    # Approximate: 1 degree latitude is 111,195 m
    dlat = (distance_m * math.cos(bearing_rad)) / 111_195
    dlon = (distance_m * math.sin(bearing_rad)) / (111_195 * math.cos(math.radians(device.lat)))

    device.lat += dlat
    device.lon += dlon
    device.altitude_m += random.uniform(-0.5, 0.5)


def make_fix_payload(device: SimDevice, timestamp_ms: int, jitter_m: float) -> dict:
    """One location fix as a browser would report it."""
    noise_lat = random.gauss(0, jitter_m) / 111_195
    noise_lon = random.gauss(0, jitter_m) / (111_195 * math.cos(math.radians(device.lat)))
    return {
        "latitude": round(device.lat + noise_lat, 7),
        "longitude": round(device.lon + noise_lon, 7),
        "accuracy": round(abs(random.gauss(jitter_m, 2)) + 3, 1),
        "altitude": round(device.altitude_m, 1),
        "speed": round(device.speed_mps, 2),
        "timestamp": timestamp_ms,
    }


async def run_trip(client: httpx.AsyncClient, args: argparse.Namespace) -> dict | None:
    """Record one trip and return the finalized track."""
    center_lat, center_lon = args.center
    device = SimDevice(
        lat=center_lat,
        lon=center_lon,
        bearing=random.uniform(0, 360),
        speed_mps=args.speed,
        altitude_m=random.uniform(150, 250),
    )

    resp = await client.post(f"{args.server}/api/v1/session/start",
                             content=json.dumps({"name": args.name}),
                             headers={"content-type": "application/json"})
    resp.raise_for_status()
    track_id = resp.json()["id"]
    print(f"Started track {track_id}")

    timestamp_ms = int(time.time() * 1000)
    for _ in range(int(args.duration / args.interval)):
        move_device(device, args.interval, args.speed)
        timestamp_ms += int(args.interval * 1000)

        fix = make_fix_payload(device, timestamp_ms, args.jitter)
        if random.random() < args.bad_fix_rate:
            fix["latitude"] = "NaN"

        try:
            resp = await client.post(
                f"{args.server}/api/v1/session/points",
                content=json.dumps({"fix": fix}),
                headers={"content-type": "application/json"},
            )
            device.fixes_sent += 1
            if resp.status_code == 200:
                device.points_accepted += resp.json()["accepted"]
            else:
                device.errors += 1
        except httpx.RequestError:
            device.errors += 1

        if args.realtime:
            await asyncio.sleep(args.interval)

    resp = await client.post(f"{args.server}/api/v1/session/stop")
    print(f"Fixes sent: {device.fixes_sent}, accepted: {device.points_accepted}, "
          f"errors: {device.errors}")
    if resp.status_code != 200:
        print(f"Stop failed: HTTP {resp.status_code}")
        return None
    return resp.json()


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    print(f"Starting simulation: {args.duration}s trip, one fix every {args.interval}s")
    print(f"  Center: {args.center[0]:.4f}, {args.center[1]:.4f}")
    print(f"  Cruise speed: {args.speed} m/s, jitter: {args.jitter} m")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()
    async with httpx.AsyncClient(timeout=10.0) as client:
        track = await run_trip(client, args)

        if track is not None:
            stats = track["statistics"]
            print(f"\nTrack {track['id']} finished in {time.monotonic() - start:.1f}s")
            print(f"  Points: {len(track['points'])}")
            print(f"  Recorded distance: {track['distance']:.0f} m")
            print(f"  Duration: {track['duration']:.0f} s")
            print(f"  Avg speed: {stats['avg_speed_kmh']:.1f} km/h")
            print(f"  Max speed: {stats['max_speed_kmh']:.1f} km/h")
            print(f"  Elevation: +{stats['elevation_gain_m']:.0f} m / -{stats['elevation_loss_m']:.0f} m")

            if args.gpx:
                resp = await client.get(f"{args.server}/api/v1/tracks/{track['id']}/gpx")
                if resp.status_code == 200:
                    with open(args.gpx, "w", encoding="utf-8") as f:
                        f.write(resp.text)
                    print(f"  GPX written to {args.gpx}")

        resp = await client.get(f"{args.server}/api/v1/stats")
        if resp.status_code == 200:
            counters = resp.json()
            print("\nServer stats:")
            print(f"  Fixes received: {counters['fixes_received']}")
            print(f"  Points accepted: {counters['points_accepted']}")
            print(f"  Filtered as jitter: {counters['fixes_filtered']}")
            print(f"  Invalid: {counters['fixes_invalid']}")


def main():
    parser = argparse.ArgumentParser(description="GeoTrack trip simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--name", default="Simulated trip", help="Track name")
    parser.add_argument("--duration", type=float, default=120, help="Trip duration in seconds")
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between fixes")
    parser.add_argument("--speed", type=float, default=10.0, help="Cruise speed in m/s")
    parser.add_argument("--jitter", type=float, default=3.0, help="GPS noise sigma in meters")
    parser.add_argument("--bad-fix-rate", type=float, default=0.01,
                        help="Fraction of fixes sent with a malformed latitude")
    parser.add_argument("--center", type=str, default="45.764,4.835",
                        help="Start lat,lon (default: Lyon)")
    parser.add_argument("--realtime", type=int, default=1,
                        help="1 to wait between fixes, 0 to replay as fast as possible")
    parser.add_argument("--gpx", default="", help="Write the finished track's GPX here")

    args = parser.parse_args()

    lat, lon = args.center.split(",")
    args.center = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
