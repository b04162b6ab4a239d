#!/usr/bin/env python3
"""
Capabilities Demo -- chuk-mcp-ocean

Quick-start script showing what the server can do on synthetic stations.
Lists parameters, observed combinations, server status before and after
warming, and demonstrates the dual output mode (JSON vs text).

Usage:
    python examples/capabilities_demo.py
"""

import asyncio

from synthetic_stations import make_rows
from tool_runner import ToolRunner


async def main() -> None:
    runner = ToolRunner(rows=make_rows())

    print("=" * 60)
    print("chuk-mcp-ocean -- Server Capabilities")
    print("=" * 60)

    print(f"\nRegistered tools ({len(runner.tool_names)}):")
    for name in sorted(runner.tool_names):
        print(f"  - {name}")

    params = await runner.run("ocean_list_parameters")
    print(f"\nParameters ({len(params['parameters'])}):")
    for p in params["parameters"]:
        print(f"  {p['id']:14s}  {p['name']:20s}  {p['unit']}")
    print(f"  Horizons: {', '.join(params['horizons'])}")

    combos = await runner.run("ocean_list_combinations")
    print(f"\nObserved combinations ({len(combos['combinations'])}):")
    for c in combos["combinations"]:
        counts = ", ".join(f"{k}={v}" for k, v in c["point_counts"].items())
        print(f"  {c['year']} {c['horizon']:8s}  {counts}")

    status = await runner.run("ocean_status")
    print(f"\nBefore warming: state={status['state']}, cache={status['cache_entries']}")

    await runner.warm()

    status = await runner.run("ocean_status")
    print(
        f"After warming:  state={status['state']}, "
        f"cache={status['cache_entries']}/{status['planned_entries']}"
    )

    # ---------------------------------------------------------------
    # Dual output mode: text vs JSON
    # ---------------------------------------------------------------
    print("\n" + "-" * 60)
    print("Dual Output Mode Demo")
    print("-" * 60)

    print("\nocean_status (output_mode='text'):")
    print(await runner.run_text("ocean_status"))

    print("\nocean_capabilities (output_mode='text'):")
    print(await runner.run_text("ocean_capabilities"))

    print("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
