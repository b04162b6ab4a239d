#!/usr/bin/env python3
"""
Contours Demo -- chuk-mcp-ocean

Warms the contour cache for synthetic stations, then walks through the
lookup statuses, custom break values, point estimates, and artifact export.

Usage:
    python examples/contours_demo.py
"""

import asyncio

from synthetic_stations import make_rows
from tool_runner import ToolRunner


async def main() -> None:
    runner = ToolRunner(rows=make_rows(), cell_size_deg=0.02, margin_km=5.0)

    print("=" * 60)
    print("chuk-mcp-ocean -- Contours")
    print("=" * 60)

    # Before warming every observed key answers not_ready
    early = await runner.run("ocean_contours", year=2021, horizon="bottom", parameter="oxygen_mgl")
    print(f"\nBefore warming: {early['status']} ({early['message']})")

    count = await runner.warm()
    print(f"Warmed {count} contour sets")

    # Cached contours
    print("\n" + "-" * 60)
    print(await runner.run_text("ocean_contours", year=2021, horizon="bottom", parameter="oxygen_mgl"))

    # Not found vs validation error
    missing = await runner.run("ocean_contours", year=1999, horizon="surface", parameter="ph")
    print(f"\n1999 surface ph: {missing['status']}")
    invalid = await runner.run("ocean_contours", year=2021, horizon="surface", parameter="density")
    print(f"density: {invalid['error_type']} error -- {invalid['error']}")

    # Hypoxia outline with custom breaks
    print("\n" + "-" * 60)
    print("Hypoxia outline (2 and 4 mg/L):")
    custom = await runner.run(
        "ocean_contours_custom",
        year=2021,
        horizon="bottom",
        parameter="oxygen_mgl",
        breaks=[2.0, 4.0],
    )
    for f in custom["features"]:
        n = len(f["geometry"]["coordinates"])
        print(f"  {f['properties']['threshold']:.1f} mg/L: {n} vertices")

    # Point estimate
    print("\n" + "-" * 60)
    point = await runner.run(
        "ocean_point_value", year=2022, horizon="surface", parameter="temp_c", lon=10.3, lat=54.4
    )
    print(point["message"])

    # Exports
    print("\n" + "-" * 60)
    export = await runner.run("ocean_export_contours", year=2022, horizon="surface", parameter="salinity_psu")
    print(f"GeoJSON artifact: {export['artifact_ref']} ({export['feature_count']} features)")
    field = await runner.run("ocean_field", year=2022, horizon="surface", parameter="salinity_psu")
    print(f"GeoTIFF artifact: {field['artifact_ref']} {field['shape'][0]}x{field['shape'][1]}")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
