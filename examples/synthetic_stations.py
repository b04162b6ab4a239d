"""
Synthetic station samples for the demos.

A 6x5 grid of stations in the western Baltic with a warm, salty south-east
corner, a low-oxygen bottom layer in the centre, and a few missing values.
"""

import math
import random


def make_rows(seed: int = 42) -> list[dict[str, str]]:
    rng = random.Random(seed)
    rows = []
    for year in (2021, 2022):
        for i in range(6):
            for j in range(5):
                lon = 10.0 + i * 0.12 + rng.uniform(-0.02, 0.02)
                lat = 54.2 + j * 0.1 + rng.uniform(-0.02, 0.02)
                east = (lon - 10.0) / 0.6
                south = (54.6 - lat) / 0.4
                centre = math.hypot(east - 0.5, south - 0.5)
                for horizon in ("surface", "bottom"):
                    warm = 4.0 if horizon == "surface" else 0.0
                    row = {
                        "station": f"B{i}{j}",
                        "longitude": f"{lon:.5f}",
                        "latitude": f"{lat:.5f}",
                        "year": str(year),
                        "horizon": horizon,
                        "depth_m": "1" if horizon == "surface" else f"{15 + 3 * j}",
                        "temp_c": f"{8 + warm + 3 * east + rng.gauss(0, 0.2):.2f}",
                        "salinity_psu": f"{12 + 8 * south + rng.gauss(0, 0.3):.2f}",
                        "oxygen_mgl": f"{2 + 7 * centre + rng.gauss(0, 0.2):.2f}",
                        "ph": f"{8.0 + 0.2 * east - 0.1 * south:.3f}",
                    }
                    if rng.random() < 0.05:
                        row["oxygen_mgl"] = ""
                    rows.append(row)
    return rows
