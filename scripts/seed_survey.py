#!/usr/bin/env python3
"""
Synthetic Survey Script

Seeds the configured database with a simulated magnetometer walk over a
regular grid, prints the survey statistics and anomalies, and writes every
export format to the export directory.

Usage:
    python scripts/seed_survey.py                   # 5x5 grid, default site
    python scripts/seed_survey.py --rows 8 --cols 8 # Larger grid
    python scripts/seed_survey.py --no-export       # Skip file exports
"""

import sys
import argparse
from datetime import datetime, timedelta
from pathlib import Path

import numpy as np

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


def print_header(title: str):
    """Print a formatted header"""
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)


def simulate_walk(project_id, cells, points_per_cell, seed):
    """
    Walk the grid in snake order, sampling a background field plus one
    buried dipole-like source near the grid center.
    """
    from terramag.core import MagneticReading, optimize_survey_path

    rng = np.random.default_rng(seed)
    path = optimize_survey_path(cells)
    source = (cells[len(cells) // 2].center_lat, cells[len(cells) // 2].center_lon)
    spacing = abs(cells[0].bounds[2].latitude - cells[0].bounds[0].latitude)

    readings = []
    t = datetime.now().replace(microsecond=0)
    for cell in path:
        for _ in range(points_per_cell):
            lat = cell.center_lat + rng.uniform(-0.4, 0.4) * spacing
            lon = cell.center_lon + rng.uniform(-0.4, 0.4) * spacing
            dist = np.hypot(lat - source[0], lon - source[1]) / spacing
            bump = 25.0 / (1.0 + 4.0 * dist ** 2)
            x, y, z = rng.normal([18.0, 2.0, 42.0 + bump], 0.6)
            readings.append(MagneticReading.from_components(
                latitude=lat,
                longitude=lon,
                altitude=float(rng.normal(35.0, 1.5)),
                magnetic_x=float(x),
                magnetic_y=float(y),
                magnetic_z=float(z),
                timestamp=t,
                project_id=project_id,
                accuracy=float(rng.uniform(2.0, 6.0)),
                heading=float(rng.uniform(0.0, 360.0)),
            ))
            t += timedelta(seconds=20)
    return readings


def main():
    parser = argparse.ArgumentParser(description="Seed a synthetic magnetometer survey")
    parser.add_argument("--name", default="Synthetic Survey", help="Project name")
    parser.add_argument("--lat", type=float, default=5.6037, help="Grid center latitude")
    parser.add_argument("--lon", type=float, default=-0.1870, help="Grid center longitude")
    parser.add_argument("--spacing", type=float, default=0.0002, help="Cell size in degrees")
    parser.add_argument("--rows", type=int, default=5)
    parser.add_argument("--cols", type=int, default=5)
    parser.add_argument("--points", type=int, default=4, help="Readings per cell")
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--no-export", action="store_true", help="Skip file exports")
    args = parser.parse_args()

    from terramag.core import (
        ExportFormat, GeoExporter, GridCellStatus, LatLng,
        assign_readings_to_cells, calculate_grid_coverage, calculate_statistics,
        create_regular_grid, detect_anomalies, update_cell_status,
    )
    from terramag.core.logging_config import configure_logging
    from terramag.storage import (
        DatabaseSession, GridCellRepository, ProjectRepository, ReadingRepository,
        init_db, to_project,
    )

    configure_logging()
    init_db()

    print_header("Planning Grid")
    cells = create_regular_grid(LatLng(args.lat, args.lon), args.spacing, args.rows, args.cols)
    if not cells:
        print("  Nothing to survey: rows and cols must be positive")
        return 1
    print(f"  {len(cells)} cells, spacing {args.spacing} deg")

    with DatabaseSession() as session:
        project_row = ProjectRepository(session).create(
            name=args.name,
            description=f"Simulated {args.rows}x{args.cols} walk",
            grid_spacing=args.spacing,
        )
        project = to_project(project_row)

        print_header("Collecting Readings")
        readings = simulate_walk(project.id, cells, args.points, args.seed)
        ReadingRepository(session).bulk_create(readings)

        cells = assign_readings_to_cells(cells, readings)
        cells = [update_cell_status(c, GridCellStatus.COMPLETED) if c.point_count else c for c in cells]
        GridCellRepository(session).replace_grid(project.id, cells)
        session.commit()

    print(f"  Project {project.id}: {len(readings)} readings")
    print(f"  Coverage: {calculate_grid_coverage(cells):.1f}%")

    print_header("Statistics")
    stats = calculate_statistics(readings)
    for key, value in stats.to_dict().items():
        print(f"  {key:20s} {value}")

    print_header("Anomalies")
    report = detect_anomalies(readings, stats)
    print(f"  {report.total} detected, {report.high_count} high")
    for anomaly in report.displayed:
        r = anomaly.reading
        print(f"  #{anomaly.index:4d} {r.total_field:7.2f} uT  "
              f"({r.latitude:.6f}, {r.longitude:.6f})  {anomaly.severity.value}")

    if not args.no_export:
        print_header("Exports")
        exporter = GeoExporter()
        for fmt in ExportFormat:
            if not exporter.is_format_available(fmt):
                print(f"  [SKIP] {fmt.value}: not available")
                continue
            path = exporter.export_to_file(project, readings, cells, [], fmt)
            print(f"  [OK] {fmt.value:10s} {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
