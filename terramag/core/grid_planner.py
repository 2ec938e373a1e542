"""
Grid Planner

This module builds regular survey grids, derives an efficient walking
order over their cells, and tracks coverage as cells are completed.
"""

from dataclasses import replace
from typing import Iterable, List, Optional, Dict
from datetime import datetime
from loguru import logger

from .models import GridCell, GridCellStatus, LatLng, MagneticReading


def create_regular_grid(
    center: LatLng,
    spacing: float,
    rows: int,
    cols: int
) -> List[GridCell]:
    """
    Create a regular rectangular grid centred on a point.

    Cells are returned row-major. Row 0 is the southernmost row and
    column 0 the westernmost column.

    Args:
        center: Grid center
        spacing: Cell side length in degrees
        rows: Number of rows
        cols: Number of columns

    Returns:
        List of GridCell objects (empty if rows or cols is not positive)
    """
    if spacing <= 0:
        raise ValueError(f"Grid spacing must be positive: {spacing}")

    if rows <= 0 or cols <= 0:
        logger.debug(f"Empty grid requested ({rows}x{cols})")
        return []

    start_lat = center.latitude - (rows - 1) * spacing / 2
    start_lon = center.longitude - (cols - 1) * spacing / 2

    cells = []
    for row in range(rows):
        for col in range(cols):
            cell_center = LatLng(start_lat + row * spacing, start_lon + col * spacing)
            cells.append(GridCell(
                row=row,
                col=col,
                center_lat=cell_center.latitude,
                center_lon=cell_center.longitude,
                bounds=_create_cell_bounds(cell_center, spacing),
            ))

    logger.info(f"Created {rows}x{cols} grid around {center.latitude:.6f}, {center.longitude:.6f}")
    return cells


def _create_cell_bounds(center: LatLng, spacing: float) -> tuple:
    """Square bounds, counter-clockwise from the bottom-left vertex"""
    half = spacing / 2
    return (
        LatLng(center.latitude - half, center.longitude - half),
        LatLng(center.latitude - half, center.longitude + half),
        LatLng(center.latitude + half, center.longitude + half),
        LatLng(center.latitude + half, center.longitude - half),
    )


def optimize_survey_path(cells: Iterable[GridCell]) -> List[GridCell]:
    """
    Reorder cells into a boustrophedon (snake) traversal.

    Even rows are walked with ascending column, odd rows with descending
    column, so the surveyor never walks back across the grid.

    Args:
        cells: Grid cells in any order

    Returns:
        Cells in traversal order
    """
    rows: Dict[int, List[GridCell]] = {}
    for cell in cells:
        rows.setdefault(cell.row, []).append(cell)

    path = []
    for position, row in enumerate(sorted(rows)):
        row_cells = sorted(rows[row], key=lambda c: c.col)
        if position % 2 == 1:
            row_cells.reverse()
        path.extend(row_cells)

    return path


def calculate_grid_coverage(cells: Iterable[GridCell]) -> float:
    """
    Percentage of cells marked completed.

    Returns:
        Coverage in percent (0.0 for an empty grid)
    """
    cells = list(cells)
    if not cells:
        return 0.0
    completed = sum(1 for cell in cells if cell.status == GridCellStatus.COMPLETED)
    return completed / len(cells) * 100


def update_cell_status(
    cell: GridCell,
    status: GridCellStatus,
    at: Optional[datetime] = None
) -> GridCell:
    """
    Return a copy of the cell with a new status.

    The start time is recorded the first time the cell leaves NotStarted and
    the completion time when it becomes Completed. Resetting to NotStarted
    clears both.

    Args:
        cell: Current cell value
        status: New status
        at: Time of the change (defaults to now)

    Returns:
        Updated cell
    """
    at = at or datetime.now()

    if status == GridCellStatus.NOT_STARTED:
        return replace(cell, status=status, start_time=None, completed_time=None)

    start_time = cell.start_time or at
    completed_time = at if status == GridCellStatus.COMPLETED else None
    return replace(cell, status=status, start_time=start_time, completed_time=completed_time)


def assign_readings_to_cells(
    cells: Iterable[GridCell],
    readings: Iterable[MagneticReading]
) -> List[GridCell]:
    """
    Recount readings per cell.

    Args:
        cells: Grid cells
        readings: Collected readings

    Returns:
        Cells (same order) with point_count set to the readings inside them
    """
    cells = list(cells)
    counts = [0] * len(cells)
    unassigned = 0

    for reading in readings:
        for i, cell in enumerate(cells):
            if cell.contains(reading.latitude, reading.longitude):
                counts[i] += 1
                break
        else:
            unassigned += 1

    if unassigned:
        logger.debug(f"{unassigned} readings fall outside the grid")

    return [replace(cell, point_count=count) for cell, count in zip(cells, counts)]
