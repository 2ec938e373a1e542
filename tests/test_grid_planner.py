from datetime import datetime

import pytest

from terramag.core.grid_planner import (
    assign_readings_to_cells,
    calculate_grid_coverage,
    create_regular_grid,
    optimize_survey_path,
    update_cell_status,
)
from terramag.core.models import GridCellStatus, LatLng

from conftest import make_reading

CENTER = LatLng(5.60, -0.18)


def test_grid_is_row_major_with_explicit_positions():
    cells = create_regular_grid(CENTER, 0.001, 2, 3)

    assert [(c.row, c.col) for c in cells] == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]
    assert [c.id for c in cells[:3]] == ["0_0", "0_1", "0_2"]
    assert all(c.status == GridCellStatus.NOT_STARTED for c in cells)


def test_grid_is_centred_and_bounds_are_counter_clockwise():
    cells = create_regular_grid(CENTER, 0.002, 3, 3)
    middle = cells[4]

    assert middle.center_lat == pytest.approx(CENTER.latitude)
    assert middle.center_lon == pytest.approx(CENTER.longitude)

    bottom_left, bottom_right, top_right, top_left = middle.bounds
    assert bottom_left.latitude == pytest.approx(CENTER.latitude - 0.001)
    assert bottom_left.longitude == pytest.approx(CENTER.longitude - 0.001)
    assert bottom_right.longitude == pytest.approx(CENTER.longitude + 0.001)
    assert top_right.latitude == pytest.approx(CENTER.latitude + 0.001)
    assert top_left.longitude == pytest.approx(CENTER.longitude - 0.001)


@pytest.mark.parametrize("rows,cols", [(0, 3), (3, 0), (-1, 2)])
def test_non_positive_dimensions_give_empty_grid(rows, cols):
    assert create_regular_grid(CENTER, 0.001, rows, cols) == []


def test_non_positive_spacing_is_rejected():
    with pytest.raises(ValueError):
        create_regular_grid(CENTER, 0.0, 2, 2)


def test_snake_path_over_3x3_grid():
    cells = create_regular_grid(CENTER, 0.001, 3, 3)
    path = optimize_survey_path(reversed(cells))

    assert [(c.row, c.col) for c in path] == [
        (0, 0), (0, 1), (0, 2),
        (1, 2), (1, 1), (1, 0),
        (2, 0), (2, 1), (2, 2),
    ]
    assert len({c.id for c in path}) == 9


def test_coverage_of_empty_grid_is_zero():
    assert calculate_grid_coverage([]) == 0.0


def test_coverage_counts_completed_cells_only():
    cells = create_regular_grid(CENTER, 0.001, 2, 2)
    cells[0] = update_cell_status(cells[0], GridCellStatus.COMPLETED)
    cells[1] = update_cell_status(cells[1], GridCellStatus.IN_PROGRESS)

    assert calculate_grid_coverage(cells) == 25.0

    done = [update_cell_status(c, GridCellStatus.COMPLETED) for c in cells]
    assert calculate_grid_coverage(done) == 100.0


def test_update_cell_status_returns_new_value():
    cell = create_regular_grid(CENTER, 0.001, 1, 1)[0]
    started = datetime(2024, 3, 1, 9, 0)
    finished = datetime(2024, 3, 1, 9, 30)

    in_progress = update_cell_status(cell, GridCellStatus.IN_PROGRESS, at=started)
    completed = update_cell_status(in_progress, GridCellStatus.COMPLETED, at=finished)

    assert cell.status == GridCellStatus.NOT_STARTED
    assert in_progress.start_time == started
    assert in_progress.completion_percentage == 50.0
    assert completed.start_time == started
    assert completed.completed_time == finished
    assert completed.completion_percentage == 100.0

    reset = update_cell_status(completed, GridCellStatus.NOT_STARTED)
    assert reset.start_time is None
    assert reset.completed_time is None


def test_readings_are_counted_per_cell():
    cells = create_regular_grid(CENTER, 0.01, 1, 2)
    west, east = cells
    readings = [
        make_reading(latitude=west.center_lat, longitude=west.center_lon),
        make_reading(latitude=west.center_lat, longitude=west.center_lon, minutes=1),
        make_reading(latitude=east.center_lat, longitude=east.center_lon, minutes=2),
        make_reading(latitude=10.0, longitude=10.0, minutes=3),
    ]

    counted = assign_readings_to_cells(cells, readings)

    assert [c.point_count for c in counted] == [2, 1]
    assert [c.point_count for c in cells] == [0, 0]
