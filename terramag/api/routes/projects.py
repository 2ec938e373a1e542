"""
Project API Routes

Endpoints for managing survey projects, storing readings and field notes,
planning grids, and analysing collected data.
"""

from dataclasses import replace
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from ..models import (
    ProjectCreate,
    ProjectResponse,
    ProjectDetailResponse,
    ProjectListResponse,
    ReadingBatch,
    ReadingBatchResponse,
    FieldNoteCreate,
    FieldNoteResponse,
    GridCreateRequest,
    GridCellResponse,
    GridResponse,
    GridCellStatusUpdate,
    CoverageResponse,
    StatisticsResponse,
    AnomalyResponse,
    AnomalyListResponse,
    ExportSummaryResponse,
)
from ..dependencies import (
    get_project_repository,
    get_reading_repository,
    get_field_note_repository,
    get_grid_repository,
    get_project_or_404,
    CommonQueryParams,
    common_parameters,
)
from ...core.config import settings
from ...core.errors import EmptyInputError
from ...core.models import MagneticReading, FieldNote, GridCell, GridCellStatus, LatLng
from ...core.grid_planner import (
    create_regular_grid,
    optimize_survey_path,
    calculate_grid_coverage,
    update_cell_status,
    assign_readings_to_cells,
)
from ...core.survey_statistics import calculate_statistics, get_export_statistics
from ...core.anomaly_detector import AnomalyDetector
from ...storage.database import Project
from ...storage.repositories import (
    ProjectRepository,
    ReadingRepository,
    FieldNoteRepository,
    GridCellRepository,
    to_reading,
    to_field_note,
    to_grid_cell,
)

router = APIRouter()


def _cell_response(cell: GridCell) -> GridCellResponse:
    return GridCellResponse(
        id=cell.id,
        row=cell.row,
        col=cell.col,
        center_lat=cell.center_lat,
        center_lon=cell.center_lon,
        bounds=[[p.latitude, p.longitude] for p in cell.bounds],
        status=cell.status.value,
        start_time=cell.start_time,
        completed_time=cell.completed_time,
        point_count=cell.point_count,
        notes=cell.notes,
    )


def _recount_grid(project_id: int, reading_repo: ReadingRepository, grid_repo: GridCellRepository) -> None:
    cells = [to_grid_cell(c) for c in grid_repo.get_by_project(project_id)]
    if not cells:
        return

    readings = [to_reading(r) for r in reading_repo.get_by_project(project_id)]
    for old, new in zip(cells, assign_readings_to_cells(cells, readings)):
        if new.point_count != old.point_count:
            grid_repo.save_cell(project_id, new)


def _load_readings(repo: ReadingRepository, project_id: int) -> List[MagneticReading]:
    readings = [to_reading(r) for r in repo.get_by_project(project_id)]
    if not readings:
        raise EmptyInputError(f"Project {project_id} has no readings")
    return readings


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    params: CommonQueryParams = Depends(common_parameters),
    repo: ProjectRepository = Depends(get_project_repository)
):
    """
    List all projects, newest first.
    """
    projects = repo.get_all(limit=params.limit, offset=params.offset)
    return ProjectListResponse(
        projects=[ProjectResponse.model_validate(p) for p in projects],
        total=len(projects)
    )


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project: ProjectCreate,
    repo: ProjectRepository = Depends(get_project_repository)
):
    """
    Create a new survey project.
    """
    created = repo.create(
        name=project.name,
        description=project.description,
        grid_spacing=project.grid_spacing,
        boundary_points=project.boundary_points
    )
    repo.commit()
    return ProjectResponse.model_validate(created)


@router.get("/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project: Project = Depends(get_project_or_404),
    reading_repo: ReadingRepository = Depends(get_reading_repository),
    note_repo: FieldNoteRepository = Depends(get_field_note_repository),
    grid_repo: GridCellRepository = Depends(get_grid_repository)
):
    """
    Get project details with record counts.
    """
    response = ProjectDetailResponse.model_validate(project)
    response.reading_count = reading_repo.count_by_project(project.id)
    response.field_note_count = len(note_repo.get_by_project(project.id))
    response.grid_cell_count = len(grid_repo.get_by_project(project.id))
    return response


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project: Project = Depends(get_project_or_404),
    repo: ProjectRepository = Depends(get_project_repository)
):
    """
    Delete a project with its readings, notes and grid.
    """
    repo.delete(project.id)
    repo.commit()


@router.post("/{project_id}/readings", response_model=ReadingBatchResponse,
             status_code=status.HTTP_201_CREATED)
async def add_readings(
    batch: ReadingBatch,
    project: Project = Depends(get_project_or_404),
    repo: ReadingRepository = Depends(get_reading_repository),
    grid_repo: GridCellRepository = Depends(get_grid_repository)
):
    """
    Store a batch of readings.

    The total field is derived from the components when not supplied, and
    point counts of an existing grid are refreshed.
    """
    readings = []
    for item in batch.readings:
        data = item.model_dump(exclude={'total_field'})
        if item.total_field is None:
            readings.append(MagneticReading.from_components(project_id=project.id, **data))
        else:
            readings.append(MagneticReading(project_id=project.id, total_field=item.total_field, **data))

    stored = repo.bulk_create(readings)
    _recount_grid(project.id, repo, grid_repo)
    repo.commit()

    logger.info(f"Stored {stored} readings for project {project.id}")
    return ReadingBatchResponse(
        project_id=project.id,
        stored=stored,
        total=repo.count_by_project(project.id)
    )


@router.get("/{project_id}/notes", response_model=List[FieldNoteResponse])
async def list_field_notes(
    project: Project = Depends(get_project_or_404),
    repo: FieldNoteRepository = Depends(get_field_note_repository)
):
    """
    List field notes for a project.
    """
    return [FieldNoteResponse.model_validate(n) for n in repo.get_by_project(project.id)]


@router.post("/{project_id}/notes", response_model=FieldNoteResponse,
             status_code=status.HTTP_201_CREATED)
async def add_field_note(
    note: FieldNoteCreate,
    project: Project = Depends(get_project_or_404),
    repo: FieldNoteRepository = Depends(get_field_note_repository)
):
    """
    Store a field note.
    """
    row = repo.create(FieldNote(project_id=project.id, **note.model_dump()))
    repo.commit()
    return FieldNoteResponse.model_validate(row)


@router.post("/{project_id}/grid", response_model=GridResponse,
             status_code=status.HTTP_201_CREATED)
async def create_grid(
    request: GridCreateRequest,
    project: Project = Depends(get_project_or_404),
    grid_repo: GridCellRepository = Depends(get_grid_repository),
    reading_repo: ReadingRepository = Depends(get_reading_repository)
):
    """
    Plan a regular grid for a project, replacing any existing grid.

    Point counts are seeded from the readings already stored.
    """
    cells = create_regular_grid(
        LatLng(request.center_lat, request.center_lon),
        request.spacing,
        request.rows,
        request.cols
    )
    readings = [to_reading(r) for r in reading_repo.get_by_project(project.id)]
    cells = assign_readings_to_cells(cells, readings)

    grid_repo.replace_grid(project.id, cells)
    grid_repo.commit()

    return GridResponse(
        project_id=project.id,
        cells=[_cell_response(c) for c in cells],
        total=len(cells),
        coverage_percent=calculate_grid_coverage(cells)
    )


@router.get("/{project_id}/grid", response_model=GridResponse)
async def get_grid(
    optimized: bool = False,
    project: Project = Depends(get_project_or_404),
    repo: GridCellRepository = Depends(get_grid_repository)
):
    """
    Get a project's grid.

    - **optimized**: return cells in snake (boustrophedon) walking order
    """
    cells = [to_grid_cell(c) for c in repo.get_by_project(project.id)]
    if optimized:
        cells = optimize_survey_path(cells)

    return GridResponse(
        project_id=project.id,
        cells=[_cell_response(c) for c in cells],
        total=len(cells),
        coverage_percent=calculate_grid_coverage(cells),
        optimized=optimized
    )


@router.get("/{project_id}/grid/coverage", response_model=CoverageResponse)
async def get_grid_coverage(
    project: Project = Depends(get_project_or_404),
    repo: GridCellRepository = Depends(get_grid_repository)
):
    """
    Get grid coverage percentage.
    """
    cells = [to_grid_cell(c) for c in repo.get_by_project(project.id)]
    return CoverageResponse(
        project_id=project.id,
        total_cells=len(cells),
        completed_cells=sum(1 for c in cells if c.status == GridCellStatus.COMPLETED),
        coverage_percent=calculate_grid_coverage(cells)
    )


@router.patch("/{project_id}/grid/{row}/{col}", response_model=GridCellResponse)
async def update_grid_cell(
    row: int,
    col: int,
    update: GridCellStatusUpdate,
    project: Project = Depends(get_project_or_404),
    repo: GridCellRepository = Depends(get_grid_repository)
):
    """
    Change the status of one grid cell.
    """
    cells = {(c.row, c.col): c for c in map(to_grid_cell, repo.get_by_project(project.id))}
    cell = cells.get((row, col))
    if cell is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Grid cell {row}_{col} not found in project {project.id}"
        )

    updated = update_cell_status(cell, GridCellStatus(update.status.value))
    if update.notes is not None:
        updated = replace(updated, notes=update.notes)

    repo.save_cell(project.id, updated)
    repo.commit()
    return _cell_response(updated)


@router.get("/{project_id}/statistics", response_model=StatisticsResponse)
async def get_statistics(
    project: Project = Depends(get_project_or_404),
    repo: ReadingRepository = Depends(get_reading_repository)
):
    """
    Get descriptive statistics of the project's readings.
    """
    stats = calculate_statistics(_load_readings(repo, project.id))
    return StatisticsResponse(project_id=project.id, **stats.to_dict())


@router.get("/{project_id}/anomalies", response_model=AnomalyListResponse)
async def get_anomalies(
    project: Project = Depends(get_project_or_404),
    repo: ReadingRepository = Depends(get_reading_repository)
):
    """
    Get the strongest anomalous readings.

    At most the configured display limit is returned; `total` counts all
    detected anomalies.
    """
    readings = _load_readings(repo, project.id)
    report = AnomalyDetector(settings.analysis).detect(readings)

    return AnomalyListResponse(
        project_id=project.id,
        anomalies=[
            AnomalyResponse(
                index=a.index,
                reading_id=a.reading.id,
                latitude=a.reading.latitude,
                longitude=a.reading.longitude,
                total_field=a.reading.total_field,
                timestamp=a.reading.timestamp,
                deviation=a.deviation,
                severity=a.severity.value,
            )
            for a in report.displayed
        ],
        total=report.total,
        displayed=len(report.displayed)
    )


@router.get("/{project_id}/export-summary", response_model=ExportSummaryResponse)
async def get_export_summary(
    project: Project = Depends(get_project_or_404),
    reading_repo: ReadingRepository = Depends(get_reading_repository),
    note_repo: FieldNoteRepository = Depends(get_field_note_repository)
):
    """
    Summarize what an export of this project would contain.
    """
    readings = [to_reading(r) for r in reading_repo.get_by_project(project.id)]
    notes = [to_field_note(n) for n in note_repo.get_by_project(project.id)]
    return ExportSummaryResponse(**get_export_statistics(readings, notes, settings.quality))
