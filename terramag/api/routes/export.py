"""
Export API Routes

Endpoints for exporting survey projects to CSV, GeoJSON, KML, WKT-CSV
and raw SQLite snapshots.
"""

from pathlib import Path
import shutil
import tempfile
from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse, Response
from starlette.background import BackgroundTask
from loguru import logger

from ..models import (
    ExportType,
    ExportFormatInfo,
    ExportFormatListResponse,
    ExportFileResponse,
)
from ..dependencies import (
    get_reading_repository,
    get_field_note_repository,
    get_grid_repository,
    get_project_or_404,
    get_exporter,
)
from ...core.exporter import (
    ExportFormat,
    GeoExporter,
    get_file_extension,
    get_mime_type,
    get_format_display_name,
    get_format_description,
)
from ...storage.database import Project
from ...storage.repositories import (
    ReadingRepository,
    FieldNoteRepository,
    GridCellRepository,
    to_project,
    to_reading,
    to_field_note,
    to_grid_cell,
)

router = APIRouter()


def _load_survey(project, reading_repo, note_repo, grid_repo):
    return (
        to_project(project),
        [to_reading(r) for r in reading_repo.get_by_project(project.id)],
        [to_grid_cell(c) for c in grid_repo.get_by_project(project.id)],
        [to_field_note(n) for n in note_repo.get_by_project(project.id)],
    )


@router.get("/formats", response_model=ExportFormatListResponse)
async def list_formats(exporter: GeoExporter = Depends(get_exporter)):
    """
    List export formats and whether they are available.
    """
    return ExportFormatListResponse(formats=[
        ExportFormatInfo(
            format=fmt.value,
            display_name=get_format_display_name(fmt),
            description=get_format_description(fmt),
            extension=get_file_extension(fmt),
            mime_type=get_mime_type(fmt),
            available=exporter.is_format_available(fmt),
        )
        for fmt in ExportFormat
    ])


@router.get("/{project_id}/{export_type}")
async def download_export(
    export_type: ExportType,
    project: Project = Depends(get_project_or_404),
    reading_repo: ReadingRepository = Depends(get_reading_repository),
    note_repo: FieldNoteRepository = Depends(get_field_note_repository),
    grid_repo: GridCellRepository = Depends(get_grid_repository),
    exporter: GeoExporter = Depends(get_exporter)
):
    """
    Export a project and return the result as a download.

    Text formats are generated in memory. `sqlite` streams a snapshot of
    the backing store from a temporary directory removed after the response,
    and fails with UnsupportedEnvironment where filesystem access is disabled.
    """
    fmt = ExportFormat(export_type.value)
    survey = _load_survey(project, reading_repo, note_repo, grid_repo)

    if fmt == ExportFormat.SQLITE:
        workdir = tempfile.mkdtemp(prefix="terramag-")
        try:
            path = exporter.snapshot_store(survey[0], directory=Path(workdir))
        except Exception:
            shutil.rmtree(workdir, ignore_errors=True)
            raise
        return FileResponse(
            path=str(path),
            filename=path.name,
            media_type=get_mime_type(fmt),
            background=BackgroundTask(shutil.rmtree, workdir, ignore_errors=True)
        )

    data = exporter.export_project(*survey, fmt)
    filename = exporter.build_filename(survey[0], fmt)
    return Response(
        content=data,
        media_type=get_mime_type(fmt),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/{project_id}/{export_type}", response_model=ExportFileResponse,
             status_code=status.HTTP_201_CREATED)
async def save_export(
    export_type: ExportType,
    project: Project = Depends(get_project_or_404),
    reading_repo: ReadingRepository = Depends(get_reading_repository),
    note_repo: FieldNoteRepository = Depends(get_field_note_repository),
    grid_repo: GridCellRepository = Depends(get_grid_repository),
    exporter: GeoExporter = Depends(get_exporter)
):
    """
    Export a project into the export directory.
    """
    fmt = ExportFormat(export_type.value)
    survey = _load_survey(project, reading_repo, note_repo, grid_repo)

    path = Path(exporter.export_to_file(*survey, fmt))
    logger.info(f"Export of project {project.id} saved to {path}")

    return ExportFileResponse(
        project_id=project.id,
        format=export_type,
        file_name=path.name,
        file_path=str(path),
        file_size=path.stat().st_size,
        mime_type=get_mime_type(fmt)
    )
