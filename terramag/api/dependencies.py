"""
API Dependencies

FastAPI dependency injection functions for database sessions,
repositories and the exporter.
"""

from typing import Generator
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exporter import GeoExporter
from ..storage.database import get_session, Project
from ..storage.repositories import (
    ProjectRepository,
    ReadingRepository,
    FieldNoteRepository,
    GridCellRepository,
)


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and handles cleanup after request completion.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_project_repository(db: Session = Depends(get_db)) -> ProjectRepository:
    """Get project repository instance"""
    return ProjectRepository(db)


def get_reading_repository(db: Session = Depends(get_db)) -> ReadingRepository:
    """Get reading repository instance"""
    return ReadingRepository(db)


def get_field_note_repository(db: Session = Depends(get_db)) -> FieldNoteRepository:
    """Get field note repository instance"""
    return FieldNoteRepository(db)


def get_grid_repository(db: Session = Depends(get_db)) -> GridCellRepository:
    """Get grid cell repository instance"""
    return GridCellRepository(db)


def get_exporter() -> GeoExporter:
    """Build an exporter from the current settings"""
    return GeoExporter(export_settings=settings.export, quality=settings.quality)


def get_project_or_404(
    project_id: int,
    repo: ProjectRepository = Depends(get_project_repository)
) -> Project:
    """Resolve the project path parameter"""
    project = repo.get_by_id(project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {project_id} not found"
        )
    return project


class CommonQueryParams:
    """Common query parameters for list endpoints"""

    def __init__(
        self,
        limit: int = 100,
        offset: int = 0,
    ):
        self.limit = min(limit, 1000)  # Cap at 1000
        self.offset = max(offset, 0)


def common_parameters(
    limit: int = 100,
    offset: int = 0,
) -> CommonQueryParams:
    """Dependency for common pagination parameters"""
    return CommonQueryParams(limit=limit, offset=offset)
