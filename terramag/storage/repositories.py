"""
Data Repositories

This module provides repository classes for database operations.
Repositories encapsulate database access logic and convert stored rows
into the immutable records used by the statistics and export code.
"""

from typing import List, Optional, Iterable
from datetime import datetime
import json
from sqlalchemy.orm import Session
from sqlalchemy import func, desc, asc
from loguru import logger

from .database import Project, Reading, Note, Cell, GridCellStatusEnum
from ..core.models import (
    SurveyProject, MagneticReading, FieldNote, GridCell, GridCellStatus, LatLng
)


# Row <-> record conversion
def to_project(row: Project) -> SurveyProject:
    return SurveyProject(
        id=row.id,
        name=row.name,
        description=row.description or "",
        created_at=row.created_at,
        grid_spacing=row.grid_spacing,
        boundary_points=row.boundary_points,
    )


def to_reading(row: Reading) -> MagneticReading:
    return MagneticReading(
        id=row.id,
        project_id=row.project_id,
        latitude=row.latitude,
        longitude=row.longitude,
        altitude=row.altitude,
        magnetic_x=row.magnetic_x,
        magnetic_y=row.magnetic_y,
        magnetic_z=row.magnetic_z,
        total_field=row.total_field,
        timestamp=row.timestamp,
        notes=row.notes,
        accuracy=row.accuracy,
        heading=row.heading,
    )


def to_field_note(row: Note) -> FieldNote:
    return FieldNote(
        id=row.id,
        project_id=row.project_id,
        latitude=row.latitude,
        longitude=row.longitude,
        note=row.note,
        image_path=row.image_path,
        audio_path=row.audio_path,
        timestamp=row.timestamp,
    )


def to_grid_cell(row: Cell) -> GridCell:
    return GridCell(
        row=row.row,
        col=row.col,
        center_lat=row.center_lat,
        center_lon=row.center_lon,
        bounds=tuple(LatLng(lat, lon) for lat, lon in json.loads(row.bounds or "[]")),
        status=GridCellStatus(row.status.value) if row.status else GridCellStatus.NOT_STARTED,
        start_time=row.start_time,
        completed_time=row.completed_time,
        point_count=row.point_count or 0,
        notes=row.notes,
    )


class BaseRepository:
    """Base repository with common CRUD operations"""

    def __init__(self, session: Session):
        self.session = session

    def commit(self):
        """Commit current transaction"""
        self.session.commit()

    def rollback(self):
        """Rollback current transaction"""
        self.session.rollback()

    def flush(self):
        """Flush pending changes"""
        self.session.flush()


class ProjectRepository(BaseRepository):
    """Repository for Project model"""

    def create(
        self,
        name: str,
        description: Optional[str] = None,
        grid_spacing: Optional[float] = None,
        boundary_points: Optional[str] = None,
        created_at: Optional[datetime] = None
    ) -> Project:
        """Create a new project"""
        project = Project(
            name=name,
            description=description,
            grid_spacing=grid_spacing,
            boundary_points=boundary_points,
            created_at=created_at or datetime.utcnow()
        )
        self.session.add(project)
        self.session.flush()
        logger.info(f"Created project: {project}")
        return project

    def get_by_id(self, project_id: int) -> Optional[Project]:
        """Get project by ID"""
        return self.session.query(Project).filter(Project.id == project_id).first()

    def get_all(self, limit: int = 100, offset: int = 0) -> List[Project]:
        """Get all projects, newest first"""
        return self.session.query(Project).order_by(
            desc(Project.created_at)
        ).offset(offset).limit(limit).all()

    def delete(self, project_id: int) -> bool:
        """Delete project and all related data"""
        project = self.get_by_id(project_id)
        if project:
            self.session.delete(project)
            self.session.flush()
            logger.info(f"Deleted project: {project_id}")
            return True
        return False


class ReadingRepository(BaseRepository):
    """Repository for Reading model"""

    def create(self, reading: MagneticReading) -> Reading:
        """Store a reading"""
        row = Reading(
            project_id=reading.project_id,
            latitude=reading.latitude,
            longitude=reading.longitude,
            altitude=reading.altitude,
            magnetic_x=reading.magnetic_x,
            magnetic_y=reading.magnetic_y,
            magnetic_z=reading.magnetic_z,
            total_field=reading.total_field,
            timestamp=reading.timestamp,
            notes=reading.notes,
            accuracy=reading.accuracy,
            heading=reading.heading
        )
        self.session.add(row)
        self.session.flush()
        return row

    def bulk_create(self, readings: Iterable[MagneticReading]) -> int:
        """Store many readings, returning how many were added"""
        count = 0
        for reading in readings:
            self.create(reading)
            count += 1
        logger.debug(f"Stored {count} readings")
        return count

    def get_by_project(self, project_id: int) -> List[Reading]:
        """Get readings for a project, oldest first"""
        return self.session.query(Reading).filter(
            Reading.project_id == project_id
        ).order_by(asc(Reading.timestamp), asc(Reading.id)).all()

    def count_by_project(self, project_id: int) -> int:
        """Count readings for a project"""
        return self.session.query(func.count(Reading.id)).filter(
            Reading.project_id == project_id
        ).scalar()


class FieldNoteRepository(BaseRepository):
    """Repository for Note model"""

    def create(self, note: FieldNote) -> Note:
        """Store a field note"""
        row = Note(
            project_id=note.project_id,
            latitude=note.latitude,
            longitude=note.longitude,
            note=note.note,
            image_path=note.image_path,
            audio_path=note.audio_path,
            timestamp=note.timestamp
        )
        self.session.add(row)
        self.session.flush()
        return row

    def get_by_project(self, project_id: int) -> List[Note]:
        """Get field notes for a project, oldest first"""
        return self.session.query(Note).filter(
            Note.project_id == project_id
        ).order_by(asc(Note.timestamp), asc(Note.id)).all()

    def delete(self, note_id: int) -> bool:
        """Delete a field note"""
        note = self.session.query(Note).filter(Note.id == note_id).first()
        if note:
            self.session.delete(note)
            self.session.flush()
            return True
        return False


class GridCellRepository(BaseRepository):
    """Repository for Cell model"""

    def replace_grid(self, project_id: int, cells: Iterable[GridCell]) -> int:
        """Replace a project's grid with new cells"""
        self.session.query(Cell).filter(Cell.project_id == project_id).delete()

        count = 0
        for cell in cells:
            self.session.add(Cell(
                project_id=project_id,
                row=cell.row,
                col=cell.col,
                center_lat=cell.center_lat,
                center_lon=cell.center_lon,
                bounds=json.dumps([[p.latitude, p.longitude] for p in cell.bounds]),
                status=GridCellStatusEnum(cell.status.value),
                start_time=cell.start_time,
                completed_time=cell.completed_time,
                point_count=cell.point_count,
                notes=cell.notes
            ))
            count += 1

        self.session.flush()
        logger.info(f"Stored {count} grid cells for project {project_id}")
        return count

    def get_by_project(self, project_id: int) -> List[Cell]:
        """Get grid cells row-major"""
        return self.session.query(Cell).filter(
            Cell.project_id == project_id
        ).order_by(asc(Cell.row), asc(Cell.col)).all()

    def save_cell(self, project_id: int, cell: GridCell) -> Optional[Cell]:
        """Persist an updated cell value"""
        row = self.session.query(Cell).filter(
            Cell.project_id == project_id,
            Cell.row == cell.row,
            Cell.col == cell.col
        ).first()
        if row:
            row.status = GridCellStatusEnum(cell.status.value)
            row.start_time = cell.start_time
            row.completed_time = cell.completed_time
            row.point_count = cell.point_count
            row.notes = cell.notes
            self.session.flush()
            logger.info(f"Grid cell {cell.id} of project {project_id} is now {cell.status.value}")
        return row
