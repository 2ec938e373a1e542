"""
Storage Module

This module provides database models, repositories, and connection management
for the TerraMag survey store.

Example usage:
    from terramag.storage import (
        init_db, DatabaseSession, ProjectRepository, ReadingRepository, to_reading
    )

    # Initialize database
    init_db()

    # Use with context manager
    with DatabaseSession() as session:
        project = ProjectRepository(session).create(name="Site A")
        session.commit()

        readings = [to_reading(r) for r in ReadingRepository(session).get_by_project(project.id)]
"""

# Database models
from .database import (
    Base,
    Project,
    Reading,
    Note,
    Cell,
    GridCellStatusEnum,
)

# Database connection management
from .database import (
    get_engine,
    get_session,
    get_session_factory,
    get_database_path,
    init_db,
    drop_db,
    dispose_engine,
    DatabaseSession,
)

# Repositories
from .repositories import (
    BaseRepository,
    ProjectRepository,
    ReadingRepository,
    FieldNoteRepository,
    GridCellRepository,
    to_project,
    to_reading,
    to_field_note,
    to_grid_cell,
)

__all__ = [
    # Models
    'Base',
    'Project',
    'Reading',
    'Note',
    'Cell',
    'GridCellStatusEnum',
    # Connection management
    'get_engine',
    'get_session',
    'get_session_factory',
    'get_database_path',
    'init_db',
    'drop_db',
    'dispose_engine',
    'DatabaseSession',
    # Repositories
    'BaseRepository',
    'ProjectRepository',
    'ReadingRepository',
    'FieldNoteRepository',
    'GridCellRepository',
    'to_project',
    'to_reading',
    'to_field_note',
    'to_grid_cell',
]
