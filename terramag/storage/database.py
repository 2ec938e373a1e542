"""
Database Models and Connection Management

This module defines the SQLAlchemy ORM models for the TerraMag survey store
and provides database connection management.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
from enum import Enum as PyEnum

from sqlalchemy import (
    create_engine, Column, Integer, String, Float, DateTime,
    ForeignKey, Text, Index, Enum, event
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..core.config import settings


# Create declarative base
Base = declarative_base()


class GridCellStatusEnum(PyEnum):
    """Grid cell collection status"""
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


# Models
class Project(Base):
    """Survey project metadata"""
    __tablename__ = 'projects'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    grid_spacing = Column(Float, nullable=True)
    boundary_points = Column(Text, nullable=True)  # serialized polygon

    # Relationships
    readings = relationship("Reading", back_populates="project", cascade="all, delete-orphan")
    field_notes = relationship("Note", back_populates="project", cascade="all, delete-orphan")
    grid_cells = relationship("Cell", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}')>"


class Reading(Base):
    """Magnetometer reading"""
    __tablename__ = 'magnetic_readings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)

    # Coordinates (WGS84)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    altitude = Column(Float, nullable=False, default=0.0)  # meters
    accuracy = Column(Float, nullable=True)  # meters (GPS accuracy)
    heading = Column(Float, nullable=True)   # degrees

    # Field components (uT)
    magnetic_x = Column(Float, nullable=False)
    magnetic_y = Column(Float, nullable=False)
    magnetic_z = Column(Float, nullable=False)
    total_field = Column(Float, nullable=False)

    timestamp = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    project = relationship("Project", back_populates="readings")

    def __repr__(self):
        return f"<Reading(id={self.id}, total={self.total_field:.2f}uT)>"


Index('idx_readings_project', Reading.project_id)
Index('idx_readings_timestamp', Reading.timestamp)


class Note(Base):
    """Geolocated field note"""
    __tablename__ = 'field_notes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    note = Column(Text, nullable=False)
    image_path = Column(Text, nullable=True)
    audio_path = Column(Text, nullable=True)
    timestamp = Column(DateTime, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="field_notes")

    def __repr__(self):
        return f"<Note(id={self.id}, lat={self.latitude:.4f}, lon={self.longitude:.4f})>"


Index('idx_field_notes_project', Note.project_id)


class Cell(Base):
    """Survey grid cell"""
    __tablename__ = 'grid_cells'

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)
    row = Column(Integer, nullable=False)
    col = Column(Integer, nullable=False)
    center_lat = Column(Float, nullable=False)
    center_lon = Column(Float, nullable=False)
    bounds = Column(Text, nullable=False)  # JSON list of [lat, lon]
    status = Column(Enum(GridCellStatusEnum), default=GridCellStatusEnum.NOT_STARTED)
    start_time = Column(DateTime, nullable=True)
    completed_time = Column(DateTime, nullable=True)
    point_count = Column(Integer, default=0)
    notes = Column(Text, nullable=True)

    # Relationships
    project = relationship("Project", back_populates="grid_cells")

    def __repr__(self):
        return f"<Cell(project={self.project_id}, id='{self.row}_{self.col}', status={self.status.value})>"


Index('idx_grid_cells_project_pos', Cell.project_id, Cell.row, Cell.col, unique=True)


# Database engine and session management
_engine = None
_SessionLocal = None


def get_engine(database_url: Optional[str] = None):
    """
    Get or create database engine.

    Args:
        database_url: Optional database URL (uses settings if not provided)

    Returns:
        SQLAlchemy engine
    """
    global _engine

    if _engine is None:
        url = database_url or settings.database.url

        # SQLite-specific configuration
        if url.startswith("sqlite"):
            path = get_database_path(url)
            if path is not None:
                path.parent.mkdir(parents=True, exist_ok=True)

            _engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=settings.database.echo
            )

            # Enable foreign keys for SQLite
            @event.listens_for(_engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
        else:
            _engine = create_engine(
                url,
                pool_size=settings.database.pool_size,
                echo=settings.database.echo
            )

    return _engine


def get_database_path(database_url: Optional[str] = None) -> Optional[Path]:
    """
    Get the file backing a SQLite database URL.

    Args:
        database_url: Optional database URL (uses the active engine or settings)

    Returns:
        Path of the database file, or None for in-memory or non-SQLite databases
    """
    if database_url is None:
        database_url = str(_engine.url) if _engine is not None else settings.database.url

    url = make_url(database_url)
    if not url.drivername.startswith("sqlite") or not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def get_session_factory():
    """
    Get session factory.

    Returns:
        Session factory
    """
    global _SessionLocal

    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=get_engine()
        )

    return _SessionLocal


def get_session() -> Session:
    """
    Get a new database session.

    Returns:
        Database session
    """
    SessionLocal = get_session_factory()
    return SessionLocal()


def init_db(database_url: Optional[str] = None):
    """
    Initialize database and create all tables.

    Args:
        database_url: Optional database URL
    """
    engine = get_engine(database_url)
    Base.metadata.create_all(bind=engine)


def drop_db(database_url: Optional[str] = None):
    """
    Drop all database tables.

    Args:
        database_url: Optional database URL
    """
    engine = get_engine(database_url)
    Base.metadata.drop_all(bind=engine)


def dispose_engine():
    """Dispose the engine and forget the session factory"""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


# Context manager for sessions
class DatabaseSession:
    """Context manager for database sessions"""

    def __init__(self):
        self.session = None

    def __enter__(self) -> Session:
        self.session = get_session()
        return self.session

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.session.rollback()
        self.session.close()
