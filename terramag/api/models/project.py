"""
Project API Models

Pydantic models for project, reading, field note, grid and analysis
requests and responses.
"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict
from enum import Enum


class CellStatus(str, Enum):
    """Grid cell status enum"""
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


class SeverityLevel(str, Enum):
    """Anomaly severity enum"""
    MEDIUM = "Medium"
    HIGH = "High"


# Project models
class ProjectBase(BaseModel):
    """Base project model"""
    name: str = Field(..., min_length=1, max_length=200, description="Project name")
    description: Optional[str] = Field(None, description="Project description")
    grid_spacing: Optional[float] = Field(None, gt=0, description="Grid spacing in degrees")
    boundary_points: Optional[str] = Field(None, description="Serialized boundary polygon")


class ProjectCreate(ProjectBase):
    """Model for creating a project"""
    pass


class ProjectResponse(ProjectBase):
    """Model for project response"""
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectDetailResponse(ProjectResponse):
    """Project with record counts"""
    reading_count: int = 0
    field_note_count: int = 0
    grid_cell_count: int = 0


class ProjectListResponse(BaseModel):
    """List of projects"""
    projects: List[ProjectResponse]
    total: int


# Reading models
class ReadingCreate(BaseModel):
    """Model for storing a reading"""
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")
    altitude: float = Field(default=0.0, description="Altitude in meters")
    magnetic_x: float = Field(..., description="X component in uT")
    magnetic_y: float = Field(..., description="Y component in uT")
    magnetic_z: float = Field(..., description="Z component in uT")
    total_field: Optional[float] = Field(None, ge=0, description="Total field in uT (derived if omitted)")
    timestamp: datetime
    notes: Optional[str] = None
    accuracy: Optional[float] = Field(None, ge=0, description="GPS accuracy in meters")
    heading: Optional[float] = Field(None, ge=0, lt=360, description="Heading in degrees")


class ReadingBatch(BaseModel):
    """Batch of readings"""
    readings: List[ReadingCreate] = Field(..., min_length=1)


class ReadingBatchResponse(BaseModel):
    """Result of storing a batch"""
    project_id: int
    stored: int
    total: int


# Field note models
class FieldNoteCreate(BaseModel):
    """Model for storing a field note"""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    note: str = Field(..., min_length=1)
    image_path: Optional[str] = None
    audio_path: Optional[str] = None
    timestamp: datetime


class FieldNoteResponse(FieldNoteCreate):
    """Model for field note response"""
    id: int
    project_id: int

    model_config = ConfigDict(from_attributes=True)


# Grid models
class GridCreateRequest(BaseModel):
    """Request to plan a regular grid"""
    center_lat: float = Field(..., ge=-90, le=90)
    center_lon: float = Field(..., ge=-180, le=180)
    spacing: float = Field(..., gt=0, description="Cell size in degrees")
    rows: int = Field(..., ge=0, le=500)
    cols: int = Field(..., ge=0, le=500)


class GridCellResponse(BaseModel):
    """Grid cell"""
    id: str
    row: int
    col: int
    center_lat: float
    center_lon: float
    bounds: List[List[float]] = Field(description="[lat, lon] vertices, not closed")
    status: CellStatus
    start_time: Optional[datetime] = None
    completed_time: Optional[datetime] = None
    point_count: int = 0
    notes: Optional[str] = None


class GridResponse(BaseModel):
    """Grid for a project"""
    project_id: int
    cells: List[GridCellResponse]
    total: int
    coverage_percent: float
    optimized: bool = False


class GridCellStatusUpdate(BaseModel):
    """Manual grid cell status update"""
    status: CellStatus
    notes: Optional[str] = None


class CoverageResponse(BaseModel):
    """Grid coverage summary"""
    project_id: int
    total_cells: int
    completed_cells: int
    coverage_percent: float


# Analysis models
class StatisticsResponse(BaseModel):
    """Survey statistics"""
    project_id: int
    total_measurements: int
    magnitude_min: float
    magnitude_max: float
    magnitude_mean: float
    magnitude_median: float
    magnitude_std: float
    altitude_mean: float
    gps_accuracy_mean: Optional[float]
    duration_hours: int
    survey_area_km2: float


class AnomalyResponse(BaseModel):
    """Anomalous reading"""
    index: int
    reading_id: Optional[int]
    latitude: float
    longitude: float
    total_field: float
    timestamp: datetime
    deviation: float
    severity: SeverityLevel


class AnomalyListResponse(BaseModel):
    """Anomalies for a project"""
    project_id: int
    anomalies: List[AnomalyResponse]
    total: int = Field(description="Anomalies detected before the display cap")
    displayed: int


class ExportSummaryResponse(BaseModel):
    """Export dialog summary"""
    total_readings: int
    field_notes: int
    good_quality_readings: Optional[int] = None
    quality_percentage: Optional[str] = None
    date_range: str
    field_range: Optional[str] = None
    average_field: Optional[str] = None
    quality_summary: str
