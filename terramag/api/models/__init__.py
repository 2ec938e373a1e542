"""
API Models Module

Pydantic models for API request/response schemas.
"""

# Project models
from .project import (
    CellStatus,
    SeverityLevel,
    ProjectBase,
    ProjectCreate,
    ProjectResponse,
    ProjectDetailResponse,
    ProjectListResponse,
    ReadingCreate,
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

# Export models
from .export import (
    ExportType,
    ExportFormatInfo,
    ExportFormatListResponse,
    ExportFileResponse,
)

__all__ = [
    # Project
    'CellStatus',
    'SeverityLevel',
    'ProjectBase',
    'ProjectCreate',
    'ProjectResponse',
    'ProjectDetailResponse',
    'ProjectListResponse',
    'ReadingCreate',
    'ReadingBatch',
    'ReadingBatchResponse',
    'FieldNoteCreate',
    'FieldNoteResponse',
    'GridCreateRequest',
    'GridCellResponse',
    'GridResponse',
    'GridCellStatusUpdate',
    'CoverageResponse',
    'StatisticsResponse',
    'AnomalyResponse',
    'AnomalyListResponse',
    'ExportSummaryResponse',
    # Export
    'ExportType',
    'ExportFormatInfo',
    'ExportFormatListResponse',
    'ExportFileResponse',
]
