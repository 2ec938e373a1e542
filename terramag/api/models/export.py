"""
Export API Models

Pydantic models for data export API requests and responses.
"""

from typing import List
from pydantic import BaseModel, Field
from enum import Enum


class ExportType(str, Enum):
    """Export format types"""
    CSV = "csv"
    GEOJSON = "geojson"
    KML = "kml"
    SQLITE = "sqlite"
    SHAPEFILE = "shapefile"


class ExportFormatInfo(BaseModel):
    """Description of an export format"""
    format: ExportType
    display_name: str
    description: str
    extension: str = Field(description="File extension without dot")
    mime_type: str
    available: bool


class ExportFormatListResponse(BaseModel):
    """Available export formats"""
    formats: List[ExportFormatInfo]


class ExportFileResponse(BaseModel):
    """Export written to the export directory"""
    project_id: int
    format: ExportType
    file_name: str
    file_path: str
    file_size: int = Field(description="File size in bytes")
    mime_type: str
