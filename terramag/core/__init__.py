"""
Core Module

This module provides the survey data model, configuration, grid planning,
statistics, anomaly detection and geospatial export for TerraMag.
"""

from .config import settings, get_settings, Settings
from .models import (
    LatLng,
    SurveyProject,
    MagneticReading,
    FieldNote,
    GridCell,
    GridCellStatus,
    SurveyStats,
    Anomaly,
    Severity,
    calculate_total_field,
)
from .grid_planner import (
    create_regular_grid,
    optimize_survey_path,
    calculate_grid_coverage,
    update_cell_status,
    assign_readings_to_cells,
)
from .survey_statistics import calculate_statistics, calculate_survey_area, get_export_statistics
from .anomaly_detector import AnomalyDetector, AnomalyReport, detect_anomalies
from .errors import (
    ExportError,
    ExportErrorKind,
    EmptyInputError,
    MissingBackingStoreError,
    WriteFailureError,
    UnsupportedEnvironmentError,
)
from .exporter import (
    ExportFormat,
    GeoExporter,
    get_file_extension,
    get_mime_type,
    get_format_display_name,
    get_format_description,
    validate_export_data,
)

__all__ = [
    # Config
    'settings',
    'get_settings',
    'Settings',
    # Models
    'LatLng',
    'SurveyProject',
    'MagneticReading',
    'FieldNote',
    'GridCell',
    'GridCellStatus',
    'SurveyStats',
    'Anomaly',
    'Severity',
    'calculate_total_field',
    # Grid
    'create_regular_grid',
    'optimize_survey_path',
    'calculate_grid_coverage',
    'update_cell_status',
    'assign_readings_to_cells',
    # Statistics
    'calculate_statistics',
    'calculate_survey_area',
    'get_export_statistics',
    'AnomalyDetector',
    'AnomalyReport',
    'detect_anomalies',
    # Errors
    'ExportError',
    'ExportErrorKind',
    'EmptyInputError',
    'MissingBackingStoreError',
    'WriteFailureError',
    'UnsupportedEnvironmentError',
    # Export
    'ExportFormat',
    'GeoExporter',
    'get_file_extension',
    'get_mime_type',
    'get_format_display_name',
    'get_format_description',
    'validate_export_data',
]
