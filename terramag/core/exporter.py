"""
Geospatial Exporter

This module serializes a survey (project metadata, readings, grid cells and
field notes) into CSV, GeoJSON, KML and WKT-CSV text, or snapshots the raw
SQLite store. Every text encoder is a pure function of its inputs and the
export clock, so identical inputs give identical output.
"""

from typing import Optional, List, Callable, Dict, Sequence
from datetime import datetime
from enum import Enum
from pathlib import Path
from xml.sax.saxutils import escape
import csv
import io
import json
import shutil
from loguru import logger

from .config import ExportSettings, QualitySettings, settings
from .errors import (
    MissingBackingStoreError,
    UnsupportedEnvironmentError,
    WriteFailureError,
)
from .models import (
    SurveyProject, MagneticReading, GridCell, GridCellStatus, FieldNote
)


class ExportFormat(str, Enum):
    """Export format types"""
    CSV = "csv"
    GEOJSON = "geojson"
    KML = "kml"
    SQLITE = "sqlite"
    SHAPEFILE = "shapefile"


# extension, MIME type, display name, description
FORMAT_INFO = {
    ExportFormat.CSV: ("csv", "text/csv", "CSV Spreadsheet", "Spreadsheet compatible format"),
    ExportFormat.GEOJSON: ("geojson", "application/geo+json", "GeoJSON", "GIS and web mapping compatible"),
    ExportFormat.KML: ("kml", "application/vnd.google-earth.kml+xml", "Google Earth KML", "Google Earth and GPS compatible"),
    ExportFormat.SQLITE: ("db", "application/vnd.sqlite3", "SQLite Database", "Complete database backup"),
    ExportFormat.SHAPEFILE: ("csv", "text/csv", "Shapefile (WKT)", "GIS shapefile format (WKT)"),
}

CRS_NAME = "EPSG:4326"
UNITS = {"coordinates": "decimal degrees", "altitude": "meters", "magnetic_field": "microtesla"}

READING_COLUMNS = [
    'point_id', 'timestamp', 'latitude', 'longitude', 'altitude',
    'magnetic_x', 'magnetic_y', 'magnetic_z', 'total_field', 'quality_flag', 'notes'
]
NOTE_COLUMNS = [
    'note_id', 'timestamp', 'latitude', 'longitude', 'media_type',
    'content', 'image_path', 'audio_path'
]
WKT_COLUMNS = [
    'WKT', 'ID', 'TIMESTAMP', 'MAG_X', 'MAG_Y', 'MAG_Z', 'TOTAL_FIELD',
    'QUALITY', 'ACCURACY', 'HEADING', 'ALTITUDE', 'NOTES'
]

# KML colors are aabbggrr
QUALITY_STYLES = {
    'GOOD': ('goodQuality', 'ff00ff00', '1.0', 'http://maps.google.com/mapfiles/kml/pushpin/grn-pushpin.png'),
    'POOR': ('poorQuality', 'ff0000ff', '0.8', 'http://maps.google.com/mapfiles/kml/pushpin/red-pushpin.png'),
}
CELL_STYLES = {
    GridCellStatus.COMPLETED: ('cellCompleted', '7f00ff00', 'ff00aa00'),
    GridCellStatus.IN_PROGRESS: ('cellInProgress', '7f00ffff', 'ff00aaaa'),
    GridCellStatus.NOT_STARTED: ('cellNotStarted', '3fffffff', 'ff888888'),
}


def _fmt(value: Optional[float], places: int) -> str:
    """Fixed-point format, empty for missing values"""
    return '' if value is None else f"{value:.{places}f}"


def _media_type(note: FieldNote) -> str:
    media = ''
    if note.has_image:
        media += 'IMAGE;'
    if note.has_audio:
        media += 'AUDIO;'
    return media or 'TEXT'


def get_file_extension(fmt: ExportFormat) -> str:
    """File extension (without dot) for a format"""
    return FORMAT_INFO[fmt][0]


def get_mime_type(fmt: ExportFormat) -> str:
    """MIME type for a format"""
    return FORMAT_INFO[fmt][1]


def get_format_display_name(fmt: ExportFormat) -> str:
    return FORMAT_INFO[fmt][2]


def get_format_description(fmt: ExportFormat) -> str:
    return FORMAT_INFO[fmt][3]


def validate_export_data(readings: Sequence[MagneticReading]) -> bool:
    """
    Check readings are exportable.

    Returns:
        False if there are no readings or any coordinate is out of range
    """
    if not readings:
        return False
    return all(abs(r.latitude) <= 90 and abs(r.longitude) <= 180 for r in readings)


class GeoExporter:
    """
    Multi-format survey exporter.

    Dispatches on ExportFormat to independent encoders sharing the same
    (project, readings, grid cells, field notes) input.
    """

    def __init__(
        self,
        export_settings: Optional[ExportSettings] = None,
        quality: Optional[QualitySettings] = None,
        store_path: Optional[Path] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize exporter.

        Args:
            export_settings: Export settings (uses application settings if not provided)
            quality: Quality flag range (uses application settings if not provided)
            store_path: SQLite store file for raw snapshots (derived from the
                database URL if not provided)
            clock: Source of the export time
        """
        self.export_settings = export_settings or settings.export
        self.quality = quality or settings.quality
        self._store_path = Path(store_path) if store_path else None
        self._clock = clock or datetime.now

        self._encoders: Dict[ExportFormat, Callable[..., str]] = {
            ExportFormat.CSV: self._export_csv,
            ExportFormat.GEOJSON: self._export_geojson,
            ExportFormat.KML: self._export_kml,
            ExportFormat.SQLITE: self._export_sqlite,
            ExportFormat.SHAPEFILE: self._export_shapefile,
        }

    @property
    def export_dir(self) -> Path:
        return Path(self.export_settings.directory)

    @property
    def store_path(self) -> Optional[Path]:
        if self._store_path is None:
            from ..storage.database import get_database_path
            return get_database_path()
        return self._store_path

    def quality_flag(self, total_field: float) -> str:
        return 'GOOD' if self.quality.is_good(total_field) else 'POOR'

    def is_format_available(self, fmt: ExportFormat) -> bool:
        """Raw snapshots need direct filesystem access; text formats are always available"""
        if fmt == ExportFormat.SQLITE:
            return self.export_settings.filesystem_available
        return True

    def build_filename(self, project: SurveyProject, fmt: ExportFormat) -> str:
        """
        Build a unique export filename.

        Returns:
            ``"{project_name}_{unix_millis}.{ext}"``
        """
        millis = int(self._clock().timestamp() * 1000)
        name = project.name.replace('/', '_').replace('\\', '_')
        return f"{name}_{millis}.{get_file_extension(fmt)}"

    def export_project(
        self,
        project: SurveyProject,
        readings: List[MagneticReading],
        grid_cells: List[GridCell],
        field_notes: List[FieldNote],
        fmt: ExportFormat
    ) -> str:
        """
        Export a survey.

        Args:
            project: Project metadata
            readings: Readings in collection order
            grid_cells: Grid cells
            field_notes: Field notes
            fmt: Output format

        Returns:
            Exported text, or the snapshot file path for ExportFormat.SQLITE
        """
        fmt = ExportFormat(fmt)
        result = self._encoders[fmt](project, readings, grid_cells, field_notes)
        logger.info(
            f"Exported project '{project.name}' as {fmt.value}: "
            f"{len(readings)} readings, {len(grid_cells)} cells, {len(field_notes)} notes"
        )
        return result

    # CSV
    def _export_csv(self, project, readings, grid_cells, field_notes) -> str:
        buffer = io.StringIO()
        buffer.write('# TerraMag Field Survey Data Export\n')
        buffer.write(f'# Project: {project.name}\n')
        buffer.write(f'# Description: {project.description}\n')
        buffer.write(f'# Survey Date: {project.created_at.isoformat()}\n')
        buffer.write(f'# Export Date: {self._clock().isoformat()}\n')
        buffer.write(f'# Total Readings: {len(readings)}\n')
        buffer.write(f'# Total Field Notes: {len(field_notes)}\n')
        buffer.write(f'# Coordinate System: WGS84 ({CRS_NAME})\n')
        buffer.write('# Units: altitude in meters, magnetic field in microtesla (uT)\n')
        buffer.write(f'# Software: {self.export_settings.software_tag}\n')
        buffer.write('#\n')

        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(READING_COLUMNS)
        for i, reading in enumerate(readings, start=1):
            writer.writerow([
                f'MAG_{i}',
                reading.timestamp.isoformat(),
                _fmt(reading.latitude, 8),
                _fmt(reading.longitude, 8),
                _fmt(reading.altitude, 2),
                _fmt(reading.magnetic_x, 3),
                _fmt(reading.magnetic_y, 3),
                _fmt(reading.magnetic_z, 3),
                _fmt(reading.total_field, 3),
                self.quality_flag(reading.total_field),
                reading.notes or '',
            ])

        if field_notes:
            buffer.write('#\n')
            buffer.write('# Field Notes\n')
            writer.writerow(NOTE_COLUMNS)
            for i, note in enumerate(field_notes, start=1):
                writer.writerow([
                    f'NOTE_{i}',
                    note.timestamp.isoformat(),
                    _fmt(note.latitude, 8),
                    _fmt(note.longitude, 8),
                    _media_type(note),
                    note.note,
                    note.image_path or '',
                    note.audio_path or '',
                ])

        return buffer.getvalue()

    # GeoJSON
    def _export_geojson(self, project, readings, grid_cells, field_notes) -> str:
        features = []

        for i, reading in enumerate(readings, start=1):
            features.append({
                'type': 'Feature',
                'id': f'MAG_{i}',
                'geometry': {
                    'type': 'Point',
                    'coordinates': [reading.longitude, reading.latitude, reading.altitude],
                },
                'properties': {
                    'point_id': f'MAG_{i}',
                    'timestamp': reading.timestamp.isoformat(),
                    'magnetic_x': reading.magnetic_x,
                    'magnetic_y': reading.magnetic_y,
                    'magnetic_z': reading.magnetic_z,
                    'total_field': reading.total_field,
                    'quality': self.quality_flag(reading.total_field),
                    'accuracy': reading.accuracy,
                    'heading': reading.heading,
                    'altitude': reading.altitude,
                    'notes': reading.notes,
                },
            })

        for i, cell in enumerate(grid_cells, start=1):
            if not cell.bounds:
                continue
            ring = [[p.longitude, p.latitude] for p in cell.bounds]
            ring.append(ring[0])
            features.append({
                'type': 'Feature',
                'id': f'GRID_{i}',
                'geometry': {
                    'type': 'Polygon',
                    'coordinates': [ring],
                },
                'properties': {
                    'cell_id': cell.id,
                    'row': cell.row,
                    'col': cell.col,
                    'grid_index': i,
                    'status': cell.status.value,
                    'completion_percentage': cell.completion_percentage,
                    'point_count': cell.point_count,
                    'start_time': cell.start_time.isoformat() if cell.start_time else None,
                    'completed_time': cell.completed_time.isoformat() if cell.completed_time else None,
                    'notes': cell.notes,
                },
            })

        for i, note in enumerate(field_notes, start=1):
            features.append({
                'type': 'Feature',
                'id': f'NOTE_{i}',
                'geometry': {
                    'type': 'Point',
                    'coordinates': [note.longitude, note.latitude],
                },
                'properties': {
                    'note_id': f'NOTE_{i}',
                    'timestamp': note.timestamp.isoformat(),
                    'note': note.note,
                    'has_image': note.has_image,
                    'has_audio': note.has_audio,
                    'image_path': note.image_path,
                    'audio_path': note.audio_path,
                },
            })

        collection = {
            'type': 'FeatureCollection',
            'crs': {
                'type': 'name',
                'properties': {'name': CRS_NAME},
            },
            'metadata': {
                'project': project.name,
                'description': project.description,
                'survey_date': project.created_at.isoformat(),
                'export_date': self._clock().isoformat(),
                'total_readings': len(readings),
                'total_grid_cells': len(grid_cells),
                'total_field_notes': len(field_notes),
                'software': self.export_settings.software_tag,
                'crs': CRS_NAME,
                'units': UNITS,
            },
            'features': features,
        }
        return json.dumps(collection, indent=2, ensure_ascii=False)

    # KML
    def _export_kml(self, project, readings, grid_cells, field_notes) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<kml xmlns="http://www.opengis.net/kml/2.2">',
            '  <Document>',
            f'    <name>{escape(project.name)}</name>',
            '    <description>',
            f'      Magnetic survey: {escape(project.description)}',
            f'      Survey Date: {project.created_at.isoformat()}',
            f'      Total Readings: {len(readings)}',
            f'      Generated by {escape(self.export_settings.software_tag)}',
            '    </description>',
        ]

        for style_id, color, scale, icon in QUALITY_STYLES.values():
            lines += [
                f'    <Style id="{style_id}">',
                '      <IconStyle>',
                f'        <color>{color}</color>',
                f'        <scale>{scale}</scale>',
                f'        <Icon><href>{icon}</href></Icon>',
                '      </IconStyle>',
                '    </Style>',
            ]

        for style_id, fill, line in CELL_STYLES.values():
            lines += [
                f'    <Style id="{style_id}">',
                '      <LineStyle>',
                f'        <color>{line}</color>',
                '        <width>2</width>',
                '      </LineStyle>',
                '      <PolyStyle>',
                f'        <color>{fill}</color>',
                '      </PolyStyle>',
                '    </Style>',
            ]

        lines += [
            '    <Folder>',
            '      <name>Magnetic Readings</name>',
            '      <open>1</open>',
        ]
        for i, reading in enumerate(readings, start=1):
            flag = self.quality_flag(reading.total_field)
            lines += [
                '      <Placemark>',
                f'        <name>Point {i}</name>',
                f'        <styleUrl>#{QUALITY_STYLES[flag][0]}</styleUrl>',
                '        <ExtendedData>',
                f'          <Data name="total_field"><value>{_fmt(reading.total_field, 3)}</value></Data>',
                f'          <Data name="magnetic_x"><value>{_fmt(reading.magnetic_x, 3)}</value></Data>',
                f'          <Data name="magnetic_y"><value>{_fmt(reading.magnetic_y, 3)}</value></Data>',
                f'          <Data name="magnetic_z"><value>{_fmt(reading.magnetic_z, 3)}</value></Data>',
                f'          <Data name="quality"><value>{flag}</value></Data>',
                f'          <Data name="timestamp"><value>{reading.timestamp.isoformat()}</value></Data>',
            ]
            if reading.accuracy is not None:
                lines.append(f'          <Data name="accuracy"><value>{_fmt(reading.accuracy, 2)}</value></Data>')
            if reading.heading is not None:
                lines.append(f'          <Data name="heading"><value>{_fmt(reading.heading, 1)}</value></Data>')
            if reading.notes:
                lines.append(f'          <Data name="notes"><value>{escape(reading.notes)}</value></Data>')
            lines += [
                '        </ExtendedData>',
                '        <Point>',
                f'          <coordinates>{_fmt(reading.longitude, 8)},{_fmt(reading.latitude, 8)},{_fmt(reading.altitude, 2)}</coordinates>',
                '        </Point>',
                '      </Placemark>',
            ]
        lines.append('    </Folder>')

        if grid_cells:
            lines += [
                '    <Folder>',
                '      <name>Survey Grid</name>',
                '      <open>0</open>',
            ]
            for cell in grid_cells:
                if not cell.bounds:
                    continue
                ring = list(cell.bounds) + [cell.bounds[0]]
                lines += [
                    '      <Placemark>',
                    f'        <name>Grid Cell {cell.id}</name>',
                    f'        <description>Status: {cell.status.value}, Points: {cell.point_count}</description>',
                    f'        <styleUrl>#{CELL_STYLES[cell.status][0]}</styleUrl>',
                    '        <Polygon>',
                    '          <outerBoundaryIs>',
                    '            <LinearRing>',
                    '              <coordinates>',
                ]
                lines += [f'                {_fmt(p.longitude, 8)},{_fmt(p.latitude, 8)},0' for p in ring]
                lines += [
                    '              </coordinates>',
                    '            </LinearRing>',
                    '          </outerBoundaryIs>',
                    '        </Polygon>',
                    '      </Placemark>',
                ]
            lines.append('    </Folder>')

        lines += ['  </Document>', '</kml>']
        return '\n'.join(lines) + '\n'

    # Shapefile-compatible WKT table
    def _export_shapefile(self, project, readings, grid_cells, field_notes) -> str:
        buffer = io.StringIO()
        buffer.write('# Shapefile-compatible export (WKT format)\n')
        buffer.write(f'# Project: {project.name}\n')
        buffer.write(f'# CRS: {CRS_NAME} (WGS84)\n')
        buffer.write('# Compatible with QGIS, ArcGIS, and other GIS software\n')
        buffer.write('# Import this file as "Delimited Text" with WKT geometry\n')
        buffer.write('#\n')

        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(WKT_COLUMNS)
        for i, reading in enumerate(readings, start=1):
            writer.writerow([
                f'POINT({_fmt(reading.longitude, 8)} {_fmt(reading.latitude, 8)})',
                f'MAG_{i}',
                reading.timestamp.isoformat(),
                _fmt(reading.magnetic_x, 3),
                _fmt(reading.magnetic_y, 3),
                _fmt(reading.magnetic_z, 3),
                _fmt(reading.total_field, 3),
                self.quality_flag(reading.total_field),
                _fmt(reading.accuracy, 2),
                _fmt(reading.heading, 1),
                _fmt(reading.altitude, 2),
                reading.notes or '',
            ])

        return buffer.getvalue()

    # Raw store snapshot
    def _export_sqlite(self, project, readings, grid_cells, field_notes) -> str:
        return str(self.snapshot_store(project))

    def snapshot_store(self, project: SurveyProject, directory: Optional[Path] = None) -> Path:
        """
        Copy the backing SQLite store byte-for-byte.

        Args:
            project: Project used to name the snapshot
            directory: Target directory (the export directory if not provided)

        Returns:
            Path of the snapshot file
        """
        if not self.export_settings.filesystem_available:
            raise UnsupportedEnvironmentError(
                "Raw store snapshot requires direct filesystem access"
            )

        source = self.store_path
        if source is None or not source.is_file():
            raise MissingBackingStoreError(f"Backing store not found: {source}")

        target = Path(directory or self.export_dir) / self.build_filename(project, ExportFormat.SQLITE)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as e:
            logger.error(f"Store snapshot failed: {e}")
            raise WriteFailureError(f"Failed to copy {source} to {target}: {e}") from e

        logger.info(f"Store snapshot written: {target}")
        return target

    def save_and_share(
        self,
        data: str,
        filename: str,
        share: Optional[Callable[[Path, str], None]] = None,
        mime_type: str = "text/plain"
    ) -> Path:
        """
        Write exported text to the export directory and hand it off.

        Args:
            data: Exported text
            filename: Output filename
            share: Platform share action, called with (path, mime_type)
            mime_type: MIME type passed to the share action

        Returns:
            Path of the written file
        """
        path = self.export_dir / filename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(data, encoding='utf-8')
        except OSError as e:
            logger.error(f"Export write failed: {e}")
            raise WriteFailureError(f"Failed to save {path}: {e}") from e

        if share is not None:
            try:
                share(path, mime_type)
            except Exception as e:
                logger.error(f"Export share failed: {e}")
                raise WriteFailureError(f"Failed to share {path}: {e}") from e

        logger.info(f"Export saved: {path}")
        return path

    def export_to_file(
        self,
        project: SurveyProject,
        readings: List[MagneticReading],
        grid_cells: List[GridCell],
        field_notes: List[FieldNote],
        fmt: ExportFormat,
        share: Optional[Callable[[Path, str], None]] = None
    ) -> Path:
        """
        Export a survey and persist the result.

        Returns:
            Path of the exported file
        """
        fmt = ExportFormat(fmt)
        if fmt == ExportFormat.SQLITE:
            path = self.snapshot_store(project)
            if share is not None:
                try:
                    share(path, get_mime_type(fmt))
                except Exception as e:
                    raise WriteFailureError(f"Failed to share {path}: {e}") from e
            return path

        data = self.export_project(project, readings, grid_cells, field_notes, fmt)
        return self.save_and_share(
            data,
            self.build_filename(project, fmt),
            share=share,
            mime_type=get_mime_type(fmt),
        )
