"""
Survey Data Model

Value records shared by the grid planner, statistics engine, anomaly
detector and exporter. Readings, notes and projects are immutable; grid
cells are immutable too, and status or point-count changes are returned
as new cells.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, NamedTuple
from datetime import datetime
from enum import Enum
import math


class LatLng(NamedTuple):
    """WGS84 coordinate pair in decimal degrees"""
    latitude: float
    longitude: float


def _validate_coordinates(latitude: float, longitude: float) -> None:
    if not -90 <= latitude <= 90:
        raise ValueError(f"Latitude must be between -90 and 90: {latitude}")
    if not -180 <= longitude <= 180:
        raise ValueError(f"Longitude must be between -180 and 180: {longitude}")


@dataclass(frozen=True)
class SurveyProject:
    """Survey project metadata"""
    name: str
    description: str
    created_at: datetime
    id: Optional[int] = None
    grid_spacing: Optional[float] = None
    boundary_points: Optional[str] = None  # serialized boundary polygon


@dataclass(frozen=True)
class MagneticReading:
    """Single geolocated magnetometer reading (field values in uT)"""
    latitude: float
    longitude: float
    altitude: float
    magnetic_x: float
    magnetic_y: float
    magnetic_z: float
    total_field: float
    timestamp: datetime
    project_id: int
    notes: Optional[str] = None
    accuracy: Optional[float] = None  # Horizontal GPS accuracy in meters
    heading: Optional[float] = None   # Heading in degrees
    id: Optional[int] = None

    def __post_init__(self):
        """Validate coordinates"""
        _validate_coordinates(self.latitude, self.longitude)

    @classmethod
    def from_components(
        cls,
        latitude: float,
        longitude: float,
        altitude: float,
        magnetic_x: float,
        magnetic_y: float,
        magnetic_z: float,
        timestamp: datetime,
        project_id: int,
        **kwargs
    ) -> 'MagneticReading':
        """Build a reading, deriving the total field from the three components"""
        return cls(
            latitude=latitude,
            longitude=longitude,
            altitude=altitude,
            magnetic_x=magnetic_x,
            magnetic_y=magnetic_y,
            magnetic_z=magnetic_z,
            total_field=calculate_total_field(magnetic_x, magnetic_y, magnetic_z),
            timestamp=timestamp,
            project_id=project_id,
            **kwargs
        )


@dataclass(frozen=True)
class FieldNote:
    """Geolocated free-text annotation"""
    latitude: float
    longitude: float
    note: str
    timestamp: datetime
    project_id: int
    image_path: Optional[str] = None
    audio_path: Optional[str] = None
    id: Optional[int] = None

    @property
    def has_image(self) -> bool:
        return self.image_path is not None

    @property
    def has_audio(self) -> bool:
        return self.audio_path is not None


class GridCellStatus(Enum):
    """Collection status of a grid cell"""
    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class GridCell:
    """
    One cell of a survey grid.

    Row and column are carried explicitly; ``id`` is the derived display
    string ``"{row}_{col}"``. ``bounds`` lists the polygon vertices without
    repeating the first one.
    """
    row: int
    col: int
    center_lat: float
    center_lon: float
    bounds: Tuple[LatLng, ...] = ()
    status: GridCellStatus = GridCellStatus.NOT_STARTED
    start_time: Optional[datetime] = None
    completed_time: Optional[datetime] = None
    point_count: int = 0
    notes: Optional[str] = None

    @property
    def id(self) -> str:
        return f"{self.row}_{self.col}"

    @property
    def completion_percentage(self) -> float:
        if self.status == GridCellStatus.COMPLETED:
            return 100.0
        if self.status == GridCellStatus.IN_PROGRESS:
            return 50.0
        return 0.0

    def contains(self, latitude: float, longitude: float) -> bool:
        """
        Check whether a point lies inside the cell's bounding box.

        Lower edges are inclusive and upper edges exclusive, so a point on a
        shared edge belongs to exactly one cell.
        """
        if not self.bounds:
            return False
        lats = [p.latitude for p in self.bounds]
        lons = [p.longitude for p in self.bounds]
        return (min(lats) <= latitude < max(lats) and
                min(lons) <= longitude < max(lons))


@dataclass(frozen=True)
class SurveyStats:
    """Descriptive statistics for a set of readings"""
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

    def to_dict(self) -> dict:
        """Convert to the named-metric mapping"""
        return {
            'total_measurements': self.total_measurements,
            'magnitude_min': self.magnitude_min,
            'magnitude_max': self.magnitude_max,
            'magnitude_mean': self.magnitude_mean,
            'magnitude_median': self.magnitude_median,
            'magnitude_std': self.magnitude_std,
            'altitude_mean': self.altitude_mean,
            'gps_accuracy_mean': self.gps_accuracy_mean,
            'duration_hours': self.duration_hours,
            'survey_area_km2': self.survey_area_km2,
        }


class Severity(Enum):
    """Anomaly severity"""
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class Anomaly:
    """Reading whose total field deviates beyond the detection threshold"""
    index: int
    reading: MagneticReading
    deviation: float
    severity: Severity


def calculate_total_field(x: float, y: float, z: float) -> float:
    """Magnitude of the 3-axis field vector"""
    return math.sqrt(x * x + y * y + z * z)
