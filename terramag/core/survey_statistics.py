"""
Survey Statistics

This module computes descriptive statistics over magnetic readings:
field extrema, mean, median and spread, altitude and GPS accuracy
averages, survey duration and the approximate area covered.
"""

from typing import Iterable, List, Optional, Dict, Any
import math
import numpy as np
from loguru import logger

from .config import QualitySettings, settings
from .models import MagneticReading, FieldNote, SurveyStats

# km per degree of latitude (and of longitude at the equator)
KM_PER_DEGREE = 111.32


def sort_by_timestamp(readings: Iterable[MagneticReading]) -> List[MagneticReading]:
    """Stable sort of readings by timestamp"""
    return sorted(readings, key=lambda r: r.timestamp)


def calculate_statistics(readings: Iterable[MagneticReading]) -> Optional[SurveyStats]:
    """
    Calculate statistics for a set of readings.

    Readings are sorted by timestamp before the duration is derived; the
    magnitude statistics do not depend on order. Standard deviation is the
    population value (divides by N).

    Args:
        readings: Readings in collection order

    Returns:
        SurveyStats, or None when there are no readings
    """
    points = sort_by_timestamp(readings)
    if not points:
        logger.debug("No readings, statistics skipped")
        return None

    magnitudes = np.sort(np.array([p.total_field for p in points], dtype=float))
    altitudes = np.array(
        [p.altitude if p.altitude is not None else 0.0 for p in points], dtype=float
    )
    accuracies = [p.accuracy for p in points if p.accuracy is not None and p.accuracy > 0]

    duration = points[-1].timestamp - points[0].timestamp

    stats = SurveyStats(
        total_measurements=len(points),
        magnitude_min=float(magnitudes[0]),
        magnitude_max=float(magnitudes[-1]),
        magnitude_mean=float(np.mean(magnitudes)),
        magnitude_median=float(np.median(magnitudes)),
        magnitude_std=float(np.std(magnitudes)),
        altitude_mean=float(np.mean(altitudes)),
        gps_accuracy_mean=float(np.mean(accuracies)) if accuracies else None,
        duration_hours=int(duration.total_seconds() // 3600),
        survey_area_km2=calculate_survey_area(points),
    )

    logger.debug(
        f"Statistics over {stats.total_measurements} readings: "
        f"mean={stats.magnitude_mean:.3f} std={stats.magnitude_std:.3f}"
    )
    return stats


def calculate_survey_area(readings: List[MagneticReading]) -> float:
    """
    Approximate area of the readings' bounding rectangle in km².

    Uses an equirectangular approximation scaled at the median latitude,
    which is only meaningful for geographically compact surveys. Fewer than
    three readings cannot span an area and yield 0.

    Args:
        readings: Readings

    Returns:
        Area in square kilometres
    """
    if len(readings) < 3:
        return 0.0

    lats = sorted(r.latitude for r in readings)
    lons = sorted(r.longitude for r in readings)

    lat_km = (lats[-1] - lats[0]) * KM_PER_DEGREE
    mid_lat = lats[len(lats) // 2]
    lon_km = (lons[-1] - lons[0]) * KM_PER_DEGREE * math.cos(math.radians(mid_lat))

    return abs(lat_km * lon_km)


def get_export_statistics(
    readings: List[MagneticReading],
    field_notes: List[FieldNote],
    quality: Optional[QualitySettings] = None
) -> Dict[str, Any]:
    """
    Summarize readings for an export dialog.

    Args:
        readings: Readings to export
        field_notes: Field notes to export
        quality: Quality range (uses application settings if not provided)

    Returns:
        Dictionary of display-ready summary values
    """
    quality = quality or settings.quality

    if not readings:
        return {
            'total_readings': 0,
            'field_notes': len(field_notes),
            'date_range': 'No data',
            'quality_summary': 'No readings',
        }

    good = sum(1 for r in readings if quality.is_good(r.total_field))
    fields = [r.total_field for r in readings]
    timestamps = sorted(r.timestamp for r in readings)

    first = timestamps[0].strftime('%Y-%m-%d %H:%M:%S')
    last = timestamps[-1].strftime('%Y-%m-%d %H:%M:%S')
    date_range = f"{first} to {last}" if len(readings) > 1 else first

    return {
        'total_readings': len(readings),
        'field_notes': len(field_notes),
        'good_quality_readings': good,
        'quality_percentage': f"{good / len(readings) * 100:.1f}",
        'date_range': date_range,
        'field_range': f"{min(fields):.1f} - {max(fields):.1f} uT",
        'average_field': f"{sum(fields) / len(fields):.1f} uT",
        'quality_summary': f"{good}/{len(readings)} readings are good quality",
    }
