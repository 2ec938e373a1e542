"""
Anomaly Detector

This module flags readings whose total field deviates from the survey
mean by more than a multiple of the standard deviation.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from loguru import logger

from .config import AnalysisSettings, settings
from .models import Anomaly, MagneticReading, Severity, SurveyStats
from .survey_statistics import calculate_statistics, sort_by_timestamp


@dataclass
class AnomalyReport:
    """Detected anomalies, strongest first"""
    anomalies: List[Anomaly] = field(default_factory=list)
    display_limit: int = 20

    @property
    def displayed(self) -> List[Anomaly]:
        """Anomalies shown to the user (capped at display_limit)"""
        return self.anomalies[:self.display_limit]

    @property
    def total(self) -> int:
        return len(self.anomalies)

    @property
    def high_count(self) -> int:
        return sum(1 for a in self.anomalies if a.severity == Severity.HIGH)


class AnomalyDetector:
    """
    Standard-deviation outlier detector for total-field readings.

    A reading is anomalous when ``|total_field - mean| > threshold_sigma * std``
    and is classified High when the deviation also exceeds
    ``high_sigma * std``. Detection is skipped below ``min_readings``.
    """

    def __init__(self, analysis: Optional[AnalysisSettings] = None):
        """
        Initialize anomaly detector.

        Args:
            analysis: Detection settings (uses application settings if not provided)
        """
        self.analysis = analysis or settings.analysis

    def detect(
        self,
        readings: Iterable[MagneticReading],
        stats: Optional[SurveyStats] = None
    ) -> AnomalyReport:
        """
        Detect anomalous readings.

        Indices in the result refer to the readings sorted by timestamp.

        Args:
            readings: Readings in collection order
            stats: Precomputed statistics for the same readings

        Returns:
            AnomalyReport holding every qualifying reading
        """
        points = sort_by_timestamp(readings)
        report = AnomalyReport(display_limit=self.analysis.display_limit)

        if len(points) < self.analysis.min_readings:
            logger.debug(
                f"Anomaly detection skipped: {len(points)} readings "
                f"(minimum {self.analysis.min_readings})"
            )
            return report

        stats = stats or calculate_statistics(points)
        mean = stats.magnitude_mean
        std = stats.magnitude_std
        threshold = std * self.analysis.threshold_sigma
        high_threshold = std * self.analysis.high_sigma

        for i, point in enumerate(points):
            deviation = abs(point.total_field - mean)
            if deviation > threshold:
                report.anomalies.append(Anomaly(
                    index=i,
                    reading=point,
                    deviation=deviation,
                    severity=Severity.HIGH if deviation > high_threshold else Severity.MEDIUM,
                ))

        report.anomalies.sort(key=lambda a: a.deviation, reverse=True)

        logger.info(
            f"Detected {report.total} anomalies ({report.high_count} high) "
            f"above {threshold:.3f} uT deviation"
        )
        return report


def detect_anomalies(
    readings: Iterable[MagneticReading],
    stats: Optional[SurveyStats] = None,
    analysis: Optional[AnalysisSettings] = None
) -> AnomalyReport:
    """Detect anomalies with the given (or application) settings"""
    return AnomalyDetector(analysis).detect(readings, stats)
