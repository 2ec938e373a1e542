import pytest

from terramag.core.anomaly_detector import AnomalyDetector, detect_anomalies
from terramag.core.config import AnalysisSettings
from terramag.core.models import Severity

from conftest import make_reading


def test_identical_readings_have_no_anomalies():
    readings = [make_reading(45.0, minutes=i) for i in range(10)]
    report = detect_anomalies(readings, analysis=AnalysisSettings())

    assert report.anomalies == []
    assert report.total == 0


def test_single_outlier_is_high_severity():
    readings = [make_reading(45.0, minutes=i) for i in range(11)]
    readings[6] = make_reading(100.0, minutes=6)

    report = detect_anomalies(readings, analysis=AnalysisSettings())

    assert report.total == 1
    anomaly = report.anomalies[0]
    assert anomaly.index == 6
    assert anomaly.reading.total_field == 100.0
    assert anomaly.severity == Severity.HIGH
    assert anomaly.deviation == pytest.approx(50.0)


def test_index_refers_to_time_order():
    readings = [make_reading(45.0, minutes=i) for i in range(10)]
    readings.insert(0, make_reading(100.0, minutes=30))

    report = detect_anomalies(readings, analysis=AnalysisSettings())

    assert [a.index for a in report.anomalies] == [10]


def test_too_few_readings_are_skipped():
    readings = [make_reading(45.0, minutes=i) for i in range(8)]
    readings.append(make_reading(500.0, minutes=9))

    assert detect_anomalies(readings, analysis=AnalysisSettings()).total == 0


def test_medium_severity_between_thresholds():
    # Two outliers share the spread, so neither exceeds 3 sigma
    readings = [make_reading(45.0, minutes=i) for i in range(10)]
    readings.append(make_reading(60.0, minutes=10))
    readings.append(make_reading(30.0, minutes=11))

    report = detect_anomalies(readings, analysis=AnalysisSettings())

    assert report.total == 2
    assert {a.severity for a in report.anomalies} == {Severity.MEDIUM}


def test_display_cap_keeps_full_set():
    analysis = AnalysisSettings(display_limit=3, min_readings=10)
    readings = [make_reading(45.0, minutes=i) for i in range(100)]
    for i, field in enumerate([90.0, 91.0, 92.0, 93.0, 94.0, 95.0]):
        readings.append(make_reading(field, minutes=100 + i))

    report = AnomalyDetector(analysis).detect(readings)

    assert report.total == 6
    assert len(report.displayed) == 3
    assert [a.reading.total_field for a in report.displayed] == [95.0, 94.0, 93.0]
