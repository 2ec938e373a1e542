"""
Shared fixtures for TerraMag tests.
"""

from datetime import datetime, timedelta

import pytest

from terramag.core.config import ExportSettings, QualitySettings, settings
from terramag.core.models import MagneticReading, SurveyProject
from terramag.storage import database

START = datetime(2024, 3, 1, 9, 0, 0)
EXPORT_TIME = datetime(2024, 3, 2, 12, 0, 0)


def make_reading(total_field=45.0, latitude=5.60, longitude=-0.18, minutes=0, **kwargs):
    """Reading with the total field carried on the z component"""
    values = dict(
        latitude=latitude,
        longitude=longitude,
        altitude=10.0,
        magnetic_x=0.0,
        magnetic_y=0.0,
        magnetic_z=total_field,
        total_field=total_field,
        timestamp=START + timedelta(minutes=minutes),
        project_id=1,
    )
    values.update(kwargs)
    return MagneticReading(**values)


@pytest.fixture
def project():
    return SurveyProject(
        name="Test",
        description="Calibration walk",
        created_at=START,
        id=1,
    )


@pytest.fixture
def two_readings():
    return [
        make_reading(45.0, 5.60, -0.18, minutes=0),
        make_reading(46.0, 5.61, -0.19, minutes=60),
    ]


@pytest.fixture
def export_settings(tmp_path):
    return ExportSettings(directory=str(tmp_path / "exports"))


@pytest.fixture
def quality():
    return QualitySettings()


@pytest.fixture
def database_url(tmp_path):
    """Fresh SQLite store bound to the module-level engine"""
    url = f"sqlite:///{tmp_path / 'survey.db'}"
    database.dispose_engine()
    database.init_db(url)
    yield url
    database.drop_db(url)
    database.dispose_engine()


@pytest.fixture
def session(database_url):
    session = database.get_session()
    yield session
    session.close()


@pytest.fixture
def client(database_url, tmp_path, monkeypatch):
    """API client over a temporary store and export directory"""
    from fastapi.testclient import TestClient
    from terramag.api.main import app

    monkeypatch.setattr(settings.logging, "file", None)
    monkeypatch.setattr(settings.export, "directory", str(tmp_path / "exports"))

    with TestClient(app) as test_client:
        yield test_client
