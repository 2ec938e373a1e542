import csv
import io
import json

import pytest

from terramag.core.config import ExportSettings
from terramag.core.errors import (
    ExportErrorKind,
    MissingBackingStoreError,
    UnsupportedEnvironmentError,
    WriteFailureError,
)
from terramag.core.exporter import (
    ExportFormat,
    GeoExporter,
    get_file_extension,
    get_mime_type,
    validate_export_data,
)
from terramag.core.grid_planner import create_regular_grid, update_cell_status
from terramag.core.models import FieldNote, GridCell, GridCellStatus, LatLng

from conftest import EXPORT_TIME, START, make_reading


@pytest.fixture
def exporter(export_settings, quality, tmp_path):
    return GeoExporter(
        export_settings=export_settings,
        quality=quality,
        store_path=tmp_path / "survey.db",
        clock=lambda: EXPORT_TIME,
    )


@pytest.fixture
def grid():
    cells = create_regular_grid(LatLng(5.605, -0.185), 0.01, 1, 2)
    cells[0] = update_cell_status(cells[0], GridCellStatus.COMPLETED, at=START)
    return cells


@pytest.fixture
def notes():
    return [
        FieldNote(latitude=5.605, longitude=-0.185, note="Buried pipe, see photo",
                  timestamp=START, project_id=1, image_path="/media/pipe.jpg"),
        FieldNote(latitude=5.606, longitude=-0.186, note="Power line overhead",
                  timestamp=START, project_id=1),
    ]


def _data_lines(text):
    return [line for line in text.splitlines() if not line.startswith('#')]


class TestCsv:
    def test_two_good_rows_after_header(self, exporter, project, two_readings):
        text = exporter.export_project(project, two_readings, [], [], ExportFormat.CSV)
        lines = text.splitlines()

        assert lines[0] == '# TerraMag Field Survey Data Export'
        assert '# Project: Test' in lines
        assert '# Total Readings: 2' in lines
        assert f'# Export Date: {EXPORT_TIME.isoformat()}' in lines

        rows = list(csv.reader(io.StringIO('\n'.join(_data_lines(text)))))
        assert rows[0] == [
            'point_id', 'timestamp', 'latitude', 'longitude', 'altitude',
            'magnetic_x', 'magnetic_y', 'magnetic_z', 'total_field', 'quality_flag', 'notes'
        ]
        assert len(rows) == 3
        assert rows[1][0] == 'MAG_1'
        assert rows[1][2:4] == ['5.60000000', '-0.18000000']
        assert rows[1][8] == '45.000'
        assert rows[2][0] == 'MAG_2'
        assert [row[9] for row in rows[1:]] == ['GOOD', 'GOOD']

    def test_poor_quality_outside_plausible_range(self, exporter, project):
        readings = [make_reading(20.0), make_reading(70.0, minutes=1), make_reading(15.5, minutes=2)]
        text = exporter.export_project(project, readings, [], [], ExportFormat.CSV)
        rows = list(csv.reader(io.StringIO('\n'.join(_data_lines(text)))))

        assert [row[9] for row in rows[1:]] == ['POOR', 'POOR', 'POOR']

    def test_field_notes_table(self, exporter, project, two_readings, notes):
        text = exporter.export_project(project, two_readings, [], notes, ExportFormat.CSV)

        assert '# Field Notes' in text.splitlines()
        rows = list(csv.reader(io.StringIO('\n'.join(_data_lines(text)))))
        note_rows = [row for row in rows if row[0].startswith('NOTE_')]
        assert [row[0] for row in note_rows] == ['NOTE_1', 'NOTE_2']
        assert note_rows[0][4] == 'IMAGE;'
        assert note_rows[1][4] == 'TEXT'

    def test_notes_with_commas_are_quoted(self, exporter, project):
        readings = [make_reading(notes='near gate, north side')]
        text = exporter.export_project(project, readings, [], [], ExportFormat.CSV)

        assert '"near gate, north side"' in text


class TestGeoJson:
    def test_readings_round_trip(self, exporter, project, two_readings, grid, notes):
        text = exporter.export_project(project, two_readings, grid, notes, ExportFormat.GEOJSON)
        collection = json.loads(text)

        points = [f for f in collection['features'] if f['id'].startswith('MAG_')]
        assert len(points) == 2
        for feature, reading in zip(points, two_readings):
            lon, lat, alt = feature['geometry']['coordinates']
            assert (lat, lon, alt) == (reading.latitude, reading.longitude, reading.altitude)
            assert feature['properties']['total_field'] == reading.total_field
            assert feature['properties']['quality'] == 'GOOD'

    def test_grid_rings_are_closed(self, exporter, project, two_readings, grid):
        collection = json.loads(
            exporter.export_project(project, two_readings, grid, [], ExportFormat.GEOJSON)
        )
        cells = [f for f in collection['features'] if f['id'].startswith('GRID_')]

        assert len(cells) == 2
        ring = cells[0]['geometry']['coordinates'][0]
        assert len(ring) == 5
        assert ring[0] == ring[-1]
        assert cells[0]['properties']['status'] == 'Completed'
        assert cells[0]['properties']['completion_percentage'] == 100.0

    def test_metadata_and_note_flags(self, exporter, project, two_readings, notes):
        text = exporter.export_project(project, two_readings, [], notes, ExportFormat.GEOJSON)
        collection = json.loads(text)

        assert text.startswith('{\n  "type": "FeatureCollection"')
        assert collection['metadata']['crs'] == 'EPSG:4326'
        assert collection['metadata']['total_readings'] == 2
        note = [f for f in collection['features'] if f['id'] == 'NOTE_1'][0]
        assert note['properties']['has_image'] is True
        assert note['properties']['has_audio'] is False

    def test_cell_without_bounds_is_skipped(self, exporter, project, two_readings):
        cells = [GridCell(row=0, col=0, center_lat=5.6, center_lon=-0.18)]
        collection = json.loads(
            exporter.export_project(project, two_readings, cells, [], ExportFormat.GEOJSON)
        )

        assert not [f for f in collection['features'] if f['id'].startswith('GRID_')]


class TestKml:
    def test_no_grid_folder_without_cells(self, exporter, project, two_readings):
        text = exporter.export_project(project, two_readings, [], [], ExportFormat.KML)

        assert text.count('<Folder>') == 1
        assert 'Survey Grid' not in text
        assert text.count('<Placemark>') == 2
        assert '#goodQuality' in text

    def test_poor_readings_use_poor_style(self, exporter, project):
        readings = [make_reading(45.0), make_reading(80.0, minutes=1)]
        text = exporter.export_project(project, readings, [], [], ExportFormat.KML)
        placemarks = text.split("<Placemark>")[1:]

        assert "#goodQuality" in placemarks[0]
        assert "#poorQuality" in placemarks[1]
        assert "<value>POOR</value>" in placemarks[1]

    def test_grid_folder_with_closed_rings(self, exporter, project, two_readings, grid):
        text = exporter.export_project(project, two_readings, grid, [], ExportFormat.KML)

        assert text.count('<Folder>') == 2
        assert '#cellCompleted' in text
        assert '#cellNotStarted' in text

        first = grid[0].bounds[0]
        vertex = f'{first.longitude:.8f},{first.latitude:.8f},0'
        block = text.split('<name>Grid Cell 0_0</name>')[1].split('</Placemark>')[0]
        assert block.count(vertex) == 2

    def test_names_are_escaped(self, exporter, project, two_readings):
        project = project.__class__(name="A & B <site>", description="", created_at=START)
        text = exporter.export_project(project, two_readings, [], [], ExportFormat.KML)

        assert '<name>A &amp; B &lt;site&gt;</name>' in text


class TestShapefile:
    def test_wkt_points(self, exporter, project, two_readings):
        text = exporter.export_project(project, two_readings, [], [], ExportFormat.SHAPEFILE)
        rows = list(csv.reader(io.StringIO('\n'.join(_data_lines(text)))))

        assert rows[0][0] == 'WKT'
        assert rows[1][0] == 'POINT(-0.18000000 5.60000000)'
        assert rows[1][1] == 'MAG_1'
        assert rows[1][7] == 'GOOD'
        assert rows[1][8] == ''


class TestSnapshot:
    def test_copies_store_bytes(self, exporter, project, tmp_path):
        (tmp_path / "survey.db").write_bytes(b"SQLite format 3\x00payload")

        path = exporter.snapshot_store(project)

        assert path.read_bytes() == b"SQLite format 3\x00payload"
        assert path.name == f"Test_{int(EXPORT_TIME.timestamp() * 1000)}.db"

    def test_missing_store(self, exporter, project):
        with pytest.raises(MissingBackingStoreError) as exc_info:
            exporter.export_project(project, [], [], [], ExportFormat.SQLITE)

        assert exc_info.value.kind == ExportErrorKind.MISSING_BACKING_STORE

    def test_copy_failure_is_write_failure(self, project, tmp_path):
        (tmp_path / "survey.db").write_bytes(b"data")
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("occupied")
        exporter = GeoExporter(
            export_settings=ExportSettings(directory=str(blocker)),
            store_path=tmp_path / "survey.db",
        )

        with pytest.raises(WriteFailureError) as exc_info:
            exporter.snapshot_store(project)

        assert exc_info.value.kind == ExportErrorKind.WRITE_FAILURE

    def test_snapshot_into_given_directory(self, exporter, project, tmp_path):
        (tmp_path / "survey.db").write_bytes(b"data")

        path = exporter.snapshot_store(project, directory=tmp_path / "scratch")

        assert path.parent == tmp_path / "scratch"
        assert not exporter.export_dir.exists()

    def test_unsupported_environment(self, project, tmp_path):
        (tmp_path / "survey.db").write_bytes(b"data")
        exporter = GeoExporter(
            export_settings=ExportSettings(directory=str(tmp_path), filesystem_available=False),
            store_path=tmp_path / "survey.db",
        )

        assert not exporter.is_format_available(ExportFormat.SQLITE)
        with pytest.raises(UnsupportedEnvironmentError):
            exporter.snapshot_store(project)


class TestFiles:
    def test_extension_and_mime_mapping(self):
        assert get_file_extension(ExportFormat.SHAPEFILE) == 'csv'
        assert get_mime_type(ExportFormat.SHAPEFILE) == 'text/csv'
        assert get_mime_type(ExportFormat.GEOJSON) == 'application/geo+json'
        assert get_mime_type(ExportFormat.KML) == 'application/vnd.google-earth.kml+xml'
        assert get_file_extension(ExportFormat.SQLITE) == 'db'
        assert get_mime_type(ExportFormat.SQLITE) == 'application/vnd.sqlite3'

    def test_filename_uses_export_time(self, exporter, project):
        millis = int(EXPORT_TIME.timestamp() * 1000)
        assert exporter.build_filename(project, ExportFormat.KML) == f"Test_{millis}.kml"

    def test_export_to_file_shares_result(self, exporter, project, two_readings):
        shared = []
        path = exporter.export_to_file(
            project, two_readings, [], [], ExportFormat.GEOJSON,
            share=lambda p, mime: shared.append((p, mime))
        )

        assert path.parent == exporter.export_dir
        assert json.loads(path.read_text(encoding='utf-8'))['type'] == 'FeatureCollection'
        assert shared == [(path, 'application/geo+json')]

    def test_unwritable_export_dir_is_write_failure(self, project, two_readings, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("occupied")
        exporter = GeoExporter(export_settings=ExportSettings(directory=str(blocker)))

        with pytest.raises(WriteFailureError):
            exporter.export_to_file(project, two_readings, [], [], ExportFormat.CSV)

        assert blocker.read_text() == "occupied"

    def test_failed_share_is_write_failure(self, exporter):
        def share(path, mime):
            raise RuntimeError("no share target")

        with pytest.raises(WriteFailureError) as exc_info:
            exporter.save_and_share("data", "out.csv", share=share)

        assert str(exc_info.value).startswith("WriteFailure:")

    def test_output_is_deterministic(self, exporter, project, two_readings, grid, notes):
        for fmt in (ExportFormat.CSV, ExportFormat.GEOJSON, ExportFormat.KML, ExportFormat.SHAPEFILE):
            first = exporter.export_project(project, two_readings, grid, notes, fmt)
            second = exporter.export_project(project, two_readings, grid, notes, fmt)
            assert first == second


def test_validate_export_data(two_readings):
    assert validate_export_data(two_readings)
    assert not validate_export_data([])
