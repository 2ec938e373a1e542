from datetime import datetime

from sqlalchemy import inspect

from terramag.core.grid_planner import create_regular_grid, update_cell_status
from terramag.core.models import FieldNote, GridCellStatus, LatLng
from terramag.storage import (
    FieldNoteRepository,
    GridCellRepository,
    ProjectRepository,
    ReadingRepository,
    drop_db,
    get_database_path,
    get_engine,
    to_field_note,
    to_grid_cell,
    to_project,
    to_reading,
)

from conftest import START, make_reading


def test_tables_created(database_url):
    tables = inspect(get_engine()).get_table_names()

    assert {'projects', 'magnetic_readings', 'field_notes', 'grid_cells'} <= set(tables)


def test_drop_removes_tables(database_url):
    drop_db()

    assert inspect(get_engine()).get_table_names() == []


def test_database_path(tmp_path, database_url):
    assert get_database_path() == tmp_path / 'survey.db'
    assert get_database_path('sqlite:///:memory:') is None
    assert get_database_path('postgresql://user@localhost/survey') is None


def test_project_round_trip(session):
    repo = ProjectRepository(session)
    row = repo.create(name="Site A", description="North field", created_at=START)
    repo.commit()

    project = to_project(repo.get_by_id(row.id))

    assert project.name == "Site A"
    assert project.description == "North field"
    assert project.created_at == START


def test_readings_in_time_order(session):
    project = ProjectRepository(session).create(name="Site A")
    repo = ReadingRepository(session)
    repo.bulk_create([
        make_reading(46.0, minutes=60, project_id=project.id),
        make_reading(45.0, minutes=0, project_id=project.id, accuracy=3.5),
    ])
    repo.commit()

    readings = [to_reading(r) for r in repo.get_by_project(project.id)]

    assert repo.count_by_project(project.id) == 2
    assert [r.total_field for r in readings] == [45.0, 46.0]
    assert readings[0].accuracy == 3.5
    assert readings[0].id is not None


def test_field_notes(session):
    project = ProjectRepository(session).create(name="Site A")
    repo = FieldNoteRepository(session)
    row = repo.create(FieldNote(
        latitude=5.6, longitude=-0.18, note="Culvert", timestamp=START,
        project_id=project.id, audio_path="/media/culvert.m4a"
    ))
    repo.commit()

    note = to_field_note(repo.get_by_project(project.id)[0])
    assert note.has_audio and not note.has_image

    assert repo.delete(row.id)
    assert repo.get_by_project(project.id) == []


def test_grid_round_trip_and_cell_update(session):
    project = ProjectRepository(session).create(name="Site A")
    repo = GridCellRepository(session)
    cells = create_regular_grid(LatLng(5.6, -0.18), 0.001, 2, 2)

    assert repo.replace_grid(project.id, cells) == 4
    repo.commit()

    stored = [to_grid_cell(c) for c in repo.get_by_project(project.id)]
    assert stored == cells

    done = update_cell_status(stored[1], GridCellStatus.COMPLETED, at=datetime(2024, 3, 1, 10, 0))
    repo.save_cell(project.id, done)
    repo.commit()

    reloaded = [to_grid_cell(c) for c in repo.get_by_project(project.id)]
    assert reloaded[1].status == GridCellStatus.COMPLETED
    assert reloaded[1].completed_time == datetime(2024, 3, 1, 10, 0)

    assert repo.replace_grid(project.id, cells[:1]) == 1
    assert len(repo.get_by_project(project.id)) == 1


def test_delete_project_removes_readings(session):
    projects = ProjectRepository(session)
    project = projects.create(name="Site A")
    readings = ReadingRepository(session)
    readings.create(make_reading(project_id=project.id))
    projects.commit()

    assert projects.delete(project.id)
    projects.commit()

    assert projects.get_by_id(project.id) is None
    assert readings.count_by_project(project.id) == 0


def test_initial_migration_matches_models():
    import importlib
    from alembic.migration import MigrationContext
    from alembic.operations import Operations
    from sqlalchemy import create_engine

    from terramag.storage import Base

    migration = importlib.import_module("terramag.storage.migrations.versions.001_initial_schema")
    engine = create_engine("sqlite://")

    with engine.begin() as connection:
        with Operations.context(MigrationContext.configure(connection)):
            migration.upgrade()

        inspector = inspect(connection)
        assert set(inspector.get_table_names()) == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            columns = {c['name'] for c in inspector.get_columns(name)}
            assert columns == {c.name for c in table.columns}

        with Operations.context(MigrationContext.configure(connection)):
            migration.downgrade()

        assert inspect(connection).get_table_names() == []
