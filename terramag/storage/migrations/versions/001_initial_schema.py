"""Initial database schema

Revision ID: 001_initial
Revises:
Create Date: 2024-03-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create projects table
    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('grid_spacing', sa.Float(), nullable=True),
        sa.Column('boundary_points', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # Create magnetic_readings table
    op.create_table(
        'magnetic_readings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('altitude', sa.Float(), nullable=False),
        sa.Column('accuracy', sa.Float(), nullable=True),
        sa.Column('heading', sa.Float(), nullable=True),
        sa.Column('magnetic_x', sa.Float(), nullable=False),
        sa.Column('magnetic_y', sa.Float(), nullable=False),
        sa.Column('magnetic_z', sa.Float(), nullable=False),
        sa.Column('total_field', sa.Float(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_readings_project', 'magnetic_readings', ['project_id'])
    op.create_index('idx_readings_timestamp', 'magnetic_readings', ['timestamp'])

    # Create field_notes table
    op.create_table(
        'field_notes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('image_path', sa.Text(), nullable=True),
        sa.Column('audio_path', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_field_notes_project', 'field_notes', ['project_id'])

    # Create grid_cells table
    op.create_table(
        'grid_cells',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('row', sa.Integer(), nullable=False),
        sa.Column('col', sa.Integer(), nullable=False),
        sa.Column('center_lat', sa.Float(), nullable=False),
        sa.Column('center_lon', sa.Float(), nullable=False),
        sa.Column('bounds', sa.Text(), nullable=False),
        sa.Column('status', sa.Enum('NOT_STARTED', 'IN_PROGRESS', 'COMPLETED', name='gridcellstatusenum'), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('completed_time', sa.DateTime(), nullable=True),
        sa.Column('point_count', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_grid_cells_project_pos', 'grid_cells', ['project_id', 'row', 'col'], unique=True)


def downgrade() -> None:
    op.drop_index('idx_grid_cells_project_pos', table_name='grid_cells')
    op.drop_table('grid_cells')
    op.drop_index('idx_field_notes_project', table_name='field_notes')
    op.drop_table('field_notes')
    op.drop_index('idx_readings_timestamp', table_name='magnetic_readings')
    op.drop_index('idx_readings_project', table_name='magnetic_readings')
    op.drop_table('magnetic_readings')
    op.drop_table('projects')
