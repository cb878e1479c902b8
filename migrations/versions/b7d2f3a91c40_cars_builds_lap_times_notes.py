"""Cars, builds, lap times and the notes board

Revision ID: b7d2f3a91c40
Revises: a1c4e7f90b12
Create Date: 2026-10-18 12:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = 'b7d2f3a91c40'
down_revision = 'a1c4e7f90b12'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'cars',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('slug', sa.String(length=200), nullable=False),
        sa.Column('manufacturer', sa.String(length=100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('category', sa.String(length=20), nullable=True),
        sa.Column('drive_type', sa.String(length=10), nullable=True),
        sa.Column('pp', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    op.create_table(
        'car_builds',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('car_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('final_drive', sa.String(length=20), nullable=True),
        sa.Column('gear_ratios_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['car_id'], ['cars.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('car_builds', schema=None) as batch_op:
        batch_op.create_index('ix_car_builds_car', ['car_id'], unique=False)
        batch_op.create_index('ix_car_builds_user', ['user_id'], unique=False)

    op.create_table(
        'lap_times',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('track_id', sa.String(length=36), nullable=False),
        sa.Column('car_id', sa.String(length=36), nullable=False),
        sa.Column('build_id', sa.String(length=36), nullable=True),
        sa.Column('build_name', sa.String(length=100), nullable=True),
        sa.Column('time_ms', sa.Integer(), nullable=False),
        sa.Column('session_type', sa.String(length=1), nullable=False, server_default='R'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('conditions', sa.String(length=200), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['track_id'], ['tracks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['car_id'], ['cars.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['build_id'], ['car_builds.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('lap_times', schema=None) as batch_op:
        batch_op.create_index('ix_lap_times_track_car', ['track_id', 'car_id'], unique=False)
        batch_op.create_index('ix_lap_times_user', ['user_id'], unique=False)

    op.create_table(
        'notes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False, server_default=''),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('color', sa.String(length=7), nullable=False, server_default='#fef08a'),
        sa.Column('position_x', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('position_y', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'note_votes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('note_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('vote_type', sa.String(length=4), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['note_id'], ['notes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('note_id', 'user_id', name='uq_note_votes_note_user'),
    )


def downgrade():
    op.drop_table('note_votes')
    op.drop_table('notes')
    with op.batch_alter_table('lap_times', schema=None) as batch_op:
        batch_op.drop_index('ix_lap_times_user')
        batch_op.drop_index('ix_lap_times_track_car')
    op.drop_table('lap_times')
    with op.batch_alter_table('car_builds', schema=None) as batch_op:
        batch_op.drop_index('ix_car_builds_user')
        batch_op.drop_index('ix_car_builds_car')
    op.drop_table('car_builds')
    op.drop_table('cars')
