"""area traffic analysis cache table

Revision ID: 5c2d81a0e7f4
Revises:
Create Date: 2026-10-18 09:12:44.318205

Creates area_traffic_analysis, the durable store behind the database
analysis cache. New databases may also use create_all() (see
footfall/main.py lifespan); stamp them with:

    alembic stamp head
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2d81a0e7f4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'area_traffic_analysis',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('latitude', sa.Numeric(10, 4), nullable=False),
        sa.Column('longitude', sa.Numeric(11, 4), nullable=False),
        sa.Column('radius_meters', sa.Integer(), nullable=False),
        sa.Column('total_venues', sa.Integer(), nullable=False),
        sa.Column('average_daily_visits', sa.Integer(), nullable=False),
        sa.Column('peak_hours', sa.JSON(), nullable=True),
        sa.Column('demographic_profile', sa.JSON(), nullable=True),
        sa.Column('competition_density', sa.Float(), nullable=True),
        sa.Column('opportunity_score', sa.Integer(), nullable=True),
        sa.Column('venue_data', sa.JSON(), nullable=False),
        sa.Column('analysis_date', sa.Date(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'latitude', 'longitude', 'radius_meters', 'analysis_date',
            name='uq_area_traffic_analysis_area_day',
        ),
    )
    op.create_index(
        'idx_area_traffic_analysis_location_radius',
        'area_traffic_analysis',
        ['latitude', 'longitude', 'radius_meters'],
    )
    op.create_index(
        'idx_area_traffic_analysis_expires',
        'area_traffic_analysis',
        ['expires_at'],
    )


def downgrade() -> None:
    op.drop_index('idx_area_traffic_analysis_expires', table_name='area_traffic_analysis')
    op.drop_index('idx_area_traffic_analysis_location_radius', table_name='area_traffic_analysis')
    op.drop_table('area_traffic_analysis')
