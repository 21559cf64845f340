"""add_vmdb_metrics

Revision ID: 20261019_vmdb_metrics
Revises:
Create Date: 2026-10-19 09:00:00

Adds: vmdb_databases, vmdb_tables, vmdb_indexes, vmdb_raw_snapshots, vmdb_metrics
Purpose: Capture and rollup of table/index statistics for the monitored database
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_vmdb_metrics'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Create metrics tables:
    1. vmdb_databases - monitored database instances
    2. vmdb_tables / vmdb_indexes - monitored resources
    3. vmdb_raw_snapshots - prior raw sample per resource (single slot)
    4. vmdb_metrics - hourly captures and daily/weekly rollups
    """

    op.create_table(
        'vmdb_databases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('vendor', sa.String(50), nullable=True),
        sa.Column('version', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table(
        'vmdb_tables',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vmdb_database_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['vmdb_database_id'], ['vmdb_databases.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_id'], ['vmdb_tables.id'], ondelete='CASCADE'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vmdb_tables_vmdb_database_id', 'vmdb_tables', ['vmdb_database_id'])
    op.create_index('ix_vmdb_tables_parent_id', 'vmdb_tables', ['parent_id'])
    op.create_index('ix_vmdb_tables_database_name', 'vmdb_tables', ['vmdb_database_id', 'name'], unique=True)

    op.create_table(
        'vmdb_indexes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vmdb_table_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['vmdb_table_id'], ['vmdb_tables.id'], ondelete='CASCADE'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vmdb_indexes_vmdb_table_id', 'vmdb_indexes', ['vmdb_table_id'])

    op.create_table(
        'vmdb_raw_snapshots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('resource_type', sa.String(50), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.Column('captured_at', sa.DateTime(), nullable=False),
        sa.Column('counters', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_vmdb_raw_snapshots_resource', 'vmdb_raw_snapshots',
                    ['resource_type', 'resource_id'], unique=True)

    op.create_table(
        'vmdb_metrics',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('resource_type', sa.String(50), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.Column('capture_interval_name', sa.String(20), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        # Additive
        sa.Column('table_scans', sa.BigInteger(), nullable=True),
        sa.Column('sequential_rows_read', sa.BigInteger(), nullable=True),
        sa.Column('index_scans', sa.BigInteger(), nullable=True),
        sa.Column('index_rows_fetched', sa.BigInteger(), nullable=True),
        sa.Column('rows_inserted', sa.BigInteger(), nullable=True),
        sa.Column('rows_updated', sa.BigInteger(), nullable=True),
        sa.Column('rows_deleted', sa.BigInteger(), nullable=True),
        sa.Column('rows_hot_updated', sa.BigInteger(), nullable=True),
        # Gauges
        sa.Column('size', sa.BigInteger(), nullable=True),
        sa.Column('rows', sa.BigInteger(), nullable=True),
        sa.Column('pages', sa.BigInteger(), nullable=True),
        sa.Column('otta', sa.BigInteger(), nullable=True),
        sa.Column('rows_live', sa.BigInteger(), nullable=True),
        sa.Column('rows_dead', sa.BigInteger(), nullable=True),
        sa.Column('percent_bloat', sa.Float(), nullable=True),
        sa.Column('wasted_bytes', sa.Float(), nullable=True),
        sa.Column('last_vacuum_date', sa.DateTime(), nullable=True),
        sa.Column('last_autovacuum_date', sa.DateTime(), nullable=True),
        sa.Column('last_analyze_date', sa.DateTime(), nullable=True),
        sa.Column('last_autoanalyze_date', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_vmdb_metrics_resource_interval_ts', 'vmdb_metrics',
                    ['resource_type', 'resource_id', 'capture_interval_name', 'timestamp'], unique=True)


def downgrade() -> None:
    """
    Drop metrics tables.
    """
    op.drop_table('vmdb_metrics')
    op.drop_table('vmdb_raw_snapshots')
    op.drop_table('vmdb_indexes')
    op.drop_table('vmdb_tables')
    op.drop_table('vmdb_databases')
