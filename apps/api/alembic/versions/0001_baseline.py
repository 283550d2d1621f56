"""Baseline migration - asset catalog, reports, and lineage tables

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18

Creates customers, jobs, the asset catalog, one table per report kind,
job/report links, the identity claim ledger, and testing history.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


REPORT_TABLES = (
    'calibration_gloves_reports',
    'calibration_sleeve_reports',
    'calibration_blanket_reports',
    'calibration_line_hose_reports',
    'calibration_hotstick_reports',
    'calibration_ground_cable_reports',
    'calibration_bucket_truck_reports',
    'calibration_digger_reports',
    'meter_template_reports',
    'panelboard_reports',
    'automatic_transfer_switch_ats_reports',
    'large_dry_type_transformer_reports',
)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Customers and jobs
    # ==========================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('partition', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('company_key', sa.String(64), nullable=True),
        _timestamp('created_at'),
    )
    op.create_index('idx_customers_partition_key', 'customers', ['partition', 'company_key'])

    op.create_table(
        'jobs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('partition', sa.String(20), nullable=False),
        sa.Column('division', sa.String(40), nullable=False),
        sa.Column(
            'customer_id',
            sa.Uuid(),
            sa.ForeignKey('customers.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('job_number', sa.String(32), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.UniqueConstraint('partition', 'job_number', name='uq_jobs_partition_number'),
    )
    op.create_index('idx_jobs_customer', 'jobs', ['customer_id'])

    # ==========================================================================
    # Asset catalog
    # ==========================================================================
    op.create_table(
        'assets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('partition', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('file_url', sa.String(1024), nullable=True),
        sa.Column('job_id', sa.Uuid(), sa.ForeignKey('jobs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('identity', sa.String(64), nullable=True),
        sa.Column('identity_namespace', sa.String(32), nullable=True),
        sa.Column('identity_pending', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('report_kind', sa.String(64), nullable=True),
        sa.Column('report_id', sa.Uuid(), nullable=True),
        sa.Column(
            'source_asset_id',
            sa.Uuid(),
            sa.ForeignKey('assets.id', ondelete='SET NULL'),
            nullable=True,
        ),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        _timestamp('deleted_at', nullable=True),
    )
    op.create_index('idx_assets_partition_job', 'assets', ['partition', 'job_id'])
    op.create_index('idx_assets_identity', 'assets', ['identity'])
    op.create_index('idx_assets_report', 'assets', ['report_kind', 'report_id'])
    op.create_index('idx_assets_source', 'assets', ['source_asset_id'])

    # ==========================================================================
    # Reports (one table per kind, identical shape)
    # ==========================================================================
    for table in REPORT_TABLES:
        op.create_table(
            table,
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('partition', sa.String(20), nullable=False),
            sa.Column(
                'job_id',
                sa.Uuid(),
                sa.ForeignKey('jobs.id', ondelete='SET NULL'),
                nullable=True,
            ),
            sa.Column('report_info', sa.JSON(), nullable=False),
            sa.Column('status', sa.String(20), nullable=True),
            _timestamp('created_at'),
            _timestamp('updated_at'),
            _timestamp('deleted_at', nullable=True),
        )
        op.create_index(f'ix_{table}_job_id', table, ['job_id'])

    # ==========================================================================
    # Lineage and identity ledger
    # ==========================================================================
    op.create_table(
        'job_report_links',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('partition', sa.String(20), nullable=False),
        sa.Column('job_id', sa.Uuid(), sa.ForeignKey('jobs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('report_kind', sa.String(64), nullable=False),
        sa.Column('report_id', sa.Uuid(), nullable=False),
        _timestamp('created_at'),
        sa.UniqueConstraint(
            'job_id', 'report_kind', 'report_id', name='uq_job_report_links_target'
        ),
    )

    op.create_table(
        'asset_identity_claims',
        sa.Column('namespace', sa.String(32), nullable=False),
        sa.Column('sequence', sa.BigInteger(), nullable=False, autoincrement=False),
        sa.Column('code', sa.String(64), nullable=False),
        sa.Column('partition', sa.String(20), nullable=False),
        _timestamp('claimed_at'),
        sa.PrimaryKeyConstraint('namespace', 'sequence'),
        sa.UniqueConstraint('code', name='uq_asset_identity_code'),
    )

    # ==========================================================================
    # Testing history
    # ==========================================================================
    op.create_table(
        'asset_test_records',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('partition', sa.String(20), nullable=False),
        sa.Column(
            'asset_id',
            sa.Uuid(),
            sa.ForeignKey('assets.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('job_id', sa.Uuid(), sa.ForeignKey('jobs.id', ondelete='SET NULL'), nullable=True),
        _timestamp('test_date'),
        sa.Column('test_type', sa.String(64), nullable=False),
        sa.Column('test_performed_by', sa.String(255), nullable=True),
        sa.Column('pass_fail_status', sa.String(20), nullable=False),
        sa.Column('condition_rating', sa.Float(), nullable=True),
        sa.Column('notes', sa.String(2000), nullable=True),
        sa.Column('test_measurements', sa.JSON(), nullable=True),
        _timestamp('created_at'),
    )
    op.create_index(
        'idx_asset_test_records_asset', 'asset_test_records', ['asset_id', 'test_date']
    )


def downgrade() -> None:
    op.drop_table('asset_test_records')
    op.drop_table('asset_identity_claims')
    op.drop_table('job_report_links')
    for table in reversed(REPORT_TABLES):
        op.drop_table(table)
    op.drop_table('assets')
    op.drop_table('jobs')
    op.drop_table('customers')
