"""create_swm_tables

Revision ID: create_swm_tables
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'create_swm_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create gram_panchayats, mrfs and performance_metrics."""
    # ==================== gram_panchayats ====================
    op.create_table(
        'gram_panchayats',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('taluk', sa.String(length=255), nullable=False),
        sa.Column('village', sa.String(length=255), nullable=False),
        sa.Column('sarpanch', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('mrf_mapped', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('mrf_unit_id', sa.String(length=100), nullable=True),
        sa.Column('mrf_unit_name', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('households', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shops', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('institutions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('swm_sheds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('date_created', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', 'taluk', name='uq_gram_panchayats_name_taluk'),
        sa.CheckConstraint("status IN ('Active', 'Inactive')", name='ck_gram_panchayats_status'),
    )
    op.create_index('ix_gram_panchayats_name', 'gram_panchayats', ['name'])
    op.create_index('ix_gram_panchayats_user_id', 'gram_panchayats', ['user_id'])

    # ==================== mrfs ====================
    op.create_table(
        'mrfs',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('unit_id', sa.String(length=100), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('date_created', sa.DateTime(timezone=True), nullable=True),
        sa.Column('taluk', sa.String(length=255), nullable=True),
        sa.Column('village', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('capacity', sa.Float(), nullable=True),
        sa.Column('operational_status', sa.String(length=100), nullable=True),
        sa.Column('equipment', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        # NULLs never collide, so rows without a unit id are allowed
        sa.UniqueConstraint('unit_id', name='uq_mrfs_unit_id'),
    )

    # ==================== performance_metrics ====================
    op.create_table(
        'performance_metrics',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('gram_panchayat_id', sa.String(length=32), nullable=False),
        sa.Column('date_recorded', sa.DateTime(timezone=True), nullable=False),
        sa.Column('wet_waste', sa.Float(), nullable=False),
        sa.Column('dry_waste', sa.Float(), nullable=False),
        sa.Column('sanitary_waste', sa.Float(), nullable=False),
        sa.Column('revenue', sa.Float(), nullable=False),
        sa.Column('compliance_score', sa.Float(), nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_performance_metrics_gram_panchayat_id', 'performance_metrics', ['gram_panchayat_id'])
    op.create_index('ix_performance_metrics_date_recorded', 'performance_metrics', ['date_recorded'])
    op.create_index(
        'ix_performance_metrics_gp_date_recorded',
        'performance_metrics',
        ['gram_panchayat_id', sa.text('date_recorded DESC')],
    )


def downgrade() -> None:
    op.drop_index('ix_performance_metrics_gp_date_recorded', table_name='performance_metrics')
    op.drop_index('ix_performance_metrics_date_recorded', table_name='performance_metrics')
    op.drop_index('ix_performance_metrics_gram_panchayat_id', table_name='performance_metrics')
    op.drop_table('performance_metrics')

    op.drop_table('mrfs')

    op.drop_index('ix_gram_panchayats_user_id', table_name='gram_panchayats')
    op.drop_index('ix_gram_panchayats_name', table_name='gram_panchayats')
    op.drop_table('gram_panchayats')
