"""initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates the catalog, versioned parameter sets, projects, comments and the
inquiry ledger with its one-pending-request-per-triple index.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def money():
    return sa.Numeric(18, 6, asdecimal=True)


def upgrade() -> None:
    # Catalog
    op.create_table('categories',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table('devices',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('category_id', sa.String(36), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('model_name', sa.String(255), nullable=False),
        sa.Column('factory_price', money(), nullable=False),
        sa.Column('length', money(), nullable=False),
        sa.Column('weight', money(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('factory_price > 0', name='ck_devices_factory_price_positive'),
        sa.CheckConstraint('length > 0', name='ck_devices_length_positive'),
        sa.CheckConstraint('weight > 0', name='ck_devices_weight_positive'),
    )
    op.create_index('ix_devices_category_model', 'devices', ['category_id', 'model_name'])

    # Parameter versions
    op.create_table('parameter_sets',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('discount_multiplier', money(), nullable=False),
        sa.Column('freight_rate_per_length', money(), nullable=False),
        sa.Column('customs_numerator', money(), nullable=False),
        sa.Column('customs_denominator', money(), nullable=False),
        sa.Column('warranty_rate', money(), nullable=False),
        sa.Column('internal_commission_factor', money(), nullable=False),
        sa.Column('company_cost_factor', money(), nullable=False),
        sa.Column('profit_factor', money(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_parameter_sets_is_active', 'parameter_sets', ['is_active'])

    # Projects and comments
    op.create_table('projects',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_projects_user_id', 'projects', ['user_id'])

    op.create_table('comments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('project_id', sa.String(36), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('user_full_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("role IN ('admin', 'employee')", name='ck_comments_role'),
    )
    op.create_index('ix_comments_project_id', 'comments', ['project_id'])

    # Inquiry ledger
    op.create_table('inquiry_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('device_id', sa.String(36), sa.ForeignKey('devices.id'), nullable=False),
        sa.Column('project_id', sa.String(36), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('parameter_set_id', sa.String(36), sa.ForeignKey('parameter_sets.id'), nullable=False),
        sa.Column('category_name_snapshot', sa.String(255), nullable=False),
        sa.Column('model_name_snapshot', sa.String(255), nullable=False),
        sa.Column('sell_price_snapshot', money(), nullable=False),
        sa.Column('factory_price_snapshot', money(), nullable=False),
        sa.Column('length_snapshot', money(), nullable=False),
        sa.Column('weight_snapshot', money(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('admin_response_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('responded_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name='ck_inquiry_logs_status'),
    )
    op.create_index('ix_inquiry_logs_user_id', 'inquiry_logs', ['user_id'])
    op.create_index('ix_inquiry_logs_project_id', 'inquiry_logs', ['project_id'])
    op.create_index(
        'uq_inquiry_logs_pending_triple', 'inquiry_logs',
        ['user_id', 'device_id', 'project_id'],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign keys)
    op.drop_table('inquiry_logs')
    op.drop_table('comments')
    op.drop_table('projects')
    op.drop_table('parameter_sets')
    op.drop_table('devices')
    op.drop_table('categories')
