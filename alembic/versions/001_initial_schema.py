"""Initial schema - users, profiles, incident reports, audit logs

Revision ID: 001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('idx_user_email', 'users', ['email'])

    # Profile is keyed by the user id; user_type is fixed at registration
    op.create_table(
        'user_profiles',
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=False),
        sa.Column('contact_phone_number', sa.String(length=50), nullable=False),
        sa.Column('emergency_contact_name', sa.String(length=255), nullable=False),
        sa.Column('emergency_contact_phone_number', sa.String(length=50), nullable=False),
        sa.Column('medical_information', sa.Text(), nullable=True),
        sa.Column('student_number', sa.String(length=100), nullable=True),
        sa.Column('user_type', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id')
    )
    op.create_index('idx_profile_user_type', 'user_profiles', ['user_type'])

    op.create_table(
        'incident_reports',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('incident_type', sa.String(), nullable=False),
        sa.Column('location_details', sa.Text(), nullable=False),
        sa.Column('detailed_description', sa.Text(), nullable=False),
        sa.Column('report_date_time', sa.DateTime(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('user_name', sa.String(length=255), nullable=False),
        sa.Column('student_number', sa.String(length=100), nullable=False),
        sa.Column('media_urls', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_report_user', 'incident_reports', ['user_id'])
    op.create_index('idx_report_status', 'incident_reports', ['status'])
    op.create_index('idx_report_incident_type', 'incident_reports', ['incident_type'])
    op.create_index('idx_report_datetime', 'incident_reports', ['report_date_time'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('resource_type', sa.String(length=50), nullable=True),
        sa.Column('resource_id', sa.String(length=100), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_audit_user', 'audit_logs', ['user_id'])
    op.create_index('idx_audit_action', 'audit_logs', ['action'])
    op.create_index('idx_audit_created', 'audit_logs', ['created_at'])


def downgrade() -> None:
    op.drop_index('idx_audit_created', table_name='audit_logs')
    op.drop_index('idx_audit_action', table_name='audit_logs')
    op.drop_index('idx_audit_user', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('idx_report_datetime', table_name='incident_reports')
    op.drop_index('idx_report_incident_type', table_name='incident_reports')
    op.drop_index('idx_report_status', table_name='incident_reports')
    op.drop_index('idx_report_user', table_name='incident_reports')
    op.drop_table('incident_reports')
    op.drop_index('idx_profile_user_type', table_name='user_profiles')
    op.drop_table('user_profiles')
    op.drop_index('idx_user_email', table_name='users')
    op.drop_table('users')
