"""initial_schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, precision: int = 8) -> sa.Column:
    return sa.Column(name, sa.Numeric(precision, 2), nullable=True, server_default='0')


def upgrade() -> None:
    op.create_table(
        'projects',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=True, server_default='supervisor'),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'daily_contractors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('employee_number', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('skill_name', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_number'),
    )

    op.create_table(
        'income_profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('contractor_id', sa.Uuid(), nullable=False),
        sa.Column('hourly_rate', sa.Numeric(8, 2), nullable=False),
        _money('professional_rate'),
        _money('phone_allowance'),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['contractor_id'], ['daily_contractors.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_income_profiles_contractor_id', 'income_profiles', ['contractor_id'])

    op.create_table(
        'expense_profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('contractor_id', sa.Uuid(), nullable=False),
        _money('accommodation_cost'),
        sa.Column('follower_count', sa.Integer(), nullable=True, server_default='0'),
        _money('refrigerator_cost'),
        _money('sound_system_cost'),
        _money('tv_cost'),
        _money('washing_machine_cost'),
        _money('portable_ac_cost'),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['contractor_id'], ['daily_contractors.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_expense_profiles_contractor_id', 'expense_profiles', ['contractor_id'])

    op.create_table(
        'daily_reports',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('contractor_id', sa.Uuid(), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('work_type', sa.String(length=20), nullable=True, server_default='regular'),
        sa.Column('is_overnight', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('manual_hours', sa.Numeric(5, 2), nullable=True),
        sa.Column('task_name', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('version', sa.Integer(), nullable=True, server_default='1'),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['contractor_id'], ['daily_contractors.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['updated_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_daily_reports_contractor_date', 'daily_reports', ['contractor_id', 'work_date'])
    op.create_index('ix_daily_reports_project_date', 'daily_reports', ['project_id', 'work_date'])

    op.create_table(
        'scan_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('contractor_id', sa.Uuid(), nullable=True),
        sa.Column('employee_number', sa.String(length=50), nullable=False),
        sa.Column('scan_datetime', sa.DateTime(), nullable=False),
        sa.Column('rounded_time', sa.DateTime(), nullable=False),
        sa.Column('scan_type', sa.String(length=30), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('is_late', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('late_minutes', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('import_batch_id', sa.String(length=64), nullable=False),
        sa.Column('imported_by', sa.Uuid(), nullable=True),
        sa.Column('imported_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('raw_data', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['contractor_id'], ['daily_contractors.id']),
        sa.ForeignKeyConstraint(['imported_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('project_id', 'employee_number', 'scan_datetime', name='uq_scan_event'),
    )
    op.create_index('ix_scan_events_employee_date', 'scan_events', ['employee_number', 'work_date'])
    op.create_index('ix_scan_events_batch', 'scan_events', ['import_batch_id'])

    op.create_table(
        'scan_import_batches',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('batch_id', sa.String(length=64), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=True),
        sa.Column('file_type', sa.String(length=10), nullable=False),
        sa.Column('total', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('successful', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('failed', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('skipped', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('errors', sa.JSON(), nullable=True),
        sa.Column('warnings', sa.JSON(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('imported_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['imported_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('batch_id'),
    )

    op.create_table(
        'discrepancies',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('contractor_id', sa.Uuid(), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('discrepancy_type', sa.String(length=10), nullable=False),
        sa.Column('severity', sa.String(length=10), nullable=False),
        sa.Column('dr_hours', sa.Numeric(5, 2), nullable=True),
        sa.Column('scan_hours', sa.Numeric(5, 2), nullable=True),
        sa.Column('hours_difference', sa.Numeric(5, 2), nullable=True, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=True, server_default='pending'),
        sa.Column('resolution_method', sa.String(length=20), nullable=True),
        sa.Column('resolution_note', sa.Text(), nullable=True),
        sa.Column('resolved_by', sa.Uuid(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('detected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('redetected_type', sa.String(length=10), nullable=True),
        sa.Column('redetected_difference', sa.Numeric(5, 2), nullable=True),
        sa.Column('redetected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['contractor_id'], ['daily_contractors.id']),
        sa.ForeignKeyConstraint(['resolved_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('project_id', 'contractor_id', 'work_date', name='uq_discrepancy_identity'),
    )
    op.create_index('ix_discrepancies_project_date', 'discrepancies', ['project_id', 'work_date'])

    op.create_table(
        'wage_periods',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('period_code', sa.String(length=20), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True, server_default='draft'),
        sa.Column('total_workers', sa.Integer(), nullable=True, server_default='0'),
        _money('total_regular_hours', 10),
        _money('total_ot_hours', 10),
        _money('total_gross', 12),
        _money('total_deductions', 12),
        _money('total_net', 12),
        sa.Column('has_unresolved_discrepancies', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('calculation_token', sa.String(length=64), nullable=True),
        sa.Column('calculating_since', sa.DateTime(timezone=True), nullable=True),
        sa.Column('calculated_by', sa.Uuid(), nullable=True),
        sa.Column('calculated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', sa.Uuid(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_by', sa.Uuid(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('locked_by', sa.Uuid(), nullable=True),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['calculated_by'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.ForeignKeyConstraint(['paid_by'], ['users.id']),
        sa.ForeignKeyConstraint(['locked_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('project_id', 'period_code', name='uq_wage_period_code'),
    )

    op.create_table(
        'dc_wage_summaries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('wage_period_id', sa.Uuid(), nullable=False),
        sa.Column('contractor_id', sa.Uuid(), nullable=False),
        sa.Column('employee_number', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        _money('regular_hours', 6),
        _money('ot_morning_hours', 6),
        _money('ot_noon_hours', 6),
        _money('ot_evening_hours', 6),
        _money('total_ot_hours', 6),
        _money('hourly_rate'),
        _money('professional_rate'),
        _money('phone_allowance'),
        _money('regular_wages', 10),
        _money('ot_wages', 10),
        _money('additional_income', 10),
        _money('gross_income', 10),
        _money('accommodation_cost'),
        sa.Column('follower_count', sa.Integer(), nullable=True, server_default='0'),
        _money('follower_accommodation'),
        _money('refrigerator_cost'),
        _money('sound_system_cost'),
        _money('tv_cost'),
        _money('washing_machine_cost'),
        _money('portable_ac_cost'),
        _money('additional_expenses', 10),
        _money('total_expenses', 10),
        sa.Column('is_ss_exempt', sa.Boolean(), nullable=True, server_default='false'),
        _money('social_security'),
        _money('late_deduction'),
        _money('total_deductions', 10),
        _money('net_wage', 10),
        sa.ForeignKeyConstraint(['wage_period_id'], ['wage_periods.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['contractor_id'], ['daily_contractors.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wage_period_id', 'contractor_id', name='uq_wage_summary_worker'),
    )

    for table in ('additional_income', 'additional_expenses'):
        op.create_table(
            table,
            sa.Column('id', sa.Uuid(), nullable=False),
            sa.Column('wage_period_id', sa.Uuid(), nullable=False),
            sa.Column('contractor_id', sa.Uuid(), nullable=False),
            sa.Column('category', sa.String(length=50), nullable=True, server_default='other'),
            sa.Column('description', sa.String(length=255), nullable=True),
            sa.Column('amount', sa.Numeric(10, 2), nullable=False),
            sa.Column('created_by', sa.Uuid(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(['wage_period_id'], ['wage_periods.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['contractor_id'], ['daily_contractors.id']),
            sa.ForeignKeyConstraint(['created_by'], ['users.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    op.create_table(
        'late_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=False),
        sa.Column('contractor_id', sa.Uuid(), nullable=False),
        sa.Column('late_date', sa.Date(), nullable=False),
        sa.Column('scan_time', sa.DateTime(), nullable=False),
        sa.Column('expected_time', sa.Time(), nullable=True),
        sa.Column('late_minutes', sa.Integer(), nullable=False),
        _money('late_deduction'),
        sa.Column('included_in_wage_calculation', sa.Boolean(), nullable=True, server_default='false'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['contractor_id'], ['daily_contractors.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('contractor_id', 'late_date', name='uq_late_record'),
    )

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('project_id', sa.Uuid(), nullable=True),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('audit_log')
    op.drop_table('late_records')
    op.drop_table('additional_expenses')
    op.drop_table('additional_income')
    op.drop_table('dc_wage_summaries')
    op.drop_table('wage_periods')
    op.drop_index('ix_discrepancies_project_date', table_name='discrepancies')
    op.drop_table('discrepancies')
    op.drop_table('scan_import_batches')
    op.drop_index('ix_scan_events_batch', table_name='scan_events')
    op.drop_index('ix_scan_events_employee_date', table_name='scan_events')
    op.drop_table('scan_events')
    op.drop_index('ix_daily_reports_project_date', table_name='daily_reports')
    op.drop_index('ix_daily_reports_contractor_date', table_name='daily_reports')
    op.drop_table('daily_reports')
    op.drop_index('ix_expense_profiles_contractor_id', table_name='expense_profiles')
    op.drop_table('expense_profiles')
    op.drop_index('ix_income_profiles_contractor_id', table_name='income_profiles')
    op.drop_table('income_profiles')
    op.drop_table('daily_contractors')
    op.drop_table('users')
    op.drop_table('projects')
