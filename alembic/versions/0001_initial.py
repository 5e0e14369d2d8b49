"""Initial schema: employees, mobile numbers, verification campaigns, jobs.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-16

Creates:
- employees, employee_id_sequences
- mobile_numbers, number_usage_history, number_applicant_history
- verification_batch_tasks, verification_tokens
- user_reported_issues, verification_submission_logs
- jobs, revoked_tokens
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]
    if updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False)
        )
    return columns


def upgrade() -> None:
    # ==========================================================================
    # employees
    # ==========================================================================
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.String(10), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('department', sa.String(255), nullable=True),
        sa.Column('employment_status', sa.String(20), server_default=sa.text("'Active'"), nullable=False),
        sa.Column('hire_date', sa.Date(), nullable=True),
        sa.Column('termination_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_employees'),
        sa.UniqueConstraint('employee_id', name='uq_employees_employee_id'),
    )
    op.create_index('ix_employees_full_name', 'employees', ['full_name'])
    op.create_index('idx_employees_department_status', 'employees', ['department', 'employment_status'])
    op.create_index(
        'uq_employees_email_active',
        'employees',
        ['email'],
        unique=True,
        postgresql_where=sa.text('email IS NOT NULL AND deleted_at IS NULL'),
        sqlite_where=sa.text('email IS NOT NULL AND deleted_at IS NULL'),
    )

    op.create_table(
        'employee_id_sequences',
        sa.Column('prefix', sa.String(10), nullable=False),
        sa.Column('next_value', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('prefix', name='pk_employee_id_sequences'),
    )

    # ==========================================================================
    # mobile_numbers + history trails
    # ==========================================================================
    op.create_table(
        'mobile_numbers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=False),
        sa.Column('applicant_employee_id', sa.String(10), nullable=False),
        sa.Column('application_date', sa.Date(), nullable=False),
        sa.Column('current_employee_id', sa.String(10), nullable=True),
        sa.Column('status', sa.String(30), server_default=sa.text("'idle'"), nullable=False),
        sa.Column('purpose', sa.String(255), nullable=True),
        sa.Column('vendor', sa.String(100), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('cancellation_date', sa.Date(), nullable=True),
        sa.Column('last_confirmation_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_mobile_numbers'),
        sa.UniqueConstraint('phone_number', name='uq_mobile_numbers_phone_number'),
        sa.ForeignKeyConstraint(
            ['applicant_employee_id'], ['employees.employee_id'],
            name='fk_mobile_numbers_applicant_employee_id_employees',
        ),
        sa.ForeignKeyConstraint(
            ['current_employee_id'], ['employees.employee_id'],
            name='fk_mobile_numbers_current_employee_id_employees',
        ),
    )
    op.create_index('idx_mobile_numbers_status', 'mobile_numbers', ['status'])
    op.create_index('idx_mobile_numbers_applicant', 'mobile_numbers', ['applicant_employee_id'])
    op.create_index('idx_mobile_numbers_current', 'mobile_numbers', ['current_employee_id'])

    op.create_table(
        'number_usage_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('mobile_number_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.String(10), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('purpose', sa.String(255), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id', name='pk_number_usage_history'),
        sa.ForeignKeyConstraint(
            ['mobile_number_id'], ['mobile_numbers.id'],
            name='fk_number_usage_history_mobile_number_id_mobile_numbers',
        ),
        sa.ForeignKeyConstraint(
            ['employee_id'], ['employees.employee_id'],
            name='fk_number_usage_history_employee_id_employees',
        ),
    )
    op.create_index('idx_usage_history_number', 'number_usage_history', ['mobile_number_id', 'start_date'])
    # At most one open possession interval per number
    op.create_index(
        'uq_usage_history_open_interval',
        'number_usage_history',
        ['mobile_number_id'],
        unique=True,
        postgresql_where=sa.text('end_date IS NULL'),
        sqlite_where=sa.text('end_date IS NULL'),
    )

    op.create_table(
        'number_applicant_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('mobile_number_id', sa.Integer(), nullable=False),
        sa.Column('previous_applicant_employee_id', sa.String(10), nullable=False),
        sa.Column('new_applicant_employee_id', sa.String(10), nullable=False),
        sa.Column('change_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('operator_employee_id', sa.String(10), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_number_applicant_history'),
        sa.ForeignKeyConstraint(
            ['mobile_number_id'], ['mobile_numbers.id'],
            name='fk_number_applicant_history_mobile_number_id_mobile_numbers',
        ),
    )
    op.create_index('idx_applicant_history_number', 'number_applicant_history', ['mobile_number_id', 'change_date'])

    # ==========================================================================
    # verification campaigns
    # ==========================================================================
    op.create_table(
        'verification_batch_tasks',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('status', sa.String(30), server_default=sa.text("'Pending'"), nullable=False),
        sa.Column('requested_scope_type', sa.String(30), nullable=False),
        sa.Column('requested_scope_values', JSON_TYPE, nullable=False),
        sa.Column('requested_duration_days', sa.Integer(), nullable=False),
        sa.Column('total_employees_to_process', sa.Integer(), nullable=False),
        sa.Column('tokens_generated_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('emails_attempted_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('emails_succeeded_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('emails_failed_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('error_summary', JSON_TYPE, nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_verification_batch_tasks'),
    )
    op.create_index('idx_batch_tasks_status_created', 'verification_batch_tasks', ['status', 'created_at'])

    op.create_table(
        'verification_tokens',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('employee_id', sa.String(10), nullable=False),
        sa.Column('batch_task_id', sa.String(36), nullable=True),
        sa.Column('status', sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id', name='pk_verification_tokens'),
        sa.UniqueConstraint('token', name='uq_verification_tokens_token'),
        sa.UniqueConstraint('batch_task_id', 'employee_id', name='uq_verification_token_batch_employee'),
        sa.ForeignKeyConstraint(
            ['employee_id'], ['employees.employee_id'],
            name='fk_verification_tokens_employee_id_employees',
        ),
        sa.ForeignKeyConstraint(
            ['batch_task_id'], ['verification_batch_tasks.id'],
            name='fk_verification_tokens_batch_task_id_verification_batch_tasks',
        ),
    )
    op.create_index('idx_verification_tokens_employee_status', 'verification_tokens', ['employee_id', 'status'])

    op.create_table(
        'user_reported_issues',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('verification_token_id', sa.Integer(), nullable=True),
        sa.Column('reported_by_employee_id', sa.String(10), nullable=False),
        sa.Column('mobile_number_id', sa.Integer(), nullable=True),
        sa.Column('reported_phone_number', sa.String(20), nullable=True),
        sa.Column('issue_type', sa.String(30), nullable=False),
        sa.Column('user_comment', sa.Text(), nullable=True),
        sa.Column('purpose', sa.String(255), nullable=True),
        sa.Column('original_number_status', sa.String(30), nullable=True),
        sa.Column('admin_action_status', sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('admin_remarks', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_user_reported_issues'),
        sa.ForeignKeyConstraint(
            ['verification_token_id'], ['verification_tokens.id'],
            name='fk_user_reported_issues_verification_token_id_verification_tokens',
        ),
        sa.ForeignKeyConstraint(
            ['reported_by_employee_id'], ['employees.employee_id'],
            name='fk_user_reported_issues_reported_by_employee_id_employees',
        ),
        sa.ForeignKeyConstraint(
            ['mobile_number_id'], ['mobile_numbers.id'],
            name='fk_user_reported_issues_mobile_number_id_mobile_numbers',
        ),
    )
    # One pending issue per (employee, number) and per (employee, reported phone)
    op.create_index(
        'uq_reported_issue_pending_number',
        'user_reported_issues',
        ['reported_by_employee_id', 'mobile_number_id'],
        unique=True,
        postgresql_where=sa.text("admin_action_status = 'pending' AND mobile_number_id IS NOT NULL"),
        sqlite_where=sa.text("admin_action_status = 'pending' AND mobile_number_id IS NOT NULL"),
    )
    op.create_index(
        'uq_reported_issue_pending_phone',
        'user_reported_issues',
        ['reported_by_employee_id', 'reported_phone_number'],
        unique=True,
        postgresql_where=sa.text("admin_action_status = 'pending' AND reported_phone_number IS NOT NULL"),
        sqlite_where=sa.text("admin_action_status = 'pending' AND reported_phone_number IS NOT NULL"),
    )
    op.create_index('idx_reported_issues_status', 'user_reported_issues', ['admin_action_status', 'created_at'])

    op.create_table(
        'verification_submission_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.String(10), nullable=False),
        sa.Column('verification_token_id', sa.Integer(), nullable=False),
        sa.Column('mobile_number_id', sa.Integer(), nullable=True),
        sa.Column('phone_number', sa.String(20), nullable=False),
        sa.Column('action_type', sa.String(30), nullable=False),
        sa.Column('purpose', sa.String(255), nullable=True),
        sa.Column('user_comment', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id', name='pk_verification_submission_logs'),
        sa.ForeignKeyConstraint(
            ['employee_id'], ['employees.employee_id'],
            name='fk_verification_submission_logs_employee_id_employees',
        ),
        sa.ForeignKeyConstraint(
            ['verification_token_id'], ['verification_tokens.id'],
            name='fk_verification_submission_logs_verification_token_id_verification_tokens',
        ),
        sa.ForeignKeyConstraint(
            ['mobile_number_id'], ['mobile_numbers.id'],
            name='fk_verification_submission_logs_mobile_number_id_mobile_numbers',
        ),
    )
    op.create_index('idx_submission_logs_number_created', 'verification_submission_logs', ['mobile_number_id', 'created_at'])
    op.create_index('idx_submission_logs_token', 'verification_submission_logs', ['verification_token_id'])
    op.create_index('idx_submission_logs_employee', 'verification_submission_logs', ['employee_id'])
    op.create_index('idx_submission_logs_action', 'verification_submission_logs', ['action_type'])

    # ==========================================================================
    # jobs + revoked_tokens
    # ==========================================================================
    op.create_table(
        'jobs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('job_type', sa.String(50), nullable=False),
        sa.Column('payload', JSON_TYPE, nullable=False),
        sa.Column('run_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('attempts', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('max_attempts', sa.Integer(), server_default=sa.text('3'), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('idempotency_key', sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_jobs'),
    )
    op.create_index(
        'idx_jobs_pending', 'jobs', ['status', 'run_at'],
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index('idx_jobs_type_created', 'jobs', ['job_type', 'created_at'])
    op.create_index(
        'uq_job_idempotency', 'jobs', ['idempotency_key'],
        unique=True,
        postgresql_where=sa.text('idempotency_key IS NOT NULL'),
        sqlite_where=sa.text('idempotency_key IS NOT NULL'),
    )

    op.create_table(
        'revoked_tokens',
        sa.Column('jti', sa.String(64), nullable=False),
        sa.Column('subject', sa.String(64), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('jti', name='pk_revoked_tokens'),
    )
    op.create_index('ix_revoked_tokens_expires_at', 'revoked_tokens', ['expires_at'])


def downgrade() -> None:
    op.drop_table('revoked_tokens')
    op.drop_table('jobs')
    op.drop_table('verification_submission_logs')
    op.drop_table('user_reported_issues')
    op.drop_table('verification_tokens')
    op.drop_table('verification_batch_tasks')
    op.drop_table('number_applicant_history')
    op.drop_table('number_usage_history')
    op.drop_table('mobile_numbers')
    op.drop_table('employee_id_sequences')
    op.drop_table('employees')
