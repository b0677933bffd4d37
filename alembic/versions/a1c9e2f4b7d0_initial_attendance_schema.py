"""initial attendance schema

Revision ID: a1c9e2f4b7d0
Revises:
Create Date: 2026-10-18 09:12:40.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c9e2f4b7d0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def base_columns():
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    ]


def tenant_column():
    return sa.Column('tenant_id', sa.Uuid(), sa.ForeignKey('tenants.id'), nullable=False, index=True)


def upgrade() -> None:
    op.create_table(
        'tenants',
        *base_columns(),
        sa.Column('code', sa.String(length=20), nullable=False, index=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('admin_email', sa.String(length=256), nullable=False),
        sa.Column('time_zone_id', sa.String(length=100), nullable=True),
        sa.UniqueConstraint('code', name='uq_tenant_code'),
        sa.CheckConstraint('length(code) = 8', name='ck_tenant_code_length'),
    )

    for table, length in (('cohorts', 100), ('sections', 100)):
        op.create_table(
            table,
            *base_columns(),
            tenant_column(),
            sa.Column('name', sa.String(length=length), nullable=False),
            sa.Column('name_key', sa.String(length=length), nullable=False),
            sa.UniqueConstraint('tenant_id', 'name_key', name=f'uq_{table[:-1]}_tenant_name'),
        )

    op.create_table(
        'subjects',
        *base_columns(),
        tenant_column(),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('code_key', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.UniqueConstraint('tenant_id', 'code_key', name='uq_subject_tenant_code'),
    )

    op.create_table(
        'users',
        *base_columns(),
        tenant_column(),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=256), nullable=False, unique=True, index=True),
        sa.Column('roll_number', sa.String(length=50), nullable=True),
        sa.Column('roll_number_key', sa.String(length=50), nullable=True),
        sa.Column('cohort_id', sa.Uuid(), sa.ForeignKey('cohorts.id'), nullable=True, index=True),
        sa.Column('section_id', sa.Uuid(), sa.ForeignKey('sections.id'), nullable=True, index=True),
        sa.UniqueConstraint('tenant_id', 'roll_number_key', name='uq_user_tenant_roll_number'),
    )

    op.create_table(
        'user_roles',
        *base_columns(),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('role', sa.Enum('ADMIN', 'TEACHER', 'STUDENT', name='role'), nullable=False),
        sa.UniqueConstraint('user_id', 'role', name='uq_user_role'),
    )

    op.create_table(
        'course_offerings',
        *base_columns(),
        tenant_column(),
        sa.Column('teacher_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('subject_id', sa.Uuid(), sa.ForeignKey('subjects.id'), nullable=False, index=True),
        sa.Column('cohort_id', sa.Uuid(), sa.ForeignKey('cohorts.id'), nullable=False, index=True),
        sa.Column('section_id', sa.Uuid(), sa.ForeignKey('sections.id'), nullable=False, index=True),
        sa.UniqueConstraint('tenant_id', 'subject_id', 'cohort_id', 'section_id', name='uq_offering_subject_cohort_section'),
    )

    op.create_table(
        'class_schedules',
        *base_columns(),
        tenant_column(),
        sa.Column('course_offering_id', sa.Uuid(), sa.ForeignKey('course_offerings.id'), nullable=False, index=True),
        sa.Column(
            'day_of_week',
            sa.Enum('MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY', 'SUNDAY', name='dayofweek'),
            nullable=False,
        ),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('grace_period_minutes', sa.Integer(), nullable=False),
        sa.CheckConstraint('end_time > start_time', name='ck_schedule_end_after_start'),
        sa.CheckConstraint('grace_period_minutes >= 0', name='ck_schedule_grace_non_negative'),
    )
    op.create_index('idx_schedule_offering_day', 'class_schedules', ['course_offering_id', 'day_of_week'])

    op.create_table(
        'student_enrollments',
        *base_columns(),
        tenant_column(),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('course_offering_id', sa.Uuid(), sa.ForeignKey('course_offerings.id'), nullable=False, index=True),
        sa.Column('enrolled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('enrollment_source', sa.String(length=10), nullable=False),
        sa.UniqueConstraint('student_id', 'course_offering_id', name='uq_enrollment_student_offering'),
    )

    op.create_table(
        'attendance_sessions',
        *base_columns(),
        tenant_column(),
        sa.Column('class_schedule_id', sa.Uuid(), sa.ForeignKey('class_schedules.id'), nullable=False, index=True),
        sa.Column('course_offering_id', sa.Uuid(), sa.ForeignKey('course_offerings.id'), nullable=False, index=True),
        sa.Column('marked_by_teacher_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('session_date', sa.Date(), nullable=False),
        sa.Column('marked_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('class_schedule_id', 'session_date', name='uq_attendance_session_schedule_date'),
    )

    op.create_table(
        'attendance_records',
        *base_columns(),
        tenant_column(),
        sa.Column('attendance_session_id', sa.Uuid(), sa.ForeignKey('attendance_sessions.id'), nullable=False, index=True),
        sa.Column('enrollment_id', sa.Uuid(), sa.ForeignKey('student_enrollments.id'), nullable=False, index=True),
        sa.Column('course_offering_id', sa.Uuid(), sa.ForeignKey('course_offerings.id'), nullable=False, index=True),
        sa.Column('class_schedule_id', sa.Uuid(), sa.ForeignKey('class_schedules.id'), nullable=False, index=True),
        sa.Column('marked_by_teacher_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('attendance_date', sa.Date(), nullable=False, index=True),
        sa.Column('status', sa.Enum('PRESENT', 'ABSENT', 'LEAVE', name='attendancestatus'), nullable=False),
        sa.Column('marked_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            'class_schedule_id', 'attendance_date', 'enrollment_id',
            name='uq_attendance_record_session_enrollment',
        ),
    )
    op.create_index('idx_attendance_offering_date', 'attendance_records', ['course_offering_id', 'attendance_date'])


def downgrade() -> None:
    op.drop_index('idx_attendance_offering_date', table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_table('attendance_sessions')
    op.drop_table('student_enrollments')
    op.drop_index('idx_schedule_offering_day', table_name='class_schedules')
    op.drop_table('class_schedules')
    op.drop_table('course_offerings')
    op.drop_table('user_roles')
    op.drop_table('users')
    op.drop_table('subjects')
    op.drop_table('sections')
    op.drop_table('cohorts')
    op.drop_table('tenants')
    sa.Enum(name='attendancestatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='dayofweek').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='role').drop(op.get_bind(), checkfirst=True)
