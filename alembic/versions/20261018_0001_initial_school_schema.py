"""initial school schema

Revision ID: 20261018_0001
Revises: 
Create Date: 2026-10-18 00:01:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261018_0001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _indexes(table: str, columns: list[str]) -> None:
    for column in columns:
        op.create_index(f'ix_{table}_{column}', table, [column])


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=120), nullable=True),
        sa.Column('last_name', sa.String(length=120), nullable=True),
        sa.Column('profile_image_url', sa.String(length=500), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='parent'),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    _indexes('users', ['role', 'created_at'])

    op.create_table(
        'teachers',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('employee_id', sa.String(length=40), nullable=False),
        sa.Column('subject', sa.String(length=120), nullable=False),
        sa.Column('years_experience', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('qualifications', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_teachers_employee_id', 'teachers', ['employee_id'], unique=True)
    _indexes('teachers', ['user_id', 'created_at'])

    op.create_table(
        'classes',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('grade', sa.Integer(), nullable=False),
        sa.Column('section', sa.String(length=10), nullable=False),
        sa.Column('teacher_id', sa.String(length=36), sa.ForeignKey('teachers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('academic_year', sa.String(length=20), nullable=False),
        sa.Column('max_students', sa.Integer(), nullable=False, server_default='30'),
        *_timestamps(),
    )
    _indexes('classes', ['name', 'teacher_id', 'academic_year', 'created_at'])

    op.create_table(
        'students',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('student_id', sa.String(length=40), nullable=False),
        sa.Column('first_name', sa.String(length=120), nullable=False),
        sa.Column('last_name', sa.String(length=120), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('class_id', sa.String(length=36), sa.ForeignKey('classes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('parent_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('admission_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('roll_number', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_students_student_id', 'students', ['student_id'], unique=True)
    _indexes('students', ['class_id', 'parent_id', 'status', 'created_at'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('student_id', sa.String(length=36), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('class_id', sa.String(length=36), sa.ForeignKey('classes.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('marked_by', sa.String(length=36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('student_id', 'date', name='uq_attendance_student_date'),
    )
    op.create_index('ix_attendance_class_date', 'attendance', ['class_id', 'date'])
    _indexes('attendance', ['student_id', 'class_id', 'date', 'marked_by', 'created_at'])

    op.create_table(
        'assignments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('class_id', sa.String(length=36), sa.ForeignKey('classes.id'), nullable=False),
        sa.Column('teacher_id', sa.String(length=36), sa.ForeignKey('teachers.id'), nullable=False),
        sa.Column('subject', sa.String(length=120), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('max_marks', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        *_timestamps(),
    )
    _indexes('assignments', ['class_id', 'teacher_id', 'due_date', 'status', 'created_at'])

    op.create_table(
        'assignment_submissions',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('assignment_id', sa.String(length=36), sa.ForeignKey('assignments.id'), nullable=False),
        sa.Column('student_id', sa.String(length=36), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('submission_text', sa.Text(), nullable=True),
        sa.Column('marks_obtained', sa.Integer(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('graded_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        *_timestamps(),
        sa.UniqueConstraint('assignment_id', 'student_id', name='uq_submission_assignment_student'),
    )
    _indexes('assignment_submissions', ['assignment_id', 'student_id', 'status', 'created_at'])

    op.create_table(
        'fee_structure',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('class_id', sa.String(length=36), sa.ForeignKey('classes.id'), nullable=False),
        sa.Column('fee_type', sa.String(length=60), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('frequency', sa.String(length=20), nullable=False),
        sa.Column('academic_year', sa.String(length=20), nullable=False),
        *_timestamps(),
    )
    _indexes('fee_structure', ['class_id', 'academic_year', 'created_at'])

    op.create_table(
        'fee_payments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('student_id', sa.String(length=36), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('fee_structure_id', sa.String(length=36), sa.ForeignKey('fee_structure.id'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='completed'),
        sa.Column('receipt_number', sa.String(length=60), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_fee_payments_receipt_number', 'fee_payments', ['receipt_number'], unique=True)
    _indexes('fee_payments', ['student_id', 'fee_structure_id', 'payment_date', 'status', 'created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('recipient_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('recipient_role', sa.String(length=20), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_notifications_recipient_id_role', 'notifications', ['recipient_id', 'recipient_role'])
    _indexes('notifications', ['recipient_id', 'recipient_role', 'created_at'])

    op.create_table(
        'timetable',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('class_id', sa.String(length=36), sa.ForeignKey('classes.id'), nullable=False),
        sa.Column('teacher_id', sa.String(length=36), sa.ForeignKey('teachers.id'), nullable=False),
        sa.Column('subject', sa.String(length=120), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('room', sa.String(length=40), nullable=True),
        sa.Column('academic_year', sa.String(length=20), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_timetable_class_day_start', 'timetable', ['class_id', 'day_of_week', 'start_time'])
    _indexes('timetable', ['class_id', 'teacher_id', 'academic_year', 'created_at'])


def downgrade() -> None:
    for table in (
        'timetable',
        'notifications',
        'fee_payments',
        'fee_structure',
        'assignment_submissions',
        'assignments',
        'attendance',
        'students',
        'classes',
        'teachers',
        'users',
    ):
        op.drop_table(table)
