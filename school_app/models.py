import datetime as dt
import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_app.core.time_provider import utc_now
from school_app.db import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Role(str, Enum):
    ADMIN = 'admin'
    TEACHER = 'teacher'
    PARENT = 'parent'


class StudentStatus(str, Enum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    TRANSFERRED = 'transferred'


class AttendanceStatus(str, Enum):
    PRESENT = 'present'
    ABSENT = 'absent'
    LATE = 'late'


class AssignmentStatus(str, Enum):
    ACTIVE = 'active'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class SubmissionStatus(str, Enum):
    PENDING = 'pending'
    SUBMITTED = 'submitted'
    GRADED = 'graded'


class FeeFrequency(str, Enum):
    MONTHLY = 'monthly'
    QUARTERLY = 'quarterly'
    ANNUAL = 'annual'


class PaymentMethod(str, Enum):
    CASH = 'cash'
    CARD = 'card'
    ONLINE = 'online'


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'


class NotificationType(str, Enum):
    ACADEMIC = 'academic'
    FEE = 'fee'
    ATTENDANCE = 'attendance'
    GENERAL = 'general'


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)


class User(TimestampMixin, Base):
    __tablename__ = 'users'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=Role.PARENT.value, index=True)

    teacher_profiles: Mapped[list['Teacher']] = relationship('Teacher', back_populates='user', passive_deletes=True)
    children: Mapped[list['Student']] = relationship('Student', back_populates='parent', passive_deletes=True)
    notifications: Mapped[list['Notification']] = relationship('Notification', back_populates='recipient', passive_deletes=True)


class Teacher(TimestampMixin, Base):
    __tablename__ = 'teachers'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey('users.id'), index=True)
    employee_id: Mapped[str] = mapped_column(String(40), unique=True, index=True)
    subject: Mapped[str] = mapped_column(String(120))
    years_experience: Mapped[int] = mapped_column(Integer, default=0)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    qualifications: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped['User'] = relationship('User', back_populates='teacher_profiles')
    classes: Mapped[list['SchoolClass']] = relationship('SchoolClass', back_populates='teacher', passive_deletes=True)
    assignments: Mapped[list['Assignment']] = relationship('Assignment', back_populates='teacher', passive_deletes=True)
    timetable_entries: Mapped[list['TimetableEntry']] = relationship('TimetableEntry', back_populates='teacher', passive_deletes=True)


class SchoolClass(TimestampMixin, Base):
    __tablename__ = 'classes'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(120), index=True)
    grade: Mapped[int] = mapped_column(Integer)
    section: Mapped[str] = mapped_column(String(10))
    teacher_id: Mapped[str | None] = mapped_column(ForeignKey('teachers.id', ondelete='SET NULL'), nullable=True, index=True)
    academic_year: Mapped[str] = mapped_column(String(20), index=True)
    max_students: Mapped[int] = mapped_column(Integer, default=30)

    teacher: Mapped['Teacher | None'] = relationship('Teacher', back_populates='classes')
    students: Mapped[list['Student']] = relationship('Student', back_populates='school_class', passive_deletes=True)
    attendance: Mapped[list['Attendance']] = relationship('Attendance', back_populates='school_class', passive_deletes=True)
    fee_structures: Mapped[list['FeeStructure']] = relationship('FeeStructure', back_populates='school_class', passive_deletes=True)
    assignments: Mapped[list['Assignment']] = relationship('Assignment', back_populates='school_class', passive_deletes=True)
    timetable_entries: Mapped[list['TimetableEntry']] = relationship('TimetableEntry', back_populates='school_class', passive_deletes=True)


class Student(TimestampMixin, Base):
    __tablename__ = 'students'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    student_id: Mapped[str] = mapped_column(String(40), unique=True, index=True)
    first_name: Mapped[str] = mapped_column(String(120))
    last_name: Mapped[str] = mapped_column(String(120))
    date_of_birth: Mapped[date] = mapped_column(Date)
    class_id: Mapped[str | None] = mapped_column(ForeignKey('classes.id', ondelete='SET NULL'), nullable=True, index=True)
    parent_id: Mapped[str | None] = mapped_column(ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    admission_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default=StudentStatus.ACTIVE.value, index=True)
    roll_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    school_class: Mapped['SchoolClass | None'] = relationship('SchoolClass', back_populates='students')
    parent: Mapped['User | None'] = relationship('User', back_populates='children')
    attendance: Mapped[list['Attendance']] = relationship('Attendance', back_populates='student', passive_deletes=True)
    fee_payments: Mapped[list['FeePayment']] = relationship('FeePayment', back_populates='student', passive_deletes=True)
    submissions: Mapped[list['AssignmentSubmission']] = relationship('AssignmentSubmission', back_populates='student', passive_deletes=True)


class Attendance(TimestampMixin, Base):
    __tablename__ = 'attendance'
    __table_args__ = (
        UniqueConstraint('student_id', 'date', name='uq_attendance_student_date'),
        Index('ix_attendance_class_date', 'class_id', 'date'),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    student_id: Mapped[str] = mapped_column(ForeignKey('students.id'), index=True)
    class_id: Mapped[str] = mapped_column(ForeignKey('classes.id'), index=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    status: Mapped[str] = mapped_column(String(20))
    marked_by: Mapped[str | None] = mapped_column(ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)

    student: Mapped['Student'] = relationship('Student', back_populates='attendance')
    school_class: Mapped['SchoolClass'] = relationship('SchoolClass', back_populates='attendance')


class Assignment(TimestampMixin, Base):
    __tablename__ = 'assignments'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    class_id: Mapped[str] = mapped_column(ForeignKey('classes.id'), index=True)
    teacher_id: Mapped[str] = mapped_column(ForeignKey('teachers.id'), index=True)
    subject: Mapped[str] = mapped_column(String(120))
    due_date: Mapped[date] = mapped_column(Date, index=True)
    max_marks: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default=AssignmentStatus.ACTIVE.value, index=True)

    school_class: Mapped['SchoolClass'] = relationship('SchoolClass', back_populates='assignments')
    teacher: Mapped['Teacher'] = relationship('Teacher', back_populates='assignments')
    submissions: Mapped[list['AssignmentSubmission']] = relationship('AssignmentSubmission', back_populates='assignment', passive_deletes=True)


class AssignmentSubmission(TimestampMixin, Base):
    __tablename__ = 'assignment_submissions'
    __table_args__ = (
        UniqueConstraint('assignment_id', 'student_id', name='uq_submission_assignment_student'),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    assignment_id: Mapped[str] = mapped_column(ForeignKey('assignments.id'), index=True)
    student_id: Mapped[str] = mapped_column(ForeignKey('students.id'), index=True)
    submission_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    marks_obtained: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    graded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=SubmissionStatus.PENDING.value, index=True)

    assignment: Mapped['Assignment'] = relationship('Assignment', back_populates='submissions')
    student: Mapped['Student'] = relationship('Student', back_populates='submissions')


class FeeStructure(TimestampMixin, Base):
    __tablename__ = 'fee_structure'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    class_id: Mapped[str] = mapped_column(ForeignKey('classes.id'), index=True)
    fee_type: Mapped[str] = mapped_column(String(60))
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    frequency: Mapped[str] = mapped_column(String(20))
    academic_year: Mapped[str] = mapped_column(String(20), index=True)

    school_class: Mapped['SchoolClass'] = relationship('SchoolClass', back_populates='fee_structures')
    payments: Mapped[list['FeePayment']] = relationship('FeePayment', back_populates='fee_structure', passive_deletes=True)


class FeePayment(TimestampMixin, Base):
    __tablename__ = 'fee_payments'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    student_id: Mapped[str] = mapped_column(ForeignKey('students.id'), index=True)
    fee_structure_id: Mapped[str] = mapped_column(ForeignKey('fee_structure.id'), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    payment_date: Mapped[date] = mapped_column(Date, index=True)
    payment_method: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.COMPLETED.value, index=True)
    receipt_number: Mapped[str] = mapped_column(String(60), unique=True, index=True)

    student: Mapped['Student'] = relationship('Student', back_populates='fee_payments')
    fee_structure: Mapped['FeeStructure'] = relationship('FeeStructure', back_populates='payments')


class Notification(TimestampMixin, Base):
    __tablename__ = 'notifications'
    __table_args__ = (
        Index('ix_notifications_recipient_id_role', 'recipient_id', 'recipient_role'),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    recipient_id: Mapped[str | None] = mapped_column(ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    recipient_role: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(20))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)

    recipient: Mapped['User | None'] = relationship('User', back_populates='notifications')


class TimetableEntry(TimestampMixin, Base):
    __tablename__ = 'timetable'
    __table_args__ = (
        Index('ix_timetable_class_day_start', 'class_id', 'day_of_week', 'start_time'),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    class_id: Mapped[str] = mapped_column(ForeignKey('classes.id'), index=True)
    teacher_id: Mapped[str] = mapped_column(ForeignKey('teachers.id'), index=True)
    subject: Mapped[str] = mapped_column(String(120))
    day_of_week: Mapped[int] = mapped_column(Integer)
    start_time: Mapped[str] = mapped_column(String(5))
    end_time: Mapped[str] = mapped_column(String(5))
    room: Mapped[str | None] = mapped_column(String(40), nullable=True)
    academic_year: Mapped[str] = mapped_column(String(20), index=True)

    school_class: Mapped['SchoolClass'] = relationship('SchoolClass', back_populates='timetable_entries')
    teacher: Mapped['Teacher'] = relationship('Teacher', back_populates='timetable_entries')
