import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


RoleName = Literal['admin', 'teacher', 'parent']
StudentStatusName = Literal['active', 'inactive', 'transferred']
AttendanceStatusName = Literal['present', 'absent', 'late']
AssignmentStatusName = Literal['active', 'completed', 'cancelled']
SubmissionStatusName = Literal['pending', 'submitted', 'graded']
FeeFrequencyName = Literal['monthly', 'quarterly', 'annual']
PaymentMethodName = Literal['cash', 'card', 'online']
PaymentStatusName = Literal['pending', 'completed', 'failed']
NotificationTypeName = Literal['academic', 'fee', 'attendance', 'general']
NotificationRoleName = Literal['admin', 'teacher', 'parent', 'student']

EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
HHMM_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$'


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WriteModel(CamelModel):
    model_config = ConfigDict(extra='forbid')


class PatchModel(WriteModel):
    """Partial update payload. Omitted fields are left alone; `not_null` fields may not be sent as null."""

    not_null: ClassVar[tuple[str, ...]] = ()

    @field_validator('*')
    @classmethod
    def _reject_explicit_null(cls, value, info: ValidationInfo):
        if value is None and info.field_name in cls.not_null:
            raise ValueError(f'{to_camel(info.field_name)} cannot be null')
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class ReadModel(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    updated_at: datetime


# --- Users ---

class UserCreate(WriteModel):
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    first_name: str | None = Field(default=None, max_length=120)
    last_name: str | None = Field(default=None, max_length=120)
    profile_image_url: str | None = Field(default=None, max_length=500)
    role: RoleName = 'parent'


class UserUpdate(PatchModel):
    not_null = ('role',)

    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    first_name: str | None = Field(default=None, max_length=120)
    last_name: str | None = Field(default=None, max_length=120)
    profile_image_url: str | None = Field(default=None, max_length=500)
    role: RoleName | None = None


class UserOut(ReadModel):
    email: str | None
    first_name: str | None
    last_name: str | None
    profile_image_url: str | None
    role: str


# --- Teachers ---

class TeacherCreate(WriteModel):
    user_id: str = Field(min_length=1)
    employee_id: str = Field(min_length=1, max_length=40)
    subject: str = Field(min_length=1, max_length=120)
    years_experience: int = Field(ge=0, le=70)
    phone: str | None = Field(default=None, max_length=20)
    qualifications: str | None = None


class TeacherUpdate(PatchModel):
    not_null = ('user_id', 'employee_id', 'subject', 'years_experience')

    user_id: str | None = Field(default=None, min_length=1)
    employee_id: str | None = Field(default=None, min_length=1, max_length=40)
    subject: str | None = Field(default=None, min_length=1, max_length=120)
    years_experience: int | None = Field(default=None, ge=0, le=70)
    phone: str | None = Field(default=None, max_length=20)
    qualifications: str | None = None


class TeacherOut(ReadModel):
    user_id: str
    employee_id: str
    subject: str
    years_experience: int
    phone: str | None
    qualifications: str | None


# --- Classes ---

class ClassCreate(WriteModel):
    name: str = Field(min_length=1, max_length=120)
    grade: int = Field(ge=1, le=12)
    section: str = Field(min_length=1, max_length=10)
    teacher_id: str | None = None
    academic_year: str = Field(min_length=4, max_length=20)
    max_students: int = Field(default=30, ge=1, le=500)


class ClassUpdate(PatchModel):
    not_null = ('name', 'grade', 'section', 'academic_year', 'max_students')

    name: str | None = Field(default=None, min_length=1, max_length=120)
    grade: int | None = Field(default=None, ge=1, le=12)
    section: str | None = Field(default=None, min_length=1, max_length=10)
    teacher_id: str | None = None
    academic_year: str | None = Field(default=None, min_length=4, max_length=20)
    max_students: int | None = Field(default=None, ge=1, le=500)


class ClassOut(ReadModel):
    name: str
    grade: int
    section: str
    teacher_id: str | None
    academic_year: str
    max_students: int


# --- Students ---

class StudentCreate(WriteModel):
    student_id: str = Field(min_length=1, max_length=40)
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    date_of_birth: date
    class_id: str | None = None
    parent_id: str | None = None
    admission_date: date
    status: StudentStatusName = 'active'
    roll_number: int | None = Field(default=None, ge=1)


class StudentUpdate(PatchModel):
    not_null = ('student_id', 'first_name', 'last_name', 'date_of_birth', 'admission_date', 'status')

    student_id: str | None = Field(default=None, min_length=1, max_length=40)
    first_name: str | None = Field(default=None, min_length=1, max_length=120)
    last_name: str | None = Field(default=None, min_length=1, max_length=120)
    date_of_birth: date | None = None
    class_id: str | None = None
    parent_id: str | None = None
    admission_date: date | None = None
    status: StudentStatusName | None = None
    roll_number: int | None = Field(default=None, ge=1)


class StudentOut(ReadModel):
    student_id: str
    first_name: str
    last_name: str
    date_of_birth: date
    class_id: str | None
    parent_id: str | None
    admission_date: date
    status: str
    roll_number: int | None


# --- Attendance ---

class AttendanceCreate(WriteModel):
    student_id: str = Field(min_length=1)
    class_id: str = Field(min_length=1)
    date: dt.date
    status: AttendanceStatusName
    marked_by: str | None = None


class AttendanceUpdate(PatchModel):
    not_null = ('student_id', 'class_id', 'date', 'status')

    student_id: str | None = Field(default=None, min_length=1)
    class_id: str | None = Field(default=None, min_length=1)
    date: dt.date | None = None
    status: AttendanceStatusName | None = None
    marked_by: str | None = None


class AttendanceOut(ReadModel):
    student_id: str
    class_id: str
    date: dt.date
    status: str
    marked_by: str | None


# --- Assignments ---

class AssignmentCreate(WriteModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    class_id: str = Field(min_length=1)
    teacher_id: str = Field(min_length=1)
    subject: str = Field(min_length=1, max_length=120)
    due_date: date
    max_marks: int = Field(ge=1, le=1000)
    status: AssignmentStatusName = 'active'


class AssignmentUpdate(PatchModel):
    not_null = ('title', 'class_id', 'teacher_id', 'subject', 'due_date', 'max_marks', 'status')

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    class_id: str | None = Field(default=None, min_length=1)
    teacher_id: str | None = Field(default=None, min_length=1)
    subject: str | None = Field(default=None, min_length=1, max_length=120)
    due_date: date | None = None
    max_marks: int | None = Field(default=None, ge=1, le=1000)
    status: AssignmentStatusName | None = None


class AssignmentOut(ReadModel):
    title: str
    description: str | None
    class_id: str
    teacher_id: str
    subject: str
    due_date: date
    max_marks: int
    status: str


class SubmissionCreate(WriteModel):
    student_id: str = Field(min_length=1)
    submission_text: str | None = None


class SubmissionUpdate(PatchModel):
    not_null = ('status',)

    submission_text: str | None = None
    marks_obtained: int | None = Field(default=None, ge=0)
    feedback: str | None = None
    status: SubmissionStatusName | None = None


class SubmissionOut(ReadModel):
    assignment_id: str
    student_id: str
    submission_text: str | None
    marks_obtained: int | None
    feedback: str | None
    submitted_at: datetime | None
    graded_at: datetime | None
    status: str


# --- Fees ---

class FeeStructureCreate(WriteModel):
    class_id: str = Field(min_length=1)
    fee_type: str = Field(min_length=1, max_length=60)
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    frequency: FeeFrequencyName
    academic_year: str = Field(min_length=4, max_length=20)


class FeeStructureUpdate(PatchModel):
    not_null = ('class_id', 'fee_type', 'amount', 'frequency', 'academic_year')

    class_id: str | None = Field(default=None, min_length=1)
    fee_type: str | None = Field(default=None, min_length=1, max_length=60)
    amount: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    frequency: FeeFrequencyName | None = None
    academic_year: str | None = Field(default=None, min_length=4, max_length=20)


class FeeStructureOut(ReadModel):
    class_id: str
    fee_type: str
    amount: Decimal
    frequency: str
    academic_year: str


class FeePaymentCreate(WriteModel):
    student_id: str = Field(min_length=1)
    fee_structure_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    payment_date: date
    payment_method: PaymentMethodName
    status: PaymentStatusName = 'completed'
    receipt_number: str | None = Field(default=None, min_length=1, max_length=60)


class FeePaymentUpdate(PatchModel):
    not_null = ('student_id', 'fee_structure_id', 'amount', 'payment_date', 'payment_method', 'status', 'receipt_number')

    student_id: str | None = Field(default=None, min_length=1)
    fee_structure_id: str | None = Field(default=None, min_length=1)
    amount: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    payment_date: date | None = None
    payment_method: PaymentMethodName | None = None
    status: PaymentStatusName | None = None
    receipt_number: str | None = Field(default=None, min_length=1, max_length=60)


class FeePaymentOut(ReadModel):
    student_id: str
    fee_structure_id: str
    amount: Decimal
    payment_date: date
    payment_method: str
    status: str
    receipt_number: str


# --- Notifications ---

class NotificationCreate(WriteModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    recipient_id: str | None = None
    recipient_role: NotificationRoleName | None = None
    type: NotificationTypeName
    is_read: bool = False


class NotificationUpdate(PatchModel):
    not_null = ('title', 'message', 'type', 'is_read')

    title: str | None = Field(default=None, min_length=1, max_length=200)
    message: str | None = Field(default=None, min_length=1)
    recipient_id: str | None = None
    recipient_role: NotificationRoleName | None = None
    type: NotificationTypeName | None = None
    is_read: bool | None = None


class NotificationOut(ReadModel):
    title: str
    message: str
    recipient_id: str | None
    recipient_role: str | None
    type: str
    is_read: bool


# --- Timetable ---

class TimetableCreate(WriteModel):
    class_id: str = Field(min_length=1)
    teacher_id: str = Field(min_length=1)
    subject: str = Field(min_length=1, max_length=120)
    day_of_week: int = Field(ge=1, le=7)
    start_time: str = Field(pattern=HHMM_PATTERN)
    end_time: str = Field(pattern=HHMM_PATTERN)
    room: str | None = Field(default=None, max_length=40)
    academic_year: str = Field(min_length=4, max_length=20)

    @field_validator('end_time')
    @classmethod
    def _end_after_start(cls, value: str, info: ValidationInfo):
        start_time = info.data.get('start_time')
        if start_time is not None and value <= start_time:
            raise ValueError('endTime must be later than startTime')
        return value


class TimetableUpdate(PatchModel):
    not_null = ('class_id', 'teacher_id', 'subject', 'day_of_week', 'start_time', 'end_time', 'academic_year')

    class_id: str | None = Field(default=None, min_length=1)
    teacher_id: str | None = Field(default=None, min_length=1)
    subject: str | None = Field(default=None, min_length=1, max_length=120)
    day_of_week: int | None = Field(default=None, ge=1, le=7)
    start_time: str | None = Field(default=None, pattern=HHMM_PATTERN)
    end_time: str | None = Field(default=None, pattern=HHMM_PATTERN)
    room: str | None = Field(default=None, max_length=40)
    academic_year: str | None = Field(default=None, min_length=4, max_length=20)


class TimetableOut(ReadModel):
    class_id: str
    teacher_id: str
    subject: str
    day_of_week: int
    start_time: str
    end_time: str
    room: str | None
    academic_year: str


# --- Dashboard ---

class DashboardStats(CamelModel):
    total_students: int
    total_teachers: int
    active_classes: int
    total_fee_collection: Decimal
