"""Storage access layer.

`SchoolStorage` wraps one SQLAlchemy session and exposes one primitive per
entity per operation. Routers receive an instance through `get_storage`, so
every request (and every test) works against its own session.

Write rules shared by every entity:

* foreign keys are checked before the write and reported as
  `InvalidReferenceError` naming the offending field;
* unique business keys are checked before the write and reported as
  `DuplicateRecordError`;
* updates merge the supplied fields into the stored row and always refresh
  `updated_at`;
* deletes of an unknown id are a no-op. Nullable references to the deleted
  row are cleared, required references block the delete with
  `RecordInUseError`.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Any

from fastapi import Depends
from sqlalchemy import and_, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from school_app.config import settings
from school_app.core.time_provider import TimeProvider, default_time_provider
from school_app.db import Base, get_db
from school_app.models import (
    Assignment,
    AssignmentSubmission,
    Attendance,
    FeePayment,
    FeeStructure,
    Notification,
    PaymentStatus,
    SchoolClass,
    Student,
    StudentStatus,
    SubmissionStatus,
    Teacher,
    TimetableEntry,
    User,
)


logger = logging.getLogger(__name__)

MONEY_QUANTUM = Decimal('0.01')


class RecordNotFoundError(LookupError):
    def __init__(self, entity: str, record_id: str):
        super().__init__(f'{entity} not found')
        self.entity = entity
        self.record_id = record_id


class InvalidFieldError(ValueError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class InvalidReferenceError(InvalidFieldError):
    """Raised when a foreign key field points at a row that does not exist."""


class ConflictError(RuntimeError):
    pass


class DuplicateRecordError(ConflictError):
    pass


class RecordInUseError(ConflictError):
    pass


class ClassFullError(ConflictError):
    pass


ENTITY_NAMES: dict[type, str] = {
    User: 'User',
    Teacher: 'Teacher',
    SchoolClass: 'Class',
    Student: 'Student',
    Attendance: 'Attendance',
    Assignment: 'Assignment',
    AssignmentSubmission: 'Submission',
    FeeStructure: 'Fee structure',
    FeePayment: 'Fee payment',
    Notification: 'Notification',
    TimetableEntry: 'Timetable entry',
}

REFERENCES: dict[type, dict[str, type]] = {
    Teacher: {'user_id': User},
    SchoolClass: {'teacher_id': Teacher},
    Student: {'class_id': SchoolClass, 'parent_id': User},
    Attendance: {'student_id': Student, 'class_id': SchoolClass, 'marked_by': User},
    Assignment: {'class_id': SchoolClass, 'teacher_id': Teacher},
    AssignmentSubmission: {'assignment_id': Assignment, 'student_id': Student},
    FeeStructure: {'class_id': SchoolClass},
    FeePayment: {'student_id': Student, 'fee_structure_id': FeeStructure},
    Notification: {'recipient_id': User},
    TimetableEntry: {'class_id': SchoolClass, 'teacher_id': Teacher},
}

UNIQUE_FIELDS: dict[type, tuple[str, ...]] = {
    User: ('email',),
    Teacher: ('employee_id',),
    Student: ('student_id',),
    FeePayment: ('receipt_number',),
}


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


def _dependents(model: type) -> list[tuple[type, str, bool]]:
    rows = []
    for dependent, refs in REFERENCES.items():
        for column, target in refs.items():
            if target is model:
                rows.append((dependent, column, bool(dependent.__table__.c[column].nullable)))
    return rows


def to_money(value: Any) -> Decimal:
    if value is None:
        return Decimal('0.00')
    return Decimal(str(value)).quantize(MONEY_QUANTUM)


class SchoolStorage:
    def __init__(self, db: Session, *, time_provider: TimeProvider = default_time_provider):
        self.db = db
        self.time_provider = time_provider

    # --- generic primitives ---

    def _list(self, model: type, *criteria, order_by=None) -> list:
        query = self.db.query(model)
        if criteria:
            query = query.filter(*criteria)
        if order_by is None:
            order_by = (model.created_at.desc(),)
        return query.order_by(*order_by).all()

    def _get(self, model: type, record_id: str):
        if not record_id:
            return None
        return self.db.get(model, record_id)

    def _require(self, model: type, record_id: str):
        row = self._get(model, record_id)
        if row is None:
            raise RecordNotFoundError(ENTITY_NAMES[model], record_id)
        return row

    def _check_references(self, model: type, fields: dict) -> None:
        for column, target in REFERENCES.get(model, {}).items():
            value = fields.get(column)
            if value is None:
                continue
            if self._get(target, value) is None:
                raise InvalidReferenceError(_camel(column), f'{ENTITY_NAMES[target]} {value} does not exist')

    def _check_unique(self, model: type, fields: dict, *, exclude_id: str | None = None) -> None:
        for column in UNIQUE_FIELDS.get(model, ()):
            value = fields.get(column)
            if value is None:
                continue
            query = self.db.query(model.id).filter(getattr(model, column) == value)
            if exclude_id is not None:
                query = query.filter(model.id != exclude_id)
            if query.first() is not None:
                raise DuplicateRecordError(f'{_camel(column)} {value} already exists')

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _insert(self, model: type, fields: dict):
        self._check_references(model, fields)
        self._check_unique(model, fields)
        now = self.time_provider.now()
        row = model(**{'created_at': now, 'updated_at': now, **fields})
        self.db.add(row)
        self._commit()
        self.db.refresh(row)
        logger.info('record_created entity=%s id=%s', model.__tablename__, row.id)
        return row

    def _apply(self, row: Base, changes: dict) -> Base:
        for key, value in changes.items():
            setattr(row, key, value)
        row.updated_at = self.time_provider.now()
        self._commit()
        self.db.refresh(row)
        return row

    def _patch(self, model: type, record_id: str, changes: dict):
        row = self._require(model, record_id)
        self._check_references(model, changes)
        self._check_unique(model, changes, exclude_id=record_id)
        row = self._apply(row, changes)
        logger.info('record_updated entity=%s id=%s fields=%s', model.__tablename__, record_id, ','.join(sorted(changes)))
        return row

    def _remove(self, model: type, record_id: str) -> None:
        row = self._get(model, record_id)
        if row is None:
            logger.info('record_delete_noop entity=%s id=%s', model.__tablename__, record_id)
            return
        dependents = _dependents(model)
        for dependent, column, nullable in dependents:
            if nullable:
                continue
            in_use = self.db.query(dependent.id).filter(getattr(dependent, column) == record_id).first()
            if in_use is not None:
                raise RecordInUseError(
                    f'{ENTITY_NAMES[model]} is still referenced by {ENTITY_NAMES[dependent]} records'
                )
        for dependent, column, nullable in dependents:
            if nullable:
                self.db.query(dependent).filter(getattr(dependent, column) == record_id).update(
                    {column: None}, synchronize_session=False
                )
        self.db.delete(row)
        self._commit()
        logger.info('record_deleted entity=%s id=%s', model.__tablename__, record_id)

    # --- users ---

    def list_users(self) -> list[User]:
        return self._list(User)

    def get_user(self, user_id: str) -> User | None:
        return self._get(User, user_id)

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email).first()

    def create_user(self, fields: dict) -> User:
        return self._insert(User, fields)

    def upsert_user(self, user_id: str, fields: dict) -> User:
        row = self._get(User, user_id)
        if row is None:
            return self._insert(User, {**fields, 'id': user_id})
        return self._patch(User, user_id, fields)

    def update_user(self, user_id: str, changes: dict) -> User:
        return self._patch(User, user_id, changes)

    def delete_user(self, user_id: str) -> None:
        self._remove(User, user_id)

    # --- teachers ---

    def list_teachers(self) -> list[Teacher]:
        return self._list(Teacher)

    def get_teacher(self, teacher_id: str) -> Teacher | None:
        return self._get(Teacher, teacher_id)

    def get_teacher_by_user_id(self, user_id: str) -> Teacher | None:
        return self.db.query(Teacher).filter(Teacher.user_id == user_id).first()

    def create_teacher(self, fields: dict) -> Teacher:
        return self._insert(Teacher, fields)

    def update_teacher(self, teacher_id: str, changes: dict) -> Teacher:
        return self._patch(Teacher, teacher_id, changes)

    def delete_teacher(self, teacher_id: str) -> None:
        self._remove(Teacher, teacher_id)

    # --- classes ---

    def list_classes(self) -> list[SchoolClass]:
        return self._list(SchoolClass)

    def get_class(self, class_id: str) -> SchoolClass | None:
        return self._get(SchoolClass, class_id)

    def create_class(self, fields: dict) -> SchoolClass:
        return self._insert(SchoolClass, fields)

    def update_class(self, class_id: str, changes: dict) -> SchoolClass:
        return self._patch(SchoolClass, class_id, changes)

    def delete_class(self, class_id: str) -> None:
        self._remove(SchoolClass, class_id)

    # --- students ---

    def _ensure_class_capacity(self, class_id: str | None, *, student_id: str | None = None) -> None:
        if not class_id:
            return
        school_class = self._get(SchoolClass, class_id)
        if school_class is None:
            return
        query = self.db.query(func.count(Student.id)).filter(Student.class_id == class_id)
        if student_id is not None:
            query = query.filter(Student.id != student_id)
        enrolled = query.scalar() or 0
        if enrolled >= school_class.max_students:
            raise ClassFullError(f'Class {school_class.name} already has {enrolled} of {school_class.max_students} students')

    def list_students(self) -> list[Student]:
        return self._list(Student)

    def get_student(self, student_id: str) -> Student | None:
        return self._get(Student, student_id)

    def list_students_by_class(self, class_id: str) -> list[Student]:
        return self._list(Student, Student.class_id == class_id)

    def list_students_by_parent(self, parent_id: str) -> list[Student]:
        return self._list(Student, Student.parent_id == parent_id)

    def create_student(self, fields: dict) -> Student:
        self._check_references(Student, fields)
        self._ensure_class_capacity(fields.get('class_id'))
        return self._insert(Student, fields)

    def update_student(self, student_id: str, changes: dict) -> Student:
        row = self._require(Student, student_id)
        new_class_id = changes.get('class_id')
        if new_class_id and new_class_id != row.class_id:
            self._check_references(Student, {'class_id': new_class_id})
            self._ensure_class_capacity(new_class_id, student_id=student_id)
        return self._patch(Student, student_id, changes)

    def delete_student(self, student_id: str) -> None:
        self._remove(Student, student_id)

    # --- attendance ---

    def list_attendance(self) -> list[Attendance]:
        return self._list(Attendance)

    def get_attendance(self, attendance_id: str) -> Attendance | None:
        return self._get(Attendance, attendance_id)

    def list_attendance_by_class_and_date(self, class_id: str, on_date: date) -> list[Attendance]:
        return self._list(Attendance, Attendance.class_id == class_id, Attendance.date == on_date)

    def list_attendance_by_student(self, student_id: str) -> list[Attendance]:
        return self._list(
            Attendance,
            Attendance.student_id == student_id,
            order_by=(Attendance.date.desc(), Attendance.created_at.desc()),
        )

    def find_attendance(self, student_id: str, on_date: date) -> Attendance | None:
        return (
            self.db.query(Attendance)
            .filter(Attendance.student_id == student_id, Attendance.date == on_date)
            .first()
        )

    def mark_attendance(self, fields: dict) -> Attendance:
        """Records attendance for one student on one day; a second mark for the same day overwrites the first."""
        self._check_references(Attendance, fields)
        student = self._get(Student, fields['student_id'])
        if student is not None and student.class_id != fields['class_id']:
            raise InvalidFieldError('classId', f'Student {student.id} is not enrolled in class {fields["class_id"]}')
        existing = self.find_attendance(fields['student_id'], fields['date'])
        if existing is None:
            return self._insert(Attendance, fields)
        previous_status = existing.status
        row = self._apply(existing, fields)
        logger.info(
            'attendance_overwritten id=%s student_id=%s date=%s status=%s->%s',
            row.id,
            row.student_id,
            row.date,
            previous_status,
            row.status,
        )
        return row

    def create_attendance(self, fields: dict) -> Attendance:
        return self.mark_attendance(fields)

    def update_attendance(self, attendance_id: str, changes: dict) -> Attendance:
        row = self._require(Attendance, attendance_id)
        student_id = changes.get('student_id', row.student_id)
        on_date = changes.get('date', row.date)
        if student_id != row.student_id or on_date != row.date:
            clash = (
                self.db.query(Attendance.id)
                .filter(Attendance.student_id == student_id, Attendance.date == on_date, Attendance.id != attendance_id)
                .first()
            )
            if clash is not None:
                raise DuplicateRecordError(f'Attendance for student {student_id} on {on_date} already exists')
        return self._patch(Attendance, attendance_id, changes)

    def delete_attendance(self, attendance_id: str) -> None:
        self._remove(Attendance, attendance_id)

    # --- assignments ---

    def list_assignments(self) -> list[Assignment]:
        return self._list(Assignment)

    def get_assignment(self, assignment_id: str) -> Assignment | None:
        return self._get(Assignment, assignment_id)

    def list_assignments_by_class(self, class_id: str) -> list[Assignment]:
        return self._list(Assignment, Assignment.class_id == class_id)

    def list_assignments_by_teacher(self, teacher_id: str) -> list[Assignment]:
        return self._list(Assignment, Assignment.teacher_id == teacher_id)

    def create_assignment(self, fields: dict) -> Assignment:
        return self._insert(Assignment, fields)

    def update_assignment(self, assignment_id: str, changes: dict) -> Assignment:
        return self._patch(Assignment, assignment_id, changes)

    def delete_assignment(self, assignment_id: str) -> None:
        self._remove(Assignment, assignment_id)

    # --- assignment submissions ---

    def list_submissions(self) -> list[AssignmentSubmission]:
        return self._list(AssignmentSubmission)

    def list_submissions_by_assignment(self, assignment_id: str) -> list[AssignmentSubmission]:
        return self._list(AssignmentSubmission, AssignmentSubmission.assignment_id == assignment_id)

    def get_submission(self, submission_id: str) -> AssignmentSubmission | None:
        return self._get(AssignmentSubmission, submission_id)

    def create_submission(self, assignment_id: str, fields: dict) -> AssignmentSubmission:
        record = {**fields, 'assignment_id': assignment_id}
        self._check_references(AssignmentSubmission, record)
        duplicate = (
            self.db.query(AssignmentSubmission.id)
            .filter(
                AssignmentSubmission.assignment_id == assignment_id,
                AssignmentSubmission.student_id == record['student_id'],
            )
            .first()
        )
        if duplicate is not None:
            raise DuplicateRecordError('Student already has a submission for this assignment')
        if record.get('submission_text'):
            record['status'] = SubmissionStatus.SUBMITTED.value
            record['submitted_at'] = self.time_provider.now()
        return self._insert(AssignmentSubmission, record)

    def update_submission(self, submission_id: str, changes: dict) -> AssignmentSubmission:
        row = self._require(AssignmentSubmission, submission_id)
        changes = dict(changes)
        now = self.time_provider.now()
        marks = changes.get('marks_obtained')
        if marks is not None:
            max_marks = row.assignment.max_marks
            if marks > max_marks:
                raise InvalidFieldError('marksObtained', f'marksObtained cannot exceed maxMarks ({max_marks})')
            changes.setdefault('status', SubmissionStatus.GRADED.value)
            changes['graded_at'] = now
        if changes.get('submission_text') and row.status == SubmissionStatus.PENDING.value:
            changes.setdefault('status', SubmissionStatus.SUBMITTED.value)
            changes['submitted_at'] = now
        return self._patch(AssignmentSubmission, submission_id, changes)

    def delete_submission(self, submission_id: str) -> None:
        self._remove(AssignmentSubmission, submission_id)

    # --- fee structure ---

    def list_fee_structures(self) -> list[FeeStructure]:
        return self._list(FeeStructure)

    def get_fee_structure(self, fee_structure_id: str) -> FeeStructure | None:
        return self._get(FeeStructure, fee_structure_id)

    def list_fee_structure_by_class(self, class_id: str) -> list[FeeStructure]:
        return self._list(FeeStructure, FeeStructure.class_id == class_id)

    def create_fee_structure(self, fields: dict) -> FeeStructure:
        return self._insert(FeeStructure, {**fields, 'amount': to_money(fields['amount'])})

    def update_fee_structure(self, fee_structure_id: str, changes: dict) -> FeeStructure:
        if 'amount' in changes:
            changes = {**changes, 'amount': to_money(changes['amount'])}
        return self._patch(FeeStructure, fee_structure_id, changes)

    def delete_fee_structure(self, fee_structure_id: str) -> None:
        self._remove(FeeStructure, fee_structure_id)

    # --- fee payments ---

    def _next_receipt_number(self) -> str:
        return f'{settings.fee_receipt_prefix}-{self.time_provider.today():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}'

    def list_fee_payments(self) -> list[FeePayment]:
        return self._list(FeePayment)

    def get_fee_payment(self, payment_id: str) -> FeePayment | None:
        return self._get(FeePayment, payment_id)

    def list_fee_payments_by_student(self, student_id: str) -> list[FeePayment]:
        return self._list(
            FeePayment,
            FeePayment.student_id == student_id,
            order_by=(FeePayment.payment_date.desc(), FeePayment.created_at.desc()),
        )

    def create_fee_payment(self, fields: dict) -> FeePayment:
        record = {**fields, 'amount': to_money(fields['amount'])}
        if not record.get('receipt_number'):
            record['receipt_number'] = self._next_receipt_number()
        return self._insert(FeePayment, record)

    def update_fee_payment(self, payment_id: str, changes: dict) -> FeePayment:
        if 'amount' in changes:
            changes = {**changes, 'amount': to_money(changes['amount'])}
        return self._patch(FeePayment, payment_id, changes)

    def delete_fee_payment(self, payment_id: str) -> None:
        self._remove(FeePayment, payment_id)

    # --- notifications ---

    def list_notifications(self, recipient_id: str | None = None, role: str | None = None) -> list[Notification]:
        if recipient_id and role:
            return self._list(Notification, Notification.recipient_id == recipient_id, Notification.recipient_role == role)
        if role:
            return self._list(Notification, Notification.recipient_role == role)
        if recipient_id:
            return self._list(Notification, Notification.recipient_id == recipient_id)
        return self._list(Notification)

    def list_notifications_for_user(self, user_id: str, role: str) -> list[Notification]:
        """Direct messages, broadcasts to the user's role, and school-wide announcements."""
        return self._list(
            Notification,
            or_(
                Notification.recipient_id == user_id,
                and_(Notification.recipient_id.is_(None), Notification.recipient_role == role),
                and_(Notification.recipient_id.is_(None), Notification.recipient_role.is_(None)),
            ),
        )

    def get_notification(self, notification_id: str) -> Notification | None:
        return self._get(Notification, notification_id)

    def create_notification(self, fields: dict) -> Notification:
        return self._insert(Notification, fields)

    def update_notification(self, notification_id: str, changes: dict) -> Notification:
        return self._patch(Notification, notification_id, changes)

    def mark_notification_as_read(self, notification_id: str) -> Notification:
        return self._patch(Notification, notification_id, {'is_read': True})

    def delete_notification(self, notification_id: str) -> None:
        self._remove(Notification, notification_id)

    # --- timetable ---

    def list_timetable(self) -> list[TimetableEntry]:
        return self._list(TimetableEntry)

    def get_timetable_entry(self, entry_id: str) -> TimetableEntry | None:
        return self._get(TimetableEntry, entry_id)

    def list_timetable_by_class(self, class_id: str) -> list[TimetableEntry]:
        return self._list(
            TimetableEntry,
            TimetableEntry.class_id == class_id,
            order_by=(TimetableEntry.day_of_week.asc(), TimetableEntry.start_time.asc()),
        )

    def create_timetable_entry(self, fields: dict) -> TimetableEntry:
        return self._insert(TimetableEntry, fields)

    def update_timetable_entry(self, entry_id: str, changes: dict) -> TimetableEntry:
        row = self._require(TimetableEntry, entry_id)
        start_time = changes.get('start_time', row.start_time)
        end_time = changes.get('end_time', row.end_time)
        if end_time <= start_time:
            raise InvalidFieldError('endTime', 'endTime must be later than startTime')
        return self._patch(TimetableEntry, entry_id, changes)

    def delete_timetable_entry(self, entry_id: str) -> None:
        self._remove(TimetableEntry, entry_id)

    # --- dashboard ---

    def get_dashboard_stats(self) -> dict:
        total_students = (
            self.db.query(func.count(Student.id)).filter(Student.status == StudentStatus.ACTIVE.value).scalar() or 0
        )
        total_teachers = self.db.query(func.count(Teacher.id)).scalar() or 0
        active_classes = self.db.query(func.count(SchoolClass.id)).scalar() or 0
        collected = (
            self.db.query(func.sum(FeePayment.amount))
            .filter(FeePayment.status == PaymentStatus.COMPLETED.value)
            .scalar()
        )
        return {
            'total_students': int(total_students),
            'total_teachers': int(total_teachers),
            'active_classes': int(active_classes),
            'total_fee_collection': to_money(collected),
        }


def get_storage(db: Session = Depends(get_db)) -> SchoolStorage:
    return SchoolStorage(db)
