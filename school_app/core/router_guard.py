from __future__ import annotations

import logging
from typing import Iterable

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from school_app.config import settings
from school_app.db import get_db
from school_app.models import Assignment, Role, SchoolClass, Student, Teacher, User
from school_app.services.auth_service import validate_session_token


logger = logging.getLogger(__name__)


def resolve_token(request: Request) -> str | None:
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        return token
    authorization = request.headers.get('authorization', '')
    if authorization.lower().startswith('bearer '):
        return authorization[7:].strip()
    return None


def require_auth_user(request: Request, db: Session = Depends(get_db)) -> User:
    session = validate_session_token(resolve_token(request))
    if not session:
        logger.info('auth_denied reason=invalid_token path=%s', request.url.path)
        raise HTTPException(status_code=401, detail='Unauthorized')
    user = db.get(User, session['user_id'])
    if user is None:
        logger.info('auth_denied reason=unknown_user path=%s', request.url.path)
        raise HTTPException(status_code=401, detail='Unauthorized')
    return user


def _forbidden(user: User, reason: str) -> HTTPException:
    logger.warning('access_forbidden user_id=%s role=%s reason=%s', user.id, user.role, reason)
    return HTTPException(status_code=403, detail='Forbidden')


def require_role(user: User, allowed_roles: set[str] | Iterable[str]) -> None:
    normalized = {str(role).strip().lower() for role in allowed_roles}
    if str(user.role or '').strip().lower() not in normalized:
        raise _forbidden(user, 'role')


def is_admin(user: User) -> bool:
    return user.role == Role.ADMIN.value


def teacher_profile(db: Session, user: User) -> Teacher | None:
    return db.query(Teacher).filter(Teacher.user_id == user.id).first()


def assert_teacher_class_scope(db: Session, user: User, class_id: str | None) -> None:
    """Teachers may only write records belonging to a class they teach."""
    if is_admin(user):
        return
    require_role(user, {Role.TEACHER.value})
    teacher = teacher_profile(db, user)
    school_class = db.get(SchoolClass, class_id) if class_id else None
    if teacher is None or school_class is None or school_class.teacher_id != teacher.id:
        raise _forbidden(user, 'class_scope')


def assert_teacher_owns(db: Session, user: User, teacher_id: str | None) -> None:
    if is_admin(user):
        return
    require_role(user, {Role.TEACHER.value})
    teacher = teacher_profile(db, user)
    if teacher is None or teacher.id != teacher_id:
        raise _forbidden(user, 'teacher_scope')


def assert_assignment_scope(db: Session, user: User, assignment_id: str | None) -> None:
    if is_admin(user):
        return
    assignment = db.get(Assignment, assignment_id) if assignment_id else None
    assert_teacher_owns(db, user, assignment.teacher_id if assignment else None)


def assert_student_read_scope(db: Session, user: User, student_id: str) -> None:
    """Admins and teachers read any student; parents read only their own children."""
    if user.role in {Role.ADMIN.value, Role.TEACHER.value}:
        return
    student = db.get(Student, student_id)
    if student is None or student.parent_id != user.id:
        raise _forbidden(user, 'child_scope')


def assert_class_read_scope(db: Session, user: User, class_id: str) -> None:
    if user.role in {Role.ADMIN.value, Role.TEACHER.value}:
        return
    has_child = (
        db.query(Student.id)
        .filter(Student.parent_id == user.id, Student.class_id == class_id)
        .first()
    )
    if has_child is None:
        raise _forbidden(user, 'child_class_scope')
