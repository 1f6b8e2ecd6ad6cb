from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Response

from school_app.core.router_guard import (
    assert_student_read_scope,
    assert_teacher_class_scope,
    require_auth_user,
    require_role,
)
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import AttendanceCreate, AttendanceOut, AttendanceUpdate
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/attendance', tags=['Attendance'], route_class=EndpointNameRoute)


@router.get('', response_model=list[AttendanceOut])
def list_attendance(user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_attendance()


@router.get('/class/{class_id}/{attendance_date}', response_model=list[AttendanceOut])
def class_attendance(
    class_id: str,
    attendance_date: date,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin', 'teacher'})
    return storage.list_attendance_by_class_and_date(class_id, attendance_date)


@router.get('/student/{student_id}', response_model=list[AttendanceOut])
def student_attendance(student_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    assert_student_read_scope(storage.db, user, student_id)
    return storage.list_attendance_by_student(student_id)


@router.get('/{attendance_id}', response_model=AttendanceOut)
def get_attendance(attendance_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    row = storage.get_attendance(attendance_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Attendance not found')
    return row


@router.post('', response_model=AttendanceOut, status_code=201)
def mark_attendance(payload: AttendanceCreate, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    assert_teacher_class_scope(storage.db, user, payload.class_id)
    existing = storage.find_attendance(payload.student_id, payload.date)
    if existing is not None:
        assert_teacher_class_scope(storage.db, user, existing.class_id)
    fields = payload.model_dump()
    if fields['marked_by'] is None:
        fields['marked_by'] = user.id
    return storage.mark_attendance(fields)


@router.put('/{attendance_id}', response_model=AttendanceOut)
@router.patch('/{attendance_id}', response_model=AttendanceOut)
def update_attendance(
    attendance_id: str,
    payload: AttendanceUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin', 'teacher'})
    row = storage.get_attendance(attendance_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Attendance not found')
    changes = payload.changes()
    assert_teacher_class_scope(storage.db, user, row.class_id)
    if 'class_id' in changes:
        assert_teacher_class_scope(storage.db, user, changes['class_id'])
    return storage.update_attendance(attendance_id, changes)


@router.delete('/{attendance_id}', status_code=204, response_class=Response)
def delete_attendance(attendance_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    row = storage.get_attendance(attendance_id)
    if row is not None:
        assert_teacher_class_scope(storage.db, user, row.class_id)
        storage.delete_attendance(attendance_id)
    return Response(status_code=204)
