from fastapi import APIRouter, Depends, HTTPException, Response

from school_app.core.router_guard import assert_student_read_scope, require_auth_user, require_role
from school_app.models import Role, User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import StudentCreate, StudentOut, StudentUpdate
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/students', tags=['Students'], route_class=EndpointNameRoute)


@router.get('', response_model=list[StudentOut])
def list_students(user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_students()


@router.get('/parent/{parent_id}', response_model=list[StudentOut])
def list_parent_students(parent_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    if user.role == Role.PARENT.value and user.id != parent_id:
        raise HTTPException(status_code=403, detail='Forbidden')
    return storage.list_students_by_parent(parent_id)


@router.get('/{student_id}', response_model=StudentOut)
def get_student(student_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    assert_student_read_scope(storage.db, user, student_id)
    row = storage.get_student(student_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Student not found')
    return row


@router.post('', response_model=StudentOut, status_code=201)
def create_student(payload: StudentCreate, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    return storage.create_student(payload.model_dump())


@router.put('/{student_id}', response_model=StudentOut)
@router.patch('/{student_id}', response_model=StudentOut)
def update_student(
    student_id: str,
    payload: StudentUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin'})
    return storage.update_student(student_id, payload.changes())


@router.delete('/{student_id}', status_code=204, response_class=Response)
def delete_student(student_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    storage.delete_student(student_id)
    return Response(status_code=204)
