from fastapi import APIRouter, Depends, HTTPException, Response

from school_app.core.router_guard import require_auth_user, require_role
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import TeacherCreate, TeacherOut, TeacherUpdate
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/teachers', tags=['Teachers'], route_class=EndpointNameRoute)


@router.get('', response_model=list[TeacherOut])
def list_teachers(user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_teachers()


@router.get('/{teacher_id}', response_model=TeacherOut)
def get_teacher(teacher_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    row = storage.get_teacher(teacher_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Teacher not found')
    return row


@router.post('', response_model=TeacherOut, status_code=201)
def create_teacher(payload: TeacherCreate, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    return storage.create_teacher(payload.model_dump())


@router.put('/{teacher_id}', response_model=TeacherOut)
@router.patch('/{teacher_id}', response_model=TeacherOut)
def update_teacher(
    teacher_id: str,
    payload: TeacherUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin'})
    return storage.update_teacher(teacher_id, payload.changes())


@router.delete('/{teacher_id}', status_code=204, response_class=Response)
def delete_teacher(teacher_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    storage.delete_teacher(teacher_id)
    return Response(status_code=204)
