from fastapi import APIRouter, Depends, HTTPException, Response

from school_app.core.router_guard import assert_teacher_class_scope, is_admin, require_auth_user, require_role
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import ClassCreate, ClassOut, ClassUpdate, StudentOut
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/classes', tags=['Classes'], route_class=EndpointNameRoute)


@router.get('', response_model=list[ClassOut])
def list_classes(user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_classes()


@router.get('/{class_id}', response_model=ClassOut)
def get_class(class_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    row = storage.get_class(class_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Class not found')
    return row


@router.get('/{class_id}/students', response_model=list[StudentOut])
def list_class_students(class_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_students_by_class(class_id)


@router.post('', response_model=ClassOut, status_code=201)
def create_class(payload: ClassCreate, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    return storage.create_class(payload.model_dump())


@router.put('/{class_id}', response_model=ClassOut)
@router.patch('/{class_id}', response_model=ClassOut)
def update_class(
    class_id: str,
    payload: ClassUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin', 'teacher'})
    if storage.get_class(class_id) is None:
        raise HTTPException(status_code=404, detail='Class not found')
    changes = payload.changes()
    if not is_admin(user):
        assert_teacher_class_scope(storage.db, user, class_id)
        if 'teacher_id' in changes:
            require_role(user, {'admin'})
    return storage.update_class(class_id, changes)


@router.delete('/{class_id}', status_code=204, response_class=Response)
def delete_class(class_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    storage.delete_class(class_id)
    return Response(status_code=204)
