from fastapi import APIRouter, Depends, HTTPException, Response

from school_app.core.router_guard import assert_class_read_scope, require_auth_user, require_role
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import TimetableCreate, TimetableOut, TimetableUpdate
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/timetable', tags=['Timetable'], route_class=EndpointNameRoute)


@router.get('', response_model=list[TimetableOut])
def list_timetable(user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_timetable()


@router.get('/class/{class_id}', response_model=list[TimetableOut])
def class_timetable(class_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    assert_class_read_scope(storage.db, user, class_id)
    return storage.list_timetable_by_class(class_id)


@router.get('/{entry_id}', response_model=TimetableOut)
def get_timetable_entry(entry_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    row = storage.get_timetable_entry(entry_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Timetable entry not found')
    return row


@router.post('', response_model=TimetableOut, status_code=201)
def create_timetable_entry(payload: TimetableCreate, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    return storage.create_timetable_entry(payload.model_dump())


@router.put('/{entry_id}', response_model=TimetableOut)
@router.patch('/{entry_id}', response_model=TimetableOut)
def update_timetable_entry(
    entry_id: str,
    payload: TimetableUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin'})
    return storage.update_timetable_entry(entry_id, payload.changes())


@router.delete('/{entry_id}', status_code=204, response_class=Response)
def delete_timetable_entry(entry_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    storage.delete_timetable_entry(entry_id)
    return Response(status_code=204)
