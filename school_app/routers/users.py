from fastapi import APIRouter, Depends, HTTPException, Response

from school_app.core.router_guard import require_auth_user, require_role
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import UserCreate, UserOut, UserUpdate
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/users', tags=['Users'], route_class=EndpointNameRoute)


def _require_admin(user: User = Depends(require_auth_user)) -> User:
    require_role(user, {'admin'})
    return user


@router.get('', response_model=list[UserOut])
def list_users(_: User = Depends(_require_admin), storage: SchoolStorage = Depends(get_storage)):
    return storage.list_users()


@router.post('', response_model=UserOut, status_code=201)
def create_user(payload: UserCreate, _: User = Depends(_require_admin), storage: SchoolStorage = Depends(get_storage)):
    return storage.create_user(payload.model_dump())


@router.get('/{user_id}', response_model=UserOut)
def get_user(user_id: str, _: User = Depends(_require_admin), storage: SchoolStorage = Depends(get_storage)):
    row = storage.get_user(user_id)
    if row is None:
        raise HTTPException(status_code=404, detail='User not found')
    return row


@router.put('/{user_id}', response_model=UserOut)
@router.patch('/{user_id}', response_model=UserOut)
def update_user(
    user_id: str,
    payload: UserUpdate,
    _: User = Depends(_require_admin),
    storage: SchoolStorage = Depends(get_storage),
):
    return storage.update_user(user_id, payload.changes())


@router.delete('/{user_id}', status_code=204, response_class=Response)
def delete_user(user_id: str, admin: User = Depends(_require_admin), storage: SchoolStorage = Depends(get_storage)):
    if user_id == admin.id:
        raise HTTPException(status_code=409, detail='Cannot delete the signed-in admin')
    storage.delete_user(user_id)
    return Response(status_code=204)
