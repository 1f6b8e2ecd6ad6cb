from fastapi import APIRouter, Depends, HTTPException, Query, Response

from school_app.core.router_guard import is_admin, require_auth_user, require_role
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import NotificationCreate, NotificationOut, NotificationUpdate
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/notifications', tags=['Notifications'], route_class=EndpointNameRoute)


@router.get('', response_model=list[NotificationOut])
def my_notifications(
    role: str | None = Query(default=None),
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    if role:
        return storage.list_notifications(recipient_id=user.id, role=role)
    return storage.list_notifications_for_user(user.id, user.role)


@router.get('/all', response_model=list[NotificationOut])
def all_notifications(
    recipient_id: str | None = Query(default=None, alias='recipientId'),
    role: str | None = Query(default=None),
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin'})
    return storage.list_notifications(recipient_id=recipient_id, role=role)


@router.post('', response_model=NotificationOut, status_code=201)
def create_notification(payload: NotificationCreate, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    return storage.create_notification(payload.model_dump())


@router.put('/{notification_id}/read', status_code=204, response_class=Response)
@router.patch('/{notification_id}/read', status_code=204, response_class=Response)
def mark_read(notification_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    row = storage.get_notification(notification_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Notification not found')
    if not is_admin(user) and row.recipient_id != user.id:
        raise HTTPException(status_code=403, detail='Forbidden')
    storage.mark_notification_as_read(notification_id)
    return Response(status_code=204)


@router.put('/{notification_id}', response_model=NotificationOut)
@router.patch('/{notification_id}', response_model=NotificationOut)
def update_notification(
    notification_id: str,
    payload: NotificationUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin'})
    return storage.update_notification(notification_id, payload.changes())


@router.delete('/{notification_id}', status_code=204, response_class=Response)
def delete_notification(notification_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    storage.delete_notification(notification_id)
    return Response(status_code=204)
