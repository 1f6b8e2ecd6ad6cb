from fastapi import APIRouter, Depends, HTTPException, Response

from school_app.core.router_guard import require_auth_user, require_role
from school_app.models import Role, User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import (
    FeePaymentCreate,
    FeePaymentOut,
    FeePaymentUpdate,
    FeeStructureCreate,
    FeeStructureOut,
    FeeStructureUpdate,
)
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/fees', tags=['Fees'], route_class=EndpointNameRoute)


# --- structure ---

@router.get('/structure', response_model=list[FeeStructureOut])
def list_fee_structures(user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_fee_structures()


@router.get('/structure/item/{fee_structure_id}', response_model=FeeStructureOut)
def get_fee_structure(fee_structure_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    row = storage.get_fee_structure(fee_structure_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Fee structure not found')
    return row


@router.get('/structure/{class_id}', response_model=list[FeeStructureOut])
def class_fee_structure(class_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_fee_structure_by_class(class_id)


@router.post('/structure', response_model=FeeStructureOut, status_code=201)
def create_fee_structure(payload: FeeStructureCreate, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    return storage.create_fee_structure(payload.model_dump())


@router.put('/structure/{fee_structure_id}', response_model=FeeStructureOut)
@router.patch('/structure/{fee_structure_id}', response_model=FeeStructureOut)
def update_fee_structure(
    fee_structure_id: str,
    payload: FeeStructureUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin'})
    return storage.update_fee_structure(fee_structure_id, payload.changes())


@router.delete('/structure/{fee_structure_id}', status_code=204, response_class=Response)
def delete_fee_structure(fee_structure_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    storage.delete_fee_structure(fee_structure_id)
    return Response(status_code=204)


# --- payments ---

@router.get('/payments', response_model=list[FeePaymentOut])
def list_fee_payments(user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    return storage.list_fee_payments()


@router.get('/payments/item/{payment_id}', response_model=FeePaymentOut)
def get_fee_payment(payment_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    row = storage.get_fee_payment(payment_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Fee payment not found')
    return row


@router.get('/payments/{student_id}', response_model=list[FeePaymentOut])
def student_fee_payments(student_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'parent'})
    if user.role == Role.PARENT.value:
        student = storage.get_student(student_id)
        if student is None or student.parent_id != user.id:
            raise HTTPException(status_code=403, detail='Forbidden')
    return storage.list_fee_payments_by_student(student_id)


@router.post('/payments', response_model=FeePaymentOut, status_code=201)
def create_fee_payment(payload: FeePaymentCreate, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    return storage.create_fee_payment(payload.model_dump())


@router.put('/payments/{payment_id}', response_model=FeePaymentOut)
@router.patch('/payments/{payment_id}', response_model=FeePaymentOut)
def update_fee_payment(
    payment_id: str,
    payload: FeePaymentUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin'})
    return storage.update_fee_payment(payment_id, payload.changes())


@router.delete('/payments/{payment_id}', status_code=204, response_class=Response)
def delete_fee_payment(payment_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    storage.delete_fee_payment(payment_id)
    return Response(status_code=204)
