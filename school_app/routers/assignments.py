from fastapi import APIRouter, Depends, HTTPException, Response

from school_app.core.router_guard import assert_assignment_scope, assert_teacher_owns, require_auth_user, require_role
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import (
    AssignmentCreate,
    AssignmentOut,
    AssignmentUpdate,
    SubmissionCreate,
    SubmissionOut,
)
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/assignments', tags=['Assignments'], route_class=EndpointNameRoute)


def _require_assignment(storage: SchoolStorage, assignment_id: str):
    row = storage.get_assignment(assignment_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Assignment not found')
    return row


@router.get('', response_model=list[AssignmentOut])
def list_assignments(user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_assignments()


@router.get('/class/{class_id}', response_model=list[AssignmentOut])
def class_assignments(class_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_assignments_by_class(class_id)


@router.get('/teacher/{teacher_id}', response_model=list[AssignmentOut])
def teacher_assignments(teacher_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return storage.list_assignments_by_teacher(teacher_id)


@router.get('/{assignment_id}', response_model=AssignmentOut)
def get_assignment(assignment_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    return _require_assignment(storage, assignment_id)


@router.post('', response_model=AssignmentOut, status_code=201)
def create_assignment(payload: AssignmentCreate, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    assert_teacher_owns(storage.db, user, payload.teacher_id)
    return storage.create_assignment(payload.model_dump())


@router.put('/{assignment_id}', response_model=AssignmentOut)
@router.patch('/{assignment_id}', response_model=AssignmentOut)
def update_assignment(
    assignment_id: str,
    payload: AssignmentUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin', 'teacher'})
    row = _require_assignment(storage, assignment_id)
    changes = payload.changes()
    assert_teacher_owns(storage.db, user, row.teacher_id)
    if 'teacher_id' in changes:
        assert_teacher_owns(storage.db, user, changes['teacher_id'])
    return storage.update_assignment(assignment_id, changes)


@router.delete('/{assignment_id}', status_code=204, response_class=Response)
def delete_assignment(assignment_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    row = storage.get_assignment(assignment_id)
    if row is not None:
        assert_teacher_owns(storage.db, user, row.teacher_id)
        storage.delete_assignment(assignment_id)
    return Response(status_code=204)


@router.get('/{assignment_id}/submissions', response_model=list[SubmissionOut])
def list_submissions(assignment_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    _require_assignment(storage, assignment_id)
    assert_assignment_scope(storage.db, user, assignment_id)
    return storage.list_submissions_by_assignment(assignment_id)


@router.post('/{assignment_id}/submissions', response_model=SubmissionOut, status_code=201)
def create_submission(
    assignment_id: str,
    payload: SubmissionCreate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin', 'teacher'})
    _require_assignment(storage, assignment_id)
    assert_assignment_scope(storage.db, user, assignment_id)
    return storage.create_submission(assignment_id, payload.model_dump())
