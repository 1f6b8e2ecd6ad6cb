from fastapi import APIRouter, Depends, HTTPException, Response

from school_app.core.router_guard import assert_assignment_scope, require_auth_user, require_role
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import SubmissionOut, SubmissionUpdate
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/submissions', tags=['Assignments'], route_class=EndpointNameRoute)


def _require_submission(storage: SchoolStorage, user: User, submission_id: str):
    require_role(user, {'admin', 'teacher'})
    row = storage.get_submission(submission_id)
    if row is None:
        raise HTTPException(status_code=404, detail='Submission not found')
    assert_assignment_scope(storage.db, user, row.assignment_id)
    return row


@router.get('', response_model=list[SubmissionOut])
def list_submissions(user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin'})
    return storage.list_submissions()


@router.get('/{submission_id}', response_model=SubmissionOut)
def get_submission(submission_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    return _require_submission(storage, user, submission_id)


@router.put('/{submission_id}', response_model=SubmissionOut)
@router.patch('/{submission_id}', response_model=SubmissionOut)
def update_submission(
    submission_id: str,
    payload: SubmissionUpdate,
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    _require_submission(storage, user, submission_id)
    return storage.update_submission(submission_id, payload.changes())


@router.delete('/{submission_id}', status_code=204, response_class=Response)
def delete_submission(submission_id: str, user: User = Depends(require_auth_user), storage: SchoolStorage = Depends(get_storage)):
    require_role(user, {'admin', 'teacher'})
    row = storage.get_submission(submission_id)
    if row is not None:
        assert_assignment_scope(storage.db, user, row.assignment_id)
        storage.delete_submission(submission_id)
    return Response(status_code=204)
