from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from school_app.config import settings
from school_app.core.router_guard import require_auth_user, resolve_token
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import UserOut
from school_app.services.auth_service import clear_session_token


router = APIRouter(prefix='/api', tags=['Auth'], route_class=EndpointNameRoute)


@router.get('/login')
def login():
    return RedirectResponse(settings.auth_login_url, status_code=302)


@router.get('/logout')
def logout(request: Request):
    clear_session_token(resolve_token(request))
    response = RedirectResponse('/', status_code=302)
    response.delete_cookie(settings.auth_cookie_name)
    return response


@router.get('/auth/user', response_model=UserOut)
def current_user(user: User = Depends(require_auth_user)):
    return user
