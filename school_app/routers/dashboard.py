from fastapi import APIRouter, Depends

from school_app.core.router_guard import require_auth_user, require_role
from school_app.models import User
from school_app.route_logging import EndpointNameRoute
from school_app.schemas import DashboardStats
from school_app.services.storage_service import SchoolStorage, get_storage


router = APIRouter(prefix='/api/dashboard', tags=['Dashboard'], route_class=EndpointNameRoute)


@router.get('/stats', response_model=DashboardStats)
def dashboard_stats(
    user: User = Depends(require_auth_user),
    storage: SchoolStorage = Depends(get_storage),
):
    require_role(user, {'admin', 'teacher'})
    return storage.get_dashboard_stats()
