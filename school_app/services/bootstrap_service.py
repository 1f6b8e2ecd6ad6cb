import logging

from sqlalchemy.orm import Session

from school_app.config import settings
from school_app.models import Role, User


logger = logging.getLogger(__name__)


def _normalize_email(value: str) -> str:
    return (value or '').strip().lower()


def _ensure_bootstrap_admin(db: Session) -> dict:
    email = _normalize_email(settings.bootstrap_admin_email)
    if not email:
        return {'ensured': False, 'reason': 'no_bootstrap_admin_email'}
    if '@' not in email:
        logger.warning('bootstrap_admin_skipped invalid_email')
        return {'ensured': False, 'reason': 'invalid_bootstrap_admin_email'}

    row = db.query(User).filter(User.email == email).first()
    if not row:
        row = User(email=email, first_name='School', last_name='Admin', role=Role.ADMIN.value)
        db.add(row)
        db.commit()
        db.refresh(row)
        logger.warning('bootstrap_admin_created user_id=%s', row.id)
        return {'ensured': True, 'inserted': True, 'user_id': row.id}

    changed = row.role != Role.ADMIN.value
    if changed:
        row.role = Role.ADMIN.value
        db.commit()
        logger.warning('bootstrap_admin_promoted user_id=%s', row.id)
    return {'ensured': True, 'inserted': False, 'updated': changed, 'user_id': row.id}


def run_bootstrap(db: Session) -> dict:
    users_count = db.query(User).count()
    admin_result = _ensure_bootstrap_admin(db)
    admins_count = db.query(User).filter(User.role == Role.ADMIN.value).count()
    if admins_count == 0:
        logger.warning('bootstrap_no_admin users=%s set BOOTSTRAP_ADMIN_EMAIL to create one', users_count)
    else:
        logger.info('bootstrap_ok users=%s admins=%s', users_count, admins_count)
    return {
        'users_count': users_count,
        'admins_count': admins_count,
        'admin': admin_result,
    }
