import sys

import httpx
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text

from school_app.config import settings
from school_app.db import Base, SessionLocal, engine
from school_app.models import FeePayment, Notification, Student, User
from school_app.services.auth_service import clear_session_token, issue_session_token, validate_session_token


GREEN = '\033[32m'
RED = '\033[31m'
RESET = '\033[0m'


def run_check(name, fn):
    try:
        message = fn() or ''
        suffix = f' - {message}' if message else ''
        print(f'{GREEN}PASS{RESET} {name}{suffix}')
        return True
    except Exception as exc:
        print(f'{RED}FAIL{RESET} {name} - {exc}')
        return False


def check_db_connectivity_and_write():
    with engine.begin() as conn:
        conn.execute(text('SELECT 1'))
        conn.execute(text('CREATE TABLE IF NOT EXISTS _healthcheck_probe (id INTEGER PRIMARY KEY, note TEXT)'))
        conn.execute(text("INSERT INTO _healthcheck_probe (note) VALUES ('probe')"))
        conn.execute(text("DELETE FROM _healthcheck_probe WHERE note='probe'"))
        conn.execute(text('DROP TABLE IF EXISTS _healthcheck_probe'))
    return 'connect + write ok'


def check_alembic_head():
    cfg = Config('alembic.ini')
    script = ScriptDirectory.from_config(cfg)
    heads = set(script.get_heads())
    if not heads:
        raise RuntimeError('No alembic heads found in repository')

    with engine.connect() as conn:
        current = MigrationContext.configure(conn).get_current_revision()

    if current is None:
        raise RuntimeError('No migration version in DB (run alembic upgrade head)')
    if current not in heads:
        raise RuntimeError(f'DB revision {current} is not at head {sorted(heads)}')
    return f'current={current}'


def check_required_env():
    required = {
        'DATABASE_URL': settings.database_url,
        'AUTH_SECRET': settings.auth_secret,
        'AUTH_LOGIN_URL': settings.auth_login_url,
    }
    missing = [key for key, value in required.items() if not str(value).strip()]
    if missing:
        raise RuntimeError(f'Missing env vars: {", ".join(missing)}')
    if settings.app_env != 'local' and settings.auth_secret == 'change-me':
        raise RuntimeError('AUTH_SECRET still has the default value')
    return 'all required vars present'


def check_schema_tables_present():
    present = set(inspect(engine).get_table_names())
    missing = sorted(set(Base.metadata.tables) - present)
    if missing:
        raise RuntimeError(f'Missing tables: {missing}')
    return f'tables={len(Base.metadata.tables)}'


def check_core_tables_accessible():
    db = SessionLocal()
    try:
        for model in (User, Student, FeePayment, Notification):
            db.query(model).limit(1).all()
        admins = db.query(User).filter(User.role == 'admin').count()
        if admins == 0:
            raise RuntimeError('No admin user (set BOOTSTRAP_ADMIN_EMAIL and run bootstrap.py)')
        return f'admins={admins}'
    finally:
        db.close()


def check_session_token_roundtrip():
    issued = issue_session_token('healthcheck-probe')
    session = validate_session_token(issued['token'])
    if not session or session.get('user_id') != 'healthcheck-probe':
        raise RuntimeError('Issued token did not validate')
    clear_session_token(issued['token'])
    if validate_session_token(issued['token']) is not None:
        raise RuntimeError('Revoked token still validates')
    return 'issue/validate/revoke ok'


def check_login_provider_reachable():
    res = httpx.get(settings.auth_login_url, timeout=8, follow_redirects=True)
    if res.status_code >= 500:
        raise RuntimeError(f'HTTP {res.status_code} from login provider')
    return f'HTTP {res.status_code}'


def main():
    checks = [
        ('Database connectivity and write access', check_db_connectivity_and_write),
        ('Alembic migration status at head', check_alembic_head),
        ('Required environment variables present', check_required_env),
        ('Schema tables present', check_schema_tables_present),
        ('Core tables accessible', check_core_tables_accessible),
        ('Session token issue and revoke working', check_session_token_roundtrip),
        ('Login provider reachable', check_login_provider_reachable),
    ]

    all_ok = True
    for name, fn in checks:
        all_ok = run_check(name, fn) and all_ok

    if not all_ok:
        sys.exit(1)
    sys.exit(0)


if __name__ == '__main__':
    main()
