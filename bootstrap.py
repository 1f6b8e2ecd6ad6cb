import logging

from school_app.db import Base, SessionLocal, engine
from school_app.services.auth_service import issue_session_token
from school_app.services.bootstrap_service import run_bootstrap


logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
logger = logging.getLogger('bootstrap')


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        result = run_bootstrap(db)
        logger.info('Bootstrap result: %s', result)
        admin_user_id = (result.get('admin') or {}).get('user_id')
        if admin_user_id:
            session = issue_session_token(admin_user_id)
            print(f"Admin session token (expires {session['expires_at']:%Y-%m-%d %H:%M} UTC):")
            print(session['token'])
    finally:
        db.close()


if __name__ == '__main__':
    main()
