import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from school_app.config import settings
from school_app.db import Base
from school_app.models import User
from school_app.services.bootstrap_service import run_bootstrap


class BootstrapServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_bootstrap.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in reversed(Base.metadata.sorted_tables):
                db.execute(table.delete())
            db.commit()
        finally:
            db.close()

    def test_creates_admin_from_configured_email(self):
        db = self._session_factory()
        try:
            with patch.object(settings, 'bootstrap_admin_email', ' Principal@School.test '):
                result = run_bootstrap(db)
            admin = db.query(User).filter(User.email == 'principal@school.test').one()
            self.assertEqual(admin.role, 'admin')
            self.assertTrue(result['admin']['inserted'])
            self.assertEqual(result['admins_count'], 1)
        finally:
            db.close()

    def test_promotes_existing_user_and_is_idempotent(self):
        db = self._session_factory()
        try:
            db.add(User(email='principal@school.test', role='parent'))
            db.commit()
            with patch.object(settings, 'bootstrap_admin_email', 'principal@school.test'):
                first = run_bootstrap(db)
                second = run_bootstrap(db)
            self.assertTrue(first['admin']['updated'])
            self.assertFalse(second['admin']['updated'])
            self.assertEqual(db.query(User).count(), 1)
            self.assertEqual(db.query(User).one().role, 'admin')
        finally:
            db.close()

    def test_without_email_nothing_is_created(self):
        db = self._session_factory()
        try:
            with patch.object(settings, 'bootstrap_admin_email', ''):
                result = run_bootstrap(db)
            self.assertFalse(result['admin']['ensured'])
            self.assertEqual(db.query(User).count(), 0)
        finally:
            db.close()


if __name__ == '__main__':
    unittest.main()
