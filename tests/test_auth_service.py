import unittest
from datetime import datetime, timedelta

from freezegun import freeze_time

from school_app.core.time_provider import TimeProvider
from school_app.services.auth_service import (
    _b64url_encode,
    clear_session_token,
    issue_session_token,
    validate_session_token,
)


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


class SessionTokenTests(unittest.TestCase):
    def test_issued_token_validates_to_user_id(self):
        issued = issue_session_token('user-123')

        session = validate_session_token(issued['token'])

        self.assertIsNotNone(session)
        self.assertEqual(session['user_id'], 'user-123')

    def test_missing_or_garbage_token_is_rejected(self):
        self.assertIsNone(validate_session_token(None))
        self.assertIsNone(validate_session_token(''))
        self.assertIsNone(validate_session_token('not-a-token'))
        self.assertIsNone(validate_session_token('a.b.c'))

    def test_tampered_payload_is_rejected(self):
        token = issue_session_token('user-123')['token']
        header_part, _, signature_part = token.split('.')
        forged_payload = _b64url_encode(b'{"sub":"admin-user","iat":0,"exp":9999999999}')

        self.assertIsNone(validate_session_token(f'{header_part}.{forged_payload}.{signature_part}'))

    def test_revoked_token_is_rejected(self):
        token = issue_session_token('user-456')['token']

        clear_session_token(token)

        self.assertIsNone(validate_session_token(token))

    @freeze_time('2026-02-13 10:00:00')
    def test_token_expires_after_configured_hours(self):
        issued = issue_session_token('user-789')
        issued_at = datetime(2026, 2, 13, 10, 0, 0)

        still_valid = validate_session_token(issued['token'], time_provider=FixedTimeProvider(issued_at + timedelta(hours=11)))
        expired = validate_session_token(issued['token'], time_provider=FixedTimeProvider(issued_at + timedelta(hours=12, minutes=1)))

        self.assertIsNotNone(still_valid)
        self.assertIsNone(expired)
        self.assertEqual(issued['expires_at'], issued_at + timedelta(hours=12))


if __name__ == '__main__':
    unittest.main()
