import re
import tempfile
import unittest
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker

from school_app.core.time_provider import TimeProvider
from school_app.db import Base
from school_app.services.storage_service import (
    ClassFullError,
    DuplicateRecordError,
    InvalidFieldError,
    InvalidReferenceError,
    RecordInUseError,
    RecordNotFoundError,
    SchoolStorage,
)


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


class SchoolStorageTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_storage_service.db'
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
        self.db = self._session_factory()
        self.storage = SchoolStorage(self.db)

    def tearDown(self):
        self.db.close()

    def _seed_class(self, **overrides):
        fields = {'name': 'Grade 10-A', 'grade': 10, 'section': 'A', 'academic_year': '2024-2025'}
        fields.update(overrides)
        return self.storage.create_class(fields)

    def _seed_student(self, student_id='STU-2024-001', **overrides):
        fields = {
            'student_id': student_id,
            'first_name': 'Aarav',
            'last_name': 'Verma',
            'date_of_birth': date(2009, 5, 14),
            'admission_date': date(2024, 4, 1),
        }
        fields.update(overrides)
        return self.storage.create_student(fields)

    def _seed_teacher(self, employee_id='EMP-001'):
        user = self.storage.create_user({'email': f'{employee_id.lower()}@school.test', 'role': 'teacher'})
        return self.storage.create_teacher(
            {'user_id': user.id, 'employee_id': employee_id, 'subject': 'Mathematics', 'years_experience': 5}
        )

    def test_created_entity_gets_stable_id_and_timestamps(self):
        school_class = self._seed_class()

        self.assertTrue(school_class.id)
        self.assertIsNotNone(school_class.created_at)
        self.assertIsNotNone(school_class.updated_at)
        self.assertEqual(school_class.max_students, 30)
        fetched = self.storage.get_class(school_class.id)
        self.assertEqual(fetched.id, school_class.id)
        self.assertEqual(fetched.name, 'Grade 10-A')

    def test_get_unknown_id_returns_none(self):
        self.assertIsNone(self.storage.get_student('missing'))
        self.assertIsNone(self.storage.get_class(''))

    def test_class_and_student_scenario(self):
        school_class = self._seed_class()
        student = self._seed_student(class_id=school_class.id)

        self.assertEqual(self.storage.list_students_by_parent('unrelated-parent'), [])
        self.assertEqual(self.storage.get_student(student.id).status, 'active')
        self.assertEqual([row.id for row in self.storage.list_students_by_class(school_class.id)], [student.id])

    def test_partial_update_merges_and_refreshes_updated_at(self):
        school_class = self._seed_class()
        frozen = datetime(2030, 1, 1, 12, 0, 0)
        storage = SchoolStorage(self.db, time_provider=FixedTimeProvider(frozen))

        updated = storage.update_class(school_class.id, {'name': 'Grade 10-B'})

        self.assertEqual(updated.name, 'Grade 10-B')
        self.assertEqual(updated.grade, 10)
        self.assertEqual(updated.section, 'A')
        self.assertEqual(updated.academic_year, '2024-2025')
        self.assertEqual(updated.updated_at, frozen)

    def test_create_stamps_both_timestamps_from_time_provider(self):
        frozen = datetime(2030, 1, 1, 12, 0, 0)
        storage = SchoolStorage(self.db, time_provider=FixedTimeProvider(frozen))

        created = storage.create_class({'name': 'Grade 11-A', 'grade': 11, 'section': 'A', 'academic_year': '2024-2025'})

        self.assertEqual(created.created_at, frozen)
        self.assertEqual(created.updated_at, frozen)

    def test_schema_indexes_have_distinct_names(self):
        index_names = {index['name'] for index in inspect(self._engine).get_indexes('notifications')}

        self.assertIn('ix_notifications_recipient_id_role', index_names)
        self.assertIn('ix_notifications_recipient_role', index_names)

    def test_update_unknown_id_raises_not_found(self):
        with self.assertRaises(RecordNotFoundError):
            self.storage.update_student('missing', {'first_name': 'X'})

    def test_list_returns_newest_first(self):
        first = self._seed_class(name='Grade 9-A', created_at=datetime(2024, 1, 1, 9, 0))
        second = self._seed_class(name='Grade 9-B', created_at=datetime(2024, 1, 2, 9, 0))
        self.storage.update_class(first.id, {'section': 'C'})

        rows = self.storage.list_classes()

        self.assertEqual([row.id for row in rows], [second.id, first.id])

    def test_attendance_by_class_and_date_returns_exact_matches(self):
        class_a = self._seed_class(name='Grade 10-A')
        class_b = self._seed_class(name='Grade 10-B', section='B')
        student_a = self._seed_student('STU-1', class_id=class_a.id)
        student_b = self._seed_student('STU-2', class_id=class_b.id)
        day = date(2024, 9, 2)
        self.storage.mark_attendance({'student_id': student_a.id, 'class_id': class_a.id, 'date': day, 'status': 'present'})
        self.storage.mark_attendance({'student_id': student_a.id, 'class_id': class_a.id, 'date': date(2024, 9, 3), 'status': 'late'})
        self.storage.mark_attendance({'student_id': student_b.id, 'class_id': class_b.id, 'date': day, 'status': 'absent'})

        rows = self.storage.list_attendance_by_class_and_date(class_a.id, day)

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].student_id, student_a.id)
        self.assertEqual(rows[0].date, day)

    def test_marking_attendance_twice_keeps_one_row_with_latest_status(self):
        school_class = self._seed_class()
        student = self._seed_student(class_id=school_class.id)
        day = date(2024, 9, 2)

        first = self.storage.mark_attendance({'student_id': student.id, 'class_id': school_class.id, 'date': day, 'status': 'present'})
        second = self.storage.mark_attendance({'student_id': student.id, 'class_id': school_class.id, 'date': day, 'status': 'absent'})

        self.assertEqual(first.id, second.id)
        rows = self.storage.list_attendance_by_student(student.id)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].status, 'absent')

    def test_marking_attendance_under_a_class_the_student_is_not_in_is_rejected(self):
        class_a = self._seed_class(name='Grade 10-A')
        class_b = self._seed_class(name='Grade 10-B', section='B')
        student = self._seed_student(class_id=class_a.id)
        day = date(2024, 9, 2)
        self.storage.mark_attendance({'student_id': student.id, 'class_id': class_a.id, 'date': day, 'status': 'present'})

        with self.assertRaises(InvalidFieldError) as ctx:
            self.storage.mark_attendance({'student_id': student.id, 'class_id': class_b.id, 'date': day, 'status': 'absent'})

        self.assertEqual(ctx.exception.field, 'classId')
        rows = self.storage.list_attendance_by_class_and_date(class_a.id, day)
        self.assertEqual([row.status for row in rows], ['present'])

    def test_attendance_by_student_is_date_descending(self):
        school_class = self._seed_class()
        student = self._seed_student(class_id=school_class.id)
        for day in (date(2024, 9, 2), date(2024, 9, 4), date(2024, 9, 3)):
            self.storage.mark_attendance({'student_id': student.id, 'class_id': school_class.id, 'date': day, 'status': 'present'})

        rows = self.storage.list_attendance_by_student(student.id)

        self.assertEqual([row.date.day for row in rows], [4, 3, 2])

    def test_moving_attendance_onto_existing_day_is_duplicate(self):
        school_class = self._seed_class()
        student = self._seed_student(class_id=school_class.id)
        self.storage.mark_attendance({'student_id': student.id, 'class_id': school_class.id, 'date': date(2024, 9, 2), 'status': 'present'})
        other = self.storage.mark_attendance({'student_id': student.id, 'class_id': school_class.id, 'date': date(2024, 9, 3), 'status': 'present'})

        with self.assertRaises(DuplicateRecordError):
            self.storage.update_attendance(other.id, {'date': date(2024, 9, 2)})

    def test_dashboard_stats_on_empty_store(self):
        stats = self.storage.get_dashboard_stats()

        self.assertEqual(
            stats,
            {'total_students': 0, 'total_teachers': 0, 'active_classes': 0, 'total_fee_collection': Decimal('0.00')},
        )

    def test_completed_payment_raises_fee_collection_by_its_amount(self):
        school_class = self._seed_class()
        student = self._seed_student(class_id=school_class.id)
        before = self.storage.get_dashboard_stats()['total_fee_collection']
        structure = self.storage.create_fee_structure(
            {'class_id': school_class.id, 'fee_type': 'Tuition', 'amount': Decimal('450.00'), 'frequency': 'monthly', 'academic_year': '2024-2025'}
        )
        self.storage.create_fee_payment(
            {
                'student_id': student.id,
                'fee_structure_id': structure.id,
                'amount': Decimal('450.00'),
                'payment_date': date(2024, 9, 5),
                'payment_method': 'cash',
                'status': 'completed',
            }
        )
        self.storage.create_fee_payment(
            {
                'student_id': student.id,
                'fee_structure_id': structure.id,
                'amount': Decimal('120.00'),
                'payment_date': date(2024, 9, 6),
                'payment_method': 'card',
                'status': 'pending',
            }
        )

        after = self.storage.get_dashboard_stats()

        self.assertEqual(after['total_fee_collection'] - before, Decimal('450.00'))
        self.assertEqual(after['total_students'], 1)
        self.assertEqual(after['active_classes'], 1)

    def test_dashboard_counts_only_active_students(self):
        self._seed_student('STU-1')
        self._seed_student('STU-2', status='transferred')
        self._seed_teacher()

        stats = self.storage.get_dashboard_stats()

        self.assertEqual(stats['total_students'], 1)
        self.assertEqual(stats['total_teachers'], 1)

    def test_generated_receipt_number_format(self):
        school_class = self._seed_class()
        student = self._seed_student(class_id=school_class.id)
        structure = self.storage.create_fee_structure(
            {'class_id': school_class.id, 'fee_type': 'Tuition', 'amount': Decimal('450'), 'frequency': 'monthly', 'academic_year': '2024-2025'}
        )
        storage = SchoolStorage(self.db, time_provider=FixedTimeProvider(datetime(2024, 9, 5, 8, 30)))

        payment = storage.create_fee_payment(
            {
                'student_id': student.id,
                'fee_structure_id': structure.id,
                'amount': Decimal('450'),
                'payment_date': date(2024, 9, 5),
                'payment_method': 'online',
            }
        )

        self.assertRegex(payment.receipt_number, re.compile(r'^RCPT-20240905-[0-9A-F]{8}$'))
        self.assertEqual(payment.amount, Decimal('450.00'))
        self.assertEqual(structure.amount, Decimal('450.00'))

    def test_fee_payments_by_student_newest_payment_first(self):
        school_class = self._seed_class()
        student = self._seed_student(class_id=school_class.id)
        structure = self.storage.create_fee_structure(
            {'class_id': school_class.id, 'fee_type': 'Tuition', 'amount': Decimal('100'), 'frequency': 'monthly', 'academic_year': '2024-2025'}
        )
        for day in (5, 20, 12):
            self.storage.create_fee_payment(
                {
                    'student_id': student.id,
                    'fee_structure_id': structure.id,
                    'amount': Decimal('100'),
                    'payment_date': date(2024, 9, day),
                    'payment_method': 'cash',
                }
            )

        rows = self.storage.list_fee_payments_by_student(student.id)

        self.assertEqual([row.payment_date.day for row in rows], [20, 12, 5])

    def test_delete_unknown_student_is_noop(self):
        self.storage.delete_student('does-not-exist')
        self.assertEqual(self.storage.list_students(), [])

    def test_delete_clears_optional_references(self):
        school_class = self._seed_class()
        student = self._seed_student(class_id=school_class.id)

        self.storage.delete_class(school_class.id)

        self.assertIsNone(self.storage.get_class(school_class.id))
        self.assertIsNone(self.storage.get_student(student.id).class_id)

    def test_delete_is_restricted_by_required_references(self):
        school_class = self._seed_class()
        student = self._seed_student(class_id=school_class.id)
        self.storage.mark_attendance({'student_id': student.id, 'class_id': school_class.id, 'date': date(2024, 9, 2), 'status': 'present'})

        with self.assertRaises(RecordInUseError):
            self.storage.delete_class(school_class.id)
        self.assertIsNotNone(self.storage.get_class(school_class.id))

    def test_delete_user_clears_parent_link_but_teacher_profile_blocks(self):
        parent = self.storage.create_user({'email': 'parent@school.test', 'role': 'parent'})
        student = self._seed_student(parent_id=parent.id)
        teacher = self._seed_teacher()

        self.storage.delete_user(parent.id)
        self.assertIsNone(self.storage.get_student(student.id).parent_id)

        with self.assertRaises(RecordInUseError):
            self.storage.delete_user(teacher.user_id)

    def test_unknown_reference_is_rejected_with_field_name(self):
        with self.assertRaises(InvalidReferenceError) as ctx:
            self._seed_student(class_id='missing-class')

        self.assertEqual(ctx.exception.field, 'classId')
        self.assertEqual(self.storage.list_students(), [])

    def test_unique_business_keys(self):
        self._seed_student('STU-2024-001')
        with self.assertRaises(DuplicateRecordError):
            self._seed_student('STU-2024-001')

        teacher = self._seed_teacher('EMP-001')
        self.assertEqual(self.storage.get_teacher_by_user_id(teacher.user_id).id, teacher.id)
        self.assertEqual(self.storage.get_user_by_email('emp-001@school.test').id, teacher.user_id)
        other_user = self.storage.create_user({'email': 'other@school.test', 'role': 'teacher'})
        with self.assertRaises(DuplicateRecordError):
            self.storage.create_teacher(
                {'user_id': other_user.id, 'employee_id': 'EMP-001', 'subject': 'Physics', 'years_experience': 1}
            )

    def test_upsert_user_inserts_then_merges(self):
        created = self.storage.upsert_user('provider-sub-42', {'email': 'neha@school.test', 'first_name': 'Neha'})
        self.assertEqual(created.id, 'provider-sub-42')
        self.assertEqual(created.role, 'parent')

        merged = self.storage.upsert_user('provider-sub-42', {'last_name': 'Rao'})

        self.assertEqual(merged.first_name, 'Neha')
        self.assertEqual(merged.last_name, 'Rao')
        self.assertEqual(len(self.storage.list_users()), 1)

    def test_update_to_own_unique_value_is_allowed(self):
        student = self._seed_student('STU-2024-001')

        updated = self.storage.update_student(student.id, {'student_id': 'STU-2024-001', 'roll_number': 4})

        self.assertEqual(updated.roll_number, 4)

    def test_class_capacity_is_enforced(self):
        school_class = self._seed_class(max_students=1)
        self._seed_student('STU-1', class_id=school_class.id)

        with self.assertRaises(ClassFullError):
            self._seed_student('STU-2', class_id=school_class.id)

        outsider = self._seed_student('STU-3')
        with self.assertRaises(ClassFullError):
            self.storage.update_student(outsider.id, {'class_id': school_class.id})

    def test_submission_lifecycle(self):
        school_class = self._seed_class()
        teacher = self._seed_teacher()
        student = self._seed_student(class_id=school_class.id)
        assignment = self.storage.create_assignment(
            {
                'title': 'Algebra worksheet',
                'class_id': school_class.id,
                'teacher_id': teacher.id,
                'subject': 'Mathematics',
                'due_date': date(2024, 9, 10),
                'max_marks': 20,
            }
        )

        submission = self.storage.create_submission(assignment.id, {'student_id': student.id, 'submission_text': None})
        self.assertEqual(submission.status, 'pending')
        self.assertIsNone(submission.submitted_at)

        submitted = self.storage.update_submission(submission.id, {'submission_text': 'x = 4'})
        self.assertEqual(submitted.status, 'submitted')
        self.assertIsNotNone(submitted.submitted_at)

        with self.assertRaises(InvalidFieldError):
            self.storage.update_submission(submission.id, {'marks_obtained': 25})

        graded = self.storage.update_submission(submission.id, {'marks_obtained': 18, 'feedback': 'Good work'})
        self.assertEqual(graded.status, 'graded')
        self.assertEqual(graded.marks_obtained, 18)
        self.assertIsNotNone(graded.graded_at)

        with self.assertRaises(DuplicateRecordError):
            self.storage.create_submission(assignment.id, {'student_id': student.id, 'submission_text': 'again'})

    def test_timetable_ordered_by_day_then_start(self):
        school_class = self._seed_class()
        teacher = self._seed_teacher()
        for day, start, end in ((2, '09:00', '09:45'), (1, '10:00', '10:45'), (1, '08:00', '08:45')):
            self.storage.create_timetable_entry(
                {
                    'class_id': school_class.id,
                    'teacher_id': teacher.id,
                    'subject': 'Mathematics',
                    'day_of_week': day,
                    'start_time': start,
                    'end_time': end,
                    'academic_year': '2024-2025',
                }
            )

        rows = self.storage.list_timetable_by_class(school_class.id)

        self.assertEqual([(row.day_of_week, row.start_time) for row in rows], [(1, '08:00'), (1, '10:00'), (2, '09:00')])

        with self.assertRaises(InvalidFieldError):
            self.storage.update_timetable_entry(rows[0].id, {'end_time': '07:30'})

    def test_notification_listing(self):
        parent = self.storage.create_user({'email': 'parent@school.test', 'role': 'parent'})
        direct = self.storage.create_notification({'title': 'Fee due', 'message': 'Pay by Friday', 'recipient_id': parent.id, 'type': 'fee'})
        broadcast = self.storage.create_notification({'title': 'PTM', 'message': 'Saturday', 'recipient_role': 'parent', 'type': 'general'})
        everyone = self.storage.create_notification({'title': 'Holiday', 'message': 'Closed Monday', 'type': 'general'})
        self.storage.create_notification({'title': 'Staff meeting', 'message': '4pm', 'recipient_role': 'teacher', 'type': 'general'})

        inbox = {row.id for row in self.storage.list_notifications_for_user(parent.id, 'parent')}
        self.assertEqual(inbox, {direct.id, broadcast.id, everyone.id})
        self.assertEqual([row.id for row in self.storage.list_notifications(role='parent')], [broadcast.id])
        self.assertEqual([row.id for row in self.storage.list_notifications(recipient_id=parent.id)], [direct.id])
        self.assertEqual(len(self.storage.list_notifications()), 4)

        read = self.storage.mark_notification_as_read(direct.id)
        self.assertTrue(read.is_read)

    def test_notifications_are_never_deduplicated(self):
        first = self.storage.create_notification({'title': 'Reminder', 'message': 'Same', 'recipient_role': 'parent', 'type': 'general'})
        second = self.storage.create_notification({'title': 'Reminder', 'message': 'Same', 'recipient_role': 'parent', 'type': 'general'})

        self.assertNotEqual(first.id, second.id)


if __name__ == '__main__':
    unittest.main()
