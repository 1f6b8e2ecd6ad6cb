from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from school_app.db import Base, SessionLocal, engine
from school_app.models import SchoolClass
from school_app.services.storage_service import SchoolStorage


Base.metadata.create_all(bind=engine)

db = SessionLocal()
try:
    storage = SchoolStorage(db)
    if not db.query(SchoolClass).first():
        teacher_user = storage.create_user(
            {'email': 'priya.sharma@school.test', 'first_name': 'Priya', 'last_name': 'Sharma', 'role': 'teacher'}
        )
        parent = storage.create_user(
            {'email': 'rahul.verma@school.test', 'first_name': 'Rahul', 'last_name': 'Verma', 'role': 'parent'}
        )
        teacher = storage.create_teacher(
            {'user_id': teacher_user.id, 'employee_id': 'EMP-001', 'subject': 'Mathematics', 'years_experience': 8}
        )
        school_class = storage.create_class(
            {'name': 'Grade 10-A', 'grade': 10, 'section': 'A', 'teacher_id': teacher.id, 'academic_year': '2024-2025'}
        )

        names = [('Aarav', 'Verma'), ('Diya', 'Verma'), ('Ishaan', 'Kapoor')]
        students = []
        for index, (first_name, last_name) in enumerate(names, start=1):
            students.append(
                storage.create_student(
                    {
                        'student_id': f'STU-2024-{index:03d}',
                        'first_name': first_name,
                        'last_name': last_name,
                        'date_of_birth': date(2009, index, 10),
                        'class_id': school_class.id,
                        'parent_id': parent.id if last_name == 'Verma' else None,
                        'admission_date': date(2024, 4, 1),
                        'roll_number': index,
                    }
                )
            )

        tuition = storage.create_fee_structure(
            {
                'class_id': school_class.id,
                'fee_type': 'Tuition',
                'amount': Decimal('450.00'),
                'frequency': 'monthly',
                'academic_year': '2024-2025',
            }
        )
        storage.create_fee_payment(
            {
                'student_id': students[0].id,
                'fee_structure_id': tuition.id,
                'amount': Decimal('450.00'),
                'payment_date': date.today(),
                'payment_method': 'online',
            }
        )

        for day_of_week, (start_time, end_time) in enumerate([('09:00', '09:45'), ('10:00', '10:45')], start=1):
            storage.create_timetable_entry(
                {
                    'class_id': school_class.id,
                    'teacher_id': teacher.id,
                    'subject': 'Mathematics',
                    'day_of_week': day_of_week,
                    'start_time': start_time,
                    'end_time': end_time,
                    'room': '101',
                    'academic_year': '2024-2025',
                }
            )

        storage.create_assignment(
            {
                'title': 'Quadratic equations worksheet',
                'class_id': school_class.id,
                'teacher_id': teacher.id,
                'subject': 'Mathematics',
                'due_date': date.today() + timedelta(days=5),
                'max_marks': 20,
            }
        )
        storage.create_notification(
            {
                'title': 'Welcome back',
                'message': 'Term starts on Monday.',
                'recipient_role': 'parent',
                'type': 'general',
            }
        )
finally:
    db.close()

print('DB initialized with sample data.')
