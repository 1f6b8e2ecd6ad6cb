from school_app.routers import (
    assignments,
    attendance,
    auth,
    classes,
    dashboard,
    fees,
    notifications,
    students,
    submissions,
    teachers,
    timetable,
    users,
)

__all__ = [
    'assignments',
    'attendance',
    'auth',
    'classes',
    'dashboard',
    'fees',
    'notifications',
    'students',
    'submissions',
    'teachers',
    'timetable',
    'users',
]
