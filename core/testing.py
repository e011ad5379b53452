"""
Helpers shared by the app test suites.
"""

import itertools

from authentication.models import AccountStatus, User, UserRole

_student_numbers = itertools.count(10000)


def make_student(email='student@campus.edu', password='Student@12345', **extra):
    number = next(_student_numbers)
    extra.setdefault('name', 'Test Student')
    extra.setdefault('student_id', f"UGR/{number:05d}/24")
    return User.objects.create_user(email, password, role=UserRole.STUDENT, **extra)


def make_staff(email='staff@campus.edu', department='IT Services', password='Staff@12345', **extra):
    extra.setdefault('name', 'Test Staff')
    return User.objects.create_user(
        email, password, role=UserRole.STAFF, department=department, **extra
    )


def make_admin(email='admin@campus.edu', password='Admin@12345', **extra):
    extra.setdefault('name', 'Test Admin')
    return User.objects.create_user(email, password, role=UserRole.ADMIN, **extra)


def suspend(user):
    user.account_status = AccountStatus.SUSPENDED
    user.save(update_fields=['account_status', 'updated_at'])
    return user
