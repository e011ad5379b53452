"""
Management command to seed demo users for every campus role.

Usage:
    python manage.py seed_users [--force]

Creates:
    - admin@campus.edu / Admin@12345 (admin)
    - it.staff@campus.edu / Staff@12345 (staff, Information Technology)
    - hostel.staff@campus.edu / Staff@12345 (staff, Student Housing)
    - student@campus.edu / Student@12345 (student, UGR/12345/24)
"""

from django.core.management.base import BaseCommand

from authentication.models import User, UserRole, AccountStatus


DEMO_USERS = [
    {
        'email': 'admin@campus.edu',
        'password': 'Admin@12345',
        'name': 'Campus Administrator',
        'role': UserRole.ADMIN,
        'is_staff': True,
        'is_superuser': True,
    },
    {
        'email': 'it.staff@campus.edu',
        'password': 'Staff@12345',
        'name': 'IT Department Staff',
        'role': UserRole.STAFF,
        'department': 'Information Technology',
    },
    {
        'email': 'hostel.staff@campus.edu',
        'password': 'Staff@12345',
        'name': 'Housing Office Staff',
        'role': UserRole.STAFF,
        'department': 'Student Housing',
    },
    {
        'email': 'student@campus.edu',
        'password': 'Student@12345',
        'name': 'Demo Student',
        'role': UserRole.STUDENT,
        'student_id': 'UGR/12345/24',
    },
]


class Command(BaseCommand):
    help = 'Seed demo users for all campus roles'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Reset passwords and status even if users already exist',
        )

    def handle(self, *args, **options):
        force = options['force']
        created_count = 0
        updated_count = 0

        for entry in DEMO_USERS:
            user_data = dict(entry)
            email = user_data.pop('email')
            password = user_data.pop('password')

            user = User.objects.filter(email=email).first()
            if user is None:
                User.objects.create_user(
                    email,
                    password=password,
                    account_status=AccountStatus.ACTIVE,
                    **user_data,
                )
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'  Created: {email} ({user_data["role"]})'))
            elif force:
                user.set_password(password)
                for field, value in user_data.items():
                    setattr(user, field, value)
                user.account_status = AccountStatus.ACTIVE
                user.is_active = True
                user.save()
                updated_count += 1
                self.stdout.write(self.style.WARNING(f'  Updated: {email} ({user.role})'))
            else:
                self.stdout.write(self.style.NOTICE(
                    f'  Exists:  {email} ({user.role}), use --force to reset'
                ))

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS(
            f'Done! Created: {created_count}, Updated: {updated_count}'
        ))
