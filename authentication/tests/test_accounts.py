import shutil
import tempfile

from django.contrib.auth.tokens import default_token_generator
from django.core import mail
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode
from rest_framework.test import APIClient

from audit.models import AuditAction, AuditLog, AuditResource, AuditStatus
from authentication.accounts import PASSWORD_ALPHABETS, generate_password
from authentication.models import (
    AccountStatus, RegistrationRequest, RegistrationStatus, User, UserRole,
)
from core.testing import make_admin, make_staff, make_student

REGISTRATIONS_URL = '/api/v1/auth/registration-requests/'
USERS_URL = '/api/v1/auth/users/'
LOGIN_URL = '/api/v1/auth/login/'


def id_photo(name='id.png', content_type='image/png', content=b'\x89PNG fake'):
    return SimpleUploadedFile(name, content, content_type=content_type)


class AccountApiTestCase(TestCase):

    def setUp(self):
        self.staff = make_staff(department='IT Services')
        self.other_staff = make_staff(email='hostel@campus.edu', department='Hostel Office')
        self.admin = make_admin()

        self.media_root = tempfile.mkdtemp()
        self.override = override_settings(MEDIA_ROOT=self.media_root)
        self.override.enable()

    def tearDown(self):
        self.override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)
        super().tearDown()

    def client_for(self, user):
        client = APIClient()
        client.force_authenticate(user)
        return client

    def submit(self, **overrides):
        payload = {
            'name': 'New Student',
            'email': 'new.student@campus.edu',
            'student_id': 'UGR/55555/24',
            'id_photo': id_photo(),
        }
        payload.update(overrides)
        return APIClient().post(REGISTRATIONS_URL, payload, format='multipart')

    def pending_request(self):
        response = self.submit()
        self.assertEqual(response.status_code, 201, response.content)
        return RegistrationRequest.objects.get()


class GeneratePasswordTests(TestCase):

    def test_every_character_class_is_present(self):
        for _ in range(20):
            password = generate_password()
            self.assertEqual(len(password), 12)
            for alphabet in PASSWORD_ALPHABETS:
                self.assertTrue(any(char in alphabet for char in password), password)


class SubmitRegistrationTests(AccountApiTestCase):

    def test_submission_stores_photo_and_emails_applicant_and_staff(self):
        response = self.submit()

        self.assertEqual(response.status_code, 201, response.content)
        registration = RegistrationRequest.objects.get()
        self.assertEqual(registration.status, RegistrationStatus.PENDING)
        self.assertTrue(registration.id_photo_path.startswith('registration_requests/'))
        self.assertTrue(default_storage.exists(registration.id_photo_path))
        self.assertTrue(response.json()['data']['pending_email_sent'])

        recipients = sorted(message.to[0] for message in mail.outbox)
        self.assertEqual(
            recipients,
            ['hostel@campus.edu', 'new.student@campus.edu', 'staff@campus.edu'],
        )

    def test_id_photo_is_required(self):
        response = self.submit(id_photo='')

        self.assertEqual(response.status_code, 400)
        self.assertFalse(RegistrationRequest.objects.exists())

    def test_non_image_photo_is_rejected(self):
        response = self.submit(id_photo=id_photo('id.pdf', 'application/pdf', b'%PDF-1.4'))

        self.assertEqual(response.status_code, 400)
        self.assertFalse(RegistrationRequest.objects.exists())

    @override_settings(MAX_REGISTRATION_PHOTO_SIZE=4)
    def test_oversized_photo_is_rejected(self):
        response = self.submit()

        self.assertEqual(response.status_code, 400)

    def test_malformed_student_id_is_rejected(self):
        response = self.submit(student_id='12345')

        self.assertEqual(response.status_code, 400)

    def test_duplicate_pending_request_is_rejected(self):
        self.pending_request()

        response = self.submit(email='other@campus.edu')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(RegistrationRequest.objects.count(), 1)

    def test_existing_account_email_is_rejected(self):
        make_student(email='new.student@campus.edu')

        response = self.submit()

        self.assertEqual(response.status_code, 400)

    def test_list_is_staff_only(self):
        self.pending_request()
        student = make_student()

        self.assertEqual(self.client_for(student).get(REGISTRATIONS_URL).status_code, 403)
        response = self.client_for(self.staff).get(REGISTRATIONS_URL, {'status': 'pending'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['data']), 1)


class ReviewRegistrationTests(AccountApiTestCase):

    def test_approval_creates_active_student_in_reviewers_department(self):
        registration = self.pending_request()
        mail.outbox.clear()

        response = self.client_for(self.staff).post(f'{REGISTRATIONS_URL}{registration.id}/approve/')

        self.assertEqual(response.status_code, 200, response.content)
        student = User.objects.get(email='new.student@campus.edu')
        self.assertEqual(student.role, UserRole.STUDENT)
        self.assertEqual(student.department, 'IT Services')
        self.assertEqual(student.account_status, AccountStatus.ACTIVE)
        self.assertEqual(student.student_id, 'UGR/55555/24')

        registration.refresh_from_db()
        self.assertEqual(registration.status, RegistrationStatus.APPROVED)
        self.assertEqual(registration.reviewed_by, self.staff)
        self.assertEqual(registration.created_user, student)

        entry = AuditLog.objects.get(action=AuditAction.REGISTRATION_APPROVED)
        self.assertEqual(entry.resource, AuditResource.REGISTRATION)
        self.assertTrue(entry.target_id_display.startswith('REG-'))
        self.assertEqual(entry.user, self.staff)

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Temporary password', mail.outbox[0].body)

    def test_emailed_password_logs_in(self):
        registration = self.pending_request()
        mail.outbox.clear()
        self.client_for(self.staff).post(f'{REGISTRATIONS_URL}{registration.id}/approve/')

        body = mail.outbox[0].body
        password = body.split('Temporary password: ')[1].split('\n')[0]
        response = APIClient().post(
            LOGIN_URL, {'email': 'new.student@campus.edu', 'password': password}, format='json'
        )
        self.assertEqual(response.status_code, 200, response.content)

    def test_second_review_is_rejected(self):
        registration = self.pending_request()
        client = self.client_for(self.staff)
        client.post(f'{REGISTRATIONS_URL}{registration.id}/approve/')

        response = client.post(
            f'{REGISTRATIONS_URL}{registration.id}/reject/',
            {'reason': 'Photo does not match records'},
            format='json',
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(User.objects.filter(email='new.student@campus.edu').count(), 1)

    def test_rejection_requires_a_reason(self):
        registration = self.pending_request()

        response = self.client_for(self.staff).post(
            f'{REGISTRATIONS_URL}{registration.id}/reject/', {'reason': 'bad'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        registration.refresh_from_db()
        self.assertTrue(registration.is_pending)

    def test_rejection_is_audited_and_emailed(self):
        registration = self.pending_request()
        mail.outbox.clear()

        response = self.client_for(self.staff).post(
            f'{REGISTRATIONS_URL}{registration.id}/reject/',
            {'reason': 'ID photo is unreadable'},
            format='json',
        )

        self.assertEqual(response.status_code, 200, response.content)
        registration.refresh_from_db()
        self.assertEqual(registration.status, RegistrationStatus.REJECTED)
        self.assertEqual(registration.rejection_reason, 'ID photo is unreadable')
        entry = AuditLog.objects.get(action=AuditAction.REGISTRATION_REJECTED)
        self.assertEqual(entry.metadata['reason'], 'ID photo is unreadable')
        self.assertIn('ID photo is unreadable', mail.outbox[0].body)
        self.assertFalse(User.objects.filter(email='new.student@campus.edu').exists())

    def test_admin_cannot_review_and_is_audited(self):
        registration = self.pending_request()

        response = self.client_for(self.admin).post(f'{REGISTRATIONS_URL}{registration.id}/approve/')

        self.assertEqual(response.status_code, 403)
        entry = AuditLog.objects.get(action=AuditAction.UNAUTHORIZED_ACCESS)
        self.assertEqual(entry.status, AuditStatus.FAILED)
        self.assertEqual(entry.resource, AuditResource.REGISTRATION)
        self.assertEqual(entry.metadata['attempted'], 'approve_registration')
        registration.refresh_from_db()
        self.assertTrue(registration.is_pending)

    def test_unknown_request_is_404(self):
        response = self.client_for(self.staff).post(
            f'{REGISTRATIONS_URL}00000000-0000-0000-0000-000000000000/approve/'
        )
        self.assertEqual(response.status_code, 404)


class StudentManagementTests(AccountApiTestCase):

    def setUp(self):
        super().setUp()
        self.student = make_student(department='IT Services')

    def test_staff_suspends_and_reactivates_student(self):
        client = self.client_for(self.staff)

        response = client.post(f'{USERS_URL}{self.student.id}/suspend/')
        self.assertEqual(response.status_code, 200, response.content)
        self.student.refresh_from_db()
        self.assertEqual(self.student.account_status, AccountStatus.SUSPENDED)
        self.assertFalse(self.student.is_active)

        response = client.post(f'{USERS_URL}{self.student.id}/reactivate/')
        self.assertEqual(response.status_code, 200, response.content)
        self.student.refresh_from_db()
        self.assertTrue(self.student.can_use_api)

        actions = list(
            AuditLog.objects.filter(resource=AuditResource.USER)
            .order_by('created_at').values_list('action', flat=True)
        )
        self.assertEqual(actions, [AuditAction.USER_SUSPEND, AuditAction.USER_REACTIVATE])
        self.assertTrue(
            AuditLog.objects.get(action=AuditAction.USER_SUSPEND).target_id_display.startswith('USR-')
        )

    def test_suspending_twice_is_rejected(self):
        client = self.client_for(self.staff)
        client.post(f'{USERS_URL}{self.student.id}/suspend/')

        response = client.post(f'{USERS_URL}{self.student.id}/suspend/')

        self.assertEqual(response.status_code, 400)

    def test_suspended_student_cannot_log_in(self):
        self.client_for(self.staff).post(f'{USERS_URL}{self.student.id}/suspend/')

        response = APIClient().post(
            LOGIN_URL, {'email': 'student@campus.edu', 'password': 'Student@12345'}, format='json'
        )

        self.assertIn(response.status_code, (401, 403))

    def test_other_department_staff_is_refused_and_audited(self):
        response = self.client_for(self.other_staff).post(f'{USERS_URL}{self.student.id}/suspend/')

        self.assertEqual(response.status_code, 403)
        self.student.refresh_from_db()
        self.assertTrue(self.student.can_use_api)
        entry = AuditLog.objects.get(action=AuditAction.UNAUTHORIZED_ACCESS)
        self.assertEqual(entry.status, AuditStatus.FAILED)
        self.assertEqual(entry.user, self.other_staff)
        self.assertEqual(entry.metadata['attempted'], 'suspend_user')

    def test_staff_lists_only_their_department(self):
        make_student(email='hostel.student@campus.edu', department='Hostel Office')

        response = self.client_for(self.staff).get(USERS_URL)

        self.assertEqual(response.status_code, 200)
        emails = [user['email'] for user in response.json()['data']]
        self.assertEqual(emails, ['student@campus.edu'])

    def test_staff_creates_student_in_own_department(self):
        response = self.client_for(self.staff).post(
            USERS_URL,
            {'name': 'Walk In', 'email': 'walk.in@campus.edu', 'student_id': 'UGR/44444/24'},
            format='json',
        )

        self.assertEqual(response.status_code, 201, response.content)
        data = response.json()['data']
        self.assertEqual(data['user']['department'], 'IT Services')
        self.assertEqual(data['user']['role'], UserRole.STUDENT)
        self.assertTrue(data['generated_password'])
        self.assertTrue(data['email_sent'])
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.USER_CREATE).exists())

    def test_student_cannot_create_accounts(self):
        response = self.client_for(self.student).post(
            USERS_URL,
            {'name': 'Friend', 'email': 'friend@campus.edu', 'student_id': 'UGR/44445/24'},
            format='json',
        )

        self.assertEqual(response.status_code, 403)
        self.assertFalse(User.objects.filter(email='friend@campus.edu').exists())
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.UNAUTHORIZED_ACCESS).exists())

    def test_staff_updates_student_email(self):
        response = self.client_for(self.staff).patch(
            f'{USERS_URL}{self.student.id}/', {'email': 'Renamed@campus.edu'}, format='json'
        )

        self.assertEqual(response.status_code, 200, response.content)
        self.student.refresh_from_db()
        self.assertEqual(self.student.email, 'renamed@campus.edu')
        entry = AuditLog.objects.get(action=AuditAction.USER_UPDATE)
        self.assertEqual(entry.metadata['fields'], ['email'])

    def test_delete_requires_reason(self):
        response = self.client_for(self.staff).delete(
            f'{USERS_URL}{self.student.id}/', {'reason': 'no'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertTrue(User.objects.filter(pk=self.student.pk).exists())

    def test_staff_deletes_student_without_complaints(self):
        response = self.client_for(self.staff).delete(
            f'{USERS_URL}{self.student.id}/', {'reason': 'Duplicate account created'}, format='json'
        )

        self.assertEqual(response.status_code, 200, response.content)
        self.assertFalse(User.objects.filter(pk=self.student.pk).exists())
        entry = AuditLog.objects.get(action=AuditAction.USER_DELETE)
        self.assertEqual(entry.resource_id, str(self.student.id))
        self.assertEqual(entry.metadata['mode'], 'deleted')

    def test_student_with_complaints_must_be_suspended_instead(self):
        with self.captureOnCommitCallbacks(execute=True):
            created = self.client_for(self.student).post(
                '/api/v1/complaints/',
                {
                    'title': 'Wifi down',
                    'description': 'No connection in the library.',
                    'category': 'infrastructure',
                    'department': 'IT Services',
                    'priority': 'high',
                },
                format='json',
            )
        self.assertEqual(created.status_code, 201, created.content)

        response = self.client_for(self.staff).delete(
            f'{USERS_URL}{self.student.id}/', {'reason': 'Graduated last term'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertTrue(User.objects.filter(pk=self.student.pk).exists())
        self.assertFalse(AuditLog.objects.filter(action=AuditAction.USER_DELETE).exists())


class StaffManagementTests(AccountApiTestCase):

    def test_admin_creates_staff(self):
        response = self.client_for(self.admin).post(
            USERS_URL,
            {'name': 'Library Staff', 'email': 'library@campus.edu', 'department': ' Library '},
            format='json',
        )

        self.assertEqual(response.status_code, 201, response.content)
        staff = User.objects.get(email='library@campus.edu')
        self.assertEqual(staff.role, UserRole.STAFF)
        self.assertEqual(staff.department, 'Library')

    def test_admin_staff_creation_requires_department(self):
        response = self.client_for(self.admin).post(
            USERS_URL, {'name': 'No Dept', 'email': 'nodept@campus.edu'}, format='json'
        )

        self.assertEqual(response.status_code, 400)

    def test_admin_deactivates_staff(self):
        response = self.client_for(self.admin).delete(
            f'{USERS_URL}{self.other_staff.id}/', {'reason': 'Left the university'}, format='json'
        )

        self.assertEqual(response.status_code, 200, response.content)
        self.other_staff.refresh_from_db()
        self.assertFalse(self.other_staff.can_use_api)
        entry = AuditLog.objects.get(action=AuditAction.USER_DELETE)
        self.assertEqual(entry.metadata['mode'], 'deactivated')

    def test_admin_cannot_remove_self(self):
        response = self.client_for(self.admin).delete(
            f'{USERS_URL}{self.admin.id}/', {'reason': 'Testing self removal'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.can_use_api)


class ProfileAndPasswordTests(AccountApiTestCase):

    def setUp(self):
        super().setUp()
        self.student = make_student()

    def test_profile_update_is_audited(self):
        response = self.client_for(self.student).patch(
            '/api/v1/auth/profile/', {'name': 'Renamed Student'}, format='json'
        )

        self.assertEqual(response.status_code, 200, response.content)
        self.assertEqual(response.json()['data']['name'], 'Renamed Student')
        entry = AuditLog.objects.get(action=AuditAction.PROFILE_UPDATE)
        self.assertEqual(entry.resource, AuditResource.PROFILE)

    def test_change_password(self):
        response = self.client_for(self.student).post(
            '/api/v1/auth/password/change/',
            {'current_password': 'Student@12345', 'new_password': 'Brand-New#Pass9'},
            format='json',
        )

        self.assertEqual(response.status_code, 200, response.content)
        self.student.refresh_from_db()
        self.assertTrue(self.student.check_password('Brand-New#Pass9'))
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.PASSWORD_CHANGE).exists())

    def test_wrong_current_password_is_rejected(self):
        response = self.client_for(self.student).post(
            '/api/v1/auth/password/change/',
            {'current_password': 'nope', 'new_password': 'Brand-New#Pass9'},
            format='json',
        )

        self.assertEqual(response.status_code, 400)
        self.student.refresh_from_db()
        self.assertTrue(self.student.check_password('Student@12345'))

    def test_weak_new_password_is_rejected(self):
        response = self.client_for(self.student).post(
            '/api/v1/auth/password/change/',
            {'current_password': 'Student@12345', 'new_password': '123'},
            format='json',
        )

        self.assertEqual(response.status_code, 400)

    def test_forgot_password_answers_the_same_for_unknown_email(self):
        known = APIClient().post(
            '/api/v1/auth/password/forgot/', {'email': 'student@campus.edu'}, format='json'
        )
        unknown = APIClient().post(
            '/api/v1/auth/password/forgot/', {'email': 'ghost@campus.edu'}, format='json'
        )

        self.assertEqual(known.status_code, 200)
        self.assertEqual(known.json(), unknown.json())
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('/reset-password/', mail.outbox[0].body)
        self.assertEqual(
            AuditLog.objects.filter(action=AuditAction.PASSWORD_RESET_REQUEST).count(), 1
        )

    def test_reset_password_with_valid_token(self):
        uid = urlsafe_base64_encode(force_bytes(self.student.pk))
        token = default_token_generator.make_token(self.student)

        response = APIClient().post(
            '/api/v1/auth/password/reset/',
            {'uid': uid, 'token': token, 'new_password': 'Reset-Pass#2024'},
            format='json',
        )

        self.assertEqual(response.status_code, 200, response.content)
        self.student.refresh_from_db()
        self.assertTrue(self.student.check_password('Reset-Pass#2024'))
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.PASSWORD_RESET).exists())

    def test_reset_token_cannot_be_reused(self):
        uid = urlsafe_base64_encode(force_bytes(self.student.pk))
        token = default_token_generator.make_token(self.student)
        body = {'uid': uid, 'token': token, 'new_password': 'Reset-Pass#2024'}
        APIClient().post('/api/v1/auth/password/reset/', body, format='json')

        body['new_password'] = 'Another-Pass#2025'
        response = APIClient().post('/api/v1/auth/password/reset/', body, format='json')

        self.assertEqual(response.status_code, 400)

    def test_garbage_uid_is_rejected(self):
        response = APIClient().post(
            '/api/v1/auth/password/reset/',
            {'uid': 'not-base64!', 'token': 'x', 'new_password': 'Reset-Pass#2024'},
            format='json',
        )

        self.assertEqual(response.status_code, 400)
