# Generated manually: immutable audit trail

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('actor_role', models.CharField(blank=True, choices=[('admin', 'Admin'), ('staff', 'Staff'), ('student', 'Student')], db_index=True, max_length=10)),
                ('action', models.CharField(choices=[
                    ('LOGIN', 'Login'),
                    ('LOGIN_FAILED', 'Login Failed'),
                    ('LOGOUT', 'Logout'),
                    ('UNAUTHORIZED_ACCESS', 'Unauthorized Access'),
                    ('COMPLAINT_CREATE', 'Complaint Created'),
                    ('COMPLAINT_STATUS_UPDATE', 'Complaint Status Updated'),
                    ('COMPLAINT_RESOLUTION_CONFIRMED', 'Complaint Resolution Confirmed'),
                    ('COMPLAINT_REOPENED', 'Complaint Reopened'),
                    ('COMPLAINT_REMARK_ADDED', 'Complaint Remark Added'),
                    ('COMPLAINT_DELETED', 'Complaint Deleted'),
                    ('COMPLAINT_EXPORT', 'Complaint Export'),
                    ('USER_CREATE', 'User Created'),
                    ('USER_UPDATE', 'User Updated'),
                    ('USER_DELETE', 'User Deleted'),
                    ('USER_SUSPEND', 'User Suspended'),
                    ('USER_REACTIVATE', 'User Reactivated'),
                    ('REGISTRATION_APPROVED', 'Registration Approved'),
                    ('REGISTRATION_REJECTED', 'Registration Rejected'),
                    ('PROFILE_UPDATE', 'Profile Updated'),
                    ('PASSWORD_CHANGE', 'Password Changed'),
                    ('PASSWORD_RESET_REQUEST', 'Password Reset Requested'),
                    ('PASSWORD_RESET', 'Password Reset'),
                ], db_index=True, max_length=40)),
                ('resource', models.CharField(choices=[('complaint', 'Complaint'), ('user', 'User'), ('registration', 'Registration'), ('profile', 'Profile'), ('auth', 'Auth')], db_index=True, max_length=20)),
                ('resource_id', models.CharField(blank=True, db_index=True, help_text='True id of the target, for exact lookups', max_length=64)),
                ('target_id_display', models.CharField(blank=True, db_index=True, help_text='Short display id shown to operators', max_length=32)),
                ('details', models.CharField(blank=True, max_length=1000)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('status', models.CharField(choices=[('Success', 'Success'), ('Failed', 'Failed')], db_index=True, default='Success', max_length=10)),
                ('correlation_id', models.CharField(blank=True, db_index=True, max_length=64)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=500)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, help_text='Actor (null for unresolved failed logins)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'db_table': 'audit_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', '-created_at'], name='audit_user_created_idx'),
                    models.Index(fields=['action', '-created_at'], name='audit_action_created_idx'),
                    models.Index(fields=['resource', '-created_at'], name='audit_resource_created_idx'),
                    models.Index(fields=['status', '-created_at'], name='audit_status_created_idx'),
                ],
            },
        ),
    ]
