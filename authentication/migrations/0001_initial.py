# Generated manually: campus user model

import uuid

import django.core.validators
import django.utils.timezone
from django.db import migrations, models

import authentication.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID v4)', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text='Timestamp when record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated')),
                ('email', models.EmailField(help_text='Login identifier (stored lower-case)', max_length=254, unique=True)),
                ('name', models.CharField(help_text='Display name', max_length=150)),
                ('role', models.CharField(choices=[('student', 'Student'), ('staff', 'Department Staff'), ('admin', 'Administrator')], db_index=True, default='student', max_length=20)),
                ('department', models.CharField(blank=True, db_index=True, help_text='Required for staff; complaints are scoped by this value', max_length=100)),
                ('student_id', models.CharField(blank=True, help_text='University registration number (students only)', max_length=20, validators=[django.core.validators.RegexValidator(message='Student ID must be in the format UGR/XXXXX/XX', regex='^UGR/\\d{5}/\\d{2}$')])),
                ('account_status', models.CharField(choices=[('PendingApproval', 'Pending Approval'), ('Active', 'Active'), ('Suspended', 'Suspended'), ('Rejected', 'Rejected')], db_index=True, default='Active', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether user can access the admin site')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'campus_users',
                'abstract': False,
                'indexes': [models.Index(fields=['role', 'account_status'], name='users_role_status_idx')],
            },
            managers=[
                ('objects', authentication.models.UserManager()),
            ],
        ),
    ]
