# Generated manually: complaint lifecycle models

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


BASE_FIELDS = [
    ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID v4)', primary_key=True, serialize=False)),
    ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text='Timestamp when record was created')),
    ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated')),
]


def base_fields():
    return [(name, field.clone()) for name, field in BASE_FIELDS]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Complaint',
            fields=base_fields() + [
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(max_length=2000)),
                ('category', models.CharField(choices=[('academic', 'Academic'), ('infrastructure', 'Infrastructure'), ('hostel', 'Hostel'), ('library', 'Library'), ('cafeteria', 'Cafeteria'), ('transport', 'Transport'), ('other', 'Other')], db_index=True, max_length=20)),
                ('department', models.CharField(db_index=True, help_text='Department responsible for this complaint', max_length=100)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High')], db_index=True, default='medium', max_length=10)),
                ('is_anonymous', models.BooleanField(default=False, help_text="Hide the creator's identity from staff and admins")),
                ('status', models.CharField(choices=[('pending_review', 'Pending Review'), ('open', 'Open'), ('in_progress', 'In Progress'), ('resolved', 'Resolved'), ('rejected', 'Rejected')], db_index=True, default='pending_review', max_length=20)),
                ('rejection_reason', models.CharField(blank=True, default='', max_length=500)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('resolution_time', models.FloatField(blank=True, help_text='Hours from creation to resolution, one decimal', null=True)),
                ('verification_status', models.CharField(blank=True, choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('reopened', 'Reopened')], max_length=20, null=True)),
                ('verification_comment', models.CharField(blank=True, default='', max_length=500)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('sla_due_date', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('sla_is_overdue', models.BooleanField(default=False)),
                ('sla_hours_remaining', models.FloatField(blank=True, null=True)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_complaints', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='complaints', to=settings.AUTH_USER_MODEL)),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='verified_complaints', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Complaint',
                'verbose_name_plural': 'Complaints',
                'db_table': 'complaints',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['department', 'status'], name='complaints_dept_status_idx'),
                    models.Index(fields=['created_by', '-created_at'], name='complaints_creator_idx'),
                    models.Index(fields=['status', 'sla_due_date'], name='complaints_status_sla_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ComplaintAttachment',
            fields=base_fields() + [
                ('filename', models.CharField(max_length=255)),
                ('path', models.CharField(help_text='Storage path', max_length=500)),
                ('mimetype', models.CharField(max_length=100)),
                ('size', models.PositiveIntegerField(default=0)),
                ('extracted_text', models.TextField(blank=True, default='', max_length=12000)),
                ('uploaded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('complaint', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='complaints.complaint')),
            ],
            options={
                'db_table': 'complaint_attachments',
                'ordering': ['uploaded_at'],
            },
        ),
        migrations.CreateModel(
            name='ComplaintRemark',
            fields=base_fields() + [
                ('comment', models.CharField(max_length=1000)),
                ('added_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('added_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='complaint_remarks', to=settings.AUTH_USER_MODEL)),
                ('complaint', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='remarks', to='complaints.complaint')),
            ],
            options={
                'db_table': 'complaint_remarks',
                'ordering': ['added_at'],
            },
        ),
    ]
