# utils/migrations/0001_initial.py
from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(db_index=True, max_length=50, verbose_name='Action')),
                ('content_type', models.CharField(blank=True, db_index=True, max_length=100, verbose_name='Model Type')),
                ('object_id', models.CharField(blank=True, db_index=True, max_length=100, verbose_name='Object ID')),
                ('object_repr', models.CharField(blank=True, max_length=200, verbose_name='Object Representation')),
                ('old_values', models.JSONField(blank=True, null=True, verbose_name='Old Values')),
                ('new_values', models.JSONField(blank=True, null=True, verbose_name='New Values')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('user_id', models.CharField(
                    blank=True,
                    db_index=True,
                    help_text='ID of user who performed this action',
                    max_length=50,
                    null=True,
                    verbose_name='User ID'
                )),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True, verbose_name='IP Address')),
                ('user_agent', models.TextField(blank=True, verbose_name='User Agent')),
                ('request_path', models.CharField(blank=True, max_length=255, verbose_name='Request Path')),
                ('timestamp', models.DateTimeField(db_index=True, verbose_name='Timestamp')),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['content_type', 'object_id'], name='utils_audit_object_idx'),
                    models.Index(fields=['user_id', 'timestamp'], name='utils_audit_user_time_idx'),
                ],
            },
        ),
    ]
