# registrar/migrations/0001_initial.py
from decimal import Decimal
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion
import uuid


def base_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ('created_at', models.DateTimeField(db_index=True, editable=False, verbose_name='Created At')),
        ('updated_at', models.DateTimeField(db_index=True, editable=False, verbose_name='Updated At')),
        ('created_by_id', models.CharField(
            blank=True, db_index=True, help_text='ID of user who created this record',
            max_length=50, null=True, verbose_name='Created By ID'
        )),
        ('updated_by_id', models.CharField(
            blank=True, db_index=True, help_text='ID of user who last updated this record',
            max_length=50, null=True, verbose_name='Updated By ID'
        )),
        ('created_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Created From IP')),
        ('updated_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Updated From IP')),
    ]


STATUS_CHOICES = [
    ('pending_payment', 'Pending Payment'),
    ('payment_expired', 'Payment Expired'),
    ('paid', 'Paid'),
    ('processing', 'Processing'),
    ('ready_for_claim', 'Ready for Claim'),
    ('claimed', 'Claimed'),
    ('released', 'Released'),
    ('cancelled', 'Cancelled'),
    ('rejected', 'Rejected'),
]

PAYMENT_METHOD_CHOICES = [('cash', 'Cash'), ('digital', 'Digital')]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='DocumentRequest',
            fields=base_fields() + [
                ('request_number', models.CharField(db_index=True, max_length=50, unique=True, verbose_name='Request Number')),
                ('student_id', models.CharField(db_index=True, max_length=50, verbose_name='Student ID')),
                ('document_type', models.CharField(max_length=100, verbose_name='Document Type')),
                ('quantity', models.PositiveSmallIntegerField(
                    default=1,
                    validators=[
                        django.core.validators.MinValueValidator(1),
                        django.core.validators.MaxValueValidator(10),
                    ],
                    verbose_name='Quantity'
                )),
                ('purpose', models.CharField(max_length=500, verbose_name='Purpose')),
                ('amount', models.DecimalField(
                    decimal_places=2,
                    max_digits=12,
                    validators=[django.core.validators.MinValueValidator(Decimal('0.00'))],
                    verbose_name='Amount'
                )),
                ('status', models.CharField(
                    choices=STATUS_CHOICES, db_index=True, default='pending_payment',
                    max_length=20, verbose_name='Status'
                )),
                ('payment_method', models.CharField(
                    blank=True, choices=PAYMENT_METHOD_CHOICES, max_length=10, null=True,
                    verbose_name='Payment Method'
                )),
                ('payment_deadline', models.DateTimeField(blank=True, db_index=True, null=True, verbose_name='Payment Deadline')),
                ('expired_at', models.DateTimeField(blank=True, null=True, verbose_name='Expired At')),
                ('processed_by_id', models.CharField(blank=True, max_length=50, null=True, verbose_name='Processed By ID')),
                ('released_by_id', models.CharField(blank=True, max_length=50, null=True, verbose_name='Released By ID')),
                ('released_to', models.CharField(
                    blank=True, help_text='Name of the student or authorized representative',
                    max_length=200, verbose_name='Released To'
                )),
                ('released_id_type', models.CharField(blank=True, max_length=50, verbose_name='Released ID Type')),
                ('released_at', models.DateTimeField(blank=True, null=True, verbose_name='Released At')),
                ('rejection_reason', models.TextField(blank=True, null=True, verbose_name='Rejection Reason')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelled At')),
                ('claimed_by_student', models.BooleanField(default=False, verbose_name='Claimed By Student')),
                ('claimed_at', models.DateTimeField(blank=True, null=True, verbose_name='Claimed At')),
                ('claim_notes', models.TextField(blank=True, verbose_name='Claim Notes')),
                ('version', models.PositiveIntegerField(default=1, verbose_name='Version')),
            ],
            options={
                'verbose_name': 'Document Request',
                'verbose_name_plural': 'Document Requests',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['student_id', 'created_at'], name='registrar_req_student_idx'),
                    models.Index(fields=['status', 'payment_deadline'], name='registrar_req_deadline_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('amount__gte', 0)),
                        name='registrar_request_amount_non_negative',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('claimed_at__isnull', False), ('status__in', ['claimed', 'released'])),
                            models.Q(
                                ('claimed_at__isnull', True),
                                models.Q(('status__in', ['claimed', 'released']), _negated=True),
                            ),
                            _connector='OR',
                        ),
                        name='registrar_request_claimed_at_matches_status',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=base_fields() + [
                ('amount', models.DecimalField(
                    decimal_places=2,
                    max_digits=12,
                    validators=[django.core.validators.MinValueValidator(Decimal('0.00'))],
                    verbose_name='Amount'
                )),
                ('payment_method', models.CharField(choices=PAYMENT_METHOD_CHOICES, max_length=10, verbose_name='Payment Method')),
                ('status', models.CharField(
                    choices=[('pending', 'Pending'), ('paid', 'Paid'), ('failed', 'Failed')],
                    db_index=True, default='pending', max_length=10, verbose_name='Payment Status'
                )),
                ('payment_reference_number', models.CharField(
                    blank=True, help_text='Cashier-facing lookup key for cash payments',
                    max_length=50, null=True, unique=True, verbose_name='Payment Reference Number'
                )),
                ('transaction_id', models.CharField(
                    blank=True, help_text='Payment gateway transaction id for digital payments',
                    max_length=100, null=True, unique=True, verbose_name='Transaction ID'
                )),
                ('official_receipt_number', models.CharField(blank=True, max_length=50, null=True, verbose_name='Official Receipt Number')),
                ('cashier_id', models.CharField(blank=True, max_length=50, null=True, verbose_name='Cashier ID')),
                ('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='Paid At')),
                ('failed_at', models.DateTimeField(blank=True, null=True, verbose_name='Failed At')),
                ('failure_reason', models.CharField(blank=True, max_length=255, verbose_name='Failure Reason')),
                ('request', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='payments',
                    to='registrar.documentrequest',
                    verbose_name='Document Request'
                )),
            ],
            options={
                'verbose_name': 'Payment',
                'verbose_name_plural': 'Payments',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['request', 'status'], name='registrar_payment_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('status', 'paid')),
                        fields=('request',),
                        name='registrar_one_paid_payment_per_request',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(('amount__gte', 0)),
                        name='registrar_payment_amount_non_negative',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='RequestStatusChange',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sequence', models.PositiveIntegerField(verbose_name='Sequence')),
                ('from_status', models.CharField(choices=STATUS_CHOICES, max_length=20, verbose_name='From Status')),
                ('to_status', models.CharField(choices=STATUS_CHOICES, max_length=20, verbose_name='To Status')),
                ('actor_id', models.CharField(blank=True, max_length=50, null=True, verbose_name='Actor ID')),
                ('occurred_at', models.DateTimeField(db_index=True, verbose_name='Occurred At')),
                ('reason', models.TextField(blank=True, verbose_name='Reason / Notes')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('request', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='status_changes',
                    to='registrar.documentrequest'
                )),
            ],
            options={
                'verbose_name': 'Request Status Change',
                'verbose_name_plural': 'Request Status Changes',
                'ordering': ['occurred_at', 'sequence'],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('request', 'sequence'),
                        name='registrar_status_change_sequence_unique',
                    ),
                ],
            },
        ),
    ]
