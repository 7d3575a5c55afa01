# registrar/models.py

"""
Registrar Document Request Models

- DocumentRequest: the request aggregate moved through the status table
- Payment: payment attempts against a request (cash or digital)
- RequestStatusChange: append-only trail of committed status transitions

Status only ever changes through registrar.services.RequestWorkflow.
"""

from django.db import models
from django.db.models import Q
from django.core.validators import MinValueValidator, MaxValueValidator
from decimal import Decimal
import logging

from utils.models import BaseModel
from registrar import workflow
from registrar.workflow import RequestStatus, CLAIM_STAMPED_STATUSES

logger = logging.getLogger(__name__)

CLAIM_STAMPED_VALUES = sorted(status.value for status in CLAIM_STAMPED_STATUSES)


class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    DIGITAL = 'digital', 'Digital'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PAID = 'paid', 'Paid'
    FAILED = 'failed', 'Failed'


# =============================================================================
# DOCUMENT REQUEST
# =============================================================================

class DocumentRequestQuerySet(models.QuerySet):

    def active(self):
        return self.filter(status__in=workflow.ACTIVE_STATUSES)

    def pending_payment(self):
        return self.filter(status=RequestStatus.PENDING_PAYMENT)

    def overdue(self, now):
        """Pending requests whose payment deadline has passed."""
        return self.pending_payment().filter(
            payment_deadline__isnull=False,
            payment_deadline__lt=now,
        )

    def for_student(self, student_id):
        return self.filter(student_id=str(student_id))


class DocumentRequest(BaseModel):
    """A student's request for a registrar document"""

    # -------------------------------------------------------------------------
    # IDENTIFICATION
    # -------------------------------------------------------------------------

    request_number = models.CharField("Request Number", max_length=50, unique=True, db_index=True)
    student_id = models.CharField("Student ID", max_length=50, db_index=True)

    # -------------------------------------------------------------------------
    # REQUEST DETAILS
    # -------------------------------------------------------------------------

    document_type = models.CharField("Document Type", max_length=100)
    quantity = models.PositiveSmallIntegerField(
        "Quantity",
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(10)]
    )
    purpose = models.CharField("Purpose", max_length=500)
    amount = models.DecimalField(
        "Amount",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    # -------------------------------------------------------------------------
    # STATUS AND PAYMENT
    # -------------------------------------------------------------------------

    status = models.CharField(
        "Status",
        max_length=20,
        choices=RequestStatus.choices,
        default=RequestStatus.PENDING_PAYMENT,
        db_index=True
    )
    payment_method = models.CharField(
        "Payment Method",
        max_length=10,
        choices=PaymentMethod.choices,
        null=True,
        blank=True
    )
    payment_deadline = models.DateTimeField("Payment Deadline", null=True, blank=True, db_index=True)
    expired_at = models.DateTimeField("Expired At", null=True, blank=True)

    # -------------------------------------------------------------------------
    # PROCESSING AND RELEASE
    # -------------------------------------------------------------------------

    processed_by_id = models.CharField("Processed By ID", max_length=50, null=True, blank=True)
    released_by_id = models.CharField("Released By ID", max_length=50, null=True, blank=True)
    released_to = models.CharField(
        "Released To",
        max_length=200,
        blank=True,
        help_text="Name of the student or authorized representative"
    )
    released_id_type = models.CharField("Released ID Type", max_length=50, blank=True)
    released_at = models.DateTimeField("Released At", null=True, blank=True)

    rejection_reason = models.TextField("Rejection Reason", null=True, blank=True)
    cancelled_at = models.DateTimeField("Cancelled At", null=True, blank=True)

    # -------------------------------------------------------------------------
    # CLAIM
    # -------------------------------------------------------------------------

    claimed_by_student = models.BooleanField("Claimed By Student", default=False)
    claimed_at = models.DateTimeField("Claimed At", null=True, blank=True)
    claim_notes = models.TextField("Claim Notes", blank=True)

    # Bumped on every committed transition; guards compare-and-swap updates
    version = models.PositiveIntegerField("Version", default=1)

    objects = DocumentRequestQuerySet.as_manager()

    class Meta:
        verbose_name = "Document Request"
        verbose_name_plural = "Document Requests"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['student_id', 'created_at'], name='registrar_req_student_idx'),
            models.Index(fields=['status', 'payment_deadline'], name='registrar_req_deadline_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gte=0),
                name='registrar_request_amount_non_negative',
            ),
            models.CheckConstraint(
                condition=(
                    Q(claimed_at__isnull=False, status__in=CLAIM_STAMPED_VALUES)
                    | (Q(claimed_at__isnull=True) & ~Q(status__in=CLAIM_STAMPED_VALUES))
                ),
                name='registrar_request_claimed_at_matches_status',
            ),
        ]

    def __str__(self):
        return f"{self.request_number} - {self.get_document_type_display()}"

    def get_document_type_display(self):
        return self.document_type.replace('_', ' ').title()

    # -------------------------------------------------------------------------
    # STATUS QUERIES (pure, no side effects)
    # -------------------------------------------------------------------------

    @property
    def current_status(self):
        return workflow.coerce_status(self.status)

    def can_transition_to(self, target):
        return workflow.can_transition_to(self.status, target)

    def is_final(self):
        return workflow.is_final(self.status)

    def is_active(self):
        return workflow.is_active(self.status)

    def is_pending_payment(self):
        return self.current_status == RequestStatus.PENDING_PAYMENT

    def is_payment_expired(self):
        return self.current_status == RequestStatus.PAYMENT_EXPIRED

    def is_paid(self):
        return self.current_status == RequestStatus.PAID

    def is_processing(self):
        return self.current_status == RequestStatus.PROCESSING

    def is_ready_for_claim(self):
        return self.current_status == RequestStatus.READY_FOR_CLAIM

    def is_claimed(self):
        return self.current_status == RequestStatus.CLAIMED

    def is_released(self):
        return self.current_status == RequestStatus.RELEASED

    def is_cancelled(self):
        return self.current_status == RequestStatus.CANCELLED

    def is_rejected(self):
        return self.current_status == RequestStatus.REJECTED

    # -------------------------------------------------------------------------
    # HELPER METHODS
    # -------------------------------------------------------------------------

    def latest_payment(self):
        return self.payments.order_by('-created_at').first()

    def successful_payment(self):
        return self.payments.filter(status=PaymentStatus.PAID).first()

    def get_status_history(self):
        return self.status_changes.order_by('occurred_at', 'sequence')


# =============================================================================
# PAYMENT
# =============================================================================

class Payment(BaseModel):
    """One attempt to pay for a document request"""

    request = models.ForeignKey(
        DocumentRequest,
        verbose_name="Document Request",
        on_delete=models.PROTECT,
        related_name='payments'
    )

    amount = models.DecimalField(
        "Amount",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    payment_method = models.CharField("Payment Method", max_length=10, choices=PaymentMethod.choices)
    status = models.CharField(
        "Payment Status",
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True
    )

    # -------------------------------------------------------------------------
    # REFERENCES
    # -------------------------------------------------------------------------

    payment_reference_number = models.CharField(
        "Payment Reference Number",
        max_length=50,
        unique=True,
        null=True,
        blank=True,
        help_text="Cashier-facing lookup key for cash payments"
    )
    transaction_id = models.CharField(
        "Transaction ID",
        max_length=100,
        unique=True,
        null=True,
        blank=True,
        help_text="Payment gateway transaction id for digital payments"
    )

    # -------------------------------------------------------------------------
    # CONFIRMATION
    # -------------------------------------------------------------------------

    official_receipt_number = models.CharField("Official Receipt Number", max_length=50, null=True, blank=True)
    cashier_id = models.CharField("Cashier ID", max_length=50, null=True, blank=True)
    paid_at = models.DateTimeField("Paid At", null=True, blank=True)

    failed_at = models.DateTimeField("Failed At", null=True, blank=True)
    failure_reason = models.CharField("Failure Reason", max_length=255, blank=True)

    class Meta:
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['request', 'status'], name='registrar_payment_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['request'],
                condition=Q(status='paid'),
                name='registrar_one_paid_payment_per_request',
            ),
            models.CheckConstraint(
                condition=Q(amount__gte=0),
                name='registrar_payment_amount_non_negative',
            ),
        ]

    def __str__(self):
        reference = self.payment_reference_number or self.transaction_id or self.pk
        return f"{reference} - {self.get_status_display()}"

    def is_pending(self):
        return self.status == PaymentStatus.PENDING

    def is_paid(self):
        return self.status == PaymentStatus.PAID


# =============================================================================
# STATUS TRAIL
# =============================================================================

class RequestStatusChange(models.Model):
    """
    One committed status transition of a document request.

    Append-only: rows are written by RequestWorkflow and never updated or
    deleted. Rejected transition attempts leave no row.
    """

    request = models.ForeignKey(
        DocumentRequest,
        on_delete=models.PROTECT,
        related_name='status_changes'
    )
    # Position within the request's trail, 1-based
    sequence = models.PositiveIntegerField("Sequence")
    from_status = models.CharField("From Status", max_length=20, choices=RequestStatus.choices)
    to_status = models.CharField("To Status", max_length=20, choices=RequestStatus.choices)
    actor_id = models.CharField("Actor ID", max_length=50, null=True, blank=True)
    occurred_at = models.DateTimeField("Occurred At", db_index=True)
    reason = models.TextField("Reason / Notes", blank=True)
    metadata = models.JSONField("Metadata", default=dict, blank=True)

    class Meta:
        verbose_name = "Request Status Change"
        verbose_name_plural = "Request Status Changes"
        ordering = ['occurred_at', 'sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['request', 'sequence'],
                name='registrar_status_change_sequence_unique',
            ),
        ]

    def __str__(self):
        return f"{self.from_status} -> {self.to_status} at {self.occurred_at}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Status changes are append-only and cannot be modified.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Status changes are append-only and cannot be deleted.")
