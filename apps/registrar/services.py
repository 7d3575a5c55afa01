# registrar/services.py

"""
Document Request Workflow Services

- RequestWorkflow: guarded status transitions, request creation, expiry sweep
- PaymentLedger: cash payment references, cashier confirmation, gateway
  callbacks, receipts
- ClaimConfirmation: student-confirmed pickup of a ready document

Every public method returns a WorkflowResult. Expected failures (illegal
moves, failed preconditions, unknown references, lost races) come back as
result.error and leave the database and the passed-in instances untouched.
Database errors propagate unchanged.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Any, Optional

from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.utils import timezone
import logging

from registrar.audit import AuditTrail
from registrar.conf import get_setting
from registrar.exceptions import (
    WorkflowError,
    IllegalTransition,
    PreconditionFailed,
    NotFound,
    ConcurrentModification,
)
from registrar.models import DocumentRequest, Payment, PaymentMethod, PaymentStatus
from registrar.signals import request_status_changed, payment_confirmed
from registrar.utils import (
    get_current_time,
    get_unit_price,
    generate_payment_reference,
    generate_request_number,
    to_money,
)
from registrar.workflow import (
    RequestStatus,
    can_transition_to,
    coerce_status,
    plan_transition,
)
from utils.audit import log_activity
from utils.context import get_current_user_id

logger = logging.getLogger(__name__)

PAYMENT_NOT_FOUND = 'Payment reference not found or already processed.'


# =============================================================================
# RESULT TYPE
# =============================================================================

@dataclass
class WorkflowResult:
    """
    Outcome of a workflow operation.

    Truthy on success, so callers can write `if workflow.cancel(request):`.
    """
    ok: bool
    value: Any = None
    error: Optional[WorkflowError] = None

    def __bool__(self):
        return self.ok

    @classmethod
    def success(cls, value=None):
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error):
        return cls(ok=False, error=error)


def run_operation(operation, label):
    """
    Run operation inside one transaction and convert workflow errors.

    Anything raised rolls the whole operation back; WorkflowError becomes a
    failed result, every other exception propagates.
    """
    try:
        with transaction.atomic():
            value = operation()
    except WorkflowError as error:
        logger.warning(f"{label} rejected: {error.message}")
        return WorkflowResult.failure(error)
    return WorkflowResult.success(value)


def save_with_unique_number(instance, field_name, generate, now):
    """
    Insert instance under a freshly generated daily number.

    The next number is computed under select_for_update, but two first-of-day
    inserts can still compute the same one; the unique constraint rejects
    the loser, which retries with the following number inside a savepoint.
    IntegrityError propagates once REFERENCE_RETRY_ATTEMPTS are used up.
    """
    attempts = get_setting('REFERENCE_RETRY_ATTEMPTS')
    last_error = None

    for attempt in range(attempts):
        number = generate(now, offset=attempt)
        setattr(instance, field_name, number)
        try:
            with transaction.atomic():
                instance.save()
            return instance
        except IntegrityError as error:
            logger.warning(f"{field_name} {number} already taken, retrying")
            last_error = error

    raise last_error


# =============================================================================
# REQUEST WORKFLOW
# =============================================================================

class RequestWorkflow:
    """
    Owns document request status changes.

    Args:
        clock: Zero-argument callable returning an aware datetime. Defaults
            to registrar.utils.get_current_time.
    """

    def __init__(self, clock=None):
        self.clock = clock or get_current_time

    # -------------------------------------------------------------------------
    # CORE TRANSITION
    # -------------------------------------------------------------------------

    def transition_to(self, request, target, actor_id=None, reason=None,
                      metadata=None, **changes):
        """
        Move request to target if the status table allows it.

        Args:
            request: DocumentRequest instance (its version is the
                optimistic-concurrency token)
            target: RequestStatus or its value
            actor_id: Who performs the move (None for system moves)
            reason: Rejection/cancellation reason or claim notes
            metadata (dict, optional): Stored on the audit entry
            **changes: Extra request fields written in the same update

        Returns:
            WorkflowResult with the updated request as value
        """
        return run_operation(
            lambda: self._transition(request, target, actor_id, reason, metadata, **changes),
            f"Transition of {request.request_number} to {target}",
        )

    def _transition(self, request, target, actor_id=None, reason=None,
                    metadata=None, **changes):
        """Apply a transition. Must run inside transaction.atomic()."""
        now = self.clock()
        plan = plan_transition(request.status, target, now, reason=reason, **changes)

        fields = dict(plan.changes)
        fields['status'] = plan.to_status
        fields['version'] = request.version + 1
        fields['updated_at'] = now
        updated_by = actor_id if actor_id is not None else get_current_user_id()
        if updated_by is not None:
            fields['updated_by_id'] = str(updated_by)

        rows = DocumentRequest.objects.filter(
            pk=request.pk,
            status=plan.from_status,
            version=request.version,
        ).update(**fields)

        if rows == 0:
            current = DocumentRequest.objects.filter(pk=request.pk).values_list(
                'status', flat=True
            ).first()
            if current is not None and not can_transition_to(current, plan.to_status):
                raise IllegalTransition(coerce_status(current), plan.to_status)
            raise ConcurrentModification(current)

        AuditTrail.record(
            request,
            from_status=plan.from_status,
            to_status=plan.to_status,
            occurred_at=now,
            actor_id=actor_id,
            reason=plan.reason,
            metadata=metadata,
        )

        for name, value in fields.items():
            setattr(request, name, value)

        logger.info(
            f"Request {request.request_number}: {plan.from_status} -> {plan.to_status}"
        )

        transaction.on_commit(lambda: request_status_changed.send(
            sender=DocumentRequest,
            request=request,
            from_status=plan.from_status,
            to_status=plan.to_status,
            actor_id=actor_id,
        ))

        return request

    # -------------------------------------------------------------------------
    # CONVENIENCE TRANSITIONS
    # -------------------------------------------------------------------------

    def mark_as_paid(self, request, method, reference=None, actor_id=None):
        """PendingPayment -> Paid, recording the payment method."""
        return self.transition_to(
            request,
            RequestStatus.PAID,
            actor_id=actor_id,
            metadata={'payment_method': method, 'reference': reference},
            payment_method=method,
        )

    def mark_as_processing(self, request, actor_id=None):
        changes = {'processed_by_id': str(actor_id)} if actor_id is not None else {}
        return self.transition_to(request, RequestStatus.PROCESSING, actor_id=actor_id, **changes)

    def mark_as_ready_for_claim(self, request, actor_id=None):
        changes = {'processed_by_id': str(actor_id)} if actor_id is not None else {}
        return self.transition_to(request, RequestStatus.READY_FOR_CLAIM, actor_id=actor_id, **changes)

    def mark_as_claimed(self, request, actor_id=None, notes=None):
        """ReadyForClaim -> Claimed; stamps claimed_at and claimed_by_student."""
        changes = {'claim_notes': notes.strip()} if notes and notes.strip() else {}
        return self.transition_to(
            request, RequestStatus.CLAIMED, actor_id=actor_id, reason=notes, **changes
        )

    def mark_as_released(self, request, actor_id=None, released_to='', released_id_type=''):
        """Claimed -> Released; stamps released_at and who released to whom."""
        changes = {
            'released_to': released_to or '',
            'released_id_type': released_id_type or '',
        }
        if actor_id is not None:
            changes['released_by_id'] = str(actor_id)
        return self.transition_to(request, RequestStatus.RELEASED, actor_id=actor_id, **changes)

    def reject(self, request, reason, actor_id=None):
        """Processing -> Rejected. An empty reason fails with PreconditionFailed."""
        return self.transition_to(request, RequestStatus.REJECTED, actor_id=actor_id, reason=reason)

    def cancel(self, request, actor_id=None, reason=None):
        """
        Cancel the request. Still-pending payments fail with it, so the
        cashier can no longer look up or confirm their references.
        """
        def operation():
            self._transition(request, RequestStatus.CANCELLED, actor_id=actor_id, reason=reason)
            self._fail_pending_payments(request, 'request cancelled', actor_id)
            return request

        return run_operation(operation, f"Cancellation of {request.request_number}")

    # -------------------------------------------------------------------------
    # PAYMENT DEADLINE
    # -------------------------------------------------------------------------

    def expire(self, request):
        """
        PendingPayment -> PaymentExpired, failing any still-pending payment
        so a cashier can no longer confirm it.
        """
        def operation():
            self._transition(
                request,
                RequestStatus.PAYMENT_EXPIRED,
                reason='Payment deadline passed',
                metadata={'payment_deadline': request.payment_deadline.isoformat()
                          if request.payment_deadline else None},
            )
            self._fail_pending_payments(request, 'request payment expired')
            return request

        return run_operation(operation, f"Expiry of {request.request_number}")

    def _fail_pending_payments(self, request, reason, actor_id=None):
        """Mark the request's pending payments failed. Runs inside the caller's transaction."""
        now = self.clock()
        pending = list(Payment.objects.filter(request=request, status=PaymentStatus.PENDING))
        if not pending:
            return

        Payment.objects.filter(
            pk__in=[payment.pk for payment in pending],
            status=PaymentStatus.PENDING,
        ).update(
            status=PaymentStatus.FAILED,
            failed_at=now,
            failure_reason=reason,
            updated_at=now,
        )

        for payment in pending:
            log_activity(
                'payment_invalidated',
                timestamp=now,
                user_id=actor_id,
                target_object=payment,
                old_values={'status': PaymentStatus.PENDING},
                new_values={'status': PaymentStatus.FAILED, 'failure_reason': reason},
                description=f"Pending payment failed: {reason} ({request.request_number})",
            )
        logger.info(f"Failed {len(pending)} pending payment(s) of {request.request_number}: {reason}")

    def expire_overdue_requests(self, now=None):
        """
        Expire every pending request whose payment deadline has passed.

        Called periodically by the scheduler (expire_unpaid_requests
        command). A request that changed concurrently is skipped and picked
        up again by the next run if it is still overdue.

        Returns:
            list: WorkflowResult per overdue request
        """
        now = now or self.clock()
        results = []

        overdue = list(DocumentRequest.objects.overdue(now).order_by('payment_deadline'))
        for request in overdue:
            result = self.expire(request)
            results.append(result)

        expired = sum(1 for result in results if result)
        logger.info(f"Payment expiry sweep: {expired} of {len(results)} overdue request(s) expired")
        return results

    # -------------------------------------------------------------------------
    # CREATION
    # -------------------------------------------------------------------------

    def remaining_daily_requests(self, student_id):
        today = timezone.localtime(self.clock()).date()
        limit = get_setting('DAILY_REQUEST_LIMIT')
        count = DocumentRequest.objects.for_student(student_id).filter(
            created_at__date=today
        ).count()
        return max(0, limit - count)

    def create_request(self, student_id, document_type, quantity, purpose, actor_id=None):
        """
        Submit a new document request in PendingPayment.

        The amount is the configured unit price times quantity and the
        payment deadline is PAYMENT_WINDOW_HOURS from now.

        Returns:
            WorkflowResult with the new DocumentRequest as value
        """
        def operation():
            unit_price = get_unit_price(document_type)
            if unit_price is None:
                raise PreconditionFailed('document_type', 'Please select a valid document type.')

            max_quantity = get_setting('MAX_QUANTITY')
            if not isinstance(quantity, int) or isinstance(quantity, bool) or not 1 <= quantity <= max_quantity:
                raise PreconditionFailed('quantity', f'Quantity must be between 1 and {max_quantity}.')

            cleaned_purpose = (purpose or '').strip()
            if not cleaned_purpose:
                raise PreconditionFailed('purpose', 'Please select a purpose for the request.')

            if self.remaining_daily_requests(student_id) <= 0:
                limit = get_setting('DAILY_REQUEST_LIMIT')
                raise PreconditionFailed(
                    'document_request',
                    f'Daily document request limit has been reached. You have submitted '
                    f'{limit} requests today. Please try again tomorrow.'
                )

            now = self.clock()
            request = DocumentRequest(
                student_id=str(student_id),
                document_type=document_type,
                quantity=quantity,
                purpose=cleaned_purpose,
                amount=unit_price * quantity,
                status=RequestStatus.PENDING_PAYMENT,
                payment_deadline=now + timedelta(hours=get_setting('PAYMENT_WINDOW_HOURS')),
                created_at=now,
                updated_at=now,
            )
            if actor_id is not None:
                request.created_by_id = str(actor_id)
            save_with_unique_number(request, 'request_number', generate_request_number, now)

            log_activity(
                'document_request_created',
                timestamp=now,
                user_id=actor_id,
                target_object=request,
                new_values={
                    'request_number': request.request_number,
                    'document_type': document_type,
                    'quantity': quantity,
                    'amount': request.amount,
                },
                description=f"Document request {request.request_number} created",
            )
            logger.info(f"Created document request {request.request_number} for student {student_id}")
            return request

        return run_operation(operation, f"Document request for student {student_id}")


# =============================================================================
# PAYMENT LEDGER
# =============================================================================

@dataclass(frozen=True)
class ReceiptData:
    official_receipt_number: Optional[str]
    payment_reference_number: Optional[str]
    transaction_id: Optional[str]
    amount: Decimal
    payment_method: str
    paid_at: Any
    cashier_id: Optional[str]
    request_number: str
    document_type: str
    quantity: int
    purpose: str
    student_id: str


class PaymentLedger:
    """
    Payment attempts against document requests.

    A request may collect several attempts over time but at most one of
    them is ever paid (enforced by a partial unique constraint as well as
    by the status table: only PendingPayment can move to Paid).
    """

    def __init__(self, clock=None, workflow=None):
        self.clock = clock or get_current_time
        self.workflow = workflow or RequestWorkflow(clock=self.clock)

    # -------------------------------------------------------------------------
    # CASH
    # -------------------------------------------------------------------------

    def generate_cash_payment(self, request, amount=None, actor_id=None):
        """
        Issue a new cash payment reference (PRN) for a pending request.

        Any earlier pending payment of the request is invalidated first, so
        only the newest reference can be confirmed at the cashier.
        The request itself stays in PendingPayment.

        Returns:
            WorkflowResult with the new Payment as value
        """
        def operation():
            locked = self._lock_request(request)
            if locked.status != RequestStatus.PENDING_PAYMENT:
                raise PreconditionFailed('payment', 'Cash payment cannot be generated for this request.')

            payment_amount = self._payment_amount(locked, amount)
            now = self.clock()
            self._supersede_pending(locked, actor_id)

            payment = self._create_with_unique_reference(locked, payment_amount, now)

            log_activity(
                'payment_created',
                timestamp=now,
                user_id=actor_id,
                target_object=payment,
                new_values={
                    'payment_reference_number': payment.payment_reference_number,
                    'amount': payment.amount,
                    'payment_method': PaymentMethod.CASH,
                },
                description=(
                    f"Cash payment reference generated for document request {locked.request_number}"
                ),
                metadata={'request_number': locked.request_number},
            )
            return payment

        return run_operation(operation, f"Cash payment for {request.request_number}")

    def lookup_by_reference(self, reference):
        """
        Cashier lookup of a pending cash payment.

        Unknown references and payments that are no longer pending both
        fail with NotFound.
        """
        def operation():
            payment = self._find_cash_payment(reference)
            if payment is None or payment.status != PaymentStatus.PENDING:
                raise NotFound(PAYMENT_NOT_FOUND)
            return payment

        return run_operation(operation, f"Lookup of payment reference {reference}")

    def confirm_cash_payment(self, reference, official_receipt_number, cashier_id):
        """
        Cashier confirms a cash payment against an official receipt.

        The payment moves pending -> paid and the owning request moves
        PendingPayment -> Paid in the same transaction. Of two cashiers
        confirming the same reference only one succeeds; the other gets
        NotFound.
        """
        def operation():
            receipt_number = (official_receipt_number or '').strip()
            if not receipt_number:
                raise PreconditionFailed(
                    'official_receipt_number', 'The official receipt number is required.'
                )

            payment = self._find_cash_payment(reference)
            if payment is None or payment.status != PaymentStatus.PENDING:
                raise NotFound(PAYMENT_NOT_FOUND)

            request = self._lock_request(payment.request)
            now = self.clock()

            rows = Payment.objects.filter(
                pk=payment.pk, status=PaymentStatus.PENDING
            ).update(
                status=PaymentStatus.PAID,
                official_receipt_number=receipt_number,
                cashier_id=str(cashier_id),
                paid_at=now,
                updated_at=now,
            )
            if rows == 0:
                raise NotFound(PAYMENT_NOT_FOUND)

            self.workflow._transition(
                request,
                RequestStatus.PAID,
                actor_id=cashier_id,
                metadata={
                    'payment_method': PaymentMethod.CASH,
                    'reference': payment.payment_reference_number,
                    'official_receipt_number': receipt_number,
                },
                payment_method=PaymentMethod.CASH,
            )

            payment.status = PaymentStatus.PAID
            payment.official_receipt_number = receipt_number
            payment.cashier_id = str(cashier_id)
            payment.paid_at = now
            payment.updated_at = now
            payment.request = request

            log_activity(
                'payment_confirmed',
                timestamp=now,
                user_id=cashier_id,
                target_object=payment,
                old_values={'status': PaymentStatus.PENDING},
                new_values={
                    'status': PaymentStatus.PAID,
                    'official_receipt_number': receipt_number,
                    'amount': payment.amount,
                },
                description=f"Cash payment confirmed for request {request.request_number}",
                metadata={'payment_reference': payment.payment_reference_number},
            )
            self._announce_confirmation(payment, request)
            return payment

        return run_operation(operation, f"Confirmation of payment reference {reference}")

    # -------------------------------------------------------------------------
    # DIGITAL (payment gateway callbacks)
    # -------------------------------------------------------------------------

    def record_digital_payment(self, request, transaction_id, amount=None, actor_id=None):
        """Register a gateway checkout as a pending digital payment."""
        def operation():
            txn = (transaction_id or '').strip()
            if not txn:
                raise PreconditionFailed('transaction_id', 'A gateway transaction id is required.')

            locked = self._lock_request(request)
            if locked.status != RequestStatus.PENDING_PAYMENT:
                raise PreconditionFailed('payment', 'Digital payment cannot be started for this request.')

            payment_amount = self._payment_amount(locked, amount)
            now = self.clock()
            self._supersede_pending(locked, actor_id)

            payment = Payment(
                request=locked,
                amount=payment_amount,
                payment_method=PaymentMethod.DIGITAL,
                status=PaymentStatus.PENDING,
                transaction_id=txn,
                created_at=now,
                updated_at=now,
            )
            payment.save()

            log_activity(
                'payment_created',
                timestamp=now,
                user_id=actor_id,
                target_object=payment,
                new_values={'transaction_id': txn, 'amount': payment.amount,
                            'payment_method': PaymentMethod.DIGITAL},
                description=f"Digital payment initiated for document request {locked.request_number}",
            )
            return payment

        return run_operation(operation, f"Digital payment for {request.request_number}")

    def complete_digital_payment(self, transaction_id):
        """Gateway reported success: payment -> paid, request -> Paid."""
        def operation():
            payment = self._find_digital_payment(transaction_id)
            now = self.clock()
            request = self._lock_request(payment.request)

            rows = Payment.objects.filter(
                pk=payment.pk, status=PaymentStatus.PENDING
            ).update(status=PaymentStatus.PAID, paid_at=now, updated_at=now)
            if rows == 0:
                raise NotFound(PAYMENT_NOT_FOUND)

            self.workflow._transition(
                request,
                RequestStatus.PAID,
                metadata={'payment_method': PaymentMethod.DIGITAL, 'reference': payment.transaction_id},
                payment_method=PaymentMethod.DIGITAL,
            )

            payment.status = PaymentStatus.PAID
            payment.paid_at = now
            payment.updated_at = now
            payment.request = request

            log_activity(
                'payment_completed',
                timestamp=now,
                target_object=payment,
                old_values={'status': PaymentStatus.PENDING},
                new_values={'status': PaymentStatus.PAID, 'amount': payment.amount},
                description=f"Digital payment completed for document request {request.request_number}",
            )
            self._announce_confirmation(payment, request)
            return payment

        return run_operation(operation, f"Completion of transaction {transaction_id}")

    def fail_digital_payment(self, transaction_id, reason=''):
        """Gateway reported failure: payment -> failed, request unchanged."""
        def operation():
            payment = self._find_digital_payment(transaction_id)
            now = self.clock()

            rows = Payment.objects.filter(
                pk=payment.pk, status=PaymentStatus.PENDING
            ).update(
                status=PaymentStatus.FAILED,
                failed_at=now,
                failure_reason=(reason or 'Unknown')[:255],
                updated_at=now,
            )
            if rows == 0:
                raise NotFound(PAYMENT_NOT_FOUND)

            payment.status = PaymentStatus.FAILED
            payment.failed_at = now
            payment.failure_reason = (reason or 'Unknown')[:255]

            log_activity(
                'payment_failed',
                timestamp=now,
                target_object=payment,
                old_values={'status': PaymentStatus.PENDING},
                new_values={'status': PaymentStatus.FAILED},
                description=f"Digital payment failed for document request {payment.request.request_number}",
                metadata={'failure_reason': payment.failure_reason},
            )
            return payment

        return run_operation(operation, f"Failure of transaction {transaction_id}")

    # -------------------------------------------------------------------------
    # RECEIPTS
    # -------------------------------------------------------------------------

    def get_receipt(self, payment):
        """
        Receipt data for a paid payment; NotFound for anything not paid.

        Whether the caller may see the receipt is decided by the
        authorization layer before this is called.
        """
        if payment.status != PaymentStatus.PAID:
            return WorkflowResult.failure(NotFound('Receipt is not available for this payment.'))

        request = payment.request
        return WorkflowResult.success(ReceiptData(
            official_receipt_number=payment.official_receipt_number,
            payment_reference_number=payment.payment_reference_number,
            transaction_id=payment.transaction_id,
            amount=to_money(payment.amount),
            payment_method=payment.payment_method,
            paid_at=payment.paid_at,
            cashier_id=payment.cashier_id,
            request_number=request.request_number,
            document_type=request.document_type,
            quantity=request.quantity,
            purpose=request.purpose,
            student_id=request.student_id,
        ))

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------

    def _lock_request(self, request):
        """Re-read the request row under a row lock for the critical section."""
        return DocumentRequest.objects.select_for_update().get(pk=request.pk)

    def _find_cash_payment(self, reference):
        reference = (reference or '').strip()
        if not reference:
            return None
        return Payment.objects.select_related('request').filter(
            payment_reference_number=reference,
            payment_method=PaymentMethod.CASH,
        ).first()

    def _find_digital_payment(self, transaction_id):
        transaction_id = (transaction_id or '').strip()
        if not transaction_id:
            raise NotFound(PAYMENT_NOT_FOUND)
        payment = Payment.objects.select_related('request').filter(
            transaction_id=transaction_id,
            payment_method=PaymentMethod.DIGITAL,
        ).first()
        if payment is None or payment.status != PaymentStatus.PENDING:
            raise NotFound(PAYMENT_NOT_FOUND)
        return payment

    def _payment_amount(self, request, amount):
        try:
            payment_amount = to_money(request.amount if amount is None else amount)
        except ValueError as error:
            raise PreconditionFailed('amount', str(error)) from None
        if payment_amount < 0:
            raise PreconditionFailed('amount', 'Amount cannot be negative.')
        return payment_amount

    def _supersede_pending(self, request, actor_id=None):
        """Invalidate earlier pending payments of the request."""
        self.workflow._fail_pending_payments(request, 'superseded', actor_id)

    def _create_with_unique_reference(self, request, amount, now):
        """Insert a cash payment under the next free PRN."""
        payment = Payment(
            request=request,
            amount=amount,
            payment_method=PaymentMethod.CASH,
            status=PaymentStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        return save_with_unique_number(
            payment, 'payment_reference_number', generate_payment_reference, now
        )

    def _announce_confirmation(self, payment, request):
        transaction.on_commit(lambda: payment_confirmed.send(
            sender=Payment, payment=payment, request=request,
        ))


# =============================================================================
# CLAIM CONFIRMATION
# =============================================================================

class ClaimConfirmation:
    """
    Student confirmation that a ready document has been picked up.

    A request that is not ready yet fails on the 'claim' field with its own
    message rather than an illegal-transition error.
    """

    NOT_READY_MESSAGE = 'This document is not ready for claim yet.'

    def __init__(self, workflow=None, clock=None):
        self.workflow = workflow or RequestWorkflow(clock=clock)

    def confirm_claim(self, request, requester_id, confirmation, notes=None):
        """
        Args:
            request: DocumentRequest owned by the requester
            requester_id: Student ID of the caller
            confirmation: The caller ticked the confirmation box
            notes: Optional claim notes

        Raises:
            PermissionDenied: requester does not own the request

        Returns:
            WorkflowResult with the claimed request as value
        """
        if str(request.student_id) != str(requester_id):
            raise PermissionDenied('Unauthorized access to this request.')

        def operation():
            now = self.workflow.clock()
            # Readiness is judged on the row, not on the caller's copy
            locked = DocumentRequest.objects.select_for_update().get(pk=request.pk)
            if locked.current_status != RequestStatus.READY_FOR_CLAIM:
                raise PreconditionFailed('claim', self.NOT_READY_MESSAGE)
            if not confirmation:
                raise PreconditionFailed('confirmation', 'Please confirm to proceed.')

            cleaned_notes = (notes or '').strip()
            changes = {'claim_notes': cleaned_notes} if cleaned_notes else {}
            self.workflow._transition(
                locked,
                RequestStatus.CLAIMED,
                actor_id=requester_id,
                reason=cleaned_notes or None,
                **changes
            )

            log_activity(
                'document_claimed',
                timestamp=now,
                user_id=requester_id,
                target_object=locked,
                new_values={'status': RequestStatus.CLAIMED, 'claim_notes': cleaned_notes},
                description='Student confirmed document claim',
            )
            request.refresh_from_db()
            return request

        return run_operation(operation, f"Claim of {request.request_number}")
