# registrar/workflow.py

"""
Document request status table.

Every legal status change lives in ALLOWED_TRANSITIONS. Nothing else in the
codebase decides whether a move is legal: services call plan_transition(),
which is pure (no database, no clock of its own) so it can be tested
without fixtures.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple

from django.db import models

from registrar.exceptions import IllegalTransition, PreconditionFailed, UnknownStatus


class RequestStatus(models.TextChoices):
    PENDING_PAYMENT = 'pending_payment', 'Pending Payment'
    PAYMENT_EXPIRED = 'payment_expired', 'Payment Expired'
    PAID = 'paid', 'Paid'
    PROCESSING = 'processing', 'Processing'
    READY_FOR_CLAIM = 'ready_for_claim', 'Ready for Claim'
    CLAIMED = 'claimed', 'Claimed'
    RELEASED = 'released', 'Released'
    CANCELLED = 'cancelled', 'Cancelled'
    REJECTED = 'rejected', 'Rejected'


STATUS_DESCRIPTIONS = {
    RequestStatus.PENDING_PAYMENT: 'Request submitted. Payment must be completed before the payment deadline.',
    RequestStatus.PAYMENT_EXPIRED: 'Payment deadline passed without payment.',
    RequestStatus.PAID: 'Payment completed (digital or cash). Request is queued for processing.',
    RequestStatus.PROCESSING: 'Registrar staff is preparing the document.',
    RequestStatus.READY_FOR_CLAIM: 'Document is ready and can be claimed by the student.',
    RequestStatus.CLAIMED: 'Student confirmed pickup. Waiting for the official release.',
    RequestStatus.RELEASED: 'Document officially released to the student or an authorized representative.',
    RequestStatus.CANCELLED: 'Request was cancelled by the student or the registrar.',
    RequestStatus.REJECTED: 'Request was rejected by registrar staff.',
}


# (from_status, to_status)
ALLOWED_TRANSITIONS: FrozenSet[Tuple[RequestStatus, RequestStatus]] = frozenset([
    (RequestStatus.PENDING_PAYMENT, RequestStatus.PAID),
    (RequestStatus.PENDING_PAYMENT, RequestStatus.PAYMENT_EXPIRED),
    (RequestStatus.PENDING_PAYMENT, RequestStatus.CANCELLED),
    (RequestStatus.PAID, RequestStatus.PROCESSING),
    (RequestStatus.PAID, RequestStatus.CANCELLED),
    (RequestStatus.PROCESSING, RequestStatus.READY_FOR_CLAIM),
    (RequestStatus.PROCESSING, RequestStatus.REJECTED),
    (RequestStatus.PROCESSING, RequestStatus.CANCELLED),
    (RequestStatus.READY_FOR_CLAIM, RequestStatus.CLAIMED),
    (RequestStatus.READY_FOR_CLAIM, RequestStatus.CANCELLED),
    (RequestStatus.CLAIMED, RequestStatus.RELEASED),
    (RequestStatus.CLAIMED, RequestStatus.CANCELLED),
])

FINAL_STATUSES = frozenset([
    RequestStatus.RELEASED,
    RequestStatus.CANCELLED,
    RequestStatus.REJECTED,
])

ACTIVE_STATUSES = frozenset(status for status in RequestStatus if status not in FINAL_STATUSES)

CANCELLABLE_STATUSES = frozenset(
    from_status for from_status, to_status in ALLOWED_TRANSITIONS
    if to_status == RequestStatus.CANCELLED
)

# claimed_at is set exactly while the request is in one of these
CLAIM_STAMPED_STATUSES = frozenset([RequestStatus.CLAIMED, RequestStatus.RELEASED])


def coerce_status(value) -> RequestStatus:
    """Return value as a RequestStatus; an unknown value is a programming error."""
    if isinstance(value, RequestStatus):
        return value
    try:
        return RequestStatus(value)
    except ValueError:
        raise UnknownStatus(value) from None


def can_transition_to(current, target) -> bool:
    return (coerce_status(current), coerce_status(target)) in ALLOWED_TRANSITIONS


def is_final(status) -> bool:
    return coerce_status(status) in FINAL_STATUSES


def is_active(status) -> bool:
    return coerce_status(status) in ACTIVE_STATUSES


def allowed_targets(status):
    """Statuses reachable in one step, in declaration order."""
    current = coerce_status(status)
    return [target for target in RequestStatus if (current, target) in ALLOWED_TRANSITIONS]


@dataclass(frozen=True)
class TransitionPlan:
    """
    Outcome of a legal transition decision.

    Attributes:
        from_status: Status the request is in now
        to_status: Status the request moves to
        changes: Field values to write together with the new status
        reason: Free-text reason or notes recorded on the audit entry
    """
    from_status: RequestStatus
    to_status: RequestStatus
    changes: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None


def plan_transition(current, target, now, reason=None, **extra) -> TransitionPlan:
    """
    Decide whether current -> target is allowed and which fields change.

    Args:
        current: Current status of the request
        target: Requested status
        now: Aware datetime used for the timestamps the move sets
        reason: Rejection reason, cancellation reason or claim notes
        **extra: Additional field values the caller wants written
            atomically with the status (payment_method, processed_by_id...)

    Raises:
        IllegalTransition: (current, target) is not in ALLOWED_TRANSITIONS
        PreconditionFailed: the move is legal but its guard fails
    """
    current = coerce_status(current)
    target = coerce_status(target)

    if (current, target) not in ALLOWED_TRANSITIONS:
        raise IllegalTransition(current, target)

    reason = reason.strip() if isinstance(reason, str) else reason
    changes = dict(extra)

    if target == RequestStatus.PAID:
        method = changes.get('payment_method')
        if method not in ('cash', 'digital'):
            raise PreconditionFailed('payment_method', 'A valid payment method is required.')

    elif target == RequestStatus.REJECTED:
        if not reason:
            raise PreconditionFailed('rejection_reason', 'A rejection reason is required.')
        changes['rejection_reason'] = reason

    elif target == RequestStatus.CLAIMED:
        changes['claimed_at'] = now
        changes['claimed_by_student'] = True

    elif target == RequestStatus.RELEASED:
        changes['released_at'] = now

    elif target == RequestStatus.CANCELLED:
        changes['cancelled_at'] = now
        if current in CLAIM_STAMPED_STATUSES:
            # claimed_at only stays set while the document is claimed or released
            changes['claimed_at'] = None
            changes['claimed_by_student'] = False

    elif target == RequestStatus.PAYMENT_EXPIRED:
        changes['expired_at'] = now

    return TransitionPlan(
        from_status=current,
        to_status=target,
        changes=changes,
        reason=reason or None,
    )
