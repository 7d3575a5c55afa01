"""
Shared fixtures for the registrar tests.

Services get a frozen clock so timestamps, deadlines and reference dates
are predictable.
"""
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from registrar.models import DocumentRequest
from registrar.services import ClaimConfirmation, PaymentLedger, RequestWorkflow
from registrar.signals import payment_confirmed, request_status_changed
from registrar.workflow import CLAIM_STAMPED_STATUSES, RequestStatus

# 17:30 in Asia/Manila, so the local date is the same as the UTC date
FIXED_NOW = datetime(2025, 1, 15, 9, 30, tzinfo=dt_timezone.utc)

STUDENT_ID = '2021-00123'


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(FIXED_NOW)


@pytest.fixture
def workflow(clock):
    return RequestWorkflow(clock=clock)


@pytest.fixture
def ledger(clock, workflow):
    return PaymentLedger(clock=clock, workflow=workflow)


@pytest.fixture
def claims(workflow):
    return ClaimConfirmation(workflow=workflow)


@pytest.fixture
def make_request(db, clock):
    """
    Create a DocumentRequest directly in the given status.

    Requests in claimed/released get claimed_at stamped so that they satisfy
    the claimed_at check constraint.
    """
    def factory(status=RequestStatus.PENDING_PAYMENT, student_id=STUDENT_ID,
                document_type='transcript_of_records', quantity=1,
                amount=Decimal('100.00'), **fields):
        if RequestStatus(status) in CLAIM_STAMPED_STATUSES:
            fields.setdefault('claimed_at', clock())
            fields.setdefault('claimed_by_student', True)
        fields.setdefault('payment_deadline', clock() + timedelta(hours=48))
        return DocumentRequest.objects.create(
            student_id=student_id,
            document_type=document_type,
            quantity=quantity,
            purpose='Employment',
            amount=amount,
            status=status,
            created_at=clock(),
            updated_at=clock(),
            **fields
        )
    return factory


class SignalRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, sender, **kwargs):
        self.calls.append(kwargs)


@pytest.fixture
def status_events():
    recorder = SignalRecorder()
    request_status_changed.connect(recorder, weak=False)
    yield recorder
    request_status_changed.disconnect(recorder)


@pytest.fixture
def payment_events():
    recorder = SignalRecorder()
    payment_confirmed.connect(recorder, weak=False)
    yield recorder
    payment_confirmed.disconnect(recorder)
