"""
Races between real database connections.

Each worker thread gets its own connection, so these tests need committed
data and run with transaction=True.
"""
import threading

import pytest
from django.db import connection

from registrar.audit import AuditTrail
from registrar.exceptions import ConcurrentModification, IllegalTransition, NotFound
from registrar.models import DocumentRequest, Payment, PaymentStatus
from registrar.workflow import RequestStatus

from conftest import STUDENT_ID

pytestmark = pytest.mark.django_db(transaction=True)

JOIN_TIMEOUT = 30


def run_together(**operations):
    """Start every operation at the same moment in its own thread and collect the results."""
    barrier = threading.Barrier(len(operations))
    results = {}

    def worker(name, operation):
        try:
            barrier.wait()
            results[name] = operation()
        finally:
            connection.close()

    threads = [
        threading.Thread(target=worker, args=(name, operation))
        for name, operation in operations.items()
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(JOIN_TIMEOUT)
        assert not thread.is_alive()

    return results


class TestRacingCashiers:

    def test_only_one_cashier_confirms_a_reference(self, ledger, make_request):
        request = make_request()
        reference = ledger.generate_cash_payment(request).value.payment_reference_number

        results = run_together(
            first=lambda: ledger.confirm_cash_payment(reference, 'OR-1', cashier_id='cashier-1'),
            second=lambda: ledger.confirm_cash_payment(reference, 'OR-2', cashier_id='cashier-2'),
        )

        assert sorted(bool(result) for result in results.values()) == [False, True]
        loser = next(result for result in results.values() if not result)
        assert isinstance(loser.error, NotFound)
        assert Payment.objects.filter(request=request, status=PaymentStatus.PAID).count() == 1
        request.refresh_from_db()
        assert request.status == RequestStatus.PAID
        assert request.version == 2
        assert AuditTrail.for_request(request).count() == 1


class TestRacingTransitions:

    def test_processing_and_cancelling_at_once(self, workflow, make_request):
        request = make_request(status=RequestStatus.PAID, payment_method='cash')
        staff_copy = DocumentRequest.objects.get(pk=request.pk)
        student_copy = DocumentRequest.objects.get(pk=request.pk)

        results = run_together(
            staff=lambda: workflow.mark_as_processing(staff_copy, actor_id='staff-1'),
            student=lambda: workflow.cancel(student_copy, actor_id=STUDENT_ID),
        )

        assert sorted(bool(result) for result in results.values()) == [False, True]
        loser = next(result for result in results.values() if not result)
        assert isinstance(loser.error, (ConcurrentModification, IllegalTransition))
        request.refresh_from_db()
        assert request.status in (RequestStatus.PROCESSING, RequestStatus.CANCELLED)
        assert request.version == 2
        assert AuditTrail.for_request(request).count() == 1
