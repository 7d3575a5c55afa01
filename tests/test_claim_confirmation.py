"""
Student claim confirmation tests.
"""
import pytest
from django.core.exceptions import PermissionDenied

from registrar.audit import AuditTrail
from registrar.exceptions import PreconditionFailed
from registrar.models import DocumentRequest
from registrar.workflow import RequestStatus
from utils.models import AuditLog

from conftest import STUDENT_ID

pytestmark = pytest.mark.django_db


class TestConfirmClaim:

    def test_owner_confirms_ready_document(self, claims, make_request, clock):
        request = make_request(status=RequestStatus.READY_FOR_CLAIM, payment_method='cash')

        result = claims.confirm_claim(request, STUDENT_ID, confirmation=True, notes=' Picked up at window 3 ')

        assert result
        request.refresh_from_db()
        assert request.status == RequestStatus.CLAIMED
        assert request.claimed_at == clock()
        assert request.claimed_by_student is True
        assert request.claim_notes == 'Picked up at window 3'

        entry = AuditTrail.for_request(request).get()
        assert entry.to_status == RequestStatus.CLAIMED
        assert entry.actor_id == STUDENT_ID
        assert entry.reason == 'Picked up at window 3'
        assert AuditLog.objects.filter(action='document_claimed', user_id=STUDENT_ID).exists()

    def test_notes_are_optional(self, claims, make_request):
        request = make_request(status=RequestStatus.READY_FOR_CLAIM, payment_method='cash')

        assert claims.confirm_claim(request, STUDENT_ID, confirmation=True)
        request.refresh_from_db()
        assert request.claim_notes == ''
        assert AuditTrail.for_request(request).get().reason == ''

    def test_other_student_is_refused(self, claims, make_request):
        request = make_request(status=RequestStatus.READY_FOR_CLAIM, payment_method='cash')

        with pytest.raises(PermissionDenied):
            claims.confirm_claim(request, '2021-99999', confirmation=True)

        request.refresh_from_db()
        assert request.status == RequestStatus.READY_FOR_CLAIM

    @pytest.mark.parametrize('status', [
        RequestStatus.PENDING_PAYMENT,
        RequestStatus.PAID,
        RequestStatus.PROCESSING,
        RequestStatus.CLAIMED,
        RequestStatus.RELEASED,
        RequestStatus.CANCELLED,
    ])
    def test_not_ready_yet(self, claims, make_request, status):
        request = make_request(status=status)

        result = claims.confirm_claim(request, STUDENT_ID, confirmation=True)

        assert isinstance(result.error, PreconditionFailed)
        assert result.error.message_dict == {'claim': ['This document is not ready for claim yet.']}
        assert not AuditTrail.for_request(request).exists()

    def test_readiness_is_checked_before_confirmation(self, claims, make_request):
        request = make_request(status=RequestStatus.PROCESSING, payment_method='cash')

        result = claims.confirm_claim(request, STUDENT_ID, confirmation=False)

        assert result.error.field == 'claim'

    def test_confirmation_is_required(self, claims, make_request):
        request = make_request(status=RequestStatus.READY_FOR_CLAIM, payment_method='cash')

        result = claims.confirm_claim(request, STUDENT_ID, confirmation=False, notes='hi')

        assert result.error.message_dict == {'confirmation': ['Please confirm to proceed.']}
        request.refresh_from_db()
        assert request.status == RequestStatus.READY_FOR_CLAIM
        assert request.claimed_at is None
        assert request.claim_notes == ''

    def test_stale_copy_of_a_cancelled_request_cannot_be_claimed(self, claims, workflow, make_request):
        request = make_request(status=RequestStatus.READY_FOR_CLAIM, payment_method='cash')
        stale = DocumentRequest.objects.get(pk=request.pk)
        assert workflow.cancel(request, actor_id='staff-1', reason='Duplicate request')

        result = claims.confirm_claim(stale, STUDENT_ID, confirmation=True)

        assert isinstance(result.error, PreconditionFailed)
        assert result.error.message_dict == {'claim': ['This document is not ready for claim yet.']}
        request.refresh_from_db()
        assert request.status == RequestStatus.CANCELLED
        assert request.claimed_at is None
        assert not AuditLog.objects.filter(action='document_claimed').exists()

    def test_claim_is_logged_at_the_service_clock(self, claims, make_request, clock):
        request = make_request(status=RequestStatus.READY_FOR_CLAIM, payment_method='cash')
        clock.advance(days=2)

        claimed = claims.confirm_claim(request, STUDENT_ID, confirmation=True).value

        assert claimed.status == RequestStatus.CLAIMED
        assert claimed.claimed_at == clock()
        entry = AuditLog.objects.get(action='document_claimed', object_id=str(request.pk))
        assert entry.timestamp == clock()
