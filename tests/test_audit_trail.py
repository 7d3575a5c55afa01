"""
Audit trail and activity log tests.
"""
import pytest
from django.test import RequestFactory

from registrar.audit import AuditTrail
from registrar.workflow import RequestStatus
from utils.audit import log_activity
from utils.context import RequestContext, get_request_context
from utils.middleware import AuditContextMiddleware
from utils.models import AuditLog

pytestmark = pytest.mark.django_db


class TestStatusTrail:

    def test_entries_keep_insertion_order_at_the_same_instant(self, workflow, make_request):
        request = make_request()

        workflow.mark_as_paid(request, 'cash')
        workflow.mark_as_processing(request)
        workflow.mark_as_ready_for_claim(request)

        entries = list(AuditTrail.for_request(request))
        assert [entry.sequence for entry in entries] == [1, 2, 3]
        assert [entry.to_status for entry in entries] == ['paid', 'processing', 'ready_for_claim']
        assert len({entry.occurred_at for entry in entries}) == 1

    def test_entries_use_the_injected_clock(self, workflow, make_request, clock):
        request = make_request()

        workflow.mark_as_paid(request, 'cash')
        later = clock.advance(hours=3)
        workflow.mark_as_processing(request)

        entries = list(AuditTrail.for_request(request.pk))
        assert entries[-1].occurred_at == later
        assert entries[0].occurred_at < entries[1].occurred_at

    def test_history_helper_matches_trail(self, workflow, make_request):
        request = make_request()
        workflow.cancel(request)

        assert list(request.get_status_history()) == list(AuditTrail.for_request(request))

    def test_entries_cannot_be_changed(self, workflow, make_request):
        request = make_request()
        workflow.cancel(request, reason='Duplicate')
        entry = AuditTrail.for_request(request).get()

        entry.reason = 'Rewritten'
        with pytest.raises(ValueError):
            entry.save()
        with pytest.raises(ValueError):
            entry.delete()

        entry.refresh_from_db()
        assert entry.reason == 'Duplicate'

    def test_rejected_attempts_leave_no_entry(self, workflow, make_request):
        request = make_request(status=RequestStatus.CANCELLED)

        workflow.mark_as_processing(request)
        workflow.reject(request, 'Too late')

        assert not AuditTrail.for_request(request).exists()


class TestActivityLog:

    def test_request_context_is_recorded(self, make_request):
        request = make_request()

        with RequestContext(user_id='cashier-4', ip_address='10.0.0.5', request_path='/cashier/'):
            entry = log_activity('payment_created', target_object=request, new_values={'amount': request.amount})

        assert entry.user_id == 'cashier-4'
        assert entry.ip_address == '10.0.0.5'
        assert entry.request_path == '/cashier/'
        assert entry.content_type == 'registrar.documentrequest'
        assert entry.new_values == {'amount': '100.00'}
        assert get_request_context() is None

    def test_object_history(self, make_request):
        request = make_request()
        log_activity('document_request_created', target_object=request)

        assert AuditLog.get_object_history(request).count() == 1

    def test_context_populates_base_model_audit_fields(self, make_request):
        with RequestContext(user_id='registrar-1', ip_address='192.168.1.20'):
            request = make_request()

        assert request.created_by_id == 'registrar-1'
        assert request.created_from_ip == '192.168.1.20'


class TestAuditContextMiddleware:

    def test_context_is_set_during_request_and_cleared_after(self):
        seen = {}

        def get_response(request):
            seen.update(get_request_context())
            return 'response'

        middleware = AuditContextMiddleware(get_response)
        http_request = RequestFactory().get(
            '/registrar/requests/',
            HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1',
            HTTP_USER_AGENT='pytest',
        )

        assert middleware(http_request) == 'response'
        assert seen['ip_address'] == '203.0.113.7'
        assert seen['user_agent'] == 'pytest'
        assert seen['request_path'] == '/registrar/requests/'
        assert seen['user_id'] is None
        assert get_request_context() is None
