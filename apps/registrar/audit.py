# registrar/audit.py

from django.db.models import Max

from registrar.models import DocumentRequest, RequestStatusChange


class AuditTrail:
    """
    Append-only status history of document requests.

    record() is called by RequestWorkflow inside the same transaction as the
    status update, so an entry exists exactly when the transition committed.
    """

    @staticmethod
    def record(request, from_status, to_status, occurred_at, actor_id=None,
               reason=None, metadata=None):
        last = RequestStatusChange.objects.filter(request=request).aggregate(
            last=Max('sequence')
        )['last'] or 0

        return RequestStatusChange.objects.create(
            request=request,
            sequence=last + 1,
            from_status=from_status,
            to_status=to_status,
            actor_id=str(actor_id) if actor_id is not None else None,
            occurred_at=occurred_at,
            reason=reason or '',
            metadata=metadata or {},
        )

    @staticmethod
    def for_request(request_or_id):
        """Entries for one request, oldest first."""
        request_id = request_or_id.pk if isinstance(request_or_id, DocumentRequest) else request_or_id
        return RequestStatusChange.objects.filter(
            request_id=request_id
        ).order_by('occurred_at', 'sequence')
