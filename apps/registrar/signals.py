# registrar/signals.py

"""
Registrar signals.

Domain events (sent only after the transaction that caused them commits):
- request_status_changed: request, from_status, to_status, actor_id
- payment_confirmed: payment, request

Notification code subscribes to these; the workflow does not know who
listens.
"""

from django.db.models.signals import pre_save
from django.dispatch import Signal, receiver
import logging

from registrar.utils import generate_request_number

logger = logging.getLogger(__name__)

request_status_changed = Signal()
payment_confirmed = Signal()


@receiver(pre_save, sender='registrar.DocumentRequest')
def document_request_pre_save(sender, instance, **kwargs):
    """Auto-generate the request number for new requests."""
    if not instance.request_number:
        instance.request_number = generate_request_number(now=instance.created_at)
        logger.info(f"Generated request number: {instance.request_number}")


@receiver(request_status_changed)
def log_request_status_change(sender, request, from_status, to_status, actor_id=None, **kwargs):
    logger.info(
        f"Request {request.request_number} moved from {from_status} to {to_status}"
        f" (actor={actor_id or 'system'})"
    )


@receiver(payment_confirmed)
def log_payment_confirmed(sender, payment, request, **kwargs):
    logger.info(
        f"Payment {payment.payment_reference_number or payment.transaction_id} confirmed"
        f" for request {request.request_number}"
    )
