# utils/audit.py

import logging
import uuid
from decimal import Decimal
from datetime import date, datetime

from utils.context import get_request_context

logger = logging.getLogger(__name__)


def _jsonable(values):
    """Make a dict of model values safe for a JSONField."""
    if values is None:
        return None
    cleaned = {}
    for key, value in values.items():
        if isinstance(value, (Decimal, datetime, date)):
            cleaned[key] = str(value) if isinstance(value, Decimal) else value.isoformat()
        elif isinstance(value, uuid.UUID):
            cleaned[key] = str(value)
        else:
            cleaned[key] = value
    return cleaned


def log_activity(
    action,
    user_id=None,
    target_object=None,
    old_values=None,
    new_values=None,
    description='',
    metadata=None,
    timestamp=None,
):
    """
    Record an auditable activity.

    Args:
        action (str): Action code, e.g. 'payment_confirmed'.
        user_id (optional): Acting user; falls back to the request context.
        target_object (Model instance, optional): Object affected.
        old_values (dict, optional): Values before the change.
        new_values (dict, optional): Values after the change.
        description (str, optional): Human-readable summary.
        metadata (dict, optional): Extra context-specific data.
        timestamp (datetime, optional): When it happened; defaults to now.
            Services pass their own clock reading.

    Runs inside the caller's transaction, so a failure here rolls the
    whole operation back.
    """
    from utils.models import AuditLog

    context = get_request_context() or {}

    if user_id is None:
        user_id = context.get('user_id')

    content_type = ''
    object_id = ''
    object_repr = ''
    if target_object is not None:
        content_type = f"{target_object._meta.app_label}.{target_object._meta.model_name}"
        object_id = str(target_object.pk)
        object_repr = str(target_object)[:200]

    entry = AuditLog.objects.create(
        action=action,
        user_id=str(user_id) if user_id is not None else None,
        content_type=content_type,
        object_id=object_id,
        object_repr=object_repr,
        old_values=_jsonable(old_values),
        new_values=_jsonable(new_values),
        description=description or '',
        metadata=_jsonable(metadata) or {},
        ip_address=context.get('ip_address'),
        user_agent=context.get('user_agent', ''),
        request_path=context.get('request_path', ''),
        timestamp=timestamp,
    )

    logger.debug(f"Audit log {action} for {content_type} {object_id}")
    return entry
