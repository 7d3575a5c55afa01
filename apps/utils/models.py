# utils/models.py

"""
Base models shared by every campusdesk app.

Key Features:
- UUID primary keys (opaque ids, safe to expose)
- created/updated timestamps and user/IP tracking from the request context
- General activity log for auditable events that are not status transitions
"""

from django.db import models
from django.utils import timezone
import uuid
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# BASE MODEL
# =============================================================================

class BaseModel(models.Model):
    """
    Abstract base model with audit fields.

    - created_by_id / updated_by_id are CharFields so that records keep
      their history even when the acting user is removed
    - created_from_ip / updated_from_ip come from the thread-local request
      context set by AuditContextMiddleware
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField("Created At", db_index=True, editable=False)
    updated_at = models.DateTimeField("Updated At", db_index=True, editable=False)

    created_by_id = models.CharField(
        "Created By ID",
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
        help_text="ID of user who created this record"
    )
    updated_by_id = models.CharField(
        "Updated By ID",
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
        help_text="ID of user who last updated this record"
    )

    created_from_ip = models.GenericIPAddressField("Created From IP", null=True, blank=True)
    updated_from_ip = models.GenericIPAddressField("Updated From IP", null=True, blank=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """
        Stamp timestamps and populate audit fields from the request context.
        """
        from utils.context import get_request_context

        is_new = self._state.adding
        now = timezone.now()

        if is_new:
            if not self.created_at:
                self.created_at = now
            if not self.updated_at:
                self.updated_at = now
        else:
            self.updated_at = now

        context = get_request_context()

        if context:
            user_id = context.get('user_id')
            ip_address = context.get('ip_address')

            if is_new:
                if user_id and not self.created_by_id:
                    self.created_by_id = user_id
                if ip_address and not self.created_from_ip:
                    self.created_from_ip = ip_address

            if user_id:
                self.updated_by_id = user_id
            if ip_address:
                self.updated_from_ip = ip_address
        elif is_new:
            logger.debug(
                f"No request context available when creating {self.__class__.__name__}. "
                f"Audit fields will not be populated."
            )

        # Keep update_fields saves consistent with the stamped audit fields
        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {
                'updated_at', 'updated_by_id', 'updated_from_ip'
            }

        return super().save(*args, **kwargs)


# =============================================================================
# ACTIVITY LOG
# =============================================================================

class AuditLog(models.Model):
    """
    Activity log for auditable events.

    Status transitions of document requests have their own append-only
    trail (registrar.RequestStatusChange); this log records the events
    around them: request creation, payment references issued or
    invalidated, cashier confirmations and failed gateway payments.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    action = models.CharField("Action", max_length=50, db_index=True)

    # What was acted upon
    content_type = models.CharField("Model Type", max_length=100, db_index=True, blank=True)
    object_id = models.CharField("Object ID", max_length=100, db_index=True, blank=True)
    object_repr = models.CharField("Object Representation", max_length=200, blank=True)

    old_values = models.JSONField("Old Values", null=True, blank=True)
    new_values = models.JSONField("New Values", null=True, blank=True)
    description = models.TextField("Description", blank=True)
    metadata = models.JSONField("Metadata", default=dict, blank=True)

    # Who and from where
    user_id = models.CharField(
        "User ID",
        max_length=50,
        db_index=True,
        null=True,
        blank=True,
        help_text="ID of user who performed this action"
    )
    ip_address = models.GenericIPAddressField("IP Address", null=True, blank=True)
    user_agent = models.TextField("User Agent", blank=True)
    request_path = models.CharField("Request Path", max_length=255, blank=True)

    timestamp = models.DateTimeField("Timestamp", db_index=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['content_type', 'object_id'], name='utils_audit_object_idx'),
            models.Index(fields=['user_id', 'timestamp'], name='utils_audit_user_time_idx'),
        ]
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"

    def __str__(self):
        return f"{self.action} {self.content_type} {self.object_id} at {self.timestamp}"

    def save(self, *args, **kwargs):
        if not self.timestamp:
            self.timestamp = timezone.now()
        return super().save(*args, **kwargs)

    # -------------------------------------------------------------------------
    # QUERY HELPERS
    # -------------------------------------------------------------------------

    @classmethod
    def get_object_history(cls, obj):
        """Complete history for a specific object, newest first"""
        content_type = f"{obj._meta.app_label}.{obj._meta.model_name}"
        return cls.objects.filter(
            content_type=content_type,
            object_id=str(obj.pk)
        ).order_by('-timestamp')
