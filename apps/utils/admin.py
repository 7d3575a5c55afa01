# utils/admin.py

from django.contrib import admin
from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = [
        'timestamp', 'action', 'content_type', 'object_repr',
        'user_id', 'ip_address'
    ]
    list_filter = ['action', 'timestamp', 'content_type']
    search_fields = ['object_repr', 'object_id', 'user_id', 'description']
    readonly_fields = [
        'id', 'action', 'content_type', 'object_id', 'object_repr',
        'old_values', 'new_values', 'description', 'metadata', 'user_id',
        'ip_address', 'user_agent', 'request_path', 'timestamp'
    ]

    fieldsets = (
        ('What Happened', {
            'fields': ('action', 'description', 'content_type', 'object_id', 'object_repr')
        }),
        ('Changes', {
            'fields': ('old_values', 'new_values', 'metadata')
        }),
        ('Who & Where', {
            'fields': ('user_id', 'timestamp', 'ip_address', 'request_path', 'user_agent')
        }),
    )

    def has_add_permission(self, request):
        # Audit logs should not be created manually
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
