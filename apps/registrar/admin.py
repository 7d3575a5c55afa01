# registrar/admin.py

from django.contrib import admin
from .models import DocumentRequest, Payment, RequestStatusChange


class ReadOnlyAdminMixin:
    """
    Records are only changed through the registrar services, so the admin
    is a viewer.
    """

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class PaymentInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = Payment
    extra = 0
    fields = [
        'payment_reference_number', 'transaction_id', 'payment_method',
        'amount', 'status', 'official_receipt_number', 'paid_at'
    ]
    readonly_fields = fields


class RequestStatusChangeInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = RequestStatusChange
    extra = 0
    fields = ['sequence', 'from_status', 'to_status', 'actor_id', 'occurred_at', 'reason']
    readonly_fields = fields


@admin.register(DocumentRequest)
class DocumentRequestAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        'request_number', 'student_id', 'document_type', 'quantity',
        'amount', 'status', 'payment_deadline', 'created_at'
    ]
    list_filter = ['status', 'document_type', 'payment_method', 'created_at']
    search_fields = ['request_number', 'student_id']
    date_hierarchy = 'created_at'
    inlines = [PaymentInline, RequestStatusChangeInline]

    fieldsets = (
        ('Request', {
            'fields': ('request_number', 'student_id', 'document_type', 'quantity', 'purpose', 'amount')
        }),
        ('Status', {
            'fields': ('status', 'version', 'payment_method', 'payment_deadline', 'expired_at')
        }),
        ('Processing & Release', {
            'fields': (
                'processed_by_id', 'rejection_reason', 'released_by_id',
                'released_to', 'released_id_type', 'released_at', 'cancelled_at'
            )
        }),
        ('Claim', {
            'fields': ('claimed_by_student', 'claimed_at', 'claim_notes')
        }),
        ('Audit', {
            'fields': ('created_at', 'created_by_id', 'updated_at', 'updated_by_id'),
            'classes': ('collapse',)
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        'payment_reference_number', 'transaction_id', 'request', 'payment_method',
        'amount', 'status', 'official_receipt_number', 'paid_at'
    ]
    list_filter = ['status', 'payment_method', 'paid_at']
    search_fields = [
        'payment_reference_number', 'transaction_id', 'official_receipt_number',
        'request__request_number'
    ]
    list_select_related = ['request']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]


@admin.register(RequestStatusChange)
class RequestStatusChangeAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['request', 'sequence', 'from_status', 'to_status', 'actor_id', 'occurred_at']
    list_filter = ['to_status', 'occurred_at']
    search_fields = ['request__request_number', 'actor_id', 'reason']
    list_select_related = ['request']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]
