from django.contrib import admin

from .domain_actors import ActorProfile
from .domain_application import Application, ApplicationTransition
from .domain_documents import ApplicationDocument
from .domain_inspection import InspectionOrder, InspectionReport
from .domain_logs import ApiActivityLog, ErrorLog
from .domain_payments import PaymentRecord


@admin.register(ActorProfile)
class ActorProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'role', 'district', 'is_active', 'updated_at')
    search_fields = ('user__username', 'district')
    list_filter = ('role', 'is_active')


class ApplicationDocumentInline(admin.TabularInline):
    model = ApplicationDocument
    extra = 0
    fields = ('document_type', 'file_name', 'version', 'is_latest_version', 'is_deleted', 'verification_status')
    readonly_fields = fields
    can_delete = False


class ApplicationTransitionInline(admin.TabularInline):
    model = ApplicationTransition
    extra = 0
    fields = ('created_at', 'action', 'from_status', 'to_status', 'actor', 'notes')
    readonly_fields = fields
    can_delete = False



class PaymentRecordInline(admin.TabularInline):
    model = PaymentRecord
    extra = 0
    fields = ('received_at', 'payment_reference', 'amount', 'expected_amount', 'status', 'detail')
    readonly_fields = fields
    can_delete = False

@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ('application_number', 'property_name', 'owner', 'district', 'category', 'status', 'total_fee', 'submitted_at')
    search_fields = ('application_number', 'property_name', 'owner__username', 'owner_name')
    list_filter = ('status', 'current_stage', 'category', 'location_type', 'district')
    inlines = [ApplicationDocumentInline, ApplicationTransitionInline, PaymentRecordInline]
    # status and everything derived from it only move through the workflow API
    readonly_fields = (
        'application_number', 'status', 'current_stage', 'version', 'total_rooms',
        'base_fee', 'gst_amount', 'total_before_discounts', 'validity_discount', 'female_owner_discount',
        'sub_division_discount', 'total_discount', 'total_fee',
        'certificate_number', 'certificate_issued_at', 'certificate_expiry_date',
        'submitted_at', 'approved_at', 'created_at', 'updated_at',
    )


@admin.register(ApplicationDocument)
class ApplicationDocumentAdmin(admin.ModelAdmin):
    list_display = ('application', 'document_type', 'version', 'is_latest_version', 'is_deleted', 'verification_status', 'uploaded_at')
    search_fields = ('application__application_number', 'file_name')
    list_filter = ('document_type', 'verification_status', 'is_latest_version', 'is_deleted')


@admin.register(InspectionOrder)
class InspectionOrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'application', 'assigned_to', 'scheduled_date', 'district', 'status')
    search_fields = ('application__application_number', 'assigned_to__username')
    list_filter = ('status', 'district')


@admin.register(InspectionReport)
class InspectionReportAdmin(admin.ModelAdmin):
    list_display = ('order', 'application', 'recommendation', 'mandatory_compliance', 'desirable_compliance', 'submitted_at')
    list_filter = ('recommendation',)


@admin.register(ApiActivityLog)
class ApiActivityLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'method', 'path', 'workflow_action', 'status_code')
    search_fields = ('path', 'user__username', 'workflow_action')
    list_filter = ('method', 'status_code')


@admin.register(ErrorLog)
class ErrorLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'method', 'path', 'exception_type')
    search_fields = ('path', 'message')


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    list_display = ('received_at', 'application', 'payment_reference', 'amount', 'expected_amount', 'status')
    search_fields = ('application__application_number', 'payment_reference')
    list_filter = ('status',)
