"""Domain Application & Review History (Application, ApplicationTransition, status/action enums)
"""
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

__all__ = [
    'ApplicationStatus', 'WorkflowAction', 'Stage', 'Category', 'LocationType', 'ProjectType',
    'OwnerGender', 'TERMINAL_STATUSES', 'OWNER_EDITABLE_STATUSES', 'ROOM_CLASSES', 'FEE_FIELDS',
    'FEEDBACK_FIELDS', 'stage_for_status', 'Application', 'ApplicationTransition',
]


class ApplicationStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    SUBMITTED = 'submitted', 'Submitted'
    UNDER_SCRUTINY = 'under_scrutiny', 'Under Scrutiny'
    SENT_BACK_FOR_CORRECTIONS = 'sent_back_for_corrections', 'Sent Back for Corrections'
    FORWARDED_TO_REVIEW = 'forwarded_to_review', 'Forwarded to District Review'
    REVERTED_TO_APPLICANT = 'reverted_to_applicant', 'Reverted to Applicant'
    REVIEW_ACCEPTED = 'review_accepted', 'Accepted at District Review'
    INSPECTION_SCHEDULED = 'inspection_scheduled', 'Inspection Scheduled'
    INSPECTION_COMPLETED = 'inspection_completed', 'Inspection Completed'
    INSPECTION_UNDER_REVIEW = 'inspection_under_review', 'Inspection Under Review'
    REVERTED_BY_REVIEW = 'reverted_by_review', 'Reverted after Inspection Review'
    OBJECTION_RAISED = 'objection_raised', 'Objection Raised'
    VERIFIED_FOR_PAYMENT = 'verified_for_payment', 'Verified for Payment'
    PAYMENT_PENDING = 'payment_pending', 'Payment Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


class WorkflowAction(models.TextChoices):
    SAVE_DRAFT = 'save_draft', 'Save Draft'
    SUBMIT = 'submit', 'Submit'
    RESUBMIT = 'resubmit', 'Resubmit after Correction'
    DELETE_DOCUMENT = 'delete_document', 'Delete Document'
    START_SCRUTINY = 'start_scrutiny', 'Start Scrutiny'
    VERIFY_DOCUMENT = 'verify_document', 'Verify Document'
    FORWARD_TO_REVIEW = 'forward_to_review', 'Forward to District Review'
    SEND_BACK = 'send_back', 'Send Back for Corrections'
    ACCEPT = 'accept', 'Accept'
    REVERT = 'revert', 'Revert'
    REJECT = 'reject', 'Reject'
    SCHEDULE_INSPECTION = 'schedule_inspection', 'Schedule Inspection'
    COMPLETE_INSPECTION = 'complete_inspection', 'Complete Inspection'
    BEGIN_INSPECTION_REVIEW = 'begin_inspection_review', 'Begin Inspection Review'
    VERIFY_FOR_PAYMENT = 'verify_for_payment', 'Verify for Payment'
    RAISE_OBJECTIONS = 'raise_objections', 'Raise Objections'
    REQUEST_PAYMENT = 'request_payment', 'Request Payment'
    CONFIRM_PAYMENT = 'confirm_payment', 'Confirm Payment'


class Stage(models.TextChoices):
    """Coarse phase label used for dashboard grouping."""
    DRAFT = 'draft', 'Draft'
    CORRECTION = 'correction', 'With Applicant'
    SCRUTINY = 'scrutiny', 'Scrutiny'
    DISTRICT = 'district', 'District Review'
    INSPECTION = 'inspection', 'Inspection'
    STATE = 'state', 'State Approval'
    PAYMENT = 'payment', 'Payment'
    FINAL = 'final', 'Final'


class Category(models.TextChoices):
    DIAMOND = 'diamond', 'Diamond'
    GOLD = 'gold', 'Gold'
    SILVER = 'silver', 'Silver'


class LocationType(models.TextChoices):
    MUNICIPAL = 'municipal', 'Municipal Corporation'
    TOWN_PLANNING = 'town_planning', 'TCP/SDA/Nagar Panchayat'
    GRAM_PANCHAYAT = 'gram_panchayat', 'Gram Panchayat'


class ProjectType(models.TextChoices):
    NEW_PROJECT = 'new_project', 'New Project'
    EXISTING_PROPERTY = 'existing_property', 'Existing Property'


class OwnerGender(models.TextChoices):
    MALE = 'male', 'Male'
    FEMALE = 'female', 'Female'
    OTHER = 'other', 'Other'


TERMINAL_STATUSES = frozenset({ApplicationStatus.APPROVED, ApplicationStatus.REJECTED})

# Statuses in which the owner holds the record and may edit it.
OWNER_EDITABLE_STATUSES = frozenset({
    ApplicationStatus.DRAFT,
    ApplicationStatus.SENT_BACK_FOR_CORRECTIONS,
    ApplicationStatus.REVERTED_TO_APPLICANT,
    ApplicationStatus.REVERTED_BY_REVIEW,
    ApplicationStatus.OBJECTION_RAISED,
})

# (count field, rate field, size field) per room class
ROOM_CLASSES = (
    ('single_bed_rooms', 'single_bed_room_rate', 'single_bed_room_size'),
    ('double_bed_rooms', 'double_bed_room_rate', 'double_bed_room_size'),
    ('family_suites', 'family_suite_rate', 'family_suite_size'),
)

FEE_FIELDS = (
    'base_fee', 'gst_amount', 'total_before_discounts', 'validity_discount',
    'female_owner_discount', 'sub_division_discount', 'total_discount', 'total_fee',
)

FEEDBACK_FIELDS = ('scrutiny_feedback', 'district_feedback', 'inspection_feedback', 'state_feedback')

_STAGE_BY_STATUS = {
    ApplicationStatus.DRAFT: Stage.DRAFT,
    ApplicationStatus.SUBMITTED: Stage.SCRUTINY,
    ApplicationStatus.UNDER_SCRUTINY: Stage.SCRUTINY,
    ApplicationStatus.SENT_BACK_FOR_CORRECTIONS: Stage.CORRECTION,
    ApplicationStatus.FORWARDED_TO_REVIEW: Stage.DISTRICT,
    ApplicationStatus.REVERTED_TO_APPLICANT: Stage.CORRECTION,
    ApplicationStatus.REVIEW_ACCEPTED: Stage.DISTRICT,
    ApplicationStatus.INSPECTION_SCHEDULED: Stage.INSPECTION,
    ApplicationStatus.INSPECTION_COMPLETED: Stage.INSPECTION,
    ApplicationStatus.INSPECTION_UNDER_REVIEW: Stage.INSPECTION,
    ApplicationStatus.REVERTED_BY_REVIEW: Stage.CORRECTION,
    ApplicationStatus.OBJECTION_RAISED: Stage.CORRECTION,
    ApplicationStatus.VERIFIED_FOR_PAYMENT: Stage.STATE,
    ApplicationStatus.PAYMENT_PENDING: Stage.PAYMENT,
    ApplicationStatus.APPROVED: Stage.FINAL,
    ApplicationStatus.REJECTED: Stage.FINAL,
}


def stage_for_status(status) -> str:
    return _STAGE_BY_STATUS[ApplicationStatus(status)].value


def _money(**kw):
    return models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'), **kw)


class Application(models.Model):
    id = models.BigAutoField(primary_key=True)
    application_number = models.CharField(max_length=50, unique=True, db_column='application_number')
    owner = models.ForeignKey(User, on_delete=models.PROTECT, related_name='homestay_applications', db_column='owner_id')

    # Property & classification
    property_name = models.CharField(max_length=255, blank=True, default='', db_column='property_name')
    category = models.CharField(max_length=20, choices=Category.choices, null=True, blank=True, db_column='category')
    location_type = models.CharField(max_length=20, choices=LocationType.choices, null=True, blank=True, db_column='location_type')
    project_type = models.CharField(max_length=20, choices=ProjectType.choices, null=True, blank=True, db_column='project_type')

    # Room configuration; total_rooms is always the sum of the class counts
    single_bed_rooms = models.PositiveSmallIntegerField(default=0, db_column='single_bed_rooms')
    single_bed_room_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, db_column='single_bed_room_rate')
    single_bed_room_size = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, db_column='single_bed_room_size')
    double_bed_rooms = models.PositiveSmallIntegerField(default=0, db_column='double_bed_rooms')
    double_bed_room_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, db_column='double_bed_room_rate')
    double_bed_room_size = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, db_column='double_bed_room_size')
    family_suites = models.PositiveSmallIntegerField(default=0, db_column='family_suites')
    family_suite_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, db_column='family_suite_rate')
    family_suite_size = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True, db_column='family_suite_size')
    total_rooms = models.PositiveSmallIntegerField(default=0, db_column='total_rooms')

    # Location hierarchy
    district = models.CharField(max_length=100, blank=True, default='', db_column='district')
    tehsil = models.CharField(max_length=100, blank=True, default='', db_column='tehsil')
    block = models.CharField(max_length=100, blank=True, default='', db_column='block')
    gram_panchayat = models.CharField(max_length=150, blank=True, default='', db_column='gram_panchayat')
    urban_body = models.CharField(max_length=150, blank=True, default='', db_column='urban_body')
    address = models.TextField(blank=True, default='', db_column='address')
    pincode = models.CharField(max_length=10, blank=True, default='', db_column='pincode')
    latitude = models.DecimalField(max_digits=10, decimal_places=8, null=True, blank=True, db_column='latitude')
    longitude = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True, db_column='longitude')

    # Owner
    owner_name = models.CharField(max_length=255, blank=True, default='', db_column='owner_name')
    owner_gender = models.CharField(max_length=10, choices=OwnerGender.choices, null=True, blank=True, db_column='owner_gender')
    owner_mobile = models.CharField(max_length=15, blank=True, default='', db_column='owner_mobile')
    owner_email = models.EmailField(null=True, blank=True, db_column='owner_email')

    # Fee inputs and derived breakdown (written by fee_engine only)
    validity_years = models.PositiveSmallIntegerField(default=1, db_column='validity_years')
    is_sub_division_exception = models.BooleanField(default=False, db_column='is_sub_division_exception')
    base_fee = _money(db_column='base_fee')
    gst_amount = _money(db_column='gst_amount')
    total_before_discounts = _money(db_column='total_before_discounts')
    validity_discount = _money(db_column='validity_discount')
    female_owner_discount = _money(db_column='female_owner_discount')
    sub_division_discount = _money(db_column='sub_division_discount')
    total_discount = _money(db_column='total_discount')
    total_fee = _money(db_column='total_fee')

    # Workflow
    status = models.CharField(max_length=32, choices=ApplicationStatus.choices, default=ApplicationStatus.DRAFT, db_column='status')
    current_stage = models.CharField(max_length=20, choices=Stage.choices, default=Stage.DRAFT, db_column='current_stage')
    version = models.PositiveIntegerField(default=1, db_column='version')

    # Per-stage review audit; *_feedback holds the one outstanding clarification for that stage
    scrutiny_reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='scrutiny_reviewed_by')
    scrutiny_reviewed_at = models.DateTimeField(null=True, blank=True, db_column='scrutiny_reviewed_at')
    scrutiny_notes = models.TextField(blank=True, default='', db_column='scrutiny_notes')
    scrutiny_feedback = models.TextField(blank=True, default='', db_column='scrutiny_feedback')
    district_reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='district_reviewed_by')
    district_reviewed_at = models.DateTimeField(null=True, blank=True, db_column='district_reviewed_at')
    district_notes = models.TextField(blank=True, default='', db_column='district_notes')
    district_feedback = models.TextField(blank=True, default='', db_column='district_feedback')
    inspection_reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='inspection_reviewed_by')
    inspection_reviewed_at = models.DateTimeField(null=True, blank=True, db_column='inspection_reviewed_at')
    inspection_notes = models.TextField(blank=True, default='', db_column='inspection_notes')
    inspection_feedback = models.TextField(blank=True, default='', db_column='inspection_feedback')
    inspection_conditions = models.TextField(blank=True, default='', db_column='inspection_conditions')
    state_reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='state_reviewed_by')
    state_reviewed_at = models.DateTimeField(null=True, blank=True, db_column='state_reviewed_at')
    state_notes = models.TextField(blank=True, default='', db_column='state_notes')
    state_feedback = models.TextField(blank=True, default='', db_column='state_feedback')
    rejection_reason = models.TextField(blank=True, default='', db_column='rejection_reason')

    # Certificate (populated only on approval)
    certificate_number = models.CharField(max_length=50, unique=True, null=True, blank=True, db_column='certificate_number')
    certificate_issued_at = models.DateTimeField(null=True, blank=True, db_column='certificate_issued_at')
    certificate_expiry_date = models.DateField(null=True, blank=True, db_column='certificate_expiry_date')

    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')
    submitted_at = models.DateTimeField(null=True, blank=True, db_column='submitted_at')
    approved_at = models.DateTimeField(null=True, blank=True, db_column='approved_at')

    class Meta:
        db_table = 'homestay_application'
        constraints = [
            models.UniqueConstraint(
                fields=['owner'],
                condition=~Q(status__in=['approved', 'rejected']),
                name='uniq_active_application_per_owner',
            ),
        ]
        indexes = [
            models.Index(fields=['status'], name='idx_application_status'),
            models.Index(fields=['district', 'status'], name='idx_application_district'),
            models.Index(fields=['owner'], name='idx_application_owner'),
        ]

    def __str__(self):
        return f"{self.application_number} - {self.property_name or '-'} - {self.status}"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_owner_editable(self) -> bool:
        return self.status in OWNER_EDITABLE_STATUSES

    def compute_total_rooms(self) -> int:
        return sum(int(getattr(self, count) or 0) for count, _rate, _size in ROOM_CLASSES)

    def clean(self):
        if self.total_rooms != self.compute_total_rooms():
            raise ValidationError({'total_rooms': 'Must equal the sum of per-class room counts.'})
        for field in FEE_FIELDS:
            value = getattr(self, field)
            if value is not None and value < 0:
                raise ValidationError({field: 'Cannot be negative.'})
        if self.total_fee != self.total_before_discounts - self.total_discount:
            raise ValidationError({'total_fee': 'total_fee must equal total_before_discounts - total_discount.'})
        has_certificate = any([self.certificate_number, self.certificate_issued_at, self.certificate_expiry_date])
        if self.status == ApplicationStatus.APPROVED and not all([
            self.certificate_number, self.certificate_issued_at, self.certificate_expiry_date
        ]):
            raise ValidationError({'certificate_number': 'Certificate details are required when approved.'})
        if self.status != ApplicationStatus.APPROVED and has_certificate:
            raise ValidationError({'certificate_number': 'Certificate details are only set on approval.'})

    def save(self, *args, **kwargs):
        self.total_rooms = self.compute_total_rooms()
        self.current_stage = stage_for_status(self.status)
        super().save(*args, **kwargs)


class ApplicationTransition(models.Model):
    """Append-only review history, one row per applied workflow action."""
    id = models.BigAutoField(primary_key=True)
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='transitions', db_column='application_id')
    action = models.CharField(max_length=32, choices=WorkflowAction.choices, db_column='action')
    from_status = models.CharField(max_length=32, choices=ApplicationStatus.choices, db_column='from_status')
    to_status = models.CharField(max_length=32, choices=ApplicationStatus.choices, db_column='to_status')
    actor = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='actor_id')
    actor_role = models.CharField(max_length=32, blank=True, default='', db_column='actor_role')
    notes = models.TextField(blank=True, default='', db_column='notes')
    created_at = models.DateTimeField(db_column='created_at')

    class Meta:
        db_table = 'application_transition'
        ordering = ['created_at', 'id']
        indexes = [models.Index(fields=['application'], name='idx_transition_application')]

    def __str__(self):
        return f"{self.application_id}: {self.from_status} -> {self.to_status} ({self.action})"
