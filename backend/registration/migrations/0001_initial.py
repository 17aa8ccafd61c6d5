from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


STATUS_CHOICES = [
    ('draft', 'Draft'),
    ('submitted', 'Submitted'),
    ('under_scrutiny', 'Under Scrutiny'),
    ('sent_back_for_corrections', 'Sent Back for Corrections'),
    ('forwarded_to_review', 'Forwarded to District Review'),
    ('reverted_to_applicant', 'Reverted to Applicant'),
    ('review_accepted', 'Accepted at District Review'),
    ('inspection_scheduled', 'Inspection Scheduled'),
    ('inspection_completed', 'Inspection Completed'),
    ('inspection_under_review', 'Inspection Under Review'),
    ('reverted_by_review', 'Reverted after Inspection Review'),
    ('objection_raised', 'Objection Raised'),
    ('verified_for_payment', 'Verified for Payment'),
    ('payment_pending', 'Payment Pending'),
    ('approved', 'Approved'),
    ('rejected', 'Rejected'),
]

ACTION_CHOICES = [
    ('save_draft', 'Save Draft'),
    ('submit', 'Submit'),
    ('resubmit', 'Resubmit after Correction'),
    ('delete_document', 'Delete Document'),
    ('start_scrutiny', 'Start Scrutiny'),
    ('verify_document', 'Verify Document'),
    ('forward_to_review', 'Forward to District Review'),
    ('send_back', 'Send Back for Corrections'),
    ('accept', 'Accept'),
    ('revert', 'Revert'),
    ('reject', 'Reject'),
    ('schedule_inspection', 'Schedule Inspection'),
    ('complete_inspection', 'Complete Inspection'),
    ('begin_inspection_review', 'Begin Inspection Review'),
    ('verify_for_payment', 'Verify for Payment'),
    ('raise_objections', 'Raise Objections'),
    ('request_payment', 'Request Payment'),
    ('confirm_payment', 'Confirm Payment'),
]

STAGE_CHOICES = [
    ('draft', 'Draft'),
    ('correction', 'With Applicant'),
    ('scrutiny', 'Scrutiny'),
    ('district', 'District Review'),
    ('inspection', 'Inspection'),
    ('state', 'State Approval'),
    ('payment', 'Payment'),
    ('final', 'Final'),
]


def money(column):
    return models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'), db_column=column)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ActorProfile',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('owner', 'Property Owner'), ('scrutiny_clerk', 'Scrutiny Clerk'), ('district_reviewer', 'District Tourism Officer'), ('state_approver', 'State Approver'), ('administrator', 'Administrator'), ('super_administrator', 'Super Administrator')], db_column='role', default='owner', max_length=32)),
                ('district', models.CharField(blank=True, db_column='district', max_length=100, null=True)),
                ('mobile', models.CharField(blank=True, db_column='mobile', max_length=15, null=True)),
                ('is_active', models.BooleanField(db_column='is_active', default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('updated_at', models.DateTimeField(auto_now=True, db_column='updated_at')),
                ('user', models.OneToOneField(db_column='user_id', on_delete=django.db.models.deletion.CASCADE, related_name='actor_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'actor_profile',
                'indexes': [models.Index(fields=['role', 'district'], name='idx_actor_role_district')],
            },
        ),
        migrations.CreateModel(
            name='Application',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('application_number', models.CharField(db_column='application_number', max_length=50, unique=True)),
                ('property_name', models.CharField(blank=True, db_column='property_name', default='', max_length=255)),
                ('category', models.CharField(blank=True, choices=[('diamond', 'Diamond'), ('gold', 'Gold'), ('silver', 'Silver')], db_column='category', max_length=20, null=True)),
                ('location_type', models.CharField(blank=True, choices=[('municipal', 'Municipal Corporation'), ('town_planning', 'TCP/SDA/Nagar Panchayat'), ('gram_panchayat', 'Gram Panchayat')], db_column='location_type', max_length=20, null=True)),
                ('project_type', models.CharField(blank=True, choices=[('new_project', 'New Project'), ('existing_property', 'Existing Property')], db_column='project_type', max_length=20, null=True)),
                ('single_bed_rooms', models.PositiveSmallIntegerField(db_column='single_bed_rooms', default=0)),
                ('single_bed_room_rate', models.DecimalField(blank=True, db_column='single_bed_room_rate', decimal_places=2, max_digits=10, null=True)),
                ('single_bed_room_size', models.DecimalField(blank=True, db_column='single_bed_room_size', decimal_places=2, max_digits=8, null=True)),
                ('double_bed_rooms', models.PositiveSmallIntegerField(db_column='double_bed_rooms', default=0)),
                ('double_bed_room_rate', models.DecimalField(blank=True, db_column='double_bed_room_rate', decimal_places=2, max_digits=10, null=True)),
                ('double_bed_room_size', models.DecimalField(blank=True, db_column='double_bed_room_size', decimal_places=2, max_digits=8, null=True)),
                ('family_suites', models.PositiveSmallIntegerField(db_column='family_suites', default=0)),
                ('family_suite_rate', models.DecimalField(blank=True, db_column='family_suite_rate', decimal_places=2, max_digits=10, null=True)),
                ('family_suite_size', models.DecimalField(blank=True, db_column='family_suite_size', decimal_places=2, max_digits=8, null=True)),
                ('total_rooms', models.PositiveSmallIntegerField(db_column='total_rooms', default=0)),
                ('district', models.CharField(blank=True, db_column='district', default='', max_length=100)),
                ('tehsil', models.CharField(blank=True, db_column='tehsil', default='', max_length=100)),
                ('block', models.CharField(blank=True, db_column='block', default='', max_length=100)),
                ('gram_panchayat', models.CharField(blank=True, db_column='gram_panchayat', default='', max_length=150)),
                ('urban_body', models.CharField(blank=True, db_column='urban_body', default='', max_length=150)),
                ('address', models.TextField(blank=True, db_column='address', default='')),
                ('pincode', models.CharField(blank=True, db_column='pincode', default='', max_length=10)),
                ('latitude', models.DecimalField(blank=True, db_column='latitude', decimal_places=8, max_digits=10, null=True)),
                ('longitude', models.DecimalField(blank=True, db_column='longitude', decimal_places=8, max_digits=11, null=True)),
                ('owner_name', models.CharField(blank=True, db_column='owner_name', default='', max_length=255)),
                ('owner_gender', models.CharField(blank=True, choices=[('male', 'Male'), ('female', 'Female'), ('other', 'Other')], db_column='owner_gender', max_length=10, null=True)),
                ('owner_mobile', models.CharField(blank=True, db_column='owner_mobile', default='', max_length=15)),
                ('owner_email', models.EmailField(blank=True, db_column='owner_email', max_length=254, null=True)),
                ('validity_years', models.PositiveSmallIntegerField(db_column='validity_years', default=1)),
                ('is_sub_division_exception', models.BooleanField(db_column='is_sub_division_exception', default=False)),
                ('base_fee', money('base_fee')),
                ('gst_amount', money('gst_amount')),
                ('total_before_discounts', money('total_before_discounts')),
                ('validity_discount', money('validity_discount')),
                ('female_owner_discount', money('female_owner_discount')),
                ('sub_division_discount', money('sub_division_discount')),
                ('total_discount', money('total_discount')),
                ('total_fee', money('total_fee')),
                ('status', models.CharField(choices=STATUS_CHOICES, db_column='status', default='draft', max_length=32)),
                ('current_stage', models.CharField(choices=STAGE_CHOICES, db_column='current_stage', default='draft', max_length=20)),
                ('version', models.PositiveIntegerField(db_column='version', default=1)),
                ('scrutiny_reviewed_at', models.DateTimeField(blank=True, db_column='scrutiny_reviewed_at', null=True)),
                ('scrutiny_notes', models.TextField(blank=True, db_column='scrutiny_notes', default='')),
                ('scrutiny_feedback', models.TextField(blank=True, db_column='scrutiny_feedback', default='')),
                ('district_reviewed_at', models.DateTimeField(blank=True, db_column='district_reviewed_at', null=True)),
                ('district_notes', models.TextField(blank=True, db_column='district_notes', default='')),
                ('district_feedback', models.TextField(blank=True, db_column='district_feedback', default='')),
                ('inspection_reviewed_at', models.DateTimeField(blank=True, db_column='inspection_reviewed_at', null=True)),
                ('inspection_notes', models.TextField(blank=True, db_column='inspection_notes', default='')),
                ('inspection_feedback', models.TextField(blank=True, db_column='inspection_feedback', default='')),
                ('inspection_conditions', models.TextField(blank=True, db_column='inspection_conditions', default='')),
                ('state_reviewed_at', models.DateTimeField(blank=True, db_column='state_reviewed_at', null=True)),
                ('state_notes', models.TextField(blank=True, db_column='state_notes', default='')),
                ('state_feedback', models.TextField(blank=True, db_column='state_feedback', default='')),
                ('rejection_reason', models.TextField(blank=True, db_column='rejection_reason', default='')),
                ('certificate_number', models.CharField(blank=True, db_column='certificate_number', max_length=50, null=True, unique=True)),
                ('certificate_issued_at', models.DateTimeField(blank=True, db_column='certificate_issued_at', null=True)),
                ('certificate_expiry_date', models.DateField(blank=True, db_column='certificate_expiry_date', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_column='created_at')),
                ('updated_at', models.DateTimeField(auto_now=True, db_column='updated_at')),
                ('submitted_at', models.DateTimeField(blank=True, db_column='submitted_at', null=True)),
                ('approved_at', models.DateTimeField(blank=True, db_column='approved_at', null=True)),
                ('owner', models.ForeignKey(db_column='owner_id', on_delete=django.db.models.deletion.PROTECT, related_name='homestay_applications', to=settings.AUTH_USER_MODEL)),
                ('scrutiny_reviewed_by', models.ForeignKey(blank=True, db_column='scrutiny_reviewed_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('district_reviewed_by', models.ForeignKey(blank=True, db_column='district_reviewed_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('inspection_reviewed_by', models.ForeignKey(blank=True, db_column='inspection_reviewed_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('state_reviewed_by', models.ForeignKey(blank=True, db_column='state_reviewed_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'homestay_application',
                'indexes': [
                    models.Index(fields=['status'], name='idx_application_status'),
                    models.Index(fields=['district', 'status'], name='idx_application_district'),
                    models.Index(fields=['owner'], name='idx_application_owner'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('status__in', ['approved', 'rejected']), _negated=True),
                        fields=('owner',),
                        name='uniq_active_application_per_owner',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='ApplicationTransition',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('action', models.CharField(choices=ACTION_CHOICES, db_column='action', max_length=32)),
                ('from_status', models.CharField(choices=STATUS_CHOICES, db_column='from_status', max_length=32)),
                ('to_status', models.CharField(choices=STATUS_CHOICES, db_column='to_status', max_length=32)),
                ('actor_role', models.CharField(blank=True, db_column='actor_role', default='', max_length=32)),
                ('notes', models.TextField(blank=True, db_column='notes', default='')),
                ('created_at', models.DateTimeField(db_column='created_at')),
                ('actor', models.ForeignKey(blank=True, db_column='actor_id', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('application', models.ForeignKey(db_column='application_id', on_delete=django.db.models.deletion.CASCADE, related_name='transitions', to='registration.application')),
            ],
            options={
                'db_table': 'application_transition',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['application'], name='idx_transition_application')],
            },
        ),
        migrations.CreateModel(
            name='ApplicationDocument',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('document_type', models.CharField(choices=[('revenue_papers', 'Revenue Papers (Jamabandi & Tatima)'), ('affidavit_section_29', 'Affidavit under Section 29'), ('undertaking_form_c', 'Undertaking in Form-C'), ('register_for_verification', 'Register for Verification'), ('bill_book', 'Bill Book'), ('property_photo', 'Property Photograph')], db_column='document_type', max_length=40)),
                ('file_name', models.CharField(db_column='file_name', max_length=255)),
                ('file_path', models.CharField(db_column='file_path', max_length=500)),
                ('file_size', models.PositiveIntegerField(db_column='file_size', default=0)),
                ('mime_type', models.CharField(blank=True, db_column='mime_type', default='', max_length=100)),
                ('file_category', models.CharField(choices=[('photo', 'Photo'), ('document', 'Document')], db_column='file_category', default='document', max_length=10)),
                ('verification_status', models.CharField(choices=[('pending', 'Pending'), ('verified', 'Verified'), ('rejected', 'Rejected')], db_column='verification_status', default='pending', max_length=10)),
                ('verified_at', models.DateTimeField(blank=True, db_column='verified_at', null=True)),
                ('verification_notes', models.TextField(blank=True, db_column='verification_notes', default='')),
                ('version', models.PositiveIntegerField(db_column='version', default=1)),
                ('is_latest_version', models.BooleanField(db_column='is_latest_version', default=True)),
                ('is_deleted', models.BooleanField(db_column='is_deleted', default=False)),
                ('uploaded_at', models.DateTimeField(db_column='uploaded_at')),
                ('application', models.ForeignKey(db_column='application_id', on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='registration.application')),
                ('previous_version', models.ForeignKey(blank=True, db_column='previous_version_id', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='next_versions', to='registration.applicationdocument')),
                ('uploaded_by', models.ForeignKey(blank=True, db_column='uploaded_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('verified_by', models.ForeignKey(blank=True, db_column='verified_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'application_document',
                'ordering': ['application_id', 'document_type', 'version'],
                'indexes': [
                    models.Index(fields=['application', 'document_type'], name='idx_document_app_type'),
                    models.Index(fields=['application', 'is_latest_version'], name='idx_document_latest'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InspectionOrder',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('scheduled_date', models.DateField(db_column='scheduled_date')),
                ('district', models.CharField(blank=True, db_column='district', default='', max_length=100)),
                ('address_snapshot', models.TextField(blank=True, db_column='address_snapshot', default='')),
                ('special_instructions', models.TextField(blank=True, db_column='special_instructions', default='')),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('completed', 'Completed')], db_column='status', default='scheduled', max_length=10)),
                ('created_at', models.DateTimeField(db_column='created_at')),
                ('completed_at', models.DateTimeField(blank=True, db_column='completed_at', null=True)),
                ('application', models.ForeignKey(db_column='application_id', on_delete=django.db.models.deletion.CASCADE, related_name='inspection_orders', to='registration.application')),
                ('assigned_to', models.ForeignKey(db_column='assigned_to', on_delete=django.db.models.deletion.PROTECT, related_name='assigned_inspections', to=settings.AUTH_USER_MODEL)),
                ('scheduled_by', models.ForeignKey(blank=True, db_column='scheduled_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'inspection_order',
                'ordering': ['-scheduled_date', '-id'],
                'indexes': [
                    models.Index(fields=['assigned_to', 'status'], name='idx_inspection_assignee'),
                    models.Index(fields=['application'], name='idx_inspection_application'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InspectionReport',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('actual_inspection_date', models.DateField(blank=True, db_column='actual_inspection_date', null=True)),
                ('mandatory_checklist', models.JSONField(blank=True, db_column='mandatory_checklist', default=dict)),
                ('desirable_checklist', models.JSONField(blank=True, db_column='desirable_checklist', default=dict)),
                ('mandatory_compliance', models.DecimalField(db_column='mandatory_compliance', decimal_places=2, default=Decimal('0'), max_digits=5)),
                ('desirable_compliance', models.DecimalField(db_column='desirable_compliance', decimal_places=2, default=Decimal('0'), max_digits=5)),
                ('recommendation', models.CharField(choices=[('approve', 'Approve'), ('approve_with_conditions', 'Approve with Conditions'), ('raise_objections', 'Raise Objections'), ('reject', 'Reject')], db_column='recommendation', max_length=32)),
                ('findings', models.TextField(blank=True, db_column='findings', default='')),
                ('submitted_at', models.DateTimeField(db_column='submitted_at')),
                ('application', models.ForeignKey(db_column='application_id', on_delete=django.db.models.deletion.CASCADE, related_name='inspection_reports', to='registration.application')),
                ('order', models.OneToOneField(db_column='order_id', on_delete=django.db.models.deletion.CASCADE, related_name='report', to='registration.inspectionorder')),
                ('submitted_by', models.ForeignKey(blank=True, db_column='submitted_by', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'inspection_report',
            },
        ),
        migrations.CreateModel(
            name='ApiActivityLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('route_name', models.CharField(blank=True, max_length=200, null=True)),
                ('workflow_action', models.CharField(blank=True, max_length=32, null=True)),
                ('path', models.CharField(blank=True, max_length=1000, null=True)),
                ('method', models.CharField(blank=True, max_length=10, null=True)),
                ('payload', models.JSONField(blank=True, null=True)),
                ('status_code', models.IntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'api_activity_log',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ErrorLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('path', models.CharField(blank=True, max_length=1000, null=True)),
                ('method', models.CharField(blank=True, max_length=10, null=True)),
                ('exception_type', models.CharField(blank=True, max_length=200, null=True)),
                ('message', models.TextField(blank=True, null=True)),
                ('stack', models.TextField(blank=True, null=True)),
                ('payload', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'error_log',
                'ordering': ['-created_at'],
            },
        ),
    ]
