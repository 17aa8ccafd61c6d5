from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth.models import User

from ..application_registry import ApplicationRegistry
from ..domain_actors import ActorProfile, Role
from ..domain_application import Application, ApplicationStatus
from ..domain_documents import ApplicationDocument, DocumentType

FIXED_NOW = datetime(2025, 3, 15, 10, 0, tzinfo=dt_timezone.utc)


def fixed_clock():
    return FIXED_NOW


COMPLETE_DRAFT = {
    'property_name': 'Pine View Homestay',
    'category': 'gold',
    'location_type': 'gram_panchayat',
    'project_type': 'existing_property',
    'single_bed_rooms': 1,
    'single_bed_room_rate': Decimal('2500'),
    'double_bed_rooms': 2,
    'double_bed_room_rate': Decimal('4000'),
    'district': 'Shimla',
    'tehsil': 'Theog',
    'address': 'Village Matiana, Tehsil Theog',
    'pincode': '171201',
    'owner_name': 'Asha Verma',
    'owner_gender': 'female',
    'owner_mobile': '9816000000',
    'validity_years': 1,
}

_MANIFEST_TYPES = (
    (DocumentType.REVENUE_PAPERS, 'application/pdf'),
    (DocumentType.AFFIDAVIT_SECTION_29, 'application/pdf'),
    (DocumentType.UNDERTAKING_FORM_C, 'application/pdf'),
    (DocumentType.REGISTER_FOR_VERIFICATION, 'application/pdf'),
    (DocumentType.BILL_BOOK, 'application/pdf'),
    (DocumentType.PROPERTY_PHOTO, 'image/jpeg'),
    (DocumentType.PROPERTY_PHOTO, 'image/jpeg'),
)


def full_manifest(prefix='uploads/pine-view', photos=2):
    entries = []
    photo_count = 0
    for index, (doc_type, mime) in enumerate(_MANIFEST_TYPES):
        if doc_type == DocumentType.PROPERTY_PHOTO:
            photo_count += 1
            if photo_count > photos:
                continue
        extension = 'jpg' if mime.startswith('image/') else 'pdf'
        entries.append({
            'document_type': str(doc_type),
            'file_name': f"{doc_type}-{index}.{extension}",
            'file_path': f"{prefix}/{doc_type}-{index}.{extension}",
            'file_size': 120000,
            'mime_type': mime,
        })
    return entries


def make_application(**overrides):
    """Unsaved application with every submission field filled in."""
    fields = dict(
        id=1,
        application_number='HP-HS-2025-000001',
        owner_id=10,
        status=ApplicationStatus.DRAFT,
        version=3,
        **COMPLETE_DRAFT,
    )
    fields.update(overrides)
    application = Application(**fields)
    application.total_rooms = application.compute_total_rooms()
    return application


def make_documents(application_id=1, photos=2, start_id=100):
    """Unsaved latest-version document rows built from the upload manifest."""
    documents = []
    for offset, entry in enumerate(full_manifest(photos=photos)):
        documents.append(ApplicationDocument(
            id=start_id + offset,
            application_id=application_id,
            document_type=entry['document_type'],
            file_name=entry['file_name'],
            file_path=entry['file_path'],
            file_size=entry['file_size'],
            mime_type=entry['mime_type'],
            version=1,
            is_latest_version=True,
            is_deleted=False,
            uploaded_at=FIXED_NOW,
        ))
    return documents


def make_user(username, role=Role.OWNER, district=None, is_active=True):
    user = User.objects.create_user(username=username, password='pass12345')
    ActorProfile.objects.filter(user=user).update(role=role, district=district, is_active=is_active)
    return user


def actor_for(user):
    return ActorProfile.objects.select_related('user').get(user=user).as_actor()


class WorkflowFixtureMixin:
    """Users for every role in Shimla plus a registry on a fixed clock."""

    def setUp(self):
        super().setUp()
        self.owner_user = make_user('asha.verma')
        self.clerk_user = make_user('clerk.shimla', Role.SCRUTINY_CLERK, 'Shimla')
        self.reviewer_user = make_user('dtdo.shimla', Role.DISTRICT_REVIEWER, 'Shimla')
        self.state_user = make_user('state.approver', Role.STATE_APPROVER)
        self.owner = actor_for(self.owner_user)
        self.clerk = actor_for(self.clerk_user)
        self.reviewer = actor_for(self.reviewer_user)
        self.state = actor_for(self.state_user)
        self.registry = ApplicationRegistry(clock=fixed_clock)

    def draft_application(self, **changes):
        application, _created = self.registry.save_draft(self.owner, dict(COMPLETE_DRAFT, **changes), full_manifest())
        return application

    def submitted_application(self):
        application = self.draft_application()
        return self.registry.perform(application.id, 'submit', self.owner)

    def forwarded_application(self):
        application = self.submitted_application()
        application = self.registry.perform(application.id, 'start_scrutiny', self.clerk)
        return self.registry.perform(application.id, 'forward_to_review', self.clerk)

    def scheduled_application(self):
        application = self.forwarded_application()
        application = self.registry.perform(application.id, 'accept', self.reviewer)
        return self.registry.schedule_inspection(
            application.id, self.reviewer, self.clerk_user.id, date(2025, 3, 20),
        )

    def payment_pending_application(self):
        application = self.scheduled_application()
        order = application.inspection_orders.get()
        application, _report = self.registry.submit_inspection_report(order.id, self.clerk, 'approve')
        application = self.registry.perform(application.id, 'begin_inspection_review', self.reviewer)
        application = self.registry.perform(application.id, 'verify_for_payment', self.reviewer)
        return self.registry.perform(application.id, 'request_payment', self.state)
