from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.db.models import F
from django.test import TestCase

from .. import workflow_engine
from ..access_policy import SERVICE_ACTOR
from ..domain_actors import ActorProfile, Role
from ..domain_application import Application, ApplicationStatus as S, TERMINAL_STATUSES
from ..domain_documents import ApplicationDocument
from ..domain_inspection import InspectionOrder
from ..domain_payments import PaymentRecord, PaymentStatus
from ..record_store import DjangoRecordStore, next_sequence_number
from ..workflow_engine import TransitionContext
from ..workflow_errors import (
    Conflict,
    Forbidden,
    InvalidTransition,
    RecordNotFound,
    ValidationFailed,
)
from .support import FIXED_NOW, WorkflowFixtureMixin, make_user


class DraftTests(WorkflowFixtureMixin, TestCase):
    def test_first_draft_gets_a_number_and_documents(self):
        application = self.draft_application()
        self.assertEqual(application.application_number, 'HP-HS-2025-000001')
        self.assertEqual(application.status, S.DRAFT)
        self.assertEqual(application.version, 2)
        self.assertEqual(application.total_rooms, 3)
        self.assertEqual(application.total_fee, Decimal('6726.00'))
        self.assertEqual(ApplicationDocument.objects.filter(application=application).count(), 7)

    def test_second_draft_updates_the_same_record(self):
        first = self.draft_application()
        second, created = self.registry.save_draft(self.owner, {'property_name': 'Cedar Nest'})
        self.assertFalse(created)
        self.assertEqual(first.id, second.id)
        self.assertEqual(second.property_name, 'Cedar Nest')
        # fields not supplied are left alone
        self.assertEqual(second.district, 'Shimla')
        self.assertEqual(Application.objects.filter(owner=self.owner_user).count(), 1)

    def test_application_under_review_cannot_be_edited(self):
        application = self.submitted_application()
        with self.assertRaises(InvalidTransition):
            self.registry.save_draft(self.owner, {'property_name': 'Cedar Nest'})
        application.refresh_from_db()
        self.assertEqual(application.property_name, 'Pine View Homestay')

    def test_non_owner_cannot_create_drafts(self):
        with self.assertRaises(Forbidden):
            self.registry.save_draft(self.clerk, {'property_name': 'Clerk Cottage'})

    def test_new_draft_after_rejection(self):
        application = self.forwarded_application()
        self.registry.perform(application.id, 'reject', self.reviewer, reason='Property is not owner occupied.')
        fresh, created = self.registry.save_draft(self.owner, {'property_name': 'Second Attempt'})
        self.assertTrue(created)
        self.assertNotEqual(fresh.id, application.id)
        self.assertEqual(fresh.application_number, 'HP-HS-2025-000002')
        active = Application.objects.filter(owner=self.owner_user).exclude(status__in=list(TERMINAL_STATUSES))
        self.assertEqual(active.count(), 1)

    def test_documents_are_soft_deleted_only_while_editable(self):
        application = self.draft_application()
        photo = ApplicationDocument.objects.filter(application=application, document_type='property_photo').first()
        self.registry.delete_document(photo.id, self.owner)
        photo.refresh_from_db()
        self.assertTrue(photo.is_deleted)
        with self.assertRaises(RecordNotFound):
            self.registry.delete_document(photo.id, self.owner)
        rows = {row['document_type']: row for row in self.registry.checklist(application.id)}
        self.assertFalse(rows['property_photo']['satisfied'])

    def test_delete_document_after_submission_is_invalid(self):
        application = self.submitted_application()
        document = ApplicationDocument.objects.filter(application=application).first()
        with self.assertRaises(InvalidTransition):
            self.registry.delete_document(document.id, self.owner)

    def test_resubmission_with_replacement_document(self):
        application = self.submitted_application()
        application = self.registry.perform(application.id, 'start_scrutiny', self.clerk)
        application = self.registry.perform(application.id, 'send_back', self.clerk,
                                            reason='Revenue papers are not legible.')
        self.assertEqual(application.scrutiny_feedback, 'Revenue papers are not legible.')
        old = ApplicationDocument.objects.get(application=application, document_type='revenue_papers')
        application = self.registry.perform(application.id, 'resubmit', self.owner, documents=[{
            'document_type': 'revenue_papers',
            'file_name': 'jamabandi-clear.pdf',
            'file_path': 'uploads/pine-view/jamabandi-clear.pdf',
            'mime_type': 'application/pdf',
            'replaces': old.id,
        }])
        self.assertEqual(application.status, S.SUBMITTED)
        self.assertEqual(application.scrutiny_feedback, '')
        old.refresh_from_db()
        self.assertFalse(old.is_latest_version)
        latest = ApplicationDocument.objects.get(application=application, document_type='revenue_papers',
                                                 is_latest_version=True)
        self.assertEqual(latest.version, 2)
        self.assertEqual(latest.previous_version_id, old.id)


class ReviewFlowTests(WorkflowFixtureMixin, TestCase):
    def test_full_approval_issues_certificate(self):
        application = self.scheduled_application()
        order = InspectionOrder.objects.get(application=application)
        application, _report = self.registry.submit_inspection_report(order.id, self.clerk, 'approve')
        application = self.registry.perform(application.id, 'begin_inspection_review', self.reviewer)
        application = self.registry.perform(application.id, 'verify_for_payment', self.reviewer)
        application = self.registry.perform(application.id, 'request_payment', self.state)
        self.assertEqual(application.status, S.PAYMENT_PENDING)
        self.assertEqual(application.state_reviewed_by_id, self.state_user.id)

        approved = self.registry.confirm_payment(application.id, SERVICE_ACTOR, payment_reference='PAY-778812')
        self.assertEqual(approved.status, S.APPROVED)
        self.assertEqual(approved.current_stage, 'final')
        self.assertEqual(approved.certificate_number, 'HP-HST-2025-000001')
        self.assertEqual(approved.certificate_expiry_date, date(2026, 3, 15))
        self.assertEqual(approved.approved_at, FIXED_NOW)

        actions = [entry.action for entry in self.registry.history(approved.id)]
        self.assertEqual(actions, [
            'save_draft', 'submit', 'start_scrutiny', 'forward_to_review', 'accept', 'schedule_inspection',
            'complete_inspection', 'begin_inspection_review', 'verify_for_payment', 'request_payment',
            'confirm_payment',
        ])

    def test_confirm_payment_writes_the_ledger(self):
        application = self.payment_pending_application()
        self.registry.confirm_payment(application.id, SERVICE_ACTOR, payment_reference='PAY-778812',
                                      amount=Decimal('6726'), payment_method='upi')
        payment = PaymentRecord.objects.get(application=application)
        self.assertEqual(payment.status, PaymentStatus.SUCCESS)
        self.assertEqual(payment.amount, Decimal('6726.00'))
        self.assertEqual(payment.expected_amount, Decimal('6726.00'))
        self.assertEqual(payment.payment_reference, 'PAY-778812')
        self.assertEqual(payment.completed_at, FIXED_NOW)
        self.assertEqual([p.id for p in self.registry.payments(application.id)], [payment.id])

    def test_wrong_amount_is_refused(self):
        application = self.payment_pending_application()
        with self.assertRaises(ValidationFailed) as ctx:
            self.registry.confirm_payment(application.id, SERVICE_ACTOR, amount=Decimal('6000.00'))
        self.assertIn('amount', ctx.exception.errors)
        fresh = Application.objects.get(pk=application.id)
        self.assertEqual(fresh.status, S.PAYMENT_PENDING)
        self.assertIsNone(fresh.certificate_number)
        self.assertFalse(PaymentRecord.objects.filter(application=application).exists())

    def test_failed_payment_is_kept_without_changing_the_application(self):
        application = self.payment_pending_application()
        record = self.registry.record_payment_outcome(application.id, PaymentStatus.FAILED, amount=Decimal('6726.00'),
                                                      payment_reference='PAY-1', detail='declined')
        self.assertEqual(record.expected_amount, Decimal('6726.00'))
        self.assertEqual(record.received_at, FIXED_NOW)
        self.assertIsNone(record.completed_at)
        fresh = Application.objects.get(pk=application.id)
        self.assertEqual(fresh.status, S.PAYMENT_PENDING)
        self.assertEqual(fresh.version, application.version)

    def test_certificate_numbers_skip_non_numeric_suffixes(self):
        legacy_owner = make_user('legacy.owner')
        Application.objects.create(owner=legacy_owner, application_number='HP-HS-2024-000900', status=S.APPROVED,
                                   certificate_number='HP-HST-2025-000001')
        Application.objects.create(owner=legacy_owner, application_number='HP-HS-2024-000901', status=S.APPROVED,
                                   certificate_number='HP-HST-2025-A1')
        application = self.payment_pending_application()
        approved = self.registry.confirm_payment(application.id, SERVICE_ACTOR)
        self.assertEqual(approved.certificate_number, 'HP-HST-2025-000002')

    def test_category_check(self):
        application = self.draft_application()
        result = self.registry.category_check(application)
        self.assertEqual(result['average_room_rate'], Decimal('3500.00'))
        self.assertEqual(result['total_rooms'], 3)
        self.assertTrue(result['is_valid'])
        self.assertEqual(result['suggested_category'], 'gold')

        diamond = self.registry.category_check(Application(category='diamond', single_bed_rooms=2,
                                                           single_bed_room_rate=Decimal('12000')))
        self.assertFalse(diamond['is_valid'])
        self.assertEqual(len(diamond['errors']), 1)

    def test_confirm_payment_outside_payment_pending(self):
        application = self.submitted_application()
        with self.assertRaises(InvalidTransition):
            self.registry.confirm_payment(application.id, SERVICE_ACTOR)
        application.refresh_from_db()
        self.assertIsNone(application.certificate_number)

    def test_verify_document_records_verifier(self):
        application = self.submitted_application()
        application = self.registry.perform(application.id, 'start_scrutiny', self.clerk)
        document = ApplicationDocument.objects.filter(application=application).first()
        after = self.registry.verify_document(document.id, self.clerk, 'verified')
        document.refresh_from_db()
        self.assertEqual(document.verification_status, 'verified')
        self.assertEqual(document.verified_by_id, self.clerk_user.id)
        self.assertEqual(after.status, S.UNDER_SCRUTINY)
        self.assertEqual(after.version, application.version + 1)

    def test_cross_district_reviewer_changes_nothing(self):
        kangra = make_user('dtdo.kangra', Role.DISTRICT_REVIEWER, 'Kangra')
        application = self.forwarded_application()
        with self.assertRaises(Forbidden):
            self.registry.perform(application.id, 'revert', ActorProfile.objects.get(user=kangra).as_actor(),
                                  reason='Missing ownership proof.')
        fresh = Application.objects.get(pk=application.id)
        self.assertEqual(fresh.status, S.FORWARDED_TO_REVIEW)
        self.assertEqual(fresh.version, application.version)

    def test_dedicated_actions_are_not_generic(self):
        application = self.submitted_application()
        with self.assertRaises(ValidationFailed):
            self.registry.perform(application.id, 'confirm_payment', SERVICE_ACTOR)

    def test_unknown_application(self):
        with self.assertRaises(RecordNotFound):
            self.registry.perform(424242, 'start_scrutiny', self.clerk)


class ConcurrencyTests(WorkflowFixtureMixin, TestCase):
    def test_stale_expected_version_is_a_conflict(self):
        application = self.submitted_application()
        with self.assertRaises(Conflict) as ctx:
            self.registry.perform(application.id, 'start_scrutiny', self.clerk,
                                  expected_version=application.version - 1)
        self.assertEqual(ctx.exception.detail['current_version'], application.version)

    def test_commit_refuses_a_plan_built_on_a_stale_row(self):
        store = DjangoRecordStore()
        application = self.submitted_application()
        stale = store.get_application(application.id)
        Application.objects.filter(pk=application.id).update(version=F('version') + 1)
        plan = workflow_engine.transition(stale, 'start_scrutiny', self.clerk, now=FIXED_NOW)
        with self.assertRaises(Conflict):
            store.commit(plan)
        fresh = Application.objects.get(pk=application.id)
        self.assertEqual(fresh.status, S.SUBMITTED)
        self.assertEqual(fresh.transitions.count(), 2)

    def test_certificate_collision_is_a_conflict(self):
        application = self.payment_pending_application()
        Application.objects.create(owner=make_user('approved.owner'), application_number='HP-HS-2024-000900',
                                   status=S.APPROVED, certificate_number='HP-HST-2025-000007')
        store = DjangoRecordStore()
        plan = workflow_engine.transition(store.get_application(application.id), 'confirm_payment', SERVICE_ACTOR,
                                          TransitionContext(certificate_number='HP-HST-2025-000007'), now=FIXED_NOW)
        with self.assertRaises(Conflict):
            store.commit(plan)
        fresh = Application.objects.get(pk=application.id)
        self.assertEqual(fresh.status, S.PAYMENT_PENDING)
        self.assertIsNone(fresh.certificate_number)
        self.assertFalse(PaymentRecord.objects.filter(application=application).exists())


class SequenceNumberTests(TestCase):
    def test_numbers_continue_from_the_highest(self):
        owner = make_user('numbers.owner')
        Application.objects.create(owner=owner, application_number='HP-HS-2025-000041', status=S.REJECTED)
        self.assertEqual(next_sequence_number(Application, 'application_number', 'HP-HS-2025-'), 'HP-HS-2025-000042')
        self.assertEqual(next_sequence_number(Application, 'application_number', 'HP-HS-2026-'), 'HP-HS-2026-000001')

    def test_non_numeric_suffixes_do_not_restart_the_sequence(self):
        owner = make_user('legacy.numbers')
        Application.objects.create(owner=owner, application_number='HP-HS-2025-000041', status=S.REJECTED)
        Application.objects.create(owner=owner, application_number='HP-HS-2025-OLD7', status=S.REJECTED)
        self.assertEqual(next_sequence_number(Application, 'application_number', 'HP-HS-2025-'), 'HP-HS-2025-000042')


class ManagementCommandTests(TestCase):
    def test_assign_role(self):
        user = make_user('new.clerk')
        out = StringIO()
        call_command('assign_role', 'new.clerk', 'scrutiny_clerk', '--district', 'Kullu', stdout=out)
        profile = ActorProfile.objects.get(user=user)
        self.assertEqual(profile.role, Role.SCRUTINY_CLERK)
        self.assertEqual(profile.district, 'Kullu')
        self.assertIn('new.clerk is scrutiny_clerk in Kullu', out.getvalue())

    def test_assign_district_role_without_district(self):
        make_user('no.district')
        with self.assertRaises(CommandError):
            call_command('assign_role', 'no.district', 'district_reviewer')

    def test_workflow_graph_edges(self):
        out = StringIO()
        call_command('workflow_graph', '--edges', stdout=out)
        self.assertIn('inspection_scheduled -[complete_inspection]-> objection_raised', out.getvalue())
