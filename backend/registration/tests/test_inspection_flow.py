from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from .. import inspection_engine
from ..access_policy import Actor
from ..domain_actors import Role
from ..domain_application import ApplicationStatus as S
from ..domain_inspection import InspectionOrder, InspectionReport, OrderStatus
from ..workflow_errors import AlreadySubmitted, Forbidden, InvalidTransition, ValidationFailed
from .support import FIXED_NOW, WorkflowFixtureMixin, make_application, make_user

CLERK = Actor(id=20, role=Role.SCRUTINY_CLERK, district='Shimla')


def _order(**overrides):
    fields = dict(
        id=5, application_id=1, assigned_to_id=20, scheduled_by_id=30,
        scheduled_date=date(2025, 3, 20), district='Shimla', status=OrderStatus.SCHEDULED, created_at=FIXED_NOW,
    )
    fields.update(overrides)
    return InspectionOrder(**fields)


class SubmitReportTests(SimpleTestCase):
    def setUp(self):
        self.application = make_application(status=S.INSPECTION_SCHEDULED)

    def test_assigned_officer_files_report(self):
        outcome = inspection_engine.submit_report(
            self.application, _order(), CLERK, 'approve',
            mandatory_checklist={'fire_equipment': True, 'cctv_cameras': {'ok': True, 'remark': 'Two cameras'}},
            now=FIXED_NOW,
        )
        self.assertEqual(outcome.plan.to_status, S.INSPECTION_COMPLETED)
        self.assertEqual(outcome.order_updates, {'status': OrderStatus.COMPLETED, 'completed_at': FIXED_NOW})
        report = outcome.report
        self.assertEqual(report.order_id, 5)
        self.assertEqual(report.actual_inspection_date, date(2025, 3, 15))
        self.assertEqual(report.mandatory_checklist['cctv_cameras'], {'ok': True, 'remark': 'Two cameras'})
        self.assertFalse(report.mandatory_checklist['guest_register']['ok'])
        # 2 of 18 mandatory items
        self.assertEqual(report.mandatory_compliance, Decimal('11.11'))
        self.assertEqual(report.desirable_compliance, Decimal('0.00'))

    def test_other_officer_is_forbidden(self):
        other = Actor(id=21, role=Role.SCRUTINY_CLERK, district='Shimla')
        with self.assertRaises(Forbidden):
            inspection_engine.submit_report(self.application, _order(), other, 'approve')

    def test_existing_report_wins_over_order_status(self):
        order = _order(status=OrderStatus.COMPLETED)
        with self.assertRaises(AlreadySubmitted):
            inspection_engine.submit_report(self.application, order, CLERK, 'approve',
                                            existing_report=InspectionReport(order_id=5))

    def test_closed_order_without_report_is_invalid(self):
        with self.assertRaises(InvalidTransition):
            inspection_engine.submit_report(self.application, _order(status=OrderStatus.COMPLETED), CLERK, 'approve')

    def test_unknown_checklist_item_is_rejected(self):
        with self.assertRaises(ValidationFailed) as ctx:
            inspection_engine.submit_report(self.application, _order(), CLERK, 'approve',
                                            desirable_checklist={'helipad': True})
        self.assertIn('desirable_checklist', ctx.exception.errors)

    def test_order_for_another_application(self):
        with self.assertRaises(ValidationFailed):
            inspection_engine.submit_report(self.application, _order(application_id=2), CLERK, 'approve')

    def test_compliance_of_empty_checklist(self):
        self.assertEqual(inspection_engine.compliance_percent({}), Decimal('0.00'))


class InspectionFlowTests(WorkflowFixtureMixin, TestCase):
    def test_schedule_creates_one_open_order(self):
        application = self.scheduled_application()
        self.assertEqual(application.status, S.INSPECTION_SCHEDULED)
        self.assertEqual(application.current_stage, 'inspection')
        order = InspectionOrder.objects.get(application=application)
        self.assertEqual(order.assigned_to_id, self.clerk_user.id)
        self.assertEqual(order.status, OrderStatus.SCHEDULED)
        self.assertEqual(application.district_reviewed_by_id, self.reviewer_user.id)

    def test_report_completes_order_and_application(self):
        application = self.scheduled_application()
        order = InspectionOrder.objects.get(application=application)
        saved, report = self.registry.submit_inspection_report(
            order.id, self.clerk, 'approve_with_conditions', findings='Install a fire extinguisher in the kitchen.',
        )
        self.assertEqual(saved.status, S.INSPECTION_COMPLETED)
        self.assertEqual(saved.inspection_conditions, 'Install a fire extinguisher in the kitchen.')
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.COMPLETED)
        self.assertEqual(order.completed_at, FIXED_NOW)
        self.assertEqual(report.recommendation, 'approve_with_conditions')

    def test_duplicate_report_is_refused(self):
        application = self.scheduled_application()
        order = InspectionOrder.objects.get(application=application)
        self.registry.submit_inspection_report(order.id, self.clerk, 'approve')
        with self.assertRaises(AlreadySubmitted):
            self.registry.submit_inspection_report(order.id, self.clerk, 'approve')
        self.assertEqual(InspectionReport.objects.filter(order=order).count(), 1)
        application.refresh_from_db()
        self.assertEqual(application.status, S.INSPECTION_COMPLETED)

    def test_rejecting_inspection_ends_application(self):
        application = self.scheduled_application()
        order = InspectionOrder.objects.get(application=application)
        saved, _report = self.registry.submit_inspection_report(
            order.id, self.clerk, 'reject', findings='Structure is unsafe for guests.',
        )
        self.assertEqual(saved.status, S.REJECTED)
        self.assertEqual(saved.rejection_reason, 'Structure is unsafe for guests.')

    def test_assignee_from_another_district_is_refused(self):
        kullu_clerk = make_user('clerk.kullu', Role.SCRUTINY_CLERK, 'Kullu')
        application = self.forwarded_application()
        application = self.registry.perform(application.id, 'accept', self.reviewer)
        with self.assertRaises(ValidationFailed) as ctx:
            self.registry.schedule_inspection(application.id, self.reviewer, kullu_clerk.id, date(2025, 3, 20))
        self.assertIn('assigned_to', ctx.exception.errors)
        self.assertFalse(InspectionOrder.objects.filter(application=application).exists())

    def test_unknown_assignee_is_a_validation_error(self):
        application = self.forwarded_application()
        application = self.registry.perform(application.id, 'accept', self.reviewer)
        with self.assertRaises(ValidationFailed):
            self.registry.schedule_inspection(application.id, self.reviewer, 987654, date(2025, 3, 20))
