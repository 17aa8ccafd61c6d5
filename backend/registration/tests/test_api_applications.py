"""API wiring tests: auth, drafts, workflow actions, inspections and the payment callback.

Run with: python manage.py test registration.tests.test_api_applications -v 2
"""
import json
from decimal import Decimal

from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from ..access_policy import SERVICE_ACTOR
from ..domain_actors import Role
from ..domain_application import Application
from ..domain_inspection import InspectionOrder
from ..domain_logs import ApiActivityLog
from ..domain_payments import PaymentRecord, PaymentStatus
from ..views_payments import sign_payload
from .support import COMPLETE_DRAFT, WorkflowFixtureMixin, actor_for, full_manifest, make_user

CALLBACK_SECRET = 'gateway-shared-secret'


def draft_payload(**extra):
    payload = {k: str(v) if isinstance(v, Decimal) else v for k, v in COMPLETE_DRAFT.items()}
    payload.update(extra)
    return payload


class ApplicationApiTests(WorkflowFixtureMixin, APITestCase):
    def auth(self, username):
        resp = self.client.post(reverse('token_obtain_pair'), {'username': username, 'password': 'pass12345'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")

    def test_requires_authentication(self):
        resp = self.client.get('/api/applications/')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_token_and_me(self):
        self.auth('clerk.shimla')
        resp = self.client.get(reverse('auth-me'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['role'], Role.SCRUTINY_CLERK)
        self.assertEqual(resp.data['district'], 'Shimla')

    def test_draft_created_then_updated(self):
        self.auth('asha.verma')
        resp = self.client.post('/api/applications/draft/', draft_payload(documents=full_manifest()), format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        self.assertEqual(resp.data['status'], 'draft')
        self.assertEqual(resp.data['total_fee'], '6726.00')
        application_id = resp.data['id']

        resp = self.client.post('/api/applications/draft/', {'property_name': 'Cedar Nest'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data['id'], application_id)
        self.assertEqual(resp.data['property_name'], 'Cedar Nest')

        log = ApiActivityLog.objects.filter(route_name='application-draft').order_by('id').first()
        self.assertIsNotNone(log)
        self.assertEqual(log.user_id, self.owner_user.id)
        self.assertEqual(log.status_code, 201)

    def test_draft_rejects_bad_validity(self):
        self.auth('asha.verma')
        resp = self.client.post('/api/applications/draft/', {'validity_years': 2}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('validity_years', resp.data)

    def test_submit_and_checklist(self):
        application = self.draft_application()
        self.client.force_authenticate(self.owner_user)
        resp = self.client.get(f'/api/applications/{application.id}/checklist/')
        self.assertTrue(resp.data['complete'])
        resp = self.client.get(f'/api/applications/{application.id}/actions/')
        self.assertEqual(resp.data['actions'], ['save_draft', 'delete_document', 'submit'])

        resp = self.client.post(f'/api/applications/{application.id}/transition/',
                                {'action': 'submit', 'expected_version': application.version}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data['status'], 'submitted')
        self.assertEqual(resp.data['current_stage'], 'scrutiny')

    def test_submit_without_photos_lists_missing_documents(self):
        application, _created = self.registry.save_draft(self.owner, dict(COMPLETE_DRAFT), full_manifest(photos=1))
        self.client.force_authenticate(self.owner_user)
        resp = self.client.post(f'/api/applications/{application.id}/transition/', {'action': 'submit'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['code'], 'missing_documents')
        self.assertEqual(resp.data['missing'][0]['document_type'], 'property_photo')

    def test_stale_version_is_409(self):
        application = self.draft_application()
        self.client.force_authenticate(self.owner_user)
        resp = self.client.post(f'/api/applications/{application.id}/transition/',
                                {'action': 'submit', 'expected_version': 1}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data['code'], 'conflict')

    def test_action_outside_table_is_409(self):
        application = self.draft_application()
        self.client.force_authenticate(self.clerk_user)
        resp = self.client.post(f'/api/applications/{application.id}/transition/',
                                {'action': 'start_scrutiny'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data['code'], 'invalid_transition')
        self.assertEqual(resp.data['current_status'], 'draft')

    def test_cross_district_reviewer_gets_403(self):
        application = self.forwarded_application()
        kangra = make_user('dtdo.kangra', Role.DISTRICT_REVIEWER, 'Kangra')
        self.client.force_authenticate(kangra)
        resp = self.client.post(f'/api/applications/{application.id}/transition/',
                                {'action': 'revert', 'reason': 'Ownership papers are incomplete.'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data['code'], 'forbidden')
        self.assertEqual(Application.objects.get(pk=application.id).status, 'forwarded_to_review')

    def test_owner_sees_only_own_applications(self):
        self.draft_application()
        other = make_user('other.owner')
        self.client.force_authenticate(other)
        resp = self.client.get('/api/applications/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data, [])

    def test_fee_preview(self):
        self.client.force_authenticate(self.owner_user)
        resp = self.client.post(reverse('fee-preview'), {'category': 'diamond', 'location_type': 'municipal'}, format='json')
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertEqual(resp.data['gst_amount'], '3240.00')
        self.assertEqual(resp.data['total_fee'], '21240.00')

    def test_inspection_report_once(self):
        application = self.scheduled_application()
        order = InspectionOrder.objects.get(application=application)
        self.client.force_authenticate(self.clerk_user)
        url = f'/api/inspections/{order.id}/report/'
        body = {'recommendation': 'approve', 'mandatory_checklist': {'fire_equipment': True}}
        resp = self.client.post(url, body, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        self.assertEqual(resp.data['application']['status'], 'inspection_completed')
        resp = self.client.post(url, body, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data['code'], 'already_submitted')

    def test_category_check_endpoint(self):
        application = self.draft_application()
        self.client.force_authenticate(self.owner_user)
        resp = self.client.get(f'/api/applications/{application.id}/category-check/')
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertEqual(resp.data['average_room_rate'], '3500.00')
        self.assertTrue(resp.data['is_valid'])
        self.assertEqual(resp.data['suggested_category'], 'gold')

    def test_payments_endpoint_lists_the_ledger(self):
        application = self.payment_pending_application()
        self.registry.record_payment_outcome(application.id, PaymentStatus.FAILED, payment_reference='PAY-1')
        self.registry.confirm_payment(application.id, SERVICE_ACTOR, payment_reference='PAY-2')
        self.client.force_authenticate(self.owner_user)
        resp = self.client.get(f'/api/applications/{application.id}/payments/')
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertEqual([item['status'] for item in resp.data['items']], ['failed', 'success'])
        self.assertEqual(resp.data['items'][1]['amount'], '6726.00')

    def test_public_listing_shows_approved_properties_only(self):
        application = self.payment_pending_application()
        self.registry.confirm_payment(application.id, SERVICE_ACTOR)
        other = make_user('other.owner')
        self.registry.save_draft(actor_for(other), {'property_name': 'Unfinished Cottage', 'district': 'Shimla'})

        resp = self.client.get('/api/public/properties/')
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertEqual([item['property_name'] for item in resp.data], ['Pine View Homestay'])
        self.assertNotIn('owner_mobile', resp.data[0])
        self.assertEqual(resp.data[0]['certificate_number'], 'HP-HST-2025-000001')

        resp = self.client.get('/api/public/properties/', {'district': 'kangra'})
        self.assertEqual(resp.data, [])

    def test_schedule_inspection_endpoint(self):
        application = self.forwarded_application()
        application = self.registry.perform(application.id, 'accept', self.reviewer)
        self.client.force_authenticate(self.reviewer_user)
        resp = self.client.post(f'/api/applications/{application.id}/schedule-inspection/', {
            'assigned_to': self.clerk_user.id,
            'scheduled_date': '2025-03-22',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        self.assertEqual(resp.data['application']['status'], 'inspection_scheduled')
        self.assertEqual(resp.data['inspection_order']['assigned_to'], self.clerk_user.id)


@override_settings(HOMESTAY={'PAYMENT_CALLBACK_SECRET': CALLBACK_SECRET})
class PaymentCallbackTests(WorkflowFixtureMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.application = self.payment_pending_application()

    def _post(self, payload, secret=CALLBACK_SECRET):
        body = json.dumps(payload)
        return self.client.post(
            reverse('payment-callback'), body, content_type='application/json',
            HTTP_X_PAYMENT_SIGNATURE=sign_payload(body.encode('utf-8'), secret),
        )

    def _ledger(self):
        return list(PaymentRecord.objects.filter(application_id=self.application.id).values_list('status', flat=True))

    def test_bad_signature_is_refused(self):
        resp = self._post({'application_number': self.application.application_number, 'status': 'success',
                           'amount': '6726.00'}, secret='guessed')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Application.objects.get(pk=self.application.id).status, 'payment_pending')
        self.assertEqual(self._ledger(), [])

    def test_failed_payment_leaves_application_pending(self):
        resp = self._post({'application_number': self.application.application_number, 'status': 'failed',
                           'payment_reference': 'PAY-20250315-0041'})
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.data['approved'])
        self.assertEqual(Application.objects.get(pk=self.application.id).status, 'payment_pending')
        record = PaymentRecord.objects.get(application_id=self.application.id)
        self.assertEqual(record.status, PaymentStatus.FAILED)
        self.assertEqual(record.payment_reference, 'PAY-20250315-0041')

    def test_successful_payment_approves(self):
        resp = self._post({
            'application_number': self.application.application_number,
            'status': 'success',
            'payment_reference': 'PAY-20250315-0042',
            'payment_method': 'netbanking',
            'amount': '6726.00',
        })
        self.assertEqual(resp.status_code, 200, resp.content)
        self.assertTrue(resp.data['approved'])
        approved = Application.objects.get(pk=self.application.id)
        self.assertEqual(approved.status, 'approved')
        self.assertRegex(approved.certificate_number, r'^HP-HST-\d{4}-000001$')
        self.assertIsNotNone(approved.certificate_expiry_date)
        record = PaymentRecord.objects.get(application_id=self.application.id)
        self.assertEqual(record.status, PaymentStatus.SUCCESS)
        self.assertEqual(record.amount, Decimal('6726.00'))
        self.assertEqual(record.payment_method, 'netbanking')

    def test_amount_must_match_the_fee(self):
        resp = self._post({'application_number': self.application.application_number, 'status': 'success',
                           'payment_reference': 'PAY-20250315-0043', 'amount': '672.60'})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', resp.data['errors'])
        fresh = Application.objects.get(pk=self.application.id)
        self.assertEqual(fresh.status, 'payment_pending')
        self.assertIsNone(fresh.certificate_number)
        self.assertEqual(self._ledger(), [PaymentStatus.REFUSED])

    def test_success_without_amount_is_refused(self):
        resp = self._post({'application_number': self.application.application_number, 'status': 'success'})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self._ledger(), [PaymentStatus.REFUSED])

    def test_repeated_success_is_kept_but_refused(self):
        payload = {'application_number': self.application.application_number, 'status': 'success',
                   'payment_reference': 'PAY-20250315-0042', 'amount': '6726.00'}
        self.assertEqual(self._post(payload).status_code, 200)
        resp = self._post(payload)
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data['code'], 'invalid_transition')
        self.assertEqual(sorted(self._ledger()), [PaymentStatus.REFUSED, PaymentStatus.SUCCESS])

    def test_unknown_application_number(self):
        resp = self._post({'application_number': 'HP-HS-1999-000001', 'status': 'success', 'amount': '6726.00'})
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    @override_settings(HOMESTAY={'PAYMENT_CALLBACK_SECRET': ''})
    def test_no_secret_configured_refuses_everything(self):
        resp = self._post({'application_number': self.application.application_number, 'status': 'success'},
                          secret='')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
