"""Payment gateway callback.

The gateway posts a JSON body and signs it with HMAC-SHA256 using the shared
``HOMESTAY_PAYMENT_CALLBACK_SECRET``; the hex digest arrives in the
``X-Payment-Signature`` header. A verified success whose amount matches the
fee due approves the application and issues its certificate. Every outcome is
kept in the payment ledger; anything other than an accepted success leaves the
application untouched.
"""

import hashlib
import hmac
import json
import logging
from decimal import Decimal, InvalidOperation

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .access_policy import SERVICE_ACTOR
from .application_registry import ApplicationRegistry
from .conf import homestay_setting
from .domain_application import Application
from .domain_payments import PaymentStatus
from .workflow_errors import Forbidden, RecordNotFound, ValidationFailed, WorkflowError

__all__ = ['sign_payload', 'signature_is_valid', 'PaymentCallbackView']

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = 'HTTP_X_PAYMENT_SIGNATURE'
# fits PaymentRecord.amount (12 digits, 2 decimals)
MAX_AMOUNT = Decimal('10000000000')


def sign_payload(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()


def _parse_amount(value):
    if value in (None, ''):
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationFailed({'amount': 'Enter a valid amount.'})
    if not amount.is_finite() or amount < 0 or amount >= MAX_AMOUNT or amount.as_tuple().exponent < -2:
        raise ValidationFailed({'amount': 'Enter a valid amount.'})
    return amount


def signature_is_valid(body: bytes, provided: str) -> bool:
    secret = homestay_setting('PAYMENT_CALLBACK_SECRET')
    if not secret or not provided:
        # no shared secret configured: refuse every callback
        return False
    return hmac.compare_digest(sign_payload(body, secret), str(provided).strip().lower())


class PaymentCallbackView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        body = request.body
        if not signature_is_valid(body, request.META.get(SIGNATURE_HEADER, '')):
            logger.warning('Rejected payment callback with bad signature from %s', request.META.get('REMOTE_ADDR'))
            raise Forbidden('Invalid payment callback signature.')
        try:
            payload = json.loads(body.decode('utf-8'))
        except (ValueError, UnicodeDecodeError):
            raise ValidationFailed({'body': 'Callback body must be JSON.'})
        if not isinstance(payload, dict):
            raise ValidationFailed({'body': 'Callback body must be a JSON object.'})

        number = str(payload.get('application_number') or '').strip()
        if not number:
            raise ValidationFailed({'application_number': 'This field is required.'})
        application = Application.objects.filter(application_number=number).first()
        if application is None:
            raise RecordNotFound(f"Application {number} not found.")

        payment_status = str(payload.get('status') or '').strip().lower()
        reference = str(payload.get('payment_reference') or '').strip()
        method = str(payload.get('payment_method') or '').strip()
        amount = _parse_amount(payload.get('amount'))
        registry = ApplicationRegistry()
        if payment_status != 'success':
            registry.record_payment_outcome(application.id, PaymentStatus.FAILED, amount=amount,
                                            payment_reference=reference, payment_method=method,
                                            detail=payment_status or 'no status')
            logger.info('Payment %s for %s reported as %r; application left at %s',
                        reference or '-', number, payment_status, application.status)
            return Response({'application_number': number, 'status': application.status, 'approved': False},
                            status=status.HTTP_200_OK)

        try:
            if amount is None:
                raise ValidationFailed({'amount': 'The paid amount is required for a successful payment.'})
            approved = registry.confirm_payment(application.id, SERVICE_ACTOR, payment_reference=reference,
                                                amount=amount, payment_method=method)
        except WorkflowError as exc:
            registry.record_payment_outcome(application.id, PaymentStatus.REFUSED, amount=amount,
                                            payment_reference=reference, payment_method=method,
                                            detail=f"{exc.code}: {exc.message}")
            logger.warning('Payment %s for %s not accepted: %s', reference or '-', number, exc.message)
            raise
        return Response({
            'application_number': approved.application_number,
            'status': approved.status,
            'approved': True,
            'certificate_number': approved.certificate_number,
            'certificate_expiry_date': approved.certificate_expiry_date,
        }, status=status.HTTP_200_OK)
