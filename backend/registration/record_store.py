"""Persistence capability used by the application registry.

``RecordStore`` is the narrow interface the registry depends on;
``DjangoRecordStore`` implements it on the ORM. A commit writes everything a
TransitionPlan declares inside one transaction and guards the application row
with its version number.
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import F

from .access_policy import Actor
from .conf import homestay_setting
from .domain_actors import ActorProfile
from .domain_application import Application, ApplicationTransition, TERMINAL_STATUSES
from .domain_documents import ApplicationDocument
from .domain_inspection import InspectionOrder, InspectionReport, OrderStatus
from .domain_payments import PaymentRecord
from .workflow_errors import AlreadySubmitted, Conflict, RecordNotFound

logger = logging.getLogger(__name__)

__all__ = ['RecordStore', 'DjangoRecordStore', 'next_sequence_number']


def next_sequence_number(model, field_name: str, prefix: str, width: int = 6) -> str:
    """Next ``<prefix><zero-padded n>`` for ``model.field_name``.

    Must run inside a transaction; matching rows are locked so two callers
    cannot read the same maximum. Values whose suffix is not numeric are
    ignored rather than restarting the sequence.
    """
    qs = model.objects.select_for_update().filter(**{f"{field_name}__regex": rf"^{re.escape(prefix)}[0-9]+$"})
    numbers = [int(value[len(prefix):]) for value in qs.values_list(field_name, flat=True)]
    return f"{prefix}{max(numbers, default=0) + 1:0{width}d}"


class RecordStore(ABC):

    @abstractmethod
    def atomic(self):
        """Context manager grouping several store calls into one unit."""

    @abstractmethod
    def get_application(self, application_id) -> Application: ...

    @abstractmethod
    def find_active_application(self, owner_id) -> Optional[Application]: ...

    @abstractmethod
    def create_application(self, owner_id, year: int) -> Application: ...

    @abstractmethod
    def documents_for(self, application_id) -> List[ApplicationDocument]: ...

    @abstractmethod
    def get_document(self, document_id) -> ApplicationDocument: ...

    @abstractmethod
    def get_actor(self, user_id) -> Actor: ...

    @abstractmethod
    def history_for(self, application_id) -> List[ApplicationTransition]: ...

    @abstractmethod
    def get_inspection_order(self, order_id) -> InspectionOrder: ...

    @abstractmethod
    def get_report(self, order_id) -> Optional[InspectionReport]: ...

    @abstractmethod
    def next_certificate_number(self, year: int) -> str: ...

    @abstractmethod
    def save_payment(self, payment: PaymentRecord) -> PaymentRecord: ...

    @abstractmethod
    def payments_for(self, application_id) -> List[PaymentRecord]: ...

    @abstractmethod
    def commit(self, plan, report: Optional[InspectionReport] = None,
               order_updates: Optional[Dict[str, Any]] = None) -> Application: ...


class DjangoRecordStore(RecordStore):

    def atomic(self):
        return transaction.atomic()

    def get_application(self, application_id) -> Application:
        try:
            return Application.objects.get(pk=application_id)
        except (Application.DoesNotExist, ValueError, TypeError):
            raise RecordNotFound(f"Application {application_id} not found.")

    def find_active_application(self, owner_id) -> Optional[Application]:
        return (
            Application.objects.select_for_update()
            .filter(owner_id=owner_id)
            .exclude(status__in=list(TERMINAL_STATUSES))
            .order_by('-created_at')
            .first()
        )

    def create_application(self, owner_id, year: int) -> Application:
        prefix = f"{homestay_setting('APPLICATION_PREFIX')}-{year}-"
        with transaction.atomic():
            application = Application(
                owner_id=owner_id,
                application_number=next_sequence_number(Application, 'application_number', prefix),
            )
            try:
                with transaction.atomic():
                    application.save()
            except IntegrityError:
                # lost a race for the number or for the owner's single active slot
                raise Conflict('Another application was created at the same time; reload and try again.')
        logger.info('Created application %s for owner %s', application.application_number, owner_id)
        return application

    def documents_for(self, application_id) -> List[ApplicationDocument]:
        return list(ApplicationDocument.objects.filter(application_id=application_id).order_by('document_type', 'version', 'id'))

    def get_document(self, document_id) -> ApplicationDocument:
        try:
            return ApplicationDocument.objects.get(pk=document_id)
        except (ApplicationDocument.DoesNotExist, ValueError, TypeError):
            raise RecordNotFound(f"Document {document_id} not found.")

    def get_actor(self, user_id) -> Actor:
        profile = ActorProfile.objects.select_related('user').filter(user_id=user_id).first()
        if profile is None:
            raise RecordNotFound(f"No actor profile for user {user_id}.")
        return profile.as_actor()

    def history_for(self, application_id) -> List[ApplicationTransition]:
        return list(ApplicationTransition.objects.filter(application_id=application_id).select_related('actor'))

    def get_inspection_order(self, order_id) -> InspectionOrder:
        try:
            return InspectionOrder.objects.get(pk=order_id)
        except (InspectionOrder.DoesNotExist, ValueError, TypeError):
            raise RecordNotFound(f"Inspection order {order_id} not found.")

    def get_report(self, order_id) -> Optional[InspectionReport]:
        return InspectionReport.objects.filter(order_id=order_id).first()

    def next_certificate_number(self, year: int) -> str:
        prefix = f"{homestay_setting('CERTIFICATE_PREFIX')}-{year}-"
        return next_sequence_number(Application, 'certificate_number', prefix)

    def save_payment(self, payment: PaymentRecord) -> PaymentRecord:
        payment.save()
        return payment

    def payments_for(self, application_id) -> List[PaymentRecord]:
        return list(PaymentRecord.objects.filter(application_id=application_id))

    def commit(self, plan, report=None, order_updates=None) -> Application:
        now = plan.history.created_at if plan.history is not None else None
        with transaction.atomic():
            updates = dict(plan.updates)
            if now is not None:
                updates['updated_at'] = now
            try:
                with transaction.atomic():
                    rows = Application.objects.filter(pk=plan.application_id, version=plan.expected_version).update(
                        version=F('version') + 1, **updates
                    )
            except IntegrityError:
                # certificate number taken by a concurrent approval
                logger.warning('Unique value collision committing %s on application %s', plan.action, plan.application_id)
                raise Conflict('Another change used the same number; reload and try again.')
            if not rows:
                current = Application.objects.filter(pk=plan.application_id).values_list('version', flat=True).first()
                if current is None:
                    raise RecordNotFound(f"Application {plan.application_id} not found.")
                logger.warning('Version conflict on application %s: expected %s, found %s',
                               plan.application_id, plan.expected_version, current)
                raise Conflict(expected_version=plan.expected_version, current_version=current)

            if plan.superseded_document_ids:
                ApplicationDocument.objects.filter(
                    application_id=plan.application_id, pk__in=plan.superseded_document_ids
                ).update(is_latest_version=False)
            for document in plan.new_documents:
                document.save()
            for document_id, fields in plan.document_updates.items():
                ApplicationDocument.objects.filter(application_id=plan.application_id, pk=document_id).update(**fields)

            if plan.inspection_order is not None:
                plan.inspection_order.save()
            if report is not None:
                try:
                    with transaction.atomic():
                        report.save()
                except IntegrityError:
                    raise AlreadySubmitted()
                if order_updates:
                    closed = InspectionOrder.objects.filter(
                        pk=report.order_id, status=OrderStatus.SCHEDULED
                    ).update(**order_updates)
                    if not closed:
                        raise AlreadySubmitted()

            if plan.history is not None:
                plan.history.save()
            if plan.payment is not None:
                plan.payment.save()
        return Application.objects.get(pk=plan.application_id)
