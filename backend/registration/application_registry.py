"""
Application Registry

Entry point for every workflow request. Loads what an action needs from the
record store, asks the workflow engine (or the inspection sub-process) for a
plan and commits the plan in one transaction.

It also owns two owner-facing rules:

- an owner has at most one non-terminal application; asking for a new draft
  while one is editable updates that record instead of creating another
- a draft save only changes the fields supplied; derived fields (room total,
  fee breakdown) are recomputed every time
"""

import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from django.utils import timezone

from . import document_tracker, inspection_engine, workflow_engine
from .access_policy import Actor, ensure_allowed
from .domain_actors import Role
from .domain_application import Application, ApplicationTransition, WorkflowAction
from .domain_inspection import InspectionReport
from .domain_payments import PaymentRecord, PaymentStatus
from .fee_engine import (
    FeeBreakdown,
    FeeSchedule,
    average_room_rate,
    compute_fee,
    suggest_category,
    validate_category_selection,
)
from .record_store import DjangoRecordStore, RecordStore
from .workflow_engine import TransitionContext
from .workflow_errors import Conflict, Forbidden, InvalidTransition, RecordNotFound, ValidationFailed

logger = logging.getLogger(__name__)

__all__ = ['ApplicationRegistry', 'DEDICATED_ACTIONS']

# Actions that need inputs beyond reason/notes/changes and have their own entry point.
DEDICATED_ACTIONS = frozenset({
    WorkflowAction.VERIFY_DOCUMENT,
    WorkflowAction.DELETE_DOCUMENT,
    WorkflowAction.SCHEDULE_INSPECTION,
    WorkflowAction.COMPLETE_INSPECTION,
    WorkflowAction.CONFIRM_PAYMENT,
})


class ApplicationRegistry:

    def __init__(self, store: Optional[RecordStore] = None, clock: Optional[Callable] = None,
                 fee_schedule: Optional[FeeSchedule] = None):
        self.store = store or DjangoRecordStore()
        self.clock = clock or timezone.now
        self.fee_schedule = fee_schedule

    def _commit(self, application: Application, action, actor: Actor, context: TransitionContext, **extra) -> Application:
        context.fee_schedule = context.fee_schedule or self.fee_schedule
        plan = workflow_engine.transition(application, action, actor, context, now=self.clock())
        saved = self.store.commit(plan, **extra)
        logger.info('%s %s: %s -> %s (actor %s)', saved.application_number, plan.action,
                    plan.from_status, plan.to_status, 'service' if actor.is_service else actor.id)
        return saved

    @staticmethod
    def _check_version(application: Application, expected_version: Optional[int]) -> None:
        if expected_version is not None and int(expected_version) != application.version:
            raise Conflict(expected_version=int(expected_version), current_version=application.version)

    def save_draft(self, actor: Actor, changes: Optional[Dict[str, Any]] = None,
                   documents: Optional[List[Dict[str, Any]]] = None) -> Tuple[Application, bool]:
        """Create the owner's draft or update their current editable application.

        Returns ``(application, created)``; ``created`` is decided under the same
        lock as the write.
        """
        if actor.role != Role.OWNER or actor.id is None:
            raise Forbidden('Only property owners can create applications.', action=WorkflowAction.SAVE_DRAFT)
        with self.store.atomic():
            application = self.store.find_active_application(actor.id)
            created = application is None
            if created:
                application = self.store.create_application(actor.id, year=timezone.localdate(self.clock()).year)
            elif not application.is_owner_editable:
                raise InvalidTransition(
                    application.status, WorkflowAction.SAVE_DRAFT,
                    message=f"Application {application.application_number} is under review and cannot be edited.",
                )
            context = TransitionContext(
                changes=dict(changes or {}),
                documents=list(documents or []),
                existing_documents=self.store.documents_for(application.id),
            )
            return self._commit(application, WorkflowAction.SAVE_DRAFT, actor, context), created

    def perform(self, application_id, action: str, actor: Actor, reason: str = '', notes: str = '',
                changes: Optional[Dict[str, Any]] = None, documents: Optional[List[Dict[str, Any]]] = None,
                expected_version: Optional[int] = None) -> Application:
        """Apply a workflow action that needs no inputs beyond reason, notes and owner edits."""
        if action in DEDICATED_ACTIONS:
            raise ValidationFailed({'action': f"'{action}' has its own endpoint."})
        with self.store.atomic():
            application = self.store.get_application(application_id)
            self._check_version(application, expected_version)
            context = TransitionContext(
                reason=reason or '',
                notes=notes or '',
                changes=dict(changes or {}),
                documents=list(documents or []),
                existing_documents=self.store.documents_for(application.id),
            )
            return self._commit(application, action, actor, context)

    def verify_document(self, document_id, actor: Actor, outcome: str, notes: str = '') -> Application:
        with self.store.atomic():
            document = self.store.get_document(document_id)
            application = self.store.get_application(document.application_id)
            context = TransitionContext(
                notes=notes or '', document=document, outcome=outcome,
                existing_documents=self.store.documents_for(application.id),
            )
            return self._commit(application, WorkflowAction.VERIFY_DOCUMENT, actor, context)

    def delete_document(self, document_id, actor: Actor) -> Application:
        with self.store.atomic():
            document = self.store.get_document(document_id)
            application = self.store.get_application(document.application_id)
            context = TransitionContext(document=document)
            return self._commit(application, WorkflowAction.DELETE_DOCUMENT, actor, context)

    def schedule_inspection(self, application_id, actor: Actor, assigned_to, scheduled_date,
                            special_instructions: str = '') -> Application:
        with self.store.atomic():
            application = self.store.get_application(application_id)
            assignee = None
            if assigned_to not in (None, ''):
                try:
                    assignee = self.store.get_actor(assigned_to)
                except RecordNotFound:
                    raise ValidationFailed({'assigned_to': 'Unknown inspecting officer.'})
            context = TransitionContext(
                assignee=assignee,
                scheduled_date=scheduled_date,
                special_instructions=special_instructions or '',
            )
            return self._commit(application, WorkflowAction.SCHEDULE_INSPECTION, actor, context)

    def submit_inspection_report(self, order_id, actor: Actor, recommendation: str, findings: str = '',
                                 mandatory_checklist=None, desirable_checklist=None,
                                 actual_inspection_date=None) -> Tuple[Application, InspectionReport]:
        with self.store.atomic():
            order = self.store.get_inspection_order(order_id)
            application = self.store.get_application(order.application_id)
            outcome = inspection_engine.submit_report(
                application,
                order,
                actor,
                recommendation,
                findings=findings,
                mandatory_checklist=mandatory_checklist,
                desirable_checklist=desirable_checklist,
                existing_report=self.store.get_report(order.id),
                actual_inspection_date=actual_inspection_date,
                now=self.clock(),
            )
            saved = self.store.commit(outcome.plan, report=outcome.report, order_updates=outcome.order_updates)
        logger.info('%s inspection report filed for order %s: %s -> %s', saved.application_number, order.id,
                    outcome.plan.from_status, outcome.plan.to_status)
        return saved, outcome.report

    def confirm_payment(self, application_id, actor: Actor, payment_reference: str = '',
                        amount: Optional[Decimal] = None, payment_method: str = '') -> Application:
        """Approve a paid application and issue its certificate number.

        ``amount`` must equal the application's total fee; None means the full
        fee was paid (manual confirmation).
        """
        with self.store.atomic():
            application = self.store.get_application(application_id)
            workflow_engine.lookup(application.status, WorkflowAction.CONFIRM_PAYMENT)
            ensure_allowed(actor, application, WorkflowAction.CONFIRM_PAYMENT)
            year = timezone.localdate(self.clock()).year
            context = TransitionContext(
                notes=payment_reference or '',
                certificate_number=self.store.next_certificate_number(year),
                amount=amount,
                payment_reference=payment_reference or '',
                payment_method=payment_method or '',
            )
            return self._commit(application, WorkflowAction.CONFIRM_PAYMENT, actor, context)

    def record_payment_outcome(self, application_id, status: str, amount: Optional[Decimal] = None,
                               payment_reference: str = '', payment_method: str = '',
                               detail: str = '') -> PaymentRecord:
        """Keep a payment attempt that did not approve the application."""
        application = self.store.get_application(application_id)
        record = PaymentRecord(
            application_id=application.id,
            payment_reference=(payment_reference or '').strip(),
            payment_method=(payment_method or '').strip(),
            amount=amount,
            expected_amount=application.total_fee or Decimal('0.00'),
            status=PaymentStatus(status),
            detail=(detail or '')[:1000],
            received_at=self.clock(),
        )
        self.store.save_payment(record)
        logger.info('%s payment %s recorded as %s', application.application_number,
                    record.payment_reference or '-', record.status)
        return record

    def payments(self, application_id) -> List[PaymentRecord]:
        return self.store.payments_for(application_id)

    def category_check(self, application) -> Dict[str, Any]:
        """Advisory comparison of the chosen category with room count and average rate."""
        average = average_room_rate(application)
        total_rooms = application.compute_total_rooms()
        result = {
            'category': application.category or None,
            'total_rooms': total_rooms,
            'average_room_rate': average,
            'suggested_category': suggest_category(total_rooms, average) if total_rooms else None,
            'is_valid': None,
            'errors': [],
            'warnings': [],
        }
        if application.category:
            check = validate_category_selection(application.category, total_rooms, average)
            result.update(is_valid=check.is_valid, errors=check.errors, warnings=check.warnings)
            if check.suggested_category:
                result['suggested_category'] = check.suggested_category
        return result

    def fee_preview(self, category, location_type, validity_years=1, owner_gender=None,
                    is_sub_division_exception: bool = False) -> FeeBreakdown:
        return compute_fee(category, location_type, validity_years, owner_gender,
                           is_sub_division_exception, schedule=self.fee_schedule)

    def available_actions(self, application: Application, actor: Actor) -> List[str]:
        return workflow_engine.available_actions(application, actor)

    def history(self, application_id) -> List[ApplicationTransition]:
        return self.store.history_for(application_id)

    def checklist(self, application_id) -> List[Dict[str, Any]]:
        return document_tracker.checklist(self.store.documents_for(application_id))
