"""
Application Workflow Engine

The closed transition table for homestay applications and the function that
applies it. ``transition()`` looks the (status, action) pair up, asks the
access policy, evaluates the action's guards and returns a TransitionPlan: the
field updates, document rows, inspection order and history entry that one
atomic commit should write. It never mutates the application it is given and
performs no I/O, so every rule here can be exercised without a database.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from django.utils import timezone

from . import document_tracker
from .access_policy import Actor, ensure_allowed, is_allowed
from .domain_actors import Role
from .domain_application import (
    ApplicationStatus as S,
    ApplicationTransition,
    FEEDBACK_FIELDS,
    ROOM_CLASSES,
    Stage,
    WorkflowAction as A,
    stage_for_status,
)
from .domain_documents import ApplicationDocument
from .domain_inspection import InspectionOrder, OrderStatus, Recommendation
from .domain_payments import PaymentRecord, PaymentStatus
from .fee_engine import FeeSchedule, VALIDITY_OPTIONS, fee_for_application, missing_fee_inputs
from .workflow_errors import IncompleteFee, InvalidTransition, ValidationFailed

logger = logging.getLogger(__name__)

__all__ = [
    'Transition', 'TRANSITIONS', 'RECOMMENDATION_TARGETS', 'MIN_REASON_LENGTH', 'DRAFT_FIELDS',
    'TransitionContext', 'TransitionPlan', 'lookup', 'transition', 'available_actions',
    'transition_graph', 'to_mermaid',
]

MIN_REASON_LENGTH = 10


@dataclass(frozen=True)
class Transition:
    source: str
    action: str
    target: Optional[str]  # None: decided by the inspection recommendation
    stage: Optional[str] = None  # review stage whose audit fields get stamped


def _rows(sources, action, target, stage=None):
    return [Transition(src, action, src if target is _SAME else target, stage) for src in sources]


_SAME = object()
_CORRECTION_STATUSES = (
    S.SENT_BACK_FOR_CORRECTIONS, S.REVERTED_TO_APPLICANT, S.REVERTED_BY_REVIEW, S.OBJECTION_RAISED,
)

TRANSITIONS: Tuple[Transition, ...] = tuple(
    _rows((S.DRAFT,) + _CORRECTION_STATUSES, A.SAVE_DRAFT, _SAME)
    + _rows((S.DRAFT,) + _CORRECTION_STATUSES, A.DELETE_DOCUMENT, _SAME)
    + _rows((S.DRAFT,), A.SUBMIT, S.SUBMITTED)
    + _rows(_CORRECTION_STATUSES, A.RESUBMIT, S.SUBMITTED)
    + [
        Transition(S.SUBMITTED, A.START_SCRUTINY, S.UNDER_SCRUTINY, Stage.SCRUTINY),
        Transition(S.UNDER_SCRUTINY, A.VERIFY_DOCUMENT, S.UNDER_SCRUTINY, Stage.SCRUTINY),
        Transition(S.UNDER_SCRUTINY, A.FORWARD_TO_REVIEW, S.FORWARDED_TO_REVIEW, Stage.SCRUTINY),
        Transition(S.UNDER_SCRUTINY, A.SEND_BACK, S.SENT_BACK_FOR_CORRECTIONS, Stage.SCRUTINY),
        Transition(S.FORWARDED_TO_REVIEW, A.ACCEPT, S.REVIEW_ACCEPTED, Stage.DISTRICT),
        Transition(S.FORWARDED_TO_REVIEW, A.REVERT, S.REVERTED_TO_APPLICANT, Stage.DISTRICT),
        Transition(S.FORWARDED_TO_REVIEW, A.REJECT, S.REJECTED, Stage.DISTRICT),
        Transition(S.REVIEW_ACCEPTED, A.SCHEDULE_INSPECTION, S.INSPECTION_SCHEDULED, Stage.DISTRICT),
        Transition(S.INSPECTION_SCHEDULED, A.COMPLETE_INSPECTION, None, Stage.INSPECTION),
        Transition(S.INSPECTION_COMPLETED, A.BEGIN_INSPECTION_REVIEW, S.INSPECTION_UNDER_REVIEW, Stage.DISTRICT),
        Transition(S.INSPECTION_UNDER_REVIEW, A.VERIFY_FOR_PAYMENT, S.VERIFIED_FOR_PAYMENT, Stage.DISTRICT),
        Transition(S.INSPECTION_UNDER_REVIEW, A.REVERT, S.REVERTED_BY_REVIEW, Stage.DISTRICT),
        Transition(S.INSPECTION_UNDER_REVIEW, A.RAISE_OBJECTIONS, S.OBJECTION_RAISED, Stage.DISTRICT),
        Transition(S.INSPECTION_UNDER_REVIEW, A.REJECT, S.REJECTED, Stage.DISTRICT),
        Transition(S.VERIFIED_FOR_PAYMENT, A.REQUEST_PAYMENT, S.PAYMENT_PENDING, Stage.STATE),
        Transition(S.VERIFIED_FOR_PAYMENT, A.REJECT, S.REJECTED, Stage.STATE),
        Transition(S.PAYMENT_PENDING, A.CONFIRM_PAYMENT, S.APPROVED),
    ]
)

_TABLE: Dict[Tuple[str, str], Transition] = {(t.source, t.action): t for t in TRANSITIONS}

RECOMMENDATION_TARGETS = {
    Recommendation.APPROVE: S.INSPECTION_COMPLETED,
    Recommendation.APPROVE_WITH_CONDITIONS: S.INSPECTION_COMPLETED,
    Recommendation.RAISE_OBJECTIONS: S.OBJECTION_RAISED,
    Recommendation.REJECT: S.REJECTED,
}

REASON_REQUIRED = frozenset({A.SEND_BACK, A.REVERT, A.REJECT, A.RAISE_OBJECTIONS})
FINDINGS_REQUIRED = frozenset({
    Recommendation.APPROVE_WITH_CONDITIONS, Recommendation.RAISE_OBJECTIONS, Recommendation.REJECT,
})

# Owner-supplied fields a draft may change; everything else is derived or reviewer-owned.
DRAFT_FIELDS = (
    'property_name', 'category', 'location_type', 'project_type',
    'single_bed_rooms', 'single_bed_room_rate', 'single_bed_room_size',
    'double_bed_rooms', 'double_bed_room_rate', 'double_bed_room_size',
    'family_suites', 'family_suite_rate', 'family_suite_size',
    'district', 'tehsil', 'block', 'gram_panchayat', 'urban_body', 'address', 'pincode',
    'latitude', 'longitude',
    'owner_name', 'owner_gender', 'owner_mobile', 'owner_email',
    'validity_years', 'is_sub_division_exception',
)

REQUIRED_FOR_SUBMISSION = ('property_name', 'district', 'address', 'owner_name', 'owner_mobile')


@dataclass
class TransitionContext:
    """Inputs an action may need beyond the actor and the application."""
    reason: str = ''
    notes: str = ''
    changes: Dict[str, Any] = field(default_factory=dict)
    documents: List[Dict[str, Any]] = field(default_factory=list)
    existing_documents: List[ApplicationDocument] = field(default_factory=list)
    document: Optional[ApplicationDocument] = None
    outcome: str = ''
    assignee: Optional[Actor] = None
    scheduled_date: Optional[date] = None
    special_instructions: str = ''
    recommendation: str = ''
    findings: str = ''
    certificate_number: str = ''
    amount: Optional[Decimal] = None
    payment_reference: str = ''
    payment_method: str = ''
    fee_schedule: Optional[FeeSchedule] = None


@dataclass
class TransitionPlan:
    application_id: Optional[int]
    expected_version: int
    action: str
    from_status: str
    to_status: str
    updates: Dict[str, Any] = field(default_factory=dict)
    new_documents: List[ApplicationDocument] = field(default_factory=list)
    superseded_document_ids: List[int] = field(default_factory=list)
    document_updates: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    inspection_order: Optional[InspectionOrder] = None
    history: Optional[ApplicationTransition] = None
    payment: Optional[PaymentRecord] = None

    @property
    def changes_status(self) -> bool:
        return self.from_status != self.to_status


def lookup(status, action) -> Transition:
    row = _TABLE.get((status, action))
    if row is None:
        raise InvalidTransition(status, action)
    return row


def _clean_reason(action, context: TransitionContext) -> str:
    reason = (context.reason or '').strip()
    if action in REASON_REQUIRED and len(reason) < MIN_REASON_LENGTH:
        raise ValidationFailed({'reason': f"A reason of at least {MIN_REASON_LENGTH} characters is required."})
    return reason


def _validate_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(changes) - set(DRAFT_FIELDS))
    if unknown:
        raise ValidationFailed({name: 'This field cannot be edited.' for name in unknown})
    if 'validity_years' in changes and changes['validity_years'] not in VALIDITY_OPTIONS:
        raise ValidationFailed({'validity_years': f"Must be one of {', '.join(map(str, VALIDITY_OPTIONS))}."})
    return dict(changes)


def _working_copy(application, changes: Dict[str, Any]):
    working = copy.copy(application)
    for name, value in changes.items():
        setattr(working, name, value)
    working.total_rooms = working.compute_total_rooms()
    return working


def _submission_errors(application) -> Dict[str, str]:
    errors = {}
    for count_field, rate_field, _size in ROOM_CLASSES:
        count = int(getattr(application, count_field) or 0)
        rate = getattr(application, rate_field)
        if count > 0 and (rate is None or rate == '' or rate <= 0):
            errors[rate_field] = f"A room rate is required for {count} {count_field.replace('_', ' ')}."
    if application.compute_total_rooms() <= 0:
        errors['total_rooms'] = 'At least one room is required.'
    for name in REQUIRED_FOR_SUBMISSION:
        if not str(getattr(application, name) or '').strip():
            errors[name] = 'This field is required.'
    return errors


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February
        return day.replace(year=day.year + years, day=28)


def transition(application, action, actor: Actor, context: Optional[TransitionContext] = None,
               now: Optional[datetime] = None) -> TransitionPlan:
    """
    Plan one workflow action.

    Args:
        application: the current Application row (not modified)
        action: a WorkflowAction value
        actor: who is asking
        context: reason, notes and action-specific inputs
        now: timestamp for audit stamps; defaults to the current time

    Returns:
        TransitionPlan for the registry to commit

    Raises:
        InvalidTransition, Forbidden, ValidationFailed, IncompleteFee, MissingDocuments
    """
    context = context or TransitionContext()
    now = now or timezone.now()
    if action not in A.values:
        raise InvalidTransition(application.status, action)
    action = A(action)
    row = lookup(application.status, action)
    ensure_allowed(actor, application, action)

    reason = _clean_reason(action, context)
    notes = (context.notes or '').strip()
    target = row.target
    updates: Dict[str, Any] = {}
    plan = TransitionPlan(
        application_id=application.id,
        expected_version=application.version,
        action=action,
        from_status=application.status,
        to_status=target or application.status,
    )

    handler = _HANDLERS.get(action)
    if handler is not None:
        target = handler(application, actor, context, plan, updates, reason, now) or target
    plan.to_status = target

    if row.stage:
        updates[f"{row.stage}_reviewed_by_id"] = actor.id
        updates[f"{row.stage}_reviewed_at"] = now
        stage_notes = notes or reason or context.findings.strip()
        if stage_notes and action != A.VERIFY_DOCUMENT:
            updates[f"{row.stage}_notes"] = stage_notes
    if target != application.status:
        updates['status'] = target
        updates['current_stage'] = stage_for_status(target)
    if target == S.SUBMITTED:
        for name in FEEDBACK_FIELDS:
            updates[name] = ''
        updates['submitted_at'] = now
    plan.updates = updates
    plan.history = ApplicationTransition(
        application_id=application.id,
        action=action,
        from_status=application.status,
        to_status=target,
        actor_id=actor.id,
        actor_role=str(actor.role),
        notes=reason or notes or context.findings.strip(),
        created_at=now,
    )
    logger.debug('Planned %s for %s: %s -> %s', action, application.application_number, application.status, target)
    return plan


def _plan_owner_edit(application, actor, context, plan, updates, now, final: bool):
    changes = _validate_changes(context.changes)
    working = _working_copy(application, changes)
    updates.update(changes)
    updates['total_rooms'] = working.total_rooms

    uploads = document_tracker.plan_uploads(application, context.existing_documents, context.documents, actor.id, now)
    plan.new_documents = uploads.new_documents
    plan.superseded_document_ids = uploads.superseded_ids

    if final:
        errors = _submission_errors(working)
        if errors:
            raise ValidationFailed(errors)
        missing = missing_fee_inputs(working)
        if missing:
            raise IncompleteFee(missing)
        document_tracker.check_completeness(uploads.resulting_documents(context.existing_documents))
        updates.update(fee_for_application(working, context.fee_schedule).as_fields())
    elif not missing_fee_inputs(working):
        updates.update(fee_for_application(working, context.fee_schedule).as_fields())


def _save_draft(application, actor, context, plan, updates, reason, now):
    _plan_owner_edit(application, actor, context, plan, updates, now, final=False)


def _submit(application, actor, context, plan, updates, reason, now):
    _plan_owner_edit(application, actor, context, plan, updates, now, final=True)


def _delete_document(application, actor, context, plan, updates, reason, now):
    document = context.document
    if document is None or document.application_id != application.id:
        raise ValidationFailed({'document': 'Document does not belong to this application.'})
    plan.document_updates[document.id] = document_tracker.plan_soft_delete(document)


def _verify_document(application, actor, context, plan, updates, reason, now):
    document = context.document
    if document is None or document.application_id != application.id:
        raise ValidationFailed({'document': 'Document does not belong to this application.'})
    plan.document_updates[document.id] = document_tracker.verify(
        document, actor.id, context.outcome, context.notes, now
    )


def _forward_to_review(application, actor, context, plan, updates, reason, now):
    document_tracker.check_completeness(context.existing_documents)


def _send_back(application, actor, context, plan, updates, reason, now):
    updates['scrutiny_feedback'] = reason


def _revert(application, actor, context, plan, updates, reason, now):
    updates['district_feedback'] = reason


def _reject(application, actor, context, plan, updates, reason, now):
    updates['rejection_reason'] = reason


def _schedule_inspection(application, actor, context, plan, updates, reason, now):
    errors = {}
    assignee = context.assignee
    if context.scheduled_date is None:
        errors['scheduled_date'] = 'An inspection date is required.'
    if assignee is None:
        errors['assigned_to'] = 'An inspecting officer is required.'
    elif not (assignee.is_active and assignee.role == Role.SCRUTINY_CLERK):
        errors['assigned_to'] = 'The inspecting officer must be an active scrutiny clerk.'
    elif (assignee.district or '').strip().casefold() != (application.district or '').strip().casefold():
        errors['assigned_to'] = "The inspecting officer must belong to the application's district."
    if errors:
        raise ValidationFailed(errors)
    plan.inspection_order = InspectionOrder(
        application_id=application.id,
        scheduled_by_id=actor.id,
        assigned_to_id=assignee.id,
        scheduled_date=context.scheduled_date,
        district=application.district,
        address_snapshot=application.address,
        special_instructions=(context.special_instructions or '').strip(),
        status=OrderStatus.SCHEDULED,
        created_at=now,
    )


def _complete_inspection(application, actor, context, plan, updates, reason, now):
    recommendation = context.recommendation
    if recommendation not in Recommendation.values:
        raise ValidationFailed({'recommendation': f"Must be one of {', '.join(Recommendation.values)}."})
    findings = (context.findings or '').strip()
    if recommendation in FINDINGS_REQUIRED and not findings:
        raise ValidationFailed({'findings': 'Findings are required for conditional approval, objections or rejection.'})
    if recommendation == Recommendation.APPROVE_WITH_CONDITIONS:
        updates['inspection_conditions'] = findings
    elif recommendation == Recommendation.RAISE_OBJECTIONS:
        updates['inspection_feedback'] = findings
    elif recommendation == Recommendation.REJECT:
        updates['rejection_reason'] = findings
    return RECOMMENDATION_TARGETS[Recommendation(recommendation)]


def _raise_objections(application, actor, context, plan, updates, reason, now):
    updates['district_feedback'] = reason


def _confirm_payment(application, actor, context, plan, updates, reason, now):
    certificate_number = (context.certificate_number or '').strip()
    if not certificate_number:
        raise ValidationFailed({'certificate_number': 'A certificate number is required to approve.'})
    expected = application.total_fee or Decimal('0.00')
    amount = expected if context.amount is None else context.amount
    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationFailed({'amount': 'Enter a valid amount.'})
    if amount != expected:
        raise ValidationFailed({'amount': f"Paid amount {amount} does not match the fee due of {expected}."})
    plan.payment = PaymentRecord(
        application_id=application.id,
        payment_reference=(context.payment_reference or '').strip(),
        payment_method=(context.payment_method or '').strip(),
        amount=amount,
        expected_amount=expected,
        status=PaymentStatus.SUCCESS,
        received_at=now,
        completed_at=now,
    )
    issued_on = timezone.localdate(now) if timezone.is_aware(now) else now.date()
    updates['certificate_number'] = certificate_number
    updates['certificate_issued_at'] = now
    updates['certificate_expiry_date'] = _add_years(issued_on, int(application.validity_years or 1))
    updates['approved_at'] = now


_HANDLERS = {
    A.SAVE_DRAFT: _save_draft,
    A.SUBMIT: _submit,
    A.RESUBMIT: _submit,
    A.DELETE_DOCUMENT: _delete_document,
    A.VERIFY_DOCUMENT: _verify_document,
    A.FORWARD_TO_REVIEW: _forward_to_review,
    A.SEND_BACK: _send_back,
    A.REVERT: _revert,
    A.REJECT: _reject,
    A.SCHEDULE_INSPECTION: _schedule_inspection,
    A.COMPLETE_INSPECTION: _complete_inspection,
    A.RAISE_OBJECTIONS: _raise_objections,
    A.CONFIRM_PAYMENT: _confirm_payment,
}


def available_actions(application, actor: Actor) -> List[str]:
    """Actions this actor could attempt right now, in table order (guards not evaluated)."""
    return [
        str(t.action) for t in TRANSITIONS
        if t.source == application.status and is_allowed(actor, application, t.action)
    ]


def transition_graph() -> List[Tuple[str, str, str]]:
    """(source, action, target) edges with the inspection outcome expanded."""
    edges = []
    for t in TRANSITIONS:
        if t.target is None:
            targets = sorted({str(v) for v in RECOMMENDATION_TARGETS.values()})
            edges.extend((str(t.source), str(t.action), target) for target in targets)
        else:
            edges.append((str(t.source), str(t.action), str(t.target)))
    return edges


def to_mermaid() -> str:
    lines = ['stateDiagram-v2', f"    [*] --> {S.DRAFT.value}"]
    for source, action, target in transition_graph():
        if source == target:
            continue
        lines.append(f"    {source} --> {target}: {action}")
    lines.append(f"    {S.APPROVED.value} --> [*]")
    lines.append(f"    {S.REJECTED.value} --> [*]")
    return '\n'.join(lines)

