"""
Inspection Sub-process

An inspection order goes ``scheduled -> completed`` exactly once, when the
assigned officer files the report. Filing the report also drives the parent
application through ``complete_inspection`` with the recommendation deciding
the target status.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from django.utils import timezone

from . import workflow_engine
from .access_policy import Actor
from .domain_application import WorkflowAction
from .domain_inspection import InspectionOrder, InspectionReport, OrderStatus
from .workflow_errors import AlreadySubmitted, Forbidden, InvalidTransition, ValidationFailed

logger = logging.getLogger(__name__)

__all__ = [
    'MANDATORY_ITEMS', 'DESIRABLE_ITEMS', 'InspectionOutcome', 'normalize_checklist',
    'compliance_percent', 'submit_report',
]

MANDATORY_ITEMS: Dict[str, str] = {
    'application_form': 'Application form as per Annexure I',
    'documents_list': 'Documents list as per Annexure II',
    'online_payment': 'Online payment facility (UPI/Net Banking/Cards)',
    'well_maintained': 'Well-maintained furnished home with quality flooring',
    'clean_rooms': 'Clean, airy, pest-free rooms with external ventilation',
    'comfortable_bedding': 'Comfortable bedding with quality fabrics',
    'room_size': 'Minimum room and bathroom size compliance',
    'clean_kitchen': 'Smoke-free, clean, hygienic kitchen',
    'cutlery_crockery': 'Good quality cutlery and crockery',
    'water_facility': 'RO/Aquaguard/mineral water availability',
    'waste_disposal': 'Waste disposal as per municipal laws',
    'energy_saving_lights': 'Energy-saving lights in rooms and public areas',
    'visitor_book': 'Visitor book and feedback facilities',
    'doctor_details': 'Doctor names, addresses and phone numbers displayed',
    'luggage_assistance': 'Lost luggage assistance facilities',
    'fire_equipment': 'Basic fire equipment available',
    'guest_register': 'Guest check-in/out register',
    'cctv_cameras': 'CCTV cameras in common areas',
}

DESIRABLE_ITEMS: Dict[str, str] = {
    'parking': 'Parking with adequate road width',
    'attached_bathroom': 'Attached private bathroom with toiletries',
    'toilet_amenities': 'Toilet with seat, lid and toilet paper',
    'hot_cold_water': 'Hot and cold running water with sewage connection',
    'water_conservation': 'Water conservation taps/showers',
    'dining_area': 'Dining area serving fresh and hygienic food',
    'wardrobe': 'Wardrobe with at least 4 hangers in guest rooms',
    'storage': 'Cabinets or drawers for storage in rooms',
    'furniture': 'Quality chairs, work desk and furniture',
    'laundry': 'Washing machine/dryer or laundry service',
    'refrigerator': 'Refrigerator in homestay',
    'lounge': 'Lounge or sitting arrangement in lobby',
    'heating_cooling': 'Heating and cooling in closed public rooms',
    'luggage_help': 'Assistance with luggage on request',
    'safe_storage': 'Safe storage facilities in rooms',
    'security_guard': 'Security guard facilities',
    'himachali_crafts': 'Promotion of Himachali handicrafts and architecture',
    'rainwater_harvesting': 'Rainwater harvesting system',
}


def normalize_checklist(raw: Optional[Dict[str, Any]], items: Dict[str, str], label: str) -> Dict[str, Dict[str, Any]]:
    """Coerce ``{item: bool | {ok, remark}}`` into ``{item: {ok, remark}}`` over every known item.

    Items the inspector left out are recorded as not complied.
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ValidationFailed({label: 'Checklist must be an object keyed by item.'})
    unknown = sorted(set(raw) - set(items))
    if unknown:
        raise ValidationFailed({label: f"Unknown checklist items: {', '.join(unknown)}."})
    result = {}
    for key in items:
        value = raw.get(key)
        if isinstance(value, dict):
            ok, remark = bool(value.get('ok')), str(value.get('remark') or '').strip()
        else:
            ok, remark = bool(value), ''
        result[key] = {'ok': ok, 'remark': remark}
    return result


def compliance_percent(checklist: Dict[str, Dict[str, Any]]) -> Decimal:
    if not checklist:
        return Decimal('0.00')
    passed = sum(1 for entry in checklist.values() if entry['ok'])
    return (Decimal(passed) * 100 / Decimal(len(checklist))).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


@dataclass
class InspectionOutcome:
    report: InspectionReport
    order_updates: Dict[str, Any] = field(default_factory=dict)
    plan: Optional[workflow_engine.TransitionPlan] = None


def submit_report(
    application,
    order: InspectionOrder,
    submitter: Actor,
    recommendation: str,
    findings: str = '',
    mandatory_checklist: Optional[Dict[str, Any]] = None,
    desirable_checklist: Optional[Dict[str, Any]] = None,
    existing_report: Optional[InspectionReport] = None,
    actual_inspection_date=None,
    now=None,
) -> InspectionOutcome:
    """Validate and plan an inspection report filing.

    A retry of an already-filed report is refused with AlreadySubmitted
    before the order status is looked at.
    """
    now = now or timezone.now()
    if submitter.id is None or order.assigned_to_id != submitter.id:
        raise Forbidden('Only the assigned officer can file this inspection report.')
    if existing_report is not None:
        raise AlreadySubmitted()
    if order.status != OrderStatus.SCHEDULED:
        raise InvalidTransition(order.status, WorkflowAction.COMPLETE_INSPECTION,
                                message='This inspection order is no longer open.')
    if order.application_id != application.id:
        raise ValidationFailed({'order': 'Order does not belong to this application.'})

    mandatory = normalize_checklist(mandatory_checklist, MANDATORY_ITEMS, 'mandatory_checklist')
    desirable = normalize_checklist(desirable_checklist, DESIRABLE_ITEMS, 'desirable_checklist')
    findings = (findings or '').strip()

    plan = workflow_engine.transition(
        application,
        WorkflowAction.COMPLETE_INSPECTION,
        submitter,
        workflow_engine.TransitionContext(recommendation=recommendation, findings=findings),
        now=now,
    )
    report = InspectionReport(
        order_id=order.id,
        application_id=application.id,
        submitted_by_id=submitter.id,
        actual_inspection_date=actual_inspection_date or (timezone.localdate(now) if timezone.is_aware(now) else now.date()),
        mandatory_checklist=mandatory,
        desirable_checklist=desirable,
        mandatory_compliance=compliance_percent(mandatory),
        desirable_compliance=compliance_percent(desirable),
        recommendation=recommendation,
        findings=findings,
        submitted_at=now,
    )
    logger.debug('Inspection report planned for order %s: %s', order.id, recommendation)
    return InspectionOutcome(
        report=report,
        order_updates={'status': OrderStatus.COMPLETED, 'completed_at': now},
        plan=plan,
    )
