"""Authorization policy for workflow actions.

Every action is mapped once to the roles allowed to invoke it. Owners act only
on their own application; scrutiny clerks and district reviewers act only
inside their configured district. Anything not listed is denied.
"""
import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

from .domain_actors import Role
from .domain_application import ApplicationStatus, WorkflowAction
from .workflow_errors import Forbidden

logger = logging.getLogger(__name__)

__all__ = [
    'Actor', 'SERVICE_ACTOR', 'ACTION_ROLES', 'OWNER_ACTIONS', 'DISTRICT_SCOPED_ROLES',
    'effective_roles', 'allowed_roles', 'explain', 'is_allowed', 'ensure_allowed',
]


@dataclass(frozen=True)
class Actor:
    id: Optional[int]
    role: Role
    district: Optional[str] = None
    is_active: bool = True

    @property
    def is_service(self) -> bool:
        return self.id is None


# Used by the payment gateway callback once its signature has been checked.
SERVICE_ACTOR = Actor(id=None, role=Role.ADMINISTRATOR)

OWNER_ACTIONS: FrozenSet[str] = frozenset({
    WorkflowAction.SAVE_DRAFT,
    WorkflowAction.SUBMIT,
    WorkflowAction.RESUBMIT,
    WorkflowAction.DELETE_DOCUMENT,
})

DISTRICT_SCOPED_ROLES: FrozenSet[str] = frozenset({Role.SCRUTINY_CLERK, Role.DISTRICT_REVIEWER})

ACTION_ROLES = {
    WorkflowAction.SAVE_DRAFT: frozenset({Role.OWNER}),
    WorkflowAction.SUBMIT: frozenset({Role.OWNER}),
    WorkflowAction.RESUBMIT: frozenset({Role.OWNER}),
    WorkflowAction.DELETE_DOCUMENT: frozenset({Role.OWNER}),
    WorkflowAction.START_SCRUTINY: frozenset({Role.SCRUTINY_CLERK}),
    WorkflowAction.VERIFY_DOCUMENT: frozenset({Role.SCRUTINY_CLERK}),
    WorkflowAction.FORWARD_TO_REVIEW: frozenset({Role.SCRUTINY_CLERK}),
    WorkflowAction.SEND_BACK: frozenset({Role.SCRUTINY_CLERK}),
    WorkflowAction.ACCEPT: frozenset({Role.DISTRICT_REVIEWER}),
    WorkflowAction.REVERT: frozenset({Role.DISTRICT_REVIEWER}),
    WorkflowAction.REJECT: frozenset({Role.DISTRICT_REVIEWER}),
    WorkflowAction.SCHEDULE_INSPECTION: frozenset({Role.DISTRICT_REVIEWER}),
    WorkflowAction.COMPLETE_INSPECTION: frozenset({Role.SCRUTINY_CLERK}),
    WorkflowAction.BEGIN_INSPECTION_REVIEW: frozenset({Role.DISTRICT_REVIEWER}),
    WorkflowAction.VERIFY_FOR_PAYMENT: frozenset({Role.DISTRICT_REVIEWER}),
    WorkflowAction.RAISE_OBJECTIONS: frozenset({Role.DISTRICT_REVIEWER}),
    WorkflowAction.REQUEST_PAYMENT: frozenset({Role.STATE_APPROVER}),
    WorkflowAction.CONFIRM_PAYMENT: frozenset({Role.ADMINISTRATOR}),
}

# Rejection after district verification belongs to the state approver.
STATUS_ACTION_ROLES = {
    (ApplicationStatus.VERIFIED_FOR_PAYMENT, WorkflowAction.REJECT): frozenset({Role.STATE_APPROVER}),
}

_INHERITS = {Role.SUPER_ADMINISTRATOR: Role.ADMINISTRATOR}


def effective_roles(role) -> FrozenSet[str]:
    """The role itself plus the one role it inherits from, if any."""
    role = Role(role)
    inherited = _INHERITS.get(role)
    return frozenset({role, inherited}) if inherited else frozenset({role})


def allowed_roles(action, status=None) -> FrozenSet[str]:
    if status is not None:
        override = STATUS_ACTION_ROLES.get((status, action))
        if override is not None:
            return override
    return ACTION_ROLES.get(action, frozenset())


def _same_district(a: Optional[str], b: Optional[str]) -> bool:
    a = (a or '').strip().casefold()
    b = (b or '').strip().casefold()
    return bool(a) and a == b


def explain(actor: Optional[Actor], application, action) -> Optional[str]:
    """Reason the actor may not perform ``action``, or None when allowed."""
    if actor is None:
        return 'No actor.'
    if not actor.is_active:
        return 'Account is inactive.'
    if action not in ACTION_ROLES:
        return f"Unknown action '{action}'."
    roles = allowed_roles(action, getattr(application, 'status', None))
    if not (effective_roles(actor.role) & roles):
        return f"Role '{actor.role}' may not perform '{action}'."
    if action in OWNER_ACTIONS:
        if application is None or application.owner_id != actor.id:
            return 'Owners may act only on their own application.'
    if actor.role in DISTRICT_SCOPED_ROLES:
        if not (actor.district or '').strip():
            return f"No district is configured for this {Role(actor.role).label.lower()}."
        if application is None or not _same_district(actor.district, application.district):
            return f"Application is outside district '{actor.district}'."
    return None


def is_allowed(actor: Optional[Actor], application, action) -> bool:
    return explain(actor, application, action) is None


def ensure_allowed(actor: Optional[Actor], application, action) -> None:
    reason = explain(actor, application, action)
    if reason is not None:
        logger.info('Denied %s on %s for actor %s: %s', action,
                    getattr(application, 'application_number', None), getattr(actor, 'id', None), reason)
        raise Forbidden(reason, action=str(action))
