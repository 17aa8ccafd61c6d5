"""Typed failures raised by the workflow core.

Each error carries a machine ``code``, the HTTP status the API maps it to and
a structured ``detail`` payload (field errors, itemized shortfalls, current
status) so callers can resynchronize without parsing messages.
"""
from typing import Any, Dict, Iterable, Optional

__all__ = [
    'WorkflowError', 'ValidationFailed', 'Forbidden', 'InvalidTransition', 'MissingDocuments',
    'IncompleteFee', 'Conflict', 'AlreadySubmitted', 'RecordNotFound',
]


class WorkflowError(Exception):
    code = 'workflow_error'
    http_status = 400
    default_message = 'Workflow error.'

    def __init__(self, message: Optional[str] = None, **detail: Any):
        self.message = message or self.default_message
        self.detail: Dict[str, Any] = detail
        super().__init__(self.message)

    def as_dict(self) -> Dict[str, Any]:
        body = {'code': self.code, 'message': self.message}
        body.update(self.detail)
        return body


class ValidationFailed(WorkflowError):
    code = 'validation_failed'
    http_status = 400
    default_message = 'Some fields are missing or invalid.'

    def __init__(self, errors: Dict[str, Any], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message, errors=self.errors)


class Forbidden(WorkflowError):
    code = 'forbidden'
    http_status = 403
    default_message = 'You are not permitted to perform this action.'


class InvalidTransition(WorkflowError):
    code = 'invalid_transition'
    http_status = 409
    default_message = 'This action is not available in the current status.'

    def __init__(self, current_status: str, action: Optional[str] = None, message: Optional[str] = None):
        self.current_status = str(current_status)
        self.action = action
        if message is None and action:
            message = f"Action '{action}' is not available while the application is '{self.current_status}'."
        super().__init__(message, current_status=self.current_status, action=action)


class MissingDocuments(WorkflowError):
    code = 'missing_documents'
    http_status = 400
    default_message = 'Required documents are missing.'

    def __init__(self, missing: Iterable[Dict[str, Any]], message: Optional[str] = None):
        self.missing = list(missing)
        super().__init__(message, missing=self.missing)


class IncompleteFee(WorkflowError):
    code = 'incomplete_fee'
    http_status = 400
    default_message = 'The fee cannot be computed until all fee inputs are supplied.'

    def __init__(self, missing: Iterable[str], message: Optional[str] = None):
        self.missing = list(missing)
        super().__init__(message, missing=self.missing)


class Conflict(WorkflowError):
    code = 'conflict'
    http_status = 409
    default_message = 'The application was changed by someone else; reload and try again.'


class AlreadySubmitted(WorkflowError):
    code = 'already_submitted'
    http_status = 409
    default_message = 'A report has already been submitted for this inspection.'


class RecordNotFound(WorkflowError):
    code = 'not_found'
    http_status = 404
    default_message = 'Record not found.'
