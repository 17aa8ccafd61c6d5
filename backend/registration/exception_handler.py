"""DRF exception handler that renders workflow errors as structured JSON."""
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from .workflow_errors import WorkflowError

logger = logging.getLogger(__name__)


def workflow_exception_handler(exc, context):
    if isinstance(exc, WorkflowError):
        view = context.get('view')
        logger.info('%s in %s: %s', exc.code, type(view).__name__ if view else '-', exc.message)
        return Response(exc.as_dict(), status=exc.http_status)
    # everything else keeps DRF's behaviour; unhandled errors reach ExceptionLoggingMiddleware
    return exception_handler(exc, context)
