import json
import logging
import traceback

from django.utils.deprecation import MiddlewareMixin

from .domain_logs import ApiActivityLog, ErrorLog

logger = logging.getLogger(__name__)

MUTATING_METHODS = ('POST', 'PUT', 'PATCH', 'DELETE')
REDACTED_KEYS = {'password', 'refresh', 'access', 'token', 'signature'}


def _request_payload(request):
    """Decoded JSON body with credentials masked, or None."""
    try:
        raw = request.body
    except Exception:
        # body already consumed as a stream
        return None
    if not raw:
        return None
    try:
        payload = json.loads(raw.decode('utf-8'))
    except (ValueError, UnicodeDecodeError):
        return None
    if isinstance(payload, dict):
        return {k: ('***' if k.lower() in REDACTED_KEYS else v) for k, v in payload.items()}
    return payload


def _request_user(request):
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return user
    return None


class RequestActivityMiddleware(MiddlewareMixin):
    """Records mutating /api/ calls to ApiActivityLog."""

    @staticmethod
    def _tracked(request):
        return request.method in MUTATING_METHODS and request.path.startswith('/api/')

    def process_request(self, request):
        if self._tracked(request):
            # read before DRF consumes the stream
            request._activity_payload = _request_payload(request)

    def process_response(self, request, response):
        if not self._tracked(request):
            return response
        try:
            payload = getattr(request, '_activity_payload', None)
            workflow_action = payload.get('action') if isinstance(payload, dict) else None
            match = getattr(request, 'resolver_match', None)
            ApiActivityLog.objects.create(
                user=_request_user(request),
                route_name=getattr(match, 'url_name', None) if match else None,
                workflow_action=str(workflow_action)[:32] if workflow_action else None,
                path=request.path,
                method=request.method,
                payload=payload,
                status_code=getattr(response, 'status_code', None),
            )
        except Exception:
            # the response must not fail because the audit row could not be written
            logger.warning('Could not record activity for %s %s', request.method, request.path, exc_info=True)
        return response


class ExceptionLoggingMiddleware(MiddlewareMixin):
    def process_exception(self, request, exception):
        try:
            ErrorLog.objects.create(
                user=_request_user(request),
                path=request.path,
                method=request.method,
                exception_type=type(exception).__name__,
                message=str(exception),
                stack=traceback.format_exc(),
                payload=getattr(request, '_activity_payload', None) or _request_payload(request),
            )
        except Exception:
            logger.exception('Could not record error log for %s', request.path)
        # let Django's normal 500 handling continue
        return None
