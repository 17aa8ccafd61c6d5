"""Auth helpers and the current-user endpoint.

Token issuing itself is simplejwt's; see ``urls.py``.
"""

import logging

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .access_policy import Actor
from .domain_actors import ActorProfile, Role
from .workflow_errors import Forbidden

logger = logging.getLogger(__name__)

__all__ = ['actor_for_request', 'MeView']


def actor_for_request(request) -> Actor:
    """The workflow actor behind an authenticated request."""
    profile = ActorProfile.objects.select_related('user').filter(user_id=request.user.id).first()
    if profile is None:
        logger.warning('User %s has no actor profile', request.user.id)
        raise Forbidden('Your account has no workflow role assigned.')
    return profile.as_actor()


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = actor_for_request(request)
        return Response({
            'id': request.user.id,
            'username': request.user.username,
            'full_name': request.user.get_full_name(),
            'email': request.user.email,
            'role': actor.role,
            'role_label': Role(actor.role).label,
            'district': actor.district,
            'is_active': actor.is_active,
        }, status=200)
