"""Public, unauthenticated listing of approved homestays."""

from rest_framework import mixins, viewsets
from rest_framework.permissions import AllowAny

from .domain_application import Application, ApplicationStatus
from .serializers_applications import PublicPropertySerializer

__all__ = ['PublicPropertyViewSet']


class PublicPropertyViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = PublicPropertySerializer
    authentication_classes = []
    permission_classes = [AllowAny]

    def get_queryset(self):
        qs = Application.objects.filter(status=ApplicationStatus.APPROVED).order_by('property_name', 'id')
        params = getattr(self.request, 'query_params', {})
        district = (params.get('district') or '').strip()
        if district:
            qs = qs.filter(district__iexact=district)
        category = (params.get('category') or '').strip()
        if category:
            qs = qs.filter(category=category)
        return qs
