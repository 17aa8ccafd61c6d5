"""API views for inspection orders and report filing."""

import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .application_registry import ApplicationRegistry
from .domain_actors import Role
from .domain_inspection import InspectionOrder
from .serializers_applications import ApplicationSerializer
from .serializers_inspection import (
    InspectionOrderSerializer,
    InspectionReportSerializer,
    InspectionReportSubmitSerializer,
)
from .views_auth import actor_for_request

__all__ = ['InspectionOrderViewSet']

logger = logging.getLogger(__name__)


class InspectionOrderViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = InspectionOrderSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        actor = actor_for_request(self.request)
        qs = InspectionOrder.objects.select_related('application', 'assigned_to')
        if not actor.is_active or actor.role == Role.OWNER:
            return qs.none()
        if actor.role == Role.SCRUTINY_CLERK:
            qs = qs.filter(assigned_to_id=actor.id)
        elif actor.role == Role.DISTRICT_REVIEWER:
            qs = qs.filter(district__iexact=actor.district or '')
        status_param = (self.request.query_params.get('status') or '').strip()
        if status_param:
            qs = qs.filter(status=status_param)
        return qs.order_by('-scheduled_date', '-id')

    @action(detail=True, methods=['post'], url_path='report')
    def report(self, request, pk=None):
        """File the one report for this order; a repeat gets 409 already_submitted."""
        serializer = InspectionReportSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        application, report = ApplicationRegistry().submit_inspection_report(
            pk,
            actor_for_request(request),
            data['recommendation'],
            findings=data.get('findings', ''),
            mandatory_checklist=data.get('mandatory_checklist'),
            desirable_checklist=data.get('desirable_checklist'),
            actual_inspection_date=data.get('actual_inspection_date'),
        )
        return Response({
            'report': InspectionReportSerializer(report).data,
            'application': ApplicationSerializer(application).data,
        }, status=status.HTTP_201_CREATED)
