"""API views for homestay applications: drafts, workflow actions and fee previews."""

import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .application_registry import ApplicationRegistry
from .domain_actors import Role
from .domain_application import Application
from .serializers_applications import (
    ApplicationDraftSerializer,
    ApplicationSerializer,
    ApplicationTransitionSerializer,
    FeePreviewSerializer,
    TransitionRequestSerializer,
)
from .serializers_inspection import InspectionOrderSerializer, ScheduleInspectionSerializer
from .serializers_payments import PaymentRecordSerializer
from .views_auth import actor_for_request
from .workflow_errors import ValidationFailed

__all__ = [
    'visible_applications',
    'ApplicationViewSet',
    'FeePreviewView',
]

logger = logging.getLogger(__name__)


def visible_applications(actor):
    """Applications an actor may list: owners their own, district roles their district."""
    qs = Application.objects.select_related('owner')
    if not actor.is_active:
        return qs.none()
    if actor.role == Role.OWNER:
        return qs.filter(owner_id=actor.id)
    if actor.role in (Role.SCRUTINY_CLERK, Role.DISTRICT_REVIEWER):
        if not actor.district:
            return qs.none()
        return qs.filter(district__iexact=actor.district)
    return qs


class ApplicationViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = ApplicationSerializer
    permission_classes = [IsAuthenticated]
    registry_class = ApplicationRegistry

    def get_registry(self):
        return self.registry_class()

    def get_queryset(self):
        qs = visible_applications(actor_for_request(self.request)).order_by('-created_at', '-id')
        params = getattr(self.request, 'query_params', {})
        status_param = (params.get('status') or '').strip()
        if status_param:
            qs = qs.filter(status__in=[s.strip() for s in status_param.split(',') if s.strip()])
        stage = (params.get('stage') or '').strip()
        if stage:
            qs = qs.filter(current_stage=stage)
        search = (params.get('search') or '').strip()
        if search:
            qs = qs.filter(application_number__icontains=search) | qs.filter(property_name__icontains=search)
        return qs

    def _respond(self, application, http_status=status.HTTP_200_OK):
        return Response(ApplicationSerializer(application).data, status=http_status)

    @action(detail=False, methods=['post'], url_path='draft')
    def draft(self, request):
        """Create the owner's draft, or update the current editable one."""
        serializer = ApplicationDraftSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        actor = actor_for_request(request)
        application, created = self.get_registry().save_draft(actor, serializer.changes(), serializer.manifest())
        return self._respond(application, status.HTTP_201_CREATED if created else status.HTTP_200_OK)

    @action(detail=True, methods=['post'], url_path='transition')
    def transition(self, request, pk=None):
        payload = TransitionRequestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        changes = {}
        if data.get('changes'):
            draft = ApplicationDraftSerializer(data=data['changes'], partial=True)
            if not draft.is_valid():
                raise ValidationFailed(draft.errors)
            changes = draft.changes()
        application = self.get_registry().perform(
            pk,
            data['action'],
            actor_for_request(request),
            reason=data.get('reason', ''),
            notes=data.get('notes', ''),
            changes=changes,
            documents=[dict(entry) for entry in data.get('documents', [])],
            expected_version=data.get('expected_version'),
        )
        return self._respond(application)

    @action(detail=True, methods=['get'], url_path='actions')
    def available_actions(self, request, pk=None):
        application = self.get_object()
        available = self.get_registry().available_actions(application, actor_for_request(request))
        return Response({'status': application.status, 'actions': available}, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'], url_path='history')
    def history(self, request, pk=None):
        application = self.get_object()
        entries = self.get_registry().history(application.id)
        return Response({'items': ApplicationTransitionSerializer(entries, many=True).data}, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'], url_path='checklist')
    def checklist(self, request, pk=None):
        application = self.get_object()
        rows = self.get_registry().checklist(application.id)
        return Response({
            'items': rows,
            'complete': all(row['satisfied'] for row in rows),
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'], url_path='category-check')
    def category_check(self, request, pk=None):
        """Whether the chosen category fits the room count and average rate; advisory only."""
        result = self.get_registry().category_check(self.get_object())
        result['average_room_rate'] = str(result['average_room_rate'])
        return Response(result, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'], url_path='payments')
    def payments(self, request, pk=None):
        application = self.get_object()
        records = self.get_registry().payments(application.id)
        return Response({'items': PaymentRecordSerializer(records, many=True).data}, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'], url_path='schedule-inspection')
    def schedule_inspection(self, request, pk=None):
        serializer = ScheduleInspectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        application = self.get_registry().schedule_inspection(
            pk,
            actor_for_request(request),
            assigned_to=data['assigned_to'],
            scheduled_date=data['scheduled_date'],
            special_instructions=data.get('special_instructions', ''),
        )
        order = application.inspection_orders.order_by('-id').first()
        return Response({
            'application': ApplicationSerializer(application).data,
            'inspection_order': InspectionOrderSerializer(order).data if order else None,
        }, status=status.HTTP_201_CREATED)


class FeePreviewView(APIView):
    """Fee breakdown for a set of inputs, without touching any application."""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = FeePreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        breakdown = ApplicationRegistry().fee_preview(
            data['category'],
            data['location_type'],
            data['validity_years'],
            data.get('owner_gender'),
            data.get('is_sub_division_exception', False),
        )
        return Response({k: str(v) for k, v in breakdown.as_fields().items()}, status=status.HTTP_200_OK)
