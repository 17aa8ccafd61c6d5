"""API views for application documents: listing, verification and soft delete."""

import logging

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .application_registry import ApplicationRegistry
from .domain_documents import ApplicationDocument
from .serializers_applications import ApplicationSerializer
from .serializers_documents import ApplicationDocumentSerializer, DocumentVerifySerializer
from .views_applications import visible_applications
from .views_auth import actor_for_request

__all__ = ['DocumentViewSet']

logger = logging.getLogger(__name__)


class DocumentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Documents of applications visible to the caller.

    ``?application=<id>`` narrows to one application; ``?include_history=1``
    also returns superseded and deleted versions.
    """

    serializer_class = ApplicationDocumentSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        actor = actor_for_request(self.request)
        qs = ApplicationDocument.objects.select_related('verified_by').filter(
            application__in=visible_applications(actor)
        )
        params = getattr(self.request, 'query_params', {})
        application_id = (params.get('application') or '').strip()
        if application_id:
            qs = qs.filter(application_id=application_id)
        if (params.get('include_history') or '').strip().lower() not in ('1', 'true', 'yes'):
            qs = qs.filter(is_latest_version=True, is_deleted=False)
        return qs.order_by('application_id', 'document_type', 'version', 'id')

    @action(detail=True, methods=['post'], url_path='verify')
    def verify(self, request, pk=None):
        serializer = DocumentVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = ApplicationRegistry().verify_document(
            pk,
            actor_for_request(request),
            serializer.validated_data['outcome'],
            serializer.validated_data.get('notes', ''),
        )
        document = ApplicationDocument.objects.get(pk=pk)
        return Response({
            'document': ApplicationDocumentSerializer(document).data,
            'application': ApplicationSerializer(application).data,
        }, status=status.HTTP_200_OK)

    def destroy(self, request, pk=None):
        ApplicationRegistry().delete_document(pk, actor_for_request(request))
        return Response(status=status.HTTP_204_NO_CONTENT)
