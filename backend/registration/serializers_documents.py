"""Serializers for application documents and upload manifests."""

from rest_framework import serializers

from .domain_documents import ApplicationDocument, DocumentType, VerificationStatus

__all__ = [
    'DocumentManifestEntrySerializer',
    'ApplicationDocumentSerializer',
    'DocumentVerifySerializer',
]


class DocumentManifestEntrySerializer(serializers.Serializer):
    """One uploaded file as described by the client after the upload finished."""

    document_type = serializers.ChoiceField(choices=DocumentType.choices)
    file_name = serializers.CharField(max_length=255)
    file_path = serializers.CharField(max_length=500)
    file_size = serializers.IntegerField(min_value=0, required=False, default=0)
    mime_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    replaces = serializers.IntegerField(required=False, allow_null=True, default=None)


class ApplicationDocumentSerializer(serializers.ModelSerializer):
    document_type_label = serializers.CharField(source='get_document_type_display', read_only=True)
    verified_by_username = serializers.CharField(source='verified_by.username', read_only=True, default=None)

    class Meta:
        model = ApplicationDocument
        fields = [
            'id',
            'application',
            'document_type',
            'document_type_label',
            'file_name',
            'file_path',
            'file_size',
            'mime_type',
            'file_category',
            'verification_status',
            'verified_by',
            'verified_by_username',
            'verified_at',
            'verification_notes',
            'version',
            'previous_version',
            'is_latest_version',
            'is_deleted',
            'uploaded_by',
            'uploaded_at',
        ]
        read_only_fields = fields


class DocumentVerifySerializer(serializers.Serializer):
    outcome = serializers.ChoiceField(choices=[VerificationStatus.VERIFIED, VerificationStatus.REJECTED])
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['outcome'] == VerificationStatus.REJECTED and not attrs.get('notes', '').strip():
            raise serializers.ValidationError({'notes': 'Notes are required when rejecting a document.'})
        return attrs
