"""Serializers for applications, workflow actions and fee previews."""

from rest_framework import serializers

from .domain_application import (
    Application,
    ApplicationTransition,
    Category,
    LocationType,
    OwnerGender,
    WorkflowAction,
)
from .fee_engine import VALIDITY_OPTIONS
from .serializers_documents import DocumentManifestEntrySerializer
from .workflow_engine import DRAFT_FIELDS

__all__ = [
    'ApplicationSerializer',
    'ApplicationDraftSerializer',
    'TransitionRequestSerializer',
    'FeePreviewSerializer',
    'ApplicationTransitionSerializer',
    'PublicPropertySerializer',
]


class ApplicationSerializer(serializers.ModelSerializer):
    owner_username = serializers.CharField(source='owner.username', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Application
        fields = '__all__'
        read_only_fields = [f.name for f in Application._meta.concrete_fields]


class ApplicationDraftSerializer(serializers.ModelSerializer):
    """Owner-editable fields. Use with ``partial=True`` so only supplied fields are validated."""

    validity_years = serializers.ChoiceField(choices=VALIDITY_OPTIONS, required=False)
    documents = DocumentManifestEntrySerializer(many=True, required=False)

    class Meta:
        model = Application
        fields = list(DRAFT_FIELDS) + ['documents']

    def changes(self):
        data = dict(self.validated_data)
        data.pop('documents', None)
        return data

    def manifest(self):
        return [dict(entry) for entry in self.validated_data.get('documents', [])]


class TransitionRequestSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=WorkflowAction.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    expected_version = serializers.IntegerField(required=False, min_value=1)
    changes = serializers.DictField(required=False, default=dict)
    documents = DocumentManifestEntrySerializer(many=True, required=False)


class FeePreviewSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=Category.choices)
    location_type = serializers.ChoiceField(choices=LocationType.choices)
    validity_years = serializers.ChoiceField(choices=VALIDITY_OPTIONS, default=1)
    owner_gender = serializers.ChoiceField(choices=OwnerGender.choices, required=False, allow_null=True, default=None)
    is_sub_division_exception = serializers.BooleanField(required=False, default=False)


class ApplicationTransitionSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source='actor.username', read_only=True, default=None)

    class Meta:
        model = ApplicationTransition
        fields = ['id', 'action', 'from_status', 'to_status', 'actor', 'actor_username', 'actor_role', 'notes', 'created_at']
        read_only_fields = fields


class PublicPropertySerializer(serializers.ModelSerializer):
    """What the public listing shows of an approved property; no owner contact details."""
    category_label = serializers.CharField(source='get_category_display', read_only=True)

    class Meta:
        model = Application
        fields = [
            'id', 'property_name', 'category', 'category_label', 'district', 'tehsil', 'address', 'pincode',
            'latitude', 'longitude', 'total_rooms', 'single_bed_rooms', 'single_bed_room_rate',
            'double_bed_rooms', 'double_bed_room_rate', 'family_suites', 'family_suite_rate',
            'certificate_number', 'certificate_expiry_date',
        ]
        read_only_fields = fields
