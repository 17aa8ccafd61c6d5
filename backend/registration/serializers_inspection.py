"""Serializers for inspection scheduling and reports."""

from rest_framework import serializers

from .domain_inspection import InspectionOrder, InspectionReport, Recommendation

__all__ = [
    'InspectionOrderSerializer',
    'InspectionReportSerializer',
    'ScheduleInspectionSerializer',
    'InspectionReportSubmitSerializer',
]


class InspectionReportSerializer(serializers.ModelSerializer):
    class Meta:
        model = InspectionReport
        fields = [
            'id', 'order', 'application', 'submitted_by', 'actual_inspection_date',
            'mandatory_checklist', 'desirable_checklist', 'mandatory_compliance', 'desirable_compliance',
            'recommendation', 'findings', 'submitted_at',
        ]
        read_only_fields = fields


class InspectionOrderSerializer(serializers.ModelSerializer):
    application_number = serializers.CharField(source='application.application_number', read_only=True)
    property_name = serializers.CharField(source='application.property_name', read_only=True)
    assigned_to_username = serializers.CharField(source='assigned_to.username', read_only=True)
    has_report = serializers.SerializerMethodField()

    class Meta:
        model = InspectionOrder
        fields = [
            'id', 'application', 'application_number', 'property_name', 'scheduled_by', 'assigned_to',
            'assigned_to_username', 'scheduled_date', 'district', 'address_snapshot', 'special_instructions',
            'status', 'created_at', 'completed_at', 'has_report',
        ]
        read_only_fields = fields

    def get_has_report(self, obj) -> bool:
        return InspectionReport.objects.filter(order_id=obj.id).exists()


class ScheduleInspectionSerializer(serializers.Serializer):
    assigned_to = serializers.IntegerField(help_text='User id of the inspecting officer')
    scheduled_date = serializers.DateField()
    special_instructions = serializers.CharField(required=False, allow_blank=True, default='')


class InspectionReportSubmitSerializer(serializers.Serializer):
    recommendation = serializers.ChoiceField(choices=Recommendation.choices)
    findings = serializers.CharField(required=False, allow_blank=True, default='')
    mandatory_checklist = serializers.DictField(required=False, default=dict)
    desirable_checklist = serializers.DictField(required=False, default=dict)
    actual_inspection_date = serializers.DateField(required=False, allow_null=True, default=None)
