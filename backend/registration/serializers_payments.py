"""Serializers for the payment ledger."""

from rest_framework import serializers

from .domain_payments import PaymentRecord

__all__ = ['PaymentRecordSerializer']


class PaymentRecordSerializer(serializers.ModelSerializer):
    status_label = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = PaymentRecord
        fields = [
            'id', 'application', 'payment_reference', 'payment_method', 'amount', 'expected_amount',
            'status', 'status_label', 'detail', 'received_at', 'completed_at',
        ]
        read_only_fields = fields
