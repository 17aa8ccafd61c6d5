"""Domain Inspection (InspectionOrder, InspectionReport)
"""
from decimal import Decimal

from django.contrib.auth.models import User
from django.db import models

from .domain_application import Application

__all__ = ['OrderStatus', 'Recommendation', 'InspectionOrder', 'InspectionReport']


class OrderStatus(models.TextChoices):
    SCHEDULED = 'scheduled', 'Scheduled'
    COMPLETED = 'completed', 'Completed'


class Recommendation(models.TextChoices):
    APPROVE = 'approve', 'Approve'
    APPROVE_WITH_CONDITIONS = 'approve_with_conditions', 'Approve with Conditions'
    RAISE_OBJECTIONS = 'raise_objections', 'Raise Objections'
    REJECT = 'reject', 'Reject'


class InspectionOrder(models.Model):
    id = models.BigAutoField(primary_key=True)
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='inspection_orders', db_column='application_id')
    scheduled_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='scheduled_by')
    assigned_to = models.ForeignKey(User, on_delete=models.PROTECT, related_name='assigned_inspections', db_column='assigned_to')
    scheduled_date = models.DateField(db_column='scheduled_date')
    district = models.CharField(max_length=100, blank=True, default='', db_column='district')
    address_snapshot = models.TextField(blank=True, default='', db_column='address_snapshot')
    special_instructions = models.TextField(blank=True, default='', db_column='special_instructions')
    status = models.CharField(max_length=10, choices=OrderStatus.choices, default=OrderStatus.SCHEDULED, db_column='status')
    created_at = models.DateTimeField(db_column='created_at')
    completed_at = models.DateTimeField(null=True, blank=True, db_column='completed_at')

    class Meta:
        db_table = 'inspection_order'
        ordering = ['-scheduled_date', '-id']
        indexes = [
            models.Index(fields=['assigned_to', 'status'], name='idx_inspection_assignee'),
            models.Index(fields=['application'], name='idx_inspection_application'),
        ]

    def __str__(self):
        return f"Inspection {self.id} for {self.application_id} on {self.scheduled_date} ({self.status})"


class InspectionReport(models.Model):
    id = models.BigAutoField(primary_key=True)
    # one report per order; a retried submission hits this constraint
    order = models.OneToOneField(InspectionOrder, on_delete=models.CASCADE, related_name='report', db_column='order_id')
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='inspection_reports', db_column='application_id')
    submitted_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+', db_column='submitted_by')
    actual_inspection_date = models.DateField(null=True, blank=True, db_column='actual_inspection_date')
    mandatory_checklist = models.JSONField(default=dict, blank=True, db_column='mandatory_checklist')
    desirable_checklist = models.JSONField(default=dict, blank=True, db_column='desirable_checklist')
    mandatory_compliance = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'), db_column='mandatory_compliance')
    desirable_compliance = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'), db_column='desirable_compliance')
    recommendation = models.CharField(max_length=32, choices=Recommendation.choices, db_column='recommendation')
    findings = models.TextField(blank=True, default='', db_column='findings')
    submitted_at = models.DateTimeField(db_column='submitted_at')

    class Meta:
        db_table = 'inspection_report'

    def __str__(self):
        return f"Report for order {self.order_id}: {self.recommendation}"
