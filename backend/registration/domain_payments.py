"""Domain Payments (PaymentRecord)

One row per payment outcome reported for an application. A successful row is
written in the same commit that approves the application; failed and refused
callbacks are kept too so the ledger shows every attempt.
"""
from decimal import Decimal

from django.db import models

from .domain_application import Application

__all__ = ['PaymentStatus', 'PaymentRecord']


class PaymentStatus(models.TextChoices):
    SUCCESS = 'success', 'Success'
    FAILED = 'failed', 'Failed'
    # reported as paid but not accepted (amount mismatch, application not awaiting payment)
    REFUSED = 'refused', 'Refused'


class PaymentRecord(models.Model):
    id = models.BigAutoField(primary_key=True)
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='payments', db_column='application_id')
    payment_reference = models.CharField(max_length=255, blank=True, default='', db_column='gateway_transaction_id')
    payment_method = models.CharField(max_length=50, blank=True, default='', db_column='payment_method')
    amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True, db_column='amount')
    expected_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'), db_column='expected_amount')
    status = models.CharField(max_length=10, choices=PaymentStatus.choices, db_column='payment_status')
    detail = models.TextField(blank=True, default='', db_column='detail')
    received_at = models.DateTimeField(db_column='received_at')
    completed_at = models.DateTimeField(null=True, blank=True, db_column='completed_at')

    class Meta:
        db_table = 'payment_record'
        ordering = ['received_at', 'id']
        indexes = [
            models.Index(fields=['application', 'status'], name='idx_payment_application'),
            models.Index(fields=['payment_reference'], name='idx_payment_reference'),
        ]

    def __str__(self):
        return f"{self.payment_reference or '-'} {self.amount} ({self.status})"
