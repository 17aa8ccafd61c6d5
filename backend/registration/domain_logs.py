"""Domain Logs (ApiActivityLog, ErrorLog)
"""
from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone

__all__ = ['ApiActivityLog', 'ErrorLog']


class ApiActivityLog(models.Model):
    """Who called which mutating endpoint, with the workflow action if one was named."""
    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    route_name = models.CharField(max_length=200, blank=True, null=True)
    workflow_action = models.CharField(max_length=32, blank=True, null=True)
    path = models.CharField(max_length=1000, blank=True, null=True)
    method = models.CharField(max_length=10, blank=True, null=True)
    payload = models.JSONField(blank=True, null=True)
    status_code = models.IntegerField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'api_activity_log'
        ordering = ['-created_at']

    def __str__(self):
        who = self.user.username if self.user else 'Anonymous'
        return f"{who} {self.method or ''} {self.path or ''} -> {self.status_code} @ {self.created_at}"


class ErrorLog(models.Model):
    """Unhandled server errors, captured for ops."""
    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    path = models.CharField(max_length=1000, blank=True, null=True)
    method = models.CharField(max_length=10, blank=True, null=True)
    exception_type = models.CharField(max_length=200, blank=True, null=True)
    message = models.TextField(blank=True, null=True)
    stack = models.TextField(blank=True, null=True)
    payload = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'error_log'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.exception_type or 'Error'} on {self.path or 'unknown'} @ {self.created_at}"
