"""Domain Actors (Role, ActorProfile)

An actor is an auth user plus the role and district scope the review
workflow checks against.
"""
from django.contrib.auth.models import User
from django.db import models

__all__ = ['Role', 'ActorProfile']


class Role(models.TextChoices):
    OWNER = 'owner', 'Property Owner'
    SCRUTINY_CLERK = 'scrutiny_clerk', 'Scrutiny Clerk'
    DISTRICT_REVIEWER = 'district_reviewer', 'District Tourism Officer'
    STATE_APPROVER = 'state_approver', 'State Approver'
    ADMINISTRATOR = 'administrator', 'Administrator'
    SUPER_ADMINISTRATOR = 'super_administrator', 'Super Administrator'


class ActorProfile(models.Model):
    id = models.BigAutoField(primary_key=True)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='actor_profile', db_column='user_id')
    role = models.CharField(max_length=32, choices=Role.choices, default=Role.OWNER, db_column='role')
    # Required for scrutiny clerks and district reviewers; ignored otherwise.
    district = models.CharField(max_length=100, null=True, blank=True, db_column='district')
    mobile = models.CharField(max_length=15, null=True, blank=True, db_column='mobile')
    is_active = models.BooleanField(default=True, db_column='is_active')
    created_at = models.DateTimeField(auto_now_add=True, db_column='created_at')
    updated_at = models.DateTimeField(auto_now=True, db_column='updated_at')

    class Meta:
        db_table = 'actor_profile'
        indexes = [
            models.Index(fields=['role', 'district'], name='idx_actor_role_district'),
        ]

    def __str__(self):
        scope = f" @ {self.district}" if self.district else ''
        return f"{self.user.username} ({self.role}{scope})"

    def as_actor(self):
        from .access_policy import Actor
        return Actor(
            id=self.user_id,
            role=Role(self.role),
            district=(self.district or '').strip() or None,
            is_active=bool(self.is_active and self.user.is_active),
        )
