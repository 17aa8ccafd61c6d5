import logging

from django.contrib.auth.models import User
from django.db.models.signals import post_save
from django.dispatch import receiver

from .domain_actors import ActorProfile, Role

logger = logging.getLogger(__name__)


@receiver(post_save, sender=User)
def user_post_save(sender, instance: User, created, **kwargs):
    """Every new login gets an actor profile; superusers start as super administrators."""
    if not created or kwargs.get('raw'):
        return
    role = Role.SUPER_ADMINISTRATOR if instance.is_superuser else Role.OWNER
    _, made = ActorProfile.objects.get_or_create(user=instance, defaults={'role': role})
    if made:
        logger.info('Created %s profile for user %s', role, instance.username)
