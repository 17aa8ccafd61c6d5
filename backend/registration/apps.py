from django.apps import AppConfig


class RegistrationConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'registration'
    verbose_name = 'Homestay Registration'

    def ready(self):
        # Wire post_save handlers
        from . import signals  # noqa: F401
