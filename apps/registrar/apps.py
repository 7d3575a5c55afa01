# registrar/apps.py

from django.apps import AppConfig


class RegistrarConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "registrar"
    verbose_name = "Registrar Document Requests"

    def ready(self):
        """
        Import signal handlers when the app is ready.
        This ensures the request number receiver and the event loggers
        are connected when Django starts.
        """
        import registrar.signals  # noqa: F401
