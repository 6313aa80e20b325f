import atexit

from django.apps import AppConfig
from django.conf import settings


class LogisticsConfig(AppConfig):
    name = 'logistics'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        if not settings.TRACKING_SWEEPER_ENABLED:
            return

        from .services import get_tracking_service

        service = get_tracking_service()
        service.start()
        atexit.register(service.shutdown)
