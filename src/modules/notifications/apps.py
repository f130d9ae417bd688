from django.apps import AppConfig
from django.conf import settings


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.notifications"
    label = "notifications"

    def ready(self) -> None:
        from modules.notifications.fanout import NotificationFanout

        self.fanout = NotificationFanout(
            queue_size=getattr(settings, "NOTIFICATION_QUEUE_SIZE", 100),
        )
