from django.apps import AppConfig  # type: ignore


class NotificationsConfig(AppConfig):
    name = 'apps.notifications'
    label = 'notifications'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        from apps.bookings.domain.events import BookingConfirmed
        from shared.application.message_bus import message_bus

        from .handlers import send_confirmation_email

        message_bus.subscribe(BookingConfirmed, send_confirmation_email)
