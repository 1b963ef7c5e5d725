from django.apps import AppConfig  # type: ignore


class InvoicesConfig(AppConfig):
    name = 'apps.invoices'
    label = 'invoices'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        from apps.bookings.domain.events import BookingConfirmed
        from shared.application.message_bus import message_bus

        from .handlers import schedule_invoice

        message_bus.subscribe(BookingConfirmed, schedule_invoice)
