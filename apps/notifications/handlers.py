"""Domain event handlers owned by the notifications app."""

from __future__ import annotations

import logging

from apps.bookings.models import Booking

from .services import send_booking_confirmation_email

logger = logging.getLogger(__name__)


def send_confirmation_email(event) -> None:
    booking = (
        Booking.objects.select_related('user')
        .filter(pk=event.booking_id)
        .first()
    )
    if booking is None:
        logger.warning(f"Booking {event.booking_id} vanished before confirmation e-mail")
        return
    send_booking_confirmation_email(booking)
