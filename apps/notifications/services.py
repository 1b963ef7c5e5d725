"""Notification services: in-app notifications and e-mail.

Both are best-effort. A notification that cannot be written or an e-mail
that cannot be sent is logged and never fails the operation that
triggered it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.db import DatabaseError, transaction  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils.html import strip_tags  # type: ignore

from .models import Notification

if TYPE_CHECKING:  # pragma: no cover
    from apps.bookings.models import Booking

logger = logging.getLogger(__name__)


# ============================================================================
# IN-APP NOTIFICATIONS
# ============================================================================

def notify(user_id, message: str, notification_type: str) -> Notification | None:
    """
    Write a notification row for a user.

    Runs in a savepoint so a failed insert inside a larger transaction
    rolls back only the notification. Returns None on failure.
    """
    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                user_id=user_id,
                message=message,
                type=notification_type,
            )
    except DatabaseError as e:
        logger.error(
            f"Failed to write {notification_type} notification for user {user_id}: {e}",
            exc_info=True,
        )
        return None

    logger.debug(f"{notification_type} notification {notification.id} written for user {user_id}")
    return notification


# ============================================================================
# EMAIL NOTIFICATIONS
# ============================================================================

def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str | None,
    context: dict,
) -> bool:
    """
    Send an e-mail rendered from a Django template.

    Returns:
        bool: True if the e-mail was handed to the mail backend
    """
    try:
        if template_name:
            html_message = render_to_string(template_name, context)
            text_message = strip_tags(html_message)
        else:
            html_message = None
            text_message = context.get("message", "")

        send_mail(
            subject=subject,
            message=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


def send_booking_confirmation_email(booking: "Booking") -> bool:
    """Confirmation e-mail listing every hotel and flight leg of a booking."""
    context = {
        "booking": booking,
        "guest_name": booking.user.first_name or booking.user.email,
        "reservations": list(booking.reservations.select_related("room_type__hotel")),
        "flights": list(booking.flights.all()),
    }
    return send_email_notification(
        recipient_email=booking.user.email,
        subject=f"Booking #{booking.booking_code} confirmed",
        template_name="notifications/booking_confirmed.html",
        context=context,
    )
